"""
Tests for answer-key preview, commit, bulk rescoring and rescore notifications.
"""

import pytest
from sqlalchemy import func, select

from passcut.core.app_exceptions import AnswerValidationError, NotFoundError, ScoringConfigError
from passcut.models.exam import AnswerKey, Track
from passcut.models.rescore import RescoreDetail, RescoreEvent
from passcut.models.submission import SubjectScore, Submission, UserAnswer
from passcut.rescoring.notifications import (
    list_unread_rescore_notifications,
    mark_rescore_notifications_read,
)
from passcut.rescoring.preview import preview_answer_key
from passcut.rescoring.service import commit_answer_key, manual_rescore, rescore_exam
from passcut.schemas.answer_key import ChangedQuestion
from tests.helpers.seed import (
    answer_rows,
    create_admin,
    create_answered_submission,
    create_scored_submission,
    key_answer,
    selected_with_correct,
    wrong_answer,
)

FLIP_QUESTION = 20
FLIPPED_ANSWER = wrong_answer(key_answer(FLIP_QUESTION))


@pytest.fixture
def submissions(db, exam, region, public_subjects, public_key):
    """perfect 250, constitution 10/20 = 225, constitution 19/20 = 247.5."""
    perfect = create_answered_submission(
        db, exam, region, Track.PUBLIC, selected_with_correct(public_subjects)
    )
    weak = create_answered_submission(
        db, exam, region, Track.PUBLIC, selected_with_correct(public_subjects, {"헌법": 10})
    )
    near = create_answered_submission(
        db, exam, region, Track.PUBLIC, selected_with_correct(public_subjects, {"헌법": 19})
    )
    return perfect, weak, near


@pytest.fixture
def flipped_rows(public_subjects):
    constitution = public_subjects[0]
    return answer_rows(public_subjects, {(constitution.id, FLIP_QUESTION): FLIPPED_ANSWER})


def stored_key(db, exam_id: int) -> dict[tuple[int, int], int]:
    rows = db.execute(select(AnswerKey).where(AnswerKey.exam_id == exam_id)).scalars().all()
    return {(row.subject_id, row.question_number): row.correct_answer for row in rows}


class TestPreview:
    """Preview counts impact and writes nothing."""

    def test_flip_preview(self, db, exam, public_subjects, submissions, flipped_rows):
        before = stored_key(db, exam.id)
        result = preview_answer_key(db, exam.id, Track.PUBLIC, True, flipped_rows)

        assert result.changed_questions == [
            ChangedQuestion(
                subject_name="헌법",
                question_number=FLIP_QUESTION,
                old_answer=key_answer(FLIP_QUESTION),
                new_answer=FLIPPED_ANSWER,
            )
        ]
        assert result.affected_submissions == 3
        assert result.score_changes.increased == 2
        assert result.score_changes.decreased == 1
        assert result.score_changes.unchanged == 0
        assert stored_key(db, exam.id) == before

    def test_identical_key_has_no_changes(self, db, exam, public_subjects, submissions):
        result = preview_answer_key(db, exam.id, Track.PUBLIC, True, answer_rows(public_subjects))
        assert result.changed_questions == []
        assert result.affected_submissions == 0
        assert result.status_changed_count == 0

    def test_confirmation_flip_counted(self, db, exam, public_subjects, submissions):
        result = preview_answer_key(db, exam.id, Track.PUBLIC, False, answer_rows(public_subjects))
        assert result.status_changed_count == 100

    def test_invalid_rows_rejected(self, db, exam, public_subjects, submissions):
        with pytest.raises(AnswerValidationError):
            preview_answer_key(db, exam.id, Track.PUBLIC, True, answer_rows(public_subjects)[:10])


class TestCommitAnswerKey:
    def test_flip_rescores_and_records_event(self, db, exam, public_subjects, submissions, flipped_rows):
        perfect, weak, near = submissions
        admin = create_admin(db)

        result = commit_answer_key(
            db, exam.id, Track.PUBLIC, True, flipped_rows, reason="정답 정정", admin_user_id=admin.id
        )

        assert result.saved_count == 100
        assert result.rescored_count == 3
        assert len(result.changed_questions) == 1
        assert result.score_changes.increased == 2
        assert result.score_changes.decreased == 1
        assert result.rescore_event_id is not None

        for submission in submissions:
            db.refresh(submission)
        assert perfect.final_score == 247.5
        assert weak.final_score == 227.5
        assert near.final_score == 250.0

        event = db.get(RescoreEvent, result.rescore_event_id)
        assert event.track == Track.PUBLIC.value
        assert event.reason == "정답 정정"
        assert event.created_by == admin.id
        assert event.summary[0]["question_number"] == FLIP_QUESTION

        details = {d.submission_id: d for d in event.details}
        assert set(details) == {perfect.id, weak.id, near.id}
        assert (details[perfect.id].old_rank, details[perfect.id].new_rank) == (1, 2)
        assert (details[near.id].old_rank, details[near.id].new_rank) == (2, 1)
        assert (details[weak.id].old_rank, details[weak.id].new_rank) == (3, 3)
        assert details[weak.id].score_delta == 2.5
        assert details[perfect.id].score_delta == -2.5

    def test_cached_correctness_and_subject_scores_updated(
        self, db, exam, public_subjects, submissions, flipped_rows
    ):
        _, _, near = submissions
        constitution = public_subjects[0]
        commit_answer_key(db, exam.id, Track.PUBLIC, True, flipped_rows)

        answer = db.execute(
            select(UserAnswer).where(
                UserAnswer.submission_id == near.id,
                UserAnswer.subject_id == constitution.id,
                UserAnswer.question_number == FLIP_QUESTION,
            )
        ).scalar_one()
        assert answer.is_correct is True

        score = db.execute(
            select(SubjectScore).where(
                SubjectScore.submission_id == near.id, SubjectScore.subject_id == constitution.id
            )
        ).scalar_one()
        assert score.raw_score == 50.0

    def test_single_gain_is_two_and_a_half_points(self, db, exam, region, public_subjects, public_key, flipped_rows):
        only = create_answered_submission(
            db, exam, region, Track.PUBLIC, selected_with_correct(public_subjects, {"헌법": 19})
        )
        result = commit_answer_key(db, exam.id, Track.PUBLIC, True, flipped_rows)

        db.refresh(only)
        assert only.final_score == 250.0
        assert result.score_changes.increased == 1
        assert result.score_changes.decreased == 0

    def test_second_identical_commit_is_a_no_op(self, db, exam, public_subjects, submissions, flipped_rows):
        commit_answer_key(db, exam.id, Track.PUBLIC, True, flipped_rows, reason="first")
        scores = {s.id: s.final_score for s in submissions}
        events = db.execute(select(func.count()).select_from(RescoreEvent)).scalar_one()

        result = commit_answer_key(db, exam.id, Track.PUBLIC, True, flipped_rows)

        assert result.changed_questions == []
        assert result.rescore_event_id is None
        assert result.score_changes.unchanged == 3
        for submission in submissions:
            db.refresh(submission)
            assert submission.final_score == scores[submission.id]
        assert db.execute(select(func.count()).select_from(RescoreEvent)).scalar_one() == events

    def test_rejected_batch_leaves_key_untouched(self, db, exam, public_subjects, submissions):
        before = stored_key(db, exam.id)
        rows = answer_rows(public_subjects)
        rows[3] = rows[3].model_copy(update={"answer": 9})

        with pytest.raises(AnswerValidationError):
            commit_answer_key(db, exam.id, Track.PUBLIC, True, rows)

        assert stored_key(db, exam.id) == before

    def test_unknown_exam(self, db, public_subjects):
        with pytest.raises(NotFoundError):
            commit_answer_key(db, 999, Track.PUBLIC, True, answer_rows(public_subjects))

    def test_no_reason_and_no_change_records_no_event(self, db, exam, public_subjects, submissions):
        result = commit_answer_key(db, exam.id, Track.PUBLIC, True, answer_rows(public_subjects))
        assert result.rescore_event_id is None

    def test_reason_without_change_records_empty_event(self, db, exam, public_subjects, submissions):
        result = commit_answer_key(
            db, exam.id, Track.PUBLIC, True, answer_rows(public_subjects), reason="confirm key"
        )
        event = db.get(RescoreEvent, result.rescore_event_id)
        assert event.summary == []
        assert event.details == []


class TestRescoreExam:
    def test_chunk_failure_keeps_committed_chunks(self, db, exam, region, public_subjects, public_key):
        constitution = public_subjects[0]
        perfect = selected_with_correct(public_subjects)
        first, second, third = (
            create_answered_submission(db, exam, region, Track.PUBLIC, perfect) for _ in range(3)
        )
        # CAREER subjects are not configured, so its chunk cannot be scored
        create_scored_submission(db, exam, region, [], 100.0, track=Track.CAREER, with_scores=False)

        key_row = db.execute(
            select(AnswerKey).where(
                AnswerKey.subject_id == constitution.id, AnswerKey.question_number == FLIP_QUESTION
            )
        ).scalar_one()
        key_row.correct_answer = FLIPPED_ANSWER
        db.commit()

        with pytest.raises(ScoringConfigError):
            rescore_exam(db, exam.id, batch_size=2)

        scores = {
            s.id: s.final_score
            for s in db.execute(select(Submission).where(Submission.track == Track.PUBLIC.value)).scalars()
        }
        assert scores[first.id] == 247.5
        assert scores[second.id] == 247.5
        assert scores[third.id] == 250.0

    def test_track_filter(self, db, exam, region, public_subjects, public_key):
        create_answered_submission(db, exam, region, Track.PUBLIC, selected_with_correct(public_subjects))
        create_scored_submission(db, exam, region, [], 100.0, track=Track.CAREER, with_scores=False)

        result = rescore_exam(db, exam.id, track=Track.PUBLIC)

        assert result.rescored_count == 1
        assert result.score_changes.unchanged == 1


class TestManualRescore:
    def test_reason_records_event_per_track(self, db, exam, submissions):
        result = manual_rescore(db, exam.id, reason="recheck")
        assert result["tracks"] == ["PUBLIC"]
        assert result["rescored_count"] == 3
        assert result["score_changes"] == {"increased": 0, "decreased": 0, "unchanged": 3}
        assert len(result["rescore_event_ids"]) == 1
        assert result["rescore_event_id"] == result["rescore_event_ids"][0]

    def test_without_reason_records_nothing(self, db, exam, submissions):
        result = manual_rescore(db, exam.id)
        assert result["rescore_event_ids"] == []
        assert db.execute(select(func.count()).select_from(RescoreEvent)).scalar_one() == 0

    def test_unknown_exam(self, db):
        with pytest.raises(NotFoundError):
            manual_rescore(db, 404)


class TestSuspiciousRefresh:
    @staticmethod
    def answered(db, exam, region, subjects, answers, reasons, is_suspicious):
        keys = sorted((s.id, n) for s in subjects for n in range(1, s.question_count + 1))
        submission = create_answered_submission(db, exam, region, Track.PUBLIC, dict(zip(keys, answers)))
        submission.suspicious_reasons = reasons
        submission.is_suspicious = is_suspicious
        db.commit()
        return submission

    def test_stale_flag_cleared(self, db, exam, region, public_subjects, public_key):
        natural = [(i * 7 + i // 3) % 4 + 1 for i in range(100)]
        submission = self.answered(
            db, exam, region, public_subjects, natural, ["single answer dominance: choice 1 selected 90%"], True
        )

        manual_rescore(db, exam.id)
        db.refresh(submission)

        assert submission.is_suspicious is False
        assert submission.suspicious_reasons is None

    def test_answer_pattern_flagged_and_timing_kept(self, db, exam, region, public_subjects, public_key):
        submission = self.answered(db, exam, region, public_subjects, [1] * 100, ["submitted in 45s"], False)

        manual_rescore(db, exam.id)
        db.refresh(submission)

        assert submission.is_suspicious is True
        assert submission.suspicious_reasons[0].startswith("single answer dominance")
        assert submission.suspicious_reasons[-1] == "submitted in 45s"


class TestNotifications:
    def test_unread_list_and_mark_read(self, db, exam, public_subjects, submissions, flipped_rows):
        perfect, _, _ = submissions
        commit_answer_key(db, exam.id, Track.PUBLIC, True, flipped_rows, reason="정답 정정")

        unread = list_unread_rescore_notifications(db, perfect.user_id)
        assert unread.unread_count == 1
        item = unread.items[0]
        assert item.old_final_score == 250.0
        assert item.new_final_score == 247.5
        assert item.score_delta == -2.5
        assert item.changed_questions[0].new_answer == FLIPPED_ANSWER

        assert mark_rescore_notifications_read(db, perfect.user_id, []) == 0
        assert mark_rescore_notifications_read(db, perfect.user_id, [item.id]) == 1
        assert list_unread_rescore_notifications(db, perfect.user_id).unread_count == 0

    def test_mark_all_only_touches_own_details(self, db, exam, public_subjects, submissions, flipped_rows):
        perfect, weak, _ = submissions
        commit_answer_key(db, exam.id, Track.PUBLIC, True, flipped_rows, reason="정답 정정")

        assert mark_rescore_notifications_read(db, perfect.user_id) == 1
        assert list_unread_rescore_notifications(db, weak.user_id).unread_count == 1
        remaining = db.execute(
            select(func.count()).select_from(RescoreDetail).where(RescoreDetail.is_read.is_(False))
        ).scalar_one()
        assert remaining == 2
