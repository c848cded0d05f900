"""
Tests for the known final score and rank after fitness and interview.
"""

import pytest

from passcut.core.app_exceptions import NotFoundError
from passcut.models.submission import BonusType, FinalPrediction
from passcut.ranking.final_rank import (
    FinalRankRow,
    calculate_known_final_score,
    get_final_prediction_summary,
    martial_bonus_point,
    rank_final_rows,
    save_final_prediction,
)
from tests.helpers.seed import create_scored_submission


@pytest.mark.parametrize("dan,points", [(None, 0), (1, 0), (2, 1), (3, 1), (4, 2), (6, 2)])
def test_martial_bonus_point(dan, points):
    assert martial_bonus_point(dan) == points


def test_known_final_score_adds_bonuses():
    known = calculate_known_final_score(200.0, True, 4, 1.5)
    assert known.martial_bonus_point == 2
    assert known.known_bonus_point == 3.5
    assert known.known_final_score == 203.5


def test_failed_fitness_has_no_final_score():
    assert calculate_known_final_score(200.0, False, 4, 1.5).known_final_score is None


def test_negative_additional_bonus_ignored():
    assert calculate_known_final_score(200.0, True, None, -3.0).known_final_score == 200.0


def test_rank_tie_break_order():
    rows = [
        FinalRankRow(1, 210.0, False, 205.0, 5.0),
        FinalRankRow(2, 210.0, True, 200.0, 10.0),
        FinalRankRow(3, 210.0, False, 207.0, 3.0),
        FinalRankRow(4, 215.0, False, 200.0, 15.0),
        FinalRankRow(5, 210.0, False, 205.0, 5.0),
    ]
    assert rank_final_rows(rows) == {4: 1, 2: 2, 3: 3, 1: 4, 5: 5}


class TestFinalPredictionSummary:
    def test_rank_among_interview_passed(self, db, exam, region, public_subjects):
        first = create_scored_submission(db, exam, region, public_subjects, 220.0)
        second = create_scored_submission(db, exam, region, public_subjects, 215.0)
        failed_interview = create_scored_submission(db, exam, region, public_subjects, 240.0)
        second.bonus_type = BonusType.VETERAN_5.value
        for submission, final, grade in (
            (first, 221.0, "PASS"),
            (second, 221.0, "PASS"),
            (failed_interview, 241.0, "FAIL"),
        ):
            db.add(
                FinalPrediction(
                    submission_id=submission.id,
                    user_id=submission.user_id,
                    fitness_score=1.0,
                    interview_score=0.0,
                    interview_grade=grade,
                    final_score=final,
                )
            )
        db.commit()

        summary = get_final_prediction_summary(db, first.id)
        assert summary["total_participants"] == 2
        # veteran preference wins the tie
        assert summary["final_rank"] == 2
        assert get_final_prediction_summary(db, second.id)["final_rank"] == 1

    def test_missing_prediction(self, db, exam, region, public_subjects):
        submission = create_scored_submission(db, exam, region, public_subjects, 200.0)
        with pytest.raises(NotFoundError):
            get_final_prediction_summary(db, submission.id)


class TestSaveFinalPrediction:
    def test_stores_known_score_and_rank(self, db, exam, region, public_subjects):
        leader = create_scored_submission(db, exam, region, public_subjects, 230.0)
        mine = create_scored_submission(db, exam, region, public_subjects, 220.0)
        save_final_prediction(db, leader.id, fitness_passed=True, martial_dan_level=2, interview_grade="PASS")

        summary = save_final_prediction(
            db, mine.id, fitness_passed=True, martial_dan_level=4, additional_bonus_point=1.5, interview_grade="PASS"
        )

        assert summary["final_score"] == 223.5
        assert summary["martial_bonus_point"] == 2.0
        assert summary["additional_bonus_point"] == 1.5
        assert summary["final_rank"] == 2
        assert summary["total_participants"] == 2
        stored = db.query(FinalPrediction).filter_by(submission_id=mine.id).one()
        assert stored.final_rank == 2

    def test_update_replaces_inputs(self, db, exam, region, public_subjects):
        submission = create_scored_submission(db, exam, region, public_subjects, 220.0)
        save_final_prediction(db, submission.id, fitness_passed=True, martial_dan_level=4, interview_grade="PASS")

        summary = save_final_prediction(db, submission.id, fitness_passed=False, interview_grade="PASS")

        assert summary["final_score"] is None
        assert summary["final_rank"] is None
        assert summary["total_participants"] == 0
        assert db.query(FinalPrediction).filter_by(submission_id=submission.id).count() == 1

    def test_unknown_submission(self, db):
        with pytest.raises(NotFoundError):
            save_final_prediction(db, 999, fitness_passed=True)
