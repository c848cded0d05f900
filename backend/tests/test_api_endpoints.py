"""
API endpoint tests through the FastAPI test client.
"""

import pytest

from passcut.models.exam import Track
from passcut.models.site import SiteSetting
from passcut.release.config import KEY_ENABLED, KEY_MODE
from tests.helpers.seed import (
    create_admin,
    create_answered_submission,
    create_scored_submission,
    create_user,
    key_answer,
    selected_with_correct,
    wrong_answer,
)

SECRET_HEADER = {"x-auto-release-secret": "test-cron-secret"}


def key_rows_json(subjects, overrides=None):
    overrides = overrides or {}
    return [
        {
            "subjectId": s.id,
            "questionNumber": n,
            "answer": overrides.get((s.id, n), key_answer(n)),
        }
        for s in subjects
        for n in range(1, s.question_count + 1)
    ]


class TestHealth:
    def test_health(self, client):
        response = client.get("/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_ready(self, client):
        assert client.get("/v1/ready").json() == {"status": "ok", "database": "ok"}


class TestScores:
    def test_score_perfect_answers(self, client, exam, public_subjects, public_key):
        answers = [
            {"subjectName": s.name, "questionNo": n, "answer": key_answer(n)}
            for s in public_subjects
            for n in range(1, s.question_count + 1)
        ]
        response = client.post(
            "/v1/scores",
            json={"examId": exam.id, "track": "PUBLIC", "answers": answers, "bonusType": "VETERAN_5"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_score"] == 250.0
        assert data["bonus_score"] == 12.5
        assert data["final_score"] == 262.5
        assert data["has_cutoff"] is False
        assert len(data["subjects"]) == 3

    def test_bonus_from_percent(self, client, exam, public_subjects, public_key):
        answers = [
            {"subjectName": s.name, "questionNo": n, "answer": key_answer(n)}
            for s in public_subjects
            for n in range(1, s.question_count + 1)
        ]
        response = client.post(
            "/v1/scores",
            json={"examId": exam.id, "track": "PUBLIC", "answers": answers, "heroPercent": 3},
        )
        assert response.status_code == 200
        assert response.json()["bonus_score"] == 7.5

        response = client.post(
            "/v1/scores",
            json={"examId": exam.id, "track": "PUBLIC", "answers": answers, "veteranPercent": 5, "heroPercent": 3},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "ANSWER_VALIDATION_ERROR"

    def test_unknown_subject(self, client, exam, public_subjects, public_key):
        response = client.post(
            "/v1/scores",
            json={
                "examId": exam.id,
                "track": "PUBLIC",
                "answers": [{"subjectName": "영어", "questionNo": 1, "answer": 1}],
            },
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "ANSWER_VALIDATION_ERROR"

    def test_missing_key_is_config_error(self, client, exam, public_subjects):
        response = client.post("/v1/scores", json={"examId": exam.id, "track": "PUBLIC", "answers": []})
        assert response.status_code == 500
        assert response.json()["error_code"] == "SCORING_CONFIG_ERROR"

    def test_request_validation(self, client):
        response = client.post("/v1/scores", json={"track": "NAVY"})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestAdminAnswers:
    @pytest.fixture
    def near(self, db, exam, region, public_subjects, public_key):
        return create_answered_submission(
            db, exam, region, Track.PUBLIC, selected_with_correct(public_subjects, {"헌법": 19})
        )

    def flipped(self, public_subjects):
        constitution = public_subjects[0]
        return key_rows_json(public_subjects, {(constitution.id, 20): wrong_answer(key_answer(20))})

    def test_preview(self, client, exam, public_subjects, near):
        response = client.post(
            "/v1/admin/answers/preview",
            json={"examId": exam.id, "track": "PUBLIC", "isConfirmed": True, "rows": self.flipped(public_subjects)},
        )
        assert response.status_code == 200
        data = response.json()
        assert len(data["changed_questions"]) == 1
        assert data["score_changes"] == {"increased": 1, "decreased": 0, "unchanged": 0}

    def test_commit(self, client, db, exam, public_subjects, near):
        response = client.post(
            "/v1/admin/answers",
            json={
                "examId": exam.id,
                "track": "PUBLIC",
                "isConfirmed": True,
                "answers": self.flipped(public_subjects),
                "reason": "  정답 정정  ",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["saved_count"] == 100
        assert data["rescored_count"] == 1
        assert data["rescore_event_id"] is not None

        db.refresh(near)
        assert near.final_score == 250.0

    def test_commit_rejects_incomplete_rows(self, client, exam, public_subjects, near):
        response = client.post(
            "/v1/admin/answers",
            json={"examId": exam.id, "track": "PUBLIC", "rows": key_rows_json(public_subjects)[:50]},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Answer rows incomplete"

    def test_manual_rescore(self, client, exam, near):
        response = client.post("/v1/admin/rescore", json={"examId": exam.id})
        assert response.status_code == 200
        data = response.json()
        assert data["rescored_count"] == 1
        assert data["message"] == "Rescored 1 submissions"

    def test_manual_rescore_unknown_exam(self, client):
        response = client.post("/v1/admin/rescore", json={"examId": 999})
        assert response.status_code == 404


class TestResults:
    def test_result_and_prediction(self, client, db, exam, region, public_subjects):
        submissions = [create_scored_submission(db, exam, region, public_subjects, s) for s in (230.0, 210.0)]

        result = client.get(f"/v1/results/{submissions[1].id}")
        assert result.status_code == 200
        assert result.json()["overall"]["rank"] == 2

        prediction = client.get(f"/v1/predictions/{submissions[1].id}", params={"limit": 1, "page": 2})
        assert prediction.status_code == 200
        data = prediction.json()
        assert data["my_rank"] == 2
        assert data["grade"] == "sure"
        assert data["competitors"]["items"][0]["is_mine"] is True

    def test_unknown_submission(self, client):
        response = client.get("/v1/results/9999")
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    def test_prediction_for_cutoff_submission(self, client, db, exam, region, public_subjects):
        failed = create_scored_submission(db, exam, region, public_subjects, 120.0, failed=True)
        response = client.get(f"/v1/predictions/{failed.id}")
        assert response.status_code == 400
        assert response.json()["error_code"] == "PREDICTION_UNAVAILABLE"

    def test_final_prediction_round_trip(self, client, db, exam, region, public_subjects):
        submission = create_scored_submission(db, exam, region, public_subjects, 210.0)
        assert client.get(f"/v1/final-predictions/{submission.id}").status_code == 404

        response = client.put(
            f"/v1/final-predictions/{submission.id}",
            json={"fitnessPassed": True, "martialDanLevel": 2, "additionalBonusPoint": 2, "interviewGrade": "PASS"},
        )
        assert response.status_code == 200
        assert response.json()["final_score"] == 213.0
        assert response.json()["final_rank"] == 1

        data = client.get(f"/v1/final-predictions/{submission.id}").json()
        assert data["final_score"] == 213.0
        assert data["total_participants"] == 1

    def test_final_prediction_rejects_unknown_grade(self, client, db, exam, region, public_subjects):
        submission = create_scored_submission(db, exam, region, public_subjects, 210.0)
        response = client.put(
            f"/v1/final-predictions/{submission.id}", json={"fitnessPassed": True, "interviewGrade": "MAYBE"}
        )
        assert response.status_code == 422


class TestNotifications:
    def test_list_and_mark_read(self, client, exam, public_subjects):
        response = client.get("/v1/notifications/rescore", params={"user_id": 1})
        assert response.status_code == 200
        assert response.json() == {"unread_count": 0, "items": []}

        response = client.post("/v1/notifications/rescore/read", json={"userId": 1})
        assert response.json() == {"updated_count": 0}

    def test_user_id_required(self, client):
        assert client.get("/v1/notifications/rescore").status_code == 422


class TestInternalAutoRelease:
    def test_missing_secret(self, client):
        response = client.post("/v1/internal/pass-cut-auto-release", json={})
        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"

    def test_wrong_secret(self, client):
        response = client.post(
            "/v1/internal/pass-cut-auto-release", json={}, headers={"x-auto-release-secret": "nope"}
        )
        assert response.status_code == 403

    def test_header_secret(self, client, exam):
        response = client.post("/v1/internal/pass-cut-auto-release", json={}, headers=SECRET_HEADER)
        assert response.status_code == 200
        assert response.json()["reason"] == "disabled"

    def test_bearer_secret(self, client, exam):
        response = client.post(
            "/v1/internal/pass-cut-auto-release",
            json={"exam_id": exam.id, "force": True},
            headers={"Authorization": "Bearer test-cron-secret"},
        )
        assert response.status_code == 200
        assert response.json()["triggered"] is False

    @pytest.mark.parametrize("trigger,reason", [("traffic", "threshold-not-reached"), ("cron", "mode-blocked")])
    def test_trigger_passed_through(self, client, db, exam, region, trigger, reason):
        db.add_all([SiteSetting(key=KEY_ENABLED, value=True), SiteSetting(key=KEY_MODE, value="TRAFFIC_ONLY")])
        db.commit()

        response = client.post(
            "/v1/internal/pass-cut-auto-release",
            json={"examId": exam.id, "trigger": trigger},
            headers=SECRET_HEADER,
        )

        assert response.status_code == 200
        assert response.json()["reason"] == reason

    def test_unknown_trigger(self, client, exam):
        response = client.post(
            "/v1/internal/pass-cut-auto-release", json={"trigger": "manual"}, headers=SECRET_HEADER
        )
        assert response.status_code == 422


class TestPassCutReleases:
    @pytest.fixture
    def seeded(self, db, exam, region, public_subjects):
        for i in range(20):
            create_scored_submission(db, exam, region, public_subjects, 250.0 - i * 2.5)
        return region

    def test_admin_release_then_history(self, client, db, exam, seeded):
        admin = create_admin(db)

        response = client.post(
            "/v1/admin/pass-cut-releases",
            json={"examId": exam.id, "releaseNumber": 1, "adminUserId": admin.id, "memo": " first "},
        )
        assert response.status_code == 201
        assert response.json()["snapshot_count"] == 1
        assert response.json()["participant_count"] == 20

        history = client.get("/v1/pass-cut-history", params={"region_id": seeded.id, "track": "PUBLIC"})
        assert history.status_code == 200
        data = history.json()
        assert data["exam_id"] == exam.id
        assert [r["release_number"] for r in data["releases"]] == [1]
        assert data["releases"][0]["snapshot"]["one_multiple_cut_score"] == 227.5
        assert data["current"]["participant_count"] == 20

    def test_duplicate_release(self, client, db, exam, seeded):
        admin = create_admin(db)
        body = {"examId": exam.id, "releaseNumber": 3, "adminUserId": admin.id, "autoNotice": False}
        assert client.post("/v1/admin/pass-cut-releases", json=body).status_code == 201

        response = client.post("/v1/admin/pass-cut-releases", json=body)
        assert response.status_code == 409
        assert response.json()["error_code"] == "RELEASE_DUPLICATED"

    def test_non_admin_forbidden(self, client, db, exam):
        user = create_user(db)
        response = client.post(
            "/v1/admin/pass-cut-releases",
            json={"examId": exam.id, "releaseNumber": 1, "adminUserId": user.id},
        )
        assert response.status_code == 403
        assert response.json()["error_code"] == "RELEASE_INVALID"

    def test_release_number_out_of_range(self, client, db, exam):
        admin = create_admin(db)
        response = client.post(
            "/v1/admin/pass-cut-releases",
            json={"examId": exam.id, "releaseNumber": 5, "adminUserId": admin.id},
        )
        assert response.status_code == 422

    def test_history_requires_region_and_track(self, client):
        assert client.get("/v1/pass-cut-history", params={"track": "PUBLIC"}).status_code == 422
        assert client.get("/v1/pass-cut-history", params={"region_id": 1, "track": "NAVY"}).status_code == 422
