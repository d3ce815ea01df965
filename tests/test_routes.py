from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session as DbSession

from conftest import QUESTIONS, USER_ID
from learnhub.models.db.attempt import Attempt
from learnhub.services.assignment_service import assign_test, create_test


def start(client: TestClient, headers: dict[str, str], assignment_id: str = "asg-1"):
    return client.post(f"/api/assignments/{assignment_id}/attempts", headers=headers)


def test_health(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


class TestAssignments:
    def test_get_assignment(self, client, auth_headers, assigned_test) -> None:
        response = client.get("/api/assignments/asg-1", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["userId"] == USER_ID
        assert data["maxAttempts"] == 1
        assert data["test"]["durationMinutes"] == 1
        assert data["test"]["questionsCount"] == 3
        assert [q["id"] for q in data["test"]["questions"]] == ["q1", "q2", "q3"]
        assert data["test"]["questions"][0]["correctOptionIndex"] == 1
        assert data["test"]["questions"][1]["correctAnswer"] == [1, 2]

    def test_missing_caller_is_unauthorized(self, client, assigned_test) -> None:
        assert client.get("/api/assignments/asg-1").status_code == 401

    def test_other_users_assignment_is_forbidden(self, client, assigned_test) -> None:
        response = client.get("/api/assignments/asg-1", headers={"X-User-Id": "someone-else"})
        assert response.status_code == 403

    def test_unknown_assignment(self, client, auth_headers, assigned_test) -> None:
        assert client.get("/api/assignments/nope", headers=auth_headers).status_code == 404


class TestAttempts:
    def test_start_then_resume_same_attempt(self, client, auth_headers, assigned_test) -> None:
        first = start(client, auth_headers)
        assert first.status_code == 200
        assert first.json()["status"] == "started"
        assert first.json()["attemptNumber"] == 1

        again = start(client, auth_headers)
        assert again.json()["id"] == first.json()["id"]
        assert again.json()["status"] == "in_progress"

    def test_sync_upserts_answers(self, client, auth_headers, assigned_test) -> None:
        attempt_id = start(client, auth_headers).json()["id"]
        url = f"/api/attempts/{attempt_id}/sync"

        payload = {"questionId": "q1", "answers": {"q1": 0}, "currentPage": 0}
        assert client.post(url, json=payload, headers=auth_headers).status_code == 204
        assert client.post(url, json=payload, headers=auth_headers).status_code == 204
        payload = {"answers": {"q1": 1, "q2": [1]}, "currentPage": 1}
        assert client.post(url, json=payload, headers=auth_headers).status_code == 204

        resumed = start(client, auth_headers).json()
        assert resumed["answers"] == {"q1": 1, "q2": [1]}

    def test_complete_recomputes_score(self, client, auth_headers, assigned_test) -> None:
        attempt_id = start(client, auth_headers).json()["id"]
        response = client.post(
            f"/api/attempts/{attempt_id}/complete",
            json={"score": 99, "answers": {"q1": 1, "q2": [1], "q3": "because"}},
            headers=auth_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["score"] == 1
        assert data["passed"] is False
        assert data["completedAt"] is not None

        repeat = client.post(
            f"/api/attempts/{attempt_id}/complete",
            json={"score": 3, "answers": {"q2": [1, 2]}},
            headers=auth_headers,
        )
        assert repeat.json() == data

    def test_attempts_exhausted(self, client, auth_headers, assigned_test) -> None:
        attempt_id = start(client, auth_headers).json()["id"]
        client.post(
            f"/api/attempts/{attempt_id}/complete",
            json={"score": 0, "answers": {}},
            headers=auth_headers,
        )
        assert start(client, auth_headers).status_code == 409

    def test_sync_after_completion_is_ignored(self, client, auth_headers, assigned_test) -> None:
        attempt_id = start(client, auth_headers).json()["id"]
        client.post(
            f"/api/attempts/{attempt_id}/complete",
            json={"score": 1, "answers": {"q1": 1}},
            headers=auth_headers,
        )
        response = client.post(
            f"/api/attempts/{attempt_id}/sync",
            json={"answers": {"q1": 0}},
            headers=auth_headers,
        )
        assert response.status_code == 204
        repeat = client.post(
            f"/api/attempts/{attempt_id}/complete",
            json={"score": 0, "answers": {}},
            headers=auth_headers,
        )
        assert repeat.json()["answers"] == {"q1": 1}

    def test_interrupted_attempt_resumes(self, client, auth_headers, assigned_test) -> None:
        attempt_id = start(client, auth_headers).json()["id"]
        client.post(
            f"/api/attempts/{attempt_id}/sync",
            json={"answers": {"q1": 1}, "status": "interrupted"},
            headers=auth_headers,
        )
        resumed = start(client, auth_headers).json()
        assert resumed["id"] == attempt_id
        assert resumed["status"] == "in_progress"
        assert resumed["answers"] == {"q1": 1}

    def test_expired_attempt_cannot_complete(self, client, auth_headers, assigned_test) -> None:
        attempt_id = start(client, auth_headers).json()["id"]
        client.post(
            f"/api/attempts/{attempt_id}/sync",
            json={"answers": {}, "status": "expired"},
            headers=auth_headers,
        )
        response = client.post(
            f"/api/attempts/{attempt_id}/complete",
            json={"score": 0, "answers": {}},
            headers=auth_headers,
        )
        assert response.status_code == 409

    def test_out_of_time_attempt_expires_on_start(
        self, client, auth_headers, db_session: DbSession
    ) -> None:
        test = create_test(db_session, "Timed", QUESTIONS, duration_minutes=1)
        assign_test(db_session, USER_ID, test.id, max_attempts=2, assignment_id="asg-2")
        attempt_id = start(client, auth_headers, "asg-2").json()["id"]

        attempt = db_session.get(Attempt, attempt_id)
        attempt.started_at = datetime.now(timezone.utc) - timedelta(minutes=2)
        db_session.commit()

        second = start(client, auth_headers, "asg-2").json()
        assert second["id"] != attempt_id
        assert second["attemptNumber"] == 2

        db_session.expire_all()
        assert db_session.get(Attempt, attempt_id).status == "expired"

    def test_attempt_of_other_user(self, client, auth_headers, assigned_test) -> None:
        attempt_id = start(client, auth_headers).json()["id"]
        response = client.post(
            f"/api/attempts/{attempt_id}/sync",
            json={"answers": {"q1": 1}},
            headers={"X-User-Id": "someone-else"},
        )
        assert response.status_code == 403


class TestProgress:
    def test_initial_progress(self, client, auth_headers, assigned_course) -> None:
        data = client.get("/api/progress/asg-course", headers=auth_headers).json()
        assert data["totalItems"] == 3
        assert data["completedItems"] == 0
        assert data["overallPercentage"] == 0
        assert data["canComplete"] is False
        assert [item["chapterId"] for item in data["items"]] == ["ch-1", "ch-2", "ch-3"]

    def test_update_accumulates_time(self, client, auth_headers, assigned_course) -> None:
        payload = {"chapterId": "ch-1", "currentPage": 3, "timeSpentSeconds": 30}
        client.post("/api/progress/asg-course", json=payload, headers=auth_headers)
        payload = {
            "chapterId": "ch-1",
            "currentPage": 4,
            "timeSpentSeconds": 30,
            "answers": [{"questionId": "q1", "answer": 2}],
        }
        response = client.post("/api/progress/asg-course", json=payload, headers=auth_headers)
        assert response.json() == {
            "success": True,
            "chapterId": "ch-1",
            "currentPage": 4,
            "isCompleted": False,
        }

        item = client.get("/api/progress/asg-course", headers=auth_headers).json()["items"][0]
        assert item["timeSpentSeconds"] == 60
        assert item["answers"] == [{"questionId": "q1", "answer": 2}]

    def test_complete_chapters(self, client, auth_headers, assigned_course) -> None:
        url = "/api/progress/asg-course/chapters/{}/complete"
        data = client.post(url.format("ch-1"), headers=auth_headers).json()
        assert data["completedItems"] == 1
        assert data["overallPercentage"] == 33

        client.post(url.format("ch-2"), headers=auth_headers)
        data = client.post(url.format("ch-3"), headers=auth_headers).json()
        assert data["overallPercentage"] == 100
        assert data["canComplete"] is True

    def test_unknown_chapter(self, client, auth_headers, assigned_course) -> None:
        response = client.post(
            "/api/progress/asg-course/chapters/ch-9/complete", headers=auth_headers
        )
        assert response.status_code == 404
