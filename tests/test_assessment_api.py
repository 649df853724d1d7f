# tests/test_assessment_api.py
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def default_assessment(client: TestClient, admin_headers):
    response = client.post("/api/assessments/init", headers=admin_headers)
    assert response.status_code == 200, response.text
    return response.json()


def answer_key(assessment_doc):
    return {q["id"]: q["correct_answer"] for q in assessment_doc["questions"]}


@pytest.fixture
def stored_assessment(mongo, default_assessment):
    """The stored document, correct answers included."""
    from ojt_platform.services.mongo_service import AssessmentService
    return AssessmentService().get(default_assessment["assessment_id"])


def started_at():
    return (datetime.now(timezone.utc) - timedelta(minutes=12)).isoformat()


class TestAdmin:
    def test_init_is_idempotent(self, client: TestClient, admin_headers, default_assessment):
        again = client.post("/api/assessments/init", headers=admin_headers).json()
        assert again["assessment_id"] == default_assessment["assessment_id"]
        assert default_assessment["total_points"] == 6
        assert len(default_assessment["questions"]) == 5

    def test_students_cannot_create(self, client: TestClient, student_headers):
        assert client.post("/api/assessments/init", headers=student_headers).status_code == 403

    def test_create_with_explicit_ids(self, client: TestClient, admin_headers):
        payload = {
            "title": "Networking Basics",
            "time_limit": 10,
            "category": "networking",
            "questions": [
                {"id": "n1", "question": "Port for HTTPS?", "type": "short-answer",
                 "correct_answer": "443", "category": "networking"},
                {"question": "TCP is connection-oriented", "type": "true-false",
                 "options": ["True", "False"], "correct_answer": "True", "category": "networking"},
            ],
        }
        response = client.post("/api/assessments", headers=admin_headers, json=payload)
        assert response.status_code == 201
        ids = [q["id"] for q in response.json()["questions"]]
        assert ids[0] == "n1" and ids[1]

        payload["questions"][1]["id"] = "n1"
        assert client.post("/api/assessments", headers=admin_headers, json=payload).status_code == 400


class TestTakeAssessment:
    def test_correct_answers_hidden(self, client: TestClient, student_headers, default_assessment):
        listing = client.get("/api/assessments", headers=student_headers).json()
        assert listing["count"] == 1
        question = listing["data"][0]["questions"][0]
        assert "correct_answer" not in question

    def test_submit_full_bank(self, client: TestClient, student_headers, default_assessment, stored_assessment):
        key = answer_key(stored_assessment)
        by_category = {q["category"]: q["id"] for q in stored_assessment["questions"]}
        answers = [{"question_id": qid, "answer": ans.lower()} for qid, ans in key.items()]
        # Miss the 2-point problem solving question
        answers = [a for a in answers if a["question_id"] != by_category["problemSolving"]]

        response = client.post(
            f"/api/assessments/{default_assessment['assessment_id']}/submit",
            headers=student_headers,
            json={"answers": answers, "started_at": started_at()},
        )
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["score"] == 4
        assert data["total_possible"] == 6
        assert data["percentage"] == 67
        assert data["passed"] is True
        assert data["category_scores"] == {
            "webDevelopment": 100, "database": 100, "networking": 100,
            "problemSolving": 0, "programming": 100,
        }

        profile = client.get("/api/students/profile", headers=student_headers).json()
        assert profile["assessment_completed"] is True
        assert profile["assessment_score"]["overall"] == 67
        verified = {s["name"]: s["level"] for s in profile["skills"] if s["verified"]}
        assert verified["database"] == "Expert"
        assert verified["problemSolving"] == "Beginner"
        # Self-reported skills survive
        assert {"Python", "SQL"} <= {s["name"] for s in profile["skills"]}

        result = client.get(f"/api/assessments/results/{data['result_id']}", headers=student_headers).json()
        assert result["time_spent"] == 12
        reviewed = {a["question_id"]: a for a in result["answers"]}
        missed = reviewed[by_category["problemSolving"]]
        assert missed["is_correct"] is False
        assert missed["correct_answer"] == "O(log n)"
        assert missed["question"].startswith("What is the time complexity")

    def test_orphan_answer_warns(self, client: TestClient, student_headers, default_assessment):
        response = client.post(
            f"/api/assessments/{default_assessment['assessment_id']}/submit",
            headers=student_headers,
            json={"answers": [{"question_id": "ghost", "answer": "x"}, None], "started_at": started_at()},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["percentage"] == 0
        assert data["passed"] is False
        assert len(data["warnings"]) == 1

    def test_answer_without_id_is_rejected(self, client: TestClient, student_headers, default_assessment):
        response = client.post(
            f"/api/assessments/{default_assessment['assessment_id']}/submit",
            headers=student_headers,
            json={"answers": [{"answer": "React"}], "started_at": started_at()},
        )
        assert response.status_code == 400
        assert response.json()["type"] == "InvalidInput"

    def test_unknown_assessment(self, client: TestClient, student_headers):
        response = client.post(
            "/api/assessments/64b000000000000000000000/submit",
            headers=student_headers,
            json={"answers": [], "started_at": started_at()},
        )
        assert response.status_code == 404

    def test_results_are_private(self, client: TestClient, make_user, student_headers, default_assessment):
        submitted = client.post(
            f"/api/assessments/{default_assessment['assessment_id']}/submit",
            headers=student_headers,
            json={"answers": [], "started_at": started_at()},
        ).json()

        other = make_user("peeker@example.com", "student")
        response = client.get(f"/api/assessments/results/{submitted['result_id']}", headers=other)
        assert response.status_code == 403

        mine = client.get("/api/assessments/results/me", headers=student_headers).json()
        assert [r["result_id"] for r in mine] == [submitted["result_id"]]
        assert mine[0]["assessment_title"] == "IT Skills Assessment"


class TestAttempts:
    def test_attempt_flow(self, client: TestClient, student_headers, default_assessment, stored_assessment):
        assessment_id = default_assessment["assessment_id"]
        response = client.post(
            f"/api/assessments/{assessment_id}/attempts", headers=student_headers, json={"category": "database"}
        )
        assert response.status_code == 201
        attempt = response.json()
        assert [q["category"] for q in attempt["questions"]] == ["database"]

        question_id = attempt["questions"][0]["id"]
        response = client.put(
            f"/api/assessments/attempts/{attempt['attempt_id']}",
            headers=student_headers,
            json={"question_id": question_id, "answer": "Structured Query Language", "current_index": 0},
        )
        assert response.status_code == 200
        assert response.json()["answers"] == {question_id: "Structured Query Language"}

        current = client.get("/api/assessments/attempts/current", headers=student_headers).json()
        assert current["attempt_id"] == attempt["attempt_id"]

        # Graded against the drawn subset, using the answers saved on the attempt
        response = client.post(
            f"/api/assessments/{assessment_id}/submit",
            headers=student_headers,
            json={"answers": [], "started_at": started_at(), "attempt_id": attempt["attempt_id"]},
        )
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["total_possible"] == 1
        assert data["percentage"] == 100
        assert data["category_scores"] == {"database": 100}

        assert client.get("/api/assessments/attempts/current", headers=student_headers).status_code == 404
        again = client.post(
            f"/api/assessments/{assessment_id}/submit",
            headers=student_headers,
            json={"answers": [], "started_at": started_at(), "attempt_id": attempt["attempt_id"]},
        )
        assert again.status_code == 400

    def test_rejected_submission_keeps_attempt_open(self, client: TestClient, student_headers, default_assessment):
        assessment_id = default_assessment["assessment_id"]
        attempt = client.post(
            f"/api/assessments/{assessment_id}/attempts", headers=student_headers, json={}
        ).json()

        response = client.post(
            f"/api/assessments/{assessment_id}/submit",
            headers=student_headers,
            json={"answers": [{"answer": "x"}], "started_at": started_at(), "attempt_id": attempt["attempt_id"]},
        )
        assert response.status_code == 400

        current = client.get("/api/assessments/attempts/current", headers=student_headers)
        assert current.status_code == 200
        assert current.json()["attempt_id"] == attempt["attempt_id"]

    def test_attempt_of_other_assessment(self, client: TestClient, admin_headers, student_headers, default_assessment):
        other = client.post("/api/assessments", headers=admin_headers, json={
            "title": "Quick Quiz", "time_limit": 5, "category": "database",
            "questions": [{"question": "SQL?", "type": "short-answer", "correct_answer": "yes", "category": "database"}],
        }).json()
        attempt = client.post(
            f"/api/assessments/{default_assessment['assessment_id']}/attempts", headers=student_headers, json={}
        ).json()

        response = client.post(
            f"/api/assessments/{other['assessment_id']}/submit",
            headers=student_headers,
            json={"answers": [], "started_at": started_at(), "attempt_id": attempt["attempt_id"]},
        )
        assert response.status_code == 400
        assert client.get("/api/assessments/attempts/current", headers=student_headers).status_code == 200

    def test_answer_for_question_not_drawn(self, client: TestClient, student_headers, default_assessment):
        attempt = client.post(
            f"/api/assessments/{default_assessment['assessment_id']}/attempts",
            headers=student_headers, json={"category": "networking"},
        ).json()
        response = client.put(
            f"/api/assessments/attempts/{attempt['attempt_id']}",
            headers=student_headers, json={"question_id": "elsewhere", "answer": "x"},
        )
        assert response.status_code == 400


def test_stats(client: TestClient, student_headers, default_assessment, stored_assessment):
    key = answer_key(stored_assessment)
    client.post(
        f"/api/assessments/{default_assessment['assessment_id']}/submit",
        headers=student_headers,
        json={"answers": [{"question_id": q, "answer": a} for q, a in key.items()], "started_at": started_at()},
    )

    data = client.get("/api/assessments/stats").json()
    assert data["total_assessments_taken"] == 1
    assert data["unique_students"] == 1
    assert data["total_skills_assessed"] == 5
    assert data["passing_rate"] == 100.0
    assert data["average_score"] == 100.0
