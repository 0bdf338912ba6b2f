"""
Review and lesson progress integration tests.

Verifies:
- Only enrolled students can review, once per course
- Reviews stay hidden until an admin approves them
- Progress tracking and auto-completion for enrolled students
"""
from fastapi.testclient import TestClient

from tests.conftest import enroll, login, login_as


class TestReviews:

    def test_requires_enrollment(self, authenticated_client: TestClient, catalog: dict):
        response = authenticated_client.post("/api/reviews", json={"courseId": catalog["course"], "rating": 5})
        assert response.status_code == 403

    def test_requires_login(self, client: TestClient, catalog: dict):
        client.headers["X-CSRF-Token"] = client.get("/api/auth/csrf-token").json()["csrfToken"]
        response = client.post("/api/reviews", json={"courseId": catalog["course"], "rating": 5})
        assert response.status_code == 401

    def test_submit_approve_and_list(self, client: TestClient, catalog: dict, test_user: dict, admin_user: dict):
        enroll(test_user["id"], catalog["course"])
        login(client, test_user["email"], test_user["password"])

        response = client.post("/api/reviews", json={
            "courseId": catalog["course"],
            "rating": 4,
            "comment": "Calm and clear",
        })
        assert response.status_code == 201
        review = response.json()["review"]
        assert review["isApproved"] is False

        listing = client.get(f"/api/courses/{catalog['course']}/reviews").json()
        assert listing["reviews"] == []
        assert listing["totalReviews"] == 0

        with login_as(client, admin_user["email"], admin_user["password"]):
            approved = client.post(f"/api/admin/reviews/{review['id']}/approve")
            assert approved.status_code == 200
            assert approved.json()["review"]["isApproved"] is True

        listing = client.get(f"/api/courses/{catalog['course']}/reviews").json()
        assert listing["totalReviews"] == 1
        assert listing["averageRating"] == 4
        assert listing["reviews"][0]["userName"] == test_user["name"]

    def test_one_review_per_course(self, client: TestClient, catalog: dict, test_user: dict):
        enroll(test_user["id"], catalog["course"])
        login(client, test_user["email"], test_user["password"])

        client.post("/api/reviews", json={"courseId": catalog["course"], "rating": 5})
        second = client.post("/api/reviews", json={"courseId": catalog["course"], "rating": 3})

        assert second.status_code == 409

    def test_invalid_rating(self, client: TestClient, catalog: dict, test_user: dict):
        enroll(test_user["id"], catalog["course"])
        login(client, test_user["email"], test_user["password"])

        for rating in (0, 6, 4.5, "five"):
            response = client.post("/api/reviews", json={"courseId": catalog["course"], "rating": rating})
            assert response.status_code == 400

    def test_unknown_course_reviews(self, client: TestClient, fresh_database):
        assert client.get("/api/courses/999/reviews").status_code == 404

    def test_approve_requires_admin(self, authenticated_client: TestClient):
        assert authenticated_client.post("/api/admin/reviews/1/approve").status_code == 403


class TestProgress:

    def test_not_enrolled(self, authenticated_client: TestClient, catalog: dict):
        response = authenticated_client.post("/api/progress/update", json={
            "courseId": catalog["course"], "lessonId": "lesson-1", "progress": 10,
        })
        assert response.status_code == 403

    def test_update_and_auto_complete(self, client: TestClient, catalog: dict, test_user: dict):
        enroll(test_user["id"], catalog["course"])
        login(client, test_user["email"], test_user["password"])

        partial = client.post("/api/progress/update", json={
            "courseId": catalog["course"], "lessonId": "lesson-1", "progress": 40, "currentTime": 120,
        })
        assert partial.status_code == 200
        assert partial.json()["progress"]["completed"] is False
        assert partial.json()["progress"]["timeSpentSeconds"] == 120

        done = client.post("/api/progress/update", json={
            "courseId": catalog["course"], "lessonId": "lesson-1", "progress": 92, "currentTime": 280,
        })
        assert done.json()["progress"]["completed"] is True

        summary = client.get(f"/api/progress/{catalog['course']}").json()
        assert summary["completedLessons"] == 1
        assert summary["lessons"][0]["lessonId"] == "lesson-1"

    def test_complete_lesson(self, client: TestClient, catalog: dict, test_user: dict):
        enroll(test_user["id"], catalog["course"])
        login(client, test_user["email"], test_user["password"])

        response = client.post("/api/progress/complete", json={
            "courseId": catalog["course"], "lessonId": "lesson-2",
        })

        assert response.status_code == 200
        assert response.json()["progress"]["completed"] is True
        assert response.json()["progress"]["completedAt"] is not None

    def test_requires_lesson_id(self, client: TestClient, catalog: dict, test_user: dict):
        enroll(test_user["id"], catalog["course"])
        login(client, test_user["email"], test_user["password"])

        response = client.post("/api/progress/update", json={"courseId": catalog["course"]})
        assert response.status_code == 400

    def test_out_of_range_progress_stores_no_watch_time(self, client: TestClient, catalog: dict, test_user: dict):
        enroll(test_user["id"], catalog["course"])
        login(client, test_user["email"], test_user["password"])

        response = client.post("/api/progress/update", json={
            "courseId": catalog["course"], "lessonId": "lesson-1", "progress": 150, "currentTime": 300,
        })

        assert response.status_code == 400
        assert client.get(f"/api/progress/{catalog['course']}").json()["lessons"] == []

    def test_progress_requires_login(self, client: TestClient, catalog: dict):
        assert client.get(f"/api/progress/{catalog['course']}").status_code == 401
