"""
Course video integration tests.

Verifies:
- Admin video management and its access control
- Ready-only public listings and cache invalidation
- Lesson playback for enrolled students with Cloudflare unavailable
"""
from fastapi.testclient import TestClient

from tests.conftest import enroll, login, login_as


def _video_payload(course_id: int, lesson_id: str = "lesson-1", uid: str = "cf-video-1") -> dict:
    return {
        "courseId": course_id,
        "lessonId": lesson_id,
        "cloudflareVideoId": uid,
        "title": "Welcome to the practice",
        "duration": 312.5,
    }


class TestAdminVideos:

    def test_create_and_list(self, admin_client: TestClient, catalog: dict):
        response = admin_client.post("/api/admin/videos", json=_video_payload(catalog["course"]))

        assert response.status_code == 201
        video = response.json()["video"]
        assert video["status"] == "queued"
        assert video["lesson_id"] == "lesson-1"

        listing = admin_client.get("/api/admin/videos", params={"courseId": catalog["course"]}).json()
        assert [v["id"] for v in listing["videos"]] == [video["id"]]

        public = admin_client.get(f"/api/courses/{catalog['course']}/videos").json()
        assert public["videos"] == []

    def test_ready_video_becomes_public(self, admin_client: TestClient, catalog: dict):
        video = admin_client.post("/api/admin/videos", json=_video_payload(catalog["course"])).json()["video"]
        admin_client.get(f"/api/courses/{catalog['course']}/videos")

        updated = admin_client.patch(f"/api/admin/videos/{video['id']}", json={"status": "ready"})
        assert updated.status_code == 200

        public = admin_client.get(f"/api/courses/{catalog['course']}/videos").json()
        assert [v["id"] for v in public["videos"]] == [video["id"]]

    def test_duplicate_lesson_video(self, admin_client: TestClient, catalog: dict):
        admin_client.post("/api/admin/videos", json=_video_payload(catalog["course"]))

        same_uid = admin_client.post("/api/admin/videos", json=_video_payload(catalog["course"], "lesson-2"))
        same_lesson = admin_client.post(
            "/api/admin/videos", json=_video_payload(catalog["course"], uid="cf-video-2")
        )

        assert same_uid.status_code == 409
        assert same_uid.json()["error"]["code"] == "DUPLICATE_VIDEO"
        assert same_lesson.status_code == 409

    def test_unknown_course(self, admin_client: TestClient, fresh_database):
        response = admin_client.post("/api/admin/videos", json=_video_payload(999))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "COURSE_NOT_FOUND"

    def test_missing_fields(self, admin_client: TestClient, catalog: dict):
        response = admin_client.post("/api/admin/videos", json={"courseId": catalog["course"]})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"

    def test_invalid_status_update(self, admin_client: TestClient, catalog: dict):
        video = admin_client.post("/api/admin/videos", json=_video_payload(catalog["course"])).json()["video"]
        response = admin_client.patch(f"/api/admin/videos/{video['id']}", json={"status": "finished"})
        assert response.status_code == 400

    def test_delete_locally(self, admin_client: TestClient, catalog: dict):
        video = admin_client.post("/api/admin/videos", json=_video_payload(catalog["course"])).json()["video"]

        response = admin_client.delete(f"/api/admin/videos/{video['id']}?deleteFromCloudflare=false")
        assert response.status_code == 200

        missing = admin_client.patch(f"/api/admin/videos/{video['id']}", json={"title": "x"})
        assert missing.status_code == 404

    def test_delete_from_unconfigured_cloudflare_keeps_row(self, admin_client: TestClient, catalog: dict):
        video = admin_client.post("/api/admin/videos", json=_video_payload(catalog["course"])).json()["video"]

        response = admin_client.delete(f"/api/admin/videos/{video['id']}")

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "CLOUDFLARE_ERROR"
        listing = admin_client.get("/api/admin/videos", params={"courseId": catalog["course"]}).json()
        assert len(listing["videos"]) == 1

    def test_upload_url_needs_cloudflare(self, admin_client: TestClient, catalog: dict):
        response = admin_client.post("/api/admin/videos/upload-url", json={
            "courseId": catalog["course"], "lessonId": "lesson-1",
        })
        assert response.status_code == 502

    def test_stats(self, admin_client: TestClient, catalog: dict):
        admin_client.post("/api/admin/videos", json=_video_payload(catalog["course"]))
        stats = admin_client.get("/api/admin/videos/stats").json()["stats"]
        assert stats["total"] == 1
        assert stats["queued"] == 1

    def test_students_forbidden(self, authenticated_client: TestClient, catalog: dict):
        response = authenticated_client.post("/api/admin/videos", json=_video_payload(catalog["course"]))
        assert response.status_code == 403


class TestLessonPlayback:

    def _create_ready_video(self, client: TestClient, admin: dict, course_id: int) -> dict:
        with login_as(client, admin["email"], admin["password"]):
            video = client.post("/api/admin/videos", json=_video_payload(course_id)).json()["video"]
            client.patch(f"/api/admin/videos/{video['id']}", json={"status": "ready", "processingProgress": 100})
        return video

    def test_enrolled_student_gets_playback(
        self, client: TestClient, catalog: dict, test_user: dict, admin_user: dict
    ):
        video = self._create_ready_video(client, admin_user, catalog["course"])
        enroll(test_user["id"], catalog["course"])
        login(client, test_user["email"], test_user["password"])

        response = client.get(f"/api/courses/{catalog['course']}/lessons/lesson-1/video")

        assert response.status_code == 200
        data = response.json()["video"]
        assert data["id"] == video["id"]
        assert data["is_ready"] is True
        assert data["cloudflare_status"]["state"] == "ready"
        assert data["playback_urls"]["hls"] == "https://videodelivery.net/cf-video-1/manifest/video.m3u8"

    def test_not_enrolled(self, client: TestClient, catalog: dict, test_user: dict, admin_user: dict):
        self._create_ready_video(client, admin_user, catalog["course"])
        login(client, test_user["email"], test_user["password"])

        response = client.get(f"/api/courses/{catalog['course']}/lessons/lesson-1/video")

        assert response.status_code == 403

    def test_missing_lesson_video(self, client: TestClient, catalog: dict, test_user: dict):
        enroll(test_user["id"], catalog["course"])
        login(client, test_user["email"], test_user["password"])

        response = client.get(f"/api/courses/{catalog['course']}/lessons/lesson-9/video")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "VIDEO_NOT_FOUND"
