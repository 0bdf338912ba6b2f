"""Cloudflare Stream and Resend clients against httpx.MockTransport."""
import json
from datetime import datetime

import httpx
import pytest

from app.errors import ExternalServiceError
from app.infrastructure.services.cloudflare import (
    CloudflareStreamClient,
    get_cloudflare,
    get_playback_url,
    get_thumbnail_url,
    parse_status,
    reset_cloudflare,
    set_cloudflare,
)
from app.infrastructure.services.email import RESEND_API_URL, EmailSender


def _stream_client(handler) -> CloudflareStreamClient:
    return CloudflareStreamClient(
        account_id="acc123",
        api_token="token456",
        http_client=httpx.Client(transport=httpx.MockTransport(handler))
    )


class TestStreamUrls:

    def test_thumbnail(self):
        base = "https://videodelivery.net/vid1/thumbnails/thumbnail.jpg"
        assert get_thumbnail_url("vid1") == base
        assert get_thumbnail_url("vid1", 0.5) == f"{base}?time=50pct"
        assert get_thumbnail_url("vid1", 12) == f"{base}?time=12s"

    def test_playback(self):
        assert get_playback_url("vid1") == "https://videodelivery.net/vid1/manifest/video.m3u8"
        assert get_playback_url("vid1", "dash") == "https://videodelivery.net/vid1/manifest/video.mpd"

    def test_parse_status(self):
        status = parse_status({"status": {"state": "inprogress", "pctComplete": "42.5"}})
        assert status.state == "inprogress"
        assert status.pct_complete == 42.5

        assert parse_status({}).state == "queued"
        assert parse_status({"status": {"pctComplete": "n/a"}}).pct_complete == 0.0


class TestCloudflareStreamClient:

    def test_get_video(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"success": True, "result": {"uid": "vid1", "duration": 61.5}})

        video = _stream_client(handler).get_video("vid1")

        assert video["duration"] == 61.5
        assert seen["url"] == "https://api.cloudflare.com/client/v4/accounts/acc123/stream/vid1"
        assert seen["auth"] == "Bearer token456"

    def test_direct_upload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert request.url.path.endswith("/stream/direct_upload")
            assert body["maxDurationSeconds"] == 21600
            assert body["meta"] == {"courseId": "7"}
            return httpx.Response(200, json={
                "success": True,
                "result": {"uploadURL": "https://upload.videodelivery.net/x", "uid": "new-uid"},
            })

        upload = _stream_client(handler).create_direct_upload(meta={"courseId": "7"})

        assert upload == {"uploadURL": "https://upload.videodelivery.net/x", "uid": "new-uid"}

    def test_api_failure_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "errors": [{"code": 10003, "message": "Not found"}]})

        with pytest.raises(ExternalServiceError) as exc_info:
            _stream_client(handler).get_video("missing")

        assert "10003" in exc_info.value.message
        assert exc_info.value.status_code == 502

    def test_http_error_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="oops")

        with pytest.raises(ExternalServiceError):
            _stream_client(handler).delete_video("vid1")

    def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ExternalServiceError):
            _stream_client(handler).list_videos(limit=5)

    def test_update_video_meta(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "result": {"uid": "vid1", "meta": {"lessonId": "l2"}}})

        result = _stream_client(handler).update_video_meta("vid1", {"lessonId": "l2"})

        assert seen["method"] == "POST"
        assert seen["url"] == "https://api.cloudflare.com/client/v4/accounts/acc123/stream/vid1"
        assert seen["body"] == {"meta": {"lessonId": "l2"}}
        assert result["meta"] == {"lessonId": "l2"}

    def test_unconfigured_client_raises(self):
        client = CloudflareStreamClient(account_id="", api_token="")

        assert client.configured is False
        with pytest.raises(ExternalServiceError):
            client.get_video("vid1")


class TestSharedStreamClient:

    def test_one_client_per_process(self):
        set_cloudflare(None)
        try:
            assert get_cloudflare() is get_cloudflare()
        finally:
            reset_cloudflare()

    def test_reset_closes_http_pool(self):
        http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        set_cloudflare(CloudflareStreamClient(account_id="a", api_token="t", http_client=http))

        reset_cloudflare()

        assert http.is_closed
        set_cloudflare(None)

    def test_video_services_share_the_client(self, db):
        from app.routes.deps import get_video_service

        set_cloudflare(None)
        try:
            first = get_video_service(db)
            second = get_video_service(db)
            assert first.cloudflare is second.cloudflare
        finally:
            reset_cloudflare()


class TestEmailSender:

    def test_without_api_key_only_logs(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no HTTP call expected")

        sender = EmailSender(api_key="", http_client=httpx.Client(transport=httpx.MockTransport(handler)))

        assert sender.send("student@example.com", "Hello", "<p>Hi</p>") is True

    def test_sends_through_resend(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email_1"})

        sender = EmailSender(
            api_key="re_test",
            sender="noreply@example.com",
            http_client=httpx.Client(transport=httpx.MockTransport(handler))
        )
        sender.send_password_reset(
            "student@example.com",
            "https://example.com/reset-password?token=abc",
            datetime(2030, 1, 1, 12, 0)
        )

        assert seen["url"] == RESEND_API_URL
        assert seen["body"]["to"] == ["student@example.com"]
        assert seen["body"]["from"] == "noreply@example.com"
        assert "https://example.com/reset-password?token=abc" in seen["body"]["html"]

    def test_rejected_message_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"message": "invalid to"})

        sender = EmailSender(api_key="re_test", http_client=httpx.Client(transport=httpx.MockTransport(handler)))

        with pytest.raises(ExternalServiceError):
            sender.send("bad", "Subject", "<p>x</p>")
