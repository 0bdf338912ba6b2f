"""Cloudflare Stream API client.

Docs: https://developers.cloudflare.com/stream/
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ...config import CLOUDFLARE_ACCOUNT_ID, CLOUDFLARE_API_TOKEN
from ...errors import ExternalServiceError

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.cloudflare.com/client/v4"
DELIVERY_BASE_URL = "https://videodelivery.net"
DEFAULT_MAX_DURATION_SECONDS = 6 * 60 * 60


@dataclass
class StreamStatus:
    state: str
    pct_complete: float = 0.0
    error_reason: Optional[str] = None


def parse_status(video: dict) -> StreamStatus:
    """Extract processing state from a Stream video object."""
    status = video.get("status") or {}
    try:
        pct = float(status.get("pctComplete") or 0)
    except (TypeError, ValueError):
        pct = 0.0
    return StreamStatus(
        state=status.get("state") or "queued",
        pct_complete=pct,
        error_reason=status.get("errorReasonText")
    )


def get_thumbnail_url(video_uid: str, time: Optional[float] = None) -> str:
    """Thumbnail URL; ``time`` below 1 is a fraction of the duration, else seconds."""
    url = f"{DELIVERY_BASE_URL}/{video_uid}/thumbnails/thumbnail.jpg"
    if time is None:
        return url
    param = f"{time * 100:g}pct" if time < 1 else f"{time:g}s"
    return f"{url}?time={param}"


def get_playback_url(video_uid: str, fmt: str = "hls") -> str:
    """HLS (default) or DASH manifest URL."""
    if fmt == "dash":
        return f"{DELIVERY_BASE_URL}/{video_uid}/manifest/video.mpd"
    return f"{DELIVERY_BASE_URL}/{video_uid}/manifest/video.m3u8"


class CloudflareStreamClient:
    """Synchronous client for the Stream endpoints the platform uses."""

    def __init__(
        self,
        account_id: str = CLOUDFLARE_ACCOUNT_ID,
        api_token: str = CLOUDFLARE_API_TOKEN,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 15.0
    ):
        self.account_id = account_id
        self.api_token = api_token
        self._http = http_client or httpx.Client(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.account_id and self.api_token)

    def _url(self, path: str = "") -> str:
        return f"{API_BASE_URL}/accounts/{self.account_id}/stream{path}"

    def _request(self, method: str, path: str = "", **kwargs) -> dict:
        if not self.configured:
            raise ExternalServiceError("Cloudflare", "CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN must be set")

        headers = {"Authorization": f"Bearer {self.api_token}"}
        try:
            response = self._http.request(method, self._url(path), headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Cloudflare request failed: %s %s: %s", method, path, e)
            raise ExternalServiceError("Cloudflare", str(e))

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error or not data.get("success", False):
            errors = data.get("errors") or [{"code": response.status_code, "message": response.reason_phrase}]
            first = errors[0]
            message = f"Cloudflare API Error {first.get('code')}: {first.get('message')}"
            logger.error(message, extra={"method": method, "path": path, "status": response.status_code})
            raise ExternalServiceError("Cloudflare", message, {"errors": errors})

        return data

    def get_video(self, video_uid: str) -> dict:
        """Fetch a video object (status, playback, thumbnail, duration, meta)."""
        return self._request("GET", f"/{video_uid}")["result"]

    def list_videos(
        self,
        limit: Optional[int] = None,
        status: Optional[str] = None,
        search: Optional[str] = None
    ) -> list[dict]:
        params: dict[str, Any] = {}
        if limit:
            params["limit"] = limit
        if status:
            params["status"] = status
        if search:
            params["search"] = search
        return self._request("GET", params=params)["result"]

    def delete_video(self, video_uid: str) -> bool:
        self._request("DELETE", f"/{video_uid}")
        return True

    def update_video_meta(self, video_uid: str, meta: dict[str, str]) -> dict:
        return self._request("POST", f"/{video_uid}", json={"meta": meta})["result"]

    def create_direct_upload(
        self,
        max_duration_seconds: int = DEFAULT_MAX_DURATION_SECONDS,
        meta: Optional[dict[str, str]] = None
    ) -> dict:
        """Reserve a one-time upload URL.

        Returns:
            Dict with uploadURL and uid
        """
        body: dict[str, Any] = {"maxDurationSeconds": max_duration_seconds}
        if meta:
            body["meta"] = meta
        result = self._request("POST", "/direct_upload", json=body)["result"]
        return {"uploadURL": result.get("uploadURL"), "uid": result.get("uid")}

    def close(self) -> None:
        self._http.close()


# Shared client, one connection pool per process
_client: Optional[CloudflareStreamClient] = None


def get_cloudflare() -> CloudflareStreamClient:
    """Get or create the shared client."""
    global _client
    if _client is None:
        _client = CloudflareStreamClient()
    return _client


def set_cloudflare(client: Optional[CloudflareStreamClient]) -> None:
    """Replace the shared client (tests install one over a mock transport)."""
    global _client
    _client = client


def reset_cloudflare() -> None:
    """Close and forget the shared client."""
    global _client
    if _client is not None:
        _client.close()
    _client = None
