"""Error taxonomy tests."""
import sqlite3

import pytest

from app.errors import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    ExternalServiceError,
    FileUploadError,
    NotFoundError,
    RateLimitError,
    ValidationError,
    ensure,
    map_database_error,
)


def test_error_body_shape():
    body = NotFoundError("Course").to_dict()

    assert body == {"success": False, "error": {"code": "NOT_FOUND", "message": "Course not found"}}


def test_status_codes():
    assert AuthenticationError().status_code == 401
    assert ConflictError().status_code == 409
    assert ExternalServiceError("Stripe", "down").status_code == 502
    assert DatabaseError().is_operational is False


def test_details_always_rendered_context_only_on_request():
    error = ValidationError("Bad slug", context={"slug": "x"}, details=["too short"])

    assert error.to_dict()["error"]["details"] == ["too short"]
    assert "context" not in error.to_dict()["error"]
    assert error.to_dict(include_context=True)["error"]["context"] == {"slug": "x"}


def test_ensure():
    ensure(True, "unused")
    ensure("non-empty", "unused")

    with pytest.raises(ValidationError) as exc_info:
        ensure(0, "Quantity must be positive", {"quantity": 0})
    assert exc_info.value.message == "Quantity must be positive"
    assert exc_info.value.context == {"quantity": 0}
    assert exc_info.value.status_code == 400

def test_rate_limit_retry_after():
    body = RateLimitError(retry_after=0, reset_at=1700000000).to_dict()

    assert body["retryAfter"] == 1
    assert body["resetAt"] == 1700000000
    assert body["error"]["code"] == "RATE_LIMIT_EXCEEDED"


def test_file_upload_detected_type():
    body = FileUploadError("Type mismatch", detected_type="application/pdf").to_dict()
    assert body["error"]["detectedType"] == "application/pdf"


def test_external_service_message():
    error = ExternalServiceError("Cloudflare Stream", "quota exceeded")
    assert error.message == "Cloudflare Stream error: quota exceeded"
    assert error.service == "Cloudflare Stream"


class TestMapDatabaseError:

    def test_unique(self):
        error = map_database_error(sqlite3.IntegrityError("UNIQUE constraint failed: users.email"))
        assert isinstance(error, ConflictError)

    def test_foreign_key(self):
        error = map_database_error(sqlite3.IntegrityError("FOREIGN KEY constraint failed"))
        assert isinstance(error, ValidationError)
        assert error.message == "Referenced resource does not exist"

    def test_not_null_and_check(self):
        assert map_database_error(sqlite3.IntegrityError("NOT NULL constraint failed: x")).message == \
            "Required field is missing"
        assert map_database_error(sqlite3.IntegrityError("CHECK constraint failed: rating")).message == \
            "Invalid field value"

    def test_other_errors(self):
        error = map_database_error(sqlite3.OperationalError("database is locked"))
        assert isinstance(error, DatabaseError)
        assert error.status_code == 500

    def test_app_error_passes_through(self):
        original = NotFoundError()
        assert map_database_error(original) is original
