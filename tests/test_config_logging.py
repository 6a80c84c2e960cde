"""Tests for settings validation, logging setup and the response envelope."""

import json
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from property_api.core.config import Settings, sync_database_url
from property_api.core.exceptions import AuditWriteError, NotFoundError, PersistenceError
from property_api.core.logging import JsonFormatter, setup_logging
from property_api.core.responses import envelope_response
from property_api.schemas.base import ApiResponse


class TestSettings:
    """Tests for Settings validators and derived values."""

    def test_derived_values(self) -> None:
        settings = Settings(
            upload_dir=Path("/srv/uploads"),
            allowed_origins="http://a.test, http://b.test",
            allowed_image_extensions="JPG, .png",
        )

        assert settings.origins == ["http://a.test", "http://b.test"]
        assert settings.image_extensions == {"jpg", "png"}
        assert settings.image_root == Path("/srv/uploads/property-images")

    def test_namespace_is_single_segment(self) -> None:
        assert Settings(image_namespace="/photos/").image_namespace == "photos"
        with pytest.raises(ValidationError):
            Settings(image_namespace="a/b")

    def test_log_format(self) -> None:
        with pytest.raises(ValidationError):
            Settings(log_format="xml")

    def test_wildcard_cors_needs_debug(self) -> None:
        with pytest.raises(ValidationError):
            Settings(allowed_origins="*", debug=False)

        assert Settings(allowed_origins="*", debug=True).origins == ["*"]


class TestSyncDatabaseUrl:
    """Tests for the URL Alembic migrations connect with."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgresql+asyncpg://u:p@db:5432/props", "postgresql+psycopg2://u:p@db:5432/props"),
            ("sqlite+aiosqlite:///./properties.db", "sqlite:///./properties.db"),
            ("postgresql://u@db/props", "postgresql://u@db/props"),
        ],
    )
    def test_async_driver_swapped(self, url: str, expected: str) -> None:
        assert sync_database_url(url) == expected


class TestLogging:
    """Tests for setup_logging and JsonFormatter."""

    def test_json_formatter_includes_context(self) -> None:
        record = logging.LogRecord(
            name="property_api.services.storage",
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="Image %s: %s",
            args=("/property-images/p/a.jpg", "failed"),
            exc_info=None,
        )
        record.reference = "/property-images/p/a.jpg"
        record.outcome = "failed"

        payload = json.loads(JsonFormatter().format(record))

        assert payload["level"] == "WARNING"
        assert payload["message"] == "Image /property-images/p/a.jpg: failed"
        assert payload["reference"] == "/property-images/p/a.jpg"
        assert payload["outcome"] == "failed"
        assert "property_id" not in payload

    def test_setup_logging_replaces_handlers(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("debug", "json")
            setup_logging("warning", "json")

            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert root.level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_unknown_level_and_standard_format(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("chatty", "standard")

            assert root.level == logging.INFO
            assert not isinstance(root.handlers[0].formatter, JsonFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestEnvelope:
    """Tests for rendering envelopes to HTTP responses."""

    def test_success_omits_error_keys(self) -> None:
        response = envelope_response(ApiResponse.ok({"id": "p1"}, "done"), success_status=201)
        body = json.loads(response.body)

        assert response.status_code == 201
        assert body["data"] == {"id": "p1"}
        assert "error" not in body
        assert "details" not in body

    @pytest.mark.parametrize(
        "error,status_code",
        [
            (NotFoundError.code, 404),
            ("VALIDATION_ERROR", 422),
            (PersistenceError.code, 500),
            (AuditWriteError.code, 500),
            ("INTERNAL_ERROR", 500),
        ],
    )
    def test_failure_status(self, error: str, status_code: int) -> None:
        response = envelope_response(ApiResponse.fail(error, "nope"))
        body = json.loads(response.body)

        assert response.status_code == status_code
        assert body["success"] is False
        assert body["error"] == error
        assert body["details"] == {}
        assert "data" not in body
