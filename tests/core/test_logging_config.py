# tests/core/test_logging_config.py
import io
import json
import logging

import pytest
from httpx import AsyncClient

from library_api.core.config import settings
from library_api.core.logging_config import HANDLER_NAME, setup_logging


@pytest.fixture
def log_stream():
    """Routes application logs into a buffer, restoring stdout logging afterwards."""
    stream = io.StringIO()
    yield stream
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)


def _json_lines(stream: io.StringIO) -> list:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_extra_fields_are_rendered_as_json(log_stream):
    setup_logging("INFO", log_format="json", stream=log_stream)

    logging.getLogger("library_api.core.middleware").info(
        "Request completed",
        extra={"request_id": "trace-42", "duration_ms": 12.5, "status_code": 201},
    )

    entry = _json_lines(log_stream)[-1]
    assert entry["event"] == "Request completed"
    assert entry["request_id"] == "trace-42"
    assert entry["duration_ms"] == 12.5
    assert entry["status_code"] == 201
    assert entry["level"] == "info"
    assert entry["logger"] == "library_api.core.middleware"
    assert "timestamp" in entry


def test_console_format_keeps_extra_fields(log_stream):
    setup_logging("INFO", log_format="console", stream=log_stream)

    logging.getLogger("library_api.services.book_service").info(
        "Book checked out", extra={"book_id": "book-004"}
    )

    assert "book_id=book-004" in log_stream.getvalue()


def test_level_filters_lower_records(log_stream):
    setup_logging("WARNING", log_format="json", stream=log_stream)

    logging.getLogger("library_api.tests").info("quiet")
    logging.getLogger("library_api.tests").warning("loud")

    events = [entry["event"] for entry in _json_lines(log_stream)]
    assert "quiet" not in events
    assert "loud" in events


def test_repeated_setup_installs_a_single_handler(log_stream):
    setup_logging("INFO", stream=log_stream)
    setup_logging("INFO", stream=log_stream)

    ours = [h for h in logging.getLogger().handlers if h.get_name() == HANDLER_NAME]
    assert len(ours) == 1


@pytest.mark.asyncio
async def test_request_log_carries_request_id_and_timing(
    log_stream, test_client: AsyncClient, member_headers
):
    setup_logging("INFO", log_format="json", stream=log_stream)

    response = await test_client.get(
        "/api/v1/books", headers={**member_headers, "X-Request-ID": "trace-42"}
    )

    assert response.status_code == 200
    completed = [
        entry
        for entry in _json_lines(log_stream)
        if entry["event"] == "Request completed"
    ]
    assert len(completed) == 1
    assert completed[0]["request_id"] == "trace-42"
    assert completed[0]["status_code"] == 200
    assert isinstance(completed[0]["duration_ms"], float)
