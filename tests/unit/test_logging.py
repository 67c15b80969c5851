from __future__ import annotations

import json
import logging

from sql_middleware.utils.logging import (
    NO_CORRELATION_ID,
    CorrelationIdFilter,
    _json_formatter,
    set_correlation_id,
)

EXPECTED_ROWS = 10
EXPECTED_DURATION_MS = 12.5


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.rows_affected = EXPECTED_ROWS
    record.procedure = "inventory.restock"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["rows_affected"] == EXPECTED_ROWS
    assert payload["procedure"] == "inventory.restock"
    assert "pathname" not in payload


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"duration_ms": EXPECTED_DURATION_MS}

    payload = json.loads(_json_formatter(record))

    assert payload["duration_ms"] == EXPECTED_DURATION_MS


def test_json_formatter_stringifies_unserializable_values() -> None:
    record = _record()
    record.table = object()

    payload = json.loads(_json_formatter(record))

    assert payload["table"].startswith("<object object")


def test_correlation_filter_stamps_current_request_id() -> None:
    record = _record()
    assert CorrelationIdFilter().filter(record) is True
    assert record.correlation_id == NO_CORRELATION_ID

    set_correlation_id("req-42")
    try:
        stamped = _record()
        CorrelationIdFilter().filter(stamped)
        payload = json.loads(_json_formatter(stamped))
    finally:
        set_correlation_id(NO_CORRELATION_ID)

    assert payload["correlation_id"] == "req-42"
