from __future__ import annotations

import json
import logging

from clinicdb.utils.logging import JsonFormatter, _json_formatter, configure_logging

PARAM_COUNT = 3
PAGE_SIZE = 10


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="clinicdb.persistence.repository",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_extra_fields() -> None:
    record = _record()
    record.param_count = PARAM_COUNT
    record.table = "patients"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "clinicdb.persistence.repository"
    assert payload["message"] == "hello"
    assert payload["param_count"] == PARAM_COUNT
    assert payload["table"] == "patients"
    assert "lineno" not in payload


def test_json_formatter_supports_nested_extra_dict() -> None:
    record = _record()
    record.extra = {"page_size": PAGE_SIZE}

    payload = json.loads(_json_formatter(record))

    assert payload["page_size"] == PAGE_SIZE
    assert "extra" not in payload


def test_json_formatter_serializes_unknown_types_as_strings() -> None:
    from datetime import date

    record = _record()
    record.birth_date = date(2000, 1, 1)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["birth_date"] == "2000-01-01"


def test_configure_logging_sets_root_level() -> None:
    root = logging.getLogger()
    previous_level, previous_handlers = root.level, list(root.handlers)
    try:
        configure_logging(level="WARNING", json_logs=True)
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)
