"""Structured Logging — tests for JSONFormatter and setup helpers.

Tests cover:
    - JSON envelope fields and extra keys
    - Exceptions rendered into the envelope
    - setup_logging / configure_from_settings install handlers on the package logger
"""

import json
import logging
import sys

import pytest

from metatypes.config import Settings
from metatypes.infrastructure.observability import (
    JSONFormatter, configure_from_settings, setup_logging,
)


def _record(msg="hello", exc_info=None, **extra):
    record = logging.LogRecord(
        name="metatypes.test", level=logging.INFO, pathname=__file__, lineno=1,
        msg=msg, args=(), exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def package_logger():
    logger = logging.getLogger("metatypes")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


# --- JSONFormatter -----------------------------------------------------------

def test_json_envelope():
    payload = json.loads(JSONFormatter().format(_record()))
    assert payload["level"] == "INFO"
    assert payload["logger"] == "metatypes.test"
    assert payload["message"] == "hello"
    assert "timestamp" in payload


def test_extra_keys_included_when_set():
    payload = json.loads(JSONFormatter().format(
        _record(meta_id="abc", loader="pkg.mod", error_code="CONVERTER_FORMAT"),
    ))
    assert payload["meta_id"] == "abc"
    assert payload["loader"] == "pkg.mod"
    assert payload["error_code"] == "CONVERTER_FORMAT"
    assert "kind" not in payload


def test_custom_extra_keys():
    payload = json.loads(JSONFormatter(extra_keys=("attempt",)).format(
        _record(attempt=2, meta_id="abc"),
    ))
    assert payload["attempt"] == 2
    assert "meta_id" not in payload


def test_non_json_extra_rendered_as_text():
    payload = json.loads(JSONFormatter().format(_record(kind=object())))
    assert payload["kind"].startswith("<object object")


def test_exception_rendered():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record(exc_info=sys.exc_info())
    payload = json.loads(JSONFormatter().format(record))
    assert "ValueError: boom" in payload["exception"]


# --- setup -------------------------------------------------------------------

def test_setup_logging_json(package_logger):
    handler = setup_logging("debug", "json")
    assert handler in package_logger.handlers
    assert isinstance(handler.formatter, JSONFormatter)
    assert package_logger.level == logging.DEBUG


def test_setup_logging_text(package_logger):
    handler = setup_logging("WARNING", "text")
    assert not isinstance(handler.formatter, JSONFormatter)
    assert package_logger.level == logging.WARNING


def test_configure_from_settings(package_logger):
    handler = configure_from_settings(Settings(_env_file=None, log_level="error"))
    assert handler in package_logger.handlers
    assert package_logger.level == logging.ERROR
