from io import StringIO

from logid_core.logger import get_logger, logging_enabled, setup_diagnostics_logger
from logid_core import setup_logging_redaction, _SecretRedactor
import logging


def test_logging_redacts_session_and_token(monkeypatch):
    setup_logging_redaction()
    logger = get_logger()
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(_SecretRedactor())
    logger.addHandler(handler)
    try:
        logger.error("Cookie CAS_SESSION_US=abcdef123456 and x-jwt-token: eyJsecrettoken")
        handler.flush()
        data = stream.getvalue()
        assert "CAS_SESSION_US=***REDACTED***" in data
        assert "x-jwt-token: ***REDACTED***" in data
        assert "abcdef123456" not in data
        assert "eyJsecrettoken" not in data
    finally:
        logger.removeHandler(handler)


def test_redactor_formats_args_first():
    record = logging.LogRecord("logid", logging.ERROR, __file__, 1, "cookie %s", ("CAS_SESSION=topsecret",), None)
    assert _SecretRedactor().filter(record) is True
    assert record.getMessage() == "cookie CAS_SESSION=***REDACTED***"


def test_short_values_left_alone():
    record = logging.LogRecord("logid", logging.ERROR, __file__, 1, "CAS_SESSION=abc", (), None)
    _SecretRedactor().filter(record)
    assert record.getMessage() == "CAS_SESSION=abc"


def test_logging_flag(monkeypatch):
    assert not logging_enabled()
    monkeypatch.setenv("ENABLE_LOGGING", "1")
    assert logging_enabled()


def test_logger_configured_once():
    first = setup_diagnostics_logger()
    count = len(first.handlers)
    assert setup_diagnostics_logger() is first
    assert len(first.handlers) == count
    assert first.propagate is False
