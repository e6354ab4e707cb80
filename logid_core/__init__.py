"""Core client, token cache, redaction and dispatch for the logid tool.

The CLI in `logid_cli` is a thin layer over this package.
"""

from __future__ import annotations

import logging
import re
from typing import Match


class _SecretRedactor(logging.Filter):
    _pattern = re.compile(r"(?i)(CAS_SESSION\w*|x-jwt-token)([=:]\s*)([^\s;,&\"']{6,})")

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = str(record.getMessage())
            if not msg:
                return True
            def _repl(m: Match[str]) -> str:
                return f"{m.group(1)}{m.group(2)}***REDACTED***"
            record.msg = self._pattern.sub(_repl, msg)
            record.args = ()
        except Exception:
            pass
        return True


def setup_logging_redaction() -> None:
    root = logging.getLogger()
    for h in list(root.handlers):
        h.addFilter(_SecretRedactor())

from . import config, errors, models, cache, filters, services, dispatch, export  # noqa: F401,E402
from .dispatch import MultiRegionDispatcher  # noqa: E402
from .errors import LogidError  # noqa: E402

__all__ = [
    "setup_logging_redaction",
    "config",
    "errors",
    "models",
    "cache",
    "filters",
    "services",
    "dispatch",
    "export",
    "MultiRegionDispatcher",
    "LogidError",
]
