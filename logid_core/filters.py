"""Message redaction.

Patterns come from a JSON config file when one is found, otherwise from the
built-in list. Every pattern match is deleted, then whitespace left behind is
tidied up.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any, List, Optional, Pattern, Sequence

from .errors import FilterConfigError
from .logger import get_logger

DEFAULT_FILTER_PATH = os.path.join("reference", "message_filters.json")

# Primary key first, then the legacy aliases
FILTER_KEYS = ("msg_filters", "_msg_filters", "patterns")

DEFAULT_PATTERNS: List[str] = [
    "_compliance_nlp_log",
    "_compliance_whitelist_log",
    "_compliance_source=footprint",
    r'(?s)"user_extra":\s*"\{.*?\}"',
    r'(?m)"LogID":\s*"[^"]*"',
    r'(?m)"Addr":\s*"[^"]*"',
    r'(?m)"Client":\s*"[^"]*"',
]

_SPACES = re.compile(r"[ \t]{2,}")
_BLANK_LINES = re.compile(r"\n\s*\n\s*\n")


def load_filter_config(path: str) -> Optional[List[str]]:
    """Return the pattern list stored at ``path``.

    None when the file does not exist or holds none of FILTER_KEYS.
    """
    log = get_logger()
    if not os.path.exists(path):
        log.info("filter config not found path=%s", path)
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc: Any = json.load(f)
    except (OSError, ValueError) as e:
        raise FilterConfigError(f"cannot read {path}: {e}") from e
    if not isinstance(doc, dict):
        log.warning("filter config has no recognized key path=%s", path)
        return None
    for key in FILTER_KEYS:
        if key in doc:
            patterns = doc[key]
            if not isinstance(patterns, list) or not all(isinstance(p, str) for p in patterns):
                raise FilterConfigError(f"{path}: '{key}' must be a list of strings")
            return list(patterns)
    log.warning("filter config has no recognized key path=%s keys=%s", path, ",".join(FILTER_KEYS))
    return None


def resolve_patterns(config_path: Optional[str] = None) -> List[str]:
    path = config_path or os.getenv("LOGID_FILTER_CONFIG") or DEFAULT_FILTER_PATH
    patterns = load_filter_config(path)
    if patterns is None:
        get_logger().info("using default filter patterns")
        return list(DEFAULT_PATTERNS)
    get_logger().info("loaded filter patterns path=%s", path)
    return patterns


class RedactionPipeline:
    def __init__(self, patterns: Optional[Sequence[str]] = None):
        source = list(DEFAULT_PATTERNS) if patterns is None else list(patterns)
        compiled: List[Pattern[str]] = []
        for p in source:
            try:
                compiled.append(re.compile(p))
            except re.error as e:
                raise FilterConfigError(str(e), pattern=p) from e
        self._patterns = tuple(compiled)
        get_logger().info("compiled %d message filters", len(self._patterns))

    @classmethod
    def from_config(cls, config_path: Optional[str] = None) -> "RedactionPipeline":
        return cls(resolve_patterns(config_path))

    @property
    def patterns(self) -> List[str]:
        return [p.pattern for p in self._patterns]

    def redact(self, text: str) -> str:
        out = text
        for rx in self._patterns:
            out = rx.sub("", out)
        # whitespace collapse runs after every removal
        out = _SPACES.sub(" ", out)
        out = _BLANK_LINES.sub("\n\n", out)
        return out.strip()
