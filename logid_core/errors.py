from __future__ import annotations

from typing import Optional

_SNIPPET_LEN = 500


def _snippet(body: Optional[str]) -> str:
    s = (body or "").strip()
    if len(s) > _SNIPPET_LEN:
        return s[:_SNIPPET_LEN] + "..."
    return s


class LogidError(Exception):
    """Base class for every error raised by logid_core."""


class UnsupportedRegion(LogidError):
    def __init__(self, region: str):
        self.region = region
        super().__init__(f"unsupported region: {region}")


class RegionNotConfigured(LogidError):
    def __init__(self, region: str):
        self.region = region
        super().__init__(f"region {region} has no log service configured")


class MissingCredentials(LogidError):
    def __init__(self, region: str, variable: str):
        self.region = region
        self.variable = variable
        super().__init__(f"missing credentials: neither {variable} nor CAS_SESSION is set")


class AuthenticationFailed(LogidError):
    def __init__(self, region: str, reason: str, status: Optional[int] = None, body: Optional[str] = None):
        self.region = region
        self.reason = reason
        self.status = status
        self.body = body
        detail = f"HTTP {status}: {_snippet(body)}" if status is not None else reason
        super().__init__(f"authentication failed [region={region}]: {detail}")


class QueryFailed(LogidError):
    def __init__(self, region: str, reason: str, status: Optional[int] = None, body: Optional[str] = None):
        self.region = region
        self.reason = reason
        self.status = status
        self.body = body
        detail = f"HTTP {status}: {_snippet(body)}" if status is not None else reason
        super().__init__(f"log query failed [region={region}]: {detail}")


class NetworkError(LogidError):
    """Transport failure or timeout; the two are not distinguished."""

    def __init__(self, region: str, reason: str):
        self.region = region
        self.reason = reason
        super().__init__(f"network request failed [region={region}]: {reason}")


class FilterConfigError(LogidError):
    def __init__(self, reason: str, pattern: Optional[str] = None):
        self.reason = reason
        self.pattern = pattern
        if pattern is not None:
            super().__init__(f"invalid filter pattern {pattern!r}: {reason}")
        else:
            super().__init__(f"filter config error: {reason}")
