import os
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Region:
    key: str
    display_name: str
    credential_var: str
    auth_url: str
    log_service_url: str
    vregion: str
    configured: bool

    def is_configured(self) -> bool:
        return self.configured


def _env_flag(name: str, default: bool = False) -> bool:
    v = str(os.getenv(name, "")).strip().lower()
    if v == "":
        return default
    return v in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    v = str(os.getenv(name, "")).strip()
    if not v:
        return default
    try:
        return int(v)
    except ValueError:
        return default


# Defaults
DEFAULT_TIMEOUT = 30.0
SCAN_SPAN_MINUTES = 10
# The auth service never states an expiry; one hour is an assumption.
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600
TOKEN_SAFETY_MARGIN_SECONDS = 300

GENERIC_CREDENTIAL_VAR = "CAS_SESSION"
AUTH_COOKIE_NAME = "CAS_SESSION"
AUTH_TOKEN_HEADER = "x-jwt-token"
QUERY_TOKEN_HEADER = "X-Jwt-Token"

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36 Edg/140.0.0.0"
)
DEFAULT_HEADERS: Dict[str, str] = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "User-Agent": USER_AGENT,
}

# Region registry (single source of truth)
# cn is recognized but has no log service wired up yet
REGIONS: Dict[str, Region] = {
    "cn": Region(
        key="cn",
        display_name="China",
        credential_var="CAS_SESSION_CN",
        auth_url="https://cloud.bytedance.net/auth/api/v1/jwt",
        log_service_url="",
        vregion="",
        configured=False,
    ),
    "i18n": Region(
        key="i18n",
        display_name="International (Singapore)",
        credential_var="CAS_SESSION_I18n",
        auth_url="https://cloud-i18n.bytedance.net/auth/api/v1/jwt",
        log_service_url="https://logservice-sg.tiktok-row.org/streamlog/platform/microservice/v1/query/trace",
        vregion="Singapore-Common,US-East,Singapore-Central",
        configured=True,
    ),
    "us": Region(
        key="us",
        display_name="United States",
        credential_var="CAS_SESSION_US",
        auth_url="https://cloud-ttp-us.bytedance.net/auth/api/v1/jwt",
        log_service_url="https://logservice-tx.tiktok-us.org/streamlog/platform/microservice/v1/query/trace",
        vregion="US-TTP,US-TTP2",
        configured=True,
    ),
}


def supported_regions() -> List[str]:
    return list(REGIONS)


def get_region_config(key: str) -> Optional[Region]:
    """Return the registry entry for ``key`` (case-insensitive) or None."""
    return REGIONS.get((key or "").strip().lower())


def resolve_proxy() -> Optional[str]:
    """Return the outbound proxy URL, preferring HTTPS_PROXY over HTTP_PROXY."""
    for name in ("HTTPS_PROXY", "https_proxy", "HTTP_PROXY", "http_proxy"):
        v = (os.getenv(name) or "").strip()
        if v:
            return v
    return None


def token_lifetime_seconds() -> int:
    """Assumed token lifetime, read from LOGID_TOKEN_LIFETIME at call time."""
    return _env_int("LOGID_TOKEN_LIFETIME", DEFAULT_TOKEN_LIFETIME_SECONDS)
