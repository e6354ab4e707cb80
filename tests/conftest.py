import os
import sys

import pytest

# Ensure repo root on sys.path
ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


_ENV_VARS = (
    "CAS_SESSION",
    "CAS_SESSION_CN",
    "CAS_SESSION_I18n",
    "CAS_SESSION_US",
    "CAS_SESSION_EU",
    "HTTPS_PROXY",
    "https_proxy",
    "HTTP_PROXY",
    "http_proxy",
    "ENABLE_LOGGING",
    "LOGID_FILTER_CONFIG",
    "LOGID_LOG_FILE",
    "LOGID_TOKEN_LIFETIME",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture()
def temp_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))
    yield tmp_path


@pytest.fixture()
def eu_region(monkeypatch):
    """Register a third configured region for multi-region tests."""
    from logid_core import config

    region = config.Region(
        key="eu",
        display_name="Europe",
        credential_var="CAS_SESSION_EU",
        auth_url="https://cloud-i18n.tiktok-eu.org/auth/api/v1/jwt",
        log_service_url="https://logservice-eu.example.org/streamlog/platform/microservice/v1/query/trace",
        vregion="EU-TTP",
        configured=True,
    )
    monkeypatch.setitem(config.REGIONS, "eu", region)
    return region
