from __future__ import annotations

import os
from pathlib import Path
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from .config import GENERIC_CREDENTIAL_VAR, Region
from .errors import MissingCredentials
from .logger import get_logger


def resolve_env_path() -> str:
    """Return the per-user .env path for logid.

    Windows: %LOCALAPPDATA%/logid/.env
    macOS:   $HOME/Library/Application Support/logid/.env
    Linux:   $HOME/.config/logid/.env
    """
    import platform as _platform

    system = _platform.system().lower()
    if system.startswith("win"):
        base = os.getenv("LOCALAPPDATA", os.path.expanduser("~"))
        return str(Path(base) / "logid" / ".env")
    if system == "darwin":
        return str(Path.home() / "Library" / "Application Support" / "logid" / ".env")
    return str(Path.home() / ".config" / "logid" / ".env")


def candidate_env_paths() -> List[str]:
    """Search order: ./.env first, then the per-user file."""
    return [str(Path.cwd() / ".env"), resolve_env_path()]


def load_env_file(path: str) -> bool:
    """Load environment variables from the given .env path.

    Returns True if the file exists and loading did not raise; False otherwise.
    Variables already present in the process environment win.
    Does not log or expose secret values.
    """
    try:
        if not path:
            return False
        if not os.path.exists(path):
            return False
        load_dotenv(path, override=False)
        return True
    except Exception:
        return False


def load_env() -> Optional[str]:
    """Load the first .env found in the search order and return its path."""
    log = get_logger()
    paths = candidate_env_paths()
    for p in paths:
        if load_env_file(p):
            log.info("loaded env file path=%s", p)
            return p
    log.warning(
        "no .env file found (searched %s); set %s or a region variable such as CAS_SESSION_US",
        ", ".join(paths),
        GENERIC_CREDENTIAL_VAR,
    )
    return None


def get_session_credential(region: Region, env: Optional[Mapping[str, str]] = None) -> str:
    """Return the session cookie for ``region``.

    The region variable wins; the generic CAS_SESSION is the fallback. Empty
    values count as absent.
    """
    source = os.environ if env is None else env
    log = get_logger()
    value = (source.get(region.credential_var) or "").strip()
    if value:
        log.info("using region credential var=%s", region.credential_var)
        return value
    value = (source.get(GENERIC_CREDENTIAL_VAR) or "").strip()
    if value:
        log.info("using generic credential var=%s region=%s", GENERIC_CREDENTIAL_VAR, region.key)
        return value
    raise MissingCredentials(region.key, region.credential_var)
