from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, AsyncIterator, Optional

from .config import Region
from .logger import get_logger
from .models import CachedToken

if TYPE_CHECKING:
    from .services import AuthClient


class AsyncRWLock:
    """Reader/writer lock for a single event loop.

    Any number of readers may hold it together; a writer holds it alone.
    Waiting writers block new readers.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextlib.asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._writer and not self._writers_waiting)
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextlib.asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class TokenCache:
    """Holds at most one bearer token for one region.

    The entry is replaced wholesale after every successful fetch. Concurrent
    refreshes are not merged; each completes and the last one to store wins.
    Fetch errors propagate unchanged and nothing is retried here.
    """

    def __init__(self, region: Region, session_credential: str, auth_client: "AuthClient"):
        self.region = region
        self._credential = session_credential
        self._auth = auth_client
        self._lock = AsyncRWLock()
        self._cached: Optional[CachedToken] = None
        self.fetch_count = 0

    @property
    def cached(self) -> Optional[CachedToken]:
        return self._cached

    async def get_token(self, force_refresh: bool = False) -> str:
        log = get_logger()
        if not force_refresh:
            async with self._lock.read():
                current = self._cached
            if current is not None and current.is_usable(self._auth.clock()):
                log.debug("token cache hit region=%s", self.region.key)
                return current.value
        log.info("fetching token region=%s forced=%s", self.region.key, force_refresh)
        self.fetch_count += 1
        token = await self._auth.fetch_token(self.region, self._credential)
        async with self._lock.write():
            self._cached = token
        return token.value

    async def refresh(self) -> str:
        return await self.get_token(force_refresh=True)

    async def is_token_valid(self) -> bool:
        async with self._lock.read():
            current = self._cached
        return current is not None and current.is_usable(self._auth.clock())

    async def invalidate(self) -> None:
        async with self._lock.write():
            self._cached = None
