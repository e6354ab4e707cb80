from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import httpx

from .cache import TokenCache
from .config import get_region_config
from .config_env import get_session_credential
from .errors import LogidError, UnsupportedRegion
from .filters import RedactionPipeline
from .logger import get_logger
from .models import LogQueryResponse, QueryResult
from .services import AuthClient, QueryClient, create_async_client

RegionOutcome = Union[QueryResult, LogidError]


@dataclass
class _RegionStack:
    auth: AuthClient
    tokens: TokenCache
    query: QueryClient
    http: Optional[httpx.AsyncClient]  # owned client, None when shared


class MultiRegionDispatcher:
    """One auth/token/query stack per region, built eagerly.

    Construction is all or nothing: an unknown key or a missing credential for
    any region aborts it.
    """

    def __init__(
        self,
        region_keys: Iterable[str],
        env: Optional[Mapping[str, str]] = None,
        pipeline: Optional[RedactionPipeline] = None,
        client: Optional[httpx.AsyncClient] = None,
        auth_client: Optional[AuthClient] = None,
    ):
        log = get_logger()
        self.pipeline = pipeline if pipeline is not None else RedactionPipeline.from_config()
        self._stacks: Dict[str, _RegionStack] = {}
        # one stack per region; repeated keys collapse, first position kept
        keys = list(dict.fromkeys(k.strip().lower() for k in region_keys))
        # resolve every region and credential before opening any connection
        resolved = []
        for key in keys:
            region = get_region_config(key)
            if region is None:
                raise UnsupportedRegion(key)
            resolved.append((region, get_session_credential(region, env)))
        for region, credential in resolved:
            http = create_async_client() if client is None else None
            shared = http if http is not None else client
            auth = auth_client if auth_client is not None else AuthClient(shared)
            tokens = TokenCache(region, credential, auth)
            query = QueryClient(region, tokens, self.pipeline, shared)
            self._stacks[region.key] = _RegionStack(auth, tokens, query, http)
            log.info("initialized region=%s", region.key)
        log.info("dispatcher ready regions=%d", len(self._stacks))

    def managed_regions(self) -> List[str]:
        return list(self._stacks)

    def get_client(self, region_key: str) -> Optional[QueryClient]:
        stack = self._stacks.get((region_key or "").strip().lower())
        return stack.query if stack is not None else None

    def _require_client(self, region_key: str) -> QueryClient:
        qc = self.get_client(region_key)
        if qc is None:
            raise UnsupportedRegion(region_key)
        return qc

    async def query(self, region_key: str, log_id: str, service_filter: Sequence[str] = ()) -> QueryResult:
        return await self._require_client(region_key).query(log_id, service_filter)

    async def query_logs_region(self, region_key: str, log_id: str, service_filter: Sequence[str] = ()) -> LogQueryResponse:
        return await self._require_client(region_key).query_logs(log_id, service_filter)

    async def query_all(self, log_id: str, service_filter: Sequence[str] = ()) -> Dict[str, RegionOutcome]:
        """Query every region concurrently; each outcome is kept separately."""
        keys = list(self._stacks)
        results = await asyncio.gather(
            *(self._stacks[k].query.query(log_id, service_filter) for k in keys),
            return_exceptions=True,
        )
        out: Dict[str, RegionOutcome] = {}
        for key, res in zip(keys, results):
            if isinstance(res, LogidError):
                get_logger().error("region=%s failed: %s", key, res)
                out[key] = res
            elif isinstance(res, BaseException):
                raise res
            else:
                out[key] = res
        return out

    async def refresh_all_tokens(self) -> Dict[str, Union[str, LogidError]]:
        out: Dict[str, Union[str, LogidError]] = {}
        for key, stack in self._stacks.items():
            try:
                out[key] = await stack.tokens.refresh()
            except LogidError as e:
                out[key] = e
        return out

    async def aclose(self) -> None:
        for stack in self._stacks.values():
            if stack.http is not None:
                await stack.http.aclose()

    async def __aenter__(self) -> "MultiRegionDispatcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
