from __future__ import annotations

import time
from typing import Any, Callable, List, Optional, Sequence

import httpx

from . import config
from .cache import TokenCache
from .config import Region
from .errors import AuthenticationFailed, NetworkError, QueryFailed, RegionNotConfigured
from .filters import RedactionPipeline
from .logger import get_logger
from .models import (
    CachedToken,
    ExtractedMessage,
    ExtractedValue,
    LogData,
    LogMeta,
    LogQueryResponse,
    QueryRequest,
    QueryResult,
    ResponseShape,
    now_iso,
    resolve_response_shape,
)


def proxy_display(proxy: str) -> str:
    """Scheme, host and port of a proxy URL; credentials are dropped."""
    try:
        u = httpx.URL(proxy if "://" in proxy else f"http://{proxy}")
    except httpx.InvalidURL:
        return "<unparseable proxy>"
    port = f":{u.port}" if u.port else ""
    return f"{u.scheme}://{u.host}{port}"


def create_async_client(timeout_seconds: float = config.DEFAULT_TIMEOUT, proxy: Optional[str] = None) -> httpx.AsyncClient:
    """Build the shared client: browser-like headers, fixed timeout, env proxy."""
    proxy = proxy or config.resolve_proxy()
    if proxy:
        get_logger().info("using proxy %s", proxy_display(proxy))
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        headers=dict(config.DEFAULT_HEADERS),
        proxy=proxy,
        follow_redirects=True,
    )


class AuthClient:
    """Exchanges a session cookie for a bearer token."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        lifetime_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if lifetime_seconds is None:
            lifetime_seconds = config.token_lifetime_seconds()
            if lifetime_seconds <= config.TOKEN_SAFETY_MARGIN_SECONDS:
                get_logger().warning(
                    "LOGID_TOKEN_LIFETIME=%s does not exceed the %ss safety margin; using %s",
                    lifetime_seconds,
                    config.TOKEN_SAFETY_MARGIN_SECONDS,
                    config.DEFAULT_TOKEN_LIFETIME_SECONDS,
                )
                lifetime_seconds = config.DEFAULT_TOKEN_LIFETIME_SECONDS
        elif lifetime_seconds <= config.TOKEN_SAFETY_MARGIN_SECONDS:
            raise ValueError(f"token lifetime must exceed {config.TOKEN_SAFETY_MARGIN_SECONDS}s, got {lifetime_seconds}")
        self.lifetime_seconds = lifetime_seconds
        self._owns_client = client is None
        self.client = client if client is not None else create_async_client()
        self.clock = clock

    async def fetch_token(self, region: Region, session_credential: str) -> CachedToken:
        log = get_logger()
        headers = {"Cookie": f"{config.AUTH_COOKIE_NAME}={session_credential}"}
        t0 = time.monotonic()
        try:
            r = await self.client.get(region.auth_url, headers=headers)
        except (httpx.TimeoutException, httpx.RequestError) as e:
            log.error("auth request failed region=%s error=%s", region.key, e)
            raise NetworkError(region.key, str(e) or type(e).__name__) from e
        latency = int((time.monotonic() - t0) * 1000)
        log.info("auth region=%s status_code=%s latency_ms=%s", region.key, r.status_code, latency)
        if not r.is_success:
            log.error("auth rejected region=%s status_code=%s body=%s", region.key, r.status_code, r.text)
            raise AuthenticationFailed(region.key, "non-2xx response", status=r.status_code, body=r.text)
        token = (r.headers.get(config.AUTH_TOKEN_HEADER) or "").strip()
        if not token:
            raise AuthenticationFailed(region.key, f"response has no {config.AUTH_TOKEN_HEADER} header")
        return CachedToken(token, self.clock() + self.lifetime_seconds)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


def extract_messages(data: LogData, pipeline: RedactionPipeline) -> List[ExtractedMessage]:
    """One message per value that carries at least one ``_msg`` entry."""
    messages: List[ExtractedMessage] = []
    for item in data.items:
        for value in item.value:
            values: List[ExtractedValue] = []
            location: Optional[str] = None
            for kv in value.kv_list:
                if kv.key == "_msg":
                    values.append(
                        ExtractedValue(
                            key=kv.key,
                            value=pipeline.redact(kv.value),
                            original_value=kv.value,
                            type=kv.type,
                            highlight=bool(kv.highlight),
                        )
                    )
                elif kv.key == "_location":
                    location = kv.value
            if values:
                messages.append(ExtractedMessage(f"{item.id}-{value.id}", item.group, values, location, value.level))
    get_logger().info("extracted %d log messages", len(messages))
    return messages


class QueryClient:
    """Runs log-id queries against one region's log service."""

    def __init__(
        self,
        region: Region,
        token_cache: TokenCache,
        pipeline: Optional[RedactionPipeline] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.region = region
        self.token_cache = token_cache
        self.pipeline = pipeline if pipeline is not None else RedactionPipeline.from_config()
        self._owns_client = client is None
        self.client = client if client is not None else create_async_client()
        get_logger().info("query client ready region=%s url=%s", region.key, region.log_service_url or "-")

    async def query_logs(self, log_id: str, service_filter: Sequence[str] = ()) -> LogQueryResponse:
        """POST the query and parse the payload without extracting messages."""
        region = self.region
        if not region.is_configured():
            raise RegionNotConfigured(region.key)
        log = get_logger()
        req = QueryRequest(log_id, list(service_filter), region.vregion)
        log.info("query start logid=%s region=%s psm_list=%s", log_id, region.key, ",".join(req.service_filter))
        token = await self.token_cache.get_token(False)
        t0 = time.monotonic()
        try:
            r = await self.client.post(
                region.log_service_url,
                json=req.to_payload(),
                headers={config.QUERY_TOKEN_HEADER: token, "Content-Type": "application/json"},
            )
        except (httpx.TimeoutException, httpx.RequestError) as e:
            log.error("query request failed region=%s error=%s", region.key, e)
            raise NetworkError(region.key, str(e) or type(e).__name__) from e
        latency = int((time.monotonic() - t0) * 1000)
        log.info("query region=%s status_code=%s latency_ms=%s", region.key, r.status_code, latency)
        if not r.is_success:
            log.error("query rejected region=%s status_code=%s body=%s", region.key, r.status_code, r.text)
            raise QueryFailed(region.key, "non-2xx response", status=r.status_code, body=r.text)
        try:
            body: Any = r.json()
        except ValueError as e:
            raise QueryFailed(region.key, f"response is not JSON: {e}", body=r.text) from e
        return self._parse(body)

    def _parse(self, body: Any) -> LogQueryResponse:
        region = self.region
        shape, payload = resolve_response_shape(body)
        if shape is ResponseShape.EMPTY:
            get_logger().warning("response has neither data.items nor items region=%s; using empty list", region.key)
        top = body if isinstance(body, dict) else {}
        try:
            data = LogData.from_dict(payload)
            meta = LogMeta.from_dict(top.get("meta")) if "meta" in top else data.meta
        except (ValueError, TypeError) as e:
            get_logger().error("cannot parse log data region=%s error=%s", region.key, e)
            raise QueryFailed(region.key, f"unexpected payload: {e}") from e
        tag_infos = top.get("tag_infos")
        get_logger().info("query done region=%s shape=%s items_found=%d", region.key, shape.value, len(data.items))
        return LogQueryResponse(
            data=data,
            shape=shape,
            meta=meta,
            tag_infos=tag_infos if isinstance(tag_infos, list) else None,
            region=region.key,
            region_display_name=region.display_name,
            timestamp=now_iso(),
        )

    def extract_log_messages(self, data: LogData) -> List[ExtractedMessage]:
        return extract_messages(data, self.pipeline)

    async def query(self, log_id: str, service_filter: Sequence[str] = ()) -> QueryResult:
        resp = await self.query_logs(log_id, service_filter)
        meta = resp.meta
        return QueryResult(
            logid=log_id,
            region=resp.region,
            region_display_name=resp.region_display_name,
            total_items=len(resp.data.items),
            messages=self.extract_log_messages(resp.data),
            timestamp=resp.timestamp,
            meta=meta,
            scan_time_range=meta.scan_time_range if meta is not None else None,
            tag_infos=resp.tag_infos,
            level_list=meta.level_list if meta is not None else None,
        )

    get_log_details = query

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
