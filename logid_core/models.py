from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .config import SCAN_SPAN_MINUTES, TOKEN_SAFETY_MARGIN_SECONDS


@dataclass(frozen=True)
class CachedToken:
    value: str
    expires_at: float  # monotonic seconds

    def is_usable(self, now: float) -> bool:
        return now < self.expires_at - TOKEN_SAFETY_MARGIN_SECONDS


@dataclass
class QueryRequest:
    log_id: str
    service_filter: List[str]
    virtual_region: str
    scan_window_minutes: int = SCAN_SPAN_MINUTES

    def __post_init__(self) -> None:
        # ordered set: keep first occurrence
        seen: Dict[str, None] = {}
        for s in self.service_filter:
            s = str(s).strip()
            if s:
                seen.setdefault(s, None)
        self.service_filter = list(seen)

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"logid": self.log_id}
        if self.service_filter:
            body["psm_list"] = list(self.service_filter)
        body["scan_span_in_min"] = self.scan_window_minutes
        body["vregion"] = self.virtual_region
        return body


# Typed payload parsing. Shape errors raise ValueError; the query client turns
# them into QueryFailed.

def _require(d: Any, key: str, kind: type, where: str) -> Any:
    if not isinstance(d, dict):
        raise ValueError(f"{where}: expected object, got {type(d).__name__}")
    if key not in d:
        raise ValueError(f"{where}: missing field '{key}'")
    v = d[key]
    if not isinstance(v, kind):
        raise ValueError(f"{where}.{key}: expected {kind.__name__}, got {type(v).__name__}")
    return v


def _opt(d: Dict[str, Any], key: str, kind: type, where: str) -> Any:
    v = d.get(key)
    if v is not None and not isinstance(v, kind):
        raise ValueError(f"{where}.{key}: expected {kind.__name__} or null, got {type(v).__name__}")
    return v


@dataclass
class LogKv:
    key: str
    value: str
    type: Optional[str] = None
    highlight: Optional[bool] = None

    @classmethod
    def from_dict(cls, d: Any) -> "LogKv":
        key = _require(d, "key", str, "kv")
        value = _require(d, "value", str, "kv")
        return cls(key, value, _opt(d, "type", str, "kv"), _opt(d, "highlight", bool, "kv"))


@dataclass
class LogValue:
    id: str
    kv_list: List[LogKv]
    level: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Any) -> "LogValue":
        vid = _require(d, "id", str, "value")
        kvs = _require(d, "kv_list", list, "value")
        return cls(vid, [LogKv.from_dict(kv) for kv in kvs], _opt(d, "level", str, "value"))


@dataclass
class LogGroup:
    psm: Optional[str] = None
    pod_name: Optional[str] = None
    ipv4: Optional[str] = None
    env: Optional[str] = None
    vregion: Optional[str] = None
    idc: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Any) -> "LogGroup":
        if not isinstance(d, dict):
            raise ValueError(f"group: expected object, got {type(d).__name__}")
        return cls(
            psm=_opt(d, "psm", str, "group"),
            pod_name=_opt(d, "pod_name", str, "group"),
            ipv4=_opt(d, "ipv4", str, "group"),
            env=_opt(d, "env", str, "group"),
            vregion=_opt(d, "vregion", str, "group"),
            idc=_opt(d, "idc", str, "group"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "psm": self.psm,
            "pod_name": self.pod_name,
            "ipv4": self.ipv4,
            "env": self.env,
            "vregion": self.vregion,
            "idc": self.idc,
        }


@dataclass
class LogItem:
    id: str
    group: LogGroup
    value: List[LogValue]

    @classmethod
    def from_dict(cls, d: Any) -> "LogItem":
        iid = _require(d, "id", str, "item")
        group = LogGroup.from_dict(_require(d, "group", dict, "item"))
        values = _require(d, "value", list, "item")
        return cls(iid, group, [LogValue.from_dict(v) for v in values])


@dataclass
class TimeRange:
    start: Optional[int] = None
    end: Optional[int] = None

    @classmethod
    def from_dict(cls, d: Any) -> "TimeRange":
        if not isinstance(d, dict):
            return cls()
        start, end = d.get("start"), d.get("end")
        return cls(int(start) if start is not None else None, int(end) if end is not None else None)

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end}


@dataclass
class LogMeta:
    scan_time_range: Optional[List[TimeRange]] = None
    level_list: Optional[List[str]] = None
    other: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Any) -> Optional["LogMeta"]:
        if not isinstance(d, dict):
            return None
        ranges = d.get("scan_time_range")
        levels = d.get("level_list")
        other = {k: v for k, v in d.items() if k not in ("scan_time_range", "level_list")}
        return cls(
            [TimeRange.from_dict(r) for r in ranges] if isinstance(ranges, list) else None,
            [str(x) for x in levels] if isinstance(levels, list) else None,
            other,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = dict(self.other)
        d["scan_time_range"] = [r.to_dict() for r in self.scan_time_range] if self.scan_time_range is not None else None
        d["level_list"] = self.level_list
        return d


@dataclass
class LogData:
    items: List[LogItem]
    meta: Optional[LogMeta] = None

    @classmethod
    def from_dict(cls, d: Any) -> "LogData":
        items = _require(d, "items", list, "data")
        return cls([LogItem.from_dict(i) for i in items], LogMeta.from_dict(d.get("meta")))


class ResponseShape(enum.Enum):
    NESTED = "data.items"
    FLAT = "items"
    EMPTY = "empty"


def resolve_response_shape(body: Any) -> Tuple[ResponseShape, Dict[str, Any]]:
    """Pick the object that holds ``items``.

    Priority: ``data.items``, then top-level ``items``, else an empty list.
    """
    if isinstance(body, dict):
        inner = body.get("data")
        if isinstance(inner, dict) and "items" in inner:
            return ResponseShape.NESTED, inner
        if "items" in body:
            return ResponseShape.FLAT, body
    return ResponseShape.EMPTY, {"items": []}


@dataclass
class ExtractedValue:
    key: str
    value: str
    original_value: str
    type: Optional[str]
    highlight: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "original_value": self.original_value,
            "type": self.type,
            "highlight": self.highlight,
        }


@dataclass
class ExtractedMessage:
    id: str
    group: LogGroup
    values: List[ExtractedValue]
    location: Optional[str]
    level: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "group": self.group.to_dict(),
            "values": [v.to_dict() for v in self.values],
            "location": self.location,
            "level": self.level,
        }


@dataclass
class LogQueryResponse:
    data: LogData
    shape: ResponseShape
    meta: Optional[LogMeta]
    tag_infos: Optional[List[Any]]
    region: str
    region_display_name: str
    timestamp: str


@dataclass
class QueryResult:
    logid: str
    region: str
    region_display_name: str
    total_items: int
    messages: List[ExtractedMessage]
    timestamp: str
    meta: Optional[LogMeta] = None
    scan_time_range: Optional[List[TimeRange]] = None
    tag_infos: Optional[List[Any]] = None
    level_list: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "logid": self.logid,
            "region": self.region,
            "region_display_name": self.region_display_name,
            "total_items": self.total_items,
            "messages": [m.to_dict() for m in self.messages],
            "timestamp": self.timestamp,
        }
        if self.meta is not None:
            d["meta"] = self.meta.to_dict()
        if self.scan_time_range is not None:
            d["scan_time_range"] = [r.to_dict() for r in self.scan_time_range]
        if self.tag_infos is not None:
            d["tag_infos"] = self.tag_infos
        if self.level_list is not None:
            d["level_list"] = self.level_list
        return d


def now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()
