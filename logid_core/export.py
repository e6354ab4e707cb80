from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from .errors import LogidError
from .models import QueryResult


@dataclass
class OutputConfig:
    show_metadata: bool = True
    show_scan_time_range: bool = True
    show_tag_infos: bool = False


def result_to_dict(result: QueryResult, cfg: Optional[OutputConfig] = None) -> Dict[str, Any]:
    cfg = cfg or OutputConfig()
    d = result.to_dict()
    # level_list is folded into meta on output
    d.pop("level_list", None)
    if not cfg.show_metadata:
        d.pop("meta", None)
    if not cfg.show_scan_time_range:
        d.pop("scan_time_range", None)
    if not cfg.show_tag_infos:
        d.pop("tag_infos", None)
    return d


def error_to_dict(err: LogidError) -> Dict[str, Any]:
    d: Dict[str, Any] = {"error": type(err).__name__, "message": str(err)}
    status = getattr(err, "status", None)
    if status is not None:
        d["status"] = status
    return d


def format_result_json(result: QueryResult, cfg: Optional[OutputConfig] = None) -> str:
    return json.dumps(result_to_dict(result, cfg), indent=2, ensure_ascii=False)


def format_multi_json(results: Mapping[str, Union[QueryResult, LogidError]], cfg: Optional[OutputConfig] = None) -> str:
    data: Dict[str, Any] = {}
    for region, res in results.items():
        if isinstance(res, LogidError):
            data[region] = error_to_dict(res)
        else:
            data[region] = result_to_dict(res, cfg)
    return json.dumps(data, indent=2, ensure_ascii=False)


def export_result_json(path: str, result: QueryResult, cfg: Optional[OutputConfig] = None) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(format_result_json(result, cfg))


def export_multi_json(
    path: str, results: Mapping[str, Union[QueryResult, LogidError]], cfg: Optional[OutputConfig] = None
) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(format_multi_json(results, cfg))
