from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Mapping, Optional, Sequence

from logid_core import setup_logging_redaction
from logid_core.config import REGIONS, supported_regions
from logid_core.config_env import load_env
from logid_core.dispatch import MultiRegionDispatcher
from logid_core.errors import (
    AuthenticationFailed,
    LogidError,
    MissingCredentials,
    NetworkError,
    QueryFailed,
    RegionNotConfigured,
    UnsupportedRegion,
)
from logid_core.export import (
    OutputConfig,
    export_multi_json,
    export_result_json,
    format_multi_json,
    format_result_json,
)
from logid_core.filters import RedactionPipeline
from logid_core.logger import setup_diagnostics_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="logid", description="Query the log service by log id.")
    sub = parser.add_subparsers(dest="command", required=True)
    q = sub.add_parser(
        "query",
        help="query logs by log id",
        description=(
            "Examples:\n"
            "  logid query 550e8400-e29b-41d4-a716-446655440000 --region us\n"
            "  logid query logid123 --region i18n --psm service.psm\n"
            "  logid query logid456 --all --psm psm1 --psm psm2\n\n"
            "Credentials come from CAS_SESSION_<REGION> (CAS_SESSION_US, CAS_SESSION_I18n,\n"
            "CAS_SESSION_CN) or the generic CAS_SESSION, in the environment or a .env file."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    q.add_argument("logid", help="log id to look up")
    target = q.add_mutually_exclusive_group(required=True)
    target.add_argument("-r", "--region", help="region to query (%s)" % "/".join(supported_regions()))
    target.add_argument("--all", action="store_true", help="query every configured region")
    q.add_argument("-p", "--psm", action="append", default=[], help="service name filter, repeatable")
    q.add_argument("--filters", default=None, help="path to a message filter JSON file")
    q.add_argument("-o", "--output", default="", help="write JSON to this file instead of stdout")
    q.add_argument("--tag-infos", action="store_true", help="include tag_infos in the output")
    q.add_argument("--no-meta", action="store_true", help="omit meta and scan_time_range")
    return parser


def configured_regions() -> List[str]:
    return [r.key for r in REGIONS.values() if r.is_configured()]


async def run_cli(
    logid: str,
    region: Optional[str],
    psm: Sequence[str],
    query_all: bool = False,
    filters_path: Optional[str] = None,
    out_path: str = "",
    cfg: Optional[OutputConfig] = None,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    pipeline = RedactionPipeline.from_config(filters_path)
    cfg = cfg or OutputConfig()
    if query_all or not region:
        async with MultiRegionDispatcher(configured_regions(), env=env, pipeline=pipeline) as dispatcher:
            results = await dispatcher.query_all(logid, list(psm))
        if out_path:
            export_multi_json(out_path, results, cfg)
            print(f"Wrote {out_path}")
        else:
            print(format_multi_json(results, cfg))
        return
    async with MultiRegionDispatcher([region], env=env, pipeline=pipeline) as dispatcher:
        result = await dispatcher.query(region, logid, list(psm))
    if out_path:
        export_result_json(out_path, result, cfg)
        print(f"Wrote {out_path}")
    else:
        print(format_result_json(result, cfg))


def print_error(err: LogidError) -> None:
    """Print a short hint for each error class."""
    out = sys.stderr
    print(f"error: {err}", file=out)
    if isinstance(err, UnsupportedRegion):
        print(f"supported regions: {', '.join(supported_regions())}", file=out)
    elif isinstance(err, RegionNotConfigured):
        print("this region has no log service configured yet", file=out)
    elif isinstance(err, MissingCredentials):
        print(f"set {err.variable} (or CAS_SESSION) in the environment or a .env file", file=out)
        print(f"e.g. export {err.variable}=your_session_cookie", file=out)
    elif isinstance(err, AuthenticationFailed):
        print("check that the CAS_SESSION cookie is still valid and the network is reachable", file=out)
    elif isinstance(err, NetworkError):
        print("check the network connection, proxy and firewall settings", file=out)
    elif isinstance(err, QueryFailed):
        print("check the log id or try again later", file=out)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging_redaction()
    setup_diagnostics_logger()
    load_env()
    cfg = OutputConfig(
        show_metadata=not args.no_meta,
        show_scan_time_range=not args.no_meta,
        show_tag_infos=args.tag_infos,
    )
    try:
        asyncio.run(
            run_cli(
                args.logid,
                args.region,
                args.psm,
                query_all=args.all,
                filters_path=args.filters,
                out_path=args.output,
                cfg=cfg,
            )
        )
    except LogidError as e:
        print_error(e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
