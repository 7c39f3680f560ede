"""Command-line entrypoint for batch jobs."""

from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Iterable

from jobs.config import TARGET_PROTOCOLS, iter_protocols
from jobs.load_all import main as run_load_all
from jobs.snapshot import main as run_snapshot
from pipelines.insights import resolve_local_insights
from pipelines.sources.globe import GlobeProtocolConfig
from storage.records import RecordStore


def _format_protocol(protocol: GlobeProtocolConfig) -> str:
    return (
        f"{protocol.key}: protocol={protocol.protocol} file={protocol.file_name} "
        f"category={protocol.policy.category}"
    )


def _resolve_protocols_from_cli(keys: Iterable[str] | None) -> tuple[GlobeProtocolConfig, ...]:
    if not keys:
        return tuple()
    protocols = tuple(iter_protocols(keys))
    unknown = set(keys) - {p.key for p in protocols}
    if unknown:
        raise SystemExit(f"Unknown protocol keys: {', '.join(sorted(unknown))}")
    return protocols


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Local bloom insights job runner")
    parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list-sources", help="Show configured GLOBE protocols")

    fetch_parser = subparsers.add_parser(
        "fetch-sources", help="Download configured protocols into the data directory"
    )
    fetch_parser.add_argument(
        "--protocols",
        help="Comma-separated list of protocol keys to fetch (defaults to all configured)",
    )
    fetch_parser.add_argument("--start", help="First measurement date (YYYY-MM-DD)")
    fetch_parser.add_argument("--end", help="Last measurement date (YYYY-MM-DD)")

    snapshot_parser = subparsers.add_parser(
        "snapshot", help="Load local records and persist them to DuckDB"
    )
    snapshot_parser.add_argument("--db", help="DuckDB path (defaults to OBSERVATIONS_DB_PATH)")

    insights_parser = subparsers.add_parser(
        "insights", help="Print local insights for a coordinate as JSON"
    )
    insights_parser.add_argument("--lng", type=float, required=True)
    insights_parser.add_argument("--lat", type=float, required=True)
    insights_parser.add_argument("--start", help="Start of the range (ISO-8601)")
    insights_parser.add_argument("--end", help="End of the range (ISO-8601)")

    args = parser.parse_args(argv)
    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level

    if args.command == "list-sources":
        for protocol in TARGET_PROTOCOLS:
            print(_format_protocol(protocol))
        return 0

    if args.command == "fetch-sources":
        keys_arg = args.protocols.split(",") if args.protocols else None
        keys_arg = [item.strip() for item in keys_arg or [] if item.strip()]
        protocols = _resolve_protocols_from_cli(keys_arg)
        try:
            return run_load_all(protocols or None, start=args.start, end=args.end)
        except ValueError as exc:
            parser.error(str(exc))

    if args.command == "snapshot":
        return run_snapshot(args.db)

    if args.command == "insights":
        logging.basicConfig(level=os.getenv("LOG_LEVEL", "WARNING"))
        try:
            resolution = resolve_local_insights(
                RecordStore().load_all(), args.lng, args.lat, args.start, args.end
            )
        except ValueError as exc:
            parser.error(str(exc))
        payload = resolution.to_insights().model_dump(by_alias=True)
        payload["provenance"] = resolution.provenance()
        print(json.dumps(payload, indent=2))
        return 0

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
