from __future__ import annotations

import argparse
import json
import os
import subprocess
import sys
from pathlib import Path
from typing import Any

import requests  # type: ignore[import-untyped]

from pixelpress_core.config import get_config
from pixelpress_core.events.eventarc import parse_cloudevent, parse_storage_object
from pixelpress_core.events.storage_event import StorageEvent
from pixelpress_core.logging import configure_logging
from pixelpress_core.optimize.guards import is_allowed_content_type, is_already_processed
from pixelpress_core.optimize.pipeline import (
    REASON_ALREADY_COMPRESSED,
    REASON_UNSUPPORTED_CONTENT_TYPE,
    build_compressor,
    build_fetcher,
    process_event,
)
from pixelpress_core.storage.interfaces import ObjectSink

SERVICE_APP = "gcp_adapter.optimizer_service:app"


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _load_event(path: str) -> StorageEvent:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Event file must contain a JSON object")
    if "specversion" in raw or isinstance(raw.get("data"), dict):
        return parse_cloudevent(raw)
    return parse_storage_object(raw)


def _build_sink(local_root: str | None) -> ObjectSink:
    if local_root:
        from local_adapter.object_sink import LocalObjectSink

        return LocalObjectSink(local_root)
    from gcp_adapter.gcs_sink import GcsObjectSink

    return GcsObjectSink()


def _uvicorn_cmd(target: str, host: str, port: int, log_level: str) -> list[str]:
    return [
        sys.executable,
        "-m",
        "uvicorn",
        target,
        "--host",
        host,
        "--port",
        str(port),
        "--log-level",
        log_level,
    ]


def cmd_inspect(args: argparse.Namespace) -> int:
    event = _load_event(args.event)
    decision = "process"
    reason = None
    if is_already_processed(event):
        decision, reason = "skip", REASON_ALREADY_COMPRESSED
    elif not is_allowed_content_type(event.content_type):
        decision, reason = "skip", REASON_UNSUPPORTED_CONTENT_TYPE
    _print_json(
        {
            "uri": event.uri,
            "content_type": event.content_type,
            "decision": decision,
            "reason": reason,
        }
    )
    return 0


def cmd_optimize(args: argparse.Namespace) -> int:
    configure_logging(service="pixelpress-cli", env=os.getenv("ENV", "local"))
    event = _load_event(args.event)
    config = get_config()
    with requests.Session() as session:
        outcome = process_event(
            event=event,
            compressor=build_compressor(config, session=session),
            fetcher=build_fetcher(config, session=session),
            sink=_build_sink(args.local_root),
            staging_root=args.staging_dir or config.staging_dir,
            chunk_bytes=config.copy_chunk_bytes,
        )
    _print_json(
        {
            "uri": event.uri,
            "state": outcome.state.value,
            "reason": outcome.reason,
            "result_url": outcome.result_url,
            "bytes_published": outcome.bytes_published,
            "saved_bytes": outcome.saved_bytes,
        }
    )
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    cmd = _uvicorn_cmd(SERVICE_APP, args.host, args.port, args.log_level)
    if args.dry_run:
        print(" ".join(cmd))
        return 0
    return subprocess.call(cmd)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pixelpress")
    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser(
        "inspect", help="Show whether an event would be optimized"
    )
    inspect_parser.add_argument("--event", required=True, help="Event JSON file")
    inspect_parser.set_defaults(func=cmd_inspect)

    optimize_parser = subparsers.add_parser(
        "optimize", help="Optimize the object referenced by an event"
    )
    optimize_parser.add_argument("--event", required=True, help="Event JSON file")
    optimize_parser.add_argument(
        "--local-root", help="Write to a local directory instead of GCS"
    )
    optimize_parser.add_argument("--staging-dir")
    optimize_parser.set_defaults(func=cmd_optimize)

    serve_parser = subparsers.add_parser("serve", help="Run the optimizer service")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8080)
    serve_parser.add_argument("--log-level", default="info")
    serve_parser.add_argument("--dry-run", action="store_true", help="Print command only")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "command", None):
        parser.print_help()
        return 2
    try:
        return args.func(args)
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
