"""Console entry point: one login, one snapshot, optionally one spend pass"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional, Sequence

from bonus_manager.api.v1.schemas import run_summary_schema, snapshot_response
from bonus_manager.config import Settings, settings
from bonus_manager.domain.exceptions import DomainException, LoginError
from bonus_manager.engine.runner import run_once
from bonus_manager.engine.session import SnapshotRead
from bonus_manager.infrastructure.observability.logging import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bonus-manager",
        description="Keep the bonus point balance under the cap by spending the overflow.",
    )
    parser.add_argument("--apply", action="store_true", help="Submit planned actions (default is a dry run)")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--snapshot", action="store_true", help="Only read and print the current state")
    parser.add_argument("--json", action="store_true", help="Single-line JSON on stdout")
    return parser


def resolve_settings(args: argparse.Namespace, base: Settings = settings) -> Settings:
    """Flags only ever switch behavior on; environment values stay otherwise"""
    update = {}
    if args.apply:
        update["apply"] = True
    if args.headed:
        update["headless"] = False
    if args.snapshot:
        update["snapshot_only"] = True
    if args.json:
        update["json_output"] = True
    return base.model_copy(update=update)


def render(result, json_output: bool) -> str:
    if isinstance(result, SnapshotRead):
        model = snapshot_response(result.snapshot, result.extraction.evidence)
        header = "Bonus snapshot"
    else:
        model = run_summary_schema(result)
        header = "Run summary"

    if json_output:
        return model.model_dump_json(by_alias=True)
    return f"{header}:\n{model.model_dump_json(by_alias=True, indent=2)}"


def main(argv: Optional[Sequence[str]] = None, base: Settings = settings) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    run_settings = resolve_settings(args, base)
    setup_logging(run_settings.log_level, stream=sys.stderr, service_name=run_settings.service_name)

    try:
        result = asyncio.run(run_once(run_settings))
    except DomainException as e:
        extra = {"error_type": type(e).__name__}
        if isinstance(e, LoginError) and e.hint:
            extra["hint"] = e.hint
        logger.error("Run failed", extra=extra)
        if run_settings.json_output:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"Run failed: {e}", file=sys.stderr)
        return 1

    print(render(result, run_settings.json_output))
    return 0


if __name__ == "__main__":
    sys.exit(main())
