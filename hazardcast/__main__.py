"""
Command-line assessment.

    python -m hazardcast 29.7604 -95.3698 --hazards flood,hurricane
"""

import argparse
import asyncio
import json
import sys
from typing import Optional, Sequence

import structlog

from hazardcast.engine.aggregator import ClimateRiskAggregator
from hazardcast.exceptions import HazardCastError, ValidationError
from hazardcast.observability import configure_logging

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hazardcast",
        description="Aggregate climate hazard scores for a coordinate",
    )
    parser.add_argument("latitude", type=float, help="Decimal degrees, -90..90")
    parser.add_argument("longitude", type=float, help="Decimal degrees, -180..180")
    parser.add_argument("--hazards", default="all", help='Comma-separated hazards or "all"')
    parser.add_argument("--force-refresh", action="store_true", help="Bypass cached results")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--log-format", default=None, choices=["console", "json"])
    parser.add_argument("--compact", action="store_true", help="Single-line JSON output")
    return parser


async def _run(args: argparse.Namespace) -> dict:
    aggregator = ClimateRiskAggregator()
    try:
        assessment = await aggregator.assess(
            args.latitude,
            args.longitude,
            args.hazards,
            {"force_refresh": args.force_refresh},
        )
    finally:
        await aggregator.aclose()
    return assessment.model_dump(mode="json")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level, fmt=args.log_format)

    try:
        result = asyncio.run(_run(args))
    except ValidationError as e:
        print(json.dumps({"success": False, "error": e.to_dict()}), file=sys.stderr)
        return 2
    except HazardCastError as e:
        logger.error("assessment_aborted", error=e.message, code=e.code.value)
        print(json.dumps({"success": False, "error": e.to_dict()}), file=sys.stderr)
        return 1

    print(json.dumps(result, indent=None if args.compact else 2))
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        pass
