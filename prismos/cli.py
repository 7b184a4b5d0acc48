"""Command-line interface for the PrismOS agent kernel."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .app import build_kernel
from .config import load_config
from .logging_setup import configure_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="prismos",
        description="Autonomous LP management agent kernel",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    run_parser = sub.add_parser("run", help="Run the position and settlement schedules")
    run_parser.add_argument(
        "--position-minutes",
        type=int,
        default=None,
        help="Position check interval in minutes (overrides config)",
    )
    run_parser.add_argument(
        "--settlement-hours",
        type=int,
        default=None,
        help="Settlement interval in hours (overrides config)",
    )

    sub.add_parser("tick", help="Run a single position-loop pass")
    sub.add_parser("settle", help="Settle accumulated fees once")

    return parser


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    kernel = build_kernel(config)

    if args.command == "run":
        scheduler = kernel.scheduler
        if args.position_minutes:
            scheduler.position_interval_s = args.position_minutes * 60
        if args.settlement_hours:
            scheduler.settlement_interval_s = args.settlement_hours * 3600
        await scheduler.run_forever()
    elif args.command == "tick":
        await kernel.position_loop.run()
    elif args.command == "settle":
        await kernel.settlement.run_settlement()
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
