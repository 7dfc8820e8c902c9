"""
One-off campaign run from the command line (cron, manual backfills).

Examples:
    python -m app.jobs.run_campaign location
    python -m app.jobs.run_campaign support
    python -m app.jobs.run_campaign announcement
    python -m app.jobs.run_campaign weekly
    python -m app.jobs.run_campaign broadcast --template update_location_cron_util --dispatch-type manual
"""

import argparse
import asyncio
import json
import logging
import sys

from app.core.log_config import configure_logging
from app.services.campaigns import (
    run_announcement_campaign,
    run_template_broadcast,
    run_weekly_campaign,
)
from app.services.location_reminders import run_location_reminders
from app.services.scheduler import run_job
from app.services.support_reminders import run_support_reminders

logger = logging.getLogger(__name__)

CAMPAIGNS = {
    "location": run_location_reminders,
    "support": run_support_reminders,
    "announcement": run_announcement_campaign,
    "weekly": run_weekly_campaign,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a vendor campaign once")
    parser.add_argument("campaign", choices=[*CAMPAIGNS, "broadcast"])
    parser.add_argument("--template", help="Template name (broadcast only)")
    parser.add_argument("--dispatch-type", default="broadcast", help="Dispatch type (broadcast only)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.campaign == "broadcast":
        if not args.template:
            parser.error("broadcast requires --template")

        async def func(db):
            return await run_template_broadcast(db, args.template, args.dispatch_type)
    else:
        func = CAMPAIGNS[args.campaign]

    result = asyncio.run(run_job(f"cli.{args.campaign}", func))
    if result is None:
        logger.error(f"Campaign {args.campaign} failed (see system events)")
        sys.exit(1)
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
