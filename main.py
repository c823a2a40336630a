"""
Command-line entry point for inspecting a tutorial's schedule.

Prints the slot grid for one day, or the occupancy tier of every day
in a month, against the configured REST API.

Usage:
    Slot grid:        python main.py slots --tutorial-id 12 --date 2026-11-02
    Month occupancy:  python main.py month --tutorial-id 12 --month 2026-11
    Local generation: python main.py slots --tutorial-id 12 --date 2026-11-02 --local --token ...
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from typing import Optional

from mentorbook.config import settings
from mentorbook.scheduling.occupancy import MonthOccupancyAggregator
from mentorbook.scheduling.slot_generator import SlotGenerator
from mentorbook.schemas.occupancy_schema import OccupancyTier
from mentorbook.services.availability import AvailabilityRegistry
from mentorbook.services.client import ApiClient, ApiError, static_token
from mentorbook.services.lessons import LessonService
from mentorbook.services.slots import RemoteSlotSource, SlotGenerationError, SlotSource
from mentorbook.services.tutorials import TutorialService
from mentorbook.utils import month_days, parse_month

logger = logging.getLogger(__name__)

TIER_LABELS = {
    OccupancyTier.SMOOTH: "smooth",
    OccupancyTier.SLIGHT: "slight",
    OccupancyTier.BUSY: "busy",
    OccupancyTier.FULL: "full",
    OccupancyTier.UNAVAILABLE: "-",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect lesson slots and calendar occupancy for a tutorial."
    )
    parser.add_argument("--base-url", default=settings.api.base_url, help="REST API base URL.")
    parser.add_argument("--token", default=None, help="Bearer token for authenticated calls.")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Generate slots locally from availability and bookings (needs mentor credentials).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    slots = sub.add_parser("slots", help="Print the slot grid for one date.")
    slots.add_argument("--tutorial-id", type=int, required=True)
    slots.add_argument("--date", type=date.fromisoformat, required=True, help="YYYY-MM-DD")

    month = sub.add_parser("month", help="Print occupancy tiers for a month.")
    month.add_argument("--tutorial-id", type=int, required=True)
    month.add_argument("--month", type=parse_month, default=date.today(), help="YYYY-MM")
    return parser


def _slot_source(args: argparse.Namespace, client: ApiClient) -> SlotSource:
    if args.local:
        logger.debug("Generating slots locally")
        return SlotGenerator(AvailabilityRegistry(client), LessonService(client))
    return RemoteSlotSource(client)


async def _run(args: argparse.Namespace) -> int:
    async with ApiClient(static_token(args.token), base_url=args.base_url) as client:
        try:
            tutorial = await TutorialService(client).get_tutorial(args.tutorial_id)
        except ApiError as exc:
            print(f"Could not load tutorial {args.tutorial_id}: {exc}", file=sys.stderr)
            return 1

        source = _slot_source(args, client)
        print(f"{tutorial.title} ({tutorial.duration} min, mentor {tutorial.mentor_id})")

        if args.command == "slots":
            try:
                slots = await source.generate_slots(tutorial, args.date)
            except SlotGenerationError as exc:
                print(f"Slots unknown: {exc}", file=sys.stderr)
                return 1
            if not slots:
                print(f"No availability on {args.date}.")
            for slot in slots:
                status = "open" if slot.available else f"taken ({slot.reason or 'unavailable'})"
                print(f"  {slot.time}  {status}")
            return 0

        aggregator = MonthOccupancyAggregator(source, AvailabilityRegistry(client))
        occupancy = await aggregator.compute_month_occupancy(tutorial, args.month)
        for day in month_days(occupancy.month):
            entry = occupancy.days.get(day)
            tier = occupancy.tier_for(day)
            label = TIER_LABELS[tier] if tier is not None else "?"
            counts = f"{entry.available_count}/{entry.total_count}" if entry else ""
            print(f"  {day.isoformat()} {day.strftime('%a')}  {label:<7} {counts}")
        return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
