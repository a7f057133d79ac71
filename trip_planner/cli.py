"""
Command line access to a user's trip store.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from trip_planner.config.loader import ConfigLoader, load_config_for_environment
from trip_planner.config.settings import Settings
from trip_planner.core.logging import configure_logging
from trip_planner.core.storage import StorageAdapter
from trip_planner.core.validation import (
    ValidationError,
    validate_currency,
    validate_destination,
    validate_expense_amount,
    validate_trip_dates,
)
from trip_planner.schemas.trip import ExpenseDraft
from trip_planner.services import (
    aggregate_expenses,
    bucket_trips,
    create_auth_session,
    create_photo_search_service,
    create_storage,
    create_trip_store,
    days_until_trip,
    format_expense_totals,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trip Planner store")
    parser.add_argument(
        "--env",
        choices=["development", "staging", "production", "testing"],
        default=None,
        help="Environment to load (default: from ENVIRONMENT env var or development)"
    )
    parser.add_argument(
        "--user",
        default=None,
        help="User key to open (default: the signed-in phone number)"
    )
    parser.add_argument(
        "--list-envs",
        action="store_true",
        help="List available environment configurations"
    )

    commands = parser.add_subparsers(dest="command")
    commands.add_parser("list", help="Show upcoming and past trips")

    add_trip = commands.add_parser("add-trip", help="Add a trip")
    add_trip.add_argument("destination")
    add_trip.add_argument("start_date", help="YYYY-MM-DD")
    add_trip.add_argument("end_date", help="YYYY-MM-DD")

    add_expense = commands.add_parser("add-expense", help="Record an expense on a trip")
    add_expense.add_argument("trip_id")
    add_expense.add_argument("amount")
    add_expense.add_argument("currency")
    add_expense.add_argument("--name", default="")
    add_expense.add_argument("--split", action="store_true")

    photos = commands.add_parser("photos", help="Search photos for a destination")
    photos.add_argument("destination")

    sign_in = commands.add_parser("sign-in", help="Remember a phone number as the user")
    sign_in.add_argument("phone")
    commands.add_parser("sign-out", help="Forget the signed-in phone number")
    return parser


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    storage = create_storage(settings)
    try:
        return await _dispatch(args, settings, storage)
    finally:
        await storage.close()


async def _dispatch(args: argparse.Namespace, settings: Settings, storage: StorageAdapter) -> int:
    session = create_auth_session(settings, storage=storage)

    if args.command == "sign-in":
        print(f"Signed in as {await session.sign_in(args.phone)}")
        return 0
    if args.command == "sign-out":
        await session.sign_out()
        print("Signed out")
        return 0
    if args.command == "photos":
        for url in await create_photo_search_service(settings).search_destination_photos(args.destination):
            print(url)
        return 0

    user_key = args.user or await session.load()
    store = create_trip_store(settings, storage=storage)
    await store.switch_user(user_key)

    try:
        if args.command == "add-trip":
            destination = validate_destination(args.destination)
            start, end = validate_trip_dates(args.start_date, args.end_date)
            trip = store.add_trip(destination, start, end)
            print(f"Trip saved: {trip.id}")
        elif args.command == "add-expense":
            expense = store.add_expense(args.trip_id, ExpenseDraft(
                name=args.name,
                amount=validate_expense_amount(args.amount),
                currency=validate_currency(args.currency),
                is_split=args.split,
            ))
            print(f"Expense saved: {expense.id}")
        else:
            buckets = bucket_trips(store.trips)
            for title, trips in (("Upcoming", buckets.upcoming), ("Past", buckets.past)):
                print(f"{title}:")
                for trip in trips:
                    totals = format_expense_totals(aggregate_expenses(store.expenses_for(trip.id)))
                    countdown = days_until_trip(trip)
                    suffix = f" (in {countdown} days)" if countdown else ""
                    print(f"  {trip.destination}  {trip.start_date} -> {trip.end_date}  total {totals}{suffix}")
    finally:
        await store.flush()

    if store.namespace_key is None and args.command in ("add-trip", "add-expense"):
        print("Warning: no user signed in (use --user or sign-in); changes were not saved", file=sys.stderr)
        return 1
    if store.last_persist_failed:
        print("Warning: changes could not be saved", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.list_envs:
        print("Available environment configurations:")
        for env in ConfigLoader.get_available_environments():
            print(f"  - {env}")
        return 0

    try:
        settings = load_config_for_environment(args.env)
    except PydanticValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level.value, settings.log_format)

    try:
        return asyncio.run(run_command(args, settings))
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
