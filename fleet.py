#!/usr/bin/env python3
"""
Command-line access to the daily fleet status.

Commands:
  status        - Show the fleet summary for a date
  vehicles      - List vehicles and their status for a date
  timeline      - Show the monthly status grid
  copy-previous - Replace a date's statuses with the previous day's
  hook          - Send the date's summary to the configured webhook

Credentials are read from FLEET_EMAIL and FLEET_PASSWORD; backend
settings from the YAML file in FLEET_CONFIG (or --config).
"""

import argparse
import json
import logging
import os
import sys
from datetime import date
from typing import Dict, List, Optional, Tuple

from tabulate import tabulate

from backend.client import BackendClient
from backend.config import Settings, load_settings
from backend.repository import FleetRepository, previous_day
from backend.webhook import collect_payload, format_long_date, send_webhook
from models.daily_status import DAY_SORT_COLUMNS, DailyStatus, filter_by_name, sort_day_statuses
from models.errors import FleetError
from models.general_info import FIELDS, GeneralInfo
from models.session import UserSession
from models.stats import FleetStats, count_statuses, counts_by_type
from models.status import Status
from models.timeline import SORT_COLUMNS, Timeline, format_month, parse_month

logger = logging.getLogger(__name__)

# One character per timeline cell
STATUS_SYMBOLS: Dict[Status, str] = {
    Status.OPERATING: "O",
    Status.IDLE: "P",
    Status.VEHICLE_MAINTENANCE: "V",
    Status.EQUIPMENT_MAINTENANCE: "E",
    Status.LOANED: "L",
}
NO_DATA_SYMBOL = "."

# =============================================================================
# Formatting helpers
# =============================================================================


def format_count(count: int, total: int, pct: int) -> str:
    """Format a bucket count for display (e.g., '3/4 (75%)')."""
    return f"{count}/{total} ({pct}%)"


def status_symbol(status: Optional[Status]) -> str:
    if status is None:
        return NO_DATA_SYMBOL
    return STATUS_SYMBOLS[status]


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def make_stats_table(stats: FleetStats) -> List[List[str]]:
    return [
        ["Funcionando", format_count(stats.funcionando, stats.total, stats.funcionando_pct)],
        ["Quebrados", format_count(stats.quebrado, stats.total, stats.quebrado_pct)],
        ["Emprestados", format_count(stats.emprestado, stats.total, stats.emprestado_pct)],
    ]


def make_type_table(by_type: Dict[str, Dict[str, int]]) -> List[List[object]]:
    return [
        [vehicle_type, counts["funcionando"], counts["quebrado"]]
        for vehicle_type, counts in sorted(by_type.items())
    ]


def make_info_table(info: GeneralInfo) -> List[List[object]]:
    data = info.to_dict()
    return [[label, data[name]] for name, label in FIELDS.items()]


def make_vehicle_table(records: List[DailyStatus]) -> List[List[str]]:
    """Convert a day's status records to table rows."""
    rows = []
    for record in records:
        vehicle = record.vehicle
        rows.append(
            [
                vehicle.name if vehicle else "-",
                vehicle.type_label if vehicle else "-",
                record.driver_name or "-",
                record.status_value or "-",
                truncate(record.observations),
            ]
        )
    return rows


def make_timeline_table(
    timeline: Timeline, sort: str = "name", descending: bool = False
) -> List[List[str]]:
    """One row per vehicle: name, type, driver, then one symbol per day."""
    rows = []
    for row in timeline.sorted_rows(sort, descending):
        cells = "".join(status_symbol(status) for _, status in row.cells(timeline.dates))
        rows.append([row.vehicle_name, row.vehicle_type, row.driver_name or "-", cells])
    return rows


def timeline_legend() -> str:
    parts = [f"{symbol}={status.value}" for status, symbol in STATUS_SYMBOLS.items()]
    parts.append(f"{NO_DATA_SYMBOL}=Sem dados")
    return "  ".join(parts)


# =============================================================================
# Session
# =============================================================================


def sign_in(settings: Settings, environ=None) -> Tuple[BackendClient, UserSession]:
    """Sign in with FLEET_EMAIL / FLEET_PASSWORD. Raises FleetError."""
    environ = os.environ if environ is None else environ
    email = environ.get("FLEET_EMAIL")
    password = environ.get("FLEET_PASSWORD")
    if not email or not password:
        raise FleetError("FLEET_EMAIL and FLEET_PASSWORD must be set")
    client = BackendClient(settings.backend_url, settings.backend_key, settings.request_timeout)
    return client, client.sign_in(email, password)


# =============================================================================
# Commands
# =============================================================================


def cmd_status(args, repo: FleetRepository, user: UserSession, settings: Settings):
    """Show the fleet summary for a date."""
    records = repo.statuses_for_date(user, args.date)
    info = repo.get_general_info(user, args.date)
    stats = count_statuses(records)

    print(f"Date: {format_long_date(args.date)}")
    print(f"Vehicles: {stats.total}")
    print()
    print(tabulate(make_stats_table(stats), headers=["Bucket", "Count"], tablefmt="simple"))
    print()

    by_type = counts_by_type(records)
    if by_type:
        print("BY TYPE:")
        print(
            tabulate(
                make_type_table(by_type),
                headers=["Type", "Funcionando", "Quebrados"],
                tablefmt="simple",
            )
        )
        print()

    print("GENERAL INFO:")
    print(tabulate(make_info_table(info), headers=["Counter", "Value"], tablefmt="simple"))
    return 0


def cmd_vehicles(args, repo: FleetRepository, user: UserSession, settings: Settings):
    """List vehicles and their status for a date."""
    records = repo.statuses_for_date(user, args.date)
    shown = sort_day_statuses(filter_by_name(records, args.search), args.sort, args.desc)

    print(f"Date: {format_long_date(args.date)}")
    if args.search:
        print(f"Showing: {len(shown)} of {len(records)} (filtered)")
    print()

    if not shown:
        print("No vehicles found.")
        return 0

    headers = ["Plate", "Type", "Driver", "Status", "Notes"]
    print(tabulate(make_vehicle_table(shown), headers=headers, tablefmt="simple"))
    return 0


def cmd_timeline(args, repo: FleetRepository, user: UserSession, settings: Settings):
    """Show the monthly status grid."""
    year, month = parse_month(args.month)
    timeline = repo.timeline(user, year, month)

    print(f"Month: {format_month(year, month)} ({len(timeline.dates)} days)")
    print(f"Vehicles: {len(timeline.rows)}")
    print(timeline_legend())
    print()

    if not timeline.rows:
        print("No status records this month.")
        return 0

    headers = ["Plate", "Type", "Driver", "Days 1-" + str(len(timeline.dates))]
    print(
        tabulate(
            make_timeline_table(timeline, args.sort, args.desc),
            headers=headers,
            tablefmt="simple",
        )
    )
    return 0


def cmd_copy_previous(args, repo: FleetRepository, user: UserSession, settings: Settings):
    """Replace a date's statuses with the previous day's."""
    source = previous_day(args.date)
    print(f"Copying statuses from {source} to {args.date}")

    if args.dry_run:
        count = len(repo.statuses_for_date(user, source))
        print(f"(dry run - {count} rows would be copied, no changes made)")
        return 0

    copied = repo.copy_previous_day(user, args.date)
    if copied == 0:
        print("Nothing to copy: no statuses on the previous day.")
    else:
        print(f"Copied {copied} rows.")
    return 0


def cmd_hook(args, repo: FleetRepository, user: UserSession, settings: Settings):
    """Send the date's summary to the configured webhook."""
    payload = collect_payload(repo, user, args.date)

    if args.dry_run:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        print("(dry run - nothing sent)")
        return 0

    if not settings.webhook_url:
        print("Error: webhook URL is not configured")
        return 1

    send_webhook(settings.webhook_url, payload, settings.request_timeout)
    print(f"Sent summary for {args.date} to webhook.")
    return 0


COMMANDS = {
    "status": cmd_status,
    "vehicles": cmd_vehicles,
    "timeline": cmd_timeline,
    "copy-previous": cmd_copy_previous,
    "hook": cmd_hook,
}


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    today = date.today().isoformat()

    parser = argparse.ArgumentParser(
        description="Daily fleet status",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s status
  %(prog)s status --date 2024-03-01
  %(prog)s vehicles --search ABC --sort status
  %(prog)s timeline --month 2024-03 --sort driver --desc
  %(prog)s copy-previous --date 2024-03-02 --dry-run
  %(prog)s hook --dry-run
""",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to config YAML file (default: $FLEET_CONFIG)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Status subcommand
    status_parser = subparsers.add_parser("status", help="Show the fleet summary for a date")
    status_parser.add_argument(
        "--date",
        type=str,
        default=today,
        help="Date in YYYY-MM-DD format (default: today)",
    )

    # Vehicles subcommand
    vehicles_parser = subparsers.add_parser(
        "vehicles", help="List vehicles and their status for a date"
    )
    vehicles_parser.add_argument(
        "--date",
        type=str,
        default=today,
        help="Date in YYYY-MM-DD format (default: today)",
    )
    vehicles_parser.add_argument(
        "--search",
        type=str,
        help="Filter to plates containing text (case-insensitive)",
    )
    vehicles_parser.add_argument(
        "--sort",
        choices=DAY_SORT_COLUMNS,
        default="name",
        help="Sort column (default: name)",
    )
    vehicles_parser.add_argument(
        "--desc",
        action="store_true",
        help="Sort descending",
    )

    # Timeline subcommand
    timeline_parser = subparsers.add_parser("timeline", help="Show the monthly status grid")
    timeline_parser.add_argument(
        "--month",
        type=str,
        default=today[:7],
        help="Month in YYYY-MM format (default: current month)",
    )
    timeline_parser.add_argument(
        "--sort",
        choices=SORT_COLUMNS,
        default="name",
        help="Sort column (default: name)",
    )
    timeline_parser.add_argument(
        "--desc",
        action="store_true",
        help="Sort descending",
    )

    # Copy previous subcommand
    copy_parser = subparsers.add_parser(
        "copy-previous", help="Replace a date's statuses with the previous day's"
    )
    copy_parser.add_argument(
        "--date",
        type=str,
        default=today,
        help="Target date in YYYY-MM-DD format (default: today)",
    )
    copy_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show how many rows would be copied without saving",
    )

    # Hook subcommand
    hook_parser = subparsers.add_parser(
        "hook", help="Send the date's summary to the configured webhook"
    )
    hook_parser.add_argument(
        "--date",
        type=str,
        default=today,
        help="Date in YYYY-MM-DD format (default: today)",
    )
    hook_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload without sending it",
    )

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validate date arguments early
    if getattr(args, "date", None):
        try:
            date.fromisoformat(args.date)
        except ValueError:
            print(f"Error: Invalid date: {args.date}")
            return 1
    if getattr(args, "month", None):
        try:
            parse_month(args.month)
        except FleetError as e:
            print(f"Error: {e}")
            return 1

    try:
        settings = load_settings(args.config)
        logging.basicConfig(
            level="DEBUG" if args.verbose else settings.log_level,
            format="%(levelname)s %(name)s: %(message)s",
        )
        client, user = sign_in(settings)
        repo = FleetRepository(client)
        return COMMANDS[args.command](args, repo, user, settings)
    except FleetError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
