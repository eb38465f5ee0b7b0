"""Monthly timeline aggregation: sparse status records to a vehicle x date grid."""

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .collation import sort_by_text
from .daily_status import DailyStatus
from .errors import ValidationError
from .status import Status

logger = logging.getLogger(__name__)

SORT_COLUMNS = ("name", "driver", "type")

# Keeps the previous and next month inside date's range
MIN_YEAR = 2
MAX_YEAR = 9998


def parse_month(value: str) -> Tuple[int, int]:
    """Parse 'YYYY-MM' into (year, month)."""
    try:
        year_str, month_str = value.split("-")
        year, month = int(year_str), int(month_str)
    except ValueError:
        raise ValidationError(f"Mês inválido: {value!r}") from None
    if not 1 <= month <= 12 or not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"Mês inválido: {value!r}")
    return year, month


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of the month."""
    first = date(year, month, 1)
    last = first + relativedelta(months=1) - timedelta(days=1)
    return first, last


def month_dates(year: int, month: int) -> List[str]:
    """Every date of the month as ISO strings, day 1 first."""
    first, last = month_bounds(year, month)
    return [
        (first + timedelta(days=offset)).isoformat()
        for offset in range((last - first).days + 1)
    ]


def shift_month(year: int, month: int, months: int) -> Tuple[int, int]:
    """Move a (year, month) pair by a number of months."""
    shifted = date(year, month, 1) + relativedelta(months=months)
    return shifted.year, shifted.month


class TimelineRow:
    """One vehicle's statuses across a month."""

    def __init__(self, vehicle_id: str, vehicle_name: str, vehicle_type: str, driver_name: str = ""):
        self.vehicle_id = vehicle_id
        self.vehicle_name = vehicle_name
        self.vehicle_type = vehicle_type
        self.driver_name = driver_name
        # ISO date -> status; absent key means no data for that day
        self.daily_status: Dict[str, Status] = {}

    def status_on(self, day: str) -> Optional[Status]:
        return self.daily_status.get(day)

    def cells(self, dates: Iterable[str]) -> List[Tuple[str, Optional[Status]]]:
        """Dense row over the given dates; None marks a day with no data."""
        return [(day, self.daily_status.get(day)) for day in dates]


class Timeline:
    """Aggregated month grid: column dates plus one row per vehicle."""

    def __init__(self, year: int, month: int, rows: List[TimelineRow]):
        self.year = year
        self.month = month
        self.dates = month_dates(year, month)
        self.rows = rows

    @property
    def label(self) -> str:
        return format_month(self.year, self.month)

    def sorted_rows(self, column: str = "name", descending: bool = False) -> List[TimelineRow]:
        return sort_timeline(self.rows, column, descending)


def build_timeline(year: int, month: int, records: Iterable[DailyStatus]) -> Timeline:
    """
    Group status records into one row per distinct vehicle.

    - Records without a resolvable vehicle are skipped (orphans of a
      deleted vehicle).
    - Duplicate (vehicle, date) records: the last one wins.
    - A non-empty driver on a later record replaces the row's driver.
    - Unrecognised status strings leave the day as no data.
    """
    rows: Dict[str, TimelineRow] = {}
    for record in records:
        vehicle = record.vehicle
        if vehicle is None:
            continue

        row = rows.get(vehicle.id)
        if row is None:
            row = TimelineRow(
                vehicle.id, vehicle.name, vehicle.type_label, record.driver or ""
            )
            rows[vehicle.id] = row

        status = record.status
        if status is None:
            logger.warning(
                "Unknown status %r for vehicle %s on %s",
                record.status_value, vehicle.id, record.date,
            )
            row.daily_status.pop(record.date, None)
        else:
            row.daily_status[record.date] = status

        if record.driver and record.driver.strip():
            row.driver_name = record.driver

    return Timeline(year, month, list(rows.values()))


def sort_timeline(
    rows: Iterable[TimelineRow], column: str = "name", descending: bool = False
) -> List[TimelineRow]:
    """
    Sort rows by vehicle name, driver or type.

    Args:
        column: "name", "driver" or "type"
        descending: If True, sort Z-A
    """
    if column == "name":
        return sort_by_text(rows, lambda r: r.vehicle_name, descending)
    elif column == "driver":
        return sort_by_text(rows, lambda r: r.driver_name, descending)
    elif column == "type":
        return sort_by_text(rows, lambda r: r.vehicle_type, descending)
    raise ValidationError(f"Coluna de ordenação inválida: {column!r}")
