"""DailyStatus class for per-vehicle, per-day status records."""

from typing import Any, Dict, Iterable, List, Optional

from .collation import sort_by_text
from .errors import ValidationError
from .status import Status
from .vehicle import Vehicle


class DailyStatus:
    """Status of one vehicle on one date. At most one per (vehicle, date)."""

    def __init__(
        self,
        vehicle_id: str,
        date: str,
        status_value: str,
        observations: Optional[str] = None,
        driver: Optional[str] = None,
        id: Optional[str] = None,
        vehicle: Optional[Vehicle] = None,
        created_by: Optional[str] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.date = date
        self.status_value = status_value
        self.observations = observations
        self.driver = driver
        self.vehicle = vehicle
        self.created_by = created_by

    @property
    def status(self) -> Optional[Status]:
        """Parsed status; None when the stored string is not a known status."""
        return Status.from_value(self.status_value)

    @property
    def driver_name(self) -> str:
        """Driver for the day, falling back to the vehicle's default driver."""
        if self.driver:
            return self.driver
        if self.vehicle is not None and self.vehicle.driver:
            return self.vehicle.driver
        return ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DailyStatus":
        """
        Build a DailyStatus from a backend row.

        The embedded vehicle (``vehicles`` key) is optional and may be null
        when the vehicle was deleted.
        """
        embedded = row.get("vehicles")
        vehicle = Vehicle.from_row(embedded) if embedded else None
        return cls(
            row["vehicle_id"],
            row["date"],
            row.get("status") or "",
            row.get("observations"),
            row.get("driver"),
            row.get("id"),
            vehicle,
            row.get("created_by"),
        )

    def copy_to(self, date: str, created_by: str) -> Dict[str, Any]:
        """Insert payload duplicating this record under another date."""
        return {
            "vehicle_id": self.vehicle_id,
            "date": date,
            "status": self.status_value,
            "observations": self.observations,
            "driver": self.driver,
            "created_by": created_by,
        }


DAY_SORT_COLUMNS = ("name", "driver", "type", "status")


def filter_by_name(records: Iterable[DailyStatus], term: Optional[str]) -> List[DailyStatus]:
    """Keep records whose vehicle name contains term (case-insensitive)."""
    if not term:
        return list(records)
    needle = term.lower()
    return [
        r for r in records
        if r.vehicle is not None and needle in r.vehicle.name.lower()
    ]


def sort_day_statuses(
    records: Iterable[DailyStatus], column: str = "name", descending: bool = False
) -> List[DailyStatus]:
    """Sort a day's records by vehicle name, driver, vehicle type or status."""
    if column == "name":
        return sort_by_text(records, lambda r: r.vehicle.name if r.vehicle else "", descending)
    elif column == "driver":
        return sort_by_text(records, lambda r: r.driver_name, descending)
    elif column == "type":
        return sort_by_text(records, lambda r: r.vehicle.type_label if r.vehicle else "", descending)
    elif column == "status":
        return sort_by_text(records, lambda r: r.status_value, descending)
    raise ValidationError(f"Coluna de ordenação inválida: {column!r}")


def truncate_note(text: Optional[str], max_len: int = 50) -> str:
    """Observation preview: placeholder when empty, ellipsis past max_len."""
    if not text:
        return "Sem observações"
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."
