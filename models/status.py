"""Vehicle status enum and the fleet buckets it rolls up into."""

from enum import Enum
from typing import Optional


class Bucket(Enum):
    """Dashboard bucket a status counts toward."""

    FUNCTIONING = "funcionando"
    BROKEN = "quebrado"
    LOANED = "emprestado"


class Status(Enum):
    """Daily vehicle status. Values are the strings stored by the backend."""

    OPERATING = "Funcionando - Operando"
    IDLE = "Funcionando - Parado"
    VEHICLE_MAINTENANCE = "Manutenção - Veiculo"
    EQUIPMENT_MAINTENANCE = "Manutenção - Equipamento"
    LOANED = "Emprestado"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["Status"]:
        """Parse a stored status string; None if it is not a known status."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def bucket(self) -> Bucket:
        return _BUCKETS[self]

    @property
    def color(self) -> str:
        """Tailwind background class for timeline cells and badges."""
        return _COLORS[self]


_BUCKETS = {
    Status.OPERATING: Bucket.FUNCTIONING,
    Status.IDLE: Bucket.FUNCTIONING,
    Status.VEHICLE_MAINTENANCE: Bucket.BROKEN,
    Status.EQUIPMENT_MAINTENANCE: Bucket.BROKEN,
    Status.LOANED: Bucket.LOANED,
}

_COLORS = {
    Status.OPERATING: "bg-green-500",
    Status.IDLE: "bg-green-300",
    Status.VEHICLE_MAINTENANCE: "bg-red-500",
    Status.EQUIPMENT_MAINTENANCE: "bg-red-300",
    Status.LOANED: "bg-yellow-500",
}

# Timeline cell with no record for that day
NO_DATA_COLOR = "bg-gray-200"
NO_DATA_LABEL = "Sem dados"


def status_color(status: Optional[Status]) -> str:
    """Colour for a timeline cell; None means no data for that day."""
    if status is None:
        return NO_DATA_COLOR
    return status.color


def status_label(status: Optional[Status]) -> str:
    if status is None:
        return NO_DATA_LABEL
    return status.value
