"""Vehicle class for fleet identification."""

from enum import Enum
from typing import Any, Dict, Optional


class VehicleType(Enum):
    """Fleet category a vehicle belongs to."""

    DESTACK = "DESTACK"
    A_CUNHA = "A.CUNHA"
    EMBASA = "EMBASA"
    OUTROS = "OUTROS"

    @classmethod
    def parse(cls, value: Optional[str]) -> "VehicleType":
        """Parse a stored type, falling back to OUTROS for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.OUTROS


class Vehicle:
    """A fleet vehicle identified by its plate."""

    def __init__(
        self,
        id: str,
        name: str,
        type: VehicleType = VehicleType.OUTROS,
        driver: Optional[str] = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.id = id
        self.name = name
        self.type = type
        self.driver = driver
        self.created_at = created_at
        self.updated_at = updated_at

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Vehicle":
        """Build a Vehicle from a backend row."""
        return cls(
            row["id"],
            row.get("name") or "",
            VehicleType.parse(row.get("type")),
            row.get("driver") or None,
            row.get("created_at"),
            row.get("updated_at"),
        )

    @property
    def type_label(self) -> str:
        return self.type.value
