"""DailyObservation class for free-text daily notes."""
from typing import Any, Dict, Optional


class DailyObservation:
    """A free-text note for a calendar date. At most one per date."""

    def __init__(
        self,
        date: str,
        content: str,
        id: Optional[str] = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.id = id
        self.date = date
        self.content = content
        self.created_at = created_at
        self.updated_at = updated_at

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DailyObservation":
        return cls(
            row["date"],
            row.get("content") or "",
            row.get("id"),
            row.get("created_at"),
            row.get("updated_at"),
        )
