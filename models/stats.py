"""Helper functions for dashboard fleet counts."""

import math
from dataclasses import dataclass
from typing import Dict, Iterable

from .daily_status import DailyStatus
from .status import Bucket


def percentage(part: int, total: int) -> int:
    """Share of total as a whole percentage, rounded half up. 0 when total is 0."""
    if total <= 0:
        return 0
    return math.floor(part * 100 / total + 0.5)


@dataclass
class FleetStats:
    """Bucket counts for one date's status records."""

    total: int = 0
    funcionando: int = 0
    quebrado: int = 0
    emprestado: int = 0

    @property
    def funcionando_pct(self) -> int:
        return percentage(self.funcionando, self.total)

    @property
    def quebrado_pct(self) -> int:
        return percentage(self.quebrado, self.total)

    @property
    def emprestado_pct(self) -> int:
        return percentage(self.emprestado, self.total)


def count_statuses(records: Iterable[DailyStatus]) -> FleetStats:
    """
    Classify each record into functioning, broken or loaned.

    Records with an unrecognised status count toward the total only.
    """
    stats = FleetStats()
    for record in records:
        stats.total += 1
        status = record.status
        if status is None:
            continue
        if status.bucket == Bucket.FUNCTIONING:
            stats.funcionando += 1
        elif status.bucket == Bucket.BROKEN:
            stats.quebrado += 1
        elif status.bucket == Bucket.LOANED:
            stats.emprestado += 1
    return stats


def counts_by_type(records: Iterable[DailyStatus]) -> Dict[str, Dict[str, int]]:
    """
    Functioning and broken counts per vehicle type.

    Records without a resolvable vehicle are skipped. Loaned vehicles
    create the type entry but are not counted.
    """
    by_type: Dict[str, Dict[str, int]] = {}
    for record in records:
        if record.vehicle is None:
            continue
        counts = by_type.setdefault(
            record.vehicle.type_label, {"funcionando": 0, "quebrado": 0}
        )
        status = record.status
        if status is None:
            continue
        if status.bucket == Bucket.FUNCTIONING:
            counts["funcionando"] += 1
        elif status.bucket == Bucket.BROKEN:
            counts["quebrado"] += 1
    return by_type
