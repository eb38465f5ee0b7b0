"""
Fleet status models.

This package provides data models for the daily fleet dashboard:
- Status: Closed set of vehicle statuses with bucket and colour
- Vehicle / VehicleType: Fleet vehicles and their category
- DailyStatus: One vehicle's status on one date
- DailyObservation, GeneralInfo: Per-date notes and counters
- FleetStats: Functioning / broken / loaned counts
- Timeline: Monthly vehicle x date grid
- UserSession: Signed-in user passed to every data-access call
"""

from .errors import (
    FleetError,
    ConfigError,
    ValidationError,
    BackendError,
    AuthError,
    WebhookError,
)
from .status import Bucket, Status, status_color, status_label
from .vehicle import Vehicle, VehicleType
from .daily_status import DailyStatus, filter_by_name, sort_day_statuses, truncate_note
from .observation import DailyObservation
from .general_info import GeneralInfo
from .session import UserSession
from .stats import FleetStats, percentage, count_statuses, counts_by_type
from .timeline import Timeline, TimelineRow, build_timeline, sort_timeline, month_dates

__all__ = [
    "FleetError",
    "ConfigError",
    "ValidationError",
    "BackendError",
    "AuthError",
    "WebhookError",
    "Bucket",
    "Status",
    "status_color",
    "status_label",
    "Vehicle",
    "VehicleType",
    "DailyStatus",
    "filter_by_name",
    "sort_day_statuses",
    "truncate_note",
    "DailyObservation",
    "GeneralInfo",
    "UserSession",
    "FleetStats",
    "percentage",
    "count_statuses",
    "counts_by_type",
    "Timeline",
    "TimelineRow",
    "build_timeline",
    "sort_timeline",
    "month_dates",
]
