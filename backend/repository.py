"""Fleet data access over the backend tables."""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from models.daily_status import DailyStatus
from models.general_info import GeneralInfo
from models.observation import DailyObservation
from models.session import UserSession
from models.stats import FleetStats, count_statuses
from models.status import Status
from models.timeline import Timeline, build_timeline, month_bounds
from models.vehicle import Vehicle, VehicleType

from .client import NOT_NULL, BackendClient, eq, gte, lte

logger = logging.getLogger(__name__)

VEHICLES = "vehicles"
VEHICLE_STATUS = "vehicle_status"
DAILY_OBSERVATIONS = "daily_observations"
GENERAL_INFO = "general_info"
PROFILES = "profiles"

DAY_COLUMNS = "*,vehicles:vehicle_id(id,name,type,driver,created_at,updated_at)"
MONTH_COLUMNS = "*,vehicles:vehicle_id(id,name,type)"


def previous_day(day: str) -> str:
    return (date.fromisoformat(day) - timedelta(days=1)).isoformat()


class FleetRepository:
    """
    Every operation the dashboard performs against the backend.

    All methods take the signed-in UserSession explicitly; its token
    authorises the call and its user id fills created_by.
    """

    def __init__(self, client: BackendClient):
        self.client = client

    # -------------------------------------------------------------------------
    # Daily status
    # -------------------------------------------------------------------------

    def statuses_for_date(self, session: UserSession, day: str) -> List[DailyStatus]:
        """Status rows for one date, each with its vehicle embedded."""
        rows = self.client.select(
            VEHICLE_STATUS, session.access_token, DAY_COLUMNS, [("date", eq(day))]
        )
        return [DailyStatus.from_row(row) for row in rows]

    def statuses_for_month(self, session: UserSession, year: int, month: int) -> List[DailyStatus]:
        first, last = month_bounds(year, month)
        rows = self.client.select(
            VEHICLE_STATUS,
            session.access_token,
            MONTH_COLUMNS,
            [("date", gte(first.isoformat())), ("date", lte(last.isoformat()))],
            order="date.asc",
        )
        return [DailyStatus.from_row(row) for row in rows]

    def timeline(self, session: UserSession, year: int, month: int) -> Timeline:
        return build_timeline(year, month, self.statuses_for_month(session, year, month))

    def fleet_stats(self, session: UserSession, day: str) -> FleetStats:
        return count_statuses(self.statuses_for_date(session, day))

    def get_vehicle_status(
        self, session: UserSession, vehicle_id: str, day: str
    ) -> Optional[DailyStatus]:
        rows = self.client.select(
            VEHICLE_STATUS,
            session.access_token,
            filters=[("vehicle_id", eq(vehicle_id)), ("date", eq(day))],
            limit=1,
        )
        return DailyStatus.from_row(rows[0]) if rows else None

    def copy_previous_day(self, session: UserSession, day: str) -> int:
        """
        Replace a date's status rows with copies of the previous day's.

        Returns the number of rows copied. With nothing on the previous
        day, returns 0 and leaves the target date untouched. Not atomic:
        if the insert fails after the delete, the date is left empty.
        """
        source_day = previous_day(day)
        source_rows = self.client.select(
            VEHICLE_STATUS, session.access_token, filters=[("date", eq(source_day))]
        )
        if not source_rows:
            logger.info("Nothing to copy from %s to %s", source_day, day)
            return 0

        copies = [
            DailyStatus.from_row(row).copy_to(day, session.user_id) for row in source_rows
        ]
        self.client.delete(VEHICLE_STATUS, session.access_token, [("date", eq(day))])
        try:
            self.client.insert(VEHICLE_STATUS, session.access_token, copies)
        except Exception:
            logger.error(
                "Status rows for %s were deleted but %d copies from %s were not inserted",
                day, len(copies), source_day,
            )
            raise
        logger.info("Copied %d status rows from %s to %s", len(copies), source_day, day)
        return len(copies)

    # -------------------------------------------------------------------------
    # Vehicles
    # -------------------------------------------------------------------------

    def get_vehicle(self, session: UserSession, vehicle_id: str) -> Optional[Vehicle]:
        rows = self.client.select(
            VEHICLES, session.access_token, filters=[("id", eq(vehicle_id))], limit=1
        )
        return Vehicle.from_row(rows[0]) if rows else None

    def create_vehicle(
        self,
        session: UserSession,
        name: str,
        vehicle_type: VehicleType,
        driver: Optional[str],
        day: str,
        status: Status,
        observations: Optional[str] = None,
    ) -> Vehicle:
        """Create a vehicle and its status row for the given date."""
        rows = self.client.insert(
            VEHICLES,
            session.access_token,
            {
                "name": name,
                "type": vehicle_type.value,
                "driver": driver,
                "created_by": session.user_id,
            },
            returning=True,
        )
        vehicle = Vehicle.from_row(rows[0])
        self.client.insert(
            VEHICLE_STATUS,
            session.access_token,
            {
                "vehicle_id": vehicle.id,
                "date": day,
                "status": status.value,
                "observations": observations,
                "driver": driver,
                "created_by": session.user_id,
            },
        )
        logger.info("Created vehicle %s (%s)", vehicle.name, vehicle.id)
        return vehicle

    def update_vehicle(
        self,
        session: UserSession,
        vehicle: Vehicle,
        day: str,
        status: Status,
        observations: Optional[str] = None,
    ) -> None:
        """Save vehicle fields, then upsert its status row for the date."""
        self.client.update(
            VEHICLES,
            session.access_token,
            {"name": vehicle.name, "type": vehicle.type.value, "driver": vehicle.driver},
            [("id", eq(vehicle.id))],
        )
        self.client.upsert(
            VEHICLE_STATUS,
            session.access_token,
            {
                "vehicle_id": vehicle.id,
                "date": day,
                "status": status.value,
                "observations": observations,
                "driver": vehicle.driver,
                "created_by": session.user_id,
            },
            on_conflict="vehicle_id,date",
        )
        logger.info("Updated vehicle %s status for %s", vehicle.id, day)

    def delete_vehicle(self, session: UserSession, vehicle_id: str) -> None:
        """Delete a vehicle; the backend cascades to its status rows."""
        self.client.delete(VEHICLES, session.access_token, [("id", eq(vehicle_id))])
        logger.info("Deleted vehicle %s", vehicle_id)

    def existing_plates(self, session: UserSession) -> List[str]:
        rows = self.client.select(VEHICLES, session.access_token, "name", order="name")
        plates: List[str] = []
        for row in rows:
            if row.get("name") and row["name"] not in plates:
                plates.append(row["name"])
        return plates

    def existing_drivers(self, session: UserSession) -> List[str]:
        """Distinct non-empty driver names from vehicles and status rows."""
        drivers: List[str] = []
        for table in (VEHICLES, VEHICLE_STATUS):
            rows = self.client.select(
                table, session.access_token, "driver", [("driver", NOT_NULL)]
            )
            for row in rows:
                name = row.get("driver")
                if name and name.strip() and name not in drivers:
                    drivers.append(name)
        return drivers

    # -------------------------------------------------------------------------
    # Daily observations
    # -------------------------------------------------------------------------

    def get_observation(self, session: UserSession, observation_id: str) -> Optional[DailyObservation]:
        rows = self.client.select(
            DAILY_OBSERVATIONS, session.access_token, filters=[("id", eq(observation_id))], limit=1
        )
        return DailyObservation.from_row(rows[0]) if rows else None

    def observations_for_date(self, session: UserSession, day: str) -> List[DailyObservation]:
        rows = self.client.select(
            DAILY_OBSERVATIONS,
            session.access_token,
            filters=[("date", eq(day))],
            order="created_at.desc",
        )
        return [DailyObservation.from_row(row) for row in rows]

    def save_observation(self, session: UserSession, day: str, content: str) -> None:
        """Create or replace the observation for a date."""
        self.client.upsert(
            DAILY_OBSERVATIONS,
            session.access_token,
            {"date": day, "content": content, "created_by": session.user_id},
            on_conflict="date",
        )

    def update_observation(self, session: UserSession, observation_id: str, content: str) -> None:
        self.client.update(
            DAILY_OBSERVATIONS,
            session.access_token,
            {"content": content},
            [("id", eq(observation_id))],
        )

    def delete_observation(self, session: UserSession, observation_id: str) -> None:
        self.client.delete(DAILY_OBSERVATIONS, session.access_token, [("id", eq(observation_id))])

    # -------------------------------------------------------------------------
    # General info
    # -------------------------------------------------------------------------

    def get_general_info(self, session: UserSession, day: str) -> GeneralInfo:
        """Latest snapshot for the date, or all zeros if none was saved."""
        rows = self.client.select(
            GENERAL_INFO,
            session.access_token,
            filters=[("date", eq(day))],
            order="created_at.desc",
            limit=1,
        )
        return GeneralInfo.from_row(rows[0]) if rows else GeneralInfo()

    def has_general_info(self, session: UserSession, day: str) -> bool:
        rows = self.client.select(
            GENERAL_INFO, session.access_token, "id", [("date", eq(day))], limit=1
        )
        return bool(rows)

    def save_general_info(self, session: UserSession, day: str, info: GeneralInfo) -> None:
        row: Dict[str, Any] = {"date": day, "created_by": session.user_id}
        row.update(info.to_dict())
        self.client.upsert(GENERAL_INFO, session.access_token, row, on_conflict="date,created_by")

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    def get_profile(self, session: UserSession) -> Optional[Dict[str, Any]]:
        rows = self.client.select(
            PROFILES, session.access_token, filters=[("id", eq(session.user_id))], limit=1
        )
        return rows[0] if rows else None
