"""Forecast widget data from the weather API, cached for an hour."""

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

FORECAST_URL = "https://api.weatherapi.com/v1/forecast.json"

DAY_ABBREVIATIONS = ["Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"]


def icon_url(icon: str) -> str:
    """The API returns protocol-relative icon paths."""
    if icon.startswith("//"):
        return f"https:{icon}"
    return icon


@dataclass
class ForecastDay:
    date: str
    max_temp_c: float
    condition: str
    icon: str

    @property
    def day_name(self) -> str:
        return DAY_ABBREVIATIONS[date.fromisoformat(self.date).weekday()]


@dataclass
class WeatherReport:
    temp_c: float
    condition: str
    icon: str
    forecast: List[ForecastDay] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "WeatherReport":
        """Parse a forecast.json response; only the next four days are kept."""
        current = data["current"]
        days = data.get("forecast", {}).get("forecastday", [])
        forecast = [
            ForecastDay(
                d["date"],
                d["day"]["maxtemp_c"],
                d["day"]["condition"]["text"],
                icon_url(d["day"]["condition"]["icon"]),
            )
            for d in days[1:5]
        ]
        return cls(
            current["temp_c"],
            current["condition"]["text"],
            icon_url(current["condition"]["icon"]),
            forecast,
        )


class WeatherService:
    """
    Fetches the forecast for one city and caches successful results.

    Failures are logged and return None so the page can show a
    placeholder; they are not cached, so the next request tries again.
    """

    def __init__(
        self,
        api_key: Optional[str],
        city: str,
        refresh_seconds: int = 3600,
        timeout: float = 10,
        http: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api_key = api_key
        self.city = city
        self.refresh_seconds = refresh_seconds
        self.timeout = timeout
        self._http = http or requests.Session()
        self._clock = clock
        self._cached: Optional[WeatherReport] = None
        self._fetched_at: Optional[float] = None

    def _is_fresh(self) -> bool:
        if self._cached is None or self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at < self.refresh_seconds

    def current(self) -> Optional[WeatherReport]:
        if self._is_fresh():
            return self._cached
        if not self.api_key:
            logger.debug("Weather API key not configured")
            return None
        try:
            response = self._http.get(
                FORECAST_URL,
                params={"key": self.api_key, "q": self.city, "days": 5, "lang": "pt"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            report = WeatherReport.from_api(response.json())
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            logger.warning("Weather fetch for %s failed: %s", self.city, e)
            return None
        self._cached = report
        self._fetched_at = self._clock()
        return report
