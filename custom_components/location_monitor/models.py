"""
Domain models for the Location Monitor integration.

This module contains pure data classes describing location readings.
The only HA dependency is homeassistant.util.dt for local-time rendering.
"""
from __future__ import annotations

import dataclasses
import enum
import logging
from typing import Callable

from homeassistant.util import dt as dt_util

from .const import GPS_PROVIDER, TIMESTAMP_FORMAT

_LOGGER = logging.getLogger(__name__)


class Permission(enum.Enum):
    """Location permission categories a user may grant."""

    FINE = "fine"
    COARSE = "coarse"


@dataclasses.dataclass(frozen=True)
class Location:
    """One raw reading as emitted by a provider."""

    provider: str | None
    latitude: float
    longitude: float
    accuracy: float = 0.0
    altitude: float = 0.0
    bearing: float = 0.0
    speed: float = 0.0
    time_ms: int = 0
    is_mock: bool = False


def format_fix_time(time_ms: int) -> str:
    """Render an epoch-milliseconds timestamp as local 'yyyy-MM-dd HH:mm:ss'."""
    utc = dt_util.utc_from_timestamp(time_ms / 1000)
    return dt_util.as_local(utc).strftime(TIMESTAMP_FORMAT)


@dataclasses.dataclass(frozen=True)
class LocationFix:
    """
    One reading from one provider, ready to be shown.

    satellite_count is only ever set for the GPS provider, and only once a
    satellite status report has been seen.
    """

    provider: str
    latitude: float
    longitude: float
    accuracy: float
    altitude: float
    bearing: float
    speed: float
    timestamp: str
    satellite_count: int | None = None
    is_mock: bool = False

    @classmethod
    def from_location(
        cls,
        location: Location,
        provider: str,
        satellite_count: int | None = None,
        formatter: Callable[[int], str] = format_fix_time,
    ) -> LocationFix:
        """
        Build a fix from a raw location.

        provider is the name the reading was requested for. It keys the fix, so
        a location relayed through the passive provider shows up as "passive"
        even though location.provider still names its origin.
        """
        return cls(
            provider=provider,
            latitude=location.latitude,
            longitude=location.longitude,
            accuracy=location.accuracy,
            altitude=location.altitude,
            bearing=location.bearing,
            speed=location.speed,
            timestamp=formatter(location.time_ms),
            satellite_count=satellite_count if provider == GPS_PROVIDER else None,
            is_mock=location.is_mock,
        )

    def as_dict(self) -> dict:
        return dataclasses.asdict(self)
