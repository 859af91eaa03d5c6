"""
Location providers hosted by ProviderLocationService.

Responsibilities:
- gps:     stream TPV/SKY reports from a gpsd daemon over TCP.
- network: poll an HTTP IP-geolocation endpoint.
- passive: relay every reading produced by the other providers.
- mock:    accept readings pushed through the report_location service.

Providers own their own asyncio tasks and report through the attached sink.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

import aiohttp

from homeassistant.util import dt as dt_util

from .const import (
    GPS_PROVIDER,
    NETWORK_PROVIDER,
    PASSIVE_PROVIDER,
    MOCK_PROVIDER,
    DEFAULT_GPSD_HOST,
    DEFAULT_GPSD_PORT,
    GPSD_WATCH_COMMAND,
    GPSD_RECONNECT_DELAY,
    GPSD_MIN_FIX_MODE,
    DEFAULT_GEOLOCATION_URL,
    NETWORK_POLL_INTERVAL,
    NETWORK_ACCURACY,
    NETWORK_REQUEST_TIMEOUT,
)
from .models import Location

_LOGGER = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class LocationProvider:
    """
    Base class for a named source of readings.

    Subclasses call _emit() with every new reading and _set_enabled() when
    their availability changes.
    """

    name: str = ""
    requires_fine: bool = True

    def __init__(self) -> None:
        self._sink = None
        self._enabled = False
        self._last_location: Location | None = None

    def attach(self, sink) -> None:
        self._sink = sink

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def last_location(self) -> Location | None:
        return self._last_location

    async def async_start(self) -> None:
        """Start producing readings."""

    async def async_stop(self) -> None:
        """Stop producing readings and release resources."""

    def _set_enabled(self, enabled: bool) -> None:
        if enabled == self._enabled:
            return
        self._enabled = enabled
        _LOGGER.info("Location provider %s %s", self.name, "enabled" if enabled else "disabled")
        if self._sink is not None:
            self._sink.report_provider_state(self.name, enabled)

    def _emit(self, location: Location) -> None:
        self._last_location = location
        if self._sink is not None:
            self._sink.report_location(self.name, location)


# ---------------------------------------------------------------------------
# gps: gpsd JSON protocol
# ---------------------------------------------------------------------------

def parse_tpv(report: dict[str, Any]) -> Location | None:
    """
    Convert a gpsd TPV report into a Location.

    Returns None when the receiver has no 2D/3D fix or coordinates are missing.
    """
    if report.get("mode", 0) < GPSD_MIN_FIX_MODE:
        return None
    lat = report.get("lat")
    lon = report.get("lon")
    if lat is None or lon is None:
        return None

    if report.get("eph") is not None:
        accuracy = float(report["eph"])
    elif report.get("epx") is not None and report.get("epy") is not None:
        accuracy = float(max(report["epx"], report["epy"]))
    else:
        accuracy = 0.0

    altitude = report.get("altHAE", report.get("alt"))

    time_ms = None
    if report.get("time"):
        parsed = dt_util.parse_datetime(report["time"])
        if parsed is not None:
            time_ms = int(parsed.timestamp() * 1000)

    return Location(
        provider=GPS_PROVIDER,
        latitude=float(lat),
        longitude=float(lon),
        accuracy=accuracy,
        altitude=float(altitude) if altitude is not None else 0.0,
        bearing=float(report.get("track") or 0.0),
        speed=float(report.get("speed") or 0.0),
        time_ms=time_ms if time_ms is not None else _now_ms(),
    )


def parse_sky(report: dict[str, Any]) -> int | None:
    """Return the satellite count of a gpsd SKY report, if it carries one."""
    if report.get("nSat") is not None:
        return int(report["nSat"])
    satellites = report.get("satellites")
    if isinstance(satellites, list):
        return len(satellites)
    return None


class GpsdLocationProvider(LocationProvider):
    """Satellite provider fed by a gpsd daemon; enabled while connected."""

    name = GPS_PROVIDER
    requires_fine = True

    def __init__(self, host: str = DEFAULT_GPSD_HOST, port: int = DEFAULT_GPSD_PORT) -> None:
        super().__init__()
        self._host = host
        self._port = port
        self._task: asyncio.Task | None = None

    async def async_start(self) -> None:
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())

    async def async_stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self._set_enabled(False)

    def handle_report(self, line: bytes | str) -> None:
        """Dispatch one JSON line received from gpsd."""
        try:
            report = json.loads(line)
        except ValueError:
            _LOGGER.debug("Ignoring malformed gpsd line: %r", line)
            return
        if not isinstance(report, dict):
            return

        report_class = report.get("class")
        if report_class == "TPV":
            location = self._parse(parse_tpv, report, line)
            if location is not None:
                self._emit(location)
        elif report_class == "SKY":
            satellite_count = self._parse(parse_sky, report, line)
            if satellite_count is not None and self._sink is not None:
                self._sink.report_satellites(satellite_count)

    @staticmethod
    def _parse(parser, report: dict[str, Any], line: bytes | str):
        """Run a report parser; a report with invalid field values is skipped."""
        try:
            return parser(report)
        except (ValueError, TypeError) as exc:
            _LOGGER.debug("Ignoring invalid gpsd report %r: %s", line, exc)
            return None

    async def _run(self) -> None:
        """Keep a gpsd connection open, reconnecting after failures."""
        while True:
            try:
                reader, writer = await asyncio.open_connection(self._host, self._port)
            except OSError as exc:
                _LOGGER.warning(
                    "Cannot connect to gpsd at %s:%s: %s", self._host, self._port, exc
                )
                await asyncio.sleep(GPSD_RECONNECT_DELAY)
                continue

            self._set_enabled(True)
            try:
                writer.write(GPSD_WATCH_COMMAND)
                await writer.drain()
                while True:
                    line = await reader.readline()
                    if not line:
                        _LOGGER.warning("gpsd at %s:%s closed the connection", self._host, self._port)
                        break
                    self.handle_report(line)
            except OSError as exc:
                _LOGGER.warning("Lost connection to gpsd at %s:%s: %s", self._host, self._port, exc)
            finally:
                writer.close()
                self._set_enabled(False)

            await asyncio.sleep(GPSD_RECONNECT_DELAY)


# ---------------------------------------------------------------------------
# network: IP geolocation over HTTP
# ---------------------------------------------------------------------------

def parse_geolocation(raw: Any) -> tuple[float, float] | None:
    """
    Extract (latitude, longitude) from an IP-geolocation response.

    Accepts the ip-api.com shape ({"status": "success", "lat", "lon"}) and the
    common {"latitude", "longitude"} shape.
    """
    if not isinstance(raw, dict) or raw.get("status") == "fail":
        return None
    lat = raw.get("lat", raw.get("latitude"))
    lon = raw.get("lon", raw.get("longitude"))
    if lat is None or lon is None:
        return None
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        return None


async def fetch_network_location(url: str) -> Location | None:
    """
    Fetch the current position of this host from an IP-geolocation endpoint.

    Returns None on any error so callers can handle the absence gracefully.
    """
    headers = {"accept": "application/json"}
    timeout = aiohttp.ClientTimeout(total=NETWORK_REQUEST_TIMEOUT)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=headers) as resp:
                if resp.status != 200:
                    _LOGGER.warning("Geolocation API returned HTTP %s from %s", resp.status, url)
                    return None
                raw = await resp.json(content_type=None)
    except asyncio.TimeoutError:
        _LOGGER.warning("Timeout fetching network location from %s", url)
        return None
    except Exception as exc:  # noqa: BLE001
        _LOGGER.error("Unexpected error fetching network location from %s: %s", url, exc)
        return None

    coordinates = parse_geolocation(raw)
    if coordinates is None:
        _LOGGER.warning("Unexpected geolocation response from %s: %s", url, raw)
        return None

    return Location(
        provider=NETWORK_PROVIDER,
        latitude=coordinates[0],
        longitude=coordinates[1],
        accuracy=NETWORK_ACCURACY,
        time_ms=_now_ms(),
    )


class NetworkLocationProvider(LocationProvider):
    """Coarse provider based on the public IP address of the host."""

    name = NETWORK_PROVIDER
    requires_fine = False

    def __init__(
        self, url: str = DEFAULT_GEOLOCATION_URL, poll_interval: float = NETWORK_POLL_INTERVAL
    ) -> None:
        super().__init__()
        self._url = url
        self._poll_interval = poll_interval
        self._task: asyncio.Task | None = None

    async def async_start(self) -> None:
        self._set_enabled(True)
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())

    async def async_stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        self._set_enabled(False)

    async def _run(self) -> None:
        while True:
            location = await fetch_network_location(self._url)
            if location is not None:
                self._emit(location)
            await asyncio.sleep(self._poll_interval)


# ---------------------------------------------------------------------------
# passive / mock
# ---------------------------------------------------------------------------

class PassiveLocationProvider(LocationProvider):
    """Never requests readings itself; sees whatever other providers produce."""

    name = PASSIVE_PROVIDER
    requires_fine = True

    def __init__(self) -> None:
        super().__init__()
        self._enabled = True

    def relay(self, location: Location) -> None:
        self._emit(location)


class MockLocationProvider(LocationProvider):
    """Provider fed by hand; every reading is flagged as simulated."""

    name = MOCK_PROVIDER
    requires_fine = False

    def __init__(self) -> None:
        super().__init__()
        self._enabled = True

    def report(
        self,
        latitude: float,
        longitude: float,
        accuracy: float = 0.0,
        altitude: float = 0.0,
        bearing: float = 0.0,
        speed: float = 0.0,
        time_ms: int | None = None,
    ) -> Location:
        location = Location(
            provider=MOCK_PROVIDER,
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            altitude=altitude,
            bearing=bearing,
            speed=speed,
            time_ms=time_ms if time_ms is not None else _now_ms(),
            is_mock=True,
        )
        self._emit(location)
        return location
