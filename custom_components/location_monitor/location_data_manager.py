"""
LocationDataManager: single source of truth for location state.

Responsibilities:
- Enumerate providers and capture last-known fixes once per start().
- Keep exactly one live subscription per enabled provider.
- Merge every live fix into the snapshot, keyed by provider, and publish it.
- Track the latest satellite count and attach it to GPS fixes only.

Platform callbacks may arrive concurrently from any thread. Every
read-modify-publish of the snapshot runs under one re-entrant lock, and the
observer is expected to return immediately (fire-and-forget).
"""
from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Callable

from .const import (
    GPS_PROVIDER,
    NETWORK_PROVIDER,
    MIN_UPDATE_TIME_MS,
    MIN_UPDATE_DISTANCE_M,
    ERROR_PERMISSIONS_NOT_GRANTED,
    ERROR_SECURITY_EXCEPTION,
    ERROR_PROVIDER_NOT_AVAILABLE,
)
from .location_data import LocationData, merge_fix
from .location_service import (
    GnssStatusCallback,
    LocationListener,
    LocationService,
    PermissionOracle,
    PermissionRevokedError,
    ProviderUnavailableError,
)
from .models import Location, LocationFix, Permission, format_fix_time

_LOGGER = logging.getLogger(__name__)


class _ProviderListener(LocationListener):
    """Live subscription for one provider; forwards everything to the manager."""

    def __init__(self, manager: LocationDataManager, provider: str) -> None:
        self.manager = manager
        self.provider = provider

    def on_location_changed(self, location: Location) -> None:
        self.manager._on_location(self, location)

    def on_provider_enabled(self, provider: str) -> None:
        self.manager._on_provider_changed(self, provider)

    def on_provider_disabled(self, provider: str) -> None:
        self.manager._on_provider_changed(self, provider)


class _SatelliteStatus(GnssStatusCallback):

    def __init__(self, manager: LocationDataManager) -> None:
        self.manager = manager

    def on_satellite_status_changed(self, satellite_count: int) -> None:
        self.manager._on_satellites(self, satellite_count)


class LocationDataManager:
    """
    Aggregates readings from every enabled provider into LocationData
    snapshots and hands each new snapshot to a single observer.
    """

    def __init__(
        self,
        service: LocationService,
        oracle: PermissionOracle,
        observer: Callable[[LocationData], None],
        formatter: Callable[[int], str] = format_fix_time,
    ) -> None:
        self._service = service
        self._oracle = oracle
        self._observer = observer
        self._formatter = formatter

        self._lock = threading.RLock()
        self._data = LocationData()
        # provider → the one listener currently registered for it
        self._listeners: dict[str, _ProviderListener] = {}
        self._gnss_callback: _SatelliteStatus | None = None
        self._satellite_count: int | None = None
        self._running = False

    @property
    def data(self) -> LocationData:
        return self._data

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def satellite_count(self) -> int | None:
        return self._satellite_count

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        (Re)derive all state from the platform and subscribe to every enabled
        provider. Safe to call repeatedly: listeners left over from a previous
        call are replaced, never duplicated.
        """
        with self._lock:
            if not self._has_location_permission():
                _LOGGER.warning("Location tracking not started: no location permission granted")
                if self._running:
                    # Permission lost while tracking
                    self.stop()
                    self._publish(LocationData(error_message=ERROR_PERMISSIONS_NOT_GRANTED))
                else:
                    self._publish(
                        dataclasses.replace(self._data, error_message=ERROR_PERMISSIONS_NOT_GRANTED)
                    )
                return

            self._running = True
            available = tuple(self._service.all_providers())
            enabled = tuple(self._service.enabled_providers())
            services_enabled = (
                self._service.is_provider_enabled(GPS_PROVIDER)
                or self._service.is_provider_enabled(NETWORK_PROVIDER)
            )

            self._setup_gnss_status_callback()
            last_known = self._get_last_known_fixes(available)

            for provider in [p for p in self._listeners if p not in enabled]:
                self._service.remove_updates(self._listeners.pop(provider))

            error_message = None
            for provider in enabled:
                error_message = self._start_listener(provider) or error_message

            _LOGGER.debug(
                "Tracking started: available=%s enabled=%s", list(available), list(enabled)
            )
            self._publish(
                dataclasses.replace(
                    self._data,
                    location_services_enabled=services_enabled,
                    available_providers=available,
                    enabled_providers=enabled,
                    last_known_fixes=last_known,
                    error_message=error_message,
                )
            )

    def stop(self) -> None:
        """Release every subscription. No publish happens until the next start()."""
        with self._lock:
            for listener in self._listeners.values():
                self._service.remove_updates(listener)
            self._listeners.clear()

            if self._gnss_callback is not None:
                self._service.unregister_gnss_status_callback(self._gnss_callback)
                self._gnss_callback = None

            self._satellite_count = None
            if self._running:
                _LOGGER.debug("Tracking stopped")
            self._running = False

    # ------------------------------------------------------------------
    # Start sequence
    # ------------------------------------------------------------------

    def _has_location_permission(self) -> bool:
        return self._oracle.has_permission(Permission.FINE) or self._oracle.has_permission(
            Permission.COARSE
        )

    def _setup_gnss_status_callback(self) -> None:
        """Best effort: satellite status needs precise permission."""
        if self._gnss_callback is not None:
            self._service.unregister_gnss_status_callback(self._gnss_callback)
            self._gnss_callback = None
        self._satellite_count = None

        if not self._oracle.has_permission(Permission.FINE):
            return

        callback = _SatelliteStatus(self)
        try:
            self._service.register_gnss_status_callback(callback)
        except PermissionRevokedError as exc:
            _LOGGER.debug("Satellite status unavailable: %s", exc)
            return
        self._gnss_callback = callback

    def _get_last_known_fixes(self, providers: tuple[str, ...]) -> dict[str, LocationFix]:
        fixes: dict[str, LocationFix] = {}
        for provider in providers:
            try:
                location = self._service.get_last_known_location(provider)
            except (PermissionRevokedError, ProviderUnavailableError) as exc:
                _LOGGER.debug("Skipping last known location for %s: %s", provider, exc)
                continue
            if location is None:
                continue
            fixes[provider] = LocationFix.from_location(
                location, provider, self._satellite_count, self._formatter
            )
        return fixes

    def _start_listener(self, provider: str) -> str | None:
        """Subscribe to provider; return an error message if that failed."""
        previous = self._listeners.pop(provider, None)
        if previous is not None:
            self._service.remove_updates(previous)

        listener = _ProviderListener(self, provider)
        try:
            self._service.request_location_updates(
                provider, MIN_UPDATE_TIME_MS, MIN_UPDATE_DISTANCE_M, listener
            )
        except PermissionRevokedError as exc:
            message = ERROR_SECURITY_EXCEPTION.format(message=exc)
        except ProviderUnavailableError:
            message = ERROR_PROVIDER_NOT_AVAILABLE.format(provider=provider)
        else:
            self._listeners[provider] = listener
            return None

        _LOGGER.warning("Cannot subscribe to provider %s: %s", provider, message)
        self._publish(dataclasses.replace(self._data, error_message=message))
        return message

    # ------------------------------------------------------------------
    # Platform callbacks
    # ------------------------------------------------------------------

    def _on_location(self, listener: _ProviderListener, location: Location) -> None:
        with self._lock:
            if self._listeners.get(listener.provider) is not listener:
                _LOGGER.debug("Dropping location from released %s listener", listener.provider)
                return
            fix = LocationFix.from_location(
                location, listener.provider, self._satellite_count, self._formatter
            )
            self._publish(
                dataclasses.replace(
                    self._data,
                    current_fixes=merge_fix(self._data.current_fixes, fix),
                    error_message=None,
                )
            )

    def _on_provider_changed(self, listener: _ProviderListener, provider: str) -> None:
        with self._lock:
            if self._listeners.get(listener.provider) is not listener:
                return
            _LOGGER.debug("Provider %s changed state, restarting tracking", provider)
            self.start()

    def _on_satellites(self, callback: _SatelliteStatus, satellite_count: int) -> None:
        with self._lock:
            if callback is not self._gnss_callback:
                return
            self._satellite_count = satellite_count

    def _publish(self, data: LocationData) -> None:
        self._data = data
        self._observer(data)
