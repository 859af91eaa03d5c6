"""
Location platform abstractions and the provider-backed implementation.

The aggregator only talks to LocationService, so tests can swap in a fake
platform that emits fixes on demand. ProviderLocationService is the real one:
it hosts LocationProvider objects (providers.py), checks permissions before
every privileged call and fans readings out to registered listeners.
"""
from __future__ import annotations

import abc
import dataclasses
import logging
import math
import threading
import time
from typing import TYPE_CHECKING, Iterable

from .const import PASSIVE_PROVIDER
from .models import Location, Permission

if TYPE_CHECKING:
    from .providers import LocationProvider

_LOGGER = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0


class LocationServiceError(Exception):
    """Base class for errors raised by a LocationService."""


class PermissionRevokedError(LocationServiceError):
    """The permission a call needs is not (or no longer) granted."""


class ProviderUnavailableError(LocationServiceError):
    """The platform does not know the requested provider."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unknown location provider: {provider}")
        self.provider = provider


class LocationListener:
    """Receives live readings and provider state changes."""

    def on_location_changed(self, location: Location) -> None:
        """Called with every reading delivered for the registered provider."""

    def on_provider_enabled(self, provider: str) -> None:
        """Called when a provider becomes enabled."""

    def on_provider_disabled(self, provider: str) -> None:
        """Called when a provider becomes disabled."""


class GnssStatusCallback:
    """Receives satellite status reports."""

    def on_satellite_status_changed(self, satellite_count: int) -> None:
        """Called with the number of satellites in the latest status report."""


class PermissionOracle(abc.ABC):
    """Answers whether a location permission is currently granted."""

    @abc.abstractmethod
    def has_permission(self, permission: Permission) -> bool:
        ...


class LocationService(abc.ABC):
    """The platform location API the aggregator depends on."""

    @abc.abstractmethod
    def all_providers(self) -> list[str]:
        ...

    @abc.abstractmethod
    def enabled_providers(self) -> list[str]:
        ...

    @abc.abstractmethod
    def is_provider_enabled(self, provider: str) -> bool:
        ...

    @abc.abstractmethod
    def get_last_known_location(self, provider: str) -> Location | None:
        """Raise PermissionRevokedError or ProviderUnavailableError on failure."""

    @abc.abstractmethod
    def request_location_updates(
        self,
        provider: str,
        min_time_ms: int,
        min_distance_m: float,
        listener: LocationListener,
    ) -> None:
        """
        Register listener for live readings from provider.

        Registering a listener that is already registered replaces its
        previous registration. Raise PermissionRevokedError or
        ProviderUnavailableError on failure.
        """

    @abc.abstractmethod
    def remove_updates(self, listener: LocationListener) -> None:
        ...

    @abc.abstractmethod
    def register_gnss_status_callback(self, callback: GnssStatusCallback) -> None:
        ...

    @abc.abstractmethod
    def unregister_gnss_status_callback(self, callback: GnssStatusCallback) -> None:
        ...


def distance_m(a: Location, b: Location) -> float:
    """Great-circle distance between two readings in metres."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlng = math.radians(b.longitude - a.longitude)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


@dataclasses.dataclass
class _Registration:
    provider: str
    min_time_ms: int
    min_distance_m: float
    last_delivered: Location | None = None
    # time.monotonic() of the last delivery; readings carry clocks of
    # different sources, so their own time_ms is never compared here
    last_delivered_at: float | None = None

    def accepts(self, location: Location, now: float) -> bool:
        last = self.last_delivered
        if last is None or self.last_delivered_at is None:
            return True
        if (now - self.last_delivered_at) * 1000 < self.min_time_ms:
            return False
        if self.min_distance_m > 0 and distance_m(last, location) < self.min_distance_m:
            return False
        return True


class ProviderLocationService(LocationService):
    """
    LocationService backed by in-process LocationProvider objects.

    Providers report through report_location / report_provider_state /
    report_satellites from any thread or from the event loop. Registration
    tables are guarded by a lock; listeners are always invoked outside it.
    """

    def __init__(
        self, providers: Iterable[LocationProvider], oracle: PermissionOracle
    ) -> None:
        self._providers: dict[str, LocationProvider] = {}
        for provider in providers:
            self._providers[provider.name] = provider
            provider.attach(self)
        self._oracle = oracle
        self._lock = threading.Lock()
        # listener → registration; one registration per listener object
        self._registrations: dict[LocationListener, _Registration] = {}
        self._gnss_callbacks: list[GnssStatusCallback] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_start(self) -> None:
        for provider in self._providers.values():
            await provider.async_start()

    async def async_stop(self) -> None:
        for provider in self._providers.values():
            await provider.async_stop()

    def get_provider(self, name: str) -> LocationProvider | None:
        return self._providers.get(name)

    # ------------------------------------------------------------------
    # LocationService
    # ------------------------------------------------------------------

    def all_providers(self) -> list[str]:
        return list(self._providers)

    def enabled_providers(self) -> list[str]:
        return [name for name, provider in self._providers.items() if provider.enabled]

    def is_provider_enabled(self, provider: str) -> bool:
        found = self._providers.get(provider)
        return found is not None and found.enabled

    def get_last_known_location(self, provider: str) -> Location | None:
        found = self._require_provider(provider)
        self._check_permission(found)
        return found.last_location

    def request_location_updates(
        self,
        provider: str,
        min_time_ms: int,
        min_distance_m: float,
        listener: LocationListener,
    ) -> None:
        found = self._require_provider(provider)
        self._check_permission(found)
        with self._lock:
            self._registrations[listener] = _Registration(
                provider=provider,
                min_time_ms=min_time_ms,
                min_distance_m=min_distance_m,
            )
        _LOGGER.debug("Listener registered for provider %s", provider)

    def remove_updates(self, listener: LocationListener) -> None:
        with self._lock:
            registration = self._registrations.pop(listener, None)
        if registration is not None:
            _LOGGER.debug("Listener removed for provider %s", registration.provider)

    def register_gnss_status_callback(self, callback: GnssStatusCallback) -> None:
        if not self._oracle.has_permission(Permission.FINE):
            raise PermissionRevokedError("Satellite status requires precise location permission")
        with self._lock:
            if callback not in self._gnss_callbacks:
                self._gnss_callbacks.append(callback)

    def unregister_gnss_status_callback(self, callback: GnssStatusCallback) -> None:
        with self._lock:
            if callback in self._gnss_callbacks:
                self._gnss_callbacks.remove(callback)

    # ------------------------------------------------------------------
    # Provider sink
    # ------------------------------------------------------------------

    def report_location(self, provider: str, location: Location) -> None:
        """Deliver a reading to every listener registered for provider."""
        now = time.monotonic()
        with self._lock:
            targets = []
            for listener, registration in self._registrations.items():
                if registration.provider != provider or not registration.accepts(location, now):
                    continue
                registration.last_delivered = location
                registration.last_delivered_at = now
                targets.append(listener)

        for listener in targets:
            try:
                listener.on_location_changed(location)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Location listener failed for provider %s", provider)

        if provider != PASSIVE_PROVIDER:
            passive = self._providers.get(PASSIVE_PROVIDER)
            if passive is not None:
                passive.relay(location)

    def report_provider_state(self, provider: str, enabled: bool) -> None:
        """Tell every registered listener that provider changed state."""
        with self._lock:
            targets = list(self._registrations)

        _LOGGER.debug("Provider %s %s", provider, "enabled" if enabled else "disabled")
        for listener in targets:
            try:
                if enabled:
                    listener.on_provider_enabled(provider)
                else:
                    listener.on_provider_disabled(provider)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Provider state listener failed for provider %s", provider)

    def report_satellites(self, satellite_count: int) -> None:
        with self._lock:
            targets = list(self._gnss_callbacks)
        for callback in targets:
            try:
                callback.on_satellite_status_changed(satellite_count)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Satellite status callback failed")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_provider(self, provider: str) -> LocationProvider:
        found = self._providers.get(provider)
        if found is None:
            raise ProviderUnavailableError(provider)
        return found

    def _check_permission(self, provider: LocationProvider) -> None:
        fine = self._oracle.has_permission(Permission.FINE)
        if provider.requires_fine and not fine:
            raise PermissionRevokedError(
                f"Provider {provider.name} requires precise location permission"
            )
        if not fine and not self._oracle.has_permission(Permission.COARSE):
            raise PermissionRevokedError(
                f"Provider {provider.name} requires location permission"
            )
