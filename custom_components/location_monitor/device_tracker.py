"""
Platform for location tracker entities.
One tracker is created per provider the moment its first live fix arrives;
each tracker then follows that provider's entry in current_fixes.
"""
from __future__ import annotations

import logging

from homeassistant.components.device_tracker import SourceType
from homeassistant.components.device_tracker.config_entry import TrackerEntity
from homeassistant.core import HomeAssistant, callback
from homeassistant import config_entries
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, GPS_PROVIDER
from .coordinator import LocationMonitorCoordinator
from .location_data import diff_fixes
from .models import LocationFix

_LOGGER = logging.getLogger(__name__)


class ProviderLocationTracker(CoordinatorEntity[LocationMonitorCoordinator], TrackerEntity):
    """
    Representation of the current fix of one location provider.
    """

    def __init__(self, coordinator: LocationMonitorCoordinator, provider: str) -> None:
        """Initialize the tracker."""
        super().__init__(coordinator)
        self._provider = provider
        entry_name = coordinator.entry_data.get("entry_name", "Location Monitor")
        self._attr_unique_id = f"location_monitor_{coordinator.entry_data['guid']}_{provider}_location"
        self._attr_name = f"{entry_name} {provider} location"
        self._attr_icon = "mdi:crosshairs-gps" if provider == GPS_PROVIDER else "mdi:map-marker"

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def _fix(self) -> LocationFix | None:
        return self.coordinator.data.current_fixes.get(self._provider)

    @property
    def device_info(self) -> DeviceInfo | None:
        """Return the device info."""
        return self.coordinator.get_device_info()

    @property
    def available(self) -> bool:
        return super().available and self._fix is not None

    @property
    def latitude(self) -> float | None:
        fix = self._fix
        return fix.latitude if fix is not None else None

    @property
    def longitude(self) -> float | None:
        fix = self._fix
        return fix.longitude if fix is not None else None

    @property
    def location_accuracy(self) -> float:
        fix = self._fix
        return fix.accuracy if fix is not None else 0

    @property
    def source_type(self) -> SourceType:
        """Return the source type, eg gps or router, of the device."""
        return SourceType.GPS

    @property
    def extra_state_attributes(self) -> dict | None:
        fix = self._fix
        if fix is None:
            return None
        return {
            "provider": fix.provider,
            "altitude": fix.altitude,
            "bearing": fix.bearing,
            "speed": fix.speed,
            "timestamp": fix.timestamp,
            "satellite_count": fix.satellite_count,
            "is_mock": fix.is_mock,
        }


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add a tracker for every provider that reports a live fix."""
    coordinator: LocationMonitorCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    seen_fixes: dict[str, LocationFix] = {}

    @callback
    def _async_add_new_providers() -> None:
        current = coordinator.data.current_fixes
        diff = diff_fixes(seen_fixes, current)
        seen_fixes.clear()
        seen_fixes.update(current)
        if not diff.added:
            return
        _LOGGER.debug("Adding location trackers for providers: %s", sorted(diff.added))
        async_add_entities(
            [ProviderLocationTracker(coordinator, provider) for provider in sorted(diff.added)]
        )

    _async_add_new_providers()
    config_entry.async_on_unload(coordinator.async_add_listener(_async_add_new_providers))
