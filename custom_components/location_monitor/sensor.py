"""
Platform for location sensors.
This module renders the two fix collections (current and last known), the
provider lists and the GNSS satellite count of the LocationData snapshot.
"""
from __future__ import annotations

import logging

from homeassistant.components.sensor import SensorEntity, SensorStateClass
from homeassistant.core import HomeAssistant
from homeassistant import config_entries
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, GPS_PROVIDER
from .coordinator import LocationMonitorCoordinator
from .models import LocationFix

_LOGGER = logging.getLogger(__name__)


class LocationMonitorSensor(CoordinatorEntity[LocationMonitorCoordinator], SensorEntity):
    """Common naming and device info for every sensor of one config entry."""

    _key: str = ""
    _label: str = ""

    def __init__(self, coordinator: LocationMonitorCoordinator) -> None:
        super().__init__(coordinator)
        entry_name = coordinator.entry_data.get("entry_name", "Location Monitor")
        self._attr_unique_id = f"location_monitor_{coordinator.entry_data['guid']}_{self._key}"
        self._attr_name = f"{entry_name} {self._label}"

    @property
    def device_info(self) -> DeviceInfo | None:
        """Return the device info."""
        return self.coordinator.get_device_info()


class SatelliteCountSensor(LocationMonitorSensor):
    """Satellites seen when the current GPS fix was recorded."""

    _key = "satellites"
    _label = "Satellites"
    _attr_icon = "mdi:satellite-variant"
    _attr_state_class = SensorStateClass.MEASUREMENT

    @property
    def native_value(self) -> int | None:
        fix = self.coordinator.data.current_fixes.get(GPS_PROVIDER)
        if fix is None:
            return None
        return fix.satellite_count


class _FixesSensor(LocationMonitorSensor):
    """State is the number of fixes; the fixes themselves are attributes."""

    _attr_icon = "mdi:map-marker-multiple"
    _attr_state_class = SensorStateClass.MEASUREMENT

    def _fixes(self) -> dict[str, LocationFix]:
        raise NotImplementedError

    @property
    def native_value(self) -> int:
        return len(self._fixes())

    @property
    def extra_state_attributes(self) -> dict:
        return {"fixes": [fix.as_dict() for fix in self._fixes().values()]}


class CurrentFixesSensor(_FixesSensor):
    _key = "current_fixes"
    _label = "Current locations"

    def _fixes(self) -> dict[str, LocationFix]:
        return self.coordinator.data.current_fixes


class LastKnownFixesSensor(_FixesSensor):
    _key = "last_known_fixes"
    _label = "Last known locations"
    _attr_icon = "mdi:map-marker-radius"

    def _fixes(self) -> dict[str, LocationFix]:
        return self.coordinator.data.last_known_fixes


class EnabledProvidersSensor(LocationMonitorSensor):
    """Number of enabled providers, with both provider lists as attributes."""

    _key = "providers"
    _label = "Enabled providers"
    _attr_icon = "mdi:access-point"

    @property
    def native_value(self) -> int:
        return len(self.coordinator.data.enabled_providers)

    @property
    def extra_state_attributes(self) -> dict:
        data = self.coordinator.data
        return {
            "available_providers": list(data.available_providers),
            "enabled_providers": list(data.enabled_providers),
        }


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add sensors for passed config_entry in HA."""
    coordinator: LocationMonitorCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    _LOGGER.debug("Adding location monitor sensors")
    async_add_entities(
        [
            CurrentFixesSensor(coordinator),
            LastKnownFixesSensor(coordinator),
            EnabledProvidersSensor(coordinator),
            SatelliteCountSensor(coordinator),
        ]
    )
