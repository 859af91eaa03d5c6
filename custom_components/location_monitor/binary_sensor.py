"""
Platform for location status binary sensors.
This module exposes whether location services are enabled and whether the
last published snapshot carries an error.
"""
from __future__ import annotations

import logging

from homeassistant.components.binary_sensor import BinarySensorEntity, BinarySensorDeviceClass
from homeassistant.core import HomeAssistant
from homeassistant import config_entries
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN
from .coordinator import LocationMonitorCoordinator

_LOGGER = logging.getLogger(__name__)


class LocationServicesSensor(CoordinatorEntity[LocationMonitorCoordinator], BinarySensorEntity):
    """On while the gps or network provider is enabled."""

    def __init__(self, coordinator: LocationMonitorCoordinator) -> None:
        super().__init__(coordinator)
        entry_name = coordinator.entry_data.get("entry_name", "Location Monitor")
        self._attr_unique_id = f"location_monitor_{coordinator.entry_data['guid']}_services"
        self._attr_name = f"{entry_name} Location services"

    @property
    def device_info(self) -> DeviceInfo | None:
        return self.coordinator.get_device_info()

    @property
    def icon(self) -> str | None:
        if self.is_on:
            return "mdi:crosshairs-gps"
        return "mdi:crosshairs-off"

    @property
    def is_on(self) -> bool | None:
        return self.coordinator.data.location_services_enabled


class LocationErrorSensor(CoordinatorEntity[LocationMonitorCoordinator], BinarySensorEntity):
    """On while the latest snapshot carries an error message."""

    _attr_device_class = BinarySensorDeviceClass.PROBLEM

    def __init__(self, coordinator: LocationMonitorCoordinator) -> None:
        super().__init__(coordinator)
        entry_name = coordinator.entry_data.get("entry_name", "Location Monitor")
        self._attr_unique_id = f"location_monitor_{coordinator.entry_data['guid']}_error"
        self._attr_name = f"{entry_name} Location error"

    @property
    def device_info(self) -> DeviceInfo | None:
        return self.coordinator.get_device_info()

    @property
    def icon(self) -> str | None:
        if self.is_on:
            return "mdi:alert-circle"
        return "mdi:check-circle"

    @property
    def is_on(self) -> bool | None:
        return self.coordinator.data.error_message is not None

    @property
    def extra_state_attributes(self) -> dict:
        return {"error_message": self.coordinator.data.error_message}


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add binary sensors for passed config_entry in HA."""
    coordinator: LocationMonitorCoordinator = hass.data[DOMAIN][config_entry.entry_id]
    async_add_entities(
        [LocationServicesSensor(coordinator), LocationErrorSensor(coordinator)]
    )
