import logging

import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries, core
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import ConfigEntryError, HomeAssistantError

from .const import (
    DOMAIN,
    SERVICE_REPORT_LOCATION,
    CONF_GPSD_ENABLED,
    CONF_NETWORK_ENABLED,
    CONF_MOCK_PROVIDER,
)
from .coordinator import LocationMonitorCoordinator
from .permissions import ConfigEntryPermissionOracle

PLATFORMS: list[Platform] = [Platform.DEVICE_TRACKER, Platform.SENSOR, Platform.BINARY_SENSOR]
_LOGGER = logging.getLogger(__name__)

REPORT_LOCATION_SCHEMA = vol.Schema(
    {
        vol.Optional("entry_id"): cv.string,
        vol.Required("latitude"): cv.latitude,
        vol.Required("longitude"): cv.longitude,
        vol.Optional("accuracy", default=0.0): vol.Coerce(float),
        vol.Optional("altitude", default=0.0): vol.Coerce(float),
        vol.Optional("bearing", default=0.0): vol.Coerce(float),
        vol.Optional("speed", default=0.0): vol.Coerce(float),
    }
)


def entry_config(entry: config_entries.ConfigEntry) -> dict:
    """Config-entry data with options layered on top."""
    return {**entry.data, **entry.options}


async def async_setup(hass: core.HomeAssistant, config: dict) -> bool:
    """Set up the integration."""
    hass.data.setdefault(DOMAIN, {})

    async def _async_report_location(call: ServiceCall) -> None:
        await async_report_location(hass, call)

    hass.services.async_register(
        DOMAIN, SERVICE_REPORT_LOCATION, _async_report_location, schema=REPORT_LOCATION_SCHEMA
    )
    return True


async def async_report_location(hass: HomeAssistant, call: ServiceCall) -> None:
    """Feed a simulated fix to every (or one) entry with the mock provider enabled."""
    data = dict(call.data)
    entry_id = data.pop("entry_id", None)
    coordinators = hass.data.get(DOMAIN, {})
    if entry_id is not None:
        coordinators = {entry_id: coordinators[entry_id]} if entry_id in coordinators else {}

    reported = False
    for coordinator in coordinators.values():
        if coordinator.report_mock_location(**data) is not None:
            reported = True
    if not reported:
        raise HomeAssistantError("No Location Monitor entry has the mock provider enabled")


async def async_setup_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Set up platform from a ConfigEntry."""
    config = entry_config(entry)
    if not any(config.get(key, False) for key in (CONF_GPSD_ENABLED, CONF_NETWORK_ENABLED, CONF_MOCK_PROVIDER)):
        raise ConfigEntryError("No location provider is enabled for this entry")

    entry.async_on_unload(
        entry.add_update_listener(_async_update_listener)
    )

    coordinator = LocationMonitorCoordinator(hass, config, ConfigEntryPermissionOracle(entry))
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = coordinator
    await coordinator.async_start()

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    return True


async def _async_update_listener(hass: HomeAssistant, config_entry):
    """Handle config options update."""
    # Reload the integration when the options change.
    await hass.config_entries.async_reload(config_entry.entry_id)


async def async_unload_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Unload a config entry."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        coordinator = hass.data[DOMAIN].pop(entry.entry_id, None)
        if coordinator is not None:
            await coordinator.async_shutdown()
    return unloaded
