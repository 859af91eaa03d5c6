"""
DataUpdateCoordinator for the Location Monitor integration.

Responsibilities:
- Build the configured providers and own the ProviderLocationService.
- Own the LocationDataManager that aggregates their readings.
- Act as the manager's observer: hop every published LocationData snapshot
  onto the event loop and push it to entities. Nothing is polled.
"""
from __future__ import annotations

import logging

from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import (
    DOMAIN,
    VERSION,
    CONF_GPSD_ENABLED,
    CONF_GPSD_HOST,
    CONF_GPSD_PORT,
    CONF_NETWORK_ENABLED,
    CONF_GEOLOCATION_URL,
    CONF_MOCK_PROVIDER,
    MOCK_PROVIDER,
    DEFAULT_GPSD_HOST,
    DEFAULT_GPSD_PORT,
    DEFAULT_GEOLOCATION_URL,
)
from .location_data import LocationData
from .location_data_manager import LocationDataManager
from .location_service import PermissionOracle, ProviderLocationService
from .models import Location
from .providers import (
    GpsdLocationProvider,
    LocationProvider,
    MockLocationProvider,
    NetworkLocationProvider,
    PassiveLocationProvider,
)

_LOGGER = logging.getLogger(__name__)


def build_providers(entry_data: dict) -> list[LocationProvider]:
    """Instantiate the providers enabled in the config entry, in display order."""
    providers: list[LocationProvider] = []
    if entry_data.get(CONF_GPSD_ENABLED, False):
        providers.append(
            GpsdLocationProvider(
                host=entry_data.get(CONF_GPSD_HOST, DEFAULT_GPSD_HOST),
                port=int(entry_data.get(CONF_GPSD_PORT, DEFAULT_GPSD_PORT)),
            )
        )
    if entry_data.get(CONF_NETWORK_ENABLED, False):
        providers.append(
            NetworkLocationProvider(url=entry_data.get(CONF_GEOLOCATION_URL, DEFAULT_GEOLOCATION_URL))
        )
    providers.append(PassiveLocationProvider())
    if entry_data.get(CONF_MOCK_PROVIDER, False):
        providers.append(MockLocationProvider())
    return providers


class LocationMonitorCoordinator(DataUpdateCoordinator[LocationData]):
    """
    Push-only coordinator: the manager publishes, entities listen.
    """

    def __init__(self, hass: HomeAssistant, entry_data: dict, oracle: PermissionOracle) -> None:
        """Initialize the coordinator from merged config-entry data and options."""
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            # Providers push readings; there is nothing to poll.
            update_interval=None,
        )
        self._entry_data = entry_data
        self.service = ProviderLocationService(build_providers(entry_data), oracle)
        self.manager = LocationDataManager(self.service, oracle, self.publish)

        # Snapshot starts empty until the manager publishes
        self.data = LocationData()

    async def _async_update_data(self) -> LocationData:
        return self.manager.data

    # ------------------------------------------------------------------
    # Observer channel
    # ------------------------------------------------------------------

    def publish(self, data: LocationData) -> None:
        """
        Called by the manager from any thread with the newest snapshot.

        Never blocks: the update is scheduled on the event loop, and entities
        only ever see the latest value.
        """
        self.hass.loop.call_soon_threadsafe(self.async_set_updated_data, data)

    # ------------------------------------------------------------------
    # Write path: report_location service
    # ------------------------------------------------------------------

    def report_mock_location(
        self, latitude: float, longitude: float, **kwargs
    ) -> Location | None:
        """Feed a simulated reading through the mock provider, if configured."""
        provider = self.service.get_provider(MOCK_PROVIDER)
        if not isinstance(provider, MockLocationProvider):
            _LOGGER.error("Mock provider is not enabled for %s", self._entry_data.get("entry_name"))
            return None
        return provider.report(latitude, longitude, **kwargs)

    # ------------------------------------------------------------------
    # Entity helper: device info dict
    # ------------------------------------------------------------------

    def get_device_info(self) -> dict:
        """Return the HA DeviceInfo dict shared by every entity of this entry."""
        return {
            "identifiers": {(DOMAIN, self._entry_data["guid"])},
            "name": self._entry_data.get("entry_name") or "Location Monitor",
            "manufacturer": "Location Monitor",
            "model": ", ".join(self.service.all_providers()),
            "sw_version": VERSION,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_start(self) -> None:
        """Start the providers, then let the manager subscribe to them."""
        await self.service.async_start()
        self.manager.start()

    async def async_shutdown(self) -> None:
        """Release every subscription and stop the providers."""
        self.manager.stop()
        await self.service.async_stop()

    @property
    def entry_data(self):
        return self._entry_data
