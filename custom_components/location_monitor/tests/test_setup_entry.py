"""
Unit tests for __init__.py: entry setup/unload, the report_location service
and the config-entry permission oracle.

Coverage:
- no provider enabled → raises ConfigEntryError before the coordinator is created
- valid entry → coordinator started, stored under hass.data and platforms forwarded
- options are layered over data when building the coordinator
- unload shuts the coordinator down only when the platforms unloaded
- report_location feeds every entry with a mock provider, or fails loudly
"""

from __future__ import annotations

import unittest
from unittest.mock import ANY, AsyncMock, MagicMock, patch

import voluptuous as vol

from homeassistant.exceptions import ConfigEntryError, HomeAssistantError

from custom_components.location_monitor import (
    PLATFORMS,
    REPORT_LOCATION_SCHEMA,
    async_report_location,
    async_setup,
    async_setup_entry,
    async_unload_entry,
)
from custom_components.location_monitor.const import DOMAIN
from custom_components.location_monitor.models import Permission
from custom_components.location_monitor.permissions import ConfigEntryPermissionOracle

from .test_common import make_entry_data


def _make_mock_entry(options: dict | None = None, **data_kwargs) -> MagicMock:
    """Return a minimal mock ConfigEntry."""
    entry = MagicMock()
    entry.entry_id = "entry-1"
    entry.data = make_entry_data(**data_kwargs)
    entry.options = dict(options) if options is not None else {}
    entry.async_on_unload = MagicMock()
    entry.add_update_listener = MagicMock(return_value=MagicMock())
    return entry


def _make_hass() -> MagicMock:
    hass = MagicMock()
    hass.data = {}
    hass.config_entries.async_forward_entry_setups = AsyncMock()
    hass.config_entries.async_unload_platforms = AsyncMock(return_value=True)
    return hass


def _mock_coordinator() -> MagicMock:
    coordinator = MagicMock()
    coordinator.async_start = AsyncMock()
    coordinator.async_shutdown = AsyncMock()
    return coordinator


class TestAsyncSetupEntry(unittest.IsolatedAsyncioTestCase):

    async def test_no_provider_raises_config_entry_error(self):
        hass = _make_hass()
        entry = _make_mock_entry(gpsd_enabled=False, network_enabled=False, enable_mock_provider=False)

        with patch("custom_components.location_monitor.LocationMonitorCoordinator") as MockCoord:
            with self.assertRaises(ConfigEntryError):
                await async_setup_entry(hass, entry)

        MockCoord.assert_not_called()
        hass.config_entries.async_forward_entry_setups.assert_not_called()

    async def test_valid_entry_completes_setup(self):
        hass = _make_hass()
        entry = _make_mock_entry()
        coordinator = _mock_coordinator()

        with patch(
            "custom_components.location_monitor.LocationMonitorCoordinator",
            return_value=coordinator,
        ) as MockCoord:
            result = await async_setup_entry(hass, entry)

        self.assertTrue(result)
        self.assertIs(hass.data[DOMAIN]["entry-1"], coordinator)
        coordinator.async_start.assert_awaited_once()
        hass.config_entries.async_forward_entry_setups.assert_awaited_once_with(entry, PLATFORMS)
        entry.add_update_listener.assert_called_once()
        _, _, oracle = MockCoord.call_args.args
        self.assertIsInstance(oracle, ConfigEntryPermissionOracle)

    async def test_options_override_data(self):
        hass = _make_hass()
        entry = _make_mock_entry(options={"gpsd_host": "gps.lan", "network_enabled": True})

        with patch(
            "custom_components.location_monitor.LocationMonitorCoordinator",
            return_value=_mock_coordinator(),
        ) as MockCoord:
            await async_setup_entry(hass, entry)

        config = MockCoord.call_args.args[1]
        self.assertEqual(config["gpsd_host"], "gps.lan")
        self.assertTrue(config["network_enabled"])
        self.assertEqual(config["guid"], "test-guid")

    async def test_options_can_disable_every_provider(self):
        hass = _make_hass()
        entry = _make_mock_entry(options={"gpsd_enabled": False, "enable_mock_provider": False})

        with self.assertRaises(ConfigEntryError):
            await async_setup_entry(hass, entry)


class TestAsyncUnloadEntry(unittest.IsolatedAsyncioTestCase):

    async def test_unload_shuts_coordinator_down(self):
        hass = _make_hass()
        entry = _make_mock_entry()
        coordinator = _mock_coordinator()
        hass.data[DOMAIN] = {"entry-1": coordinator}

        self.assertTrue(await async_unload_entry(hass, entry))

        coordinator.async_shutdown.assert_awaited_once()
        self.assertNotIn("entry-1", hass.data[DOMAIN])

    async def test_failed_platform_unload_keeps_coordinator(self):
        hass = _make_hass()
        hass.config_entries.async_unload_platforms = AsyncMock(return_value=False)
        entry = _make_mock_entry()
        coordinator = _mock_coordinator()
        hass.data[DOMAIN] = {"entry-1": coordinator}

        self.assertFalse(await async_unload_entry(hass, entry))

        coordinator.async_shutdown.assert_not_called()
        self.assertIs(hass.data[DOMAIN]["entry-1"], coordinator)


class TestReportLocationService(unittest.IsolatedAsyncioTestCase):

    async def test_async_setup_registers_service(self):
        hass = _make_hass()

        self.assertTrue(await async_setup(hass, {}))

        hass.services.async_register.assert_called_once_with(
            DOMAIN, "report_location", ANY, schema=REPORT_LOCATION_SCHEMA
        )
        self.assertEqual(hass.data[DOMAIN], {})

    def test_schema_coerces_and_defaults(self):
        data = REPORT_LOCATION_SCHEMA({"latitude": "52.5", "longitude": 13})
        self.assertEqual(data["latitude"], 52.5)
        self.assertEqual(data["longitude"], 13.0)
        self.assertEqual(data["accuracy"], 0.0)
        self.assertEqual(data["speed"], 0.0)

    def test_schema_rejects_out_of_range_latitude(self):
        with self.assertRaises(vol.Invalid):
            REPORT_LOCATION_SCHEMA({"latitude": 91, "longitude": 0})

    async def test_reports_to_every_entry(self):
        hass = _make_hass()
        first, second = MagicMock(), MagicMock()
        hass.data[DOMAIN] = {"a": first, "b": second}
        call = MagicMock()
        call.data = {"latitude": 1.0, "longitude": 2.0, "accuracy": 3.0}

        await async_report_location(hass, call)

        first.report_mock_location.assert_called_once_with(latitude=1.0, longitude=2.0, accuracy=3.0)
        second.report_mock_location.assert_called_once_with(latitude=1.0, longitude=2.0, accuracy=3.0)

    async def test_reports_to_targeted_entry(self):
        hass = _make_hass()
        first, second = MagicMock(), MagicMock()
        hass.data[DOMAIN] = {"a": first, "b": second}
        call = MagicMock()
        call.data = {"entry_id": "b", "latitude": 1.0, "longitude": 2.0}

        await async_report_location(hass, call)

        first.report_mock_location.assert_not_called()
        second.report_mock_location.assert_called_once_with(latitude=1.0, longitude=2.0)

    async def test_raises_when_no_mock_provider(self):
        hass = _make_hass()
        coordinator = MagicMock()
        coordinator.report_mock_location.return_value = None
        hass.data[DOMAIN] = {"a": coordinator}
        call = MagicMock()
        call.data = {"latitude": 1.0, "longitude": 2.0}

        with self.assertRaises(HomeAssistantError):
            await async_report_location(hass, call)

    async def test_raises_for_unknown_entry(self):
        hass = _make_hass()
        hass.data[DOMAIN] = {"a": MagicMock()}
        call = MagicMock()
        call.data = {"entry_id": "missing", "latitude": 1.0, "longitude": 2.0}

        with self.assertRaises(HomeAssistantError):
            await async_report_location(hass, call)


class TestConfigEntryPermissionOracle(unittest.TestCase):

    def test_reads_grants_from_data(self):
        entry = _make_mock_entry(grant_precise_location=False)
        oracle = ConfigEntryPermissionOracle(entry)
        self.assertFalse(oracle.has_permission(Permission.FINE))
        self.assertTrue(oracle.has_permission(Permission.COARSE))

    def test_options_override_data(self):
        entry = _make_mock_entry(options={"grant_approximate_location": False})
        oracle = ConfigEntryPermissionOracle(entry)
        self.assertFalse(oracle.has_permission(Permission.COARSE))

    def test_changes_are_seen_immediately(self):
        entry = _make_mock_entry()
        oracle = ConfigEntryPermissionOracle(entry)
        self.assertTrue(oracle.has_permission(Permission.FINE))
        entry.options = {"grant_precise_location": False}
        self.assertFalse(oracle.has_permission(Permission.FINE))

    def test_missing_grant_is_denied(self):
        entry = MagicMock()
        entry.data = {}
        entry.options = {}
        self.assertFalse(ConfigEntryPermissionOracle(entry).has_permission(Permission.FINE))
