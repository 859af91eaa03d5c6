"""
Unit tests for config_flow.py: CustomFlow (initial setup) and OptionsFlowHandler (options editing).

Coverage:
- validate_input: name, provider and port rules
- CustomFlow.async_step_user:
    * GET (no input) → returns FORM with step_id "user"
    * Valid full input → CREATE_ENTRY with correct title, all fields and a generated guid
    * Invalid input → FORM with the matching errors["base"]

- OptionsFlowHandler.async_step_init:
    * GET (no input) → returns FORM with step_id "init", defaults come from config_entry.data
    * Defaults from config_entry.options override config_entry.data
    * Valid user input → CREATE_ENTRY and the entry title is updated
    * Invalid input → FORM with errors
"""

from __future__ import annotations

import unittest
import uuid
from typing import Any, Dict
from unittest.mock import MagicMock

from custom_components.location_monitor.config_flow import (
    CONFIG_SCHEMA,
    CustomFlow,
    OptionsFlowHandler,
    validate_input,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_mock_config_entry(data: Dict[str, Any], options: Dict[str, Any] | None = None) -> MagicMock:
    """Return a minimal mock ConfigEntry with .data and .options dicts."""
    entry = MagicMock()
    entry.data = dict(data)
    entry.options = dict(options) if options is not None else {}
    return entry


def _make_flow() -> CustomFlow:
    """Return a CustomFlow instance with a mocked hass."""
    flow = CustomFlow()
    flow.hass = MagicMock()
    return flow


def _make_options_flow(data: Dict[str, Any], options: Dict[str, Any] | None = None) -> OptionsFlowHandler:
    """Return an OptionsFlowHandler instance with a mocked hass."""
    entry = _make_mock_config_entry(data, options)
    handler = OptionsFlowHandler(entry)
    handler.hass = MagicMock()
    return handler


def _schema_defaults(schema) -> Dict[str, Any]:
    return {
        str(key): key.default()
        for key in schema.schema
        if hasattr(key, "default") and callable(key.default)
    }


VALID_USER_INPUT = {
    "entry_name": "Garden Shed",
    "gpsd_enabled": True,
    "gpsd_host": "localhost",
    "gpsd_port": 2947,
    "network_enabled": True,
    "geolocation_url": "http://ip-api.com/json/",
    "enable_mock_provider": False,
    "grant_precise_location": True,
    "grant_approximate_location": True,
}

VALID_ENTRY_DATA = dict(
    VALID_USER_INPUT,
    guid="existing-guid-1234",
    entry_name="Original Name",
    network_enabled=False,
)

VALID_OPTIONS_INPUT = dict(
    VALID_USER_INPUT,
    entry_name="Updated Name",
    gpsd_host="gps.lan",
    grant_precise_location=False,
)


# ---------------------------------------------------------------------------
# validate_input
# ---------------------------------------------------------------------------

class TestValidateInput(unittest.TestCase):

    def test_valid(self):
        self.assertEqual(validate_input(dict(VALID_USER_INPUT)), {})

    def test_name_required(self):
        errors = validate_input(dict(VALID_USER_INPUT, entry_name=""))
        self.assertEqual(errors["base"], "entry_name_required")

    def test_name_not_required(self):
        self.assertEqual(validate_input(dict(VALID_USER_INPUT, entry_name=""), require_name=False), {})

    def test_no_provider(self):
        errors = validate_input(
            dict(VALID_USER_INPUT, gpsd_enabled=False, network_enabled=False, enable_mock_provider=False)
        )
        self.assertEqual(errors["base"], "no_provider_enabled")

    def test_mock_alone_is_a_provider(self):
        errors = validate_input(
            dict(VALID_USER_INPUT, gpsd_enabled=False, network_enabled=False, enable_mock_provider=True)
        )
        self.assertEqual(errors, {})

    def test_invalid_port(self):
        self.assertEqual(validate_input(dict(VALID_USER_INPUT, gpsd_port=0))["base"], "invalid_port")
        self.assertEqual(validate_input(dict(VALID_USER_INPUT, gpsd_port=70000))["base"], "invalid_port")

    def test_port_ignored_when_gpsd_disabled(self):
        self.assertEqual(validate_input(dict(VALID_USER_INPUT, gpsd_enabled=False, gpsd_port=0)), {})

    def test_schema_defaults(self):
        defaults = _schema_defaults(CONFIG_SCHEMA)
        self.assertEqual(defaults["gpsd_port"], 2947)
        self.assertTrue(defaults["gpsd_enabled"])
        self.assertFalse(defaults["enable_mock_provider"])


# ---------------------------------------------------------------------------
# CustomFlow: initial config
# ---------------------------------------------------------------------------

class TestCustomFlow(unittest.IsolatedAsyncioTestCase):
    """Tests for CustomFlow.async_step_user."""

    async def test_shows_form_on_get(self):
        """Calling without input must return a FORM with step_id 'user'."""
        flow = _make_flow()

        result = await flow.async_step_user(user_input=None)

        self.assertEqual(result["type"], "form")
        self.assertEqual(result["step_id"], "user")
        self.assertEqual(result.get("errors", {}), {})

    async def test_valid_input_creates_entry(self):
        """Valid full input must create an entry with correct title and all data fields."""
        flow = _make_flow()

        result = await flow.async_step_user(user_input=dict(VALID_USER_INPUT))

        self.assertEqual(result["type"], "create_entry")
        self.assertEqual(result["title"], VALID_USER_INPUT["entry_name"])
        data = result["data"]
        for key, value in VALID_USER_INPUT.items():
            self.assertEqual(data[key], value)

    async def test_creates_entry_with_valid_guid(self):
        """A fresh UUID must be generated and stored as 'guid' in entry data."""
        flow = _make_flow()

        result = await flow.async_step_user(user_input=dict(VALID_USER_INPUT))

        generated_guid = result["data"]["guid"]
        self.assertEqual(str(uuid.UUID(generated_guid)), generated_guid)

    async def test_empty_entry_name_returns_form_with_error(self):
        flow = _make_flow()

        result = await flow.async_step_user(user_input=dict(VALID_USER_INPUT, entry_name=""))

        self.assertEqual(result["type"], "form")
        self.assertEqual(result["errors"]["base"], "entry_name_required")

    async def test_no_provider_returns_form_with_error(self):
        flow = _make_flow()
        user_input = dict(VALID_USER_INPUT, gpsd_enabled=False, network_enabled=False)

        result = await flow.async_step_user(user_input=user_input)

        self.assertEqual(result["type"], "form")
        self.assertEqual(result["errors"]["base"], "no_provider_enabled")


# ---------------------------------------------------------------------------
# OptionsFlowHandler: options editing
# ---------------------------------------------------------------------------

class TestOptionsFlowHandler(unittest.IsolatedAsyncioTestCase):
    """Tests for OptionsFlowHandler.async_step_init."""

    async def test_shows_form_on_get(self):
        handler = _make_options_flow(VALID_ENTRY_DATA)

        result = await handler.async_step_init(user_input=None)

        self.assertEqual(result["type"], "form")
        self.assertEqual(result["step_id"], "init")
        self.assertEqual(result.get("errors", {}), {})

    async def test_form_defaults_come_from_entry_data(self):
        handler = _make_options_flow(VALID_ENTRY_DATA, options={})

        result = await handler.async_step_init(user_input=None)

        defaults = _schema_defaults(result["data_schema"])
        self.assertEqual(defaults["entry_name"], "Original Name")
        self.assertFalse(defaults["network_enabled"])
        self.assertEqual(defaults["gpsd_host"], "localhost")

    async def test_options_override_data_defaults(self):
        handler = _make_options_flow(
            VALID_ENTRY_DATA, options={"entry_name": "Options Name", "grant_precise_location": False}
        )

        result = await handler.async_step_init(user_input=None)

        defaults = _schema_defaults(result["data_schema"])
        self.assertEqual(defaults["entry_name"], "Options Name")
        self.assertFalse(defaults["grant_precise_location"])
        self.assertTrue(defaults["grant_approximate_location"])

    async def test_valid_update_creates_entry(self):
        handler = _make_options_flow(VALID_ENTRY_DATA)

        result = await handler.async_step_init(user_input=dict(VALID_OPTIONS_INPUT))

        self.assertEqual(result["type"], "create_entry")
        self.assertEqual(result["data"]["gpsd_host"], "gps.lan")
        self.assertFalse(result["data"]["grant_precise_location"])

    async def test_valid_update_renames_entry(self):
        handler = _make_options_flow(VALID_ENTRY_DATA)

        await handler.async_step_init(user_input=dict(VALID_OPTIONS_INPUT))

        handler.hass.config_entries.async_update_entry.assert_called_once_with(
            handler._entry, title="Updated Name"
        )

    async def test_invalid_port_returns_form_with_error(self):
        handler = _make_options_flow(VALID_ENTRY_DATA)

        result = await handler.async_step_init(user_input=dict(VALID_OPTIONS_INPUT, gpsd_port=-1))

        self.assertEqual(result["type"], "form")
        self.assertEqual(result["errors"]["base"], "invalid_port")
        handler.hass.config_entries.async_update_entry.assert_not_called()
