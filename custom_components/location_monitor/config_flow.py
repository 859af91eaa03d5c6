"""Config flow for Location Monitor integration."""
from __future__ import annotations
import logging
import uuid
from typing import Any, Dict, Optional
import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from .const import (
    DOMAIN,
    CONF_ENTRY_NAME,
    CONF_GPSD_ENABLED,
    CONF_GPSD_HOST,
    CONF_GPSD_PORT,
    CONF_NETWORK_ENABLED,
    CONF_GEOLOCATION_URL,
    CONF_MOCK_PROVIDER,
    CONF_GRANT_FINE,
    CONF_GRANT_COARSE,
    DEFAULT_GPSD_HOST,
    DEFAULT_GPSD_PORT,
    DEFAULT_GEOLOCATION_URL,
)

_LOGGER = logging.getLogger(__name__)

FIELD_DEFAULTS: Dict[str, Any] = {
    CONF_ENTRY_NAME: 'My Location Monitor',
    CONF_GPSD_ENABLED: True,
    CONF_GPSD_HOST: DEFAULT_GPSD_HOST,
    CONF_GPSD_PORT: DEFAULT_GPSD_PORT,
    CONF_NETWORK_ENABLED: False,
    CONF_GEOLOCATION_URL: DEFAULT_GEOLOCATION_URL,
    CONF_MOCK_PROVIDER: False,
    CONF_GRANT_FINE: True,
    CONF_GRANT_COARSE: True,
}


def build_schema(defaults: Dict[str, Any]) -> vol.Schema:
    return vol.Schema(
        {
            vol.Required(CONF_ENTRY_NAME, default=defaults[CONF_ENTRY_NAME]): cv.string,
            vol.Required(CONF_GPSD_ENABLED, default=defaults[CONF_GPSD_ENABLED]): cv.boolean,
            vol.Required(CONF_GPSD_HOST, default=defaults[CONF_GPSD_HOST]): cv.string,
            vol.Required(CONF_GPSD_PORT, default=defaults[CONF_GPSD_PORT]): vol.Coerce(int),
            vol.Required(CONF_NETWORK_ENABLED, default=defaults[CONF_NETWORK_ENABLED]): cv.boolean,
            vol.Required(CONF_GEOLOCATION_URL, default=defaults[CONF_GEOLOCATION_URL]): cv.string,
            vol.Required(CONF_MOCK_PROVIDER, default=defaults[CONF_MOCK_PROVIDER]): cv.boolean,
            vol.Required(CONF_GRANT_FINE, default=defaults[CONF_GRANT_FINE]): cv.boolean,
            vol.Required(CONF_GRANT_COARSE, default=defaults[CONF_GRANT_COARSE]): cv.boolean,
        }
    )


CONFIG_SCHEMA = build_schema(FIELD_DEFAULTS)


def validate_input(user_input: Dict[str, Any], require_name: bool = True) -> Dict[str, str]:
    """Return a form errors dict; empty when the input is acceptable."""
    errors: Dict[str, str] = {}
    # If entry_name is null or empty string, add error
    if require_name and not user_input.get(CONF_ENTRY_NAME):
        errors['base'] = 'entry_name_required'
    # At least one provider that produces readings of its own
    if not (
        user_input.get(CONF_GPSD_ENABLED)
        or user_input.get(CONF_NETWORK_ENABLED)
        or user_input.get(CONF_MOCK_PROVIDER)
    ):
        errors['base'] = 'no_provider_enabled'
    if user_input.get(CONF_GPSD_ENABLED):
        port = user_input.get(CONF_GPSD_PORT)
        if not isinstance(port, int) or not 0 < port < 65536:
            errors['base'] = 'invalid_port'
    return errors


class CustomFlow(config_entries.ConfigFlow, domain=DOMAIN):
    data: Optional[Dict[str, Any]]

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            self.data = dict(user_input)
            # Create new guid for the entry
            self.data['guid'] = str(uuid.uuid4())
            errors = validate_input(self.data)
            if not errors:
                return self.async_create_entry(title=f"{self.data[CONF_ENTRY_NAME]}", data=self.data)

        return self.async_show_form(step_id="user", data_schema=CONFIG_SCHEMA, errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handles options flow for the component."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._entry = config_entry

    def _current_defaults(self) -> Dict[str, Any]:
        defaults = dict(FIELD_DEFAULTS)
        for key in FIELD_DEFAULTS:
            if key in self._entry.data:
                defaults[key] = self._entry.data[key]
            if key in self._entry.options:
                defaults[key] = self._entry.options[key]
        return defaults

    async def async_step_init(
        self, user_input: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        errors: Dict[str, str] = {}

        if user_input is not None:
            errors = validate_input(user_input)
            if not errors:
                # Rename the entry in the UI; the update listener reloads it
                self.hass.config_entries.async_update_entry(
                    self._entry, title=user_input[CONF_ENTRY_NAME]
                )
                return self.async_create_entry(title=f"{user_input[CONF_ENTRY_NAME]}", data=dict(user_input))

        return self.async_show_form(
            step_id="init", data_schema=build_schema(self._current_defaults()), errors=errors
        )
