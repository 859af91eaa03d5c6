"""Location permissions granted by the user through the config entry."""
from __future__ import annotations

from homeassistant import config_entries

from .const import CONF_GRANT_FINE, CONF_GRANT_COARSE
from .location_service import PermissionOracle
from .models import Permission

_PERMISSION_KEYS = {
    Permission.FINE: CONF_GRANT_FINE,
    Permission.COARSE: CONF_GRANT_COARSE,
}


class ConfigEntryPermissionOracle(PermissionOracle):
    """
    Reads grants from the config entry on every call, so an options change is
    seen by the very next privileged call. Options override data.
    """

    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self._entry = entry

    def has_permission(self, permission: Permission) -> bool:
        key = _PERMISSION_KEYS[permission]
        if key in self._entry.options:
            return bool(self._entry.options[key])
        return bool(self._entry.data.get(key, False))
