"""
LocationData: immutable snapshot of all location state shared with entities.

This is a pure data module with no HA or network dependencies.
"""
from __future__ import annotations

import dataclasses
from typing import Mapping

from .models import LocationFix


@dataclasses.dataclass(frozen=True)
class LocationData:
    """
    Typed, copy-on-write snapshot of the aggregated location state.

    Always replace via dataclasses.replace(), never mutate in place.
    """

    # True when the gps or network provider is enabled
    location_services_enabled: bool = False

    # Provider names as reported by the platform, in platform order
    available_providers: tuple[str, ...] = ()
    enabled_providers: tuple[str, ...] = ()

    # provider → latest live fix
    current_fixes: dict[str, LocationFix] = dataclasses.field(default_factory=dict)

    # provider → cached fix captured once when tracking started
    last_known_fixes: dict[str, LocationFix] = dataclasses.field(default_factory=dict)

    # Description of the last failure; cleared by the next successful publish
    error_message: str | None = None


@dataclasses.dataclass(frozen=True)
class FixesDiff:
    """Provider-keyed difference between two fix collections."""

    added: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()
    changed: frozenset[str] = frozenset()

    def __bool__(self) -> bool:
        return bool(self.added or self.removed or self.changed)


def merge_fix(fixes: Mapping[str, LocationFix], fix: LocationFix) -> dict[str, LocationFix]:
    """Return a new collection where fix replaces any entry for its provider."""
    merged = dict(fixes)
    merged[fix.provider] = fix
    return merged


def diff_fixes(
    old: Mapping[str, LocationFix], new: Mapping[str, LocationFix]
) -> FixesDiff:
    """
    Compare two collections by provider identity.

    A provider present in both counts as changed only when any field differs.
    """
    added = frozenset(new.keys() - old.keys())
    removed = frozenset(old.keys() - new.keys())
    changed = frozenset(
        provider for provider in new.keys() & old.keys() if new[provider] != old[provider]
    )
    return FixesDiff(added=added, removed=removed, changed=changed)
