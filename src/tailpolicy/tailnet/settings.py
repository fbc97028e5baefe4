"""
Tailnet-wide settings.

Settings are an opaque key/value mapping. They are passed to the
``SettingsApplier`` exactly as configured.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from tailpolicy.specs.models import TailnetOptions


class SettingsApplier(Protocol):
    """Collaborator that applies tailnet settings and contacts."""

    async def update_settings(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        ...

    async def update_contact(self, contact_type: str, email: str) -> dict[str, Any]:
        ...


def plan_settings(options: TailnetOptions) -> dict[str, Any]:
    """Return the settings payload to apply."""
    return dict(options.settings)


def plan_contacts(options: TailnetOptions) -> dict[str, str]:
    """Return contact updates, applied only when configured."""
    return dict(options.contacts)
