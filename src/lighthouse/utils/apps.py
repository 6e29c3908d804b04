"""Provider identifier helpers.

Exports name integrations like "GoogleSheetsV2CLIAPI@2.9.1". These helpers
strip the version and API suffix to get a stable key, and split CamelCase for
display.
"""

from __future__ import annotations

import re

_API_SUFFIXES = ("CLIAPI", "API")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")


def strip_provider(provider: str) -> str:
    """Drop the "@version" part and a trailing CLIAPI/API suffix."""
    base = (provider or "").split("@", 1)[0].strip()
    for suffix in _API_SUFFIXES:
        if base.endswith(suffix) and len(base) > len(suffix):
            base = base[: -len(suffix)]
            break
    return base


def provider_key(provider: str) -> str:
    """Lower-case compact key used for registry matching."""
    return re.sub(r"[^a-z0-9]", "", strip_provider(provider).lower())


def app_display_name(provider: str) -> str:
    """Human-readable app name, e.g. "GoogleSheetsV2CLIAPI@2.9.1" -> "Google Sheets V2"."""
    base = strip_provider(provider)
    if not base:
        return "Unknown"
    return _CAMEL_BOUNDARY.sub(" ", base)
