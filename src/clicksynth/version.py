"""Package and render-config schema versions.

A config file may pin ``schema_version``; it loads as long as its major
version matches ``CONFIG_SCHEMA_VERSION``.
"""

from __future__ import annotations

CONFIG_SCHEMA_VERSION = "1.0.0"
PACKAGE_VERSION = "0.1.0"


def get_config_schema_version() -> str:
    return CONFIG_SCHEMA_VERSION


def get_package_version() -> str:
    return PACKAGE_VERSION


def parse_version(version: str) -> tuple[int, int, int] | None:
    """Split ``MAJOR.MINOR.PATCH`` into integers, or None if malformed."""
    parts = version.split(".") if isinstance(version, str) else []
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        return None
    major, minor, patch = (int(part) for part in parts)
    return major, minor, patch


def is_schema_compatible(version: str) -> bool:
    """True when a config written for ``version`` loads with this release."""
    parsed = parse_version(version)
    if parsed is None:
        return False
    return parsed[0] == parse_version(CONFIG_SCHEMA_VERSION)[0]
