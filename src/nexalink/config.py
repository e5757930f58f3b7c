"""Environment-backed settings.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class LegacyConnectionSettings:
    """Pre-multi-connection settings used to seed the first saved connection."""

    url: str | None = None
    host: str | None = None
    port: str | None = None


def legacy_connection_settings() -> LegacyConnectionSettings:
    return LegacyConnectionSettings(
        url=os.getenv("NEXALINK_LEGACY_URL") or None,
        host=os.getenv("NEXALINK_LEGACY_HOST") or None,
        port=os.getenv("NEXALINK_LEGACY_PORT") or None,
    )
