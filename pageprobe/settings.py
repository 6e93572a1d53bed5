"""
Process-level settings for launching browsers and serving scans.

Uses ``pydantic_settings.BaseSettings`` so every value can be set
through a ``PAGEPROBE_``-prefixed environment variable.
"""

from __future__ import annotations

import pydantic
import pydantic_settings


class ScanSettings(pydantic_settings.BaseSettings):
    """Browser launch and server configuration.

    Attributes:
        headless: Run the browser without a window.
        browser_channel: Playwright browser channel (e.g. ``chrome``);
            empty for the bundled Chromium.
        navigation_timeout_ms: Maximum wait for ``DOMContentLoaded``.
        settle_ms: Extra wait after ``DOMContentLoaded`` before collecting.
        host: Interface the HTTP server binds to.
        port: Port the HTTP server listens on.
        log: Default for the per-scan ``log`` option.
    """

    model_config = pydantic_settings.SettingsConfigDict(env_prefix="PAGEPROBE_")

    headless: bool = True
    browser_channel: str = ""
    navigation_timeout_ms: int = pydantic.Field(default=30000, gt=0)
    settle_ms: int = pydantic.Field(default=1000, ge=0)
    host: str = "0.0.0.0"
    port: int = 3001
    log: bool = False
