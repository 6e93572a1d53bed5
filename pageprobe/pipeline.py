"""
End-to-end scan of a URL: launch, instrument, load, collect, tear down.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from pageprobe import settings as settings_mod
from pageprobe.browser import launcher, scanner
from pageprobe.utils import logger

log = logger.create_logger("Pipeline")


async def inspect_url(
    url: str,
    options: Mapping[str, object] | None = None,
    settings: settings_mod.ScanSettings | None = None,
) -> dict[str, Any]:
    """Load *url* in a fresh browser and return its telemetry report.

    The scan is attached before navigation so that every frame,
    request and script of the load is observed.  The browser is
    always shut down, whatever happens during the scan.
    """
    settings = settings or settings_mod.ScanSettings()
    options = dict(options or {})
    options.setdefault("log", settings.log)

    process = launcher.BrowserProcess(settings)
    page = await process.launch()
    try:
        session = await scanner.get_session(page, options)
        log.section(f"Inspecting {url}")
        try:
            loaded = asyncio.ensure_future(
                session.wait_dom_content_loaded(settings.navigation_timeout_ms / 1000)
            )
            try:
                await session.navigate(url)
                await loaded
            except TimeoutError:
                log.warn("DOMContentLoaded not fired in time", {"url": url})
            finally:
                loaded.cancel()
            await session.mouse_move()
            await asyncio.sleep(settings.settle_ms / 1000)
            return await session.get_data()
        finally:
            await session.stop()
    finally:
        await process.close()
