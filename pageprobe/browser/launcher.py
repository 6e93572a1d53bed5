"""
Browser process lifecycle.

Launches a Chromium instance through Playwright and tears it down on
every exit path: each shutdown step is attempted on its own, and a
failing step is logged without stopping the ones after it.
"""

from __future__ import annotations

from playwright import async_api

from pageprobe import settings as settings_mod
from pageprobe.utils import errors, logger

log = logger.create_logger("Launcher")

LAUNCH_ARGS = [
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-gpu",
    "--disable-extensions",
]


class BrowserProcess:
    """One Playwright-managed browser with a single page."""

    def __init__(self, settings: settings_mod.ScanSettings) -> None:
        """Prepare a browser described by *settings*."""
        self._settings = settings
        self._playwright: async_api.Playwright | None = None
        self._browser: async_api.Browser | None = None
        self._context: async_api.BrowserContext | None = None
        self._page: async_api.Page | None = None

    @property
    def page(self) -> async_api.Page | None:
        """The page opened by ``launch``, if any."""
        return self._page

    async def launch(self) -> async_api.Page:
        """Start the browser and open a blank page.

        Raises:
            ChannelSetupError: When the browser cannot be started.
        """
        log.info("Launching browser", {"headless": self._settings.headless})
        try:
            self._playwright = await async_api.async_playwright().start()
            launch_kwargs: dict[str, object] = {
                "headless": self._settings.headless,
                "args": LAUNCH_ARGS,
            }
            if self._settings.browser_channel:
                launch_kwargs["channel"] = self._settings.browser_channel
            self._browser = await self._playwright.chromium.launch(**launch_kwargs)  # type: ignore[arg-type]
            self._context = await self._browser.new_context()
            self._page = await self._context.new_page()
        except Exception as exc:
            await self.close()
            raise errors.ChannelSetupError(
                f"Could not launch browser: {errors.get_error_message(exc)}"
            ) from exc
        return self._page

    async def close(self) -> None:
        """Close the context, the browser and Playwright, each independently."""
        if self._context:
            try:
                await self._context.close()
                log.debug("Closed browser context")
            except Exception as exc:
                log.error("Failed to close browser context", {"error": errors.get_error_message(exc)})
            self._context = None
        if self._browser:
            try:
                await self._browser.close()
                log.debug("Closed browser process")
            except Exception as exc:
                log.error("Failed to close browser process", {"error": errors.get_error_message(exc)})
            self._browser = None
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as exc:
                log.error("Failed to stop Playwright", {"error": errors.get_error_message(exc)})
            self._playwright = None
        self._page = None
