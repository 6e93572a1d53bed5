"""
Scan orchestration for one page.

A ``Scanner`` subscribes the event recorder to the page's DevTools
channel, enables the domains the collection needs and, on request,
runs the report-time queries, assembles the report and starts over
with an empty store.  ``InspectedPage`` pairs the caller's page handle
with a scanner and exposes the scan operations next to it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from playwright import async_api

from pageprobe.analysis import report
from pageprobe.browser import channel as channel_mod, collectors, listeners
from pageprobe.models import config
from pageprobe.store import session_store
from pageprobe.utils import errors, logger

log = logger.create_logger("Scanner")


class Scanner:
    """Collects telemetry from one DevTools channel."""

    def __init__(self, context: config.ScanContext, channel: channel_mod.BrowserChannel) -> None:
        """Prepare a scan of *channel* configured by *context*."""
        self.context = context
        self.channel = channel
        self._recorder = listeners.EventRecorder(session_store.SessionStore(), context)

    @property
    def store(self) -> session_store.SessionStore:
        """The store currently receiving events."""
        return self._recorder.store

    async def init(self) -> None:
        """Subscribe to events, then enable domains and apply rules."""
        log.debug("Initiating scanner")
        self._recorder.subscribe(self.channel)
        await collectors.init_scan(self.channel, self.context)

    async def get_data(self) -> dict[str, Any]:
        """Collect report-time data, assemble the report and reset the store.

        The store is replaced even when assembly fails, so no data
        leaks from one report into the next.
        """
        log.start_timer("get-data")
        store = self.store
        try:
            await collectors.collect_on_demand(self.channel, store, self.context.collect)
            data = report.assemble_report(store, self.context.collect)
        finally:
            self._recorder.store = session_store.SessionStore()
        log.end_timer("get-data", "Report assembled")
        return data

    async def close(self) -> None:
        """Release the channel; failures are logged and never raised."""
        log.debug("Closing scanner")
        try:
            await self.channel.close()
        except Exception as exc:
            log.error("Failed to close DevTools channel", {"error": errors.get_error_message(exc)})

    # ==========================================================================
    # Page commands
    # ==========================================================================

    async def navigate(self, url: str) -> dict[str, Any]:
        """Start navigating the page to *url*."""
        return await self.channel.send("Page.navigate", {"url": url})

    async def wait_dom_content_loaded(self, timeout: float | None = None) -> dict[str, Any]:
        """Wait for the next ``Page.domContentEventFired`` event."""
        return await self.channel.wait_for("Page.domContentEventFired", timeout)

    async def set_user_agent(self, user_agent: str) -> None:
        """Override the page's user agent string."""
        await self.channel.send("Emulation.setUserAgentOverride", {"userAgent": user_agent})

    async def mouse_move(self, x: float = 100, y: float = 100) -> None:
        """Dispatch a synthetic mouse move, waking hover-driven scripts."""
        await self.channel.send("Input.dispatchMouseEvent", {"type": "mouseMoved", "x": x, "y": y})


class InspectedPage:
    """A page handle together with the scan running against it.

    ``page`` is the caller's own handle, untouched; the scan is driven
    through ``start``, ``get_data`` and ``stop``.
    """

    def __init__(self, page: Any, scanner: Scanner) -> None:
        """Pair *page* with *scanner*."""
        self.page = page
        self.scanner = scanner

    async def start(self) -> None:
        """Begin collecting."""
        await self.scanner.init()

    async def get_data(self) -> dict[str, Any]:
        """Return the report for everything collected since the last call."""
        return await self.scanner.get_data()

    async def stop(self) -> None:
        """Stop collecting and release the channel."""
        await self.scanner.close()

    async def navigate(self, url: str) -> dict[str, Any]:
        """Navigate the page to *url*."""
        return await self.scanner.navigate(url)

    async def wait_dom_content_loaded(self, timeout: float | None = None) -> dict[str, Any]:
        """Wait for ``DOMContentLoaded`` on the page."""
        return await self.scanner.wait_dom_content_loaded(timeout)

    async def mouse_move(self, x: float = 100, y: float = 100) -> None:
        """Move the mouse over the page."""
        await self.scanner.mouse_move(x, y)


async def get_session(
    page: async_api.Page | None,
    options: Mapping[str, object] | None = None,
    channel: channel_mod.BrowserChannel | None = None,
) -> InspectedPage:
    """Start a scan of *page* and return the inspected page.

    Args:
        page: The Playwright page to instrument.
        options: Caller options (``log``, ``rules``, ``collect``).
        channel: Existing DevTools channel; one is attached to *page*
            when omitted.

    Raises:
        PageMissingError: When *page* is ``None``.
        ChannelSetupError: When no DevTools session can be attached.
        pydantic.ValidationError: When *options* are invalid.
    """
    if page is None:
        raise errors.PageMissingError("page is missing")

    context = config.build_context(options)
    logger.set_enabled(context.log)

    if channel is None:
        channel = await channel_mod.PlaywrightChannel.open(page)

    session = InspectedPage(page, Scanner(context, channel))
    try:
        await session.start()
    except Exception:
        await session.stop()
        raise
    return session
