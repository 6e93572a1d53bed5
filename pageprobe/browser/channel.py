"""
DevTools channel to a live page.

The scan pipeline only needs four operations from the browser:
subscribe to an event, send a command, wait for one event and close.
``BrowserChannel`` names that surface; ``PlaywrightChannel`` provides
it on top of a Playwright ``CDPSession`` attached to a page.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from typing import Any, Protocol

from playwright import async_api

from pageprobe.utils import errors, logger

log = logger.create_logger("Channel")

EventHandler = Callable[[dict[str, Any]], None]


class BrowserChannel(Protocol):
    """Event subscription and command invocation against one page."""

    def on(self, event: str, handler: EventHandler) -> None:
        """Call *handler* with the params of every *event* notification."""
        ...

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Invoke a DevTools command and return its result."""
        ...

    async def wait_for(self, event: str, timeout: float | None = None) -> dict[str, Any]:
        """Wait for the next *event* notification and return its params."""
        ...

    async def close(self) -> None:
        """Release the channel."""
        ...


class PlaywrightChannel:
    """``BrowserChannel`` backed by a Playwright CDP session."""

    def __init__(self, session: async_api.CDPSession) -> None:
        """Wrap an already attached CDP session."""
        self._session = session

    @classmethod
    async def open(cls, page: async_api.Page) -> PlaywrightChannel:
        """Attach a new CDP session to *page*.

        Raises:
            ChannelSetupError: When the session cannot be created.
        """
        try:
            session = await page.context.new_cdp_session(page)
        except Exception as exc:
            raise errors.ChannelSetupError(
                f"Could not open DevTools session: {errors.get_error_message(exc)}"
            ) from exc
        log.debug("DevTools session attached", {"url": page.url})
        return cls(session)

    def on(self, event: str, handler: EventHandler) -> None:
        """Subscribe *handler* to *event*."""
        self._session.on(event, handler)

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a command; any failure surfaces as ``CommandError``."""
        try:
            result = await self._session.send(method, params or {})
        except Exception as exc:
            raise errors.CommandError(method, errors.get_error_message(exc)) from exc
        return result or {}

    async def wait_for(self, event: str, timeout: float | None = None) -> dict[str, Any]:
        """Resolve with the params of the next *event*.

        Raises:
            TimeoutError: When *timeout* seconds pass without the event.
        """
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()

        def _resolve(params: dict[str, Any]) -> None:
            if not future.done():
                future.set_result(params)

        self._session.on(event, _resolve)
        try:
            return await asyncio.wait_for(future, timeout)
        finally:
            with contextlib.suppress(KeyError, ValueError):
                self._session.remove_listener(event, _resolve)

    async def close(self) -> None:
        """Detach the CDP session from the page."""
        await self._session.detach()
