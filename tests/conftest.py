"""Shared fixtures for the test suite."""

from __future__ import annotations

import asyncio
import collections
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from pageprobe.models import config
from pageprobe.store import session_store
from pageprobe.utils import logger

# ── Fake DevTools channel ───────────────────────────────────────


class FakeChannel:
    """In-memory ``BrowserChannel`` driven by the test.

    ``results`` maps a command name to its result: a dict, a callable
    taking the params, or an exception instance to raise.
    """

    def __init__(self, results: dict[str, Any] | None = None) -> None:
        self.handlers: dict[str, list[Callable[[dict[str, Any]], None]]] = collections.defaultdict(list)
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.results: dict[str, Any] = dict(results or {})
        self.closed = False
        self.close_error: Exception | None = None

    def on(self, event: str, handler: Callable[[dict[str, Any]], None]) -> None:
        self.handlers[event].append(handler)

    def emit(self, event: str, params: dict[str, Any]) -> None:
        for handler in list(self.handlers[event]):
            handler(params)

    async def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        params = params or {}
        self.sent.append((method, params))
        result = self.results.get(method, {})
        if isinstance(result, Exception):
            raise result
        if callable(result):
            result = result(params)
        return result

    async def wait_for(self, event: str, timeout: float | None = None) -> dict[str, Any]:
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()

        def _resolve(params: dict[str, Any]) -> None:
            if not future.done():
                future.set_result(params)

        self.on(event, _resolve)
        return await asyncio.wait_for(future, timeout)

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error

    def methods(self) -> list[str]:
        return [method for method, _ in self.sent]


@pytest.fixture()
def channel() -> FakeChannel:
    """A fake channel answering every command with ``{}``."""
    return FakeChannel()


# ── Store and configuration ─────────────────────────────────────


@pytest.fixture()
def store() -> session_store.SessionStore:
    """An empty session store."""
    return session_store.SessionStore()


@pytest.fixture()
def collect_all() -> config.CollectionConfig:
    """Every section and modifier switched on."""
    return config.CollectionConfig(
        frames=True,
        scripts=True,
        script_source=True,
        script_dom_events=True,
        script_coverage=True,
        styles=True,
        style_source=True,
        style_coverage=True,
        service_worker=True,
        requests=True,
        responses=True,
        body_response=(r"\.json$",),
        data_uri=True,
        websocket=True,
        cookies=True,
        logs=True,
        console=True,
        errors=True,
        storage=True,
        resources=True,
        js_metrics=True,
        metadata=True,
    )


# ── Event payloads ──────────────────────────────────────────────


def request_event(
    request_id: str,
    url: str,
    frame_id: str = "F1",
    initiator: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """A ``Network.requestWillBeSent`` payload."""
    return {
        "requestId": request_id,
        "loaderId": "L1",
        "documentURL": "https://example.com/",
        "request": {
            "url": url,
            "method": "GET",
            "headers": {"Accept": "*/*"},
        },
        "timestamp": 100.5,
        "initiator": initiator or {"type": "parser"},
        "type": "Script",
        "frameId": frame_id,
    }


def response_event(request_id: str, url: str, status: int = 200) -> dict[str, Any]:
    """A ``Network.responseReceived`` payload."""
    return {
        "requestId": request_id,
        "type": "Script",
        "response": {
            "url": url,
            "status": status,
            "mimeType": "application/javascript",
            "encodedDataLength": 1234,
            "remoteIPAddress": "93.184.216.34",
            "remotePort": 443,
            "securityDetails": {"protocol": "TLS 1.3", "issuer": "Example CA"},
        },
    }


def script_event(
    script_id: str,
    url: str,
    frame_id: str = "F1",
    length: int = 100,
    **extra: Any,
) -> dict[str, Any]:
    """A ``Debugger.scriptParsed`` payload."""
    return {
        "scriptId": script_id,
        "url": url,
        "startLine": 0,
        "startColumn": 0,
        "endLine": 10,
        "endColumn": 0,
        "executionContextId": 1,
        "hash": "abc",
        "executionContextAuxData": {"frameId": frame_id, "isDefault": True, "type": "default"},
        "length": length,
        **extra,
    }


def function_coverage(name: str, start: int, end: int, count: int = 1) -> dict[str, Any]:
    """A profiler ``FunctionCoverage`` entry with one range."""
    return {
        "functionName": name,
        "ranges": [{"startOffset": start, "endOffset": end, "count": count}],
        "isBlockCoverage": False,
    }


@pytest.fixture(autouse=True)
def _quiet_logger() -> Iterator[None]:
    """Keep scan logging off between tests."""
    logger.set_enabled(False)
    yield
    logger.set_enabled(False)
