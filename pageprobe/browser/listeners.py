"""
DevTools event subscriptions.

``EventRecorder`` owns the handlers that turn event notifications into
``SessionStore`` writes.  Every handler is a plain synchronous function:
a store mutation never spans an ``await``, so handlers run atomically
with respect to each other on the event loop.  Handlers always write to
the recorder's *current* store, which the scanner swaps after each report.
"""

from __future__ import annotations

from typing import Any

from pageprobe.analysis import coverage
from pageprobe.browser import channel as channel_mod
from pageprobe.models import config
from pageprobe.store import frames, network, session_store
from pageprobe.utils import logger

log = logger.create_logger("Listeners")

# Longest console argument preview kept, in characters.
MAX_PREVIEW_LENGTH = 200


def _preview_remote_object(obj: dict[str, Any]) -> Any:
    """Reduce a ``Runtime.RemoteObject`` to a short JSON-friendly preview."""
    if "value" in obj:
        value = obj["value"]
        if isinstance(value, str) and len(value) > MAX_PREVIEW_LENGTH:
            return value[:MAX_PREVIEW_LENGTH]
        return value
    return obj.get("description") or obj.get("unserializableValue") or obj.get("type")


def _top_call_frame(stack: dict[str, Any] | None) -> dict[str, Any]:
    """Return the innermost call frame of a stack trace, or ``{}``."""
    call_frames = (stack or {}).get("callFrames") or []
    return call_frames[0] if call_frames else {}


class EventRecorder:
    """Writes DevTools events into the current ``SessionStore``."""

    def __init__(self, store: session_store.SessionStore, context: config.ScanContext) -> None:
        """Record into *store* according to *context*."""
        self.store = store
        self._collect = context.collect
        self._threshold = context.rules.logs_threshold

    # ==========================================================================
    # Subscription
    # ==========================================================================

    def subscribe(self, channel: channel_mod.BrowserChannel) -> None:
        """Register every handler the collection flags call for."""
        collect = self._collect

        for event, state in frames.FRAME_EVENTS.items():
            channel.on(event, self._frame_handler(state))

        channel.on("Network.requestWillBeSent", self.on_request)
        channel.on("Network.responseReceived", self.on_response)
        channel.on("Debugger.scriptParsed", self.on_script_parsed)

        if collect.styles:
            channel.on("CSS.styleSheetAdded", self.on_style_sheet_added)

        if collect.websocket:
            channel.on("Network.webSocketCreated", self.on_websocket_created)
            channel.on("Network.webSocketFrameSent", self.on_websocket_frame_sent)
            channel.on("Network.webSocketFrameReceived", self.on_websocket_frame_received)
            channel.on("Network.webSocketClosed", self.on_websocket_closed)

        if collect.logs:
            channel.on("Log.entryAdded", self.on_log_entry)

        if collect.console:
            channel.on("Runtime.consoleAPICalled", self.on_console_call)

        if collect.errors:
            channel.on("Runtime.exceptionThrown", self.on_exception)

        if collect.storage:
            channel.on("DOMStorage.domStorageItemAdded", self._storage_handler("added"))
            channel.on("DOMStorage.domStorageItemUpdated", self._storage_handler("updated"))
            channel.on("DOMStorage.domStorageItemRemoved", self._storage_handler("removed"))
            channel.on("DOMStorage.domStorageItemsCleared", self._storage_handler("cleared"))

        if collect.service_worker:
            channel.on("ServiceWorker.workerRegistrationUpdated", self.on_worker_registrations)
            channel.on("ServiceWorker.workerVersionUpdated", self.on_worker_versions)

    # ==========================================================================
    # Frames and network
    # ==========================================================================

    def _frame_handler(self, state: frames.FrameState) -> channel_mod.EventHandler:
        """Build the handler for one ``Page.frame*`` event."""

        def handle(params: dict[str, Any]) -> None:
            # frameNavigated nests the frame; the others are flat.
            payload = params.get("frame") if isinstance(params.get("frame"), dict) else params
            frames.record_frame_event(self.store.frames, payload, state)

        return handle

    def on_request(self, params: dict[str, Any]) -> None:
        """Handle ``Network.requestWillBeSent``."""
        network.record_request(self.store, params)

    def on_response(self, params: dict[str, Any]) -> None:
        """Handle ``Network.responseReceived``."""
        network.record_response(self.store, params)

    def on_websocket_created(self, params: dict[str, Any]) -> None:
        network.record_websocket_created(self.store, params)

    def on_websocket_frame_sent(self, params: dict[str, Any]) -> None:
        network.record_websocket_frame(self.store, params, "sent")

    def on_websocket_frame_received(self, params: dict[str, Any]) -> None:
        network.record_websocket_frame(self.store, params, "received")

    def on_websocket_closed(self, params: dict[str, Any]) -> None:
        network.record_websocket_closed(self.store, params)

    # ==========================================================================
    # Scripts and styles
    # ==========================================================================

    def on_script_parsed(self, params: dict[str, Any]) -> None:
        """Register a parsed script once, tagged with its owning frame."""
        if params.get("url") in coverage.EVALUATION_SCRIPT_URLS:
            return
        script_id = params.get("scriptId")
        if not script_id or script_id in self.store.scripts:
            return

        script = dict(params)
        script["frameId"] = frames.script_frame_id(params)
        self.store.scripts[script_id] = script

    def on_style_sheet_added(self, params: dict[str, Any]) -> None:
        """Register a style sheet header."""
        header = params.get("header") or {}
        sheet_id = header.get("styleSheetId")
        if sheet_id:
            self.store.styles[sheet_id] = dict(header)

    # ==========================================================================
    # Logs, console and errors
    # ==========================================================================

    def on_log_entry(self, params: dict[str, Any]) -> None:
        """Keep up to the threshold of browser log entries per source."""
        entry = params.get("entry") or {}
        record = {
            "level": entry.get("level"),
            "text": entry.get("text"),
            "url": entry.get("url"),
            "lineNumber": entry.get("lineNumber"),
            "networkRequestId": entry.get("networkRequestId"),
            "timestamp": entry.get("timestamp"),
        }
        session_store.append_capped(self.store.logs, entry.get("source") or "other", record, self._threshold)

    def on_console_call(self, params: dict[str, Any]) -> None:
        """Keep up to the threshold of console API calls per call type."""
        call_frame = _top_call_frame(params.get("stackTrace"))
        record = {
            "args": [_preview_remote_object(arg) for arg in params.get("args") or []],
            "scriptId": call_frame.get("scriptId"),
            "url": call_frame.get("url"),
            "lineNumber": call_frame.get("lineNumber"),
            "timestamp": params.get("timestamp"),
        }
        session_store.append_capped(self.store.console, params.get("type") or "log", record, self._threshold)

    def on_exception(self, params: dict[str, Any]) -> None:
        """Record an uncaught JavaScript exception."""
        details = params.get("exceptionDetails") or {}
        exception = details.get("exception") or {}
        self.store.errors.append({
            "text": details.get("text"),
            "description": exception.get("description"),
            "url": details.get("url"),
            "scriptId": details.get("scriptId"),
            "lineNumber": details.get("lineNumber"),
            "columnNumber": details.get("columnNumber"),
            "timestamp": params.get("timestamp"),
        })

    # ==========================================================================
    # Storage and service workers
    # ==========================================================================

    def _storage_handler(self, action: str) -> channel_mod.EventHandler:
        """Build the handler for one ``DOMStorage`` event kind."""

        def handle(params: dict[str, Any]) -> None:
            storage_id = params.get("storageId") or {}
            area = "localStorage" if storage_id.get("isLocalStorage") else "sessionStorage"
            self.store.storage.setdefault(area, []).append({
                "action": action,
                "origin": storage_id.get("securityOrigin") or storage_id.get("storageKey"),
                "key": params.get("key"),
                "oldValue": params.get("oldValue"),
                "newValue": params.get("newValue"),
            })

        return handle

    def on_worker_registrations(self, params: dict[str, Any]) -> None:
        """Merge service worker registration updates."""
        for registration in params.get("registrations") or []:
            registration_id = registration.get("registrationId")
            if not registration_id:
                continue
            record = self.store.service_workers.setdefault(registration_id, {"versions": {}})
            record.update(registration)

    def on_worker_versions(self, params: dict[str, Any]) -> None:
        """Merge service worker version updates under their registration."""
        for version in params.get("versions") or []:
            registration_id = version.get("registrationId")
            version_id = version.get("versionId")
            if not registration_id or not version_id:
                continue
            record = self.store.service_workers.setdefault(registration_id, {"versions": {}})
            record.setdefault("versions", {})[version_id] = dict(version)
