"""
Network request/response correlation.

Requests are kept in arrival order; responses are keyed by request id
and may arrive before, after, or never relative to their request.
Frame context and response details are joined only when the report is
assembled, so capture order does not matter.
"""

from __future__ import annotations

from typing import Any

from pageprobe.store import session_store
from pageprobe.utils import logger, url as url_mod

log = logger.create_logger("Network")

OTHER_ORIGIN = "other"


def record_request(store: session_store.SessionStore, event: dict[str, Any]) -> None:
    """Store a ``Network.requestWillBeSent`` event.

    The nested ``request`` object is flattened into the entry so that
    ``url``, ``method``, ``headers`` and ``postData`` sit beside
    ``requestId``, ``initiator``, ``frameId`` and ``timestamp``.
    ``data:`` URIs are diverted to the data-URI section.
    """
    request = event.get("request") or {}
    entry = {key: value for key, value in event.items() if key != "request"}
    entry.update(request)
    url = entry.get("url") or ""

    if url_mod.is_data_uri(url):
        _record_data_uri(store, entry, url)
        return

    store.requests.append(entry)


def _record_data_uri(store: session_store.SessionStore, entry: dict[str, Any], url: str) -> None:
    """Count a ``data:`` URI request under the hash of its URL."""
    digest = url_mod.hash_url(url)
    record = store.data_uri.get(digest)
    if record is None:
        store.data_uri[digest] = {
            "mimeType": url_mod.data_uri_mime_type(url),
            "length": len(url),
            "frameId": entry.get("frameId"),
            "type": entry.get("type"),
            "count": 1,
        }
    else:
        record["count"] += 1


def record_response(store: session_store.SessionStore, event: dict[str, Any]) -> None:
    """Store a ``Network.responseReceived`` event, replacing any earlier one."""
    request_id = event.get("requestId")
    if not request_id:
        log.debug("Response without request id skipped")
        return
    response = dict(event.get("response") or {})
    response["requestId"] = request_id
    if event.get("type"):
        response["resourceType"] = event["type"]
    store.responses[request_id] = response


# ============================================================================
# WebSockets
# ============================================================================


def record_websocket_created(store: session_store.SessionStore, event: dict[str, Any]) -> None:
    """Start tracking a WebSocket connection."""
    socket = _websocket(store, event)
    socket["url"] = event.get("url")
    socket["initiator"] = event.get("initiator")


def record_websocket_frame(store: session_store.SessionStore, event: dict[str, Any], direction: str) -> None:
    """Count one frame sent or received on a WebSocket."""
    socket = _websocket(store, event)
    payload = (event.get("response") or {}).get("payloadData") or ""
    socket[f"{direction}Frames"] += 1
    socket[f"{direction}Bytes"] += len(payload)


def record_websocket_closed(store: session_store.SessionStore, event: dict[str, Any]) -> None:
    """Mark a WebSocket connection as closed."""
    socket = _websocket(store, event)
    socket["closedAt"] = event.get("timestamp")


def _websocket(store: session_store.SessionStore, event: dict[str, Any]) -> dict[str, Any]:
    """Look up or create the record for the event's WebSocket."""
    request_id = event.get("requestId") or "unknown"
    return store.websockets.setdefault(request_id, {
        "requestId": request_id,
        "sentFrames": 0,
        "sentBytes": 0,
        "receivedFrames": 0,
        "receivedBytes": 0,
    })


# ============================================================================
# Correlation
# ============================================================================


def correlate(
    store: session_store.SessionStore,
    include_responses: bool = False,
) -> dict[str, list[dict[str, Any]]]:
    """Join every request with its frame (and response) and group by origin.

    Args:
        store: Session store holding requests, responses and frames.
        include_responses: Attach the stored response under ``response``.

    Returns:
        Mapping of URL origin to request entries in arrival order.
        Requests whose URL cannot be parsed are grouped under ``"other"``.
    """
    grouped: dict[str, list[dict[str, Any]]] = {}

    for request in store.requests:
        entry = dict(request)
        frame = store.frames.get(entry.get("frameId") or "")
        if frame is None:
            log.debug("Request frame not found", {"requestId": entry.get("requestId")})
            entry["frameURL"] = ""
        else:
            entry["frameURL"] = frame.get("url") or ""

        if include_responses:
            entry["response"] = store.responses.get(entry.get("requestId") or "")

        origin = url_mod.get_origin(entry.get("url") or "")
        if origin is None:
            log.debug("Unparsable request URL", {"url": entry.get("url")})
            origin = OTHER_ORIGIN
        grouped.setdefault(origin, []).append(entry)

    return grouped
