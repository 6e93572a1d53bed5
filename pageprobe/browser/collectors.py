"""
DevTools commands issued by a scan.

``init_scan`` enables the domains and browser rules a scan needs when
it starts.  ``collect_on_demand`` runs the queries that can only be
answered when the report is requested (coverage, DOM listeners,
cookies, sources, metadata) and stores their results.  A failed query
leaves its section empty and is logged; it never aborts the report.
"""

from __future__ import annotations

import asyncio
import collections
import re
from collections.abc import Awaitable
from typing import Any, TypeVar

from pageprobe.analysis import initiator, metrics
from pageprobe.browser import blocklists, channel as channel_mod
from pageprobe.models import config
from pageprobe.store import session_store
from pageprobe.utils import errors, logger

log = logger.create_logger("Collectors")

T = TypeVar("T")

OBJECT_GROUP = "pageprobe"

DOCUMENT_OWNER = {"className": "HTMLDocument", "description": "document"}
WINDOW_OWNER = {"className": "Window", "description": "Window"}

METADATA_EXPRESSION = """(() => ({
    url: location.href,
    title: document.title,
    referrer: document.referrer,
    userAgent: navigator.userAgent,
    language: navigator.language,
    charset: document.characterSet,
    contentType: document.contentType,
    readyState: document.readyState,
    viewport: { width: window.innerWidth, height: window.innerHeight },
}))()"""

# Masks the most common automation signals before any page script runs.
STEALTH_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
    Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
    Object.defineProperty(navigator, 'plugins', {
        get: () => [
            { name: 'Chrome PDF Plugin', filename: 'internal-pdf-viewer' },
            { name: 'Chrome PDF Viewer', filename: 'mhjfbmdgcfjbbpaeojofohoefgiehjai' },
        ],
    });
    if (!window.chrome) {
        window.chrome = { runtime: {} };
    }
"""


async def _tolerant(label: str, operation: Awaitable[T]) -> T | None:
    """Await *operation*, logging and swallowing DevTools command failures."""
    try:
        return await operation
    except errors.CommandError as exc:
        log.warn(f"Failed to collect {label}", {"error": errors.get_error_message(exc)})
        return None


# ============================================================================
# Scan start
# ============================================================================


async def init_scan(channel: channel_mod.BrowserChannel, context: config.ScanContext) -> None:
    """Enable the DevTools domains and apply the browser rules for a scan.

    Listeners must already be subscribed: enabling ``Debugger`` and
    ``CSS`` replays ``scriptParsed`` and ``styleSheetAdded`` for what
    the page has already loaded.
    """
    collect, rules = context.collect, context.rules

    await channel.send("Page.enable")
    await channel.send("Network.enable")
    await channel.send("Runtime.enable")

    if collect.scripts:
        await channel.send("Debugger.enable")
        await channel.send("Debugger.setAsyncCallStackDepth", {"maxDepth": initiator.MAX_STACK_DEPTH})
        if collect.script_coverage:
            await channel.send("Profiler.enable")
            await channel.send("Profiler.startPreciseCoverage", {"callCount": True, "detailed": False})

    if collect.styles or collect.script_dom_events:
        await channel.send("DOM.enable")
    if collect.styles:
        await channel.send("CSS.enable")
        if collect.style_coverage:
            await channel.send("CSS.startRuleUsageTracking")

    if collect.logs:
        await channel.send("Log.enable")
    if collect.storage:
        await channel.send("DOMStorage.enable")
    if collect.service_worker:
        await channel.send("ServiceWorker.enable")
    if collect.metadata or collect.js_metrics:
        await channel.send("Performance.enable")

    if rules.clear_browser_data:
        await channel.send("Network.clearBrowserCache")
        await channel.send("Network.clearBrowserCookies")
    if rules.user_agent:
        await channel.send("Emulation.setUserAgentOverride", {"userAgent": rules.user_agent})

    blocked = blocklists.blocked_url_patterns(rules)
    if blocked:
        await channel.send("Network.setBlockedURLs", {"urls": blocked})
    if rules.disable_csp:
        await channel.send("Page.setBypassCSP", {"enabled": True})
    if rules.stealth:
        await channel.send("Page.addScriptToEvaluateOnNewDocument", {"source": STEALTH_SCRIPT})

    log.debug("Scan initialised", {"blockedUrls": len(blocked)})


# ============================================================================
# DOM event listeners
# ============================================================================


async def _object_id(channel: channel_mod.BrowserChannel, expression: str) -> str | None:
    """Evaluate *expression* in the page and return the result's object id."""
    evaluation = await channel.send(
        "Runtime.evaluate", {"expression": expression, "objectGroup": OBJECT_GROUP}
    )
    return (evaluation.get("result") or {}).get("objectId")


async def _event_listeners(channel: channel_mod.BrowserChannel, object_id: str) -> list[dict[str, Any]]:
    """Return the listeners registered on one remote object."""
    try:
        result = await channel.send("DOMDebugger.getEventListeners", {"objectId": object_id})
    except errors.CommandError as exc:
        log.debug("Listener lookup failed", {"error": errors.get_error_message(exc)})
        return []
    return result.get("listeners") or []


async def get_all_dom_events(channel: channel_mod.BrowserChannel) -> list[dict[str, Any]]:
    """List every DOM event listener on the page's elements, document and window.

    Each binding is the listener descriptor merged with its owner's
    ``className`` and ``description``.  Listener lookups for all
    elements run concurrently.
    """
    bindings: list[dict[str, Any]] = []

    nodes_id = await _object_id(channel, 'document.querySelectorAll("*")')
    if nodes_id:
        properties = await channel.send(
            "Runtime.getProperties",
            {"objectId": nodes_id, "ownProperties": True, "objectGroup": OBJECT_GROUP},
        )
        elements = [
            prop.get("value") or {}
            for prop in properties.get("result") or []
            if str(prop.get("name", "")).isdigit()
        ]
        elements = [element for element in elements if element.get("objectId")]

        per_element = await asyncio.gather(*(_event_listeners(channel, e["objectId"]) for e in elements))
        for element, listeners in zip(elements, per_element):
            owner = {k: v for k, v in element.items() if k not in ("objectId", "subtype", "type")}
            bindings.extend({**listener, **owner} for listener in listeners)

    for expression, owner in (("document", DOCUMENT_OWNER), ("window", WINDOW_OWNER)):
        object_id = await _object_id(channel, expression)
        if object_id:
            bindings.extend({**listener, **owner} for listener in await _event_listeners(channel, object_id))

    await _tolerant("object release", channel.send("Runtime.releaseObjectGroup", {"objectGroup": OBJECT_GROUP}))
    return bindings


# ============================================================================
# Page resources and cookies
# ============================================================================


async def get_resource_tree(
    channel: channel_mod.BrowserChannel,
) -> tuple[dict[str, dict[str, Any]], list[dict[str, Any]]]:
    """Flatten ``Page.getResourceTree`` into frame details and a resource list."""
    result = await channel.send("Page.getResourceTree")
    frame_details: dict[str, dict[str, Any]] = {}
    resources: list[dict[str, Any]] = []

    pending = collections.deque([result.get("frameTree") or {}])
    while pending:
        node = pending.popleft()
        frame = node.get("frame") or {}
        frame_id = frame.get("id")
        if frame_id:
            frame_details[frame_id] = dict(frame)
        resources.extend({**resource, "frameId": frame_id} for resource in node.get("resources") or [])
        pending.extend(node.get("childFrames") or [])

    return frame_details, resources


async def get_cookies(channel: channel_mod.BrowserChannel) -> list[dict[str, Any]]:
    """Return every cookie in the browser."""
    result = await channel.send("Network.getAllCookies")
    return result.get("cookies") or []


# ============================================================================
# Coverage and sources
# ============================================================================


async def get_script_coverage(channel: channel_mod.BrowserChannel) -> list[dict[str, Any]]:
    """Take the precise coverage recorded since the scan started."""
    result = await channel.send("Profiler.takePreciseCoverage")
    return result.get("result") or []


async def get_style_coverage(channel: channel_mod.BrowserChannel) -> list[dict[str, Any]]:
    """Stop CSS rule tracking and return the rule usage list."""
    result = await channel.send("CSS.stopRuleUsageTracking")
    return result.get("ruleUsage") or []


async def attach_script_sources(
    channel: channel_mod.BrowserChannel,
    scripts: dict[str, dict[str, Any]],
) -> None:
    """Fetch every script's source concurrently into ``source``."""
    script_ids = list(scripts)
    results = await asyncio.gather(*(
        _tolerant(f"script {sid} source", channel.send("Debugger.getScriptSource", {"scriptId": sid}))
        for sid in script_ids
    ))
    for script_id, result in zip(script_ids, results):
        if result is not None:
            scripts[script_id]["source"] = result.get("scriptSource")


async def attach_style_sources(
    channel: channel_mod.BrowserChannel,
    styles: dict[str, dict[str, Any]],
) -> None:
    """Fetch every style sheet's text concurrently into ``source``."""
    sheet_ids = list(styles)
    results = await asyncio.gather(*(
        _tolerant(f"style {sid} source", channel.send("CSS.getStyleSheetText", {"styleSheetId": sid}))
        for sid in sheet_ids
    ))
    for sheet_id, result in zip(sheet_ids, results):
        if result is not None:
            styles[sheet_id]["source"] = result.get("text")


async def attach_response_bodies(
    channel: channel_mod.BrowserChannel,
    responses: dict[str, dict[str, Any]],
    patterns: tuple[str, ...],
) -> int:
    """Fetch bodies of responses whose URL matches one of *patterns*.

    Returns:
        Number of bodies attached.
    """
    regexes = [re.compile(pattern) for pattern in patterns]
    targets = [
        request_id
        for request_id, response in responses.items()
        if any(regex.search(response.get("url") or "") for regex in regexes)
    ]
    results = await asyncio.gather(*(
        _tolerant(f"response {rid} body", channel.send("Network.getResponseBody", {"requestId": rid}))
        for rid in targets
    ))
    attached = 0
    for request_id, result in zip(targets, results):
        if result is None:
            continue
        responses[request_id]["body"] = result.get("body")
        responses[request_id]["base64Encoded"] = result.get("base64Encoded", False)
        attached += 1
    return attached


# ============================================================================
# Metadata and metrics
# ============================================================================


async def get_metadata(channel: channel_mod.BrowserChannel) -> dict[str, Any]:
    """Describe the page: URL, title, user agent, viewport and so on."""
    result = await channel.send(
        "Runtime.evaluate", {"expression": METADATA_EXPRESSION, "returnByValue": True}
    )
    return (result.get("result") or {}).get("value") or {}


async def get_metrics(channel: channel_mod.BrowserChannel) -> list[dict[str, Any]]:
    """Return the raw ``Performance.getMetrics`` list."""
    result = await channel.send("Performance.getMetrics")
    return result.get("metrics") or []


async def get_js_metrics(channel: channel_mod.BrowserChannel) -> dict[str, Any]:
    """Return JavaScript execution metrics and heap usage."""
    raw_metrics = await get_metrics(channel)
    heap_usage = await _tolerant("heap usage", channel.send("Runtime.getHeapUsage"))
    return metrics.build_js_metrics(raw_metrics, heap_usage)


# ============================================================================
# Report-time collection
# ============================================================================


async def collect_on_demand(
    channel: channel_mod.BrowserChannel,
    store: session_store.SessionStore,
    collect: config.CollectionConfig,
) -> None:
    """Run every report-time query the collection flags call for."""
    if collect.scripts and collect.script_dom_events:
        store.dom_events = await _tolerant("DOM events", get_all_dom_events(channel))

    if collect.cookies:
        store.cookies = await _tolerant("cookies", get_cookies(channel))

    if collect.frames or collect.resources:
        tree = await _tolerant("resource tree", get_resource_tree(channel))
        if tree is not None:
            store.resource_tree, resources = tree
            if collect.resources:
                store.resources = resources

    if collect.styles and collect.style_coverage:
        store.style_coverage = await _tolerant("style coverage", get_style_coverage(channel))

    if collect.scripts and collect.script_coverage:
        store.script_coverage = await _tolerant("script coverage", get_script_coverage(channel))

    if collect.scripts and collect.script_source:
        await attach_script_sources(channel, store.scripts)

    if collect.styles and collect.style_source:
        await attach_style_sources(channel, store.styles)

    if collect.requests and collect.body_response:
        await attach_response_bodies(channel, store.responses, collect.body_response)

    if collect.metadata:
        store.metadata = await _tolerant("metadata", get_metadata(channel))
        store.metrics = await _tolerant("metrics", get_metrics(channel))

    if collect.js_metrics:
        store.js_metrics = await _tolerant("JS metrics", get_js_metrics(channel))
