"""Tests for pageprobe.browser.collectors — DevTools commands issued by a scan."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from conftest import FakeChannel, script_event

from pageprobe.browser.collectors import (
    OBJECT_GROUP,
    STEALTH_SCRIPT,
    attach_response_bodies,
    attach_script_sources,
    collect_on_demand,
    get_all_dom_events,
    get_js_metrics,
    get_resource_tree,
    init_scan,
)
from pageprobe.models.config import CollectionConfig, build_context
from pageprobe.store.session_store import SessionStore
from pageprobe.utils.errors import CommandError

# ── init_scan ───────────────────────────────────────────────────


class TestInitScan:
    """Tests for init_scan()."""

    def test_minimal_scan(self, channel: FakeChannel) -> None:
        context = build_context({"rules": {"clearBrowserData": False}})
        asyncio.run(init_scan(channel, context))
        assert channel.methods() == ["Page.enable", "Network.enable", "Runtime.enable"]

    def test_script_coverage_domains(self, channel: FakeChannel) -> None:
        context = build_context({"collect": {"scripts": True, "scriptCoverage": True}})
        asyncio.run(init_scan(channel, context))

        methods = channel.methods()
        assert "Debugger.enable" in methods
        assert methods.index("Profiler.enable") < methods.index("Profiler.startPreciseCoverage")
        assert ("Profiler.startPreciseCoverage", {"callCount": True, "detailed": False}) in channel.sent

    def test_coverage_modifier_needs_section(self, channel: FakeChannel) -> None:
        asyncio.run(init_scan(channel, build_context({"collect": {"scriptCoverage": True}})))
        assert "Profiler.enable" not in channel.methods()
        assert "Debugger.enable" not in channel.methods()

    def test_style_tracking(self, channel: FakeChannel) -> None:
        context = build_context({"collect": {"styles": True, "styleCoverage": True}})
        asyncio.run(init_scan(channel, context))
        methods = channel.methods()
        assert methods.index("DOM.enable") < methods.index("CSS.enable") < methods.index("CSS.startRuleUsageTracking")

    def test_rules_applied(self, channel: FakeChannel) -> None:
        context = build_context({
            "rules": {
                "stealth": True,
                "disableCSP": True,
                "userAgent": "scanner/1.0",
                "blockedUrls": ["*.mp4"],
            },
        })
        asyncio.run(init_scan(channel, context))

        assert ("Network.clearBrowserCache", {}) in channel.sent
        assert ("Emulation.setUserAgentOverride", {"userAgent": "scanner/1.0"}) in channel.sent
        assert ("Network.setBlockedURLs", {"urls": ["*.mp4"]}) in channel.sent
        assert ("Page.setBypassCSP", {"enabled": True}) in channel.sent
        assert ("Page.addScriptToEvaluateOnNewDocument", {"source": STEALTH_SCRIPT}) in channel.sent

    def test_command_failure_propagates(self) -> None:
        channel = FakeChannel({"Network.enable": CommandError("Network.enable", "Target closed")})
        with pytest.raises(CommandError, match="Network.enable failed"):
            asyncio.run(init_scan(channel, build_context()))
        assert channel.methods() == ["Page.enable", "Network.enable"]


# ── get_all_dom_events ──────────────────────────────────────────


def _dom_channel() -> FakeChannel:
    objects = {
        'document.querySelectorAll("*")': "nodes",
        "document": "doc",
        "window": "win",
    }
    listeners = {
        "el-1": [{"type": "click", "scriptId": "3", "lineNumber": 1, "columnNumber": 2}],
        "el-2": [],
        "doc": [{"type": "DOMContentLoaded", "scriptId": "3", "lineNumber": 5, "columnNumber": 0}],
        "win": [{"type": "load", "scriptId": "4", "lineNumber": 0, "columnNumber": 0}],
    }

    def evaluate(params: dict[str, Any]) -> dict[str, Any]:
        return {"result": {"type": "object", "objectId": objects[params["expression"]]}}

    def properties(params: dict[str, Any]) -> dict[str, Any]:
        return {
            "result": [
                {"name": "0", "value": {"type": "object", "subtype": "node", "objectId": "el-1",
                                        "className": "HTMLButtonElement", "description": "button#go"}},
                {"name": "1", "value": {"type": "object", "subtype": "node", "objectId": "el-2",
                                        "className": "HTMLDivElement", "description": "div"}},
                {"name": "length", "value": {"type": "number", "value": 2}},
            ],
        }

    def event_listeners(params: dict[str, Any]) -> dict[str, Any]:
        return {"listeners": listeners[params["objectId"]]}

    return FakeChannel({
        "Runtime.evaluate": evaluate,
        "Runtime.getProperties": properties,
        "DOMDebugger.getEventListeners": event_listeners,
    })


class TestGetAllDomEvents:
    """Tests for get_all_dom_events()."""

    def test_bindings_with_owner(self) -> None:
        channel = _dom_channel()
        bindings = asyncio.run(get_all_dom_events(channel))

        assert bindings == [
            {"type": "click", "scriptId": "3", "lineNumber": 1, "columnNumber": 2,
             "className": "HTMLButtonElement", "description": "button#go"},
            {"type": "DOMContentLoaded", "scriptId": "3", "lineNumber": 5, "columnNumber": 0,
             "className": "HTMLDocument", "description": "document"},
            {"type": "load", "scriptId": "4", "lineNumber": 0, "columnNumber": 0,
             "className": "Window", "description": "Window"},
        ]
        assert ("Runtime.releaseObjectGroup", {"objectGroup": OBJECT_GROUP}) in channel.sent

    def test_listener_lookup_failure_skips_element(self) -> None:
        channel = _dom_channel()
        original = channel.results["DOMDebugger.getEventListeners"]

        def flaky(params: dict[str, Any]) -> dict[str, Any]:
            if params["objectId"] == "el-1":
                raise CommandError("DOMDebugger.getEventListeners", "No node")
            return original(params)

        channel.results["DOMDebugger.getEventListeners"] = flaky
        bindings = asyncio.run(get_all_dom_events(channel))
        assert [b["type"] for b in bindings] == ["DOMContentLoaded", "load"]


# ── get_resource_tree ───────────────────────────────────────────


class TestGetResourceTree:
    """Tests for get_resource_tree()."""

    def test_flattens_tree(self) -> None:
        tree = {
            "frameTree": {
                "frame": {"id": "F1", "url": "https://a.test/"},
                "resources": [{"url": "https://a.test/a.css", "type": "Stylesheet"}],
                "childFrames": [
                    {
                        "frame": {"id": "F2", "parentId": "F1", "url": "https://b.test/"},
                        "resources": [{"url": "https://b.test/b.js", "type": "Script"}],
                    },
                ],
            },
        }
        channel = FakeChannel({"Page.getResourceTree": tree})
        frames, resources = asyncio.run(get_resource_tree(channel))

        assert list(frames) == ["F1", "F2"]
        assert frames["F2"]["parentId"] == "F1"
        assert resources == [
            {"url": "https://a.test/a.css", "type": "Stylesheet", "frameId": "F1"},
            {"url": "https://b.test/b.js", "type": "Script", "frameId": "F2"},
        ]


# ── Sources and bodies ──────────────────────────────────────────


class TestSourcesAndBodies:
    """Tests for source and body fetching."""

    def test_script_sources(self) -> None:
        def source(params: dict[str, Any]) -> dict[str, Any]:
            if params["scriptId"] == "2":
                raise CommandError("Debugger.getScriptSource", "No script")
            return {"scriptSource": f"// {params['scriptId']}"}

        scripts = {"1": script_event("1", "a.js"), "2": script_event("2", "b.js")}
        asyncio.run(attach_script_sources(FakeChannel({"Debugger.getScriptSource": source}), scripts))
        assert scripts["1"]["source"] == "// 1"
        assert "source" not in scripts["2"]

    def test_response_bodies_matching_patterns(self) -> None:
        responses = {
            "R1": {"url": "https://a.test/data.json"},
            "R2": {"url": "https://a.test/page.html"},
        }
        channel = FakeChannel({"Network.getResponseBody": {"body": "{}", "base64Encoded": False}})
        attached = asyncio.run(attach_response_bodies(channel, responses, (r"\.json$",)))

        assert attached == 1
        assert responses["R1"]["body"] == "{}"
        assert "body" not in responses["R2"]
        assert channel.sent == [("Network.getResponseBody", {"requestId": "R1"})]


# ── Metrics ─────────────────────────────────────────────────────


class TestJsMetrics:
    """Tests for get_js_metrics()."""

    def test_heap_usage_failure_tolerated(self) -> None:
        channel = FakeChannel({
            "Performance.getMetrics": {"metrics": [{"name": "Nodes", "value": 5}]},
            "Runtime.getHeapUsage": CommandError("Runtime.getHeapUsage", "unsupported"),
        })
        assert asyncio.run(get_js_metrics(channel)) == {"Nodes": 5}


# ── collect_on_demand ───────────────────────────────────────────


class TestCollectOnDemand:
    """Tests for collect_on_demand()."""

    def test_nothing_requested(self, channel: FakeChannel, store: SessionStore) -> None:
        asyncio.run(collect_on_demand(channel, store, CollectionConfig()))
        assert channel.sent == []

    def test_failed_query_leaves_section_empty(self, store: SessionStore) -> None:
        channel = FakeChannel({
            "Network.getAllCookies": CommandError("Network.getAllCookies", "boom"),
            "Profiler.takePreciseCoverage": {"result": [{"scriptId": "1", "functions": []}]},
        })
        collect = CollectionConfig(cookies=True, scripts=True, script_coverage=True)
        asyncio.run(collect_on_demand(channel, store, collect))

        assert store.cookies is None
        assert store.script_coverage == [{"scriptId": "1", "functions": []}]

    def test_metadata_and_resources(self, store: SessionStore) -> None:
        channel = FakeChannel({
            "Runtime.evaluate": {"result": {"type": "object", "value": {"title": "A"}}},
            "Performance.getMetrics": {"metrics": [{"name": "Nodes", "value": 1}]},
            "Page.getResourceTree": {"frameTree": {"frame": {"id": "F1"}, "resources": [{"url": "x"}]}},
        })
        collect = CollectionConfig(metadata=True, resources=True)
        asyncio.run(collect_on_demand(channel, store, collect))

        assert store.metadata == {"title": "A"}
        assert store.metrics == [{"name": "Nodes", "value": 1}]
        assert store.resources == [{"url": "x", "frameId": "F1"}]
        assert store.resource_tree == {"F1": {"id": "F1"}}
