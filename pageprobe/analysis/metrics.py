"""
Helpers for ``Performance.getMetrics`` and heap usage results.
"""

from __future__ import annotations

from typing import Any

# Performance metrics that describe JavaScript execution.
JS_METRIC_NAMES = (
    "JSHeapUsedSize",
    "JSHeapTotalSize",
    "ScriptDuration",
    "TaskDuration",
    "V8CompileDuration",
    "RecalcStyleDuration",
    "LayoutDuration",
    "Documents",
    "JSEventListeners",
    "Nodes",
)


def flatten_metrics(metrics: list[dict[str, Any]] | None) -> dict[str, Any]:
    """Turn a ``[{name, value}, ...]`` list into a ``{name: value}`` mapping."""
    return {metric["name"]: metric.get("value") for metric in metrics or [] if "name" in metric}


def build_js_metrics(
    metrics: list[dict[str, Any]] | None,
    heap_usage: dict[str, Any] | None,
) -> dict[str, Any]:
    """Select the JavaScript execution metrics and add heap usage."""
    flat = flatten_metrics(metrics)
    result = {name: flat[name] for name in JS_METRIC_NAMES if name in flat}
    if heap_usage:
        result["heapUsedSize"] = heap_usage.get("usedSize")
        result["heapTotalSize"] = heap_usage.get("totalSize")
    return result
