"""
Mutable accumulator for everything a scan observes.

A ``SessionStore`` is owned by exactly one scanner.  Listener callbacks
write into it synchronously as DevTools events arrive, collectors fill
in the on-demand sections when the report is requested, and the
scanner swaps in a fresh instance once the report has been assembled.
"""

from __future__ import annotations

from typing import Any


class SessionStore:
    """All raw telemetry collected during one scan."""

    def __init__(self) -> None:
        """Initialise an empty store."""
        # Event-driven sections
        self.frames: dict[str, dict[str, Any]] = {}
        self.requests: list[dict[str, Any]] = []
        self.responses: dict[str, dict[str, Any]] = {}
        self.scripts: dict[str, dict[str, Any]] = {}
        self.styles: dict[str, dict[str, Any]] = {}
        self.data_uri: dict[str, dict[str, Any]] = {}
        self.websockets: dict[str, dict[str, Any]] = {}
        self.service_workers: dict[str, dict[str, Any]] = {}
        self.logs: dict[str, list[dict[str, Any]]] = {}
        self.console: dict[str, list[dict[str, Any]]] = {}
        self.errors: list[dict[str, Any]] = []
        self.storage: dict[str, list[dict[str, Any]]] = {}

        # Sections fetched on demand at report time
        self.dom_events: list[dict[str, Any]] | None = None
        self.script_coverage: list[dict[str, Any]] | None = None
        self.style_coverage: list[dict[str, Any]] | None = None
        self.resource_tree: dict[str, dict[str, Any]] | None = None
        self.resources: list[dict[str, Any]] | None = None
        self.cookies: list[dict[str, Any]] | None = None
        self.metrics: list[dict[str, Any]] | None = None
        self.metadata: dict[str, Any] | None = None
        self.js_metrics: dict[str, Any] | None = None

    def is_empty(self) -> bool:
        """Return ``True`` when no event has been recorded yet."""
        return not (
            self.frames
            or self.requests
            or self.responses
            or self.scripts
            or self.styles
            or self.data_uri
            or self.websockets
            or self.service_workers
            or self.logs
            or self.console
            or self.errors
            or self.storage
        )


def append_capped(
    section: dict[str, list[dict[str, Any]]],
    key: str,
    entry: dict[str, Any],
    threshold: int,
) -> bool:
    """Append *entry* to ``section[key]`` unless it already holds *threshold* items.

    Returns:
        ``True`` when the entry was stored.
    """
    bucket = section.setdefault(key, [])
    if len(bucket) >= threshold:
        return False
    bucket.append(entry)
    return True
