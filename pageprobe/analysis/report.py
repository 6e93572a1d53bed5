"""
Report assembly.

Reads a ``SessionStore`` after collection has finished, runs the
post-processing each enabled section needs and copies that section
into the report.  Disabled sections never appear, and the output is
canonicalised so it holds no ``None`` or non-finite leaves.
"""

from __future__ import annotations

from typing import Any

from pageprobe.analysis import coverage, initiator, metrics, scripts
from pageprobe.models import config, telemetry
from pageprobe.store import frames, network, session_store
from pageprobe.utils import logger

log = logger.create_logger("Report")


def _requests_section(
    store: session_store.SessionStore,
    collect: config.CollectionConfig,
) -> dict[str, list[dict[str, Any]]]:
    """Correlate requests and resolve the initiator of each one."""
    include_responses = collect.responses or bool(collect.body_response)
    grouped = network.correlate(store, include_responses=include_responses)
    for entries in grouped.values():
        for entry in entries:
            entry["initiatorScriptId"] = initiator.resolve_initiator(entry.get("initiator"))
    return grouped


def _metadata_section(store: session_store.SessionStore) -> dict[str, Any] | None:
    """Page metadata with the performance metrics flattened into it."""
    if store.metadata is None:
        return None
    metadata = dict(store.metadata)
    metadata["metrics"] = metrics.flatten_metrics(store.metrics)
    return metadata


def build_report(
    store: session_store.SessionStore,
    collect: config.CollectionConfig,
) -> telemetry.Report:
    """Build the report model holding every enabled section.

    Args:
        store: Store populated by the listeners and collectors.
        collect: Section and modifier flags for this scan.

    Returns:
        A ``Report`` whose disabled sections are ``None``.
    """
    frames.finalize_frames(store.frames)
    sections: dict[str, Any] = {}

    if collect.frames:
        sections["frames"] = frames.merge_resource_tree(store.frames, store.resource_tree)

    if collect.scripts:
        sections["scripts"] = scripts.process_scripts(store, collect)

    if collect.styles:
        if collect.style_coverage and store.style_coverage:
            coverage.process_style_coverage(store.styles, store.style_coverage)
        sections["styles"] = store.styles

    if collect.metadata:
        sections["metadata"] = _metadata_section(store)

    if collect.requests:
        sections["requests"] = _requests_section(store, collect)

    if collect.data_uri:
        sections["data_uri"] = store.data_uri

    if collect.websocket:
        sections["websocket"] = store.websockets

    if collect.service_worker:
        sections["service_worker"] = store.service_workers

    if collect.cookies:
        sections["cookies"] = store.cookies

    if collect.logs:
        sections["logs"] = store.logs

    if collect.console:
        sections["console"] = store.console

    if collect.errors:
        sections["errors"] = store.errors

    if collect.storage:
        sections["storage"] = store.storage

    if collect.resources:
        sections["resources"] = store.resources

    if collect.js_metrics:
        sections["js_metrics"] = store.js_metrics

    log.debug("Report sections assembled", {"sections": sorted(sections)})
    return telemetry.Report(**sections)


def assemble_report(
    store: session_store.SessionStore,
    collect: config.CollectionConfig,
) -> dict[str, Any]:
    """Assemble the JSON-ready report for *store* under *collect*."""
    return build_report(store, collect).to_dict()
