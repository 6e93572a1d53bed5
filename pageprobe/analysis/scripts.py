"""
Script post-processing: frame context, parent script, DOM event
bindings and coverage, applied to the parsed-script registry.
"""

from __future__ import annotations

from typing import Any

from pageprobe.analysis import coverage, initiator
from pageprobe.models import config
from pageprobe.store import frames as frames_mod, session_store
from pageprobe.utils import logger

log = logger.create_logger("Scripts")

INLINE_URL = "inline"


def attach_dom_events(
    scripts: dict[str, dict[str, Any]],
    dom_events: list[dict[str, Any]],
) -> int:
    """Append each listener binding to the ``events`` list of its script.

    The ``scriptId`` key is dropped from the stored binding.  Bindings
    whose script is not in the registry are ignored.

    Returns:
        Number of bindings attached.
    """
    attached = 0
    for event in dom_events:
        script = scripts.get(str(event.get("scriptId", "")))
        if script is None:
            continue
        binding = {key: value for key, value in event.items() if key != "scriptId"}
        script.setdefault("events", []).append(binding)
        attached += 1
    return attached


def annotate_scripts(
    scripts: dict[str, dict[str, Any]],
    frames: dict[str, dict[str, Any]],
) -> None:
    """Add ``frameURL``, ``parentScript`` and ``initiatorScriptId`` to each script.

    A script whose URL equals its frame's URL is an inline ``<script>``
    block and gets the URL ``"inline"``.
    """
    for script in scripts.values():
        frame = frames.get(frames_mod.script_frame_id(script) or "")
        frame_url = frame.get("url", "") if frame else ""
        script["frameURL"] = frame_url

        if frame_url and script.get("url") == frame_url:
            script["url"] = INLINE_URL

        stack = script.get("stackTrace")
        if stack:
            call_frames = stack.get("callFrames") or []
            script["parentScript"] = call_frames[0] if call_frames else None
            script["initiatorScriptId"] = initiator.resolve_stack(stack)


def process_scripts(
    store: session_store.SessionStore,
    collect: config.CollectionConfig,
) -> dict[str, dict[str, Any]]:
    """Run every enabled script post-processing step on the store's scripts."""
    scripts = store.scripts
    if not scripts:
        return scripts

    if collect.script_coverage and store.script_coverage:
        summaries = coverage.process_script_coverage(scripts, store.script_coverage)
        log.debug("Script coverage merged", {"scripts": len(summaries)})

    if collect.script_dom_events and store.dom_events:
        attached = attach_dom_events(scripts, store.dom_events)
        log.debug("DOM events attached", {"events": attached})

    annotate_scripts(scripts, store.frames)
    return scripts
