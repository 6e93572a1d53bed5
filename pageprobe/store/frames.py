"""
Frame lifecycle tracking.

Each ``Page.frame*`` event is folded into a per-frame record: the
event payload is shallow-merged over whatever was seen before and
the lifecycle tag is appended to the frame's ``state`` history.
Records are never removed; ``detached`` is just another tag.
"""

from __future__ import annotations

from typing import Any, Literal

from pageprobe.utils import logger

log = logger.create_logger("Frames")

FrameState = Literal[
    "loading",
    "navigated",
    "stopped",
    "attached",
    "detached",
    "resized",
    "requestNavigation",
]

# DevTools event name -> lifecycle tag
FRAME_EVENTS: dict[str, FrameState] = {
    "Page.frameStartedLoading": "loading",
    "Page.frameNavigated": "navigated",
    "Page.frameStoppedLoading": "stopped",
    "Page.frameAttached": "attached",
    "Page.frameDetached": "detached",
    "Page.frameResized": "resized",
    "Page.frameRequestedNavigation": "requestNavigation",
}

BLANK_URL = "about:blank"


def frame_id_of(frame: dict[str, Any]) -> str | None:
    """Return the frame identifier, preferring ``frameId`` over ``id``."""
    return frame.get("frameId") or frame.get("id") or None


def script_frame_id(script: dict[str, Any]) -> str | None:
    """Return the frame owning a parsed script.

    Registered scripts carry a top-level ``frameId``; raw
    ``Debugger.scriptParsed`` payloads keep it in ``executionContextAuxData``.
    """
    aux_data = script.get("executionContextAuxData") or {}
    return script.get("frameId") or aux_data.get("frameId") or None


def record_frame_event(
    frames: dict[str, dict[str, Any]],
    frame: dict[str, Any],
    state: FrameState,
) -> dict[str, Any] | None:
    """Merge one frame event payload into *frames* and append *state*.

    Args:
        frames: The store's frame mapping, mutated in place.
        frame: Event payload; any field may be missing.
        state: Lifecycle tag for this event.

    Returns:
        The updated frame record, or ``None`` when the payload
        carries no frame identifier.
    """
    frame_id = frame_id_of(frame)
    if frame_id is None:
        log.debug("Frame event without frame id skipped", {"state": state})
        return None

    record = frames.setdefault(frame_id, {"state": []})
    history = record["state"]
    record.update(frame)
    record["state"] = history
    history.append(state)
    return record


def finalize_frames(frames: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Fill in the ``about:blank`` default URL on every frame record."""
    for frame in frames.values():
        if not frame.get("url"):
            frame["url"] = BLANK_URL
    return frames


def merge_resource_tree(
    frames: dict[str, dict[str, Any]],
    resource_tree: dict[str, dict[str, Any]] | None,
) -> dict[str, dict[str, Any]]:
    """Overlay per-frame resource-tree details onto the frame records.

    Frames that only appear in the resource tree are added with an
    empty state history.
    """
    if not resource_tree:
        return frames
    for frame_id, details in resource_tree.items():
        record = frames.setdefault(frame_id, {"state": []})
        history = record["state"]
        record.update(details)
        record["state"] = history
    return frames
