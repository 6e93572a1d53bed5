"""
Initiator resolution.

Maps a request's (or script's) causality descriptor to the script
that started it.  Parser- and other-initiated requests resolve to
their type tag; script-initiated ones resolve to the first script id
found when walking the async stack chain from its oldest ancestor.
"""

from __future__ import annotations

from typing import Any

from pageprobe.utils import logger

log = logger.create_logger("Initiator")

TERMINAL_TYPES = frozenset({"parser", "other"})

# Matches the async call stack depth requested from the debugger.
MAX_STACK_DEPTH = 1000


def collect_call_frames(stack: dict[str, Any] | None) -> list[list[dict[str, Any]]]:
    """Flatten a stack and its ``parent`` chain, oldest ancestor first.

    The walk stops at the first missing ``parent``, at a stack already
    visited (a cyclic chain) or after ``MAX_STACK_DEPTH`` levels.
    """
    chain: list[list[dict[str, Any]]] = []
    seen: set[int] = set()
    node = stack

    while node:
        if id(node) in seen or len(chain) >= MAX_STACK_DEPTH:
            log.debug("Initiator stack chain truncated", {"depth": len(chain)})
            break
        seen.add(id(node))
        chain.append(node.get("callFrames") or [])
        node = node.get("parent")

    chain.reverse()
    return chain


def resolve_stack(stack: dict[str, Any] | None) -> str | None:
    """Return the first non-empty ``scriptId`` in *stack*, oldest frames first."""
    for call_frames in collect_call_frames(stack):
        for call_frame in call_frames:
            script_id = call_frame.get("scriptId")
            if script_id:
                return str(script_id)
    return None


def resolve_initiator(initiator: dict[str, Any] | None) -> str | None:
    """Resolve an initiator descriptor to a script id, ``"parser"`` or ``"other"``.

    Args:
        initiator: ``Network.Initiator`` payload (``type``, optional ``stack``).

    Returns:
        The type tag for parser/other initiators, otherwise the first
        script id on the stack chain, or ``None`` when none carries one.
    """
    if not initiator:
        return None
    initiator_type = initiator.get("type")
    if initiator_type in TERMINAL_TYPES:
        return initiator_type
    return resolve_stack(initiator.get("stack"))
