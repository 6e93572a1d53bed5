"""
Script and style coverage accounting.

Turns raw ``Profiler.takePreciseCoverage`` samples into per-script
used/unused byte totals and function name lists, and sums
``CSS.stopRuleUsageTracking`` rule spans into per-sheet usage.

Script ranges are merged with a single first-match pass: a candidate
range is folded into the first kept range it overlaps and the kept
set is never re-compacted afterwards.  Ranges that only overlap
through a later candidate therefore stay separate, and their common
bytes are counted twice.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

from pageprobe.models import telemetry
from pageprobe.utils import logger

log = logger.create_logger("Coverage")

ANONYMOUS_FUNCTION = "[[anonymous]]"

# Source URLs given to snippets injected by automation drivers.
EVALUATION_SCRIPT_URLS = frozenset({
    "__puppeteer_evaluation_script__",
    "__playwright_evaluation_script__",
})


def _ratio(used_bytes: int, length: int | None) -> float:
    """Divide like JavaScript does: ``0/0`` is ``nan`` and ``n/0`` is ``inf``."""
    if length:
        return used_bytes / length
    return math.nan if used_bytes == 0 else math.inf


def _script_id_key(sample: dict[str, Any]) -> tuple[int, int | str]:
    """Sort key ordering numeric script ids numerically, others after them."""
    script_id = str(sample.get("scriptId", ""))
    try:
        return (0, int(script_id))
    except ValueError:
        return (1, script_id)


# ============================================================================
# Range merging
# ============================================================================


def ranges_overlap(candidate: dict[str, Any], kept: dict[str, Any]) -> bool:
    """Return ``True`` when *candidate* overlaps, touches or encloses *kept*."""
    c_start, c_end = candidate["startOffset"], candidate["endOffset"]
    k_start, k_end = kept["startOffset"], kept["endOffset"]

    start_union = c_start <= k_start and k_start <= c_end <= k_end
    end_union = c_end >= k_end and k_start <= c_start <= k_end
    enclosed = (c_start > k_start and c_end < k_end) or (c_start < k_start and c_end > k_end)
    return start_union or end_union or enclosed


def merge_ranges(ranges: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Fold *ranges* into a kept list using the first overlapping kept range.

    Args:
        ranges: Ranges with ``startOffset`` and ``endOffset``, in arrival order.

    Returns:
        The kept ranges.  Each merge replaces the matched range with
        ``{startOffset: min, endOffset: max}``; unmatched candidates
        are appended as-is.
    """
    kept: list[dict[str, Any]] = []
    for candidate in ranges:
        for index, existing in enumerate(kept):
            if ranges_overlap(candidate, existing):
                kept[index] = {
                    "startOffset": min(existing["startOffset"], candidate["startOffset"]),
                    "endOffset": max(existing["endOffset"], candidate["endOffset"]),
                }
                break
        else:
            kept.append(candidate)
    return kept


def merge_coverage(
    functions: Iterable[dict[str, Any]],
    script_length: int | None,
) -> telemetry.FunctionCoverage:
    """Summarise one script's function coverage.

    Only the first range of each function (the function's own extent)
    is considered.  A zero hit count marks the function unused;
    otherwise its range joins the merged used set.

    Args:
        functions: ``FunctionCoverage`` entries from the profiler.
        script_length: Source length of the script in bytes.

    Returns:
        Used bytes, usage ratio and sorted used/unused function names.
    """
    used_names: set[str] = set()
    unused_names: set[str] = set()
    candidates: list[dict[str, Any]] = []

    for function in functions:
        ranges = function.get("ranges") or []
        name = function.get("functionName") or ANONYMOUS_FUNCTION
        if not ranges:
            log.debug("Function without coverage ranges", {"function": name})
            continue

        first = ranges[0]
        if not first.get("count"):
            unused_names.add(name)
            continue
        used_names.add(name)
        candidates.append(first)

    used_bytes = sum(r["endOffset"] - r["startOffset"] for r in merge_ranges(candidates))

    return telemetry.FunctionCoverage(
        used_bytes=used_bytes,
        usage=_ratio(used_bytes, script_length),
        used_functions=sorted(used_names),
        unused_functions=sorted(unused_names),
    )


def process_script_coverage(
    scripts: dict[str, dict[str, Any]],
    coverage: list[dict[str, Any]],
) -> dict[str, telemetry.FunctionCoverage]:
    """Attach ``functionCoverage`` to every script that has a coverage sample.

    Samples are handled in ascending numeric script id order.  Samples
    for evaluation snippets or for scripts missing from *scripts* are
    skipped.

    Returns:
        The computed summaries keyed by script id.
    """
    results: dict[str, telemetry.FunctionCoverage] = {}

    for sample in sorted(coverage, key=_script_id_key):
        if sample.get("url") in EVALUATION_SCRIPT_URLS:
            continue
        script_id = str(sample.get("scriptId", ""))
        script = scripts.get(script_id)
        if script is None:
            log.debug(f"Script {script_id} is missing")
            continue

        summary = merge_coverage(sample.get("functions") or [], script.get("length"))
        script["functionCoverage"] = summary.model_dump(by_alias=True)
        results[script_id] = summary

    return results


# ============================================================================
# Style coverage
# ============================================================================


def process_style_coverage(
    styles: dict[str, dict[str, Any]],
    rule_usage: list[dict[str, Any]],
) -> dict[str, telemetry.StyleCoverage]:
    """Sum used rule spans per style sheet and attach ``coverage``.

    Rule spans never overlap, so they are added up directly without
    merging.  Rules reported as unused are ignored.

    Returns:
        The computed summaries keyed by style sheet id.
    """
    totals: dict[str, int] = {}

    for rule in rule_usage:
        if rule.get("used") is False:
            continue
        sheet_id = rule.get("styleSheetId") or ""
        if sheet_id not in styles:
            log.debug("Style sheet is missing", {"styleSheetId": sheet_id})
            continue
        totals[sheet_id] = totals.get(sheet_id, 0) + rule["endOffset"] - rule["startOffset"]

    results: dict[str, telemetry.StyleCoverage] = {}
    for sheet_id, used_bytes in totals.items():
        style = styles[sheet_id]
        summary = telemetry.StyleCoverage(
            used_bytes=used_bytes,
            usage=_ratio(used_bytes, style.get("length")),
        )
        style["coverage"] = summary.model_dump(by_alias=True)
        results[sheet_id] = summary

    return results
