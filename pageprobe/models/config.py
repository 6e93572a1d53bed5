"""Pydantic models for scan configuration.

``CollectionConfig`` enumerates every report section and modifier a
caller can ask for, ``ScanRules`` holds the browser-side behaviour
switches, and ``ScanContext`` bundles both with the logging toggle.
All three are frozen: a scan's configuration is merged once at
construction and never changes afterwards.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

import pydantic

from pageprobe.utils import serialization

_FROZEN_CONFIG = pydantic.ConfigDict(
    alias_generator=serialization.snake_to_camel,
    populate_by_name=True,
    frozen=True,
    extra="forbid",
)


class CollectionConfig(pydantic.BaseModel):
    """Which telemetry sections to collect and emit in the report."""

    model_config = _FROZEN_CONFIG

    frames: bool = False
    scripts: bool = False
    script_source: bool = False
    script_dom_events: bool = pydantic.Field(default=False, alias="scriptDOMEvents")
    script_coverage: bool = False
    styles: bool = False
    style_source: bool = True
    style_coverage: bool = False
    service_worker: bool = False
    requests: bool = False
    responses: bool = False
    body_response: tuple[str, ...] = ()
    data_uri: bool = pydantic.Field(default=False, alias="dataURI")
    websocket: bool = False
    cookies: bool = False
    logs: bool = False
    console: bool = False
    errors: bool = False
    storage: bool = False
    resources: bool = False
    js_metrics: bool = pydantic.Field(default=False, alias="JSMetrics")
    metadata: bool = False

    @pydantic.field_validator("body_response")
    @classmethod
    def _check_patterns(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Reject response-body URL patterns that are not valid regexes."""
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid bodyResponse pattern {pattern!r}: {exc}") from exc
        return value


class ScanRules(pydantic.BaseModel):
    """Browser behaviour applied while a scan is running."""

    model_config = _FROZEN_CONFIG

    stealth: bool = False
    disable_services: bool = False
    blocked_urls: tuple[str, ...] = ()
    ad_blocking: bool = False
    disable_csp: bool = pydantic.Field(default=False, alias="disableCSP")
    logs_threshold: int = pydantic.Field(default=50, ge=0)
    user_agent: str | None = None
    clear_browser_data: bool = True


class ScanContext(pydantic.BaseModel):
    """Complete, immutable configuration for one scan."""

    model_config = _FROZEN_CONFIG

    log: bool = False
    rules: ScanRules = pydantic.Field(default_factory=ScanRules)
    collect: CollectionConfig = pydantic.Field(default_factory=CollectionConfig)


def build_context(options: Mapping[str, object] | None = None) -> ScanContext:
    """Merge caller options over the defaults into a ``ScanContext``.

    *options* uses the caller-facing camelCase names, e.g.
    ``{"log": True, "collect": {"scripts": True}, "rules": {...}}``.
    Missing keys keep their defaults; unknown keys are rejected.

    Raises:
        pydantic.ValidationError: When an option is unknown or mistyped.
    """
    options = dict(options or {})
    rules = dict(options.pop("rules", None) or {})
    if "stealth" in options:
        rules.setdefault("stealth", bool(options.pop("stealth")))
    return ScanContext.model_validate({
        **options,
        "rules": rules,
        "collect": options.get("collect") or {},
    })
