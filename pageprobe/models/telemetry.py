"""Pydantic models for derived telemetry and the assembled report."""

from __future__ import annotations

from typing import Any

import pydantic

from pageprobe.utils import serialization


class FunctionCoverage(pydantic.BaseModel):
    """Used/unused byte accounting for one parsed script."""

    model_config = pydantic.ConfigDict(
        alias_generator=serialization.snake_to_camel, populate_by_name=True
    )

    used_bytes: int
    # nan/inf when the script has no recorded length
    usage: float
    used_functions: list[str] = pydantic.Field(default_factory=list)
    unused_functions: list[str] = pydantic.Field(default_factory=list)


class StyleCoverage(pydantic.BaseModel):
    """Used byte accounting for one style sheet."""

    model_config = pydantic.ConfigDict(
        alias_generator=serialization.snake_to_camel, populate_by_name=True
    )

    used_bytes: float = 0
    usage: float | None = None


class Report(pydantic.BaseModel):
    """Final scan output; one optional field per report section.

    Sections left at ``None`` are omitted when the report is dumped,
    so only the sections enabled in ``CollectionConfig`` appear.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=serialization.snake_to_camel, populate_by_name=True
    )

    frames: dict[str, Any] | None = None
    scripts: dict[str, Any] | None = None
    styles: dict[str, Any] | None = None
    service_worker: dict[str, Any] | None = None
    requests: dict[str, list[Any]] | None = None
    data_uri: dict[str, Any] | None = pydantic.Field(default=None, alias="dataURI")
    websocket: dict[str, Any] | None = None
    cookies: list[Any] | None = None
    logs: dict[str, list[Any]] | None = None
    console: dict[str, list[Any]] | None = None
    errors: list[Any] | None = None
    storage: dict[str, list[Any]] | None = None
    resources: list[Any] | None = None
    js_metrics: dict[str, Any] | None = pydantic.Field(default=None, alias="JSMetrics")
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Dump the enabled sections as a canonical JSON-safe mapping."""
        dumped = self.model_dump(by_alias=True, exclude_none=True)
        return serialization.strip_undefined(dumped)  # type: ignore[return-value]
