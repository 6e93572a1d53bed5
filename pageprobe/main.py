"""
Server entry point — FastAPI app exposing page inspection over HTTP.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncGenerator
from typing import Any

import dotenv
import fastapi
import pydantic
import uvicorn
from fastapi.middleware import cors

from pageprobe import pipeline, settings as settings_mod
from pageprobe.models import config
from pageprobe.utils import errors, logger

dotenv.load_dotenv()

log = logger.create_logger("Server")

SETTINGS = settings_mod.ScanSettings()


@contextlib.asynccontextmanager
async def lifespan(_app: fastapi.FastAPI) -> AsyncGenerator[None]:
    """Log server start on startup."""
    logger.set_enabled(SETTINGS.log)
    log.section("pageprobe server started")
    log.info("Browser", {"headless": SETTINGS.headless, "channel": SETTINGS.browser_channel or "chromium"})
    yield


app = fastapi.FastAPI(title="pageprobe", lifespan=lifespan)

app.add_middleware(
    cors.CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def parse_collect_param(collect: str) -> dict[str, object]:
    """Turn ``"scripts,scriptCoverage,bodyResponse=\\.json$"`` into collection options.

    Bare names enable a flag; ``bodyResponse=<regex>`` entries add a
    response-body URL pattern.
    """
    options: dict[str, object] = {}
    patterns: list[str] = []
    for item in (part.strip() for part in collect.split(",")):
        if not item:
            continue
        name, sep, value = item.partition("=")
        if name == "bodyResponse" and sep:
            patterns.append(value)
        else:
            options[name] = True
    if patterns:
        options["bodyResponse"] = patterns
    return options


@app.get("/api/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}


@app.get("/api/inspect")
async def inspect_endpoint(
    url: str = fastapi.Query(..., description="The URL to inspect"),
    collect: str = fastapi.Query("", description="Comma-separated collection options"),
    log_enabled: bool = fastapi.Query(False, alias="log", description="Enable scan logging"),
) -> dict[str, Any]:
    """Inspect *url* and return the telemetry report."""
    options = {"log": log_enabled or SETTINGS.log, "collect": parse_collect_param(collect)}
    try:
        config.build_context(options)
    except pydantic.ValidationError as exc:
        raise fastapi.HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False)) from exc

    log.info("Incoming inspection request", {"url": url, "collect": collect})
    try:
        return await pipeline.inspect_url(url, options, SETTINGS)
    except errors.ScanError as exc:
        log.error("Inspection failed", {"url": url, "error": errors.get_error_message(exc)})
        raise fastapi.HTTPException(status_code=502, detail=errors.get_error_message(exc)) from exc


def run() -> None:
    """Run the server with uvicorn."""
    uvicorn.run(app, host=SETTINGS.host, port=SETTINGS.port)


if __name__ == "__main__":
    run()
