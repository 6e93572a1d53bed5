"""pageprobe — collect execution telemetry from a live browser page.

Typical use with an existing Playwright page::

    session = await pageprobe.get_session(page, {"collect": {"scripts": True}})
    await page.goto(url)
    report = await session.get_data()
    await session.stop()
"""

from pageprobe.browser.scanner import (
    InspectedPage as InspectedPage,
    Scanner as Scanner,
    get_session as get_session,
)
from pageprobe.models.config import (
    CollectionConfig as CollectionConfig,
    ScanContext as ScanContext,
    ScanRules as ScanRules,
    build_context as build_context,
)
from pageprobe.pipeline import inspect_url as inspect_url

__version__ = "0.1.0"
