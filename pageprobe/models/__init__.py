# Models package — re-export the public models.
# Prefer importing from the specific submodule (e.g. pageprobe.models.config).

from pageprobe.models.config import (
    CollectionConfig as CollectionConfig,
    ScanContext as ScanContext,
    ScanRules as ScanRules,
    build_context as build_context,
)
from pageprobe.models.telemetry import (
    FunctionCoverage as FunctionCoverage,
    Report as Report,
    StyleCoverage as StyleCoverage,
)
