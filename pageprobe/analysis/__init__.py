"""Post-processing of collected telemetry into report sections."""
