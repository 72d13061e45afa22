"""Signal, geometry, unit and formatting helpers."""
