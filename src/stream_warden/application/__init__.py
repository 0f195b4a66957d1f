"""Application layer: monitoring services."""
