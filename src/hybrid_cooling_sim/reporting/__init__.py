"""Reporting helpers for simulated cooling plant series."""

from .series import (
    samples_to_frame,
    sanitize_series,
    build_summary,
    heat_flow_frame,
    energy_totals,
)

__all__ = [
    "samples_to_frame",
    "sanitize_series",
    "build_summary",
    "heat_flow_frame",
    "energy_totals",
]
