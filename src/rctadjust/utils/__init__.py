"""Utility functions."""

from .formatting import (
    compute_z_and_pvalue,
    format_coefficient_table,
    format_full_summary,
    format_pvalue,
    format_short_repr,
    format_summary_header,
)

__all__ = [
    "compute_z_and_pvalue",
    "format_pvalue",
    "format_summary_header",
    "format_coefficient_table",
    "format_short_repr",
    "format_full_summary",
]
