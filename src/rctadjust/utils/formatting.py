"""Summary formatting utilities for statsmodels-style output."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from scipy import stats


def compute_z_and_pvalue(estimate: float, se: float) -> Tuple[float, float]:
    """
    Compute z-statistic and two-sided p-value.

    Args:
        estimate: Point estimate
        se: Standard error

    Returns:
        (z_stat, p_value) tuple
    """
    if np.isnan(se) or se <= 0:
        return np.nan, np.nan

    z_stat = estimate / se
    p_value = 2 * stats.norm.sf(abs(z_stat))

    return z_stat, p_value


def format_pvalue(p: float) -> str:
    """Format p-value for display, e.g. "  0.042"."""
    if np.isnan(p):
        return "    nan"
    if p < 0.001:
        return "  0.000"
    return f"  {p:.3f}"


def format_summary_header(
    title: str,
    estimator: Optional[str] = None,
    target: Optional[str] = None,
    n_obs: Optional[int] = None,
    n_folds: Optional[int] = None,
    width: int = 78,
) -> str:
    """
    Format statsmodels-style header block.

    Args:
        title: Main title
        estimator: Targeting strategy ("tmle" or "onestep")
        target: Estimand name
        n_obs: Number of observations
        n_folds: Number of cross-fitting folds
        width: Total width of output

    Returns:
        Formatted header string
    """
    lines = []
    sep = "=" * width

    lines.append(sep)
    lines.append(f"{title:^{width}}")
    lines.append(sep)

    now = datetime.now()

    left_col = []
    right_col = []
    if estimator is not None:
        left_col.append(("Estimator:", estimator.upper()))
    if target is not None:
        right_col.append(("Estimand:", target))
    if n_obs is not None:
        left_col.append(("No. Observations:", str(n_obs)))
    if n_folds is not None:
        right_col.append(("No. Folds:", str(n_folds)))
    left_col.append(("Date:", now.strftime("%a, %d %b %Y")))
    right_col.append(("Time:", now.strftime("%H:%M:%S")))

    half_width = width // 2
    for left, right in zip(left_col, right_col):
        left_str = f"{left[0]:<18}{left[1]:<{half_width - 18}}"
        right_str = f"{right[0]:<18}{right[1]}"
        lines.append(f"{left_str}{right_str}")

    lines.append(sep)

    return "\n".join(lines)


def format_coefficient_table(
    rows: List[Tuple[str, float, float, float, float]],
    alpha: float = 0.05,
    width: int = 78,
) -> str:
    """
    Format the coefficient table.

    Args:
        rows: (name, estimate, se, ci_lower, ci_upper) per line
        alpha: Significance level of the intervals
        width: Total width of output

    Returns:
        Formatted table string
    """
    lo = f"[{alpha / 2:.3f}"
    hi = f"{1 - alpha / 2:.3f}]"
    lines = [
        f"{'':>16}{'coef':>10}{'std err':>10}{'z':>9}{'P>|z|':>9}{lo:>12}{hi:>10}",
        "-" * width,
    ]
    for name, estimate, se, ci_lower, ci_upper in rows:
        z_stat, p_value = compute_z_and_pvalue(estimate, se)
        lines.append(
            f"{name:>16}{estimate:>10.4f}{se:>10.4f}{z_stat:>9.3f}"
            f"{format_pvalue(p_value):>9}{ci_lower:>12.4f}{ci_upper:>10.4f}"
        )
    lines.append("=" * width)
    return "\n".join(lines)


def format_diagnostics_footer(diagnostics: Dict[str, Any], width: int = 78) -> str:
    """Format the diagnostics section."""
    lines = ["Diagnostics:"]
    for key, value in diagnostics.items():
        label = key.replace("_", " ").capitalize() + ":"
        lines.append(f"  {label:<25} {value}")
    lines.append("-" * width)
    return "\n".join(lines)


def format_short_repr(
    class_name: str,
    estimand: str,
    first_index: Any,
    estimate: float,
    se: float,
    ci_lower: float,
    ci_upper: float,
    n_more: int = 0,
) -> str:
    """
    Format short __repr__ string.

    Shows the first index entry; ``n_more`` counts the remaining ones.
    """
    more = f" (+{n_more} more)" if n_more > 0 else ""
    return (
        f"<{class_name}: {estimand}[{first_index}] effect={estimate:.4f}, se={se:.4f}, "
        f"CI=[{ci_lower:.4f}, {ci_upper:.4f}]{more}>"
    )


def format_full_summary(
    title: str,
    rows: List[Tuple[str, float, float, float, float]],
    diagnostics: Optional[Dict[str, Any]] = None,
    estimator: Optional[str] = None,
    target: Optional[str] = None,
    n_obs: Optional[int] = None,
    n_folds: Optional[int] = None,
    alpha: float = 0.05,
    width: int = 78,
) -> str:
    """
    Format complete summary output.

    Args:
        title: Main title
        rows: Coefficient rows, see ``format_coefficient_table``
        diagnostics: Optional diagnostics dict
        estimator: Targeting strategy
        target: Estimand name
        n_obs: Number of observations
        n_folds: Number of folds
        alpha: Significance level
        width: Output width

    Returns:
        Complete formatted summary string
    """
    parts = [
        format_summary_header(
            title=title,
            estimator=estimator,
            target=target,
            n_obs=n_obs,
            n_folds=n_folds,
            width=width,
        ),
        format_coefficient_table(rows, alpha=alpha, width=width),
    ]
    if diagnostics:
        parts.append(format_diagnostics_footer(diagnostics, width=width))
    return "\n".join(parts)
