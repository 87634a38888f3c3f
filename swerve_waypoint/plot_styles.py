"""Shared plotting utilities and styles for tracking run visualizations.

This module provides:
- Color scheme and colormap (Monumental branding)
- CSV loading for numeric run data and for event logs
- Common axis, legend and figure helpers

All visualization modules import from this module to keep plots consistent.
"""

import csv
from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.colors import LinearSegmentedColormap

from .config import (
    MONUMENTAL_BLUE,
    MONUMENTAL_CREAM,
    MONUMENTAL_DARK_BLUE,
    MONUMENTAL_ORANGE,
    MONUMENTAL_TAUPE,
    MONUMENTAL_YELLOW_ORANGE,
)

__all__ = [
    "MONUMENTAL_ORANGE",
    "MONUMENTAL_BLUE",
    "MONUMENTAL_CREAM",
    "MONUMENTAL_TAUPE",
    "MONUMENTAL_YELLOW_ORANGE",
    "MONUMENTAL_DARK_BLUE",
    "MONUMENTAL_CMAP",
    "OFFSET_COLORS",
    "load_csv_to_dict",
    "load_event_rows",
    "style_axis",
    "add_branded_legend",
    "save_figure",
]

MONUMENTAL_CMAP = LinearSegmentedColormap.from_list(
    "monumental", [MONUMENTAL_ORANGE, MONUMENTAL_BLUE]
)
"""Monumental brand colormap transitioning from orange to blue."""

OFFSET_COLORS = {
    "left": MONUMENTAL_ORANGE,
    "center": MONUMENTAL_TAUPE,
    "right": MONUMENTAL_BLUE,
}
"""Marker colour per goal offset name."""


# ============================================================================
# CSV Data Loading
# ============================================================================


def load_csv_to_dict(csv_path: Path) -> Dict[str, np.ndarray]:
    """Load a CSV file into a dictionary of numpy arrays.

    Numeric values become floats, anything else (state and offset names)
    becomes NaN. Use load_event_rows for text columns.

    Args:
        csv_path: Path to CSV file.

    Returns:
        Dictionary mapping column names to numpy arrays.

    Raises:
        FileNotFoundError: If the CSV file does not exist.

    Example:
        >>> data = load_csv_to_dict(Path("tracking_data.csv"))
        >>> data["x_meas"].shape
        (300,)
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    data: Dict[str, List[float]] = {}
    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        for name in reader.fieldnames or []:
            data[name] = []
        for row in reader:
            for key, value in row.items():
                try:
                    data[key].append(float(value))
                except (ValueError, TypeError):
                    data[key].append(np.nan)

    return {key: np.array(values) for key, values in data.items()}


def load_event_rows(csv_path: Path) -> List[Dict[str, str]]:
    """Load an events CSV as a list of row dictionaries (all strings).

    Raises:
        FileNotFoundError: If the CSV file does not exist.
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    with open(csv_path, newline="") as f:
        return list(csv.DictReader(f))


# ============================================================================
# Plot Styling Functions
# ============================================================================


def style_axis(
    ax: Axes,
    title: str = "",
    xlabel: str = "",
    ylabel: str = "",
    grid: bool = True,
    dark_mode: bool = False,
) -> None:
    """Apply consistent styling to a matplotlib axis.

    Args:
        ax: Matplotlib axis to style.
        title: Plot title (optional).
        xlabel: X-axis label (optional).
        ylabel: Y-axis label (optional).
        grid: Whether to show grid lines (default: True).
        dark_mode: Whether to use dark mode styling (default: False).
    """
    text_kwargs = {"color": MONUMENTAL_CREAM} if dark_mode else {}

    if title:
        ax.set_title(title, fontweight="bold", **text_kwargs)
    if xlabel:
        ax.set_xlabel(xlabel, **text_kwargs)
    if ylabel:
        ax.set_ylabel(ylabel, **text_kwargs)

    if grid:
        ax.grid(True, alpha=0.3, linestyle="--", linewidth=0.5)

    if dark_mode:
        ax.set_facecolor(MONUMENTAL_DARK_BLUE)
        ax.tick_params(colors=MONUMENTAL_CREAM)
        for spine in ax.spines.values():
            spine.set_edgecolor(MONUMENTAL_TAUPE)


def add_branded_legend(ax: Axes, loc: str = "best", **kwargs) -> None:
    """Add a legend with Monumental brand styling.

    Args:
        ax: Matplotlib axis to add legend to.
        loc: Legend location (default: "best").
        **kwargs: Additional keyword arguments passed to ax.legend().
    """
    legend_kwargs = {
        "loc": loc,
        "framealpha": 0.9,
        "edgecolor": MONUMENTAL_TAUPE,
    }
    legend_kwargs.update(kwargs)
    ax.legend(**legend_kwargs)


def save_figure(fig: plt.Figure, filepath: Path, dpi: int = 150) -> None:
    """Save a figure with tight bounding box and report where it went."""
    fig.savefig(filepath, dpi=dpi, bbox_inches="tight")
    print(f"Saved figure to {filepath}")
