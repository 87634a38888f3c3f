"""
Visualization utilities for recorded tracking runs.

This module loads the CSV files written by DataCollector and plots the
field path (desired vs measured), the tracking errors and commanded chassis
speeds over time, and the per-module wheel speeds.
"""

from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure

from .data_collector import WHEEL_LABELS
from .plot_styles import (
    MONUMENTAL_BLUE,
    MONUMENTAL_CMAP,
    MONUMENTAL_CREAM,
    MONUMENTAL_DARK_BLUE,
    MONUMENTAL_ORANGE,
    MONUMENTAL_TAUPE,
    MONUMENTAL_YELLOW_ORANGE,
    OFFSET_COLORS,
    add_branded_legend,
    load_csv_to_dict,
    load_event_rows,
    save_figure,
    style_axis,
)


def _relative_time(data: Dict[str, np.ndarray]) -> np.ndarray:
    t = data["timestamp"]
    if len(t) == 0:
        return t
    return t - t[0]


def plot_field_path(
    tracking: Dict[str, np.ndarray],
    events: Optional[List[Dict[str, str]]] = None,
    title: str = "Field Path",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot the desired trajectory and the measured path in the field frame.

    Measured points are coloured by time. Replan events are marked at the
    measured pose where they happened, coloured by the new goal offset.

    Args:
        tracking: Data loaded from tracking_data.csv.
        events: Rows loaded from events.csv (optional).
        title: Plot title.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    fig, ax = plt.subplots(figsize=(10, 8), facecolor=MONUMENTAL_DARK_BLUE)
    t = _relative_time(tracking)

    ax.plot(
        tracking["x_des"],
        tracking["y_des"],
        "--",
        color=MONUMENTAL_YELLOW_ORANGE,
        linewidth=2.0,
        label="Desired",
        zorder=2,
    )
    ax.plot(
        tracking["x_meas"],
        tracking["y_meas"],
        "-",
        color=MONUMENTAL_ORANGE,
        linewidth=1.5,
        alpha=0.6,
        label="Measured",
        zorder=1,
    )

    if len(t) > 0:
        scatter = ax.scatter(
            tracking["x_meas"],
            tracking["y_meas"],
            c=t,
            cmap=MONUMENTAL_CMAP,
            s=12,
            alpha=0.8,
            zorder=3,
        )
        plt.colorbar(scatter, ax=ax, label="Time (s)")
        ax.plot(
            tracking["x_meas"][0],
            tracking["y_meas"][0],
            "o",
            color=MONUMENTAL_BLUE,
            markersize=8,
            markeredgecolor="black",
            label="Start",
            zorder=5,
        )

    if events:
        timestamps = tracking["timestamp"]
        for row in events:
            if row["event"] != "replan" or len(timestamps) == 0:
                continue
            idx = int(np.searchsorted(timestamps, float(row["timestamp"])))
            idx = min(idx, len(timestamps) - 1)
            ax.plot(
                tracking["x_meas"][idx],
                tracking["y_meas"][idx],
                "D",
                color=OFFSET_COLORS.get(row["offset"], MONUMENTAL_TAUPE),
                markersize=8,
                markeredgecolor="black",
                label=f"Replan → {row['offset']}",
                zorder=6,
            )

    style_axis(ax, title=title, xlabel="X Position (m)", ylabel="Y Position (m)", dark_mode=True)
    ax.set_aspect("equal", adjustable="datalim")
    add_branded_legend(ax, facecolor=MONUMENTAL_DARK_BLUE, labelcolor=MONUMENTAL_CREAM)
    fig.tight_layout()

    if save_path:
        save_figure(fig, save_path)

    return fig


def plot_tracking_errors(
    tracking: Dict[str, np.ndarray],
    title: str = "Tracking",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot position/heading errors and commanded chassis speeds over time.

    Args:
        tracking: Data loaded from tracking_data.csv.
        title: Plot title prefix.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    fig, (ax1, ax2, ax3) = plt.subplots(3, 1, figsize=(12, 10), sharex=True)
    t = _relative_time(tracking)

    ax1.plot(t, tracking["error_x"], label="x error", color=MONUMENTAL_ORANGE)
    ax1.plot(t, tracking["error_y"], label="y error", color=MONUMENTAL_BLUE)
    style_axis(ax1, title=f"{title} - Position Error", ylabel="Error (m)")
    add_branded_legend(ax1)

    ax2.plot(t, np.degrees(tracking["error_heading"]), label="heading error", color=MONUMENTAL_ORANGE)
    ax2.plot(
        t,
        np.degrees(tracking["gyro_correction"]),
        label="gyro correction",
        color=MONUMENTAL_TAUPE,
        alpha=0.7,
    )
    style_axis(ax2, title=f"{title} - Heading", ylabel="Angle (deg)")
    add_branded_legend(ax2)

    ax3.plot(t, tracking["vx_cmd"], label="vx", color=MONUMENTAL_ORANGE)
    ax3.plot(t, tracking["vy_cmd"], label="vy", color=MONUMENTAL_BLUE)
    ax3.plot(t, tracking["omega_cmd"], label="ω", color=MONUMENTAL_YELLOW_ORANGE)
    ax3.plot(t, tracking["v_des"], "--", label="v desired", color=MONUMENTAL_TAUPE)
    style_axis(ax3, title=f"{title} - Commanded Speeds", xlabel="Time (s)", ylabel="m/s, rad/s")
    add_branded_legend(ax3)

    fig.tight_layout()

    if save_path:
        save_figure(fig, save_path)

    return fig


def plot_wheel_speeds(
    wheels: Dict[str, np.ndarray],
    title: str = "Wheel Speeds",
    save_path: Optional[Path] = None,
) -> Figure:
    """Plot per-module drive speeds over time.

    Args:
        wheels: Data loaded from wheel_states.csv.
        title: Plot title.
        save_path: Optional path to save the figure.

    Returns:
        Matplotlib figure object.
    """
    fig, ax = plt.subplots(figsize=(12, 5))
    t = _relative_time(wheels)
    colors = (MONUMENTAL_ORANGE, MONUMENTAL_BLUE, MONUMENTAL_YELLOW_ORANGE, MONUMENTAL_TAUPE)

    for label, color in zip(WHEEL_LABELS, colors):
        column = f"{label}_speed"
        if column in wheels:
            ax.plot(t, wheels[column], label=label.upper(), color=color)

    style_axis(ax, title=title, xlabel="Time (s)", ylabel="Speed (m/s)")
    add_branded_legend(ax)
    fig.tight_layout()

    if save_path:
        save_figure(fig, save_path)

    return fig


def plot_run_summary(run_dir: Path, save_plots: bool = False, show_plots: bool = True) -> List[Path]:
    """Generate summary plots for a complete run.

    Args:
        run_dir: Directory containing tracking_data.csv, wheel_states.csv
            and (optionally) events.csv.
        save_plots: If True, save plots to run directory.
        show_plots: If True, display plots interactively.

    Returns:
        Paths of the saved figures (empty unless save_plots).

    Raises:
        FileNotFoundError: If required CSV files are not found.
    """
    tracking = load_csv_to_dict(run_dir / "tracking_data.csv")
    wheels = load_csv_to_dict(run_dir / "wheel_states.csv")

    events_path = run_dir / "events.csv"
    events = load_event_rows(events_path) if events_path.exists() else []

    run_name = run_dir.name
    targets = {
        "path": run_dir / "field_path.png",
        "errors": run_dir / "tracking_errors.png",
        "wheels": run_dir / "wheel_speeds.png",
    }

    figures = [
        plot_field_path(
            tracking, events, title=f"{run_name} - Field Path",
            save_path=targets["path"] if save_plots else None,
        ),
        plot_tracking_errors(
            tracking, title=run_name,
            save_path=targets["errors"] if save_plots else None,
        ),
        plot_wheel_speeds(
            wheels, title=f"{run_name} - Wheel Speeds",
            save_path=targets["wheels"] if save_plots else None,
        ),
    ]

    if show_plots:
        plt.show()
    else:
        for fig in figures:
            plt.close(fig)

    return list(targets.values()) if save_plots else []
