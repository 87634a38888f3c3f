#!/usr/bin/env python3
"""
Plot recorded tracking runs from the command line.

A run directory is anything under the results directory named ``run_*`` that
holds a tracking_data.csv. With no --run the newest one is plotted.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .config import RESULTS_DIR, TERM_BLUE, TERM_ORANGE, TERM_RESET
from .visualization import plot_run_summary


def find_runs(results_dir: Path) -> List[Path]:
    """Recorded runs under ``results_dir``, oldest first.

    Raises:
        FileNotFoundError: If ``results_dir`` does not exist.
    """
    if not results_dir.is_dir():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")
    return sorted(
        d for d in results_dir.glob("run_*") if (d / "tracking_data.csv").is_file()
    )


def resolve_run(results_dir: Path, name: Optional[str] = None) -> Path:
    """The run called ``name``, or the newest run when no name is given."""
    runs = find_runs(results_dir)
    if name is not None:
        for run_dir in runs:
            if run_dir.name == name:
                return run_dir
        raise FileNotFoundError(f"No recorded run named {name} in {results_dir}")
    if not runs:
        raise FileNotFoundError(f"No recorded runs in {results_dir}")
    return runs[-1]


def read_summary(run_dir: Path) -> Dict[str, float]:
    """Parse summary.txt into floats. Empty if the run never wrote one."""
    summary_path = run_dir / "summary.txt"
    if not summary_path.exists():
        return {}
    summary = {}
    for line in summary_path.read_text().splitlines():
        key, sep, value = line.partition("=")
        if sep:
            summary[key.strip()] = float(value)
    return summary


def describe_run(run_dir: Path) -> str:
    summary = read_summary(run_dir)
    if not summary:
        return f"{run_dir.name}  (no summary)"
    if summary.get("failed"):
        return f"{run_dir.name}  {TERM_ORANGE}failed{TERM_RESET}"
    return (
        f"{run_dir.name}  residual {summary['residual']:.3f} m "
        f"at ({summary['final_x']:.2f}, {summary['final_y']:.2f})"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Plot the field path, tracking errors and wheel speeds of a recorded run",
    )
    parser.add_argument("--run", default=None, help="Run directory name (default: newest run)")
    parser.add_argument(
        "--results-dir",
        default=RESULTS_DIR,
        help=f"Directory holding run_* directories (default: {RESULTS_DIR})",
    )
    parser.add_argument("--save", action="store_true", help="Write PNGs into the run directory")
    parser.add_argument("--no-show", action="store_true", help="Do not open plot windows")
    parser.add_argument("--list", action="store_true", help="List recorded runs with their residuals and exit")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the plotting script."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    args = build_parser().parse_args(argv)
    results_dir = Path(args.results_dir)

    try:
        if args.list:
            for run_dir in find_runs(results_dir):
                logging.info(describe_run(run_dir))
            return
        run_dir = resolve_run(results_dir, args.run)
        logging.info(f"{TERM_BLUE}Plotting {describe_run(run_dir)}{TERM_RESET}")
        saved = plot_run_summary(run_dir=run_dir, save_plots=args.save, show_plots=not args.no_show)
    except FileNotFoundError as e:
        logging.error(f"Error: {e}")
        sys.exit(1)

    if saved:
        logging.info(f"{TERM_BLUE}✓ Saved {len(saved)} plots to {run_dir}/{TERM_RESET}")


if __name__ == "__main__":
    main()
