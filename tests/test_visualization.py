import logging

import matplotlib.pyplot as plt
import pytest

from swerve_waypoint.data_collector import DataCollector
from swerve_waypoint.geometry import GoalOffset, Pose2D
from swerve_waypoint.plot_results import find_runs, main, read_summary, resolve_run
from swerve_waypoint.plot_styles import load_csv_to_dict, load_event_rows
from swerve_waypoint.simulation import run_simulation
from swerve_waypoint.visualization import plot_run_summary


@pytest.fixture
def recorded_run(tmp_path):
    run_dir = tmp_path / "results" / "run_20250101_000000"
    with DataCollector(run_dir=str(run_dir)) as collector:
        run_simulation(
            Pose2D(3.0, 0.0, 0.0),
            duration=2.0,
            offset_changes=[(0.5, GoalOffset.RIGHT)],
            data_collector=collector,
        )
    return run_dir


def test_loads_numeric_and_event_data(recorded_run):
    tracking = load_csv_to_dict(recorded_run / "tracking_data.csv")
    assert len(tracking["x_meas"]) == 100
    # Text columns load as NaN in the numeric view
    assert all(v != v for v in tracking["state"])

    events = load_event_rows(recorded_run / "events.csv")
    assert [e["event"] for e in events] == ["start", "replan"]


def test_missing_csv_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_csv_to_dict(tmp_path / "missing.csv")


def test_plot_run_summary_saves_figures(recorded_run):
    saved = plot_run_summary(recorded_run, save_plots=True, show_plots=False)
    assert [p.name for p in saved] == ["field_path.png", "tracking_errors.png", "wheel_speeds.png"]
    assert all(p.exists() and p.stat().st_size > 0 for p in saved)
    assert plt.get_fignums() == []


def test_only_recorded_runs_are_found(tmp_path):
    results = tmp_path / "results"
    for name in ("run_20250101_000000", "run_20250102_000000", "notes"):
        (results / name).mkdir(parents=True)
        (results / name / "tracking_data.csv").write_text("timestamp\n")
    (results / "run_20250103_000000").mkdir()

    assert [d.name for d in find_runs(results)] == ["run_20250101_000000", "run_20250102_000000"]
    assert resolve_run(results).name == "run_20250102_000000"
    assert resolve_run(results, "run_20250101_000000").name == "run_20250101_000000"
    with pytest.raises(FileNotFoundError):
        resolve_run(results, "run_20250103_000000")


def test_read_summary(recorded_run, tmp_path):
    summary = read_summary(recorded_run)
    assert summary["failed"] == 0.0
    assert summary["goal_y"] == pytest.approx(0.5)
    assert summary["residual"] >= 0.0
    assert read_summary(tmp_path) == {}


def test_plot_cli_lists_runs_with_residuals(recorded_run, caplog):
    caplog.set_level(logging.INFO)
    main(["--results-dir", str(recorded_run.parent), "--list"])
    assert "run_20250101_000000  residual" in caplog.text


def test_plot_cli_saves_latest_run(recorded_run):
    main(["--results-dir", str(recorded_run.parent), "--save", "--no-show"])
    assert (recorded_run / "field_path.png").exists()


def test_plot_cli_exits_on_missing_run(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["--results-dir", str(tmp_path), "--run", "run_missing", "--no-show"])
    assert excinfo.value.code == 1


def test_plot_cli_exits_when_no_runs(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["--results-dir", str(tmp_path / "nothing"), "--no-show"])
    assert excinfo.value.code == 1
