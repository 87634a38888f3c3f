import csv
from pathlib import Path

import pytest

from swerve_waypoint.data_collector import DataCollector
from swerve_waypoint.geometry import GoalOffset, Pose2D


def read_rows(path: Path):
    with open(path, newline="") as f:
        return list(csv.DictReader(f))


def test_run_dir_defaults_to_timestamped_results_dir(tmp_path, clean_run_dir_env):
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir.parent == tmp_path / "results"
    assert collector.run_dir.name.startswith("run_")
    assert collector.run_dir.is_dir()


def test_run_dir_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("RUN_DIR", str(tmp_path / "from_env"))
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir == tmp_path / "from_env"


def test_rejects_file_as_output_dir(tmp_path):
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    with pytest.raises(ValueError, match="not a directory"):
        DataCollector(output_dir=str(not_a_dir))


def test_writes_headers_on_setup(tmp_path):
    with DataCollector(run_dir=str(tmp_path / "run")) as collector:
        pass
    with open(collector.tracking_output_path) as f:
        header = f.readline().strip().split(",")
    assert header[:4] == ["timestamp", "elapsed", "state", "offset"]
    with open(collector.wheel_output_path) as f:
        assert f.readline().strip() == (
            "timestamp,fl_speed,fl_angle,fr_speed,fr_angle,rl_speed,rl_angle,rr_speed,rr_angle"
        )
    assert read_rows(collector.events_output_path) == []


def test_logs_snapshots_from_tracker(tmp_path, rig, clock):
    with DataCollector(run_dir=str(tmp_path / "run"), time_source=clock) as collector:
        tracker = rig.make_tracker(observer=collector.log_snapshot)
        tracker.start()
        for _ in range(5):
            tracker.update()
            clock.advance(0.02)
        rig.offset = GoalOffset.LEFT
        tracker.update()

    rows = read_rows(collector.tracking_output_path)
    assert len(rows) == 6
    assert collector.rows_written == 6
    assert rows[0]["state"] == "tracking"
    assert rows[0]["offset"] == "center"
    assert rows[-1]["offset"] == "left"
    assert rows[-1]["replanned"] == "1"
    assert float(rows[-1]["timestamp"]) == pytest.approx(0.1)

    wheels = read_rows(collector.wheel_output_path)
    assert len(wheels) == 6

    events = read_rows(collector.events_output_path)
    assert [e["event"] for e in events] == ["replan"]
    assert events[0]["offset"] == "left"


def test_summary(tmp_path):
    collector = DataCollector(run_dir=str(tmp_path / "run"))
    collector.log_summary(Pose2D(2.9, 0.0, 0.0), Pose2D(3.0, 0.0, 0.0), failed=False)
    lines = collector.summary_output_path.read_text().splitlines()
    assert "residual=0.100000" in lines
    assert "failed=0" in lines
