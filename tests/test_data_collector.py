"""Tests for CSV recording of control cycles."""

import csv

import numpy as np
import pytest

from mpc_control.data_collector import CYCLE_COLUMNS, DataCollector
from mpc_control.errors import NoFeasiblePlan
from mpc_control.state import ControlOutput, Telemetry, VehiclePose


def read_rows(collector: DataCollector) -> list:
    with open(collector.cycles_output_path, newline="") as f:
        return list(csv.DictReader(f))


class TestDataCollector:
    """Tests for DataCollector class."""

    def test_header_written(self, tmp_path) -> None:
        """Test setup writes the CSV header."""
        with DataCollector(run_dir=str(tmp_path)) as collector:
            pass

        with open(collector.cycles_output_path, newline="") as f:
            header = next(csv.reader(f))
        assert header == CYCLE_COLUMNS

    def test_successful_cycle(self, tmp_path, example_telemetry: Telemetry) -> None:
        """Test a successful cycle row."""
        output = ControlOutput(
            steering_angle=-0.25,
            throttle=0.5,
            trajectory=[],
            reference=[],
            coeffs=np.array([1.0, 0.0]),
            predicted_pose=VehiclePose(1.0, 0.0, 0.0, 10.0),
            cte=1.0,
            epsi=0.0,
        )
        with DataCollector(run_dir=str(tmp_path)) as collector:
            collector.log_cycle(123.0, example_telemetry, output, cycle_time=0.02)

        row = read_rows(collector)[0]
        assert float(row["cte"]) == 1.0
        assert float(row["steering_cmd"]) == -0.25
        assert float(row["cycle_time_ms"]) == pytest.approx(20.0)
        assert row["status"] == "ok"
        assert collector.cycle_count == 1
        assert collector.failure_count == 0

    def test_failed_cycle(self, tmp_path, example_telemetry: Telemetry) -> None:
        """Test a failed cycle leaves outputs empty and records the error."""
        with DataCollector(run_dir=str(tmp_path)) as collector:
            collector.log_cycle(1.0, example_telemetry, error=NoFeasiblePlan("Infeasible"))

        row = read_rows(collector)[0]
        assert row["cte"] == ""
        assert row["status"] == "NoFeasiblePlan"
        assert collector.failure_count == 1

    def test_log_before_setup(self, tmp_path, example_telemetry: Telemetry) -> None:
        """Test logging without setup is an error."""
        collector = DataCollector(run_dir=str(tmp_path))

        with pytest.raises(RuntimeError):
            collector.log_cycle(0.0, example_telemetry)

    def test_run_dir_from_environment(self, tmp_path, monkeypatch) -> None:
        """Test RUN_DIR overrides the timestamped directory."""
        monkeypatch.setenv("RUN_DIR", str(tmp_path / "env_run"))

        collector = DataCollector(output_dir=str(tmp_path))

        assert collector.run_dir == tmp_path / "env_run"
        assert collector.run_dir.is_dir()

    def test_timestamped_run_dir(self, tmp_path, monkeypatch) -> None:
        """Test the default layout results/run_YYYYMMDD_HHMMSS."""
        monkeypatch.delenv("RUN_DIR", raising=False)

        collector = DataCollector(output_dir=str(tmp_path))

        assert collector.run_dir.parent == tmp_path / "results"
        assert collector.run_dir.name.startswith("run_")

    def test_output_dir_must_be_directory(self, tmp_path) -> None:
        """Test a file path is rejected as output directory."""
        path = tmp_path / "file.txt"
        path.write_text("x")

        with pytest.raises(ValueError):
            DataCollector(output_dir=str(path))
