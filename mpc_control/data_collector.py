"""CSV logging of control cycles.

Each telemetry sample handled by the server becomes one row with:
- Vehicle pose and actuator readback
- Latency-compensated speed
- Cross-track and heading errors
- Commands sent and cycle time
- Cycle status (ok, or the error that stopped the cycle)
"""

import csv
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, TextIO

from .config import TERM_BLUE, TERM_RESET
from .state import ControlOutput, Telemetry

CYCLE_COLUMNS = [
    "timestamp",
    "x",
    "y",
    "psi",
    "speed",
    "steering_in",
    "throttle_in",
    "speed_pred",
    "cte",
    "epsi",
    "steering_cmd",
    "throttle_cmd",
    "cycle_time_ms",
    "status",
]


class DataCollector:
    """Manages the cycle CSV file for one server run.

    Attributes:
        run_dir: Directory path for this run's output files.
        cycles_output_path: Path of the cycle CSV.
        cycle_count: Number of cycles logged.
        failure_count: Number of cycles that ended in an error.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self.cycles_csv_file: Optional[TextIO] = None
        self.cycles_csv_writer: Any = None
        self.cycle_count: int = 0
        self.failure_count: int = 0

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.cycles_output_path: Path = self.run_dir / "cycles.csv"

    def setup(self) -> None:
        """Open the cycle CSV and write its header."""
        self.cycles_csv_file = open(self.cycles_output_path, "w", newline="")
        self.cycles_csv_writer = csv.writer(self.cycles_csv_file)
        self.cycles_csv_writer.writerow(CYCLE_COLUMNS)
        self.cycles_csv_file.flush()

        print(f"{TERM_BLUE}✓ Recording control cycles to {self.run_dir}/{TERM_RESET}")

    def log_cycle(
        self,
        timestamp: float,
        telemetry: Telemetry,
        output: Optional[ControlOutput] = None,
        cycle_time: float = 0.0,
        error: Optional[BaseException] = None,
    ) -> None:
        """Log one control cycle to CSV.

        Args:
            timestamp: Time the telemetry was received (seconds).
            telemetry: Telemetry the cycle ran on.
            output: Cycle output, or None if the cycle failed.
            cycle_time: Wall time spent in the control cycle (seconds).
            error: Exception that ended the cycle, if any.
        """
        if self.cycles_csv_writer is None:
            raise RuntimeError("DataCollector.setup() must be called before logging")

        pose = telemetry.pose
        row = [
            timestamp,
            pose.x,
            pose.y,
            pose.heading,
            pose.speed,
            telemetry.actuators.steering,
            telemetry.actuators.throttle,
        ]
        if output is not None:
            row += [
                output.predicted_pose.speed,
                output.cte,
                output.epsi,
                output.steering_angle,
                output.throttle,
            ]
        else:
            row += ["", "", "", "", ""]
        row += [cycle_time * 1000.0, "ok" if error is None else type(error).__name__]

        self.cycles_csv_writer.writerow(row)
        if self.cycles_csv_file:
            self.cycles_csv_file.flush()

        self.cycle_count += 1
        if error is not None:
            self.failure_count += 1

    def cleanup(self) -> None:
        """Close the CSV file and report the output location."""
        if self.cycles_csv_file:
            self.cycles_csv_file.close()
            self.cycles_csv_file = None
            self.cycles_csv_writer = None

        print(
            f"{TERM_BLUE}✓ Saved {self.cycle_count} cycles "
            f"({self.failure_count} failed) to {self.run_dir}/{TERM_RESET}"
        )

    def __enter__(self) -> "DataCollector":
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.cleanup()
