"""Shared fixtures for the mpc_control tests."""

from typing import List, Optional, Sequence

import numpy as np
import pytest

from mpc_control.config import ControlConstants
from mpc_control.errors import NoFeasiblePlan
from mpc_control.state import ActuatorState, Telemetry, VehiclePose


class RecordingSolver:
    """Solver stub that records its inputs and returns a fixed solution."""

    def __init__(self, solution: Optional[Sequence[float]] = None, fail: bool = False) -> None:
        self.solution = list(solution) if solution is not None else [0.0, 0.0]
        self.fail = fail
        self.calls: List[tuple] = []

    def solve(self, state: np.ndarray, coeffs: np.ndarray) -> List[float]:
        self.calls.append((state.copy(), coeffs.copy()))
        if self.fail:
            raise NoFeasiblePlan("Infeasible_Problem_Detected")
        return self.solution


class RecordingDelay:
    """Delay stub that records requested waits instead of sleeping."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def linear_constants() -> ControlConstants:
    """Constants of the reference example: dt=0.1, Lf=2.67, degree 1 fit."""
    return ControlConstants(latency=0.1, lf=2.67, throttle_gain=9.81, poly_degree=1)


@pytest.fixture
def example_telemetry() -> Telemetry:
    """Vehicle at the origin heading +x at 10 m/s with a straight path 1 m to the left."""
    return Telemetry(
        waypoints=[(1.0, 1.0), (2.0, 1.0), (3.0, 1.0)],
        pose=VehiclePose(x=0.0, y=0.0, heading=0.0, speed=10.0),
        actuators=ActuatorState(steering=0.0, throttle=0.0),
    )
