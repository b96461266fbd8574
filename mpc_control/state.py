"""Per-cycle data types for the MPC control pipeline.

All of these are created fresh for every telemetry message and discarded
once the actuation command has been produced.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np
import numpy.typing as npt


@dataclass(frozen=True)
class VehiclePose:
    """Vehicle pose in the world frame.

    Attributes:
        x: World x position (m).
        y: World y position (m).
        heading: Heading angle (rad).
        speed: Forward speed (m/s).
    """

    x: float
    y: float
    heading: float
    speed: float


@dataclass(frozen=True)
class ActuatorState:
    """Latest actuator readback, both normalized to roughly [-1, 1]."""

    steering: float
    throttle: float


@dataclass(frozen=True)
class ControlState:
    """Optimizer start state in the vehicle frame of the predicted pose.

    Position and heading are zero by construction; only speed and the two
    tracking errors carry information.
    """

    speed: float
    cte: float
    epsi: float
    x: float = field(default=0.0, init=False)
    y: float = field(default=0.0, init=False)
    heading: float = field(default=0.0, init=False)

    def as_array(self) -> npt.NDArray[np.float64]:
        """Return the state as [x, y, heading, speed, cte, epsi]."""
        return np.array([self.x, self.y, self.heading, self.speed, self.cte, self.epsi])


@dataclass(frozen=True)
class SolverResult:
    """First actuation of the optimal plan and the predicted trajectory.

    Attributes:
        steering: Steering angle (rad, positive turns the heading negative).
        throttle: Throttle / acceleration command.
        trajectory: Predicted (x, y) points in the vehicle frame.
    """

    steering: float
    throttle: float
    trajectory: List[Tuple[float, float]] = field(default_factory=list)


@dataclass(frozen=True)
class Telemetry:
    """One decoded telemetry sample.

    Attributes:
        waypoints: Reference path points in the world frame, in path order.
        pose: Current vehicle pose (speed already in m/s).
        actuators: Steering and throttle currently applied.
    """

    waypoints: List[Tuple[float, float]]
    pose: VehiclePose
    actuators: ActuatorState


@dataclass(frozen=True)
class ControlOutput:
    """Everything produced by one control cycle.

    Attributes:
        steering_angle: Normalized steering command for the actuator.
        throttle: Throttle command for the actuator.
        trajectory: Predicted trajectory in the vehicle frame.
        reference: Waypoints in the vehicle frame (the fitted samples).
        coeffs: Reference polynomial coefficients, lowest power first.
        predicted_pose: Pose after latency compensation (world frame).
        cte: Cross-track error at the predicted pose.
        epsi: Heading error at the predicted pose.
    """

    steering_angle: float
    throttle: float
    trajectory: List[Tuple[float, float]]
    reference: List[Tuple[float, float]]
    coeffs: npt.NDArray[np.float64]
    predicted_pose: VehiclePose
    cte: float
    epsi: float

    def to_message(self) -> dict:
        """Build the `steer` event payload expected by the simulator."""
        return {
            "steering_angle": self.steering_angle,
            "throttle": self.throttle,
            "mpc_x": [float(p[0]) for p in self.trajectory],
            "mpc_y": [float(p[1]) for p in self.trajectory],
            "next_x": [float(p[0]) for p in self.reference],
            "next_y": [float(p[1]) for p in self.reference],
        }
