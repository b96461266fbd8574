"""Configuration parameters for the MPC control bridge.

This module centralizes all configuration parameters including:
- Physical vehicle parameters
- Latency compensation and actuation pacing
- Reference fitting
- MPC backend horizon, bounds and cost weights
- WebSocket server settings

All parameters are fixed at startup. Pipeline components receive them through
the read-only ControlConstants struct rather than reading this module directly.
"""

import math
from dataclasses import dataclass

# ============================================================================
# Physical Vehicle Parameters
# ============================================================================

LF = 2.67
"""Distance from the front axle to the center of gravity (meters).

Origin: measured on the simulator vehicle by driving it in a circle at constant
steering angle and speed on flat terrain, then tuning LF until the simulated
turning radius matched the observed one.
"""

THROTTLE_GAIN = 9.81
"""Longitudinal acceleration produced by one unit of throttle (m/s²).

Used only by the latency predictor. Treats full throttle as roughly 1 g.
"""

MAX_STEERING_ANGLE = math.radians(25.0)
"""Maximum commandable steering angle (radians).

The actuator accepts a normalized steering value in [-1, 1]; one unit
corresponds to this angle. Hardware limit of the simulator vehicle.
"""

MPH_TO_MPS = 0.44704
"""Conversion factor applied to the telemetry speed field (mph → m/s)."""


# ============================================================================
# Latency Compensation
# ============================================================================

LATENCY_SECONDS = 0.1
"""End-to-end actuation latency used for state prediction (seconds).

The vehicle state is projected this far into the future before the optimizer
runs, so the plan is valid at the moment the command actually takes effect.
"""

ACTUATION_DELAY_SECONDS = 0.1
"""Artificial delay applied after solving, before a command is released (seconds).

Models real hardware latency during simulation. Logically distinct from
LATENCY_SECONDS: that one is a physics projection parameter, this one paces
output. Both default to the same value.
"""


# ============================================================================
# Reference Fitting
# ============================================================================

POLY_DEGREE = 3
"""Degree of the polynomial fitted through the vehicle-frame waypoints.

A cubic follows typical road curvature over the waypoint window without
overfitting. Requires at least POLY_DEGREE + 1 waypoints per cycle.
"""


# ============================================================================
# MPC Backend Parameters
# ============================================================================

MPC_HORIZON_STEPS = 10
"""Number of prediction steps in the MPC horizon.

Tuning rationale:
- Horizon length is MPC_HORIZON_STEPS * MPC_DT = 1.0 s
- Longer horizons add solve time without improving tracking at road speeds
- Shorter horizons (<6 steps) react too late to upcoming curves
"""

MPC_DT = 0.1
"""Time between MPC prediction steps (seconds).

Matches LATENCY_SECONDS so one plan step corresponds to one actuation delay.
"""

MPC_REFERENCE_SPEED = 22.0
"""Target speed tracked by the MPC cost (m/s, about 50 mph)."""

MPC_MAX_ACCELERATION = 1.0
"""Bound on the throttle actuator used by the MPC (normalized units)."""

MPC_WEIGHT_CTE = 2000.0
"""Cost weight on squared cross-track error."""

MPC_WEIGHT_EPSI = 2000.0
"""Cost weight on squared heading error."""

MPC_WEIGHT_SPEED = 1.0
"""Cost weight on squared deviation from MPC_REFERENCE_SPEED."""

MPC_WEIGHT_STEERING = 5.0
"""Cost weight on squared steering magnitude."""

MPC_WEIGHT_THROTTLE = 5.0
"""Cost weight on squared throttle magnitude."""

MPC_WEIGHT_STEERING_RATE = 200.0
"""Cost weight on squared steering change between consecutive steps.

Tuning rationale:
- Dominant smoothing term; prevents steering oscillation at high speed
- Values below ~50 produce visible weaving on straights
"""

MPC_WEIGHT_THROTTLE_RATE = 10.0
"""Cost weight on squared throttle change between consecutive steps."""

MPC_MAX_ITERATIONS = 200
"""Maximum Ipopt iterations per solve."""

MPC_MAX_CPU_TIME = 0.5
"""Maximum Ipopt CPU time per solve (seconds)."""


# ============================================================================
# Terminal Colors
# ============================================================================

TERM_ORANGE = "\033[38;2;247;72;35m"
"""Terminal color code for warnings and failed cycles."""

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for status messages."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# WebSocket Configuration
# ============================================================================

WS_HOST = "0.0.0.0"
"""Interface the telemetry server binds to."""

WS_PORT = 4567
"""Port the simulator connects to."""


@dataclass(frozen=True)
class ControlConstants:
    """Read-only physical constants shared by the pipeline components.

    Attributes:
        latency: Latency interval Δt for state prediction (s).
        lf: Front axle to center of gravity distance (m).
        throttle_gain: Acceleration per unit throttle (m/s²).
        max_steering_angle: Steering angle mapped to a normalized command of 1 (rad).
        poly_degree: Degree of the reference polynomial.
    """

    latency: float = LATENCY_SECONDS
    lf: float = LF
    throttle_gain: float = THROTTLE_GAIN
    max_steering_angle: float = MAX_STEERING_ANGLE
    poly_degree: int = POLY_DEGREE

    def __post_init__(self) -> None:
        if self.poly_degree < 1:
            raise ValueError(f"poly_degree must be >= 1, got {self.poly_degree}")
        if self.lf <= 0:
            raise ValueError(f"lf must be positive, got {self.lf}")
        if self.max_steering_angle <= 0:
            raise ValueError(f"max_steering_angle must be positive, got {self.max_steering_angle}")
        if self.latency < 0:
            raise ValueError(f"latency must be non-negative, got {self.latency}")
