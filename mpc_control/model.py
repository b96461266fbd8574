"""
Kinematic bicycle model for latency compensation and actuator conversion.

This module provides the forward kinematics used to project the vehicle state
past the actuation latency, and the conversion from optimizer steering angles
to normalized actuator commands.
"""

import math

from .config import ControlConstants
from .state import ActuatorState, SolverResult, VehiclePose


def predict_state(
    pose: VehiclePose, actuators: ActuatorState, constants: ControlConstants
) -> VehiclePose:
    """
    Project the vehicle pose forward by one latency interval.

    Assumes the current actuator commands are held constant over the interval:
        x' = x + v * cos(psi) * dt
        y' = y + v * sin(psi) * dt
        psi' = psi - (v / Lf) * steering * dt
        v' = v + throttle * g * dt

    Positive steering decreases the heading. The optimizer model uses the same
    sign convention, so this must not be flipped on one side only.

    Args:
        pose: Current pose in the world frame (speed in m/s)
        actuators: Steering and throttle currently applied
        constants: Physical constants (latency, Lf, throttle gain)

    Returns:
        VehiclePose: Predicted pose in the world frame

    Note:
        Speed is not clamped; a negative prediction (reversing) is passed on as is.

    Example:
        >>> predict_state(VehiclePose(0.0, 0.0, 0.0, 10.0), ActuatorState(0.0, 0.0), ControlConstants())
        VehiclePose(x=1.0, y=0.0, heading=0.0, speed=10.0)
    """
    dt = constants.latency
    v = pose.speed

    x = pose.x + v * math.cos(pose.heading) * dt
    y = pose.y + v * math.sin(pose.heading) * dt
    heading = pose.heading - v / constants.lf * actuators.steering * dt
    speed = v + actuators.throttle * constants.throttle_gain * dt

    return VehiclePose(x=x, y=y, heading=heading, speed=speed)


def normalize_actuation(
    result: SolverResult, constants: ControlConstants
) -> tuple[float, float]:
    """
    Convert optimizer output into actuator commands.

    The optimizer steers in radians with positive angles turning the heading
    negative; the actuator expects the opposite sign scaled to [-1, 1]:
        steering_cmd = -steering / max_steering_angle
        throttle_cmd = throttle

    Args:
        result: Solver output for this cycle
        constants: Physical constants (max steering angle)

    Returns:
        tuple[float, float]: (steering_cmd, throttle_cmd). Values outside
                             [-1, 1] are passed through uncapped.
    """
    steering_cmd = -result.steering / constants.max_steering_angle
    return steering_cmd, result.throttle
