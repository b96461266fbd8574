"""Per-telemetry control cycle.

This module wires the pipeline stages together:
- Latency compensation (model.predict_state)
- Vehicle-frame reference fitting (path)
- Optimizer invocation (solver.SolverAdapter)
- Actuator conversion (model.normalize_actuation)
- Output pacing to emulate actuation delay
"""

import logging
import time
from typing import Callable, Optional

from .config import ACTUATION_DELAY_SECONDS, ControlConstants
from .model import normalize_actuation, predict_state
from .path import polyfit, to_vehicle_frame, tracking_errors
from .solver import Solver, SolverAdapter
from .state import ControlOutput, ControlState, Telemetry


class MPCController:
    """Runs one MPC control cycle per telemetry sample.

    The controller keeps no state between cycles apart from what the solver
    backend keeps internally (warm start). One instance must serve at most one
    vehicle session at a time.

    Attributes:
        constants: Physical constants for prediction, fitting and normalization.
        adapter: Solver adapter wrapping the optimizer backend.
        actuation_delay: Pacing delay applied after each solve (seconds).
        delay: Function used to wait; time.sleep in production.
    """

    def __init__(
        self,
        solver: Solver,
        constants: Optional[ControlConstants] = None,
        actuation_delay: float = ACTUATION_DELAY_SECONDS,
        delay: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the controller.

        Args:
            solver: Optimizer backend implementing the Solver protocol.
            constants: Physical constants. Default: ControlConstants().
            actuation_delay: Delay before a command is released (seconds).
            delay: Callable invoked with actuation_delay after solving. Pass a
                no-op to run cycles without wall-clock cost.
        """
        if constants is None:
            constants = ControlConstants()
        if actuation_delay < 0:
            raise ValueError(f"actuation_delay must be non-negative, got {actuation_delay}")

        self.constants = constants
        self.adapter = SolverAdapter(solver)
        self.actuation_delay = actuation_delay
        self.delay = delay

    def step(self, telemetry: Telemetry) -> ControlOutput:
        """Compute the actuation command for one telemetry sample.

        Args:
            telemetry: Decoded telemetry (speed in m/s)

        Returns:
            ControlOutput with actuator commands and visualization points

        Raises:
            UnderdeterminedFit: If there are too few waypoints for the fit degree.
            NoFeasiblePlan: If the optimizer cannot produce a plan.
        """
        # Project the state past the actuation latency
        predicted = predict_state(telemetry.pose, telemetry.actuators, self.constants)

        # Fit the reference in the predicted vehicle frame
        local_x, local_y = to_vehicle_frame(predicted, telemetry.waypoints)
        coeffs = polyfit(local_x, local_y, self.constants.poly_degree)
        cte, epsi = tracking_errors(coeffs)

        state = ControlState(speed=predicted.speed, cte=cte, epsi=epsi)
        result = self.adapter.solve(state, coeffs)

        steering_cmd, throttle_cmd = normalize_actuation(result, self.constants)

        logging.debug(f"CTE: {cte:.4f}  epsi: {epsi:.4f}")
        logging.debug(f"Steering sent: {steering_cmd:.4f}  Throttle sent: {throttle_cmd:.4f}")

        output = ControlOutput(
            steering_angle=steering_cmd,
            throttle=throttle_cmd,
            trajectory=result.trajectory,
            reference=list(zip(local_x.tolist(), local_y.tolist())),
            coeffs=coeffs,
            predicted_pose=predicted,
            cte=cte,
            epsi=epsi,
        )

        # Hold the command back to emulate real actuation delay
        if self.actuation_delay > 0:
            self.delay(self.actuation_delay)

        return output
