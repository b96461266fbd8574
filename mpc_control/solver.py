"""Adapter between the control pipeline and a nonlinear optimizer.

Any backend that implements the Solver protocol can be plugged in. Its flat
output must follow the layout

    [steering, throttle, x_1, ..., x_N, y_1, ..., y_N]

which is split here into the first actuation and the predicted trajectory.
"""

import logging
import math
from typing import Protocol, Sequence

import numpy as np
import numpy.typing as npt

from .errors import MalformedSolution, NoFeasiblePlan
from .state import ControlState, SolverResult


class Solver(Protocol):
    """Optimizer capability consumed by the pipeline.

    Implementations raise NoFeasiblePlan when they cannot produce a plan.
    """

    def solve(
        self, state: npt.NDArray[np.float64], coeffs: npt.NDArray[np.float64]
    ) -> Sequence[float]:
        """Return the flat solution for a start state and reference polynomial."""
        ...


def split_solution(solution: Sequence[float]) -> SolverResult:
    """Split a flat optimizer solution into actuation and trajectory.

    Args:
        solution: Sequence of length 2 + 2N

    Returns:
        SolverResult with N trajectory points, x from solution[2:2+N] and
        y from solution[2+N:2+2N]

    Raises:
        MalformedSolution: If the length is below 2 or the trajectory block is odd.
    """
    values = [float(v) for v in solution]
    if len(values) < 2 or (len(values) - 2) % 2 != 0:
        raise MalformedSolution(
            f"Expected solution of length 2 + 2N, got {len(values)} values"
        )

    n = (len(values) - 2) // 2
    xs = values[2 : 2 + n]
    ys = values[2 + n : 2 + 2 * n]

    return SolverResult(steering=values[0], throttle=values[1], trajectory=list(zip(xs, ys)))


class SolverAdapter:
    """Runs a Solver backend on a ControlState and unpacks its output."""

    def __init__(self, solver: Solver) -> None:
        """Initialize the adapter.

        Args:
            solver: Optimizer backend implementing Solver.
        """
        self.solver = solver

    def solve(self, state: ControlState, coeffs: npt.NDArray[np.float64]) -> SolverResult:
        """Invoke the optimizer and return its first actuation and trajectory.

        Args:
            state: Start state in the vehicle frame
            coeffs: Reference polynomial coefficients, lowest power first

        Returns:
            SolverResult for this cycle

        Raises:
            NoFeasiblePlan: If the backend fails or returns non-finite actuation.
            MalformedSolution: If the backend output breaks the layout contract.
        """
        solution = self.solver.solve(state.as_array(), np.asarray(coeffs, dtype=float))
        result = split_solution(solution)

        if not (math.isfinite(result.steering) and math.isfinite(result.throttle)):
            raise NoFeasiblePlan(
                f"non-finite actuation (steering={result.steering}, throttle={result.throttle})"
            )

        logging.debug(
            f"Solver returned steering={result.steering:.4f} rad, "
            f"throttle={result.throttle:.4f}, {len(result.trajectory)} trajectory points"
        )
        return result
