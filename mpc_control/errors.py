"""Exceptions raised by the MPC control pipeline.

Only two conditions stop a control cycle: a reference fit with too few
waypoints, and an optimizer that cannot produce a plan. Everything else in
the pipeline (prediction, frame transform, error extraction) is total.
"""


class MPCControlError(Exception):
    """Base class for all pipeline errors."""


class UnderdeterminedFit(MPCControlError, ValueError):
    """Raised when there are fewer waypoints than polynomial coefficients.

    Attributes:
        points: Number of waypoints supplied.
        degree: Requested polynomial degree.
    """

    def __init__(self, points: int, degree: int) -> None:
        self.points = points
        self.degree = degree
        super().__init__(
            f"Cannot fit degree {degree} polynomial through {points} waypoints "
            f"(need at least {degree + 1})"
        )


class NoFeasiblePlan(MPCControlError):
    """Raised when the optimizer fails to converge or finds no feasible plan.

    Attributes:
        reason: Backend-specific description of the failure.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Optimizer returned no feasible plan: {reason}")


class MalformedSolution(MPCControlError, ValueError):
    """Raised when optimizer output does not follow the [steer, throttle, xs.., ys..] layout."""
