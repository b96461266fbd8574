"""Kinematic MPC backend solved with CasADi and Ipopt.

Default optimizer for the Solver protocol. Tracks a polynomial reference in
the vehicle frame with a kinematic bicycle model over a short horizon.
"""

import logging
import time
from typing import List, Optional

import casadi as ca
import numpy as np
import numpy.typing as npt

from .config import (
    LF,
    MAX_STEERING_ANGLE,
    MPC_DT,
    MPC_HORIZON_STEPS,
    MPC_MAX_ACCELERATION,
    MPC_MAX_CPU_TIME,
    MPC_MAX_ITERATIONS,
    MPC_REFERENCE_SPEED,
    MPC_WEIGHT_CTE,
    MPC_WEIGHT_EPSI,
    MPC_WEIGHT_SPEED,
    MPC_WEIGHT_STEERING,
    MPC_WEIGHT_STEERING_RATE,
    MPC_WEIGHT_THROTTLE,
    MPC_WEIGHT_THROTTLE_RATE,
)
from .errors import NoFeasiblePlan


class KinematicMPC:
    """Nonlinear MPC over a kinematic bicycle model.

    State: [x, y, psi, v, cte, epsi]
    Control: [delta, a]

    The solution is returned flat as [delta_0, a_0, x_1..x_{N-1}, y_1..y_{N-1}].
    The actuation sequence of the last successful solve seeds the next one.
    """

    def __init__(
        self,
        horizon_steps: int = MPC_HORIZON_STEPS,
        dt: float = MPC_DT,
        lf: float = LF,
        reference_speed: float = MPC_REFERENCE_SPEED,
        max_steering_angle: float = MAX_STEERING_ANGLE,
        max_acceleration: float = MPC_MAX_ACCELERATION,
        max_iterations: int = MPC_MAX_ITERATIONS,
        max_cpu_time: float = MPC_MAX_CPU_TIME,
    ):
        """Initialize the MPC backend.

        Args:
            horizon_steps: Number of states in the horizon (at least 2).
            dt: Time between horizon steps (seconds).
            lf: Front axle to center of gravity distance (meters).
            reference_speed: Target speed for the speed cost (m/s).
            max_steering_angle: Steering bound (radians).
            max_acceleration: Throttle bound (normalized units).
            max_iterations: Ipopt iteration limit.
            max_cpu_time: Ipopt CPU time limit (seconds).
        """
        if horizon_steps < 2:
            raise ValueError(f"horizon_steps must be >= 2, got {horizon_steps}")

        self.horizon_steps = horizon_steps
        self.dt = dt
        self.lf = lf
        self.reference_speed = reference_speed
        self.max_steering_angle = max_steering_angle
        self.max_acceleration = max_acceleration
        self.max_iterations = max_iterations
        self.max_cpu_time = max_cpu_time

        # Cost weights
        self.weight_cte = MPC_WEIGHT_CTE
        self.weight_epsi = MPC_WEIGHT_EPSI
        self.weight_speed = MPC_WEIGHT_SPEED
        self.weight_steering = MPC_WEIGHT_STEERING
        self.weight_throttle = MPC_WEIGHT_THROTTLE
        self.weight_steering_rate = MPC_WEIGHT_STEERING_RATE
        self.weight_throttle_rate = MPC_WEIGHT_THROTTLE_RATE

        # Warm start
        self.last_controls: Optional[npt.NDArray[np.float64]] = None
        self.last_solve_time: float = 0.0

    def _polynomial(self, coeffs: npt.NDArray[np.float64], x: ca.MX) -> ca.MX:
        """Evaluate the reference polynomial symbolically."""
        result = 0
        for power, c in enumerate(coeffs):
            result += float(c) * x**power
        return result

    def _slope(self, coeffs: npt.NDArray[np.float64], x: ca.MX) -> ca.MX:
        """Evaluate the reference polynomial derivative symbolically."""
        result = 0
        for power in range(1, len(coeffs)):
            result += power * float(coeffs[power]) * x ** (power - 1)
        return result

    def solve(
        self, state: npt.NDArray[np.float64], coeffs: npt.NDArray[np.float64]
    ) -> List[float]:
        """Solve the MPC problem for a vehicle-frame start state.

        Args:
            state: [x, y, psi, v, cte, epsi]
            coeffs: Reference polynomial coefficients, lowest power first

        Returns:
            Flat solution [delta_0, a_0, x_1..x_{N-1}, y_1..y_{N-1}]

        Raises:
            NoFeasiblePlan: If Ipopt fails to converge.
        """
        N = self.horizon_steps
        dt = self.dt
        x0, y0, psi0, v0, cte0, epsi0 = (float(s) for s in state)

        opti = ca.Opti()

        X = opti.variable(6, N)
        x = X[0, :]
        y = X[1, :]
        psi = X[2, :]
        v = X[3, :]
        cte = X[4, :]
        epsi = X[5, :]

        U = opti.variable(2, N - 1)
        delta = U[0, :]
        a = U[1, :]

        # Initial condition
        opti.subject_to(x[0] == x0)
        opti.subject_to(y[0] == y0)
        opti.subject_to(psi[0] == psi0)
        opti.subject_to(v[0] == v0)
        opti.subject_to(cte[0] == cte0)
        opti.subject_to(epsi[0] == epsi0)

        # Dynamics constraints (steering sign matches the latency predictor)
        for k in range(N - 1):
            f_k = self._polynomial(coeffs, x[k])
            psides_k = ca.atan(self._slope(coeffs, x[k]))
            yaw_step = v[k] / self.lf * delta[k] * dt

            opti.subject_to(x[k + 1] == x[k] + v[k] * ca.cos(psi[k]) * dt)
            opti.subject_to(y[k + 1] == y[k] + v[k] * ca.sin(psi[k]) * dt)
            opti.subject_to(psi[k + 1] == psi[k] - yaw_step)
            opti.subject_to(v[k + 1] == v[k] + a[k] * dt)
            opti.subject_to(cte[k + 1] == (f_k - y[k]) - v[k] * ca.sin(epsi[k]) * dt)
            opti.subject_to(epsi[k + 1] == (psi[k] - psides_k) - yaw_step)

        # Control constraints
        for k in range(N - 1):
            opti.subject_to(opti.bounded(-self.max_steering_angle, delta[k], self.max_steering_angle))
            opti.subject_to(opti.bounded(-self.max_acceleration, a[k], self.max_acceleration))

        # Objective function
        cost = 0
        for k in range(N):
            cost += self.weight_cte * cte[k] ** 2
            cost += self.weight_epsi * epsi[k] ** 2
            cost += self.weight_speed * (v[k] - self.reference_speed) ** 2
        for k in range(N - 1):
            cost += self.weight_steering * delta[k] ** 2
            cost += self.weight_throttle * a[k] ** 2
        for k in range(N - 2):
            cost += self.weight_steering_rate * (delta[k + 1] - delta[k]) ** 2
            cost += self.weight_throttle_rate * (a[k + 1] - a[k]) ** 2
        opti.minimize(cost)

        # Solver options
        opts = {
            "ipopt.print_level": 0,
            "ipopt.sb": "yes",
            "print_time": 0,
            "ipopt.max_iter": self.max_iterations,
            "ipopt.max_cpu_time": self.max_cpu_time,
        }
        opti.solver("ipopt", opts)

        # Initial guess: straight ahead at current speed, previous actuation
        opti.set_initial(x, [x0 + v0 * dt * k for k in range(N)])
        opti.set_initial(y, [y0] * N)
        opti.set_initial(psi, [psi0] * N)
        opti.set_initial(v, [v0] * N)
        opti.set_initial(cte, [cte0] * N)
        opti.set_initial(epsi, [epsi0] * N)
        if self.last_controls is not None:
            opti.set_initial(U, self.last_controls)

        start = time.perf_counter()
        try:
            sol = opti.solve()
        except RuntimeError as e:
            self.last_controls = None
            stats = opti.stats()
            raise NoFeasiblePlan(stats.get("return_status", str(e))) from e
        finally:
            self.last_solve_time = time.perf_counter() - start

        controls = np.asarray(sol.value(U), dtype=float).reshape(2, N - 1)
        x_sol = np.asarray(sol.value(x), dtype=float).ravel()
        y_sol = np.asarray(sol.value(y), dtype=float).ravel()
        self.last_controls = controls

        logging.debug(f"MPC solved in {self.last_solve_time * 1000.0:.1f}ms")

        return [float(controls[0, 0]), float(controls[1, 0]), *x_sol[1:].tolist(), *y_sol[1:].tolist()]
