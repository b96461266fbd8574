"""MPC Control - Latency-Compensated Model Predictive Control Bridge

Connects a driving simulator to a nonlinear MPC. For every telemetry sample
(pose, speed, actuator state and a handful of upcoming waypoints) it computes
a steering and throttle command and a predicted trajectory for display.

## Pipeline

### Stage 1: Latency Compensation (model.py)
Projects the vehicle state forward by the actuation latency with a kinematic
bicycle model, so the plan is valid when the command actually takes effect.

### Stage 2: Reference Fitting (path.py)
- Transforms the world-frame waypoints into the frame of the predicted pose
- Fits a cubic polynomial through them (QR least squares)
- Derives cross-track error f(0) and heading error -atan(f'(0))

### Stage 3: Optimization (solver.py, mpc.py)
Passes the state [0, 0, 0, v, cte, epsi] and the polynomial to a solver
backend (default: CasADi/Ipopt kinematic MPC) and splits its flat output into
the first actuation and the predicted trajectory.

### Stage 4: Actuation (model.py)
Converts the steering angle to the actuator's normalized, sign-flipped range.
The command is then held back by the configured actuation delay.

## Modules

- `config.py` - Configuration constants and the ControlConstants struct
- `state.py` - Per-cycle data types
- `errors.py` - UnderdeterminedFit, NoFeasiblePlan and friends
- `model.py` - Latency predictor and actuation normalizer
- `path.py` - Frame transform, polynomial fit, tracking errors
- `solver.py` - Solver protocol and adapter
- `mpc.py` - Default CasADi/Ipopt MPC backend
- `controller.py` - One control cycle per telemetry sample
- `server.py` - WebSocket server for the simulator
- `data_collector.py` - CSV recording of control cycles

## Quick Start

```bash
python -m mpc_control --record
```

Failed cycles (too few waypoints, solver non-convergence) are answered with a
`manual` event, so the simulator keeps the previous command.

## Version

0.1.0 - Initial implementation
"""

__version__ = "0.1.0"

# Export key classes for convenience
from .config import ControlConstants
from .controller import MPCController
from .errors import MalformedSolution, MPCControlError, NoFeasiblePlan, UnderdeterminedFit
from .mpc import KinematicMPC
from .solver import Solver, SolverAdapter

__all__ = [
    "ControlConstants",
    "MPCController",
    "KinematicMPC",
    "Solver",
    "SolverAdapter",
    "MPCControlError",
    "UnderdeterminedFit",
    "NoFeasiblePlan",
    "MalformedSolution",
]
