"""Reference path processing in the vehicle frame.

This module turns the sparse world-frame waypoints of each telemetry sample
into the reference the optimizer tracks:
- Transforms waypoints into the frame of the predicted vehicle pose
- Fits a polynomial through them by least squares
- Derives cross-track and heading errors at the vehicle origin
"""

import logging
from typing import Sequence, Tuple

import numpy as np
import numpy.typing as npt

from .errors import UnderdeterminedFit
from .state import VehiclePose


def to_vehicle_frame(
    pose: VehiclePose, waypoints: Sequence[Tuple[float, float]]
) -> Tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Transform world-frame waypoints into the frame of a vehicle pose.

    Translates by (-x, -y) then rotates by -heading, so the pose itself maps
    to the origin and its heading maps to zero:
        local_x = dx * cos(-psi) - dy * sin(-psi)
        local_y = dx * sin(-psi) + dy * cos(-psi)

    Args:
        pose: Pose defining the vehicle frame (usually the predicted pose)
        waypoints: World-frame (x, y) points in path order

    Returns:
        Tuple of (local_x, local_y) arrays, in waypoint order
    """
    points = np.asarray(waypoints, dtype=float).reshape(-1, 2)
    dx = points[:, 0] - pose.x
    dy = points[:, 1] - pose.y

    cos_psi = np.cos(-pose.heading)
    sin_psi = np.sin(-pose.heading)
    local_x = dx * cos_psi - dy * sin_psi
    local_y = dx * sin_psi + dy * cos_psi

    return local_x, local_y


def polyfit(
    xvals: npt.ArrayLike, yvals: npt.ArrayLike, degree: int
) -> npt.NDArray[np.float64]:
    """Fit a polynomial to points by least squares.

    Builds the Vandermonde matrix A[i, j] = x_i ** j, factorizes it with QR and
    solves R c = Q^T y. Near-duplicate x values make R ill-conditioned; the
    triangular solve is done by least squares so a (less accurate) result is
    still returned and a warning is logged.

    Args:
        xvals: Sample x coordinates
        yvals: Sample y coordinates (same length as xvals)
        degree: Polynomial degree, at least 1

    Returns:
        Coefficient array of length degree + 1, lowest power first

    Raises:
        ValueError: If degree < 1 or the sample arrays differ in length.
        UnderdeterminedFit: If there are fewer than degree + 1 samples.
    """
    x = np.asarray(xvals, dtype=float).ravel()
    y = np.asarray(yvals, dtype=float).ravel()

    if degree < 1:
        raise ValueError(f"Polynomial degree must be >= 1, got {degree}")
    if x.size != y.size:
        raise ValueError(f"x and y must have the same length, got {x.size} and {y.size}")
    if x.size < degree + 1:
        raise UnderdeterminedFit(points=int(x.size), degree=degree)

    A = np.vander(x, degree + 1, increasing=True)
    Q, R = np.linalg.qr(A)
    coeffs, _, rank, _ = np.linalg.lstsq(R, Q.T @ y, rcond=None)

    if rank < degree + 1:
        logging.warning(
            f"Ill-conditioned reference fit: rank {rank} < {degree + 1} "
            f"(duplicate waypoint x values?), coefficients are approximate"
        )

    return coeffs


def polyeval(coeffs: npt.ArrayLike, x: float) -> float:
    """Evaluate a polynomial given coefficients lowest power first."""
    return float(np.polynomial.polynomial.polyval(x, coeffs))


def tracking_errors(coeffs: npt.ArrayLike) -> Tuple[float, float]:
    """Compute cross-track and heading errors for a vehicle at the local origin.

    In the vehicle frame the vehicle sits at x = 0 with heading 0, so:
        cte = f(0) = c0
        epsi = 0 - atan(f'(0)) = -atan(c1)

    Args:
        coeffs: Reference polynomial coefficients (at least two)

    Returns:
        Tuple of (cte, epsi)

    Raises:
        ValueError: If fewer than two coefficients are given.
    """
    c = np.asarray(coeffs, dtype=float).ravel()
    if c.size < 2:
        raise ValueError(f"Need at least 2 coefficients for tracking errors, got {c.size}")
    cte = polyeval(c, 0.0)
    epsi = -float(np.arctan(c[1]))
    return cte, epsi
