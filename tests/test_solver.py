"""Tests for the solver adapter and solution splitting."""

import math

import numpy as np
import pytest

from mpc_control.errors import MalformedSolution, NoFeasiblePlan
from mpc_control.solver import SolverAdapter, split_solution
from mpc_control.state import ControlState

from .conftest import RecordingSolver


class TestSplitSolution:
    """Tests for split_solution function."""

    def test_blocks(self) -> None:
        """Test x and y blocks are paired by index."""
        result = split_solution([0.1, 0.5, 1.0, 2.0, 3.0, -1.0, -2.0, -3.0])

        assert result.steering == 0.1
        assert result.throttle == 0.5
        assert result.trajectory == [(1.0, -1.0), (2.0, -2.0), (3.0, -3.0)]

    @pytest.mark.parametrize("n", [0, 1, 4, 9])
    def test_point_count(self, n: int) -> None:
        """Test 2 + 2N values give exactly N points."""
        solution = [0.0, 0.0] + list(range(n)) + [10 + i for i in range(n)]
        result = split_solution(solution)

        assert len(result.trajectory) == n
        assert [p[0] for p in result.trajectory] == solution[2 : 2 + n]
        assert [p[1] for p in result.trajectory] == solution[2 + n : 2 + 2 * n]

    def test_accepts_numpy(self) -> None:
        """Test numpy arrays are converted to plain floats."""
        result = split_solution(np.array([0.2, 0.3, 1.0, 2.0]))

        assert result.trajectory == [(1.0, 2.0)]
        assert isinstance(result.steering, float)

    @pytest.mark.parametrize("length", [0, 1, 3, 5])
    def test_bad_length(self, length: int) -> None:
        """Test layouts that are not 2 + 2N are rejected."""
        with pytest.raises(MalformedSolution):
            split_solution([0.0] * length)


class TestControlState:
    """Tests for ControlState class."""

    def test_origin_is_fixed(self) -> None:
        """Test position and heading cannot be set by the caller."""
        with pytest.raises(TypeError):
            ControlState(speed=10.0, cte=1.0, epsi=0.0, x=2.0)

    def test_as_array(self) -> None:
        """Test the vehicle sits at the local origin."""
        state = ControlState(speed=10.0, cte=1.0, epsi=-0.1)

        np.testing.assert_array_equal(state.as_array(), [0.0, 0.0, 0.0, 10.0, 1.0, -0.1])


class TestSolverAdapter:
    """Tests for SolverAdapter class."""

    def test_passes_state_and_coeffs(self) -> None:
        """Test the backend receives [0, 0, 0, v, cte, epsi] and the curve."""
        solver = RecordingSolver([0.0, 0.0])
        adapter = SolverAdapter(solver)

        adapter.solve(ControlState(speed=10.0, cte=1.0, epsi=-0.1), np.array([1.0, 0.1]))

        state, coeffs = solver.calls[0]
        np.testing.assert_array_equal(state, [0.0, 0.0, 0.0, 10.0, 1.0, -0.1])
        np.testing.assert_array_equal(coeffs, [1.0, 0.1])

    def test_returns_split_result(self) -> None:
        """Test backend output is split into actuation and trajectory."""
        adapter = SolverAdapter(RecordingSolver([0.05, 0.7, 1.0, 2.0, 0.1, 0.2]))
        result = adapter.solve(ControlState(10.0, 0.0, 0.0), np.zeros(4))

        assert (result.steering, result.throttle) == (0.05, 0.7)
        assert result.trajectory == [(1.0, 0.1), (2.0, 0.2)]

    def test_backend_failure_propagates(self) -> None:
        """Test NoFeasiblePlan from the backend is not swallowed."""
        adapter = SolverAdapter(RecordingSolver(fail=True))

        with pytest.raises(NoFeasiblePlan):
            adapter.solve(ControlState(10.0, 0.0, 0.0), np.zeros(4))

    @pytest.mark.parametrize("bad", [math.nan, math.inf])
    def test_non_finite_actuation(self, bad: float) -> None:
        """Test non-finite actuation counts as no feasible plan."""
        adapter = SolverAdapter(RecordingSolver([bad, 0.0]))

        with pytest.raises(NoFeasiblePlan):
            adapter.solve(ControlState(10.0, 0.0, 0.0), np.zeros(4))

    def test_malformed_output(self) -> None:
        """Test layout violations surface as MalformedSolution."""
        adapter = SolverAdapter(RecordingSolver([0.0, 0.0, 1.0]))

        with pytest.raises(MalformedSolution):
            adapter.solve(ControlState(10.0, 0.0, 0.0), np.zeros(4))
