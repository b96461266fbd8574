"""Tests for the command-line entry point."""

import pytest

from mpc_control.__main__ import build_parser, main
from mpc_control.config import ACTUATION_DELAY_SECONDS, LATENCY_SECONDS, POLY_DEGREE, WS_PORT


class TestBuildParser:
    """Tests for build_parser function."""

    def test_defaults(self) -> None:
        """Test defaults come from the config module."""
        args = build_parser().parse_args([])

        assert args.port == WS_PORT
        assert args.latency == LATENCY_SECONDS
        assert args.actuation_delay == ACTUATION_DELAY_SECONDS
        assert args.degree == POLY_DEGREE
        assert not args.record
        assert not args.verbose

    def test_overrides(self) -> None:
        """Test options are parsed with their types."""
        args = build_parser().parse_args(
            ["--port", "5000", "--latency", "0.05", "--degree", "2", "--record", "-v"]
        )

        assert args.port == 5000
        assert args.latency == 0.05
        assert args.degree == 2
        assert args.record
        assert args.verbose


class TestMain:
    """Tests for main function."""

    def test_invalid_degree_exits(self) -> None:
        """Test an invalid fit degree exits with status 2."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--degree", "0"])

        assert exc_info.value.code == 2

    def test_negative_latency_exits(self) -> None:
        """Test a negative latency exits with status 2."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--latency", "-0.1"])

        assert exc_info.value.code == 2
