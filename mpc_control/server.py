#!/usr/bin/env python3
"""
WebSocket Server for the Driving Simulator

This module hosts the MPC controller behind the simulator's WebSocket endpoint.
The simulator connects, streams `telemetry` events, and receives a `steer`
event back for every sample. Events use the socket.io text framing
(`42["event", {...}]`). Frames without data are answered with a `manual`
event, which leaves the simulator in control of the vehicle.
"""

import asyncio
import json
import logging
import math
import signal
import threading
import time
from typing import Any, Callable, Optional, Tuple

import websockets

from .config import (
    ACTUATION_DELAY_SECONDS,
    MPH_TO_MPS,
    TERM_BLUE,
    TERM_ORANGE,
    TERM_RESET,
    WS_HOST,
    WS_PORT,
    ControlConstants,
)
from .controller import MPCController
from .data_collector import DataCollector
from .errors import MPCControlError
from .mpc import KinematicMPC
from .solver import Solver
from .state import ActuatorState, Telemetry, VehiclePose

EVENT_PREFIX = "42"
"""socket.io prefix of a message event (engine.io message '4' + socket.io event '2')."""

MANUAL_MESSAGE = EVENT_PREFIX + '["manual",{}]'


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    INFO messages are printed bare for clean console output; WARNING, ERROR
    and DEBUG messages keep timestamp and level.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        else:
            return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps (including per-cycle
                 diagnostics). If False, show INFO without timestamps and
                 WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        formatter = CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(formatter)
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


def extract_payload(frame: str) -> str:
    """Extract the JSON array of an event frame.

    Returns the text between the first '[' and the last '}]', or an empty
    string if the frame carries no data (contains 'null' or no object).
    """
    if "null" in frame:
        return ""
    start = frame.find("[")
    end = frame.rfind("}]")
    if start != -1 and end != -1:
        return frame[start : end + 2]
    return ""


def parse_event(frame: str) -> Optional[Tuple[str, Any]]:
    """Parse an event frame into (event name, data).

    Args:
        frame: Raw text frame received from the simulator.

    Returns:
        (event, data) for frames with data, ("", None) for event frames
        without data, and None for frames that are not events.

    Raises:
        ValueError: If the payload is not valid JSON (json.JSONDecodeError)
            or not an [event, data] array.
    """
    if len(frame) <= 2 or not frame.startswith(EVENT_PREFIX):
        return None

    payload = extract_payload(frame)
    if not payload:
        return "", None

    message = json.loads(payload)
    if not isinstance(message, list) or len(message) < 2:
        raise ValueError(f"Expected [event, data] array, got {payload!r}")
    return str(message[0]), message[1]


def decode_telemetry(data: dict) -> Telemetry:
    """Decode a telemetry event body.

    Args:
        data: Event data with ptsx, ptsy, x, y, psi, speed (mph),
              steering_angle and throttle.

    Returns:
        Telemetry with speed converted to m/s.

    Raises:
        KeyError: If a field is missing.
        TypeError, ValueError: If a field has the wrong type or a non-finite
            value, or the waypoint coordinate lists differ in length.
    """
    ptsx = [float(v) for v in data["ptsx"]]
    ptsy = [float(v) for v in data["ptsy"]]
    if len(ptsx) != len(ptsy):
        raise ValueError(f"ptsx and ptsy differ in length ({len(ptsx)} != {len(ptsy)})")

    pose = VehiclePose(
        x=float(data["x"]),
        y=float(data["y"]),
        heading=float(data["psi"]),
        speed=float(data["speed"]) * MPH_TO_MPS,
    )
    actuators = ActuatorState(
        steering=float(data["steering_angle"]),
        throttle=float(data["throttle"]),
    )
    values = [*ptsx, *ptsy, pose.x, pose.y, pose.heading, pose.speed, actuators.steering, actuators.throttle]
    if not all(math.isfinite(v) for v in values):
        raise ValueError("Telemetry contains non-finite values")
    return Telemetry(waypoints=list(zip(ptsx, ptsy)), pose=pose, actuators=actuators)


def encode_event(event: str, payload: dict) -> str:
    """Frame an event for the simulator."""
    return EVENT_PREFIX + json.dumps([event, payload])


class SimulatorServer:
    """MPC control server for the driving simulator.

    Each simulator connection gets its own MPCController (and solver backend),
    and its frames are handled strictly one after another. Control cycles run
    in a worker thread so a slow solve does not block other connections.

    Attributes:
        host: Interface to bind.
        port: Port to listen on.
        constants: Physical constants shared by all controllers.
        actuation_delay: Pacing delay applied after each solve (seconds).
        solver_factory: Callable creating a fresh solver backend per connection.
        data_collector: Optional CSV recorder for control cycles.
        should_stop: Flag indicating whether to stop serving.
    """

    def __init__(
        self,
        host: str = WS_HOST,
        port: int = WS_PORT,
        constants: Optional[ControlConstants] = None,
        actuation_delay: float = ACTUATION_DELAY_SECONDS,
        solver_factory: Optional[Callable[[], Solver]] = None,
        data_collector: Optional[DataCollector] = None,
    ) -> None:
        """Initialize the server.

        Args:
            host: Interface to bind (default: all interfaces).
            port: Port to listen on.
            constants: Physical constants. Default: ControlConstants().
            actuation_delay: Pacing delay after each solve (seconds).
            solver_factory: Creates the solver backend for a new connection.
                Default: KinematicMPC with lf and steering bound from constants.
            data_collector: Optional recorder; set up and cleaned up by the
                server's context manager.
        """
        if constants is None:
            constants = ControlConstants()
        if solver_factory is None:

            def solver_factory() -> Solver:
                return KinematicMPC(lf=constants.lf, max_steering_angle=constants.max_steering_angle)

        self.host = host
        self.port = port
        self.constants = constants
        self.actuation_delay = actuation_delay
        self.solver_factory = solver_factory
        self.data_collector = data_collector
        self.should_stop: bool = False

        self._record_lock = threading.Lock()
        self._stop_event: Optional[asyncio.Event] = None

    def create_controller(self) -> MPCController:
        """Create an isolated controller for one simulator session."""
        return MPCController(
            self.solver_factory(),
            constants=self.constants,
            actuation_delay=self.actuation_delay,
        )

    def _record(self, *args: Any, **kwargs: Any) -> None:
        if self.data_collector is not None:
            with self._record_lock:
                self.data_collector.log_cycle(*args, **kwargs)

    def handle_frame(self, controller: MPCController, frame: str) -> Optional[str]:
        """Handle one frame from the simulator.

        Args:
            controller: Controller of the connection the frame arrived on.
            frame: Raw text frame.

        Returns:
            Reply frame, or None if no reply is due.
        """
        try:
            event = parse_event(frame)
        except ValueError as e:
            logging.error(f"Error parsing event: {e}")
            return MANUAL_MESSAGE

        if event is None:
            return None

        name, data = event
        if data is None:
            # Manual driving
            return MANUAL_MESSAGE
        if name != "telemetry":
            logging.debug(f"Ignoring event: {name}")
            return None

        try:
            telemetry = decode_telemetry(data)
        except (KeyError, TypeError, ValueError) as e:
            logging.error(f"Error processing telemetry data: {e!r}")
            return MANUAL_MESSAGE

        received = time.time()
        start = time.perf_counter()
        try:
            output = controller.step(telemetry)
        except MPCControlError as e:
            # Hold the last command: the simulator keeps it while in manual mode
            logging.error(f"{TERM_ORANGE}Control cycle failed: {e}{TERM_RESET}")
            self._record(received, telemetry, cycle_time=time.perf_counter() - start, error=e)
            return MANUAL_MESSAGE
        except Exception as e:
            logging.error(f"Unexpected error in control cycle: {e}", exc_info=True)
            self._record(received, telemetry, cycle_time=time.perf_counter() - start, error=e)
            return MANUAL_MESSAGE

        self._record(received, telemetry, output, cycle_time=time.perf_counter() - start)
        return encode_event("steer", output.to_message())

    async def handle_connection(self, websocket: Any) -> None:
        """Serve one simulator connection until it closes."""
        logging.info(f"{TERM_BLUE}✓ Simulator connected{TERM_RESET}")
        controller = self.create_controller()
        try:
            async for message in websocket:
                if isinstance(message, bytes):
                    try:
                        message = message.decode("utf-8")
                    except UnicodeDecodeError as e:
                        logging.error(f"Error decoding frame: {e}")
                        await websocket.send(MANUAL_MESSAGE)
                        continue
                reply = await asyncio.to_thread(self.handle_frame, controller, message)
                if reply is not None:
                    await websocket.send(reply)
        except websockets.exceptions.ConnectionClosed:
            logging.warning("Connection closed by simulator")
        finally:
            logging.info("Disconnected")

    async def run(self) -> None:
        """Serve simulator connections until stop() is called."""
        self._stop_event = asyncio.Event()
        if self.should_stop:
            self._stop_event.set()

        async with websockets.serve(self.handle_connection, self.host, self.port):
            logging.info(f"{TERM_BLUE}Listening on port {self.port}{TERM_RESET}")
            await self._stop_event.wait()

    def stop(self) -> None:
        """Signal the server to stop."""
        self.should_stop = True
        if self._stop_event is not None:
            self._stop_event.set()

    def __enter__(self) -> "SimulatorServer":
        if self.data_collector is not None:
            self.data_collector.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.data_collector is not None:
            self.data_collector.cleanup()


async def main(server: SimulatorServer) -> None:
    """Run a server with SIGINT/SIGTERM handlers for graceful shutdown.

    Args:
        server: Configured SimulatorServer.
    """
    with server:
        loop = asyncio.get_running_loop()

        def signal_handler() -> None:
            """Handle shutdown signals (SIGINT, SIGTERM)."""
            logging.info("\nShutdown signal received...")
            server.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

        await server.run()
