"""
Background telemetry poller.

Reads a RobotStateSource at a fixed rate on its own thread and hands each
tick to a consumer (normally ``SafetyManager.submit``).  The poller is the
producer side of the manager's ingest queue; it never runs monitor code.
"""

import logging
import threading
import time
from typing import Callable, Optional

from axiswatch.interface.robot_state import RobotState
from axiswatch.interface.source import RobotStateSource

logger = logging.getLogger(__name__)


class TelemetryPoller:
    """Fixed-rate polling loop::

        robot = SimulatedRobot()
        poller = TelemetryPoller(robot, manager.submit, frequency=50.0)
        poller.start()
        # ... later ...
        poller.stop()
    """

    DEFAULT_FREQUENCY = 50.0  # Hz

    def __init__(
        self,
        source: RobotStateSource,
        consumer: Callable[[RobotState], None],
        frequency: float = DEFAULT_FREQUENCY,
        name: str = "TelemetryPoller",
    ):
        if frequency <= 0:
            raise ValueError(f"Poll frequency must be positive, got {frequency}")
        self.source = source
        self.consumer = consumer
        self.frequency = frequency
        self.period = 1.0 / frequency
        self._name = name

        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._poll_count = 0
        self._error_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def poll_count(self) -> int:
        return self._poll_count

    def start(self) -> None:
        if self._running:
            logger.warning("Telemetry poller already running")
            return
        self._running = True
        self._poll_count = 0
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.info("Telemetry poller started at %.1f Hz", self.frequency)

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        logger.info("Telemetry poller stopped after %d polls (%d errors)", self._poll_count, self._error_count)

    def poll_once(self, dt: float) -> RobotState:
        state = self.source.read_state(dt)
        self.consumer(state)
        self._poll_count += 1
        return state

    def _run(self) -> None:
        last = time.monotonic()
        while not self._stop_event.is_set():
            now = time.monotonic()
            dt = now - last
            last = now
            try:
                self.poll_once(dt if dt > 0 else self.period)
            except Exception:
                self._error_count += 1
                logger.exception("Telemetry poll failed")
            self._stop_event.wait(timeout=self.period)
