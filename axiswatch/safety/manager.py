"""
Safety manager: owns the monitors, feeds them telemetry and routes events.

Telemetry may be produced on any thread (poller, simulator) through
``submit()``; it lands in a single-producer/single-consumer queue and is
processed on exactly one context, either the manager's own thread
(``start()``) or whoever calls ``process_pending()``.

Every event a monitor emits gets a robot-state snapshot attached (if the
monitor did not attach one), is logged according to ``min_log_level`` and is
published to the SafetyEventSink.
"""

from __future__ import annotations

import dataclasses
import logging
import queue
import threading
from typing import Dict, List, Optional

from axiswatch.config.monitor_config import MonitorSettings
from axiswatch.interface.robot_state import RobotState, RobotStateSnapshot
from axiswatch.kinematics.dh_params import IRB6700_DH_LINKS
from axiswatch.safety.events import SafetyEvent, SafetyEventType
from axiswatch.safety.joint_dynamics_monitor import JointDynamicsMonitor
from axiswatch.safety.monitor_base import SafetyMonitor
from axiswatch.safety.singularity_monitor import SingularityDetectionMonitor
from axiswatch.safety.sink import SafetyEventSink

logger = logging.getLogger(__name__)


class SafetyManager:
    """Runs a set of SafetyMonitors over a telemetry stream.

    Typical usage::

        manager = SafetyManager.from_settings(settings, source=robot)
        sub = manager.sink.subscribe()
        manager.start()
        manager.submit(state)      # from the telemetry thread
        ...
        manager.stop()
    """

    def __init__(
        self,
        settings: Optional[MonitorSettings] = None,
        sink: Optional[SafetyEventSink] = None,
    ):
        self.settings = settings or MonitorSettings()
        self.sink = sink or SafetyEventSink(default_queue_size=self.settings.event_queue_size)
        self._min_log_level = SafetyEventType.parse(self.settings.min_log_level)

        self._monitors: Dict[str, SafetyMonitor] = {}
        self._ingest: queue.Queue[RobotState] = queue.Queue(maxsize=self.settings.ingest_queue_size)
        self._current_state: Optional[RobotState] = None

        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        # Diagnostics
        self._ticks_processed = 0
        self._monitor_errors = 0
        self._dropped_samples = 0

    @classmethod
    def from_settings(
        cls,
        settings: Optional[MonitorSettings] = None,
        source=None,
        sink: Optional[SafetyEventSink] = None,
    ) -> SafetyManager:
        """Build a manager with the singularity and joint dynamics monitors.

        ``source`` is an optional RobotStateSource providing DH parameters
        and rated joint limits.  Without one the IRB 6700 defaults are used.
        """
        settings = settings or MonitorSettings()
        links = source.get_link_parameters() if source is not None else IRB6700_DH_LINKS
        joint_limits = source.get_joint_limits() if source is not None else None

        manager = cls(settings, sink)
        manager.add_monitor(SingularityDetectionMonitor(settings, links=links))
        manager.add_monitor(JointDynamicsMonitor(settings, source_limits=joint_limits))
        manager.initialize()
        return manager

    # -- Monitors ------------------------------------------------------------

    def add_monitor(self, monitor: SafetyMonitor) -> None:
        if monitor.name in self._monitors:
            raise ValueError(f"Monitor {monitor.name!r} already registered")
        self._monitors[monitor.name] = monitor
        monitor.add_listener(self._on_event)

    def get_monitor(self, name: str) -> Optional[SafetyMonitor]:
        return self._monitors.get(name)

    @property
    def monitors(self) -> List[SafetyMonitor]:
        return list(self._monitors.values())

    def initialize(self) -> None:
        for monitor in self._monitors.values():
            try:
                monitor.initialize()
            except Exception:
                logger.exception("Failed to initialize safety monitor %s", monitor.name)

    def set_monitor_active(self, name: str, active: bool) -> bool:
        monitor = self._monitors.get(name)
        if monitor is None:
            logger.warning("Unknown safety monitor %r", name)
            return False
        monitor.set_active(active)
        return True

    def active_monitors(self) -> List[str]:
        return [name for name, m in self._monitors.items() if m.is_active]

    # -- Ingest --------------------------------------------------------------

    def submit(self, state: RobotState) -> None:
        """Queue a telemetry tick for processing.  Never blocks."""
        while True:
            try:
                self._ingest.put_nowait(state)
                return
            except queue.Full:
                try:
                    self._ingest.get_nowait()
                    self._dropped_samples += 1
                    logger.debug("Ingest queue full, dropped oldest telemetry sample")
                except queue.Empty:
                    pass

    def process_pending(self, max_items: Optional[int] = None) -> int:
        """Process queued ticks on the calling thread.  Returns the count processed."""
        count = 0
        while max_items is None or count < max_items:
            try:
                state = self._ingest.get_nowait()
            except queue.Empty:
                break
            self.ingest(state)
            count += 1
        return count

    def ingest(self, state: RobotState) -> None:
        """Run every monitor on one tick.  Monitor faults are logged, not raised."""
        self._current_state = state
        try:
            for monitor in list(self._monitors.values()):
                try:
                    monitor.update_state(state)
                except Exception:
                    self._monitor_errors += 1
                    logger.exception("Error updating safety monitor %s", monitor.name)
        finally:
            self._current_state = None
        self._ticks_processed += 1

    # -- Processing thread ---------------------------------------------------

    def start(self) -> None:
        if self._running:
            logger.warning("Safety manager already running")
            return
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="SafetyManager", daemon=True)
        self._thread.start()
        logger.info("Safety manager started with monitors: %s", ", ".join(self._monitors))

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        logger.info(
            "Safety manager stopped after %d ticks (%d monitor errors, %d dropped samples)",
            self._ticks_processed,
            self._monitor_errors,
            self._dropped_samples,
        )

    def shutdown(self) -> None:
        self.stop()
        self.process_pending()
        for monitor in self._monitors.values():
            try:
                monitor.shutdown()
            except Exception:
                logger.exception("Error shutting down safety monitor %s", monitor.name)
        self.sink.close()

    @property
    def is_running(self) -> bool:
        return self._running

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                state = self._ingest.get(timeout=0.05)
            except queue.Empty:
                continue
            self.ingest(state)

    # -- Stats ---------------------------------------------------------------

    def get_stats(self) -> dict:
        return {
            "ticks_processed": self._ticks_processed,
            "monitor_errors": self._monitor_errors,
            "dropped_samples": self._dropped_samples,
            "pending": self._ingest.qsize(),
            "events_published": self.sink.published_count,
            "active_monitors": self.active_monitors(),
        }

    # -- Events --------------------------------------------------------------

    def _on_event(self, event: SafetyEvent) -> None:
        if event.robot_state is None and self._current_state is not None:
            event = dataclasses.replace(
                event, robot_state=RobotStateSnapshot.from_state(self._current_state)
            )

        if event.is_resolved or event.event_type.rank >= self._min_log_level.rank:
            context = event.robot_state.program_context() if event.robot_state else "No program running"
            logger.log(event.event_type.log_level, "%s | Program: %s", event, context)

        self.sink.publish(event)
