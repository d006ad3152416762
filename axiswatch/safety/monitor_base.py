"""
Base class for safety monitors.

A monitor consumes one RobotState per tick and emits SafetyEvents to its
listeners.  All mutable monitor state is touched under ``self._lock`` so
deactivation cannot interleave with an in-flight update.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, List

from axiswatch.interface.robot_state import RobotState
from axiswatch.safety.events import SafetyEvent

logger = logging.getLogger(__name__)

EventListener = Callable[[SafetyEvent], None]


class SafetyMonitor(ABC):
    """Abstract safety monitor.

    Subclasses implement ``initialize()``, ``update_state()`` and
    ``_reset_state()``.  ``update_state()`` is expected to hold ``self._lock``
    while it reads or mutates internal state.
    """

    def __init__(self, name: str):
        self.name = name
        self._active = False
        self._lock = threading.RLock()
        self._listeners: List[EventListener] = []

    @property
    def is_active(self) -> bool:
        return self._active

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the monitor (load limits, validate configuration)."""
        ...

    @abstractmethod
    def update_state(self, state: RobotState) -> None:
        """Evaluate one telemetry tick."""
        ...

    @abstractmethod
    def _reset_state(self) -> None:
        """Clear history, smoothing and sticky flags.  Called with the lock held."""
        ...

    def set_active(self, active: bool) -> None:
        with self._lock:
            if active == self._active:
                return
            self._active = active
            if not active:
                self._reset_state()
        logger.info("%s monitor %s", self.name, "activated" if active else "deactivated")

    def shutdown(self) -> None:
        self.set_active(False)
        self._listeners.clear()

    # -- Listeners -----------------------------------------------------------

    def add_listener(self, listener: EventListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: SafetyEvent) -> None:
        """Deliver ``event`` to every listener; a failing listener is logged and skipped."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("%s: event listener %r failed", self.name, listener)
