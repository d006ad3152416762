"""Tests for the safety manager: ingest queue, event routing and lifecycle."""

import threading

import pytest

from axiswatch.config.monitor_config import MonitorSettings
from axiswatch.interface.source import SimulatedRobot
from axiswatch.safety.events import SafetyEvent, SafetyEventType
from axiswatch.safety.joint_dynamics_monitor import MONITOR_NAME as DYNAMICS_NAME
from axiswatch.safety.manager import SafetyManager
from axiswatch.safety.monitor_base import SafetyMonitor
from axiswatch.safety.singularity_monitor import MONITOR_NAME as SINGULARITY_NAME
from axiswatch.safety.singularity_monitor import SingularityDetectionMonitor

from conftest import SAFE_CONFIG, ZERO_CONFIG, make_state


class ExplodingMonitor(SafetyMonitor):
    def __init__(self):
        super().__init__("Exploding")
        self.calls = 0

    def initialize(self):
        self.set_active(True)

    def update_state(self, state):
        self.calls += 1
        raise RuntimeError("sensor exploded")

    def _reset_state(self):
        pass


class InfoMonitor(SafetyMonitor):
    """Emits one event of a fixed severity per tick."""

    def __init__(self, event_type):
        super().__init__("Info")
        self.event_type = event_type

    def initialize(self):
        self.set_active(True)

    def update_state(self, state):
        self._emit(SafetyEvent(self.name, self.event_type, "ping"))

    def _reset_state(self):
        pass


@pytest.fixture
def manager(every_tick_settings):
    m = SafetyManager.from_settings(every_tick_settings)
    yield m
    m.shutdown()


class TestConstruction:
    def test_default_monitors(self, manager):
        assert [m.name for m in manager.monitors] == [SINGULARITY_NAME, DYNAMICS_NAME]
        assert manager.active_monitors() == [SINGULARITY_NAME, DYNAMICS_NAME]

    def test_duplicate_name_rejected(self, manager):
        with pytest.raises(ValueError, match="already registered"):
            manager.add_monitor(SingularityDetectionMonitor())

    def test_from_source_uses_its_limits(self, every_tick_settings):
        robot = SimulatedRobot()
        m = SafetyManager.from_settings(every_tick_settings, source=robot)
        try:
            assert m.get_monitor(DYNAMICS_NAME).limits.source == "kinematic"
            assert m.get_monitor(SINGULARITY_NAME).kinematics_available
        finally:
            m.shutdown()

    def test_source_without_model(self, every_tick_settings):
        robot = SimulatedRobot(links=None, joint_limits=None)
        m = SafetyManager.from_settings(every_tick_settings, source=robot)
        try:
            assert not m.get_monitor(SINGULARITY_NAME).kinematics_available
            assert m.get_monitor(DYNAMICS_NAME).limits.source == "manual"
        finally:
            m.shutdown()


class TestProcessing:
    def test_submit_then_process_pending(self, manager):
        sub = manager.sink.subscribe()
        manager.submit(make_state(ZERO_CONFIG))
        manager.submit(make_state(ZERO_CONFIG))
        assert manager.get_stats()["pending"] == 2
        assert manager.process_pending() == 2
        events = sub.drain()
        assert len(events) == 1
        assert events[0].monitor_name == SINGULARITY_NAME
        assert manager.get_stats()["ticks_processed"] == 2

    def test_process_pending_limit(self, manager):
        for _ in range(3):
            manager.submit(make_state(SAFE_CONFIG))
        assert manager.process_pending(max_items=2) == 2
        assert manager.get_stats()["pending"] == 1

    def test_bounded_ingest_drops_oldest(self):
        m = SafetyManager.from_settings(MonitorSettings(ingest_queue_size=2, update_stride=1))
        sub = m.sink.subscribe()
        try:
            m.submit(make_state(ZERO_CONFIG))  # evicted
            m.submit(make_state(SAFE_CONFIG))
            m.submit(make_state(SAFE_CONFIG))
            assert m.get_stats()["dropped_samples"] == 1
            m.process_pending()
            assert sub.drain() == []
        finally:
            m.shutdown()

    def test_default_ingest_is_bounded(self):
        m = SafetyManager.from_settings(MonitorSettings())
        try:
            for _ in range(1025):
                m.submit(make_state(SAFE_CONFIG))
            stats = m.get_stats()
            assert stats["pending"] == 1024
            assert stats["dropped_samples"] == 1
        finally:
            m.shutdown()

    def test_snapshot_attached(self, manager):
        sub = manager.sink.subscribe()
        manager.ingest(make_state(
            ZERO_CONFIG,
            motor_state="on",
            is_program_running=True,
            current_module="MainModule",
            current_routine="main",
            current_line=12,
        ))
        event = sub.get()
        assert event.robot_state is not None
        assert event.robot_state.joint_angles == tuple(ZERO_CONFIG)
        assert event.robot_state.motor_state == "on"
        assert event.robot_state.program_context() == "MainModule.main:12"

    def test_monitor_fault_is_isolated(self, manager, caplog):
        exploding = ExplodingMonitor()
        manager.add_monitor(exploding)
        exploding.initialize()
        sub = manager.sink.subscribe()
        with caplog.at_level("ERROR"):
            manager.ingest(make_state(ZERO_CONFIG))
        assert exploding.calls == 1
        assert "Error updating safety monitor Exploding" in caplog.text
        assert manager.get_stats()["monitor_errors"] == 1
        assert len(sub.drain()) == 1


class TestActivation:
    def test_set_monitor_active(self, manager):
        assert manager.set_monitor_active(SINGULARITY_NAME, False)
        assert manager.active_monitors() == [DYNAMICS_NAME]
        sub = manager.sink.subscribe()
        manager.ingest(make_state(ZERO_CONFIG))
        assert sub.drain() == []

    def test_unknown_monitor(self, manager):
        assert manager.set_monitor_active("Nope", True) is False


class TestLogging:
    def test_below_threshold_not_logged(self, every_tick_settings, caplog):
        m = SafetyManager(every_tick_settings)
        m.add_monitor(InfoMonitor(SafetyEventType.INFO))
        m.initialize()
        with caplog.at_level("DEBUG", logger="axiswatch.safety.manager"):
            m.ingest(make_state(SAFE_CONFIG))
        assert "ping" not in caplog.text
        assert m.sink.published_count == 1

    def test_resolved_always_logged(self, every_tick_settings, caplog):
        m = SafetyManager(every_tick_settings)
        m.add_monitor(InfoMonitor(SafetyEventType.RESOLVED))
        m.initialize()
        with caplog.at_level("INFO", logger="axiswatch.safety.manager"):
            m.ingest(make_state(SAFE_CONFIG))
        assert "RESOLVED - Info: ping | Program: No program running" in caplog.text

    def test_critical_logged_at_error(self, every_tick_settings, caplog):
        m = SafetyManager(every_tick_settings)
        m.add_monitor(InfoMonitor(SafetyEventType.CRITICAL))
        m.initialize()
        with caplog.at_level("INFO", logger="axiswatch.safety.manager"):
            m.ingest(make_state(SAFE_CONFIG))
        records = [r for r in caplog.records if "ping" in r.getMessage()]
        assert records[0].levelname == "ERROR"

    def test_info_threshold_logs_info(self, caplog):
        m = SafetyManager(MonitorSettings(min_log_level="info"))
        m.add_monitor(InfoMonitor(SafetyEventType.INFO))
        m.initialize()
        with caplog.at_level("INFO", logger="axiswatch.safety.manager"):
            m.ingest(make_state(SAFE_CONFIG))
        assert "INFO - Info: ping" in caplog.text


class TestThreaded:
    def test_background_processing(self, manager):
        received = threading.Event()
        events = []

        def on_event(event):
            events.append(event)
            received.set()

        manager.sink.subscribe(callback=on_event, name="test")
        manager.start()
        assert manager.is_running
        manager.submit(make_state(ZERO_CONFIG))
        assert received.wait(timeout=2.0)
        manager.stop()
        assert not manager.is_running
        assert events[0].event_type is SafetyEventType.WARNING

    def test_start_twice_is_harmless(self, manager):
        manager.start()
        manager.start()
        manager.stop()
        assert not manager.is_running

    def test_shutdown_deactivates_monitors(self, every_tick_settings):
        m = SafetyManager.from_settings(every_tick_settings)
        m.start()
        m.shutdown()
        assert m.active_monitors() == []
        assert m.sink.subscriber_count == 0
