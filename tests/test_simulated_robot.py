"""Tests for the simulated robot source and the telemetry poller."""

import threading

import numpy as np
import pytest

from axiswatch.interface.poller import TelemetryPoller
from axiswatch.interface.source import IRB6700_RATED_LIMITS, SimulatedRobot
from axiswatch.kinematics.dh_params import IRB6700_DH_LINKS
from axiswatch.safety.manager import SafetyManager


class TestSimulatedRobot:
    def test_starts_at_zero(self):
        robot = SimulatedRobot()
        assert robot.get_joint_configuration().angles == (0.0,) * 6

    def test_initial_angles(self):
        robot = SimulatedRobot(initial_angles=[1, 2, 3, 4, 5, 6])
        assert robot.get_joint_configuration().angles == (1.0, 2.0, 3.0, 4.0, 5.0, 6.0)

    def test_interpolates_toward_target(self):
        robot = SimulatedRobot(interp_factor=0.5)
        robot.set_target([10.0, 0, 0, 0, 0, 0])
        assert robot.get_joint_configuration()[0] == pytest.approx(5.0)
        assert robot.get_joint_configuration()[0] == pytest.approx(7.5)

    def test_teleport(self):
        robot = SimulatedRobot()
        robot.teleport([0, 0, 0, 0, 45.0, 0])
        assert robot.get_joint_configuration()[4] == pytest.approx(45.0)

    def test_bad_target(self):
        with pytest.raises(ValueError):
            SimulatedRobot().set_target([1.0, 2.0])

    def test_bad_interp_factor(self):
        with pytest.raises(ValueError):
            SimulatedRobot(interp_factor=0.0)

    def test_disconnected_reports_no_joints(self):
        robot = SimulatedRobot()
        robot.disconnect()
        assert not robot.is_connected
        state = robot.read_state(0.05)
        assert not state.has_valid_joint_data

    def test_model_description(self):
        robot = SimulatedRobot()
        assert robot.get_link_parameters() == list(IRB6700_DH_LINKS)
        assert robot.get_joint_limits() == list(IRB6700_RATED_LIMITS)

    def test_unknown_model(self):
        robot = SimulatedRobot(links=None, joint_limits=None)
        assert robot.get_link_parameters() is None
        assert robot.get_joint_limits() is None


class TestTelemetryPoller:
    def test_invalid_frequency(self):
        with pytest.raises(ValueError):
            TelemetryPoller(SimulatedRobot(), lambda s: None, frequency=0)

    def test_poll_once(self):
        received = []
        poller = TelemetryPoller(SimulatedRobot(), received.append)
        state = poller.poll_once(0.02)
        assert received == [state]
        assert state.dt == 0.02
        assert poller.poll_count == 1

    def test_background_polling(self):
        got_three = threading.Event()
        received = []

        def consume(state):
            received.append(state)
            if len(received) >= 3:
                got_three.set()

        poller = TelemetryPoller(SimulatedRobot(), consume, frequency=200.0)
        poller.start()
        try:
            assert got_three.wait(timeout=2.0)
        finally:
            poller.stop()
        assert not poller.is_running
        assert all(s.dt > 0 for s in received)

    def test_consumer_errors_do_not_stop_polling(self, caplog):
        calls = []
        done = threading.Event()

        def flaky(state):
            calls.append(state)
            if len(calls) >= 2:
                done.set()
            raise RuntimeError("consumer down")

        poller = TelemetryPoller(SimulatedRobot(), flaky, frequency=200.0)
        with caplog.at_level("ERROR"):
            poller.start()
            try:
                assert done.wait(timeout=2.0)
            finally:
                poller.stop()
        assert "Telemetry poll failed" in caplog.text


class TestPipeline:
    def test_poller_feeds_manager(self, every_tick_settings):
        robot = SimulatedRobot(initial_angles=[0, 0, 0, 0, 45.0, 0])
        manager = SafetyManager.from_settings(every_tick_settings, source=robot)
        warned = threading.Event()
        manager.sink.subscribe(callback=lambda e: warned.set(), name="test")
        poller = TelemetryPoller(robot, manager.submit, frequency=200.0)

        manager.start()
        poller.start()
        try:
            robot.teleport([0, 0, 0, 0, 0, 0])
            assert warned.wait(timeout=2.0)
        finally:
            poller.stop()
            manager.shutdown()

        singular = manager.get_monitor("Singularity Detector")
        assert not singular.is_active
        assert manager.get_stats()["ticks_processed"] > 0

    def test_simulated_sweep_stays_within_limits(self, every_tick_settings):
        robot = SimulatedRobot(initial_angles=[0, 0, 0, 0, 45.0, 0], interp_factor=0.1)
        manager = SafetyManager.from_settings(every_tick_settings, source=robot)
        sub = manager.sink.subscribe()
        robot.set_target([20.0, 0, 0, 0, 45.0, 0])
        for _ in range(30):
            manager.ingest(robot.read_state(0.05))
        manager.shutdown()
        assert sub.drain() == []
        np.testing.assert_allclose(robot.get_joint_configuration()[0], 20.0, atol=1.0)
