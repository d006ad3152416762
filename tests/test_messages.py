"""Tests for the pydantic safety event messages."""

import json

import pytest
from pydantic import ValidationError

from axiswatch.messages.safety import (
    JointDynamicsInfoModel,
    SafetyEventMessage,
    SingularityInfoModel,
)
from axiswatch.safety.events import SafetyEvent, SafetyEventType
from axiswatch.safety.manager import SafetyManager

from conftest import ZERO_CONFIG, make_state


@pytest.fixture
def singularity_event(every_tick_settings):
    manager = SafetyManager.from_settings(every_tick_settings)
    sub = manager.sink.subscribe()
    manager.ingest(make_state(ZERO_CONFIG, current_module="M", current_routine="r",
                              current_line=3, is_program_running=True))
    event = sub.get()
    manager.shutdown()
    return event


@pytest.fixture
def dynamics_event(every_tick_settings):
    manager = SafetyManager.from_settings(every_tick_settings)
    manager.set_monitor_active("Singularity Detector", False)
    sub = manager.sink.subscribe()
    manager.ingest(make_state([171.0, 0.0, 0.0, 0.0, 45.0, 0.0]))
    event = sub.get()
    manager.shutdown()
    return event


class TestFromEvent:
    def test_singularity(self, singularity_event):
        msg = SafetyEventMessage.from_event(singularity_event)
        assert msg.event_type is SafetyEventType.WARNING
        assert isinstance(msg.data, SingularityInfoModel)
        assert msg.data.singularity_type == "wrist"
        assert msg.robot_state.program_context == "M.r:3"

    def test_joint_dynamics(self, dynamics_event):
        msg = SafetyEventMessage.from_event(dynamics_event)
        assert isinstance(msg.data, JointDynamicsInfoModel)
        assert msg.data.event_name == "JointAngleLimit"
        assert msg.data.max_limit == 170.0

    def test_event_without_payload(self):
        event = SafetyEvent("Test", SafetyEventType.EMERGENCY, "stop")
        msg = SafetyEventMessage.from_event(event)
        assert msg.data is None
        assert msg.robot_state is None


class TestJson:
    def test_event_type_serialised_as_value(self, singularity_event):
        payload = json.loads(SafetyEventMessage.from_event(singularity_event).model_dump_json())
        assert payload["event_type"] == "warning"
        assert payload["data"]["kind"] == "singularity"

    def test_discriminator_restores_payload_type(self, dynamics_event):
        text = SafetyEventMessage.from_event(dynamics_event).model_dump_json()
        restored = SafetyEventMessage.model_validate_json(text)
        assert isinstance(restored.data, JointDynamicsInfoModel)
        assert restored.data.joint_index == 0

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            SafetyEventMessage.model_validate({
                "monitor_name": "x",
                "event_type": "info",
                "description": "d",
                "timestamp": 0.0,
                "data": {"kind": "thermal"},
            })

    def test_joint_index_range(self):
        with pytest.raises(ValidationError):
            JointDynamicsInfoModel(
                event_name="JointAngleLimit",
                joint_index=6,
                current_value=0.0,
                min_limit=0.0,
                max_limit=1.0,
                joint_angles=[0.0] * 6,
                joint_velocities=[0.0] * 6,
                joint_accelerations=[0.0] * 6,
                smoothing_enabled=True,
                smoothing_alpha=0.2,
                smoothing_window_size=8,
                detection_time=0.0,
            )

    def test_schema_example_validates(self):
        example = SafetyEventMessage.model_json_schema()["example"]
        msg = SafetyEventMessage.model_validate(example)
        assert msg.data.kind == "joint_dynamics"
