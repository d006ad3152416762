"""Tests for the CSV replay command."""

import json

import pytest

from axiswatch.config.monitor_config import CONFIG_ENV_VAR, MonitorSettings
from axiswatch.replay import ReplayError, main, read_states, replay
from axiswatch.safety.manager import SafetyManager

HEADER = "j1,j2,j3,j4,j5,j6"


@pytest.fixture(autouse=True)
def no_env_config(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


def write_csv(tmp_path, rows, header=HEADER, name="run.csv"):
    path = tmp_path / name
    path.write_text("\n".join([header] + rows) + "\n")
    return path


@pytest.fixture
def wrist_csv(tmp_path):
    # zero configuration (wrist singular), then wrist bent clear of it
    return write_csv(tmp_path, ["0,0,0,0,0,0", "0,0,0,0,0,0", "0,0,0,0,45,0", "0,0,0,0,45,0"])


@pytest.fixture
def safe_csv(tmp_path):
    return write_csv(tmp_path, ["0,0,0,0,45,0"] * 3, name="safe.csv")


class TestReadStates:
    def test_default_dt(self, wrist_csv):
        states = list(read_states(wrist_csv, 0.02))
        assert len(states) == 4
        assert all(s.dt == 0.02 for s in states)
        assert states[2].joints.angles == (0.0, 0.0, 0.0, 0.0, 45.0, 0.0)

    def test_dt_column(self, tmp_path):
        path = write_csv(tmp_path, ["0.1,0,0,0,0,0,0", ",1,0,0,0,0,0"], header="dt," + HEADER)
        states = list(read_states(path, 0.05))
        assert [s.dt for s in states] == [0.1, 0.05]
        assert states[1].joints.angles[0] == 1.0

    def test_wrong_column_count(self, tmp_path):
        path = write_csv(tmp_path, ["0,0,0"], header="a,b,c")
        with pytest.raises(ReplayError, match="expected 6 angle columns"):
            list(read_states(path, 0.05))

    def test_bad_value_reports_line(self, tmp_path):
        path = write_csv(tmp_path, ["0,0,0,0,0,0", "0,x,0,0,0,0"])
        with pytest.raises(ReplayError, match=":3:"):
            list(read_states(path, 0.05))


class TestReplay:
    def test_events_are_tagged_with_tick(self, wrist_csv):
        manager = SafetyManager.from_settings(MonitorSettings())
        try:
            events = replay(wrist_csv, manager)
        finally:
            manager.shutdown()
        assert [(tick, e.event_type.value) for tick, e in events] == [(0, "warning"), (2, "resolved")]


class TestMain:
    def test_table_output(self, wrist_csv, capsys):
        assert main([str(wrist_csv)]) == 0
        out = capsys.readouterr().out
        assert "Tick" in out and "Severity" in out
        assert "Entering Wrist Singularity" in out
        assert "Exiting Wrist Singularity" in out

    def test_no_events(self, safe_csv, capsys):
        assert main([str(safe_csv)]) == 0
        assert "(no events)" in capsys.readouterr().out

    def test_json_output(self, wrist_csv, capsys):
        assert main([str(wrist_csv), "--json"]) == 0
        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [line["tick"] for line in lines] == [0, 2]
        assert lines[0]["event"]["data"]["singularity_type"] == "wrist"

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.csv")]) == 1
        assert "Cannot replay" in capsys.readouterr().err

    def test_bad_columns(self, tmp_path, capsys):
        path = write_csv(tmp_path, ["0,0"], header="a,b")
        assert main([str(path)]) == 1

    def test_invalid_config(self, wrist_csv, tmp_path, capsys):
        config = tmp_path / "bad.json"
        config.write_text(json.dumps({"dynamics": {"window_size": 1}}))
        assert main([str(wrist_csv), "--config", str(config)]) == 1
        assert "Invalid configuration" in capsys.readouterr().err

    def test_config_with_wrong_type(self, wrist_csv, tmp_path, capsys):
        config = tmp_path / "typed.json"
        config.write_text(json.dumps({"dynamics": {"update_stride": "3"}}))
        assert main([str(wrist_csv), "--config", str(config)]) == 1
        assert "update_stride must be an integer" in capsys.readouterr().err

    def test_fail_on(self, wrist_csv, safe_csv):
        assert main([str(wrist_csv), "--fail-on", "warning"]) == 2
        assert main([str(wrist_csv), "--fail-on", "critical"]) == 0
        assert main([str(safe_csv), "--fail-on", "info"]) == 0

    def test_stride_override(self, tmp_path, capsys):
        rows = ["171,0,0,0,45,0"]
        path = write_csv(tmp_path, rows)
        main([str(path), "--stride", "1", "--json"])
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["event"]["data"]["event_name"] == "JointAngleLimit"
