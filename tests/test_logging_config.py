"""Tests for setup_logging and resolve_level."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from axiswatch.utils import logging_config
from axiswatch.utils.logging_config import (
    BACKUP_COUNT,
    LOG_LEVEL_ENV_VAR,
    MAX_BYTES,
    resolve_level,
    setup_logging,
)


@pytest.fixture
def clean_root(monkeypatch):
    monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)
    monkeypatch.setattr(logging_config, "load_dotenv", lambda: False)
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    root.handlers = []
    yield root
    for h in root.handlers:
        h.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


@pytest.fixture
def restore_logger_levels():
    names = []

    def track(name):
        names.append((name, logging.getLogger(name).level))
        return name

    yield track
    for name, level in names:
        logging.getLogger(name).setLevel(level)


class TestResolveLevel:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("warning", logging.WARNING),
            ("DEBUG", logging.DEBUG),
            (" Info ", logging.INFO),
            (logging.CRITICAL, logging.CRITICAL),
        ],
    )
    def test_names_and_numbers(self, value, expected):
        assert resolve_level(value) == expected

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            resolve_level("chatty")


class TestSetupLogging:
    def test_stderr_only(self, clean_root):
        assert setup_logging() is None
        assert len(clean_root.handlers) == 1
        assert clean_root.level == logging.WARNING

    def test_string_level(self, clean_root):
        setup_logging("info")
        assert clean_root.level == logging.INFO

    def test_debug_overrides_level(self, clean_root):
        setup_logging(logging.ERROR, debug=True)
        assert clean_root.level == logging.DEBUG

    def test_env_overrides_level(self, clean_root, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "error")
        setup_logging("info")
        assert clean_root.level == logging.ERROR

    def test_debug_beats_env(self, clean_root, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "error")
        setup_logging(debug=True)
        assert clean_root.level == logging.DEBUG

    def test_bad_env_level_is_ignored(self, clean_root, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "loud")
        setup_logging("info")
        assert clean_root.level == logging.INFO

    def test_rotating_file(self, clean_root, tmp_path):
        target = tmp_path / "nested" / "replay.log"
        path = setup_logging(log_file=str(target))
        assert path == target
        assert isinstance(path, Path)
        assert target.parent.exists()
        rotating = [h for h in clean_root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == MAX_BYTES
        assert rotating[0].backupCount == BACKUP_COUNT

    def test_verbose_loggers(self, clean_root, restore_logger_levels):
        name = restore_logger_levels("axiswatch.dynamics.smoothing")
        setup_logging("warning", verbose=[name])
        assert clean_root.level == logging.WARNING
        assert logging.getLogger(name).level == logging.DEBUG
        assert logging.getLogger("axiswatch.safety.manager").getEffectiveLevel() == logging.WARNING
