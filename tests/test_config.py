import json
import logging

import pytest

from synthlink.app.config import AppConfig, ConfigManager
from synthlink.logging_setup import configure_logging
from synthlink.transfer.orchestrator import TransferTimings


def test_missing_file_gives_defaults(tmp_path):
    manager = ConfigManager(tmp_path / "missing.json")
    assert manager.config == AppConfig.default()
    assert manager.device_prefix == "MicroFreak"
    assert manager.timings == TransferTimings()


def test_loads_values_and_ignores_unknown_keys(tmp_path):
    path = tmp_path / "synthlink.json"
    path.write_text(
        json.dumps(
            {
                "midi": {"device_prefix": "SE-02", "roland_device_id": 17, "colour": "red"},
                "timing": {"pacing_s": 0.03},
                "window": {},
            }
        )
    )

    manager = ConfigManager(path)

    assert manager.device_prefix == "SE-02"
    assert manager.config.midi.roland_device_id == 17
    assert manager.timings.pacing_s == 0.03
    assert manager.timings.name_timeout_s == 2.0


def test_broken_file_gives_defaults(tmp_path, caplog):
    path = tmp_path / "synthlink.json"
    path.write_text("{ nope")

    with caplog.at_level(logging.ERROR):
        manager = ConfigManager(path)

    assert manager.config == AppConfig.default()
    assert "Failed to load config" in caplog.text


def test_setting_prefix_saves(tmp_path):
    path = tmp_path / "synthlink.json"
    manager = ConfigManager(path)

    manager.device_prefix = "microfreak 2"

    assert json.loads(path.read_text())["midi"]["device_prefix"] == "microfreak 2"
    assert ConfigManager(path).device_prefix == "microfreak 2"


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    mido_level = logging.getLogger("mido").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("mido").setLevel(mido_level)


def test_log_level_precedence(monkeypatch, restore_logging):
    monkeypatch.setenv("SYNTHLINK_LOG_LEVEL", "warning")
    configure_logging()
    assert logging.getLogger().level == logging.WARNING

    configure_logging(cli_level="debug")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("mido").level == logging.INFO

    monkeypatch.delenv("SYNTHLINK_LOG_LEVEL")
    configure_logging(cli_level="nonsense")
    assert logging.getLogger().level == logging.INFO
