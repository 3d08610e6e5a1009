"""
test_config.py
--------------
Unit tests for icsjournal.config.
"""
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from icsjournal import config


class TestConfigFile:
    """Test load_config / save_config."""

    def test_env_override(self, tmp_path):
        assert config.config_path() == tmp_path / "config" / "config.json"

    def test_missing_file_written_with_defaults(self, tmp_path):
        cfg = config.load_config()
        assert cfg == config.DEFAULT_CONFIG
        assert json.loads(config.config_path().read_text()) == config.DEFAULT_CONFIG

    def test_file_values_override_defaults(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps({"strict_parsing": True, "extra": 1}))
        cfg = config.load_config(path)
        assert cfg["strict_parsing"] is True
        assert cfg["encrypt_new_files"] is True
        assert cfg["extra"] == 1

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config.save_config({"log_level": "DEBUG"}, path)
        assert config.load_config(path)["log_level"] == "DEBUG"


class TestDataDirectory:
    """Test data_directory lookup order."""

    def test_default_under_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert config.data_directory({}) == Path.home() / "icsjournal"

    def test_config_value(self, tmp_path):
        assert config.data_directory({"data_dir": str(tmp_path / "j")}) == tmp_path / "j"

    def test_env_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ICSJOURNAL_DIR", str(tmp_path / "env"))
        assert config.data_directory({"data_dir": str(tmp_path / "j")}) == tmp_path / "env"


class TestSetupLogging:
    """Test setup_logging."""

    def test_level_and_stream_handler(self):
        logger = config.setup_logging("debug")
        assert logger.name == "icsjournal"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1

    def test_unknown_level_falls_back(self):
        assert config.setup_logging("chatty").level == logging.WARNING

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "icsjournal.log"
        logger = config.setup_logging("INFO", str(log_file))
        rotating = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == 2_000_000
        assert rotating[0].backupCount == 3

        logging.getLogger("icsjournal.repository").info("hello")
        rotating[0].flush()
        assert "hello" in log_file.read_text(encoding="utf-8")

    def test_repeat_call_replaces_handlers(self, tmp_path):
        config.setup_logging("INFO", str(tmp_path / "a.log"))
        logger = config.setup_logging("INFO")
        assert len(logger.handlers) == 1
