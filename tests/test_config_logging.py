import logging
from logging.handlers import TimedRotatingFileHandler

import pytest

from bustracker.config import Settings, load_settings
from bustracker.logger import get_logger, list_log_files, log_activity, setup_logging


def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("JWT_EXPIRY_HOURS", "2")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000, http://example.com")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("PORT", "9000")

    s = load_settings()
    assert s.database_url == "sqlite:///:memory:"
    assert s.jwt_expiry_hours == 2
    assert s.cors_origins == ["http://localhost:3000", "http://example.com"]
    assert s.log_level == "DEBUG"
    assert s.port == 9000


@pytest.mark.parametrize("bad", [{"jwt_secret": ""}, {"jwt_expiry_hours": 0}])
def test_settings_validation(bad):
    with pytest.raises(ValueError):
        Settings(**bad).validate()


def test_activity_lines_go_to_the_log_file(tmp_path):
    log_dir = tmp_path / "logs"
    logger = setup_logging("INFO", str(log_dir))
    setup_logging("INFO", str(log_dir))
    handlers = [h for h in logger.handlers if isinstance(h, TimedRotatingFileHandler)]
    try:
        assert len(handlers) == 1
        log_activity("BUS_ADDED", "driver-1", bus_number="MH12AB1234")
        get_logger("fleet").debug("not at INFO")
        handlers[0].flush()

        text = (log_dir / "bustracker.log").read_text(encoding="utf-8")
        assert 'ACTIVITY: BUS_ADDED - User: driver-1 - Details: {"bus_number": "MH12AB1234"}' in text
        assert "not at INFO" not in text
        assert list_log_files(str(log_dir)) == ["bustracker.log"]
    finally:
        for h in handlers:
            logger.removeHandler(h)
            h.close()


def test_console_handler_added_once():
    logger = setup_logging()
    setup_logging()
    assert sum(type(h) is logging.StreamHandler for h in logger.handlers) == 1


def test_list_log_files_without_directory(tmp_path):
    assert list_log_files("") == []
    assert list_log_files(str(tmp_path / "missing")) == []
