import logging

from querydrift.config.logger_config import setup_logger
from querydrift.config.settings import Settings


def test_settings_read_env(monkeypatch):
    monkeypatch.setenv("QUERYDRIFT_BATCH_SIZE", "9")
    monkeypatch.setenv("QUERYDRIFT_AUTOMATION_DIR", "/srv/automation")

    s = Settings()

    assert s.batch_size == 9
    assert s.automation_dir == "/srv/automation"
    assert s.driver_connect_attempts == 10


def test_setup_logger_is_idempotent(tmp_path):
    logger = setup_logger("querydrift.test_logging", log_dir=str(tmp_path), level="warning")
    again = setup_logger("querydrift.test_logging", debug_mode=True)

    assert logger is again
    assert len(logger.handlers) == 2
    assert logger.level == logging.DEBUG
    assert len(list(tmp_path.glob("run_*.log"))) == 1


def test_setup_logger_finds_its_console_handler_by_name(capsys):
    name = "querydrift.test_logging_named"
    logger = setup_logger(name)
    logger.propagate = False
    setup_logger(name)

    assert [h.get_name() for h in logger.handlers] == ["querydrift-console"]
    assert not hasattr(logger, "_querydrift_console")

    logger.warning("hello")
    assert "hello" in capsys.readouterr().err
