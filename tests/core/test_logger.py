import inspect
import sys
from uuid import uuid4

import pytest


def _flush_loguru(logger_module) -> None:
    complete_result = logger_module.logger.complete()
    if inspect.isawaitable(complete_result):
        iterator = complete_result.__await__()
        while True:
            try:
                next(iterator)
            except StopIteration:
                break


def _latest_log_file(log_dir, pattern):
    files = sorted(log_dir.glob(pattern))
    assert files, f"missing log file pattern: {pattern}"
    return files[-1]


_KEYS = ("log_level", "log_path", "log_retention_days", "log_console_enabled")


@pytest.fixture()
def configured_logger(tmp_path):
    from market_assistant.core.config import settings
    import market_assistant.core.logger as logger_module

    original = {key: getattr(settings, key) for key in _KEYS}

    settings.log_level = "INFO"
    settings.log_path = str(tmp_path)
    settings.log_retention_days = 3
    settings.log_console_enabled = False
    logger_module.setup_logger(force=True)

    try:
        yield logger_module, tmp_path
    finally:
        for key, value in original.items():
            setattr(settings, key, value)
        logger_module.setup_logger(force=True)


def test_file_output_written(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"file-output-{uuid4()}"

    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "app_*.log").read_text(encoding="utf-8")
    assert message in content


def test_errors_also_written_to_error_log(configured_logger):
    logger_module, log_dir = configured_logger
    info_message = f"info-{uuid4()}"
    error_message = f"error-{uuid4()}"

    logger_module.logger.info(info_message)
    logger_module.logger.error(error_message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "error_*.log").read_text(encoding="utf-8")
    assert error_message in content
    assert info_message not in content


def test_setup_logger_idempotent_when_forced_twice(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"idempotent-{uuid4()}"

    logger_module.setup_logger(force=True)
    logger_module.setup_logger(force=True)
    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "app_*.log").read_text(encoding="utf-8")
    assert content.count(message) == 1


def test_session_logger_binds_mode(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"session-{uuid4()}"

    records = []
    sink_id = logger_module.logger.add(lambda m: records.append(m.record), level="INFO")
    try:
        logger_module.get_session_logger("create_sweep").info(message)
    finally:
        logger_module.logger.remove(sink_id)

    record = next(r for r in records if r["message"] == message)
    assert record["extra"]["mode"] == "create_sweep"
    assert record["extra"]["module"] == "ControlLoop"


def test_console_sink_degrades_when_stdout_missing(tmp_path, monkeypatch):
    from market_assistant.core.config import settings
    import market_assistant.core.logger as logger_module

    original = {key: getattr(settings, key) for key in _KEYS}
    monkeypatch.setattr(sys, "stdout", None, raising=False)

    settings.log_level = "INFO"
    settings.log_path = str(tmp_path)
    settings.log_retention_days = 3
    settings.log_console_enabled = True

    try:
        logger_module.setup_logger(force=True)
        message = f"windowed-log-{uuid4()}"
        logger_module.logger.info(message)
        _flush_loguru(logger_module)

        content = _latest_log_file(tmp_path, "app_*.log").read_text(encoding="utf-8")
        assert message in content
        assert "未检测到可用控制台输出流" in content
    finally:
        for key, value in original.items():
            setattr(settings, key, value)
        monkeypatch.undo()
        logger_module.setup_logger(force=True)
