"""Проверки подсистемы логирования."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from dockerapi.utils.logger import configure_logging, resolve_log_level


def test_configure_logging_creates_file(tmp_path: Path) -> None:
    """С log_dir появляется файл логов и запись в нём."""

    log_dir = tmp_path / "logs"
    configure_logging(log_dir, level_name="info", max_bytes=1024, backup_count=1)

    logger = logging.getLogger("dockerapi.test")
    logger.info("log entry")
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_file = log_dir / "dockerapi.log"
    assert log_file.exists()
    assert "log entry" in log_file.read_text(encoding="utf-8")


def test_configure_logging_stdout_only() -> None:
    configure_logging(level_name="warn")
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1


@pytest.mark.parametrize(
    ("name", "level"),
    [
        ("trace", logging.DEBUG),
        ("DEBUG", logging.DEBUG),
        ("info", logging.INFO),
        ("warn", logging.WARNING),
        ("error", logging.ERROR),
        ("panic", logging.CRITICAL),
    ],
)
def test_resolve_log_level(name: str, level: int) -> None:
    assert resolve_log_level(name) == level


def test_resolve_log_level_invalid() -> None:
    """Неизвестный уровень логирования приводит к ValueError."""

    with pytest.raises(ValueError):
        resolve_log_level("INVALID")
