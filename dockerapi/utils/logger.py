"""Вспомогательные функции для настройки логирования сервиса."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Final, List, Optional

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Уровни в терминах флага --log-level (включая привычные синонимы)
LOG_LEVELS: Final[Dict[str, int]] = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}


def resolve_log_level(level_name: str) -> int:
    """Преобразует строковый уровень логирования в числовой."""

    try:
        return LOG_LEVELS[level_name.strip().lower()]
    except KeyError as exc:
        raise ValueError(f"Unknown log level: {level_name}") from exc


def configure_logging(
    log_dir: Optional[Path] = None,
    *,
    log_file_name: str = "dockerapi.log",
    level_name: str = "info",
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Настраивает вывод в stdout и, если задан ``log_dir``, файл с ротацией."""

    log_level = resolve_log_level(level_name)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handlers: List[logging.Handler] = [stream_handler]

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / log_file_name,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,
    )
