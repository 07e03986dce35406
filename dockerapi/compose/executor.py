"""Запуск ``docker compose`` для сервисов проекта."""

from __future__ import annotations

import logging
import shlex
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from time import monotonic
from typing import List, Optional, Tuple

LOGGER = logging.getLogger(__name__)

COMPOSE_OPERATIONS: Tuple[str, ...] = ("pull", "up", "down", "restart", "stop", "start")
DOCKER_BINARY = "docker"
POLL_INTERVAL = 0.5


class ComposeExecutionError(Exception):
    """docker compose не удалось запустить или он завершился с ошибкой."""

    def __init__(self, operation: str, reason: str, output: str = "") -> None:
        self.operation = operation
        self.reason = reason
        self.output = output
        super().__init__(f"docker compose {operation} failed: {reason}\nOutput: {output}")


@dataclass(slots=True)
class ComposeExecutionResult:
    """Результат успешного запуска docker compose."""

    command: str
    output: str
    return_code: int


def build_compose_command(operation: str, service: str = "", profile: str = "") -> List[str]:
    """Собирает аргументы ``docker compose [--profile P] <operation> [service]``."""

    args = [DOCKER_BINARY, "compose"]
    if profile:
        args += ["--profile", profile]
    args.append(operation)
    if service:
        args.append(service)
    return args


def run_compose(
    project_path: str | Path,
    operation: str,
    service: str = "",
    profile: str = "",
    *,
    timeout_seconds: int = 0,
    cancel_event: Optional[threading.Event] = None,
) -> ComposeExecutionResult:
    """Выполняет docker compose в каталоге проекта и возвращает объединённый вывод.

    Каталог передаётся через ``cwd``, текущий каталог процесса не меняется, поэтому
    параллельные запросы не мешают друг другу. Процесс убивается, если истёк
    ``timeout_seconds`` (0 означает без ограничения) или установлен ``cancel_event``.
    """

    working_dir = Path(project_path).expanduser()
    if not working_dir.is_dir():
        raise ComposeExecutionError(
            operation, f"failed to change directory to {project_path}: not a directory"
        )

    args = build_compose_command(operation, service, profile)
    command = shlex.join(args)
    output, return_code = _run_blocking(
        operation, args, working_dir, timeout_seconds, cancel_event
    )
    if return_code != 0:
        raise ComposeExecutionError(operation, f"exit status {return_code}", output)

    LOGGER.info("docker compose %s completed successfully for service %s", operation, service)
    LOGGER.debug("Command output: %s", output)
    return ComposeExecutionResult(command=command, output=output, return_code=return_code)


def _run_blocking(
    operation: str,
    args: List[str],
    working_dir: Path,
    timeout_seconds: int,
    cancel_event: Optional[threading.Event],
) -> Tuple[str, int]:
    """Ждёт завершения команды, периодически проверяя отмену и таймаут."""

    deadline: Optional[float] = None if timeout_seconds <= 0 else monotonic() + timeout_seconds
    try:
        process = subprocess.Popen(
            args,
            cwd=str(working_dir),
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as exc:
        raise ComposeExecutionError(operation, str(exc)) from exc

    with process:
        while True:
            try:
                # communicate можно повторять после TimeoutExpired без потери вывода
                output, _ = process.communicate(timeout=POLL_INTERVAL)
                return output or "", process.returncode
            except subprocess.TimeoutExpired:
                if cancel_event is not None and cancel_event.is_set():
                    reason = "canceled: client disconnected"
                elif deadline is not None and monotonic() >= deadline:
                    reason = f"timed out after {timeout_seconds}s"
                else:
                    continue
            LOGGER.warning("Killing docker compose %s: %s", operation, reason)
            process.kill()
            output, _ = process.communicate()
            raise ComposeExecutionError(operation, reason, output or "")
