"""Неизменяемая модель настроек сервиса и её значения по умолчанию."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

# DEFAULTS используется как при чтении окружения, так и для значений флагов CLI
DEFAULTS: Dict[str, Any] = {
    "auth_token": "",
    "allow_restart": True,
    "allow_stop": True,
    "allow_start": True,
    "allow_remove": False,
    "allow_pull": True,
    "allow_compose": True,
    "port": 8080,
    "log_level": "info",
    "log_dir": None,
    "compose_project_path": "./",
    "compose_timeout": 0,
}


@dataclass(frozen=True, slots=True)
class Settings:
    """Конфигурация процесса: токен, разрешённые операции, порт и путь Compose-проекта.

    Пустой ``auth_token`` отключает проверку авторизации целиком. Это небезопасный
    режим, оставленный для совместимости; ``main`` всегда генерирует токен, если он
    не был передан.
    """

    auth_token: str = DEFAULTS["auth_token"]
    allow_restart: bool = DEFAULTS["allow_restart"]
    allow_stop: bool = DEFAULTS["allow_stop"]
    allow_start: bool = DEFAULTS["allow_start"]
    allow_remove: bool = DEFAULTS["allow_remove"]
    allow_pull: bool = DEFAULTS["allow_pull"]
    allow_compose: bool = DEFAULTS["allow_compose"]
    port: int = DEFAULTS["port"]
    log_level: str = DEFAULTS["log_level"]
    log_dir: Optional[str] = DEFAULTS["log_dir"]
    compose_project_path: str = DEFAULTS["compose_project_path"]
    compose_timeout: int = DEFAULTS["compose_timeout"]

    def allowed_operations_summary(self) -> str:
        """Строка с перечнем разрешённых операций для вывода при старте."""

        return (
            "Allowed operations: "
            f"restart={_flag(self.allow_restart)}, stop={_flag(self.allow_stop)}, "
            f"start={_flag(self.allow_start)}, remove={_flag(self.allow_remove)}, "
            f"pull={_flag(self.allow_pull)}, compose={_flag(self.allow_compose)}"
        )


def _flag(value: bool) -> str:
    return "true" if value else "false"
