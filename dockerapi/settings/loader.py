"""Загрузка настроек из переменных окружения и аргументов командной строки."""

from __future__ import annotations

import argparse
import logging
import os
import secrets
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from dockerapi.settings.exceptions import SettingsValidationError
from dockerapi.settings.models import DEFAULTS, Settings
from dockerapi.settings.validators import (
    CompositeValidator,
    EnumValidator,
    RangeValidator,
    TypeValidator,
    Validator,
)
from dockerapi.utils.logger import LOG_LEVELS

LOGGER = logging.getLogger(__name__)

TOKEN_LENGTH = 32

# Имена переменных окружения для каждого поля Settings
ENV_VARIABLES: Dict[str, str] = {
    "auth_token": "AUTH_TOKEN",
    "allow_restart": "ALLOW_RESTART",
    "allow_stop": "ALLOW_STOP",
    "allow_start": "ALLOW_START",
    "allow_remove": "ALLOW_REMOVE",
    "allow_pull": "ALLOW_PULL",
    "allow_compose": "ALLOW_COMPOSE",
    "port": "PORT",
    "log_level": "LOG_LEVEL",
    "log_dir": "LOG_DIR",
    "compose_project_path": "COMPOSE_PATH",
    "compose_timeout": "COMPOSE_TIMEOUT",
}

_VALIDATORS: Dict[str, Validator] = {
    "port": CompositeValidator([TypeValidator(int), RangeValidator(1, 65535)]),
    "log_level": CompositeValidator([TypeValidator(str), EnumValidator(LOG_LEVELS)]),
    "compose_timeout": CompositeValidator([TypeValidator(int), RangeValidator(0)]),
}

_TRUE_VALUES = ("1", "t", "true")
_FALSE_VALUES = ("0", "f", "false")


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Одноразовые действия CLI, не относящиеся к конфигурации сервиса."""

    show_version: bool = False
    show_api_help: bool = False


def parse_bool_flag(value: str) -> bool:
    """Разбирает значение булевого флага (``--allow-remove=false``)."""

    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {value!r}")


def read_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Собирает значения настроек из окружения поверх значений по умолчанию.

    Булевы переменные считаются включёнными только при точном значении ``"true"``,
    некорректные числа молча заменяются значением по умолчанию.
    """

    values = dict(DEFAULTS)
    for field_name, env_name in ENV_VARIABLES.items():
        if env_name not in environ:
            continue
        raw = environ[env_name]
        default = DEFAULTS[field_name]
        if isinstance(default, bool):
            values[field_name] = raw == "true"
        elif isinstance(default, int):
            try:
                values[field_name] = int(raw)
            except ValueError:
                LOGGER.debug("Ignoring invalid integer %s=%r", env_name, raw)
        else:
            values[field_name] = raw
    return values


def normalize_argv(argv: Sequence[str]) -> List[str]:
    """Приводит ``--allow_remove`` к ``--allow-remove``; значения не трогает."""

    normalized = []
    for arg in argv:
        if arg.startswith("--"):
            name, sep, value = arg.partition("=")
            arg = name.replace("_", "-") + sep + value
        normalized.append(arg)
    return normalized


def build_parser(defaults: Mapping[str, Any]) -> argparse.ArgumentParser:
    """Создаёт argparse-парсер, у которого значения по умолчанию взяты из окружения."""

    parser = argparse.ArgumentParser(
        prog="dockerapi",
        description="HTTP API for restarting, stopping, starting and removing containers, "
        "pulling images and running Docker Compose operations.",
    )
    parser.add_argument(
        "--auth-token", default=defaults["auth_token"], help="Auth token for API requests"
    )

    def add_bool(name: str, help_text: str) -> None:
        field_name = name.replace("-", "_")
        parser.add_argument(
            f"--{name}",
            dest=field_name,
            type=parse_bool_flag,
            nargs="?",
            const=True,
            default=defaults[field_name],
            metavar="BOOL",
            help=help_text,
        )

    add_bool("allow-restart", "Allow container restart operation")
    add_bool("allow-stop", "Allow container stop operation")
    add_bool("allow-start", "Allow container start operation")
    add_bool("allow-remove", "Allow container remove operation")
    add_bool("allow-pull", "Allow image pull operation")
    add_bool("allow-compose", "Allow Docker Compose operations")

    parser.add_argument("--port", type=int, default=defaults["port"], help="Port to listen on")
    parser.add_argument(
        "--log-level",
        default=defaults["log_level"],
        help="Log level (debug, info, warn, error)",
    )
    parser.add_argument(
        "--log-dir", default=defaults["log_dir"], help="Directory for rotating log files"
    )
    parser.add_argument(
        "--compose-path",
        dest="compose_project_path",
        default=defaults["compose_project_path"],
        help="Path to Docker Compose project",
    )
    parser.add_argument(
        "--compose-timeout",
        type=int,
        default=defaults["compose_timeout"],
        help="Seconds before a docker compose command is killed (0 disables the limit)",
    )
    parser.add_argument(
        "-v", "--version", dest="show_version", action="store_true", help="Print the version and exit"
    )
    parser.add_argument(
        "--help-api", dest="show_api_help", action="store_true", help="Show usage examples"
    )
    return parser


def validate_settings(settings: Settings) -> None:
    """Проверяет значения через валидаторы, выбрасывая SettingsValidationError."""

    for field_name, validator in _VALIDATORS.items():
        value = getattr(settings, field_name)
        is_valid, error = validator.validate(value)
        if not is_valid:
            raise SettingsValidationError(key=field_name, value=value, reason=error)


def load_settings(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Tuple[Settings, CliOptions]:
    """Читает окружение, затем аргументы командной строки (они имеют приоритет)."""

    env_values = read_environment(os.environ if environ is None else environ)
    parser = build_parser(env_values)
    namespace = parser.parse_args(normalize_argv(sys.argv[1:] if argv is None else argv))
    parsed = vars(namespace)

    options = CliOptions(
        show_version=parsed.pop("show_version"),
        show_api_help=parsed.pop("show_api_help"),
    )
    settings = Settings(**parsed)
    validate_settings(settings)
    return settings, options


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """Возвращает случайный URL-безопасный токен заданной длины."""

    return secrets.token_urlsafe(length)[:length]
