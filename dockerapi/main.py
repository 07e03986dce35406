"""Точка входа в сервис DockerAPI."""

from __future__ import annotations

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from dockerapi import __version__
from dockerapi.api.app import create_app
from dockerapi.docker_api.client import DockerClientWrapper
from dockerapi.docker_api.exceptions import DockerAPIError
from dockerapi.settings.exceptions import SettingsError
from dockerapi.settings.loader import generate_token, load_settings
from dockerapi.settings.models import Settings
from dockerapi.usage import print_api_usage
from dockerapi.utils.logger import configure_logging

LOGGER = logging.getLogger(__name__)

LISTEN_HOST = "0.0.0.0"


def ensure_auth_token(settings: Settings) -> Settings:
    """Генерирует токен, если он не задан, и один раз печатает его."""

    if settings.auth_token:
        return settings
    token = generate_token()
    print(
        "Generated random auth token (WARNING: this will change each time you run the app!): "
        f"{token}"
    )
    return dataclasses.replace(settings, auth_token=token)


def setup_logging(settings: Settings) -> None:
    """Настраивает логирование в соответствии с Settings."""

    configure_logging(
        log_dir=Path(settings.log_dir) if settings.log_dir else None,
        level_name=settings.log_level,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Читает настройки, создаёт docker client и запускает HTTP-сервер."""

    try:
        settings, options = load_settings(argv)
    except SettingsError as exc:
        print(f"Error loading configuration: {exc}")
        return 1

    if options.show_api_help:
        print_api_usage(settings)
        return 0
    if options.show_version:
        print(__version__)
        return 0

    settings = ensure_auth_token(settings)
    print(settings.allowed_operations_summary())
    setup_logging(settings)

    try:
        docker_client = DockerClientWrapper()
    except DockerAPIError as exc:
        LOGGER.critical("Failed to create Docker client: %s", exc)
        return 1
    if not docker_client.ping():
        LOGGER.warning("Docker daemon is not reachable, requests will fail until it is")

    app = create_app(settings, docker_client)
    LOGGER.info("Starting DockerAPI %s on %s:%d", __version__, LISTEN_HOST, settings.port)
    try:
        uvicorn.run(app, host=LISTEN_HOST, port=settings.port, log_config=None)
    finally:
        docker_client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
