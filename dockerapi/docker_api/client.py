"""Обёртка над docker-py с безопасной инициализацией."""

from __future__ import annotations

import logging
from typing import Any

import docker
from docker.errors import DockerException

from dockerapi.docker_api.exceptions import DockerAPIError

LOGGER = logging.getLogger(__name__)


class DockerClientWrapper:
    """Держит единственный docker client процесса; после создания используется только на чтение."""

    def __init__(self, raw_client: Any | None = None) -> None:
        self._client = raw_client or self._create_client()  # Клиент из DOCKER_HOST и т.п.

    @staticmethod
    def _create_client() -> Any:
        try:
            return docker.from_env()
        except DockerException as exc:
            LOGGER.error("Docker client init error: %s", exc)
            raise DockerAPIError(str(exc)) from exc

    def get_raw_client(self) -> Any:
        """Возвращает внутренний docker client."""

        return self._client

    def ping(self) -> bool:
        """Проверяет доступность Docker."""

        try:
            self._client.ping()
            return True
        except (DockerException, OSError) as exc:
            LOGGER.error("Docker ping failed: %s", exc)
            return False

    def close(self) -> None:
        """Закрывает HTTP-сессию docker client."""

        self._client.close()
