"""Функции управления жизненным циклом контейнеров через Docker client."""

from __future__ import annotations

from typing import Callable, Dict

from docker.errors import DockerException

from dockerapi.docker_api.client import DockerClientWrapper
from dockerapi.docker_api.exceptions import DockerAPIError


def restart_container(client: DockerClientWrapper, container_name: str) -> None:
    """Перезапускает контейнер."""

    raw = client.get_raw_client()
    try:
        raw.containers.get(container_name).restart()
    except DockerException as exc:
        raise DockerAPIError(str(exc)) from exc


def stop_container(client: DockerClientWrapper, container_name: str) -> None:
    """Останавливает контейнер."""

    raw = client.get_raw_client()
    try:
        raw.containers.get(container_name).stop()
    except DockerException as exc:
        raise DockerAPIError(str(exc)) from exc


def start_container(client: DockerClientWrapper, container_name: str) -> None:
    """Запускает контейнер."""

    raw = client.get_raw_client()
    try:
        raw.containers.get(container_name).start()
    except DockerException as exc:
        raise DockerAPIError(str(exc)) from exc


def remove_container(client: DockerClientWrapper, container_name: str, force: bool = True) -> None:
    """Удаляет контейнер; по умолчанию принудительно, даже если он запущен."""

    raw = client.get_raw_client()
    try:
        raw.containers.get(container_name).remove(force=force)
    except DockerException as exc:
        raise DockerAPIError(str(exc)) from exc


ContainerAction = Callable[[DockerClientWrapper, str], None]

# Операция из тела запроса -> функция docker_api
CONTAINER_ACTIONS: Dict[str, ContainerAction] = {
    "restart": restart_container,
    "stop": stop_container,
    "start": start_container,
    "remove": remove_container,
}
