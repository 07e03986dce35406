"""Исключения слоя docker_api."""

from __future__ import annotations


class DockerAPIError(Exception):
    """Ошибка при обращении к Docker Engine через SDK."""
