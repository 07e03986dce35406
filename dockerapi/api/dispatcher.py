"""Сопоставление запроса операции с разрешённым действием Docker.

Проверки выполняются строго до обращения к Docker: обязательные поля, известность
операции, флаг разрешения. Только после этого вызывается ровно один исполнитель.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional, Union

from dockerapi.api.errors import ApiError
from dockerapi.api.models import Domain, OperationRequest, OperationSuccess
from dockerapi.compose.executor import (
    COMPOSE_OPERATIONS,
    ComposeExecutionError,
    ComposeExecutionResult,
    run_compose,
)
from dockerapi.docker_api import containers, images
from dockerapi.docker_api.client import DockerClientWrapper
from dockerapi.docker_api.exceptions import DockerAPIError
from dockerapi.docker_api.images import PullStream
from dockerapi.settings.models import Settings

LOGGER = logging.getLogger(__name__)

# Домен -> операция -> имя флага в Settings
POLICY: Dict[Domain, Dict[str, str]] = {
    Domain.CONTAINER: {
        "restart": "allow_restart",
        "stop": "allow_stop",
        "start": "allow_start",
        "remove": "allow_remove",
    },
    Domain.IMAGE: {"pull": "allow_pull"},
    # Один флаг на все операции Compose, включая down
    Domain.COMPOSE: {operation: "allow_compose" for operation in COMPOSE_OPERATIONS},
}

REQUIRED_TARGETS: Dict[Domain, str] = {
    Domain.CONTAINER: "Container name",
    Domain.COMPOSE: "Service name",
}

ComposeRunner = Callable[..., ComposeExecutionResult]
DispatchResult = Union[OperationSuccess, PullStream]


def forbidden_message(domain: Domain, operation: str) -> str:
    if domain is Domain.COMPOSE:
        return "Compose operations not allowed"
    return f"{operation.capitalize()} operation not allowed"


class OperationDispatcher:
    """Проверяет политику и вызывает исполнителя для одного запроса."""

    def __init__(
        self,
        settings: Settings,
        docker_client: DockerClientWrapper,
        compose_runner: ComposeRunner = run_compose,
    ) -> None:
        self.settings = settings
        self.docker_client = docker_client
        self.compose_runner = compose_runner

    def authorize(self, request: OperationRequest) -> None:
        """Выбрасывает ApiError, если запрос нельзя передавать исполнителю."""

        label = REQUIRED_TARGETS.get(request.domain)
        if label and not request.target:
            raise ApiError.bad_request(f"{label} is required")

        flag_name = POLICY[request.domain].get(request.operation)
        if flag_name is None:
            raise ApiError.bad_request("Invalid operation")

        if not getattr(self.settings, flag_name):
            raise ApiError.forbidden(forbidden_message(request.domain, request.operation))

    def dispatch(
        self,
        request: OperationRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> DispatchResult:
        """Выполняет операцию; ``cancel_event`` прерывает запущенный docker compose."""

        self.authorize(request)
        if request.domain is Domain.CONTAINER:
            return self._run_container(request)
        if request.domain is Domain.IMAGE:
            return self._pull_image(request)
        return self._run_compose(request, cancel_event)

    def _run_container(self, request: OperationRequest) -> OperationSuccess:
        action = containers.CONTAINER_ACTIONS[request.operation]
        try:
            action(self.docker_client, request.target)
        except DockerAPIError as exc:
            LOGGER.error(
                "Failed to %s container %s: %s", request.operation, request.target, exc
            )
            raise ApiError.internal(f"Failed to {request.operation} container: {exc}") from exc
        LOGGER.info("Container %s: %s completed", request.target, request.operation)
        return OperationSuccess(
            f"Operation {request.operation} completed successfully on container {request.target}"
        )

    def _pull_image(self, request: OperationRequest) -> PullStream:
        try:
            return images.pull_image(self.docker_client, request.target)
        except DockerAPIError as exc:
            LOGGER.error("Failed to pull image %s: %s", request.target, exc)
            raise ApiError.internal(f"Failed to pull image: {exc}") from exc

    def _run_compose(
        self, request: OperationRequest, cancel_event: Optional[threading.Event]
    ) -> OperationSuccess:
        try:
            self.compose_runner(
                self.settings.compose_project_path,
                request.operation,
                request.target,
                request.profile,
                timeout_seconds=self.settings.compose_timeout,
                cancel_event=cancel_event,
            )
        except ComposeExecutionError as exc:
            LOGGER.error(
                "Failed to perform %s operation on service %s: %s",
                request.operation,
                request.target,
                exc,
            )
            raise ApiError.internal(f"Failed to perform operation: {exc}") from exc
        LOGGER.info(
            "Operation %s completed successfully on service %s", request.operation, request.target
        )
        return OperationSuccess(
            f"Operation {request.operation} completed successfully on service {request.target}"
        )
