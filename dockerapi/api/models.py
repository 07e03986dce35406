"""Модели тел запросов и нормализованный запрос операции."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from dockerapi.api.errors import ApiError


class Domain(str, Enum):
    """Категория объекта, над которым выполняется операция."""

    CONTAINER = "container"
    IMAGE = "image"
    COMPOSE = "compose"


@dataclass(frozen=True, slots=True)
class OperationRequest:
    """Запрос операции после разбора тела; живёт в пределах одного HTTP-вызова."""

    domain: Domain
    operation: str
    target: str
    profile: str = ""


@dataclass(frozen=True, slots=True)
class OperationSuccess:
    """Успешный исход операции с сообщением для клиента."""

    message: str


class RequestBody(BaseModel):
    # Неизвестные поля игнорируются, отсутствующие и null считаются пустой строкой
    model_config = ConfigDict(extra="ignore")

    operation: Optional[str] = None

    def to_operation_request(self) -> OperationRequest:  # pragma: no cover - абстрактный
        raise NotImplementedError


class ContainerRequest(RequestBody):
    """Тело POST /container."""

    container: Optional[str] = None

    def to_operation_request(self) -> OperationRequest:
        return OperationRequest(
            domain=Domain.CONTAINER,
            operation=self.operation or "",
            target=self.container or "",
        )


class ImageRequest(RequestBody):
    """Тело POST /image."""

    image: Optional[str] = None

    def to_operation_request(self) -> OperationRequest:
        return OperationRequest(
            domain=Domain.IMAGE,
            operation=self.operation or "",
            target=self.image or "",
        )


class ComposeRequest(RequestBody):
    """Тело POST /compose."""

    service: Optional[str] = None
    profile: Optional[str] = None

    def to_operation_request(self) -> OperationRequest:
        return OperationRequest(
            domain=Domain.COMPOSE,
            operation=self.operation or "",
            target=self.service or "",
            profile=self.profile or "",
        )


BodyT = TypeVar("BodyT", bound=RequestBody)


def decode_body(raw: bytes, model: Type[BodyT]) -> BodyT:
    """Разбирает JSON-тело; при любой ошибке разбора ответ ``Invalid request body``."""

    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise ApiError.bad_request("Invalid request body") from exc
