"""Проверка bearer-токена до выполнения любого обработчика."""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Request

from dockerapi.api.errors import ApiError

LOGGER = logging.getLogger(__name__)


def check_authorization(expected_token: str, header: Optional[str]) -> None:
    """Пропускает запрос или выбрасывает ApiError(UNAUTHORIZED).

    При пустом ``expected_token`` проверка отключена и проходит любой запрос.
    Иначе заголовок должен в точности совпадать с ``"Bearer <token>"``.
    """

    if not expected_token:
        return
    if not header:
        raise ApiError.unauthorized("Missing authorization token")
    expected = f"Bearer {expected_token}".encode("utf-8")
    if not hmac.compare_digest(header.encode("utf-8"), expected):
        raise ApiError.unauthorized("Invalid authorization token")


def client_address(request: Request) -> str:
    if request.client is None:
        return "unknown"
    return f"{request.client.host}:{request.client.port}"


def require_token(request: Request) -> None:
    """FastAPI-зависимость: токен из настроек приложения против заголовка Authorization."""

    settings = request.app.state.settings
    try:
        check_authorization(settings.auth_token, request.headers.get("Authorization"))
    except ApiError as exc:
        LOGGER.warning("%s from: %s", exc.message, client_address(request))
        raise
