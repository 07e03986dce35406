"""FastAPI-приложение: маршруты /container, /image, /compose."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Type

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from dockerapi import __version__
from dockerapi.api.auth import require_token
from dockerapi.api.dispatcher import ComposeRunner, OperationDispatcher
from dockerapi.api.errors import ApiError
from dockerapi.api.models import (
    ComposeRequest,
    ContainerRequest,
    ImageRequest,
    OperationSuccess,
    RequestBody,
    decode_body,
)
from dockerapi.api.rendering import render_error, render_message, render_pull_stream, wants_pretty
from dockerapi.compose.executor import run_compose
from dockerapi.docker_api.client import DockerClientWrapper
from dockerapi.settings.models import Settings

LOGGER = logging.getLogger(__name__)

DISCONNECT_POLL_INTERVAL = 0.5

router = APIRouter(dependencies=[Depends(require_token)])


async def _handle(request: Request, model: Type[RequestBody]) -> Response:
    pretty = wants_pretty(request)
    payload = decode_body(await request.body(), model)
    dispatcher: OperationDispatcher = request.app.state.dispatcher
    cancel_event = threading.Event()
    watcher = asyncio.create_task(_cancel_on_disconnect(request, cancel_event))
    try:
        # Блокирующие вызовы Docker и subprocess выполняются в пуле потоков
        outcome = await run_in_threadpool(
            dispatcher.dispatch, payload.to_operation_request(), cancel_event
        )
    finally:
        watcher.cancel()
    if isinstance(outcome, OperationSuccess):
        return render_message(outcome.message, pretty=pretty)
    return render_pull_stream(outcome, pretty=pretty)


async def _cancel_on_disconnect(request: Request, cancel_event: threading.Event) -> None:
    """Устанавливает cancel_event, когда клиент разрывает соединение."""

    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)
    LOGGER.info("Client disconnected from %s, cancelling operation", request.url.path)
    cancel_event.set()


@router.post("/container")
async def container_operation(request: Request) -> Response:
    return await _handle(request, ContainerRequest)


@router.post("/image")
async def image_operation(request: Request) -> Response:
    return await _handle(request, ImageRequest)


@router.post("/compose")
async def compose_operation(request: Request) -> Response:
    return await _handle(request, ComposeRequest)


async def _api_error_handler(request: Request, exc: ApiError) -> Response:
    return render_error(exc, pretty=wants_pretty(request))


async def _unexpected_error_handler(request: Request, exc: Exception) -> Response:
    LOGGER.exception("Unhandled error while processing %s", request.url.path)
    return render_error(ApiError.internal("Internal server error"), pretty=wants_pretty(request))


def create_app(
    settings: Settings,
    docker_client: DockerClientWrapper,
    *,
    compose_runner: ComposeRunner = run_compose,
) -> FastAPI:
    """Фабрика приложения; настройки и docker client общие для всех запросов и не меняются."""

    app = FastAPI(
        title="DockerAPI",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.dispatcher = OperationDispatcher(settings, docker_client, compose_runner)
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
    app.include_router(router)
    return app
