"""Формирование HTTP-ответов в JSON или текстовом (format=pretty) виде."""

from __future__ import annotations

import asyncio
import logging
from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from starlette.types import Receive, Scope, Send

from dockerapi.api.errors import ApiError
from dockerapi.docker_api.images import PullStream, stream_output

LOGGER = logging.getLogger(__name__)

PRETTY_FORMAT = "pretty"


def wants_pretty(request: Request) -> bool:
    """Формат выбирается только параметром ``?format=pretty``."""

    return request.query_params.get("format") == PRETTY_FORMAT


def render_message(message: str, *, pretty: bool, status_code: int = 200) -> Response:
    if pretty:
        return PlainTextResponse(f"{message}\n", status_code=status_code)
    return JSONResponse({"message": message}, status_code=status_code)


def render_error(error: ApiError, *, pretty: bool) -> Response:
    if pretty:
        return PlainTextResponse(f"Error: {error.message}\n", status_code=error.status_code)
    return JSONResponse({"error": error.message}, status_code=error.status_code)


class PullResponse(StreamingResponse):
    """Потоковый ответ docker pull.

    Тело читается в пуле потоков. Как только клиент отключается, соединение с
    Docker закрывается, и рабочий поток выходит из блокирующего чтения.
    """

    def __init__(self, stream: PullStream, *, pretty: bool) -> None:
        super().__init__(
            stream_output(stream, pretty=pretty),
            media_type="text/plain" if pretty else "application/json",
        )
        self.pull_stream = stream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        watcher = asyncio.create_task(self._close_on_disconnect(receive))
        try:
            await self.stream_response(send)
        except OSError as exc:
            LOGGER.info(
                "Client went away during pull of %s: %s", self.pull_stream.reference, exc
            )
        finally:
            watcher.cancel()
            self.pull_stream.close()

    async def _close_on_disconnect(self, receive: Receive) -> None:
        await self.listen_for_disconnect(receive)
        self.pull_stream.close()


def render_pull_stream(stream: PullStream, *, pretty: bool) -> StreamingResponse:
    """Статус 200 отправляется до окончания загрузки, поэтому сбои посреди потока
    только обрывают вывод и попадают в лог."""

    return PullResponse(stream, pretty=pretty)
