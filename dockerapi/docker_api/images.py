"""Загрузка образов Docker и разбор потока прогресса docker pull."""

from __future__ import annotations

import json
import logging
import socket
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional

from docker import auth
from docker.errors import DockerException
from docker.utils import parse_repository_tag

from dockerapi.docker_api.client import DockerClientWrapper
from dockerapi.docker_api.exceptions import DockerAPIError

LOGGER = logging.getLogger(__name__)

DEFAULT_TAG = "latest"


@dataclass(slots=True)
class PullProgress:
    """Одно событие из потока docker pull; прочие поля события игнорируются."""

    status: str = ""
    layer_id: str = ""
    progress: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PullProgress":
        progress = data.get("progress")
        error = data.get("error")
        return cls(
            status=_as_text(data.get("status")),
            layer_id=_as_text(data.get("id")),
            progress=progress if isinstance(progress, str) else None,
            error=error if isinstance(error, str) else None,
        )

    def format_lines(self) -> List[str]:
        """Человекочитаемые строки для режима format=pretty."""

        lines = []
        if self.status:
            lines.append(f"{self.status}: {self.layer_id}" if self.layer_id else self.status)
        if self.progress is not None:
            lines.append(f"Progress: {self.progress}")
        if self.error:
            lines.append(f"Error: {self.error}")
        return lines


class PullStream:
    """Начатый pull: Docker ответил 200, тело ответа ещё не прочитано.

    Итерация отдаёт байты тела без изменений. ``close()`` можно вызывать из
    другого потока: он закрывает соединение с Docker, и заблокированное чтение
    завершается, после чего итерация тихо останавливается.
    """

    def __init__(self, reference: str, response: Any) -> None:
        self.reference = reference
        self.response = response
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        try:
            for chunk in self.response.iter_content(chunk_size=None):
                if chunk:
                    yield chunk
        except Exception:
            if not self.closed:
                raise
            # Чтение прервано нашим же close()
            LOGGER.debug("Read of pull response for %s interrupted", self.reference)

    def close(self) -> None:
        """Прекращает загрузку; повторный вызов ничего не делает."""

        if self.closed:
            return
        self.closed = True
        _shutdown_connection(self.response)
        self.response.close()


def pull_image(client: DockerClientWrapper, reference: str) -> PullStream:
    """Запускает загрузку образа и возвращает поток сырых событий прогресса.

    Ошибки, известные до начала потока (неизвестный образ, недоступный registry),
    выбрасываются сразу как DockerAPIError. Запрос повторяет ``APIClient.pull``,
    но ответ остаётся у вызывающего, чтобы его можно было закрыть.
    """

    if not reference:
        raise DockerAPIError("image reference is required")
    api = client.get_raw_client().api
    repository, tag = parse_repository_tag(reference)
    try:
        registry, _ = auth.resolve_repository_name(repository)
        headers = {}
        auth_header = auth.get_config_header(api, registry)
        if auth_header:
            headers["X-Registry-Auth"] = auth_header
        response = api._post(
            api._url("/images/create"),
            params={"fromImage": repository, "tag": tag or DEFAULT_TAG},
            headers=headers,
            stream=True,
            timeout=None,
        )
    except (DockerException, OSError) as exc:
        raise DockerAPIError(str(exc)) from exc
    try:
        api._raise_for_status(response)
    except DockerException as exc:
        response.close()
        raise DockerAPIError(str(exc)) from exc
    return PullStream(reference, response)


def iter_pull_events(chunks: Iterable[bytes]) -> Iterator[PullProgress]:
    """Декодирует NDJSON-поток в события.

    Некорректное событие даёт ValueError; ответ клиенту к этому моменту уже
    начат, поэтому вызывающий только обрывает вывод.
    """

    buffer = b""
    for chunk in chunks:
        buffer += chunk
        *lines, buffer = buffer.split(b"\n")
        for line in lines:
            if line.strip():
                yield _decode_event(line)
    if buffer.strip():
        yield _decode_event(buffer)


def iter_pretty_output(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Строки вида ``Downloading: 1a2b3c`` / ``Progress: [==>  ]`` для format=pretty."""

    for event in iter_pull_events(chunks):
        for line in event.format_lines():
            yield f"{line}\n".encode("utf-8")


def stream_output(stream: PullStream, *, pretty: bool) -> Iterator[bytes]:
    """Тело HTTP-ответа для pull; сбои посреди потока обрывают вывод и логируются.

    Об успешной загрузке сообщается только если поток дочитан до конца.
    """

    body = iter_pretty_output(stream) if pretty else iter(stream)
    try:
        yield from body
    except ValueError as exc:
        # После обрыва соединения хвост буфера может оказаться неполным событием
        if not stream.closed:
            LOGGER.error("Error decoding Docker API response: %s", exc)
            return
    except (DockerException, OSError) as exc:
        LOGGER.error("Failed to stream pull output: %s", exc)
        return

    if stream.closed:
        LOGGER.warning("Pull of image %s aborted: client disconnected", stream.reference)
    else:
        LOGGER.info("Image %s pulled", stream.reference)


def _shutdown_connection(response: Any) -> None:
    # close() не будит поток, заблокированный в recv; shutdown будит
    connection = getattr(getattr(response, "raw", None), "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as exc:
        LOGGER.debug("Docker connection already closed: %s", exc)


def _decode_event(line: bytes) -> PullProgress:
    data = json.loads(line)
    if not isinstance(data, dict):
        raise ValueError(f"unexpected event of type {type(data).__name__}")
    return PullProgress.from_dict(data)


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""
