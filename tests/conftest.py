"""Общие фикстуры: поддельный docker client и приложение FastAPI поверх него."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, Iterable, Iterator, List, Optional

import pytest
from docker.errors import DockerException, NotFound
from fastapi.testclient import TestClient

from dockerapi.api.app import create_app
from dockerapi.docker_api import images
from dockerapi.docker_api.client import DockerClientWrapper
from dockerapi.settings.models import Settings


class FakeContainer:
    def __init__(self, name: str, calls: List[tuple[str, str]]) -> None:
        self.name = name
        self.calls = calls
        self.remove_force: Optional[bool] = None

    def restart(self) -> None:
        self.calls.append(("restart", self.name))

    def stop(self) -> None:
        self.calls.append(("stop", self.name))

    def start(self) -> None:
        self.calls.append(("start", self.name))

    def remove(self, force: bool = False) -> None:
        self.remove_force = force
        self.calls.append(("remove", self.name))


class FakePullResponse:
    """Ответ requests на POST /images/create с stream=True."""

    def __init__(self, chunks: Iterable[bytes], error: Optional[Exception] = None) -> None:
        self.chunks = list(chunks)
        self.error = error
        self.closed = False
        self.raw = SimpleNamespace(connection=None)

    def iter_content(self, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        yield from self.chunks
        if self.error is not None:
            raise self.error

    def close(self) -> None:
        self.closed = True


class FakeRawClient:
    """Минимальная замена docker.DockerClient: containers.get и POST /images/create."""

    def __init__(self) -> None:
        self.calls: List[tuple[str, str]] = []
        self.known: Dict[str, FakeContainer] = {}
        self.failing_operations: set[str] = set()
        self.pull_chunks: List[bytes] = []
        self.pull_error: Optional[Exception] = None
        self.pull_stream_error: Optional[Exception] = None
        self.pull_status_error: Optional[Exception] = None
        self.pull_responses: List[FakePullResponse] = []
        self.pull_calls: List[Dict[str, Any]] = []
        outer = self

        class Containers:
            def get(self, container_id: str) -> FakeContainer:
                if container_id not in outer.known:
                    raise NotFound(f"No such container: {container_id}")
                container = outer.known[container_id]
                for operation in outer.failing_operations:
                    setattr(container, operation, _failing(operation))
                return container

        class API:
            def _url(self, path: str) -> str:
                return f"http+docker://localhost{path}"

            def _post(self, url: str, **kwargs: Any) -> FakePullResponse:
                outer.pull_calls.append({"url": url, **kwargs})
                if outer.pull_error is not None:
                    raise outer.pull_error
                response = FakePullResponse(outer.pull_chunks, outer.pull_stream_error)
                outer.pull_responses.append(response)
                return response

            def _raise_for_status(self, response: FakePullResponse) -> None:
                if outer.pull_status_error is not None:
                    raise outer.pull_status_error

        self.containers = Containers()
        self.api = API()

    def add_container(self, name: str) -> FakeContainer:
        container = FakeContainer(name, self.calls)
        self.known[name] = container
        return container

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        return None


def _failing(operation: str) -> Any:
    def fail(*args: Any, **kwargs: Any) -> None:
        raise DockerException(f"cannot {operation} container")

    return fail


@pytest.fixture(autouse=True)
def no_registry_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Не читаем ~/.docker/config.json в тестах."""

    monkeypatch.setattr(images.auth, "get_config_header", lambda api, registry: None)


@pytest.fixture()
def raw_client() -> FakeRawClient:
    client = FakeRawClient()
    client.add_container("web")
    return client


@pytest.fixture()
def docker_client(raw_client: FakeRawClient) -> DockerClientWrapper:
    return DockerClientWrapper(raw_client=raw_client)


@pytest.fixture()
def settings() -> Settings:
    return Settings(auth_token="abc", allow_remove=True)


@pytest.fixture()
def make_client(docker_client: DockerClientWrapper):
    """Фабрика TestClient с нужными настройками."""

    def factory(settings: Settings, **kwargs: Any) -> TestClient:
        return TestClient(create_app(settings, docker_client, **kwargs))

    return factory
