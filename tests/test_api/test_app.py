"""Сценарии HTTP API целиком: авторизация, разбор тела, политика, исполнители, ответ."""

from __future__ import annotations

import asyncio
import subprocess
import threading
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Tuple

import pytest

from dockerapi.api import app as app_module
from dockerapi.compose.executor import ComposeExecutionResult
from dockerapi.settings.models import Settings

AUTH = {"Authorization": "Bearer abc"}


def test_restart_container_succeeds(make_client, raw_client) -> None:
    client = make_client(Settings(auth_token="abc", allow_restart=True))

    response = client.post(
        "/container", json={"operation": "restart", "container": "web"}, headers=AUTH
    )

    assert response.status_code == 200
    assert response.content == (
        b'{"message":"Operation restart completed successfully on container web"}'
    )
    assert raw_client.calls == [("restart", "web")]


def test_restart_container_forbidden(make_client, raw_client) -> None:
    client = make_client(Settings(auth_token="abc", allow_restart=False))

    response = client.post(
        "/container", json={"operation": "restart", "container": "web"}, headers=AUTH
    )

    assert response.status_code == 403
    assert response.content == b'{"error":"Restart operation not allowed"}'
    assert raw_client.calls == []


def test_success_in_pretty_format(make_client, settings) -> None:
    client = make_client(settings)

    response = client.post(
        "/container?format=pretty", json={"operation": "start", "container": "web"}, headers=AUTH
    )

    assert response.status_code == 200
    assert response.text == "Operation start completed successfully on container web\n"


@pytest.mark.parametrize(
    "body",
    [b"", b"not json", b"[]", b'{"operation": 5, "container": "web"}'],
)
def test_invalid_body(make_client, settings, body: bytes) -> None:
    client = make_client(settings)

    response = client.post("/container", content=body, headers=AUTH)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_missing_container_name(make_client, settings) -> None:
    client = make_client(settings)

    response = client.post("/container", json={"operation": "restart"}, headers=AUTH)

    assert response.status_code == 400
    assert response.json() == {"error": "Container name is required"}


def test_unknown_fields_are_ignored(make_client, settings) -> None:
    client = make_client(settings)

    response = client.post(
        "/container",
        json={"operation": "stop", "container": "web", "signal": "SIGKILL"},
        headers=AUTH,
    )

    assert response.status_code == 200


def test_engine_failure_is_internal_error(make_client, settings) -> None:
    client = make_client(settings)

    response = client.post(
        "/container?format=pretty", json={"operation": "stop", "container": "db"}, headers=AUTH
    )

    assert response.status_code == 500
    assert response.text == "Error: Failed to stop container: No such container: db\n"


def test_image_pull_streams_raw_events(make_client, settings, raw_client) -> None:
    raw_client.pull_chunks = [b'{"status":"Pulling from library/nginx","id":"latest"}\r\n']
    client = make_client(settings)

    response = client.post("/image", json={"operation": "pull", "image": "nginx"}, headers=AUTH)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    assert response.content == b'{"status":"Pulling from library/nginx","id":"latest"}\r\n'
    assert raw_client.pull_calls[0]["params"] == {"fromImage": "nginx", "tag": "latest"}
    assert raw_client.pull_responses[0].closed


def test_image_pull_pretty_stops_on_corrupt_event(
    make_client, settings, raw_client, caplog
) -> None:
    caplog.set_level("ERROR")
    raw_client.pull_chunks = [
        b'{"status":"Pulling fs layer","id":"a1"}\n',
        b"{broken\n",
        b'{"status":"x"}\n',
    ]
    client = make_client(settings)

    response = client.post(
        "/image?format=pretty", json={"operation": "pull", "image": "nginx"}, headers=AUTH
    )

    assert response.status_code == 200
    assert response.text == "Pulling fs layer: a1\n"
    assert "Error decoding Docker API response" in caplog.text


def test_image_pull_engine_error(make_client, settings, raw_client) -> None:
    from docker.errors import ImageNotFound

    raw_client.pull_error = ImageNotFound("pull access denied for nope")
    client = make_client(settings)

    response = client.post("/image", json={"operation": "pull", "image": "nope"}, headers=AUTH)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to pull image: pull access denied for nope"}


def test_image_unknown_operation(make_client, settings) -> None:
    client = make_client(settings)

    response = client.post("/image", json={"operation": "push", "image": "nginx"}, headers=AUTH)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid operation"}


class RecordingPopen:
    """Замена subprocess.Popen: процесс сразу завершается с заданным кодом."""

    def __init__(self, returncode: int = 0, stdout: str = "") -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, args: List[str], **kwargs: Any) -> "RecordingPopen":
        self.calls.append({"args": args, **kwargs})
        return self

    def __enter__(self) -> "RecordingPopen":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    def communicate(self, timeout: Any = None) -> Tuple[str, None]:
        return self.stdout, None


def test_compose_up_with_profile(
    make_client, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    popen = RecordingPopen(stdout="Container web Started\n")
    monkeypatch.setattr("dockerapi.compose.executor.subprocess.Popen", popen)
    client = make_client(Settings(auth_token="abc", compose_project_path=str(tmp_path)))

    response = client.post(
        "/compose", json={"operation": "up", "service": "web", "profile": "dev"}, headers=AUTH
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Operation up completed successfully on service web"}
    assert popen.calls[0]["args"] == ["docker", "compose", "--profile", "dev", "up", "web"]
    assert popen.calls[0]["cwd"] == str(tmp_path)
    assert popen.calls[0]["stderr"] == subprocess.STDOUT


def test_compose_failure_embeds_output(
    make_client, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    popen = RecordingPopen(returncode=1, stdout="no such service: web\n")
    monkeypatch.setattr("dockerapi.compose.executor.subprocess.Popen", popen)
    client = make_client(Settings(auth_token="abc", compose_project_path=str(tmp_path)))

    response = client.post(
        "/compose", json={"operation": "up", "service": "web", "profile": "dev"}, headers=AUTH
    )

    assert response.status_code == 500
    error = response.json()["error"]
    assert error.startswith("Failed to perform operation: docker compose up failed: exit status 1")
    assert "no such service: web" in error


def test_compose_disabled(make_client, monkeypatch: pytest.MonkeyPatch) -> None:
    popen = RecordingPopen()
    monkeypatch.setattr("dockerapi.compose.executor.subprocess.Popen", popen)
    client = make_client(Settings(auth_token="abc", allow_compose=False))

    response = client.post("/compose", json={"operation": "down", "service": "web"}, headers=AUTH)

    assert response.status_code == 403
    assert response.json() == {"error": "Compose operations not allowed"}
    assert popen.calls == []


def test_get_is_not_routed(make_client, settings) -> None:
    client = make_client(settings)

    response = client.get("/container", headers=AUTH)

    assert response.status_code == 405


def test_compose_runner_gets_cancel_event(make_client, settings) -> None:
    events: List[threading.Event] = []

    def runner(*args: Any, cancel_event: threading.Event, **kwargs: Any) -> ComposeExecutionResult:
        events.append(cancel_event)
        return ComposeExecutionResult(command="docker compose up web", output="", return_code=0)

    client = make_client(settings, compose_runner=runner)

    response = client.post("/compose", json={"operation": "up", "service": "web"}, headers=AUTH)

    assert response.status_code == 200
    assert len(events) == 1
    assert not events[0].is_set()


class DisconnectingRequest:
    def __init__(self, connected_polls: int) -> None:
        self.connected_polls = connected_polls
        self.url = SimpleNamespace(path="/compose")

    async def is_disconnected(self) -> bool:
        if self.connected_polls == 0:
            return True
        self.connected_polls -= 1
        return False


def test_disconnect_sets_cancel_event(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_module, "DISCONNECT_POLL_INTERVAL", 0)
    request = DisconnectingRequest(connected_polls=2)
    cancel_event = threading.Event()

    asyncio.run(app_module._cancel_on_disconnect(request, cancel_event))

    assert cancel_event.is_set()
    assert request.connected_polls == 0
