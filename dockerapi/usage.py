"""Печать примеров вызова API (флаг --help-api)."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, TextIO, Tuple

from rich.console import Console

from dockerapi.settings.models import Settings

# (описание, путь, тело запроса)
API_EXAMPLES: List[Tuple[str, str, Dict[str, Any]]] = [
    ("Restart a container", "/container", {"operation": "restart", "container": "my-container"}),
    ("Stop a container", "/container", {"operation": "stop", "container": "my-container"}),
    ("Start a container", "/container", {"operation": "start", "container": "my-container"}),
    ("Remove a container", "/container", {"operation": "remove", "container": "my-container"}),
    ("Pull an image", "/image", {"operation": "pull", "image": "nginx:latest"}),
    (
        "Docker Compose - Restart a service",
        "/compose",
        {"operation": "restart", "service": "web", "profile": "development"},
    ),
    (
        "Docker Compose - Stop a service",
        "/compose",
        {"operation": "stop", "service": "web", "profile": "development"},
    ),
    (
        "Docker Compose - Start a service",
        "/compose",
        {"operation": "start", "service": "web", "profile": "development"},
    ),
    (
        "Docker Compose - Bring a service down",
        "/compose",
        {"operation": "down", "service": "web", "profile": "development"},
    ),
    (
        "Docker Compose - Pull images for a service",
        "/compose",
        {"operation": "pull", "service": "web", "profile": "development"},
    ),
]


def print_api_usage(settings: Settings, file: Optional[TextIO] = None) -> None:
    """Выводит curl-примеры для каждого маршрута с подсветкой JSON-тел."""

    console = Console(file=file, highlight=False, soft_wrap=True)
    console.print("DockerAPI API Usage Examples:")
    console.print("-----------------------------------")
    for description, endpoint, body in API_EXAMPLES:
        _print_example(console, settings, description, endpoint, body)


def _print_example(
    console: Console,
    settings: Settings,
    description: str,
    endpoint: str,
    body: Dict[str, Any],
) -> None:
    url = f"http://localhost:{settings.port}{endpoint}"
    console.print(f"\n{description}:")
    console.print(
        'curl -X POST -H "Content-Type: application/json" '
        f'-H "Authorization: Bearer {settings.auth_token}" \\',
        markup=False,
    )
    console.print(" -d '")
    console.print_json(json.dumps(body))
    console.print("' \\")
    console.print(f" {url}", markup=False)
    console.print("\nFor pretty-printed output, add ?format=pretty to the URL:")
    console.print(f" {url}?format=pretty", markup=False)
