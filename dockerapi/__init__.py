"""DockerAPI: HTTP-интерфейс для управления контейнерами, образами и Compose."""

__version__ = "1.2.0"
