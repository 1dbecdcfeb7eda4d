from dataclasses import dataclass, field
from typing import Any, Self
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    """
    The server configuration.
    """

    port: int = 8000
    host: str = "0.0.0.0"
    reload: bool = False
    allow_origins: list[str] = field(default_factory=list)

    @staticmethod
    def from_dict(data: dict) -> Self:
        """
        Load the server configuration from a dictionary.
        """
        return ServerConfig(**data)


@dataclass
class ViewsConfig:
    """
    Where the views live, and where the compiled ones are cached.

    namespaces maps each namespace to a list of directories to look for templates.
    """

    namespaces: dict[str, list[Path]] = field(default_factory=dict)
    cache_directory: Path = field(default_factory=lambda: Path("cache/views"))
    extension: str = ".html"
    dependencies: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_dict(data: dict) -> Self:
        """
        Load the views configuration from a dictionary.

        A namespace can be a single directory or a list of them.
        """
        namespaces = {}
        for name, directories in data.get("namespaces", {}).items():
            if isinstance(directories, str):
                directories = [directories]
            namespaces[name] = [Path(directory) for directory in directories]

        return ViewsConfig(
            namespaces=namespaces,
            cache_directory=Path(data.get("cache_directory", "cache/views")),
            extension=data.get("extension", ".html"),
            dependencies=data.get("dependencies", {}),
        )


@dataclass
class PiecesConfig:
    """
    Configuration of the pieces service itself.
    """

    permission: str = "cms.edit"

    def cms_permission(self) -> str:
        return self.permission

    @staticmethod
    def from_dict(data: dict) -> Self:
        return PiecesConfig(permission=data.get("permission", "cms.edit"))


@dataclass
class SecurityConfig:
    """
    Roles and the permissions they grant, plus the known API tokens.

    Each token is a dict with token, name and roles.
    """

    roles: dict[str, list[str]] = field(default_factory=dict)
    tokens: list[dict[str, Any]] = field(default_factory=list)

    @staticmethod
    def from_dict(data: dict) -> Self:
        return SecurityConfig(
            roles=data.get("roles", {}),
            tokens=data.get("tokens", []),
        )


@dataclass
class Config:
    """
    The configuration for the pieces CMS.
    """

    database: str = "sqlite://:memory:"
    views: ViewsConfig = field(default_factory=ViewsConfig)
    pieces: PiecesConfig = field(default_factory=PiecesConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    debug: bool = False
    server: ServerConfig = field(default_factory=ServerConfig)

    @staticmethod
    def read(path: str) -> Self:
        """
        Read the configuration from a file.
        """
        with open(path, "r", encoding="utf-8") as file:
            data = yaml.safe_load(file)
            return Config.from_dict(data or {})

    @staticmethod
    def from_dict(data: dict) -> Self:
        """
        Load the configuration from a dictionary.
        """
        return Config(
            debug=data.get("debug", False),
            database=data.get("database", "sqlite://:memory:"),
            views=ViewsConfig.from_dict(data.get("views", {})),
            pieces=PiecesConfig.from_dict(data.get("pieces", {})),
            security=SecurityConfig.from_dict(data.get("security", {})),
            server=ServerConfig.from_dict(data.get("server", {})),
        )
