from abc import ABC, abstractmethod
from pathlib import Path
from typing import Self

from pieces.types import Actor
from pieces.views.types import ViewEnvironment


class ViewCompiler(ABC):
    """Port for view compilation."""

    @abstractmethod
    def get_environment(self) -> ViewEnvironment:
        """Current compilation environment."""
        pass

    @abstractmethod
    def with_environment(self, environment: ViewEnvironment) -> Self:
        """A compiler for the same views, using another environment."""
        pass

    @abstractmethod
    def compile(self, path: str, force: bool = False) -> Path:
        """Compile the namespace:view path, returns the compiled file."""
        pass


class CacheLocator(ABC):
    """Port to find compiled view files."""

    @abstractmethod
    def get_files(self, view: str, namespace: str) -> list[Path]:
        """All the compiled files for a view, any environment."""
        pass


class FileRemover(ABC):
    """Port for file deletion."""

    @abstractmethod
    def delete(self, path: Path) -> bool:
        """Delete a file. Returns whether there was something to delete."""
        pass


class PermissionChecker(ABC):
    """Port for permission checks on the current actor."""

    @abstractmethod
    def allows(self, permission: str) -> bool:
        pass


class ActorContext(ABC):
    """Port to know who is doing the current request, if anybody."""

    @abstractmethod
    def has_actor(self) -> bool:
        pass

    @abstractmethod
    def get_actor(self) -> Actor | None:
        pass
