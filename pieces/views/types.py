"""
Shared view types: environments, paths and errors.
"""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Self

NS_SEPARATOR = ":"
DEFAULT_NAMESPACE = "default"


class ViewsError(Exception):
    """
    A view could not be compiled or rendered.
    """


class ViewNotFoundError(ViewsError):
    """
    There is no template for the view.
    """


def split_path(path: str) -> tuple[str, str]:
    """
    Split a namespace:view path. Without namespace, uses the default one.
    """
    if NS_SEPARATOR in path:
        namespace, view = path.split(NS_SEPARATOR, 1)
    else:
        namespace, view = DEFAULT_NAMESPACE, path
    if not view:
        raise ViewsError(f"Empty view name at path={path}")
    return namespace or DEFAULT_NAMESPACE, view


def join_path(namespace: str, view: str) -> str:
    return f"{namespace}{NS_SEPARATOR}{view}"


@dataclass(frozen=True)
class ViewEnvironment:
    """
    Values the views are compiled with.

    Each distinct environment produces its own compiled file. Values must be
    plain JSON-serializable data.
    """

    dependencies: dict[str, Any] = field(default_factory=dict)

    def with_dependency(self, name: str, value: Any) -> Self:
        """
        A copy of this environment with the dependency set.
        """
        return ViewEnvironment(dependencies={**self.dependencies, name: value})

    def get(self, name: str, default: Any = None) -> Any:
        return self.dependencies.get(name, default)

    def get_id(self) -> str:
        """
        Stable id of the environment, used to name its compiled files.
        """
        data = json.dumps(self.dependencies, sort_keys=True, default=str)
        return hashlib.sha256(data.encode()).hexdigest()[:12]

    def to_context(self) -> dict[str, Any]:
        """
        Dependencies as template variables. Dotted names become nested dicts,
        so `cms.editable` is reachable as `cms.editable`.
        """
        context: dict[str, Any] = {}
        for name, value in self.dependencies.items():
            *parents, leaf = name.split(".")
            current = context
            for parent in parents:
                current = current.setdefault(parent, {})
            current[leaf] = value
        return context
