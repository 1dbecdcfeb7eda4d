"""
View manager on top of jinja2.

Views are compiled in two passes. The compile pass runs once per environment,
using `[% %]`, `[[ ]]` and `[# #]` as delimiters, and writes the result to the
cache directory. The runtime pass is plain jinja2 over those compiled files, so
`{{ }}` and `{% %}` markup goes through the compile pass untouched.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Self

import jinja2
import markdown
from markupsafe import Markup

from pieces.config import ViewsConfig
from pieces.files import FileManager
from pieces.ports import ViewCompiler
from pieces.views.cache import ViewCacheLocator
from pieces.views.types import (
    NS_SEPARATOR,
    ViewEnvironment,
    ViewNotFoundError,
    ViewsError,
    join_path,
    split_path,
)

logger = logging.getLogger(__name__)

# (namespace, view, environment) -> extra compile time variables
Processor = Callable[[str, str, ViewEnvironment], dict[str, Any]]


def render_markdown(text: str) -> Markup:
    return Markup(
        markdown.markdown(
            text,
            extensions=[
                "markdown.extensions.fenced_code",
                "markdown.extensions.tables",
            ],
        )
    )


def add_filters(env: jinja2.Environment):
    env.filters["markdown"] = render_markdown
    env.filters["json"] = lambda x: json.dumps(x, indent=2, default=str)


class ViewManager(ViewCompiler):
    """
    Compiles and renders views from the configured namespaces.
    """

    def __init__(
        self,
        config: ViewsConfig,
        files: FileManager | None = None,
        cache_locator: ViewCacheLocator | None = None,
        environment: ViewEnvironment | None = None,
    ):
        self.config = config
        self.files = files or FileManager()
        self.cache_locator = cache_locator or ViewCacheLocator(
            config.cache_directory, config.extension
        )
        self.environment = environment or ViewEnvironment(
            dependencies=dict(config.dependencies)
        )
        self.processors: list[Processor] = []

        self.compile_env = jinja2.Environment(
            loader=jinja2.PrefixLoader(
                {
                    namespace: jinja2.FileSystemLoader(directories)
                    for namespace, directories in config.namespaces.items()
                },
                delimiter=NS_SEPARATOR,
            ),
            block_start_string="[%",
            block_end_string="%]",
            variable_start_string="[[",
            variable_end_string="]]",
            comment_start_string="[#",
            comment_end_string="#]",
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
        )
        add_filters(self.compile_env)

        self.runtime_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(self.cache_locator.cache_directory),
            autoescape=jinja2.select_autoescape(),
            keep_trailing_newline=True,
        )
        add_filters(self.runtime_env)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} env={self.environment.get_id()} namespaces={list(self.config.namespaces)}>"

    def add_processor(self, processor: Processor) -> None:
        """
        Register a function that adds variables to the compile pass.

        Processors are shared with every manager derived by with_environment.
        """
        self.processors.append(processor)

    def get_environment(self) -> ViewEnvironment:
        return self.environment

    def with_environment(self, environment: ViewEnvironment) -> Self:
        """
        Same views, loaders and processors, another environment.
        """
        manager = copy.copy(self)
        manager.environment = environment
        return manager

    def template_name(self, namespace: str, view: str) -> str:
        return f"{namespace}{NS_SEPARATOR}{view}{self.config.extension}"

    def get_context(self, namespace: str, view: str) -> dict[str, Any]:
        """
        Variables for the compile pass.
        """
        context = self.environment.to_context()
        for processor in self.processors:
            context.update(processor(namespace, view, self.environment))
        return context

    def compile(self, path: str, force: bool = False) -> Path:
        """
        Compile the view at path for the current environment.

        Unless forced, an existing compiled file newer than its source is reused.
        """
        namespace, view = split_path(path)
        target = self.cache_locator.get_file(view, namespace, self.environment)
        name = self.template_name(namespace, view)

        try:
            if not force and self.is_fresh(name, target):
                logger.debug("Compiled view=%s is fresh at file=%s", path, target)
                return target

            template = self.compile_env.get_template(name)
            content = template.render(self.get_context(namespace, view))
            # the runtime pass must be able to load what we write
            self.runtime_env.parse(content)
        except jinja2.TemplateNotFound as error:
            raise ViewNotFoundError(f"View not found view={path}: {error}") from error
        except jinja2.TemplateError as error:
            raise ViewsError(f"Can not compile view={path}: {error}") from error

        self.files.write(target, content)
        # mtime may not change on a quick recompile
        self.runtime_env.cache.clear()
        logger.info(
            "Compiled view=%s env=%s force=%s", path, self.environment.get_id(), force
        )
        return target

    def is_fresh(self, name: str, target: Path) -> bool:
        """
        Check if the compiled file is at least as new as the source.
        """
        if not target.exists():
            return False
        _, filename, _ = self.compile_env.loader.get_source(self.compile_env, name)
        if not filename:
            return False
        return target.stat().st_mtime >= os.path.getmtime(filename)

    def render(self, path: str, context: dict[str, Any] | None = None) -> str:
        """
        Render the view for the current environment, compiling it if needed.
        """
        target = self.compile(path)
        name = target.relative_to(self.cache_locator.cache_directory).as_posix()
        try:
            template = self.runtime_env.get_template(name)
            return template.render({**self.environment.to_context(), **(context or {})})
        except jinja2.TemplateError as error:
            raise ViewsError(f"Can not render view={path}: {error}") from error

    def list_views(self, namespace: str | None = None) -> list[str]:
        """
        All the views as namespace:view paths.

        Templates whose name starts with `_` are layouts or partials, not views.
        """
        extension = self.config.extension.lstrip(".")
        views = []
        for name in self.compile_env.list_templates(extensions=[extension]):
            view_namespace, view = split_path(name)
            if namespace and view_namespace != namespace:
                continue
            if Path(view).name.startswith("_"):
                continue
            views.append(join_path(view_namespace, view[: -len(self.config.extension)]))
        return sorted(views)
