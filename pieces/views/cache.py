"""
Locates compiled views in the cache directory.
"""

import glob
import logging
from pathlib import Path

from pieces.ports import CacheLocator
from pieces.views.types import ViewEnvironment

logger = logging.getLogger(__name__)

ENV_ID_PATTERN = "[0-9a-f]" * 12


class ViewCacheLocator(CacheLocator):
    """
    Compiled views are stored at `<cache>/<namespace>/<view>.<env id><extension>`.
    """

    def __init__(self, cache_directory: Path, extension: str = ".html"):
        self.cache_directory = Path(cache_directory)
        self.extension = extension

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} path={self.cache_directory}>"

    def get_file(self, view: str, namespace: str, environment: ViewEnvironment) -> Path:
        """
        The compiled file for a view in a given environment.
        """
        return (
            self.cache_directory
            / namespace
            / f"{view}.{environment.get_id()}{self.extension}"
        )

    def get_files(self, view: str, namespace: str) -> list[Path]:
        """
        All compiled files of the view, whatever the environment.
        """
        directory = self.cache_directory / namespace
        if not directory.exists():
            return []
        pattern = f"{glob.escape(view)}.{ENV_ID_PATTERN}{glob.escape(self.extension)}"
        files = sorted(path for path in directory.glob(pattern) if path.is_file())
        logger.debug(
            "Found count=%d compiled files for view=%s namespace=%s",
            len(files),
            view,
            namespace,
        )
        return files
