"""
File operations used by the views cache.
"""

import logging
import os
import tempfile
from pathlib import Path

from pieces.ports import FileRemover

logger = logging.getLogger(__name__)


class FileManager(FileRemover):
    """
    Minimal file manager: write files atomically and delete them.
    """

    def write(self, path: Path, content: str) -> None:
        """
        Write the content to the path, creating parent directories.

        Writes to a temporary file first, so readers never see half files.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmpname = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file:
                file.write(content)
            os.replace(tmpname, path)
        except BaseException:
            os.unlink(tmpname)
            raise
        logger.debug("Wrote file=%s size=%d", path, len(content))

    def delete(self, path: Path) -> bool:
        """
        Delete a file. Missing files are not an error.
        """
        path = Path(path)
        if not path.exists():
            logger.debug("Nothing to delete at file=%s", path)
            return False
        path.unlink()
        logger.debug("Deleted file=%s", path)
        return True
