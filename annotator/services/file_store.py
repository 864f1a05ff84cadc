"""
Local File Store

Stores annotated PDFs on the local filesystem under a directory tree built
from the file key. An existing file under the same key is replaced.
"""

import logging
import os
import tempfile
from pathlib import Path

from annotator.services.canvas_annotation.collaborators import FileKey
from annotator.services.canvas_annotation.exceptions import FileTooLarge

logger = logging.getLogger(__name__)


class LocalFileStore:
    """Filesystem implementation of the FileStore protocol."""

    def __init__(self, root: Path | str, max_bytes: int):
        """
        Args:
            root: Directory under which files are stored
            max_bytes: Files must be non-empty and smaller than this size
        """
        self.root = Path(root)
        self.max_bytes = max_bytes

    def path_for(self, key: FileKey) -> Path:
        """Resolve the on-disk location of a key."""
        parts = [
            str(key.context_id),
            key.component,
            key.file_area,
            str(key.item_id),
            *[p for p in key.file_path.split("/") if p and p not in (".", "..")],
        ]
        name = Path(key.file_name).name
        if not name:
            raise ValueError(f"Invalid file name: {key.file_name!r}")
        return self.root.joinpath(*parts, name)

    def exists(self, key: FileKey) -> bool:
        return self.path_for(key).is_file()

    def save(self, key: FileKey, data: bytes) -> None:
        """
        Store data under a key, overwriting any existing file.

        Raises:
            FileTooLarge: If data is empty or not smaller than max_bytes
        """
        size = len(data)
        if size == 0 or size >= self.max_bytes:
            raise FileTooLarge(size, self.max_bytes)

        target = self.path_for(key)
        target.parent.mkdir(parents=True, exist_ok=True)

        if target.exists():
            logger.info(f"Replacing existing file {target}")

        # Atomic replace of any existing entry
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, suffix=".part")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, target)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Stored {size} bytes at {target}")

    def load(self, key: FileKey) -> bytes:
        return self.path_for(key).read_bytes()
