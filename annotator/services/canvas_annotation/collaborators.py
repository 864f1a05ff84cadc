"""
External collaborator interfaces.

The annotation core does not convert PDF versions or persist files itself;
it talks to these collaborators through the protocols below.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class FileKey:
    """Location of a stored file."""

    context_id: int
    component: str
    file_area: str
    item_id: int
    file_path: str
    file_name: str

    def as_tuple(self) -> tuple:
        return (
            self.context_id,
            self.component,
            self.file_area,
            self.item_id,
            self.file_path,
            self.file_name,
        )


@runtime_checkable
class VersionNormalizer(Protocol):
    """Converts a PDF to an equivalent file at a version the compositor accepts."""

    def normalize(self, pdf_path: Path) -> Path:
        ...


@runtime_checkable
class FileStore(Protocol):
    """Persists finished documents, replacing any existing entry under the same key."""

    max_bytes: int

    def save(self, key: FileKey, data: bytes) -> None:
        ...
