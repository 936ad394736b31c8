"""Logical storage buckets living under the user documents root."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from datastore import config

__all__ = ["Namespace", "get_namespace", "resolve"]


def resolve(name: str, root: str | os.PathLike[str] | None = None) -> Path:
    """Return ``<root>/<name>``; ``root`` defaults to :data:`config.DOCUMENTS_DIR`.

    No I/O happens here and ``name`` is not validated: names containing
    ``..`` or absolute paths escape the documents root.
    """
    base = Path(root) if root is not None else Path(config.DOCUMENTS_DIR)
    return base / name


@dataclass(frozen=True)
class Namespace:
    name: str
    root: Path | None = None

    def resolve(self) -> Path:
        return resolve(self.name, self.root)

    def file(self, filename: str) -> Path:
        return self.resolve() / filename


def get_namespace(name: str, root: str | os.PathLike[str] | None = None) -> Namespace:
    return Namespace(name, Path(root) if root is not None else None)
