"""Public entry points.

Every function here returns a :data:`~datastore.result.Result`; failures are
reported as :class:`~datastore.result.Err` and never raised.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, TypeVar

from datastore import codec, persistence
from datastore.namespace import Namespace, get_namespace
from datastore.result import (
    DatastoreException,
    Err,
    ErrorKind,
    Ok,
    Result,
)

__all__ = [
    "get_namespace",
    "ensure_directory",
    "save",
    "load",
    "delete",
    "encode_to_string",
    "decode_from_bytes",
]

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _os_error(exc: BaseException, message: str) -> Err:
    if isinstance(exc, FileNotFoundError):
        kind = ErrorKind.NOT_FOUND
    elif isinstance(exc, PermissionError):
        kind = ErrorKind.PERMISSION_DENIED
    else:
        kind = ErrorKind.IO
    logger.warning("%s", message)
    return Err.of(kind, message)


def _unexpected(kind: ErrorKind, message: str) -> Err:
    logger.exception("%s", message)
    return Err.of(kind, message)


def ensure_directory(path: str | os.PathLike[str]) -> Result[Path]:
    """Create ``path`` and its parents if needed; existing directories are fine."""
    try:
        return Ok(persistence.ensure_dir(path))
    except (OSError, ValueError) as exc:
        message = f"Error creating directory {path}: {exc}"
        logger.warning("%s", message)
        return Err.of(ErrorKind.DIRECTORY_CREATION, message)


def save(namespace: Namespace, filename: str, value: T) -> Result[T]:
    """Encode ``value`` and atomically write it to ``<namespace>/<filename>``.

    The namespace directory is created on demand. Nothing is written when
    encoding fails, and a failed write leaves any previous file intact. On
    success the result carries ``value`` itself.
    """
    target = namespace.file(filename)
    created = ensure_directory(target.parent)
    if isinstance(created, Err):
        return created

    try:
        payload = codec.encode_bytes(value)
    except DatastoreException as exc:
        message = f"Error saving {filename}: {exc.message}"
        logger.warning("%s", message)
        return Err.of(exc.kind, message)
    except Exception as exc:
        return _unexpected(ErrorKind.ENCODING, f"Error saving {filename}: {exc!r}")

    try:
        persistence.atomic_write_bytes(target, payload)
    except (OSError, ValueError) as exc:
        return _os_error(exc, f"Error saving {filename}: {exc}")

    logger.debug("Saved %s (%d bytes)", target, len(payload))
    return Ok(value)


def load(namespace: Namespace, filename: str, as_type: type[T] | Any) -> Result[T]:
    """Read ``<namespace>/<filename>`` and decode it as ``as_type``."""
    target = namespace.file(filename)
    try:
        raw = persistence.read_bytes(target)
    except FileNotFoundError as exc:
        return _os_error(exc, f"Error reading {filename}: file not found at {target}")
    except (OSError, ValueError) as exc:
        return _os_error(exc, f"Error reading {filename}: {exc}")

    try:
        return Ok(codec.decode(raw, as_type))
    except DatastoreException as exc:
        message = f"Error reading {filename}: {exc.message}"
        logger.warning("%s", message)
        return Err.of(exc.kind, message)
    except Exception as exc:
        return _unexpected(ErrorKind.DECODING, f"Error reading {filename}: {exc!r}")


def delete(namespace: Namespace, filename: str) -> Result[None]:
    """Remove ``<namespace>/<filename>``; a missing file is a ``NOT_FOUND`` error."""
    target = namespace.file(filename)
    try:
        persistence.remove_file(target)
    except FileNotFoundError as exc:
        return _os_error(exc, f"File not found at path: {target}")
    except (OSError, ValueError) as exc:
        return _os_error(exc, f"Error deleting file at path {target}: {exc}")
    logger.debug("Deleted %s", target)
    return Ok(None)


def encode_to_string(value: Any) -> Result[str]:
    try:
        return Ok(codec.encode(value))
    except DatastoreException as exc:
        return Err(exc.to_error())
    except Exception as exc:
        return _unexpected(ErrorKind.ENCODING, f"Failed to encode object: {exc!r}")


def decode_from_bytes(data: bytes | bytearray | str, as_type: type[T] | Any) -> Result[T]:
    try:
        return Ok(codec.decode(data, as_type))
    except DatastoreException as exc:
        return Err(exc.to_error())
    except Exception as exc:
        return _unexpected(ErrorKind.DECODING, f"Failed to decode JSON: {exc!r}")
