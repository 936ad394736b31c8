import logging
import os
import stat
import tempfile
from pathlib import Path

from datastore import config

__all__ = [
    "ensure_dir",
    "atomic_write_bytes",
    "read_bytes",
    "remove_file",
]

logger = logging.getLogger(__name__)


def ensure_dir(path: str | os.PathLike[str]) -> Path:
    """Ensure that ``path`` exists as a directory and return it."""
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def _target_mode(dest: Path) -> int:
    """Mode for the replacement file: the current one, else what ``open`` would give."""
    try:
        return stat.S_IMODE(dest.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def atomic_write_bytes(path: str | os.PathLike[str], data: bytes) -> None:
    """Atomically replace ``path`` with ``data``.

    The bytes go to a temporary file in the destination directory which is
    then moved over ``path`` with :func:`os.replace`. Readers see either the
    previous content or the new one. The parent directory must exist.
    """
    dest = Path(path)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(dest.parent), prefix=f".{dest.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            os.chmod(tmp_path, _target_mode(dest))
            f.write(data)
            f.flush()
            if config.FSYNC:
                os.fsync(f.fileno())
        os.replace(tmp_path, dest)
    finally:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception("Failed to remove temporary file %s", tmp_path)


def read_bytes(path: str | os.PathLike[str]) -> bytes:
    """Return the raw content of ``path``."""
    with open(path, "rb") as f:
        return f.read()


def remove_file(path: str | os.PathLike[str]) -> None:
    """Delete ``path``; raises :class:`FileNotFoundError` when it is absent."""
    os.remove(path)
