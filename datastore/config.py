"""Environment driven settings for the datastore.

Values are resolved once at import; reload the module to pick up changes.
"""

import logging
import os
from pathlib import Path

_TIMESPECS = ("seconds", "milliseconds", "microseconds")


def _resolve_documents_dir() -> Path:
    """Resolve the user documents root under which namespaces live.

    Priority order:
    1. ``DATASTORE_DOCUMENTS_DIR`` environment variable
    2. ``XDG_DOCUMENTS_DIR`` environment variable
    3. ``~/Documents`` when it exists
    4. the home directory
    """
    for var in ("DATASTORE_DOCUMENTS_DIR", "XDG_DOCUMENTS_DIR"):
        env = os.getenv(var)
        if env:
            return Path(env).expanduser()
    home = Path.home()
    documents = home / "Documents"
    if documents.is_dir():
        return documents
    return home


def _resolve_timespec() -> str:
    value = os.getenv("DATASTORE_DATE_TIMESPEC", "seconds").strip().lower()
    if value not in _TIMESPECS:
        logging.getLogger(__name__).warning(
            "Unknown DATASTORE_DATE_TIMESPEC %r; using 'seconds'", value
        )
        return "seconds"
    return value


# ── Location ─────────────────────────────────────────────────
DOCUMENTS_DIR: Path = _resolve_documents_dir()

# ── JSON encoding ────────────────────────────────────────────
DATE_TIMESPEC: str = _resolve_timespec()

# ── Disk writes ─────────────────────────────────────────────
FSYNC: bool = os.getenv("DATASTORE_FSYNC", "1") != "0"

# ── Logging ──────────────────────────────────────────────────
LOG_LEVEL: str | None = os.getenv("DATASTORE_LOG_LEVEL") or None
if LOG_LEVEL:
    if isinstance(logging.getLevelName(LOG_LEVEL.upper()), int):
        logging.getLogger("datastore").setLevel(LOG_LEVEL.upper())
    else:
        logging.getLogger(__name__).warning(
            "Unknown DATASTORE_LOG_LEVEL %r; leaving log level unchanged", LOG_LEVEL
        )
        LOG_LEVEL = None
