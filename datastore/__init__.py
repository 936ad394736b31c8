"""Typed JSON records stored in namespaced directories under the documents root."""

from .api import (
    decode_from_bytes,
    delete,
    encode_to_string,
    ensure_directory,
    get_namespace,
    load,
    save,
)
from .namespace import Namespace
from .result import (
    DatastoreError,
    DatastoreException,
    Err,
    ErrorKind,
    Ok,
    Result,
    Status,
)

__all__ = [
    "get_namespace",
    "ensure_directory",
    "save",
    "load",
    "delete",
    "encode_to_string",
    "decode_from_bytes",
    "Namespace",
    "Result",
    "Ok",
    "Err",
    "Status",
    "ErrorKind",
    "DatastoreError",
    "DatastoreException",
]
