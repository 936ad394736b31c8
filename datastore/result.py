"""Success/failure envelope returned by every public datastore operation."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, NoReturn, TypeVar, Union

T = TypeVar("T")

__all__ = [
    "Status",
    "ErrorKind",
    "DatastoreError",
    "DatastoreException",
    "EncodingError",
    "DecodingError",
    "Ok",
    "Err",
    "Result",
]


class Status(Enum):
    OK = "ok"
    ERROR = "error"


class ErrorKind(Enum):
    ENCODING = "encoding"
    DECODING = "decoding"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    IO = "io"
    DIRECTORY_CREATION = "directory_creation"


@dataclass(frozen=True)
class DatastoreError:
    """Failure description carried by :class:`Err`."""

    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


class DatastoreException(Exception):
    """Raised internally and by :meth:`Err.unwrap`; never by public operations."""

    kind = ErrorKind.IO

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    def to_error(self) -> DatastoreError:
        return DatastoreError(self.kind, self.message)


class EncodingError(DatastoreException):
    kind = ErrorKind.ENCODING


class DecodingError(DatastoreException):
    kind = ErrorKind.DECODING


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    status = Status.OK
    error = None

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: DatastoreError

    status = Status.ERROR

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message

    def unwrap(self) -> NoReturn:
        raise DatastoreException(self.error.message, self.error.kind)

    @classmethod
    def of(cls, kind: ErrorKind, message: str) -> "Err":
        return cls(DatastoreError(kind, message))


Result = Union[Ok[T], Err]
