"""JSON codec for typed values.

Encoding walks the value and turns dataclasses, enums, dates and a few other
standard types into plain JSON data before handing it to :mod:`json`.
Decoding parses JSON and rebuilds the value described by a type hint::

    @dataclass
    class User:
        name: str
        joined: datetime

    text = encode(User("Ana", datetime(2024, 1, 1, tzinfo=timezone.utc)))
    # '{"name":"Ana","joined":"2024-01-01T00:00:00Z"}'
    decode(text, User)

Dates use ISO-8601. Aware datetimes are normalised to UTC and written with a
``Z`` suffix; naive ones are written without an offset. Sub-second precision
follows :data:`datastore.config.DATE_TIMESPEC`.
"""
from __future__ import annotations

import collections.abc
import dataclasses
import json
import math
import types
import typing
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import PurePath
from typing import Any, Literal, TypeVar, Union, get_args, get_origin, get_type_hints
from uuid import UUID

from datastore import config
from datastore.result import DecodingError, EncodingError

__all__ = [
    "encode",
    "encode_bytes",
    "decode",
    "format_datetime",
    "parse_datetime",
]

T = TypeVar("T")

_NoneType = type(None)
_UNION_ORIGINS = (Union, types.UnionType)
_SEQUENCE_ORIGINS = (list, collections.abc.Sequence, collections.abc.MutableSequence)
_SET_ORIGINS = (set, frozenset, collections.abc.Set, collections.abc.MutableSet)
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


# ── Dates ────────────────────────────────────────────────────


def format_datetime(value: datetime) -> str:
    timespec = config.DATE_TIMESPEC
    if value.tzinfo is not None and value.utcoffset() is not None:
        utc = value.astimezone(timezone.utc).replace(tzinfo=None)
        return utc.isoformat(timespec=timespec) + "Z"
    return value.isoformat(timespec=timespec)


def parse_datetime(text: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z`` for UTC."""
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


# ── Encoding ─────────────────────────────────────────────────


def encode(value: Any) -> str:
    """Return the compact JSON text for ``value``.

    Raises :class:`EncodingError` for unsupported types, circular references
    and non-finite floats.
    """
    try:
        tree = _to_json(value, "$", set())
    except RecursionError as exc:
        raise EncodingError("Failed to encode object: value nested too deeply") from exc
    try:
        return json.dumps(
            tree, ensure_ascii=False, separators=(",", ":"), allow_nan=False
        )
    except ValueError as exc:
        raise EncodingError(f"Failed to encode object: {exc}") from exc


def encode_bytes(value: Any) -> bytes:
    return encode(value).encode("utf-8")


def _to_json(obj: Any, path: str, active: set[int]) -> Any:
    if isinstance(obj, Enum):
        return _to_json(obj.value, path, active)
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, datetime):
        return format_datetime(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, (UUID, PurePath)):
        return str(obj)

    is_dataclass = dataclasses.is_dataclass(obj) and not isinstance(obj, type)
    if not (is_dataclass or isinstance(obj, (dict, list, tuple, set, frozenset))):
        raise EncodingError(
            f"Failed to encode object: unsupported type {type(obj).__name__} at {path}"
        )

    if id(obj) in active:
        raise EncodingError(f"Failed to encode object: circular reference at {path}")
    active.add(id(obj))
    try:
        if is_dataclass:
            out = {}
            for f in dataclasses.fields(obj):
                try:
                    attr = getattr(obj, f.name)
                except AttributeError:
                    raise EncodingError(
                        f"Failed to encode object: missing attribute at {path}.{f.name}"
                    ) from None
                out[f.name] = _to_json(attr, f"{path}.{f.name}", active)
            return out
        if isinstance(obj, dict):
            out = {}
            for k, v in obj.items():
                key = _key_to_json(k, path)
                if key in out:
                    raise EncodingError(
                        f"Failed to encode object: duplicate key {key!r} at {path}"
                    )
                out[key] = _to_json(v, f"{path}[{k!r}]", active)
            return out
        if isinstance(obj, (set, frozenset)):
            try:
                items = sorted(obj)
            except TypeError:
                items = list(obj)
        else:
            items = obj
        return [_to_json(v, f"{path}[{i}]", active) for i, v in enumerate(items)]
    finally:
        active.discard(id(obj))


def _key_to_json(key: Any, path: str) -> str:
    """Render a dictionary key as the string JSON will store.

    Only keys that decoding can rebuild are accepted; bools and ``None``
    are rejected.
    """
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, str):
        return key
    if isinstance(key, int) and not isinstance(key, bool):
        return str(key)
    if isinstance(key, float) and math.isfinite(key):
        return repr(key)
    if isinstance(key, datetime):
        return format_datetime(key)
    if isinstance(key, (date, UUID, PurePath)):
        return str(key)
    raise EncodingError(
        f"Failed to encode object: unsupported key type {type(key).__name__} at {path}"
    )


# ── Decoding ─────────────────────────────────────────────────


def decode(data: bytes | bytearray | str, as_type: Any) -> Any:
    """Parse JSON ``data`` and build a value of ``as_type``.

    Raises :class:`DecodingError` for malformed input or shape mismatches;
    the message carries the JSON path of the offending element.
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodingError(f"Failed to decode JSON: invalid UTF-8 ({exc})") from exc
    try:
        raw = json.loads(data, parse_constant=_reject_constant)
    except (ValueError, TypeError, RecursionError) as exc:
        raise DecodingError(f"Failed to decode JSON: {exc}") from exc
    try:
        return _coerce(raw, as_type, "$")
    except RecursionError as exc:
        raise DecodingError("Failed to decode JSON: value nested too deeply") from exc


def _reject_constant(name: str) -> None:
    raise ValueError(f"non-standard constant {name}")


def _kind(data: Any) -> str:
    if data is None:
        return "null"
    if isinstance(data, bool):
        return "boolean"
    if isinstance(data, (int, float)):
        return "number"
    if isinstance(data, str):
        return "string"
    if isinstance(data, list):
        return "array"
    return "object"


def _type_name(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__name__
    return str(tp).replace("typing.", "")


def _mismatch(data: Any, tp: Any, path: str) -> DecodingError:
    return DecodingError(
        f"Failed to decode JSON: {path}: expected {_type_name(tp)}, got {_kind(data)}"
    )


def _coerce(data: Any, tp: Any, path: str) -> Any:
    if tp is Any or tp is object or isinstance(tp, TypeVar):
        return data
    if tp is None or tp is _NoneType:
        if data is None:
            return None
        raise _mismatch(data, tp, path)

    origin = get_origin(tp)
    if origin is not None:
        return _coerce_generic(data, tp, origin, path)

    if tp is bool:
        if isinstance(data, bool):
            return data
        raise _mismatch(data, tp, path)
    if tp is int:
        if isinstance(data, int) and not isinstance(data, bool):
            return data
        raise _mismatch(data, tp, path)
    if tp is float:
        if isinstance(data, (int, float)) and not isinstance(data, bool):
            return float(data)
        raise _mismatch(data, tp, path)
    if tp is str:
        if isinstance(data, str):
            return data
        raise _mismatch(data, tp, path)

    if not isinstance(tp, type):
        raise DecodingError(f"Failed to decode JSON: unsupported target type {tp!r}")

    if issubclass(tp, Enum):
        try:
            return tp(data)
        except (ValueError, TypeError):
            raise DecodingError(
                f"Failed to decode JSON: {path}: {data!r} is not a valid {tp.__name__}"
            ) from None
    if issubclass(tp, datetime):
        return _parse_text(data, tp, path, parse_datetime)
    if issubclass(tp, date):
        return _parse_text(data, tp, path, date.fromisoformat)
    if issubclass(tp, UUID):
        return _parse_text(data, tp, path, UUID)
    if issubclass(tp, PurePath):
        return _parse_text(data, tp, path, tp)
    if dataclasses.is_dataclass(tp):
        return _decode_dataclass(data, tp, path)
    if typing.is_typeddict(tp):
        return _decode_typeddict(data, tp, path)

    # Bare containers carry no element types.
    if tp is list:
        if isinstance(data, list):
            return data
        raise _mismatch(data, tp, path)
    if tp is dict:
        if isinstance(data, dict):
            return data
        raise _mismatch(data, tp, path)
    if tp in (tuple, set, frozenset):
        if not isinstance(data, list):
            raise _mismatch(data, tp, path)
        try:
            return tp(data)
        except TypeError as exc:
            raise DecodingError(f"Failed to decode JSON: {path}: {exc}") from exc

    raise DecodingError(f"Failed to decode JSON: unsupported target type {tp.__name__}")


def _parse_text(data: Any, tp: type, path: str, parse: Any) -> Any:
    if not isinstance(data, str):
        raise _mismatch(data, tp, path)
    try:
        return parse(data)
    except ValueError:
        raise DecodingError(
            f"Failed to decode JSON: {path}: {data!r} is not a valid {tp.__name__}"
        ) from None


def _coerce_generic(data: Any, tp: Any, origin: Any, path: str) -> Any:
    args = get_args(tp)

    if origin in _UNION_ORIGINS:
        for arg in args:
            try:
                return _coerce(data, arg, path)
            except DecodingError:
                continue
        raise _mismatch(data, tp, path)

    if origin is Literal:
        for arg in args:
            if data == arg and type(data) is type(arg):
                return arg
        raise DecodingError(
            f"Failed to decode JSON: {path}: {data!r} is not one of {list(args)!r}"
        )

    if origin is typing.Annotated:
        return _coerce(data, args[0], path)

    if origin in _SEQUENCE_ORIGINS:
        if not isinstance(data, list):
            raise _mismatch(data, tp, path)
        item = args[0] if args else Any
        return [_coerce(v, item, f"{path}[{i}]") for i, v in enumerate(data)]

    if origin is tuple:
        if not isinstance(data, list):
            raise _mismatch(data, tp, path)
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_coerce(v, args[0], f"{path}[{i}]") for i, v in enumerate(data))
        if args == ((),):
            args = ()
        if len(data) != len(args):
            raise DecodingError(
                f"Failed to decode JSON: {path}: expected {len(args)} items, got {len(data)}"
            )
        return tuple(
            _coerce(v, a, f"{path}[{i}]") for i, (v, a) in enumerate(zip(data, args))
        )

    if origin in _SET_ORIGINS:
        if not isinstance(data, list):
            raise _mismatch(data, tp, path)
        item = args[0] if args else Any
        values = [_coerce(v, item, f"{path}[{i}]") for i, v in enumerate(data)]
        try:
            return frozenset(values) if origin is frozenset else set(values)
        except TypeError as exc:
            raise DecodingError(f"Failed to decode JSON: {path}: {exc}") from exc

    if origin in _MAPPING_ORIGINS:
        if not isinstance(data, dict):
            raise _mismatch(data, tp, path)
        key_type, value_type = args if len(args) == 2 else (Any, Any)
        return {
            _coerce_key(k, key_type, path): _coerce(v, value_type, f"{path}[{k!r}]")
            for k, v in data.items()
        }

    if dataclasses.is_dataclass(origin):
        # Parametrised generic dataclass; type variables decode as Any.
        return _decode_dataclass(data, origin, path)

    raise DecodingError(f"Failed to decode JSON: unsupported target type {_type_name(tp)}")


def _coerce_key(key: str, tp: Any, path: str) -> Any:
    """Rebuild a dictionary key; JSON object keys are always strings."""
    if tp is Any or tp is object or tp is str:
        return key
    if tp in (int, float):
        try:
            return tp(key)
        except ValueError:
            raise DecodingError(
                f"Failed to decode JSON: {path}: key {key!r} is not a valid {tp.__name__}"
            ) from None
    if isinstance(tp, type) and issubclass(tp, Enum):
        try:
            return tp(key)
        except ValueError:
            pass
        try:
            return tp(int(key))
        except ValueError:
            raise DecodingError(
                f"Failed to decode JSON: {path}: key {key!r} is not a valid {tp.__name__}"
            ) from None
    return _coerce(key, tp, f"{path}[{key!r}]")


def _hints(tp: type) -> dict[str, Any]:
    try:
        return get_type_hints(tp)
    except (NameError, TypeError) as exc:
        raise DecodingError(
            f"Failed to decode JSON: cannot resolve annotations of {tp.__name__}: {exc}"
        ) from exc


def _decode_dataclass(data: Any, tp: type, path: str) -> Any:
    if not isinstance(data, dict):
        raise _mismatch(data, tp, path)
    hints = _hints(tp)
    kwargs = {}
    for f in dataclasses.fields(tp):
        if not f.init:
            continue
        if f.name in data:
            kwargs[f.name] = _coerce(data[f.name], hints.get(f.name, Any), f"{path}.{f.name}")
        elif f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            raise DecodingError(
                f"Failed to decode JSON: {path}: missing required field '{f.name}'"
            )
    try:
        return tp(**kwargs)
    except Exception as exc:
        raise DecodingError(
            f"Failed to decode JSON: {path}: cannot build {tp.__name__}: {exc}"
        ) from exc


def _decode_typeddict(data: Any, tp: type, path: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise _mismatch(data, tp, path)
    hints = _hints(tp)
    missing = [k for k in getattr(tp, "__required_keys__", ()) if k not in data]
    if missing:
        raise DecodingError(
            f"Failed to decode JSON: {path}: missing required key '{sorted(missing)[0]}'"
        )
    return {
        k: _coerce(v, hints[k], f"{path}.{k}") if k in hints else v
        for k, v in data.items()
    }
