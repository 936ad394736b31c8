import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from datastore import (
    ErrorKind,
    Ok,
    Status,
    delete,
    ensure_directory,
    get_namespace,
    load,
    persistence,
    save,
)
from datastore import api, config


@dataclass
class User:
    name: str
    joined: datetime


ANA = User("Ana", datetime(2024, 1, 1, tzinfo=timezone.utc))


@pytest.fixture
def docs(tmp_path, monkeypatch):
    root = tmp_path / "docs"
    monkeypatch.setattr(config, "DOCUMENTS_DIR", root)
    monkeypatch.setattr(config, "DATE_TIMESPEC", "seconds")
    return root


def test_save_and_load_profile(docs):
    ns = get_namespace("profile")
    assert not (docs / "profile").exists()

    result = save(ns, "user.json", ANA)
    assert result.status is Status.OK
    assert result.value is ANA

    path = docs / "profile" / "user.json"
    assert path.read_bytes() == b'{"name":"Ana","joined":"2024-01-01T00:00:00Z"}'
    assert load(ns, "user.json", User) == Ok(ANA)


def test_round_trip_collections(docs):
    ns = get_namespace("lists")
    users = [ANA, User("Bo", datetime(2023, 12, 31, 23, 59, 59, tzinfo=timezone.utc))]
    assert save(ns, "users.json", users).ok
    assert load(ns, "users.json", list[User]).value == users

    assert save(ns, "settings.json", {"theme": "dark", "volume": 3}).ok
    assert load(ns, "settings.json", dict[str, object]).value == {"theme": "dark", "volume": 3}


def test_last_writer_wins(docs):
    ns = get_namespace("profile")
    save(ns, "user.json", ANA)
    save(ns, "user.json", User("Bo", ANA.joined))
    assert load(ns, "user.json", User).value.name == "Bo"


def test_explicit_root_bypasses_config(docs, tmp_path):
    ns = get_namespace("elsewhere", root=tmp_path / "other")
    assert save(ns, "n.json", 1).ok
    assert (tmp_path / "other" / "elsewhere" / "n.json").read_text() == "1"
    assert not docs.exists()


def test_load_missing_file(docs):
    result = load(get_namespace("profile"), "nonexistent.json", User)
    assert result.status is Status.ERROR
    assert result.kind is ErrorKind.NOT_FOUND
    assert "nonexistent.json" in result.message
    # Reading never creates the namespace directory.
    assert not (docs / "profile").exists()


def test_load_malformed_json(docs):
    target = docs / "profile" / "user.json"
    target.parent.mkdir(parents=True)
    target.write_bytes(b"not json at all")

    result = load(get_namespace("profile"), "user.json", User)
    assert result.kind is ErrorKind.DECODING
    assert "user.json" in result.message
    assert "decode" in result.message


def test_load_shape_mismatch(docs):
    save(get_namespace("profile"), "user.json", {"name": "Ana"})
    result = load(get_namespace("profile"), "user.json", User)
    assert result.kind is ErrorKind.DECODING
    assert "missing required field 'joined'" in result.message


def test_encoding_failure_leaves_file_untouched(docs):
    ns = get_namespace("profile")
    save(ns, "user.json", ANA)
    path = docs / "profile" / "user.json"
    before = path.read_bytes()

    result = save(ns, "user.json", {"name": object()})
    assert result.kind is ErrorKind.ENCODING
    assert "user.json" in result.message
    assert path.read_bytes() == before
    assert [p.name for p in path.parent.iterdir()] == ["user.json"]


def test_encoding_failure_creates_no_file(docs):
    result = save(get_namespace("profile"), "loop.json", float("inf"))
    assert result.kind is ErrorKind.ENCODING
    assert not (docs / "profile" / "loop.json").exists()


def test_write_failure_leaves_file_untouched(docs, monkeypatch):
    ns = get_namespace("profile")
    save(ns, "user.json", ANA)
    path = docs / "profile" / "user.json"
    before = path.read_bytes()

    def boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(persistence.os, "replace", boom)
    result = save(ns, "user.json", User("Bo", ANA.joined))

    assert result.kind is ErrorKind.IO
    assert "disk full" in result.message
    assert path.read_bytes() == before
    assert [p.name for p in path.parent.iterdir()] == ["user.json"]


def test_permission_errors_are_classified(docs, monkeypatch):
    def denied(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(persistence, "read_bytes", denied)
    result = load(get_namespace("profile"), "user.json", User)
    assert result.kind is ErrorKind.PERMISSION_DENIED


def test_directory_creation_failure(docs):
    docs.mkdir()
    (docs / "blocked").write_text("a file, not a directory")

    result = save(get_namespace("blocked"), "user.json", ANA)
    assert result.kind is ErrorKind.DIRECTORY_CREATION
    assert "blocked" in result.message


def test_ensure_directory_is_idempotent(tmp_path):
    target = tmp_path / "a" / "b"
    first = ensure_directory(target)
    second = ensure_directory(target)
    assert first == second == Ok(target)
    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_delete(docs):
    ns = get_namespace("profile")
    save(ns, "user.json", ANA)

    assert delete(ns, "user.json") == Ok(None)
    assert not (docs / "profile" / "user.json").exists()

    again = delete(ns, "user.json")
    assert again.status is Status.ERROR
    assert again.kind is ErrorKind.NOT_FOUND
    assert "File not found at path" in again.message


def test_failures_are_logged(docs, caplog):
    with caplog.at_level(logging.WARNING, logger=api.__name__):
        load(get_namespace("profile"), "nonexistent.json", User)
    assert "nonexistent.json" in caplog.text


def test_save_unset_field_is_an_error(docs):
    from dataclasses import field

    @dataclass
    class Draft:
        title: str
        slug: str = field(init=False)

    result = save(get_namespace("drafts"), "draft.json", Draft("hello"))
    assert result.kind is ErrorKind.ENCODING
    assert not (docs / "drafts" / "draft.json").exists()


def test_save_unexpected_failure_is_an_error(docs, monkeypatch):
    def explode(value):
        raise RuntimeError("boom")

    monkeypatch.setattr(api.codec, "encode_bytes", explode)
    result = save(get_namespace("profile"), "user.json", ANA)
    assert result.kind is ErrorKind.ENCODING
    assert "user.json" in result.message


def test_delete_permission_denied(docs, monkeypatch):
    def denied(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(persistence, "remove_file", denied)
    result = delete(get_namespace("profile"), "user.json")
    assert result.kind is ErrorKind.PERMISSION_DENIED


def test_delete_directory_is_io_error(docs):
    (docs / "profile" / "user.json").mkdir(parents=True)
    result = delete(get_namespace("profile"), "user.json")
    assert result.status is Status.ERROR
    assert result.kind in (ErrorKind.IO, ErrorKind.PERMISSION_DENIED)
    assert (docs / "profile" / "user.json").is_dir()


def test_load_directory_is_io_error(docs):
    (docs / "profile" / "user.json").mkdir(parents=True)
    result = load(get_namespace("profile"), "user.json", User)
    assert result.kind is ErrorKind.IO
    assert "user.json" in result.message


def test_ensure_directory_rejects_nul(tmp_path):
    result = ensure_directory(tmp_path / "bad\0name")
    assert result.kind is ErrorKind.DIRECTORY_CREATION
