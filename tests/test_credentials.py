"""Tests for the credential stores."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from hydronyx_web.config import Settings
from hydronyx_web.credentials import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    FileCredentialStore,
    MemoryCredentialStore,
    SessionCredentialStore,
    create_credential_store,
)


class TestMemoryCredentialStore:
    def test_empty_by_default(self) -> None:
        store = MemoryCredentialStore()
        assert store.get_access_token() is None
        assert store.get_refresh_token() is None

    def test_set_and_clear(self) -> None:
        store = MemoryCredentialStore()
        store.set_tokens("a", "r")
        assert store.get_access_token() == "a"
        assert store.get_refresh_token() == "r"
        store.clear()
        assert store.get_access_token() is None
        assert store.get_refresh_token() is None

    def test_new_login_without_refresh_drops_old_refresh(self) -> None:
        store = MemoryCredentialStore("a", "r")
        store.set_tokens("b")
        assert store.get_access_token() == "b"
        assert store.get_refresh_token() is None


class TestSessionCredentialStore:
    def test_writes_fixed_keys_into_session(self) -> None:
        session: dict = {"user_email": "a@b.c"}
        store = SessionCredentialStore(session)
        store.set_tokens("a", "r")
        assert session[ACCESS_TOKEN_KEY] == "a"
        assert session[REFRESH_TOKEN_KEY] == "r"

    def test_clear_keeps_other_session_data(self) -> None:
        session = {"user_email": "a@b.c", ACCESS_TOKEN_KEY: "a", REFRESH_TOKEN_KEY: "r"}
        SessionCredentialStore(session).clear()
        assert session == {"user_email": "a@b.c"}


class TestFileCredentialStore:
    def test_missing_file_reads_as_no_token(self, tmp_path: Path) -> None:
        store = FileCredentialStore(tmp_path / "creds.json")
        assert store.get_access_token() is None

    def test_round_trip_through_file(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "creds.json"
        FileCredentialStore(path).set_tokens("a", "r")
        assert json.loads(path.read_text()) == {ACCESS_TOKEN_KEY: "a", REFRESH_TOKEN_KEY: "r"}
        other = FileCredentialStore(path)
        assert other.get_access_token() == "a"
        assert other.get_refresh_token() == "r"

    def test_external_removal_is_seen(self, tmp_path: Path) -> None:
        path = tmp_path / "creds.json"
        store = FileCredentialStore(path)
        store.set_tokens("a")
        path.unlink()
        assert store.get_access_token() is None

    def test_corrupt_file_reads_as_no_token(self, tmp_path: Path) -> None:
        path = tmp_path / "creds.json"
        path.write_text("{not json")
        assert FileCredentialStore(path).get_access_token() is None

    def test_non_object_file_reads_as_no_token(self, tmp_path: Path) -> None:
        path = tmp_path / "creds.json"
        path.write_text('["a"]')
        assert FileCredentialStore(path).get_access_token() is None

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
    def test_file_readable_by_owner_only(self, tmp_path: Path) -> None:
        path = tmp_path / "creds.json"
        path.write_text("{}")
        os.chmod(path, 0o644)
        FileCredentialStore(path).set_tokens("a", "r")
        assert path.stat().st_mode & 0o077 == 0
        assert FileCredentialStore(path).get_access_token() == "a"

    def test_write_leaves_no_temp_files(self, tmp_path: Path) -> None:
        store = FileCredentialStore(tmp_path / "creds.json")
        store.set_tokens("a")
        store.set_tokens("b")
        assert [p.name for p in tmp_path.iterdir()] == ["creds.json"]
        assert store.get_access_token() == "b"

    def test_clear_removes_file(self, tmp_path: Path) -> None:
        path = tmp_path / "creds.json"
        store = FileCredentialStore(path)
        store.set_tokens("a")
        store.clear()
        assert not path.exists()
        store.clear()


class TestCreateCredentialStore:
    def test_file_store_when_configured(self, tmp_path: Path) -> None:
        store = create_credential_store(Settings(CREDENTIALS_FILE=tmp_path / "creds.json"))
        assert isinstance(store, FileCredentialStore)
        assert store.path == tmp_path / "creds.json"

    def test_memory_store_otherwise(self, monkeypatch) -> None:
        monkeypatch.delenv("CREDENTIALS_FILE", raising=False)
        assert isinstance(create_credential_store(Settings()), MemoryCredentialStore)
