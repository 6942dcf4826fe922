"""Key-value stores and the login flag."""
from unittest.mock import MagicMock

import pytest

from db import (
    LOGIN_SLOT,
    FileStore,
    MemoryStore,
    StoreError,
    SupabaseStore,
    get_store_uncached,
    is_logged_in,
    logout,
)


def test_file_store_round_trip(file_store):
    assert file_store.get_item("evalify_results") is None
    file_store.set_item("evalify_results", "[1, 2]")
    file_store.set_item("evalify_results", "[3]")
    assert file_store.get_item("evalify_results") == "[3]"
    assert [p.name for p in file_store.data_dir.iterdir()] == ["evalify_results.json"]
    file_store.remove_item("evalify_results")
    assert file_store.get_item("evalify_results") is None


def test_file_store_write_failure(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    with pytest.raises(StoreError):
        FileStore(blocker).set_item("k", "v")


def test_supabase_store_reads_value():
    client = MagicMock()
    client.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value.data = [
        {"value": "[]"}
    ]
    assert SupabaseStore(client).get_item("evalify_results") == "[]"
    client.table.assert_called_with("kv_store")


def test_supabase_store_missing_row():
    client = MagicMock()
    client.table.return_value.select.return_value.eq.return_value.limit.return_value.execute.return_value.data = []
    assert SupabaseStore(client).get_item("evalify_results") is None


def test_supabase_store_upserts_on_key():
    client = MagicMock()
    SupabaseStore(client, table="slots").set_item("evalify_results", "[]")
    client.table.assert_called_with("slots")
    client.table.return_value.upsert.assert_called_once_with(
        {"key": "evalify_results", "value": "[]"}, on_conflict="key"
    )


def test_supabase_errors_become_store_errors():
    client = MagicMock()
    client.table.return_value.upsert.return_value.execute.side_effect = RuntimeError("503")
    with pytest.raises(StoreError):
        SupabaseStore(client).set_item("k", "v")


def test_login_flag():
    store = MemoryStore()
    assert not is_logged_in(store)
    store.set_item(LOGIN_SLOT, "true")
    assert is_logged_in(store)
    logout(store)
    assert not is_logged_in(store)


def test_store_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("EVALIFY_STORE", "file")
    monkeypatch.setenv("EVALIFY_DATA_DIR", str(tmp_path))
    store = get_store_uncached()
    assert isinstance(store, FileStore)
    assert store.data_dir == tmp_path
    monkeypatch.setenv("EVALIFY_STORE", "memory")
    assert isinstance(get_store_uncached(), MemoryStore)
    monkeypatch.setenv("EVALIFY_STORE", "redis")
    with pytest.raises(ValueError):
        get_store_uncached()


def test_supabase_backend_requires_credentials(monkeypatch):
    monkeypatch.setenv("EVALIFY_STORE", "supabase")
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)
    with pytest.raises(ValueError):
        get_store_uncached()
