"""Durable key-value slots (test feed, results ledger, login flag). Client is cached via Streamlit."""
import logging
import os
import tempfile
from pathlib import Path

import streamlit as st
from dotenv import load_dotenv
from supabase import create_client, Client

load_dotenv()

logger = logging.getLogger(__name__)

TESTS_SLOT = "teacher_tests"
RESULTS_SLOT = "evalify_results"
LOGIN_SLOT = "evalify_student_logged_in"

DEFAULT_DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_KV_TABLE = "kv_store"


class StoreError(Exception):
    """A durable store could not read or write a slot."""


class MemoryStore:
    """Process-local store. Nothing survives a restart."""

    def __init__(self, initial: dict | None = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStore:
    """One UTF-8 file per slot under data_dir. Writes replace the whole file atomically."""

    def __init__(self, data_dir: Path | str = DEFAULT_DATA_DIR):
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
        return self.data_dir / f"{safe}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(f"Could not read slot {key!r} from {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=f".{path.stem}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"Could not write slot {key!r} to {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Could not remove slot {key!r}: {e}") from e


class SupabaseStore:
    """Slots as rows of a two-column table (key text primary key, value text)."""

    def __init__(self, client: Client, table: str = DEFAULT_KV_TABLE):
        self.client = client
        self.table = table

    def get_item(self, key: str) -> str | None:
        try:
            r = self.client.table(self.table).select("value").eq("key", key).limit(1).execute()
        except Exception as e:
            raise StoreError(f"Could not read slot {key!r}: {e}") from e
        data = r.data or []
        if not data:
            return None
        return data[0].get("value")

    def set_item(self, key: str, value: str) -> None:
        try:
            self.client.table(self.table).upsert({"key": key, "value": value}, on_conflict="key").execute()
        except Exception as e:
            raise StoreError(f"Could not write slot {key!r}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self.client.table(self.table).delete().eq("key", key).execute()
        except Exception as e:
            raise StoreError(f"Could not remove slot {key!r}: {e}") from e


def _env_supabase_client() -> Client:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(url, key)


def _env_store():
    backend = (os.environ.get("EVALIFY_STORE") or "file").strip().lower()
    if backend == "supabase":
        table = os.environ.get("EVALIFY_KV_TABLE") or DEFAULT_KV_TABLE
        logger.info("Using Supabase store (table %s)", table)
        return SupabaseStore(_env_supabase_client(), table=table)
    if backend == "memory":
        logger.info("Using in-memory store")
        return MemoryStore()
    if backend != "file":
        raise ValueError(f"Unknown EVALIFY_STORE backend: {backend!r} (expected file, memory or supabase)")
    data_dir = Path(os.environ.get("EVALIFY_DATA_DIR") or DEFAULT_DATA_DIR)
    logger.info("Using file store at %s", data_dir)
    return FileStore(data_dir)


@st.cache_resource
def get_store():
    return _env_store()


def get_store_uncached():
    """For CLI/scripts (no Streamlit context)."""
    return _env_store()


# --- Login flag ---

def is_logged_in(store) -> bool:
    try:
        return store.get_item(LOGIN_SLOT) == "true"
    except StoreError as e:
        logger.error(f"Could not read login flag: {e}")
        return False


def logout(store) -> None:
    store.remove_item(LOGIN_SLOT)
