import asyncio
import json
import time
from datetime import datetime, timedelta, timezone

import pytest

from workbench.core.session_store import JsonFileSessionStore


def cookie(max_age=None, expires=None):
    meta = {"httpOnly": True, "path": "/"}
    if max_age is not None:
        meta["maxAge"] = max_age
    if expires is not None:
        meta["expires"] = expires
    return meta


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "data" / "sessions.json"


def test_zero_max_age_is_expired(store_path):
    store = JsonFileSessionStore(store_path)
    store.set("sid", {"authenticated": True, "cookie": cookie(max_age=0)})

    assert store.get("sid") is None


def test_past_explicit_expiry_is_expired(store_path):
    store = JsonFileSessionStore(store_path)
    past = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
    store.set("sid", {"authenticated": True, "cookie": cookie(max_age=60_000, expires=past)})

    assert store.get("sid") is None


def test_session_without_cookie_never_expires(store_path):
    store = JsonFileSessionStore(store_path)
    store.set("sid", {"authenticated": True})

    assert store.get("sid") == {"authenticated": True}


def test_touch_does_not_resurrect(store_path):
    store = JsonFileSessionStore(store_path)
    data = {"authenticated": True, "cookie": cookie(max_age=60_000)}
    store.set("sid", data)
    store.destroy("sid")

    store.touch("sid", data)
    assert store.get("sid") is None


def test_writes_without_loop_are_immediate(store_path):
    store = JsonFileSessionStore(store_path)
    store.set("sid", {"authenticated": True, "cookie": cookie(max_age=60_000)})

    on_disk = json.loads(store_path.read_text())
    assert on_disk["sessions"]["sid"]["data"]["authenticated"] is True
    assert on_disk["sessions"]["sid"]["expiresAt"] > time.time() * 1000


@pytest.mark.asyncio
async def test_debounced_save_writes_once_and_prunes(store_path):
    store = JsonFileSessionStore(store_path, save_delay=0.05)
    store.set("live", {"cookie": cookie(max_age=60_000)})
    store.set("stale", {"cookie": cookie(max_age=60_000)})
    assert not store_path.exists()

    # expire one entry behind the store's back before the timer fires
    store.sessions["stale"]["expiresAt"] = int(time.time() * 1000) - 1
    await asyncio.sleep(0.2)

    on_disk = json.loads(store_path.read_text())
    assert list(on_disk["sessions"]) == ["live"]


@pytest.mark.asyncio
async def test_close_flushes_pending_write(store_path):
    store = JsonFileSessionStore(store_path, save_delay=60)
    store.set("sid", {"cookie": cookie(max_age=60_000)})
    assert not store_path.exists()

    store.close()
    assert "sid" in json.loads(store_path.read_text())["sessions"]


def test_load_prunes_expired(store_path):
    now = int(time.time() * 1000)
    store_path.parent.mkdir(parents=True)
    store_path.write_text(json.dumps({
        "sessions": {
            "old": {"data": {"a": 1}, "expiresAt": now - 1000},
            "new": {"data": {"b": 2}, "expiresAt": now + 60_000},
        }
    }))

    store = JsonFileSessionStore(store_path)
    assert set(store.sessions) == {"new"}
    assert store.get("new") == {"b": 2}


def test_corrupt_file_is_ignored(store_path):
    store_path.parent.mkdir(parents=True)
    store_path.write_text("not json")

    store = JsonFileSessionStore(store_path)
    assert store.sessions == {}
