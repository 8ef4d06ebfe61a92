"""Tests for the app data key-value store."""
import pytest

from src.exp_run.errors import TransientIOError
from src.exp_run.store import KEY_RANGE, KEY_SAVE_DIR, AppDataStore


def test_absent_key_returns_default(store):
    assert store.get("current-user") is None
    assert store.get("exp-index", 0) == 0


def test_set_then_get(store):
    store.set(KEY_RANGE, {"values": [1, 2, 3], "pin_first": True})
    assert store.get(KEY_RANGE) == {"values": [1, 2, 3], "pin_first": True}
    assert AppDataStore(store.directory).get(KEY_RANGE)["pin_first"] is True


def test_set_none_removes(store):
    store.set(KEY_SAVE_DIR, "/tmp")
    store.set(KEY_SAVE_DIR, None)
    assert store.get(KEY_SAVE_DIR) is None
    assert KEY_SAVE_DIR not in store.keys()


def test_keys(store):
    store.set("current-user", "a@b.co")
    store.set("exp-index", 2)
    assert store.keys() == ["current-user", "exp-index"]


def test_unreadable_value_treated_as_absent(store):
    store.set("current-user", "a@b.co")
    (store.directory / "current-user.json").write_text("{not json")
    assert store.get("current-user", "fallback") == "fallback"


def test_write_failure_raises_transient(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where the store directory should be")
    with pytest.raises(TransientIOError):
        AppDataStore(blocker).set("current-user", "a@b.co")


def test_unserializable_value_raises_transient(store):
    with pytest.raises(TransientIOError):
        store.set("current-user", object())
