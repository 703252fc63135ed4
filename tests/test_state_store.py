import json
import logging
from pathlib import Path

import pytest

from conftest import FakeBrowser, FakePage
from kagi_search.antibot.storage import StateStore, fingerprint_path_for
from kagi_search.errors import PersistenceWarning
from kagi_search.models import FingerprintProfile


def _profile(locale: str = "zh-CN", scheme: str = "light") -> FingerprintProfile:
    return FingerprintProfile(
        device_name="Desktop Chrome",
        locale=locale,
        timezone_id="Asia/Shanghai",
        color_scheme=scheme,
    )


def _context():
    return FakeBrowser("test", FakePage()).new_context()


def test_fingerprint_path_replaces_extension():
    assert fingerprint_path_for("./browser-state.json") == Path("browser-state-fingerprint.json")
    assert fingerprint_path_for("/tmp/a.b.json") == Path("/tmp/a.b-fingerprint.json")
    assert fingerprint_path_for("state") == Path("state-fingerprint.json")


def test_load_on_first_run_returns_nothing(state_file):
    persisted = StateStore(state_file).load()
    assert persisted.storage_state is None
    assert persisted.fingerprint is None
    assert not persisted.has_session


def test_save_writes_both_artifacts(state_file):
    store = StateStore(state_file)
    written = store.save(_context(), _profile())

    assert written is True
    assert state_file.exists()
    document = json.loads(store.fingerprint_path.read_text(encoding="utf-8"))
    assert document == {
        "fingerprint": {
            "deviceName": "Desktop Chrome",
            "locale": "zh-CN",
            "timezoneId": "Asia/Shanghai",
            "colorScheme": "light",
            "reducedMotion": "no-preference",
            "forcedColors": "none",
        }
    }

    persisted = store.load()
    assert persisted.storage_state == state_file
    assert persisted.fingerprint == _profile()


def test_fingerprint_is_write_once(state_file):
    store = StateStore(state_file)
    store.save(_context(), _profile())
    first = store.fingerprint_path.read_text(encoding="utf-8")

    written = store.save(_context(), _profile(locale="en-US", scheme="dark"))

    assert written is False
    assert store.fingerprint_path.read_text(encoding="utf-8") == first
    assert store.load().fingerprint.locale == "zh-CN"


def test_unparseable_fingerprint_is_ignored_but_session_kept(state_file, caplog):
    state_file.parent.mkdir(parents=True)
    state_file.write_text("{}", encoding="utf-8")
    fingerprint_path_for(state_file).write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        persisted = StateStore(state_file).load()

    assert persisted.fingerprint is None
    assert persisted.storage_state == state_file
    assert "Could not load fingerprint" in caplog.text


def test_fingerprint_loads_without_session_file(state_file):
    state_file.parent.mkdir(parents=True)
    fingerprint_path_for(state_file).write_text(
        json.dumps({"fingerprint": _profile().model_dump(by_alias=True)}),
        encoding="utf-8",
    )

    persisted = StateStore(state_file).load()
    assert persisted.storage_state is None
    assert persisted.fingerprint == _profile()


def test_invalid_fingerprint_values_are_ignored(state_file):
    state_file.parent.mkdir(parents=True)
    fingerprint_path_for(state_file).write_text(
        json.dumps({"fingerprint": {"deviceName": "Desktop Chrome", "colorScheme": "purple"}}),
        encoding="utf-8",
    )
    assert StateStore(state_file).load().fingerprint is None


def test_disabled_persistence_writes_nothing(state_file):
    store = StateStore(state_file)
    assert store.save(_context(), _profile(), persist_enabled=False) is False
    assert not state_file.exists()
    assert not store.fingerprint_path.exists()


def test_storage_failure_raises_persistence_warning(state_file):
    context = _context()
    context.fail_storage_state = True

    with pytest.raises(PersistenceWarning):
        StateStore(state_file).save(context, _profile())
