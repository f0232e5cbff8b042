from __future__ import annotations

from livecontext.core.constants import SEARCH_HISTORY_STORAGE_KEY, SESSIONS_STORAGE_KEY
from livecontext.schemas.state import SavedSession, SearchHistoryItem, SearchResult, TimelineEvent
from livecontext.session.archive import SessionArchive
from livecontext.session.store import JsonFileStore, MemoryStore

from fakes import make_analysis


def test_json_file_store_round_trips_blobs(tmp_path):
    store = JsonFileStore(str(tmp_path / "data"))
    assert store.load(SESSIONS_STORAGE_KEY) is None
    store.save(SESSIONS_STORAGE_KEY, b"[]")
    assert store.load(SESSIONS_STORAGE_KEY) == b"[]"
    assert (tmp_path / "data" / "livecontext-sessions.json").exists()
    assert not list((tmp_path / "data").glob("*.tmp"))


def test_json_file_store_sanitizes_keys(tmp_path):
    store = JsonFileStore(str(tmp_path))
    store.save("../escape/me", b"x")
    assert (tmp_path / "escape_me.json").read_bytes() == b"x"


def test_json_file_store_reads_dir_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("STORE_DIR", str(tmp_path / "from-env"))
    assert JsonFileStore().base == tmp_path / "from-env"


def test_sessions_survive_a_new_archive_instance(tmp_path):
    session = SavedSession(
        id="1700000000000",
        title="Research",
        analyses=(make_analysis("Alpha", "alpha"), make_analysis("Beta", "beta")),
        timeline_events=(TimelineEvent(timestamp="10:00:00", message="hi", type="info"),),
        system_instruction="instr",
        search_results=(SearchResult(uri="https://a", title="A"),),
        active_persona="tutor",
    )
    SessionArchive(JsonFileStore(str(tmp_path))).save_sessions([session])
    loaded = SessionArchive(JsonFileStore(str(tmp_path))).load_sessions()
    assert loaded == (session,)


def test_search_history_is_stored_under_its_own_key():
    store = MemoryStore()
    archive = SessionArchive(store)
    archive.save_search_history([SearchHistoryItem(id="a", term="rust")])
    assert store.load(SEARCH_HISTORY_STORAGE_KEY) is not None
    assert archive.load_search_history()[0].term == "rust"
    assert archive.load_sessions() == ()


def test_corrupt_payload_loads_as_empty_and_is_recorded():
    store = MemoryStore()
    store.save(SESSIONS_STORAGE_KEY, b"{not json")
    store.save(SEARCH_HISTORY_STORAGE_KEY, b'[{"id": 1}]')
    archive = SessionArchive(store)
    assert archive.load_sessions() == ()
    assert archive.load_search_history() == ()
    assert archive.load_errors == [SESSIONS_STORAGE_KEY, SEARCH_HISTORY_STORAGE_KEY]
