import json
from datetime import datetime, timezone

import pytest
from sqlmodel import create_engine

from kinodeck.core.errors import WatchlistPersistenceError
from kinodeck.models.media import MediaDetail, MediaType, WatchlistEntry
from kinodeck.services.storage import MemoryStorage, SQLStorage
from kinodeck.services.watchlist import WatchlistStore


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def entry():
    return WatchlistEntry(
        id=27205,
        media_type=MediaType.MOVIE,
        title="Inception",
        poster_path="/poster.jpg",
        added_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )


def _stored(storage, key="watchlist"):
    return json.loads(storage.get(key))


def test_add_persists_camel_case_records(storage, entry):
    store = WatchlistStore(storage)
    assert store.add(entry) is True

    records = _stored(storage)
    assert records == [
        {
            "id": 27205,
            "mediaType": "movie",
            "title": "Inception",
            "posterPath": "/poster.jpg",
            "addedAt": "2024-05-01T00:00:00Z",
        }
    ]
    assert store.contains(27205, MediaType.MOVIE)
    assert store.contains(27205, "movie")


def test_add_twice_is_a_no_op(storage, entry):
    """Adding the same key again keeps a single entry."""
    store = WatchlistStore(storage)
    store.add(entry)
    blob = storage.get("watchlist")

    assert store.add(entry) is False
    assert len(store) == 1
    assert len(_stored(storage)) == 1
    assert storage.get("watchlist") == blob


def test_same_id_different_media_type_are_distinct(storage, entry):
    store = WatchlistStore(storage)
    store.add(entry)
    store.add(entry.model_copy(update={"media_type": MediaType.SERIES}))

    assert len(store) == 2
    assert store.contains(27205, MediaType.SERIES)


def test_remove_missing_is_a_no_op(storage):
    store = WatchlistStore(storage)
    assert store.remove(1, MediaType.MOVIE) is False
    assert storage.get("watchlist") is None


def test_remove(storage, entry):
    store = WatchlistStore(storage)
    store.add(entry)

    assert store.remove(entry.id, entry.media_type) is True
    assert not store.contains(entry.id, entry.media_type)
    assert _stored(storage) == []


def test_toggle_round_trip(storage, entry):
    """Two toggles restore the original membership."""
    store = WatchlistStore(storage)
    before = store.contains(entry.id, entry.media_type)

    assert store.toggle(entry) is True
    assert store.toggle(entry) is False
    assert store.contains(entry.id, entry.media_type) == before


def test_toggle_round_trip_across_reload(storage, entry):
    """Membership comes from storage, so a restart between toggles is invisible."""
    WatchlistStore(storage).toggle(entry)

    restarted = WatchlistStore(storage)
    assert restarted.contains(entry.id, entry.media_type)

    restarted.toggle(entry)
    assert not WatchlistStore(storage).contains(entry.id, entry.media_type)


@pytest.mark.parametrize(
    "blob",
    ["", "   ", "not json", "{\"id\": 1}", "[1, 2", "null", "42", "[" * 100000],
)
def test_corrupted_blob_loads_empty(blob):
    store = WatchlistStore(MemoryStorage({"watchlist": blob}))
    assert store.entries() == []


def test_load_drops_bad_records_and_ignores_extra_fields():
    records = [
        {"id": 1, "mediaType": "movie", "title": "Keep", "rating": 9.1},
        {"mediaType": "movie", "title": "No id"},
        {"id": 2, "title": "No media type"},
        {"id": 3, "mediaType": "book", "title": "Bad media type"},
        "garbage",
        {"id": 4, "mediaType": "tv", "addedAt": "yesterday"},
    ]
    store = WatchlistStore(MemoryStorage({"watchlist": json.dumps(records)}))

    assert [(e.id, e.media_type) for e in store.entries()] == [
        (1, MediaType.MOVIE),
        (4, MediaType.SERIES),
    ]
    assert store.get(4, "tv").title == ""
    assert store.get(4, "tv").added_at is not None


def test_duplicate_stored_records_collapse():
    records = [
        {"id": 1, "mediaType": "movie", "title": "First"},
        {"id": 1, "mediaType": "movie", "title": "Second"},
    ]
    store = WatchlistStore(MemoryStorage({"watchlist": json.dumps(records)}))

    assert len(store) == 1
    assert store.get(1, MediaType.MOVIE).title == "First"


def test_storage_read_error_loads_empty():
    class BrokenStorage(MemoryStorage):
        def get(self, key):
            raise OSError("disk on fire")

    assert len(WatchlistStore(BrokenStorage())) == 0


def test_failed_save_leaves_state_unchanged(entry):
    class ReadOnlyStorage(MemoryStorage):
        def set(self, key, value):
            raise OSError("read-only")

    store = WatchlistStore(ReadOnlyStorage())
    with pytest.raises(WatchlistPersistenceError):
        store.toggle(entry)

    assert not store.contains(entry.id, entry.media_type)


def test_entries_keep_insertion_order(storage):
    store = WatchlistStore(storage)
    for media_id in (3, 1, 2):
        store.add(WatchlistEntry(id=media_id, media_type=MediaType.MOVIE))

    assert [e.id for e in store.entries()] == [3, 1, 2]


def test_custom_key(storage, entry):
    WatchlistStore(storage, key="profile-1").add(entry)
    assert storage.get("watchlist") is None
    assert len(_stored(storage, "profile-1")) == 1


def test_entry_from_detail():
    detail = MediaDetail(
        id=1396,
        media_type=MediaType.SERIES,
        title="Breaking Bad",
        poster_path="/bb.jpg",
    )
    entry = WatchlistEntry.from_detail(detail)

    assert entry.key == (1396, MediaType.SERIES)
    assert entry.title == "Breaking Bad"
    assert entry.poster_path == "/bb.jpg"


def test_sql_storage_survives_new_engine(tmp_path, entry):
    """The SQL backend is durable across engines (i.e. process restarts)."""
    url = f"sqlite:///{tmp_path / 'kinodeck.db'}"
    WatchlistStore(SQLStorage(create_engine(url))).toggle(entry)

    reopened = WatchlistStore(SQLStorage(create_engine(url)))
    assert reopened.contains(entry.id, entry.media_type)

    reopened.toggle(entry)
    assert len(WatchlistStore(SQLStorage(create_engine(url)))) == 0
