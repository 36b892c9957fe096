"""Persisted "to watch" list keyed by (id, media type)."""

import json
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from kinodeck.core.errors import WatchlistPersistenceError
from kinodeck.models.media import MediaType, WatchlistEntry
from kinodeck.services.storage import KeyValueStorage

logger = logging.getLogger(__name__)

WatchlistKey = tuple[int, MediaType]


def _parse_entries(blob: Optional[str]) -> Dict[WatchlistKey, WatchlistEntry]:
    """Decode a stored watchlist blob, dropping anything unusable."""
    if blob is None or not blob.strip():
        return {}
    try:
        data = json.loads(blob)
    except (ValueError, RecursionError) as exc:
        logger.warning("Stored watchlist is not valid JSON, starting empty: %s", exc)
        return {}
    if not isinstance(data, list):
        logger.warning(
            "Stored watchlist is a %s, not a list; starting empty",
            type(data).__name__,
        )
        return {}

    entries: Dict[WatchlistKey, WatchlistEntry] = {}
    for index, record in enumerate(data):
        try:
            entry = WatchlistEntry.model_validate(record)
        except ValidationError as exc:
            logger.warning(
                "Dropping watchlist record %d: %s", index, exc.errors()[0]["msg"]
            )
            continue
        entries.setdefault(entry.key, entry)
    return entries


class WatchlistStore:
    """Watchlist loaded once from storage and saved after each change.

    In-memory state is only updated once the new list has been written, so a
    failed save leaves the store exactly as it was.
    """

    def __init__(self, storage: KeyValueStorage, key: str = "watchlist") -> None:
        self.storage = storage
        self.key = key
        self._entries: Dict[WatchlistKey, WatchlistEntry] = {}
        self.reload()

    def reload(self) -> None:
        """Re-read the list from storage. Never raises on bad data."""
        try:
            blob = self.storage.get(self.key)
        except Exception as exc:
            logger.error("Failed to read watchlist from storage: %s", exc)
            blob = None
        self._entries = _parse_entries(blob)
        logger.debug("Loaded %d watchlist entries", len(self._entries))

    def _save(self, entries: Dict[WatchlistKey, WatchlistEntry]) -> None:
        blob = json.dumps(
            [
                entry.model_dump(mode="json", by_alias=True)
                for entry in entries.values()
            ],
            ensure_ascii=False,
        )
        try:
            self.storage.set(self.key, blob)
        except Exception as exc:
            logger.error("Failed to save watchlist: %s", exc)
            raise WatchlistPersistenceError("Failed to save watchlist", exc) from exc
        self._entries = entries

    def contains(self, media_id: int, media_type: MediaType | str) -> bool:
        return (media_id, MediaType(media_type)) in self._entries

    def __contains__(self, entry: WatchlistEntry) -> bool:
        return entry.key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(
        self, media_id: int, media_type: MediaType | str
    ) -> Optional[WatchlistEntry]:
        return self._entries.get((media_id, MediaType(media_type)))

    def entries(self) -> List[WatchlistEntry]:
        """All entries, oldest addition first."""
        return list(self._entries.values())

    def add(self, entry: WatchlistEntry) -> bool:
        """Add an entry. Returns False (and writes nothing) if already present."""
        if entry.key in self._entries:
            return False
        entries = dict(self._entries)
        entries[entry.key] = entry
        self._save(entries)
        logger.info("Added %s %s to watchlist", entry.media_type.value, entry.id)
        return True

    def remove(self, media_id: int, media_type: MediaType | str) -> bool:
        """Remove an entry. Returns False (and writes nothing) if absent."""
        key = (media_id, MediaType(media_type))
        if key not in self._entries:
            return False
        entries = {k: v for k, v in self._entries.items() if k != key}
        self._save(entries)
        logger.info("Removed %s %s from watchlist", key[1].value, media_id)
        return True

    def toggle(self, entry: WatchlistEntry) -> bool:
        """Flip membership of ``entry``; returns True if it is now listed."""
        if entry.key in self._entries:
            self.remove(entry.id, entry.media_type)
            return False
        self.add(entry)
        return True
