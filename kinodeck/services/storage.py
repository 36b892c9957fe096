"""Key/value storage backends for small persisted blobs."""

from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session

from kinodeck.core.database import StoredValue, create_db_and_tables


class KeyValueStorage(ABC):
    """Durable string store keyed by name.

    ``set`` must not return before the value is durable.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key was never written."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Write a value, replacing any previous one."""
        pass


class MemoryStorage(KeyValueStorage):
    """In-process storage; survives store instances, not the process."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class SQLStorage(KeyValueStorage):
    """Storage backed by the ``kv_store`` table."""

    def __init__(self, engine: Engine, create_tables: bool = True) -> None:
        self.engine = engine
        if create_tables:
            create_db_and_tables(engine)

    def get(self, key: str) -> Optional[str]:
        with Session(self.engine) as session:
            row = session.get(StoredValue, key)
            return row.value if row is not None else None

    def set(self, key: str, value: str) -> None:
        with Session(self.engine) as session:
            row = session.get(StoredValue, key)
            if row is None:
                row = StoredValue(key=key, value=value)
            else:
                row.value = value
            session.add(row)
            session.commit()
