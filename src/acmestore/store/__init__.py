"""In-memory ACME state with serialized background persistence."""

from acmestore.store.store import AcmeStore, load_stored_data
from acmestore.store.writer import PersistenceWriter

__all__ = ["AcmeStore", "PersistenceWriter", "load_stored_data"]
