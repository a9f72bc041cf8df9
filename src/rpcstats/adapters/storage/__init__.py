"""Storage adapters implementing core ports."""

from rpcstats.adapters.storage.filesystem import FileSystemStore
from rpcstats.adapters.storage.in_memory import InMemoryStore

__all__ = [
    "FileSystemStore",
    "InMemoryStore",
]
