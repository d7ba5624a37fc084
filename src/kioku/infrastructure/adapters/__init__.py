# Infrastructure Adapters Package
from .content import InMemoryDeckContentProvider, YamlDeckContentProvider
from .stores import InMemoryProgressStore, SqliteProgressStore

__all__ = [
    "InMemoryDeckContentProvider",
    "InMemoryProgressStore",
    "SqliteProgressStore",
    "YamlDeckContentProvider",
]
