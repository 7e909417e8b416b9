# memory_janitor/storage/__init__.py

from .qdrant_store import QdrantSearch, SimilaritySearch
from .sqlite_store import SqliteStore

__all__ = ["QdrantSearch", "SimilaritySearch", "SqliteStore"]
