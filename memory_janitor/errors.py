class MemoryJanitorError(Exception):
    """Base class for every error raised by the memory janitor."""

class StoreError(MemoryJanitorError):
    """A query, delete or update against the item store failed."""

class SearchError(MemoryJanitorError):
    """The similarity search collaborator failed."""

class ConfigError(MemoryJanitorError):
    """Required configuration is missing or malformed."""

class ArchiveError(StoreError):
    """Archiving items (status -> archived) failed."""

class NotificationError(MemoryJanitorError):
    """The messaging collaborator could not deliver a message."""
