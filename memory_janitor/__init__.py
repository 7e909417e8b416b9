# memory_janitor/__init__.py

from .janitor import MemoryJanitor

__all__ = ["MemoryJanitor"]
