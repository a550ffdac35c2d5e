from .base import KeyValueStore
from .file import FileKVStore
from .memory import MemoryKVStore
from .versioned import VersionedList

__all__ = ["KeyValueStore", "FileKVStore", "MemoryKVStore", "VersionedList"]
