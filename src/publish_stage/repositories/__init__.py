"""Content store backends."""

from .base import ContentStore, FilePage, StoredFile
from .pinata_store import PinataContentStore
from .sql_store import SqlContentStore

__all__ = [
    "ContentStore",
    "FilePage",
    "PinataContentStore",
    "SqlContentStore",
    "StoredFile",
]
