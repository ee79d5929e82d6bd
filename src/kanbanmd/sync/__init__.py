"""File sync backends for the board document."""

from kanbanmd.sync.backends import (
    LocalFileBackend,
    MemoryBackend,
    SyncBackend,
    create_backend,
)
from kanbanmd.sync.errors import DocumentNotFound, SyncBackendError
from kanbanmd.sync.http import HttpBackend

__all__ = [
    "SyncBackend",
    "MemoryBackend",
    "LocalFileBackend",
    "HttpBackend",
    "create_backend",
    "SyncBackendError",
    "DocumentNotFound",
]
