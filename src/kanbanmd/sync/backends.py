"""Backends that hold the KANBAN.md document."""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import structlog

from kanbanmd.sync.errors import DocumentNotFound, SyncBackendError

if TYPE_CHECKING:
    from kanbanmd.config import Settings

log = structlog.get_logger()


class SyncBackend(Protocol):
    """Where the board document lives.

    ``read`` raises DocumentNotFound when there is no document yet; both
    methods raise SyncBackendError for any other failure.
    """

    async def read(self) -> str: ...

    async def write(self, content: str) -> None: ...


class MemoryBackend:
    """Keeps the document in process. Records every write."""

    def __init__(self, content: str | None = None):
        """Initialize the backend.

        Args:
            content: Initial document, or None to start with no document.
        """
        self.content = content
        self.writes: list[str] = []
        self.read_count = 0

    async def read(self) -> str:
        self.read_count += 1
        if self.content is None:
            raise DocumentNotFound()
        return self.content

    async def write(self, content: str) -> None:
        self.writes.append(content)
        self.content = content


class LocalFileBackend:
    """Reads and writes a file on the local disk."""

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    async def read(self) -> str:
        try:
            return await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except FileNotFoundError:
            raise DocumentNotFound(f"File not found: {self.path}") from None
        except (OSError, UnicodeDecodeError) as e:
            raise SyncBackendError(f"Read failed: {e}") from e

    async def write(self, content: str) -> None:
        try:
            await asyncio.to_thread(self._write_atomic, content)
        except (OSError, ValueError) as e:
            raise SyncBackendError(f"Write failed: {e}") from e
        log.debug("file_written", path=str(self.path), size=len(content))

    def _write_atomic(self, content: str) -> None:
        """Write through a temp file so readers never see a partial document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def create_backend(settings: Settings) -> SyncBackend:
    """Pick a backend from settings.

    Args:
        settings: Application settings.

    Returns:
        HttpBackend when a server URL is configured, else LocalFileBackend.
    """
    if settings.server_url:
        from kanbanmd.sync.http import HttpBackend

        return HttpBackend(
            settings.server_url,
            file_path=str(settings.file_path),
            timeout=settings.request_timeout,
        )
    return LocalFileBackend(settings.file_path)
