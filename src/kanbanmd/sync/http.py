"""HTTP client for the loopback KANBAN.md file server."""

import httpx
import structlog

from kanbanmd.sync.errors import DocumentNotFound, SyncBackendError

log = structlog.get_logger()

DEFAULT_SERVER_URL = "http://localhost:18790"


class HttpBackend:
    """Reads via ``GET /read`` and replaces via ``POST /write``.

    The server answers 404 on ``/read`` when the file does not exist yet.
    """

    def __init__(
        self,
        server_url: str = DEFAULT_SERVER_URL,
        file_path: str = "KANBAN.md",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the backend.

        Args:
            server_url: Base URL of the file server.
            file_path: Document path, passed to the server as ``?path=``.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured client (shared pools, tests).
        """
        self.server_url = server_url.rstrip("/")
        self.file_path = file_path
        self.timeout = timeout
        self._client = client

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        url = f"{self.server_url}/{endpoint}"
        params = {"path": self.file_path}
        try:
            if self._client is not None:
                return await self._client.request(
                    method, url, params=params, timeout=self.timeout, **kwargs
                )
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, params=params, **kwargs)
        except httpx.HTTPError as e:
            log.warning("file_server_unreachable", url=url, error=str(e))
            raise SyncBackendError(f"Network error: {e}") from e

    async def read(self) -> str:
        response = await self._request("GET", "read")
        if response.status_code == 404:
            raise DocumentNotFound()
        if not response.is_success:
            raise SyncBackendError(f"Server error: {response.status_code}")
        return response.text

    async def write(self, content: str) -> None:
        try:
            body = content.encode("utf-8")
        except UnicodeEncodeError as e:
            raise SyncBackendError(f"Encoding failed: {e}") from e
        response = await self._request(
            "POST",
            "write",
            content=body,
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )
        if not response.is_success:
            raise SyncBackendError(f"Server error: {response.status_code}")
