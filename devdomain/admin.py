"""
Caddy admin API client.

Thin typed wrapper over the path-addressed config tree exposed by Caddy's
admin endpoint (``/config/<path>``). Caddy has no upsert, so callers check for
existence first; ``ensure`` bundles that read-then-create step.

Method mapping (Caddy semantics):
- GET    read a value
- PUT    create a new value (or insert into a list at an index)
- PATCH  replace an existing value
- POST   append to a list
- DELETE remove a value
"""

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from .errors import AdminAPIError, AdminUnreachableError

logger = logging.getLogger("devdomain.admin")

DEFAULT_ADMIN_URL = "http://127.0.0.1:2019"
DEFAULT_SERVER_ID = "devdomain"

POLICIES_PATH = "apps/tls/automation/policies"

# Caddy answers 400 with this text when an intermediate key is missing
_MISSING_PATH_MARKER = "invalid traversal path"


def _path_parts(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]


def join_path(*parts: str | int) -> str:
    """Join config path segments, dropping empty ones"""
    segments: list[str] = []
    for part in parts:
        segments.extend(_path_parts(str(part)))
    return "/".join(segments)


class CaddyAdmin:
    """
    Client handle for one Caddy admin endpoint and one HTTP server id.

    Usage:
        async with CaddyAdmin("http://127.0.0.1:2019", "devdomain") as admin:
            routes = await admin.read(admin.routes_path)
    """

    def __init__(
        self,
        admin_url: str = DEFAULT_ADMIN_URL,
        server_id: str = DEFAULT_SERVER_ID,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.admin_url = admin_url.rstrip("/")
        self.server_id = server_id
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(transport=transport)

    async def __aenter__(self) -> "CaddyAdmin":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # Paths

    @property
    def server_path(self) -> str:
        return f"apps/http/servers/{quote(self.server_id, safe='')}"

    @property
    def routes_path(self) -> str:
        return f"{self.server_path}/routes"

    def url_for(self, path: str) -> str:
        return f"{self.admin_url}/config/{join_path(path)}"

    # Transport

    async def _request(self, method: str, url: str, body: Any = None, *, allow_absent: bool = False) -> httpx.Response | None:
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["content"] = json.dumps(body)
            kwargs["headers"] = {"Content-Type": "application/json"}
        logger.debug("%s %s", method, url)
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise AdminUnreachableError(method, url, exc) from exc

        if allow_absent and self._is_absent(response):
            return None
        if response.is_error:
            raise AdminAPIError(method, url, response.status_code, response.reason_phrase, response.text)
        return response

    @staticmethod
    def _is_absent(response: httpx.Response) -> bool:
        if response.status_code == 404:
            return True
        return response.status_code == 400 and _MISSING_PATH_MARKER in response.text

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        text = response.text.strip()
        return json.loads(text) if text else None

    # Config tree operations

    async def read(self, path: str = "") -> Any:
        """Read a config value; returns None when the path is absent"""
        response = await self._request("GET", self.url_for(path), allow_absent=True)
        if response is None:
            return None
        return self._decode(response)

    async def create(self, path: str, value: Any) -> None:
        """Create a value at a path that must not be occupied yet"""
        await self._request("PUT", self.url_for(path), value)

    async def insert(self, path: str, index: int, value: Any) -> None:
        """Insert into the list at ``path`` before position ``index``"""
        await self._request("PUT", self.url_for(join_path(path, index)), value)

    async def replace(self, path: str, value: Any) -> None:
        """Replace an existing value"""
        await self._request("PATCH", self.url_for(path), value)

    async def append(self, path: str, value: Any) -> None:
        """Append to the list at ``path``"""
        await self._request("POST", self.url_for(path), value)

    async def delete(self, path: str) -> None:
        await self._request("DELETE", self.url_for(path))

    async def load(self, config: dict) -> None:
        """Replace the whole running config (only used to seed an empty proxy)"""
        await self._request("POST", f"{self.admin_url}/load", config)

    async def ensure(self, path: str, default: Any) -> Any:
        """Create ``path`` with ``default`` unless it exists; return the current value"""
        current = await self.read(path)
        if current is not None:
            return current
        await self.create(path, default)
        logger.debug("Created %s", path)
        return default
