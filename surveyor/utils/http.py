"""Async HTTP client — shared connection pool for probes that call out."""

from __future__ import annotations

import logging
import ssl
from typing import TYPE_CHECKING, Any

import aiohttp

if TYPE_CHECKING:
    from surveyor.config import HttpSettings

logger = logging.getLogger(__name__)


class AsyncHttpClient:
    """Shared async HTTP client with connection pooling.

    Usage:
        async with AsyncHttpClient() as http:
            page = await http.fetch_page("https://portal.example.com")
    """

    def __init__(
        self,
        timeout: float = 10.0,
        max_connections: int = 50,
        max_per_host: int = 10,
        user_agent: str = "Surveyor/1.0",
        verify_ssl: bool = True,
        follow_redirects: bool = True,
        max_redirects: int = 5,
    ):
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.user_agent = user_agent
        self.verify_ssl = verify_ssl
        self.follow_redirects = follow_redirects
        self.max_redirects = max_redirects
        self.max_connections = max_connections
        self.max_per_host = max_per_host
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_settings(cls, settings: HttpSettings) -> AsyncHttpClient:
        return cls(
            timeout=settings.timeout,
            max_connections=settings.max_connections,
            max_per_host=settings.max_connections_per_host,
            user_agent=settings.user_agent,
            verify_ssl=settings.verify_ssl,
            follow_redirects=settings.follow_redirects,
            max_redirects=settings.max_redirects,
        )

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            ssl_ctx: ssl.SSLContext | bool = True
            if not self.verify_ssl:
                ssl_ctx = ssl.create_default_context()
                ssl_ctx.check_hostname = False
                ssl_ctx.verify_mode = ssl.CERT_NONE
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                limit_per_host=self.max_per_host,
                ssl=ssl_ctx,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            )
        return self._session

    async def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> aiohttp.ClientResponse:
        session = await self._ensure_session()
        kw: dict[str, Any] = {
            "allow_redirects": self.follow_redirects,
            "max_redirects": self.max_redirects,
            **kwargs,
        }
        if headers:
            kw["headers"] = headers
        if timeout:
            kw["timeout"] = aiohttp.ClientTimeout(total=timeout)
        return await session.get(url, **kw)

    async def fetch_page(self, url: str, timeout: float | None = None) -> dict[str, Any]:
        """GET a page and return status, final url, content type and body.

        Network errors propagate: callers decide whether a failure is fatal.
        """
        resp = await self.get(url, timeout=timeout)
        async with resp:
            body = await resp.text(errors="replace")
            return {
                "url": str(resp.url),
                "status": resp.status,
                "content_type": resp.content_type,
                "headers": dict(resp.headers),
                "text": body,
            }

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> AsyncHttpClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
