import time
from typing import Dict, Optional

import httpx
import structlog

from .models import RequestDescriptor

logger = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = 'gatedhttp/1.0'


class TransportResult:
    def __init__(
        self,
        url: str,
        status_code: int,
        content: bytes = b'',
        headers: Dict[str, str] = None,
        final_url: str = None,
        fetch_time: float = 0.0,
    ):
        """Wrap the parts of an HTTP response the retry loop needs."""
        self.url = url
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.final_url = final_url or url
        self.fetch_time = fetch_time

    @property
    def success(self) -> bool:
        """Check if the status code is in the 2xx range."""
        return 200 <= self.status_code < 300

    @property
    def size(self) -> int:
        return len(self.content)


class HTTPTransport:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        max_redirects: int = 5,
        user_agent: str = DEFAULT_USER_AGENT,
        cookies: Optional[httpx.Cookies] = None,
    ):
        """Own an httpx.AsyncClient and its cookie jar.

        Args:
            client: Pre-built client to take ownership of. When omitted one is
                    created from the remaining settings.
            timeout: Request timeout in seconds.
            max_redirects: Redirect limit for the created client.
            user_agent: Default User-Agent header for the created client.
            cookies: Initial cookie store for the created client.
        """
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.user_agent = user_agent

        if client is None:
            client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                max_redirects=self.max_redirects,
                headers={'User-Agent': self.user_agent},
                cookies=cookies,
            )
        self._client = client

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    def build_request(self, descriptor: RequestDescriptor) -> httpx.Request:
        """Turn a descriptor into a native request bound to this client."""
        headers = dict(descriptor.headers)
        if descriptor.body is not None and not any(k.lower() == 'content-type' for k in headers):
            headers['Content-Type'] = 'application/json; charset=utf-8'

        return self._client.build_request(
            descriptor.method,
            descriptor.url,
            headers=headers,
            content=descriptor.body,
        )

    async def send(self, request: httpx.Request) -> TransportResult:
        """Send a request and read its full body.

        Connection and timeout failures propagate as httpx exceptions.
        """
        start_time = time.monotonic()
        response = await self._client.send(request)
        try:
            content = await response.aread()
        finally:
            await response.aclose()

        fetch_time = time.monotonic() - start_time
        logger.debug(
            "response_received",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            size=len(content),
            fetch_time=round(fetch_time, 3),
        )

        return TransportResult(
            url=str(request.url),
            status_code=response.status_code,
            content=content,
            headers=dict(response.headers),
            final_url=str(response.url),
            fetch_time=fetch_time,
        )

    async def aclose(self):
        """Close the underlying client and drop its cookie jar."""
        if not self._client.is_closed:
            await self._client.aclose()
        self._client.cookies.clear()
