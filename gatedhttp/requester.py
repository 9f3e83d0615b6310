"""
Requester: the public surface.

Five call shapes, all built on RetryExecutor and the process-wide RequestGate:

    get_string             GET, raw text
    request_object         any method with headers, typed result
    request_with_body      any method with headers and a JSON body, typed result
    request_with_envelope  as above, result paired with the request value
    send_request           pre-built httpx.Request, typed result

None of them raise for request failures; each returns the decoded value or
``default`` (None unless given). Invalid input (bad URL, missing body or
request, headers httpx cannot encode) returns ``default`` without touching the
network or the sink. Programming errors do raise: ValueError for ``max_tries``
below 1, TypeError when neither ``response_type`` nor ``decoder`` is given.
"""

import asyncio
import secrets
from typing import Any, Callable, Mapping, Optional, Type, TypeVar

import httpx
import structlog

from . import codec
from .codec import Decoder
from .config import Config
from .errors import EncodeError
from .gate import RequestGate, Sleep
from .log import LogSink, StructlogSink
from .models import RequestDescriptor, ResponseEnvelope, is_valid_url
from .retry import MAX_TRIES, RetryExecutor
from .transport import HTTPTransport

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_SUCCESS_DELAY = 3  # secs
DEFAULT_FAILURE_DELAY = 10  # secs


def _new_identifier() -> str:
    # debug label only, uniqueness is not guaranteed
    return secrets.token_hex(4)


def _resolve_decoder(response_type: Optional[Type[T]], decoder: Optional[Decoder]) -> Decoder:
    if decoder is not None:
        return decoder
    if response_type is None:
        raise TypeError("Either response_type or decoder is required")
    return codec.decoder_for(response_type)


class Requester:
    """Rate-limited, retrying JSON client owning one HTTP transport."""

    def __init__(
        self,
        transport: Optional[HTTPTransport] = None,
        sink: Optional[LogSink] = None,
        success_delay: float = DEFAULT_SUCCESS_DELAY,
        failure_delay: float = DEFAULT_FAILURE_DELAY,
        gate: Optional[RequestGate] = None,
        sleep: Sleep = asyncio.sleep,
        max_tries: int = MAX_TRIES,
    ):
        """
        Args:
            transport: Transport to take ownership of. Created with defaults when omitted.
            sink: Diagnostics sink, shared and not owned. Defaults to a
                  StructlogSink bound to "Requester|<identifier>".
            success_delay: Pacing delay in seconds held after every dispatch.
            failure_delay: Wait in seconds between failed attempts.
            gate: Dispatch gate. Defaults to the process-wide RequestGate.shared().
            sleep: Awaitable sleep used for both delays.
            max_tries: Attempts per call when a call does not pass its own.
        """
        self.identifier = _new_identifier()
        self.max_tries = max_tries
        self.success_delay = success_delay
        self.failure_delay = failure_delay
        self.transport = transport or HTTPTransport()
        self.sink = sink or StructlogSink(f"{type(self).__name__}|{self.identifier}")
        self._executor = RetryExecutor(
            transport=self.transport,
            sink=self.sink,
            success_delay=success_delay,
            failure_delay=failure_delay,
            gate=gate,
            sleep=sleep,
        )

    @classmethod
    def from_config(cls, config: Config, sink: Optional[LogSink] = None, **kwargs) -> "Requester":
        """Build a Requester from the ``requester`` and ``transport`` config sections."""
        requester_cfg = config.requester
        transport_cfg = config.transport
        transport = HTTPTransport(
            timeout=transport_cfg.get('timeout', 30.0),
            max_redirects=transport_cfg.get('max_redirects', 5),
            user_agent=transport_cfg.get('user_agent', 'gatedhttp/1.0'),
        )
        return cls(
            transport=transport,
            sink=sink,
            success_delay=requester_cfg.get('success_delay', DEFAULT_SUCCESS_DELAY),
            failure_delay=requester_cfg.get('failure_delay', DEFAULT_FAILURE_DELAY),
            max_tries=requester_cfg.get('max_tries', MAX_TRIES),
            **kwargs,
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self.transport.cookies

    @property
    def executor(self) -> RetryExecutor:
        return self._executor

    async def get_string(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        *,
        max_tries: Optional[int] = None,
        default: Optional[str] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[str]:
        """GET ``url`` and return the body as text.

        Raises ValueError if ``max_tries`` is below 1.
        """
        if not is_valid_url(url):
            return default

        descriptor = RequestDescriptor("GET", url, dict(headers or {}))
        build = self._builder(descriptor)
        if build is None:
            return default

        return await self._executor.execute(
            build,
            codec.decode_text,
            max_tries=self._tries(max_tries),
            default=default,
            cancel=cancel,
        )

    async def request_object(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        response_type: Optional[Type[T]] = None,
        *,
        decoder: Optional[Callable[[bytes], T]] = None,
        max_tries: Optional[int] = None,
        default: Any = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[T]:
        """Send a bodiless request and decode the JSON response.

        Raises ValueError if ``max_tries`` is below 1.
        """
        if not is_valid_url(url):
            return default

        decode = _resolve_decoder(response_type, decoder)
        descriptor = RequestDescriptor(method, url, dict(headers or {}))
        build = self._builder(descriptor)
        if build is None:
            return default

        return await self._executor.execute(
            build,
            decode,
            max_tries=self._tries(max_tries),
            default=default,
            cancel=cancel,
        )

    async def request_with_body(
        self,
        body: Any,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        response_type: Optional[Type[T]] = None,
        *,
        decoder: Optional[Callable[[bytes], T]] = None,
        max_tries: Optional[int] = None,
        default: Any = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[T]:
        """Send ``body`` as JSON and decode the JSON response.

        Raises ValueError if ``max_tries`` is below 1.
        """
        if not is_valid_url(url) or body is None:
            return default

        decode = _resolve_decoder(response_type, decoder)
        descriptor = self._descriptor_with_body(method, url, headers, body)
        if descriptor is None:
            return default

        build = self._builder(descriptor)
        if build is None:
            return default

        return await self._executor.execute(
            build,
            decode,
            max_tries=self._tries(max_tries),
            default=default,
            cancel=cancel,
        )

    async def request_with_envelope(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]],
        body: Any,
        response_type: Optional[Type[T]] = None,
        *,
        decoder: Optional[Callable[[bytes], T]] = None,
        max_tries: Optional[int] = None,
        default: Any = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[ResponseEnvelope]:
        """Like request_with_body(), but return ResponseEnvelope(body, response).

        A response that decodes to None cannot be enveloped and counts as a
        failed attempt. Raises ValueError if ``max_tries`` is below 1.
        """
        if not is_valid_url(url) or body is None:
            return default

        decode = _resolve_decoder(response_type, decoder)
        descriptor = self._descriptor_with_body(method, url, headers, body)
        if descriptor is None:
            return default

        def decode_envelope(data: bytes) -> ResponseEnvelope:
            return ResponseEnvelope(body, decode(data))

        build = self._builder(descriptor)
        if build is None:
            return default

        return await self._executor.execute(
            build,
            decode_envelope,
            max_tries=self._tries(max_tries),
            default=default,
            cancel=cancel,
        )

    async def send_request(
        self,
        request: Optional[httpx.Request],
        response_type: Optional[Type[T]] = None,
        *,
        decoder: Optional[Callable[[bytes], T]] = None,
        max_tries: Optional[int] = None,
        default: Any = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[T]:
        """Send a caller-built httpx.Request as is, on every attempt.

        Raises ValueError if ``max_tries`` is below 1.
        """
        if request is None:
            return default

        decode = _resolve_decoder(response_type, decoder)
        return await self._executor.execute(
            lambda: request,
            decode,
            max_tries=self._tries(max_tries),
            default=default,
            cancel=cancel,
        )

    def _tries(self, max_tries: Optional[int]) -> int:
        return self.max_tries if max_tries is None else max_tries

    def _builder(self, descriptor: RequestDescriptor) -> Optional[Callable[[], httpx.Request]]:
        """Build the native request once up front so malformed input never reaches the retry loop."""
        try:
            self.transport.build_request(descriptor)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            logger.debug("request_rejected", requester=self.identifier, url=descriptor.url, error=str(e))
            return None
        return lambda: self.transport.build_request(descriptor)

    def _descriptor_with_body(self, method, url, headers, body) -> Optional[RequestDescriptor]:
        try:
            return RequestDescriptor.with_payload(method, url, headers, body)
        except EncodeError as e:
            self.sink.log_exception(e)
            return None

    async def aclose(self):
        """Release the transport and its cookie store. The gate is left alone."""
        await self.transport.aclose()
        logger.debug("requester_closed", requester=self.identifier)

    async def __aenter__(self) -> "Requester":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback):
        await self.aclose()
