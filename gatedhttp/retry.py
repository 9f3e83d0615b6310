"""
Attempt loop for one logical request.

Each attempt goes through the shared RequestGate and ends in exactly one of:
success, TransportError, StatusError, EmptyBodyError or DecodeError. All four
failures cost one attempt and, unless it was the last one, one failure delay.
A set cancel event ends the loop without waiting. The caller only ever sees
the decoded value or the sentinel.
"""

import asyncio
from typing import Any, Callable, Optional

import httpx
import structlog

from .codec import Decoder
from .errors import (
    DecodeError,
    EmptyBodyError,
    Exhausted,
    Failed,
    RequestFailure,
    RetryOutcome,
    StatusError,
    Succeeded,
    TransportError,
)
from .gate import RequestGate, Sleep
from .log import LogSink
from .transport import HTTPTransport

logger = structlog.get_logger(__name__)

MAX_TRIES = 3
FAILURE_MESSAGE = "Internal request failed."


class RetryExecutor:
    def __init__(
        self,
        transport: HTTPTransport,
        sink: LogSink,
        success_delay: float,
        failure_delay: float,
        gate: Optional[RequestGate] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.transport = transport
        self.sink = sink
        self.success_delay = success_delay
        self.failure_delay = failure_delay
        self.gate = gate or RequestGate.shared()
        self._sleep = sleep

    async def run(
        self,
        build: Callable[[], httpx.Request],
        decoder: Decoder,
        max_tries: int = MAX_TRIES,
        cancel: Optional[asyncio.Event] = None,
    ) -> RetryOutcome:
        """Drive up to ``max_tries`` attempts and return the terminal outcome.

        ``build`` is called once per attempt so every attempt sends a fresh
        native request. No failure delay follows the last attempt.
        """
        if max_tries < 1:
            raise ValueError(f"max_tries must be >= 1, got {max_tries}")

        outcome: RetryOutcome = Exhausted(attempts=max_tries)
        for attempt in range(1, max_tries + 1):
            if attempt > 1 and cancel is not None and cancel.is_set():
                outcome = Exhausted(attempts=attempt - 1, cancelled=True)
                break

            result = await self._attempt(build, decoder)
            if isinstance(result, Succeeded):
                return result

            logger.debug(
                "attempt_failed",
                attempt=attempt,
                max_tries=max_tries,
                reason=type(result.reason).__name__,
            )
            self.sink.log_exception(result.reason)

            if attempt < max_tries:
                if cancel is not None and cancel.is_set():
                    outcome = Exhausted(attempts=attempt, cancelled=True)
                    break
                await self._pause(cancel)

        self.sink.log_error(FAILURE_MESSAGE)
        return outcome

    async def execute(
        self,
        build: Callable[[], httpx.Request],
        decoder: Decoder,
        max_tries: int = MAX_TRIES,
        default: Any = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> Any:
        """Like run(), projected to the decoded value or ``default``."""
        outcome = await self.run(build, decoder, max_tries=max_tries, cancel=cancel)
        if isinstance(outcome, Succeeded):
            return outcome.value
        return default

    async def _pause(self, cancel: Optional[asyncio.Event]):
        """Wait out the failure delay, cut short when ``cancel`` is set."""
        if cancel is None:
            await self._sleep(self.failure_delay)
            return

        sleeper = asyncio.ensure_future(self._sleep(self.failure_delay))
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waiter.cancel()
        if sleeper in done:
            sleeper.result()

    async def _attempt(self, build: Callable[[], httpx.Request], decoder: Decoder):
        url = None
        try:
            request = build()
            url = str(request.url)
            result = await self.gate.run_exclusive(
                lambda: self.transport.send(request),
                self.success_delay,
                sleep=self._sleep,
            )
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            return Failed(_chain(TransportError(str(e) or type(e).__name__, url=url), e))
        except Exception as e:
            return Failed(_chain(TransportError(f"Unexpected error: {e!r}", url=url), e))

        if not result.success:
            return Failed(StatusError(result.status_code, url=url))

        if not result.content:
            return Failed(EmptyBodyError(url=url))

        try:
            return Succeeded(decoder(result.content))
        except DecodeError as e:
            e.url = e.url or url
            return Failed(e)
        except Exception as e:
            return Failed(_chain(DecodeError(str(e) or type(e).__name__, url=url), e))


def _chain(failure: RequestFailure, cause: BaseException) -> RequestFailure:
    failure.__cause__ = cause
    return failure
