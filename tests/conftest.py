from typing import Callable, List

import httpx
import pytest

from gatedhttp.gate import RequestGate
from gatedhttp.requester import Requester
from gatedhttp.transport import HTTPTransport


class RecordingSink:
    """Sink that keeps everything it is given."""

    def __init__(self) -> None:
        self.exceptions: List[BaseException] = []
        self.errors: List[str] = []

    def log_exception(self, err: BaseException) -> None:
        self.exceptions.append(err)

    def log_error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def total(self) -> int:
        return len(self.exceptions) + len(self.errors)


class RecordingSleep:
    """Awaitable stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    def count(self, delay: float) -> int:
        return sum(1 for d in self.delays if d == delay)


class ScriptedHandler:
    """MockTransport handler that replays a list of responses or exceptions.

    The last entry repeats once the script runs out.
    """

    def __init__(self, script: list) -> None:
        self.script = list(script)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.script)) - 1
        step = self.script[index]
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        # fresh copy, a response object is consumed once it has been sent
        return httpx.Response(step.status_code, headers=step.headers, content=step.content)

    @property
    def calls(self) -> int:
        return len(self.requests)


def make_transport(handler: Callable[[httpx.Request], httpx.Response]) -> HTTPTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HTTPTransport(client=client)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def gate() -> RequestGate:
    return RequestGate()


@pytest.fixture
def requester_factory(sink, sleep, gate):
    def _make(handler, success_delay: float = 3, failure_delay: float = 10, **kwargs) -> Requester:
        return Requester(
            transport=make_transport(handler),
            sink=sink,
            success_delay=success_delay,
            failure_delay=failure_delay,
            gate=gate,
            sleep=sleep,
            **kwargs,
        )
    return _make
