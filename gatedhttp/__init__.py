"""
gatedhttp: single-flight, rate-limited JSON requests over httpx.

  codec.py      -> JSON encode/decode via pydantic TypeAdapter
  errors.py     -> per-attempt failure taxonomy, retry outcomes
  models.py     -> RequestDescriptor, ResponseEnvelope, header/URL checks
  transport.py  -> HTTPTransport (owns httpx.AsyncClient + cookies)
  gate.py       -> RequestGate, the process-wide dispatch permit
  retry.py      -> RetryExecutor, the attempt loop
  requester.py  -> Requester, the five public call shapes
  log.py        -> structlog setup and the LogSink interface
  config.py     -> config.yaml + .env loading
"""

from .config import Config
from .errors import DecodeError, EmptyBodyError, RequestFailure, StatusError, TransportError
from .gate import RequestGate
from .log import LogSink, StructlogSink, configure_logging, configure_logging_from_config
from .models import RequestDescriptor, ResponseEnvelope
from .requester import Requester
from .retry import RetryExecutor
from .transport import HTTPTransport, TransportResult

__all__ = [
    "Config",
    "DecodeError",
    "EmptyBodyError",
    "HTTPTransport",
    "LogSink",
    "RequestDescriptor",
    "RequestFailure",
    "RequestGate",
    "Requester",
    "ResponseEnvelope",
    "RetryExecutor",
    "StatusError",
    "StructlogSink",
    "TransportError",
    "TransportResult",
    "configure_logging",
    "configure_logging_from_config",
]
