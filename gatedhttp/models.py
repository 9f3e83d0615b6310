from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Mapping, Optional, TypeVar
from urllib.parse import urlparse

from . import codec

Req = TypeVar("Req")
Resp = TypeVar("Resp")

ALLOWED_SCHEMES = ("http", "https")


def is_valid_url(url: Optional[str]) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ALLOWED_SCHEMES and bool(parsed.netloc)


def clean_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Drop header entries whose key or value is empty."""
    if not headers:
        return {}
    return {k: v for k, v in headers.items() if k and v}


@dataclass
class RequestDescriptor:
    """Everything needed to build one native request, rebuilt per attempt."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = clean_headers(self.headers)

    @classmethod
    def with_payload(cls, method: str, url: str, headers: Optional[Mapping[str, str]], payload: Any) -> "RequestDescriptor":
        """Build a descriptor whose body is ``payload`` encoded as JSON."""
        return cls(method=method, url=url, headers=dict(headers or {}), body=codec.encode(payload))


@dataclass(frozen=True)
class ResponseEnvelope(Generic[Req, Resp]):
    """The request value that was sent, paired with the decoded response."""

    request: Req
    response: Resp

    def __post_init__(self):
        if self.request is None:
            raise ValueError("ResponseEnvelope requires a request value")
        if self.response is None:
            raise ValueError("ResponseEnvelope requires a response value")

    def request_json(self) -> str:
        return codec.to_json_text(self.request)

    def response_json(self) -> str:
        return codec.to_json_text(self.response)
