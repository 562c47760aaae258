from dataclasses import dataclass, field
from typing import Dict, Optional

from .exceptions import JockeyError

DEFAULT_PORTS = {"http": 80, "https": 443}

# Request/Response Models
@dataclass(frozen=True)
class Endpoint:
    """A resolved request target; scheme and port are always explicit."""
    scheme: str
    host: str
    port: int
    path: str = "/"
    query: str = ""

    def __post_init__(self):
        if self.scheme not in DEFAULT_PORTS:
            raise ValueError(f"unsupported scheme: {self.scheme}")
        if not self.host:
            raise ValueError("endpoint host cannot be empty")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")

    @property
    def request_uri(self) -> str:
        path = self.path or "/"
        if self.query:
            path += "?" + self.query
        return path

    @property
    def authority(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.authority}{self.request_uri}"

@dataclass
class HTTPRequest:
    """Represents a GET request before it is sent."""
    endpoint: Endpoint
    headers: Dict[str, str] = field(default_factory=dict)

@dataclass
class ResponseOutcome:
    """Represents the result of one request."""
    status: Optional[int] = None
    bytes_read: int = 0
    error: Optional[JockeyError] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.status is not None

    def raise_for_error(self):
        if self.error is not None:
            raise self.error
