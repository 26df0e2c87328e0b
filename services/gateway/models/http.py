"""
Gateway request/response models.

Decouple the routing pipeline from FastAPI's Request and Response objects.
"""

from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class GatewayRequest(BaseModel):
    """
    An inbound client request. Immutable once received.

    Header names are lower-cased; repeated headers are kept in order.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    query_string: str = ""
    headers: Tuple[Tuple[str, str], ...] = ()
    body: bytes = b""
    client_ip: str = ""
    scheme: str = "http"
    port: int = 80

    def header(self, name: str, default: str = "") -> str:
        """First value of a header (case-insensitive)."""
        name = name.lower()
        for key, value in self.headers:
            if key == name:
                return value
        return default

    def header_map(self) -> Dict[str, str]:
        """Single-value view; the last occurrence wins."""
        return {key: value for key, value in self.headers}


class GatewayResponse(BaseModel):
    """A response ready to be written back to the client."""

    status_code: int
    headers: List[Tuple[str, str]] = Field(default_factory=list)
    body: bytes = b""
    # Priority of the rule that produced the response (None: the default rule).
    rule_priority: int | None = None

    @classmethod
    def text(cls, status_code: int, body: str, content_type: str = "text/plain") -> "GatewayResponse":
        return cls(
            status_code=status_code,
            headers=[("content-type", f"{content_type}; charset=utf-8")],
            body=body.encode("utf-8"),
        )
