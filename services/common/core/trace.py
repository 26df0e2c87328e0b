import time
import secrets
from typing import Optional


class TraceId:
    """
    X-Amzn-Trace-Id header value as written by a load balancer:
    Root=1-<8 hex epoch>-<24 hex random>;Parent=<id>;Sampled=<0|1>
    """

    def __init__(self, root: str, parent: Optional[str] = None, sampled: Optional[str] = None):
        self.root = root
        self.parent = parent
        self.sampled = sampled

    @classmethod
    def generate(cls) -> "TraceId":
        """Generate a new Trace ID (Root=1-timehex-uniqueid)."""
        epoch_hex = f"{int(time.time()):08x}"
        unique_id = secrets.token_hex(12)
        return cls(root=f"1-{epoch_hex}-{unique_id}")

    @classmethod
    def parse(cls, header: str) -> "TraceId":
        """
        Parse an X-Amzn-Trace-Id header string.

        Raises:
            ValueError: when the header carries no Root segment
        """
        parts = {}
        for part in header.split(";"):
            if "=" not in part:
                continue
            k, v = part.split("=", 1)
            parts[k.strip()] = v.strip()

        root = parts.get("Root", "")
        if not root:
            raise ValueError(f"Trace header has no Root segment: {header!r}")

        return cls(root=root, parent=parts.get("Parent"), sampled=parts.get("Sampled"))

    def __str__(self) -> str:
        s = f"Root={self.root}"
        if self.parent:
            s += f";Parent={self.parent}"
        if self.sampled:
            s += f";Sampled={self.sampled}"
        return s
