"""
Gateway Utility Module
"""

import base64
import binascii
import logging
from typing import Any, List, Tuple

from pydantic import ValidationError

from services.gateway.models.alb import ALBTargetResponse
from services.gateway.models.http import GatewayResponse

logger = logging.getLogger("gateway.utils")

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "proxy-connection",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)


def strip_hop_by_hop(headers: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """
    Drop hop-by-hop headers, including any listed in the Connection header.
    """
    extra = set()
    for key, value in headers:
        if key.lower() == "connection":
            extra.update(token.strip().lower() for token in value.split(",") if token.strip())
    return [
        (key, value)
        for key, value in headers
        if key.lower() not in HOP_BY_HOP_HEADERS and key.lower() not in extra
    ]


def parse_function_response(result: Any) -> GatewayResponse:
    """
    Convert a FUNCTION target's response envelope into a GatewayResponse.

    A malformed envelope is answered with 502, the way a load balancer
    reports a misbehaving Lambda target.
    """
    try:
        envelope = ALBTargetResponse.model_validate(result)
    except ValidationError as e:
        logger.error(
            "Function target returned a malformed response envelope",
            extra={"error_detail": str(e)},
        )
        return GatewayResponse.text(502, "Bad Gateway")

    headers: List[Tuple[str, str]] = []
    if envelope.multiValueHeaders:
        for key, values in envelope.multiValueHeaders.items():
            headers.extend((key.lower(), str(v)) for v in values)
    elif envelope.headers:
        headers.extend((key.lower(), str(v)) for key, v in envelope.headers.items())

    body_text = envelope.body or ""
    if envelope.isBase64Encoded:
        try:
            body = base64.b64decode(body_text, validate=True)
        except (binascii.Error, ValueError) as e:
            logger.error(
                "Function target returned an invalid base64 body",
                extra={"error_detail": str(e)},
            )
            return GatewayResponse.text(502, "Bad Gateway")
    else:
        body = body_text.encode("utf-8")

    return GatewayResponse(
        status_code=envelope.statusCode,
        headers=strip_hop_by_hop(headers),
        body=body,
    )
