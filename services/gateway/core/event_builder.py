import base64
import logging
from typing import Any, Dict
from urllib.parse import parse_qsl

from services.gateway.models.alb import ALBRequestContext, ALBTargetEvent, ElbContext
from services.gateway.models.http import GatewayRequest

logger = logging.getLogger("gateway.event_builder")

# Content types whose bodies are handed to functions as plain text.
_TEXT_CONTENT_TYPES = (
    "text/",
    "application/json",
    "application/javascript",
    "application/xml",
    "application/x-www-form-urlencoded",
)


def target_group_arn(group_id: str) -> str:
    """Pseudo ARN identifying a target group inside events."""
    return f"arn:aws:elasticloadbalancing:local:000000000000:targetgroup/{group_id}"


class ALBEventBuilder:
    """Builds the event a load balancer sends to a Lambda (FUNCTION) target."""

    def build(self, request: GatewayRequest, group_id: str) -> Dict[str, Any]:
        body = request.body
        content_type = request.header("content-type").lower()
        is_text = not content_type or content_type.startswith(_TEXT_CONTENT_TYPES)
        is_gzip = "gzip" in request.header("content-encoding").lower()

        if is_text and not is_gzip:
            try:
                body_content = body.decode("utf-8")
                is_base64 = False
            except UnicodeDecodeError:
                body_content = base64.b64encode(body).decode("ascii")
                is_base64 = True
        else:
            body_content = base64.b64encode(body).decode("ascii")
            is_base64 = True

        event = ALBTargetEvent(
            requestContext=ALBRequestContext(elb=ElbContext(targetGroupArn=target_group_arn(group_id))),
            httpMethod=request.method,
            path=request.path,
            queryStringParameters=dict(parse_qsl(request.query_string, keep_blank_values=True)),
            headers=request.header_map(),
            body=body_content,
            isBase64Encoded=is_base64,
        )
        return event.model_dump(exclude_none=True)
