# services/gateway/models/alb.py

"""
Pydantic models for the Application Load Balancer -> Lambda target contract.

Reference: https://docs.aws.amazon.com/elasticloadbalancing/latest/application/lambda-functions.html

FUNCTION targets receive an ALBTargetEvent and answer with an
ALBTargetResponse envelope.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ElbContext(BaseModel):
    targetGroupArn: str


class ALBRequestContext(BaseModel):
    elb: ElbContext


class ALBTargetEvent(BaseModel):
    """
    Event delivered to a FUNCTION target.

    Use model_dump(exclude_none=True) to convert to a dict.
    """

    requestContext: ALBRequestContext
    httpMethod: str
    path: str
    queryStringParameters: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: str = ""
    isBase64Encoded: bool = False


class ALBTargetResponse(BaseModel):
    """Response envelope returned by a FUNCTION target."""

    statusCode: int = Field(..., ge=100, le=599)
    statusDescription: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    multiValueHeaders: Optional[Dict[str, List[str]]] = None
    body: Optional[str] = None
    isBase64Encoded: bool = False
