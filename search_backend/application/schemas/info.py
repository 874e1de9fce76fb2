"""API discovery schema for GET /api/info."""

from .common import CamelModel


class EndpointInfoSchema(CamelModel):
    path: str
    method: str
    description: str


class RateLimitInfoSchema(CamelModel):
    enabled: bool
    window_ms: int
    max: int


class ApiInfoResponse(CamelModel):
    name: str
    version: str
    environment: str
    endpoints: list[EndpointInfoSchema]
    rate_limit: RateLimitInfoSchema
