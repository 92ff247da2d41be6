from enum import Enum


class AuthType(str, Enum):
    """How the provider secret is sent."""

    NONE = "none"
    BEARER = "bearer"  # Authorization: Bearer <value>
    APIKEY = "apikey"  # X-API-Key: <value>


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
