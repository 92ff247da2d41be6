"""Error taxonomy for the price-feed engine.

Every error carries a ``stage`` tag. The backfill controller uses it to label
``error_message`` so an operator can tell a bad mapping from an unreachable provider.
"""


class PriceFeedError(Exception):
    """Base class for all engine errors."""

    stage = "internal"


class ConfigurationError(PriceFeedError):
    """Bad template, unresolved ${ENV_VAR} or invalid mapping. Never retried."""

    stage = "config"


class ValidationError(ConfigurationError):
    """A mapping or job payload failed validation."""


class DuplicateMappingError(ValidationError):
    """A mapping for the same (asset_id, provider) already exists."""


class NotFoundError(PriceFeedError):
    stage = "lookup"


class ExternalServiceError(PriceFeedError):
    """Provider-side failure (network or HTTP)."""

    stage = "transport"


class TransportError(ExternalServiceError):
    """DNS, connect, timeout: the provider could not be reached."""


class ProviderHTTPError(ExternalServiceError):
    """Provider was reachable but answered with a non-2xx status."""

    def __init__(self, status: int, body: str = "") -> None:
        self.status = status
        self.body = body
        snippet = body[:200]
        message = f"provider returned HTTP {status}"
        super().__init__(f"{message}: {snippet}" if snippet else message)

    @property
    def stage(self) -> str:  # type: ignore[override]
        return "auth" if self.status in (401, 403) else "http"


class ResponseParseError(PriceFeedError):
    """Response body is not valid JSON."""

    stage = "parse"


class ExtractionError(PriceFeedError):
    """response_path does not match the provider response."""

    stage = "path"


class EmptyPathError(ExtractionError):
    pass


class PathNotFoundError(ExtractionError):
    pass


class TypeMismatchError(ExtractionError):
    stage = "parse"


class ConcurrentModificationError(PriceFeedError):
    """A job row was updated by someone else since it was read."""

    stage = "concurrency"


class JobConflictError(PriceFeedError):
    """The mapping already has a pending or running job."""

    stage = "conflict"
