"""Exceptions raised by the request pipeline.

Two families exist. ``ConfigurationError`` is raised while handlers are
being built and aborts application startup; it never reaches a client.
``EndpointsError`` and its subclasses are raised while a request is being
processed and are converted by the processor into a JSON:API error
envelope carrying the subclass's HTTP status.
"""

from __future__ import annotations

from endpoints.schemas.jsonapi import JSONAPIError


class ConfigurationError(Exception):
    """Raised when a controller or handler is built from an invalid configuration."""

    pass


class EndpointsError(Exception):
    """Base exception for request-time failures.

    Args:
        detail: Human-readable explanation of this occurrence.
        source: Optional JSON:API error source (``pointer`` or ``parameter``).
        errors: Preformatted error objects; when given they replace the
            single error built from ``detail`` and ``source``.
    """

    status_code: int = 500
    title: str = "Internal Server Error"

    def __init__(
        self,
        detail: str | None = None,
        *,
        source: dict[str, str] | None = None,
        errors: list[JSONAPIError] | None = None,
    ) -> None:
        super().__init__(detail or self.title)
        self.detail = detail
        self.source = source
        self._errors = errors

    def to_errors(self) -> list[JSONAPIError]:
        """Return the JSON:API error objects describing this failure."""
        if self._errors:
            return list(self._errors)
        return [
            JSONAPIError(
                status=str(self.status_code),
                title=self.title,
                detail=self.detail,
                source=self.source,
            )
        ]


class BadRequestError(EndpointsError):
    """Malformed request document or query parameters."""

    status_code = 400
    title = "Bad Request"


class ForbiddenError(EndpointsError):
    """Request is understood but not supported for this resource."""

    status_code = 403
    title = "Forbidden"


class NotFoundError(EndpointsError):
    """Requested resource does not exist."""

    status_code = 404
    title = "Not Found"


class ConflictError(EndpointsError):
    """Request conflicts with the current state of the resource."""

    status_code = 409
    title = "Conflict"


class UnsupportedMediaTypeError(EndpointsError):
    """Request body was not sent with the JSON:API media type."""

    status_code = 415
    title = "Unsupported Media Type"
