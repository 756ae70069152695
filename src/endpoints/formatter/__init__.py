"""Response formatting: per-method envelopes and the JSON:API formatter."""

from endpoints.formatter.jsonapi import FormatMetadata, format_jsonapi
from endpoints.formatter.response import (
    ResponseEnvelope,
    format_create,
    format_destroy,
    format_error,
    format_read,
    format_update,
)

__all__ = [
    "FormatMetadata",
    "ResponseEnvelope",
    "format_create",
    "format_destroy",
    "format_error",
    "format_jsonapi",
    "format_read",
    "format_update",
]
