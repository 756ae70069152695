"""Pydantic schemas for JSON:API documents."""

from endpoints.schemas.jsonapi import (
    JSONAPI_MEDIA_TYPE,
    JSONAPIDocument,
    JSONAPIError,
    JSONAPIErrorResponse,
    JSONAPIRelationship,
    JSONAPIRequestData,
    JSONAPIResource,
    JSONAPIResourceIdentifier,
)

__all__ = [
    "JSONAPI_MEDIA_TYPE",
    "JSONAPIDocument",
    "JSONAPIError",
    "JSONAPIErrorResponse",
    "JSONAPIRelationship",
    "JSONAPIRequestData",
    "JSONAPIResource",
    "JSONAPIResourceIdentifier",
]
