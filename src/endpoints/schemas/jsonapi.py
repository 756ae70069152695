"""JSON:API envelope models using Pydantic v2.

Describes the data/type/id/attributes structure of JSON:API documents
for both directions: the request wrapper accepted by create and update
handlers, and the resource, document and error objects produced by the
formatter.

Reference: https://jsonapi.org/format/
"""

from typing import Any

from pydantic import BaseModel, ConfigDict

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"


# ---------------------------------------------------------------------------
# Request wrappers
# ---------------------------------------------------------------------------


class JSONAPIRequestData(BaseModel):
    """The ``data`` object inside a JSON:API request body.

    ``type`` is optional here so that a missing member can be reported as
    a JSON:API error instead of a pydantic one.
    """

    model_config = ConfigDict(extra="allow")

    type: str | None = None
    id: str | int | None = None
    attributes: dict[str, Any] = {}
    relationships: dict[str, Any] = {}


class JSONAPIResourceIdentifier(BaseModel):
    """A resource identifier object (``{type, id}``) used in linkage."""

    type: str
    id: str


# ---------------------------------------------------------------------------
# Response objects
# ---------------------------------------------------------------------------


class JSONAPIRelationship(BaseModel):
    """A relationship object with links and resource linkage."""

    links: dict[str, str]
    data: JSONAPIResourceIdentifier | list[JSONAPIResourceIdentifier] | None = None


class JSONAPIResource(BaseModel):
    """A single JSON:API resource object with type, id, and attributes."""

    type: str
    id: str
    attributes: dict[str, Any]
    relationships: dict[str, JSONAPIRelationship] | None = None
    links: dict[str, str] | None = None


class JSONAPIDocument(BaseModel):
    """Top-level JSON:API document carrying primary data."""

    data: JSONAPIResource | list[JSONAPIResource] | None
    included: list[JSONAPIResource] | None = None
    links: dict[str, str] | None = None


class JSONAPIError(BaseModel):
    """A single JSON:API error object."""

    status: str
    title: str
    detail: str | None = None
    source: dict[str, str] | None = None


class JSONAPIErrorResponse(BaseModel):
    """JSON:API response envelope containing a list of errors."""

    errors: list[JSONAPIError]
