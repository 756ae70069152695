"""JSON:API document formatter.

``format_jsonapi`` is the protocol formatter plugged into an operation's
``formatter`` option. It receives the raw store data together with the
shaping metadata and returns the top-level document as a plain dict.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

from endpoints.schemas.jsonapi import (
    JSONAPIDocument,
    JSONAPIRelationship,
    JSONAPIResource,
    JSONAPIResourceIdentifier,
)
from endpoints.store.base import Record


class FormatMetadata(BaseModel):
    """Shaping hints handed to a protocol formatter."""

    single_result: bool = False
    relations: list[str] = []
    mode: Literal["related"] | None = None
    base_type: str | None = None
    base_id: str | None = None
    base_relation: str | None = None
    base_url: str = ""
    included: list[Record] = []


def self_link(base_url: str, type: str, id: str) -> str:
    """Return the canonical URL of a resource."""
    return f"{base_url.rstrip('/')}/{type}/{id}"


def _linkage(
    value: str | list[str] | None, type: str
) -> JSONAPIResourceIdentifier | list[JSONAPIResourceIdentifier] | None:
    if value is None:
        return None
    if isinstance(value, list):
        return [JSONAPIResourceIdentifier(type=type, id=id) for id in value]
    return JSONAPIResourceIdentifier(type=type, id=value)


def to_resource(record: Record, base_url: str) -> JSONAPIResource:
    """Convert a store record into a JSON:API resource object."""
    link = self_link(base_url, record.type, record.id)
    fields: dict[str, Any] = {
        "type": record.type,
        "id": record.id,
        "attributes": record.attributes,
        "links": {"self": link},
    }
    if record.relationships:
        fields["relationships"] = {
            name: JSONAPIRelationship(
                links={
                    "self": f"{link}/relationships/{name}",
                    "related": f"{link}/{name}",
                },
                data=_linkage(value, record.relation_types.get(name, name)),
            )
            for name, value in record.relationships.items()
        }
    return JSONAPIResource(**fields)


def format_jsonapi(
    data: Record | list[Record] | None, metadata: FormatMetadata
) -> dict[str, Any]:
    """Build a JSON:API top-level document.

    A list is rendered as a collection unless ``single_result`` is set, in
    which case its first element (or null) becomes the primary data.
    ``included`` is present whenever relations were requested, and a
    related read carries the related endpoint as its ``links.self``.
    """
    if isinstance(data, list) and metadata.single_result:
        data = data[0] if data else None

    if isinstance(data, list):
        primary: Any = [to_resource(record, metadata.base_url) for record in data]
    elif data is not None:
        primary = to_resource(data, metadata.base_url)
    else:
        primary = None

    fields: dict[str, Any] = {"data": primary}
    if metadata.relations:
        fields["included"] = [
            to_resource(record, metadata.base_url) for record in metadata.included
        ]
    if metadata.mode == "related":
        base = self_link(metadata.base_url, metadata.base_type or "", metadata.base_id or "")
        fields["links"] = {"self": f"{base}/{metadata.base_relation}"}

    return JSONAPIDocument(**fields).model_dump(mode="json", exclude_unset=True)
