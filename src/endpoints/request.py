"""Transport-neutral requests and JSON:API request parsing.

``ResourceRequest`` is what a generated handler receives; the transport
glue builds it from the framework's own request object. The parsing
functions turn it into the inputs of a store adapter call and raise
``EndpointsError`` subclasses for every protocol violation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from endpoints.errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnsupportedMediaTypeError,
)
from endpoints.schemas.jsonapi import JSONAPI_MEDIA_TYPE, JSONAPIRequestData
from endpoints.store.base import ReadQuery, RelationAttachment, StoreAdapter

if TYPE_CHECKING:
    from endpoints.controller.configure import OperationConfig


class ResourceRequest(BaseModel):
    """An incoming request, stripped of transport details."""

    method: str = "GET"
    path_params: dict[str, str] = {}
    query: dict[str, str] = {}
    content_type: str | None = None
    body: bytes = b""

    @property
    def id(self) -> str | None:
        return self.path_params.get("id")

    @property
    def relation(self) -> str | None:
        return self.path_params.get("relation")


class ResourceDocument(BaseModel):
    """Primary data of a create or update request, split for the adapter.

    To-one linkage is folded into ``attributes`` under the adapter's
    foreign key attribute; to-many linkage becomes ``to_many``.
    """

    type: str
    id: str | None = None
    attributes: dict[str, Any] = {}
    to_many: list[RelationAttachment] = []
    raw: dict[str, Any] = {}


def check_media_type(request: ResourceRequest) -> None:
    """Reject bodies not sent as ``application/vnd.api+json`` without parameters."""
    content_type = (request.content_type or "").strip().lower()
    if content_type != JSONAPI_MEDIA_TYPE:
        raise UnsupportedMediaTypeError(
            f"Content-Type must be '{JSONAPI_MEDIA_TYPE}' without media type parameters"
        )


_JSON_BODY = TypeAdapter(Any)


def _load_body(request: ResourceRequest) -> Any:
    try:
        return _JSON_BODY.validate_json(request.body or b"null")
    except ValidationError as exc:
        raise BadRequestError(
            f"Request body is not valid JSON: {exc.errors()[0]['msg']}"
        ) from exc


def parse_document(
    request: ResourceRequest, adapter: StoreAdapter, method: str
) -> ResourceDocument:
    """Parse and check the primary data of a create or update request.

    Args:
        request: The incoming request.
        adapter: Adapter of the resource type the route serves.
        method: ``"create"`` or ``"update"``.

    Returns:
        The parsed document.

    Raises:
        UnsupportedMediaTypeError: Wrong Content-Type.
        BadRequestError: Malformed document, missing ``type`` or ``id``,
            unknown attributes or relationships.
        ForbiddenError: Client-generated id the adapter does not accept.
        ConflictError: ``type`` or ``id`` not matching the endpoint.
    """
    check_media_type(request)
    payload = _load_body(request)
    if not isinstance(payload, dict) or "data" not in payload:
        raise BadRequestError(
            "Request document must contain a primary 'data' member",
            source={"pointer": ""},
        )

    data = payload["data"]
    if not isinstance(data, dict):
        raise BadRequestError(
            "Primary data must be a single resource object",
            source={"pointer": "/data"},
        )
    try:
        resource = JSONAPIRequestData.model_validate(data)
    except ValidationError as exc:
        error = exc.errors()[0]
        pointer = "/data/" + "/".join(str(part) for part in error["loc"])
        raise BadRequestError(error["msg"], source={"pointer": pointer}) from exc

    if resource.type is None:
        raise BadRequestError(
            "Primary data must have a 'type' member", source={"pointer": "/data"}
        )
    if resource.type != adapter.resource_type:
        raise ConflictError(
            f"Type '{resource.type}' does not match endpoint type '{adapter.resource_type}'",
            source={"pointer": "/data/type"},
        )

    id = None if resource.id is None else str(resource.id)
    if method == "create" and id is not None and not adapter.allow_client_generated_ids:
        raise ForbiddenError(
            f"Client-generated ids are not supported for {adapter.resource_type}",
            source={"pointer": "/data/id"},
        )
    if method == "update":
        if id is None:
            raise BadRequestError(
                "Primary data must have an 'id' member", source={"pointer": "/data"}
            )
        if id != request.id:
            raise ConflictError(
                f"Id '{id}' does not match endpoint id '{request.id}'",
                source={"pointer": "/data/id"},
            )

    for key in resource.attributes:
        if key not in adapter.fields:
            raise BadRequestError(
                f"Unknown attribute '{key}' for {adapter.resource_type}",
                source={"pointer": f"/data/attributes/{key}"},
            )

    attributes = dict(resource.attributes)
    to_many: list[RelationAttachment] = []
    relations = adapter.relations
    for name, relationship in resource.relationships.items():
        pointer = f"/data/relationships/{name}"
        info = relations.get(name)
        if info is None:
            raise BadRequestError(
                f"Unknown relationship '{name}' for {adapter.resource_type}",
                source={"pointer": pointer},
            )
        if not isinstance(relationship, dict) or "data" not in relationship:
            raise BadRequestError(
                "Relationship object must contain a 'data' member",
                source={"pointer": pointer},
            )
        linkage = relationship["data"]
        if info.to_many:
            if not isinstance(linkage, list):
                raise BadRequestError(
                    f"Relationship '{name}' requires an array of resource identifiers",
                    source={"pointer": f"{pointer}/data"},
                )
            ids = [
                _identifier(item, info.type, f"{pointer}/data/{i}")
                for i, item in enumerate(linkage)
            ]
            to_many.append(RelationAttachment(name=name, ids=ids))
        else:
            if isinstance(linkage, list):
                raise BadRequestError(
                    f"Relationship '{name}' requires a single resource identifier",
                    source={"pointer": f"{pointer}/data"},
                )
            attributes[info.attribute] = (
                None if linkage is None else _identifier(linkage, info.type, f"{pointer}/data")
            )

    return ResourceDocument(
        type=resource.type,
        id=id,
        attributes=attributes,
        to_many=to_many,
        raw=data,
    )


def _identifier(item: Any, expected_type: str, pointer: str) -> str:
    if not isinstance(item, dict) or "type" not in item or "id" not in item:
        raise BadRequestError(
            "Resource identifier must have 'type' and 'id' members",
            source={"pointer": pointer},
        )
    if item["type"] != expected_type:
        raise ConflictError(
            f"Expected resource type '{expected_type}', got '{item['type']}'",
            source={"pointer": f"{pointer}/type"},
        )
    return str(item["id"])


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_include(
    request: ResourceRequest, config: OperationConfig, adapter: StoreAdapter
) -> list[str]:
    """Return the relations to side-load, defaulting to ``config.relations``.

    Raises:
        BadRequestError: Unknown or nested include paths.
    """
    if "include" in request.query:
        include = _split(request.query["include"])
    else:
        include = sorted(config.relations)
    relations = adapter.relations
    for name in include:
        if "." in name:
            raise BadRequestError(
                f"Nested include path '{name}' is not supported",
                source={"parameter": "include"},
            )
        if name not in relations:
            raise BadRequestError(
                f"Unknown relationship '{name}' for {adapter.resource_type}",
                source={"parameter": "include"},
            )
    return list(dict.fromkeys(include))


def parse_read_query(
    request: ResourceRequest, config: OperationConfig, adapter: StoreAdapter
) -> ReadQuery:
    """Build a ``ReadQuery`` from the request path and query string.

    In related mode only ``include`` is honoured; it is checked against
    the related resource type.

    Raises:
        NotFoundError: Related mode with a relation the adapter lacks.
        BadRequestError: Unknown include, filter or sort fields.
    """
    id = request.id or config.base_id
    target = adapter
    if config.mode == "related":
        relation = request.relation or config.base_relation
        info = adapter.relations.get(relation or "")
        if info is None:
            raise NotFoundError(
                f"{adapter.resource_type} has no relationship '{relation}'"
            )
        target = adapter.store.adapter_for(info.type)

    filters: dict[str, list[str]] = {}
    for key, value in request.query.items():
        if key.startswith("filter[") and key.endswith("]"):
            field = key[len("filter["):-1]
            if field != "id" and field not in target.fields:
                raise BadRequestError(
                    f"Unknown filter field '{field}'", source={"parameter": key}
                )
            filters[field] = _split(value)

    sort = _split(request.query.get("sort"))
    for key in sort:
        field = key.lstrip("-")
        if field != "id" and field not in target.fields:
            raise BadRequestError(
                f"Unknown sort field '{field}'", source={"parameter": "sort"}
            )

    include = parse_include(request, config, target)
    if config.mode == "related":
        return ReadQuery(
            include=include,
            mode="related",
            base_id=id,
            base_relation=relation,
        )
    return ReadQuery(id=id, include=include, filters=filters, sort=sort)
