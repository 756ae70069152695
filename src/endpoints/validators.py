"""Request validators.

A request validator is called as ``validator(request, config, document)``
before the adapter and raises an ``EndpointsError`` to reject the request.
``document`` is the parsed primary data for create and update, None
otherwise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from endpoints.errors import BadRequestError
from endpoints.request import ResourceDocument, ResourceRequest
from endpoints.schemas.jsonapi import JSONAPIError

if TYPE_CHECKING:
    from endpoints.controller.configure import OperationConfig


def validate_attributes(schemas: dict[str, type[BaseModel]]):
    """Return a validator checking request attributes against pydantic models.

    Args:
        schemas: Attribute model per method (``"create"``, ``"update"``).
            Methods without a model are not checked.

    Every validation error becomes one JSON:API error pointing at the
    offending attribute; all of them are reported in a single 400.
    """

    def validator(
        request: ResourceRequest,
        config: OperationConfig,
        document: ResourceDocument | None,
    ) -> None:
        schema = schemas.get(config.method)
        if schema is None or document is None:
            return
        attributes: dict[str, Any] = document.raw.get("attributes") or {}
        try:
            schema.model_validate(attributes)
        except ValidationError as exc:
            errors = [
                JSONAPIError(
                    status="400",
                    title="Invalid Attribute",
                    detail=error["msg"],
                    source={
                        "pointer": "/data/attributes/"
                        + "/".join(str(part) for part in error["loc"])
                    },
                )
                for error in exc.errors()
            ]
            raise BadRequestError("Invalid attributes", errors=errors) from exc

    return validator
