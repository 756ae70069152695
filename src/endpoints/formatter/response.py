"""Per-method response formatting.

Each function turns the outcome of one store operation into a
``ResponseEnvelope``: the HTTP status plus either the formatted document
or a list of JSON:API errors. Reads additionally decide whether an empty
result is "not found" or a legitimate empty answer.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, model_validator

from endpoints.errors import EndpointsError, NotFoundError
from endpoints.formatter.jsonapi import FormatMetadata
from endpoints.schemas.jsonapi import JSONAPIError
from endpoints.store.base import Record, ResourceData

if TYPE_CHECKING:
    from endpoints.controller.configure import OperationConfig

Formatter = Callable[[Record | list[Record] | None, FormatMetadata], Any]


class ResponseEnvelope(BaseModel):
    """Transport-independent response: a status with data or errors, never both."""

    code: int
    data: Any = None
    errors: list[JSONAPIError] | None = None

    @model_validator(mode="after")
    def _data_or_errors(self) -> ResponseEnvelope:
        if self.data is not None and self.errors is not None:
            raise ValueError("A response envelope carries either data or errors")
        return self


def _metadata(config: OperationConfig, data: ResourceData) -> FormatMetadata:
    return FormatMetadata(
        single_result=data.single_result,
        relations=data.relations,
        mode=data.mode,
        base_type=data.base_type,
        base_id=data.base_id,
        base_relation=data.base_relation,
        base_url=config.base_url,
        included=data.included,
    )


def format_error(exc: EndpointsError) -> ResponseEnvelope:
    """Build an error envelope from a request-time exception."""
    return ResponseEnvelope(code=exc.status_code, errors=exc.to_errors())


def format_create(
    formatter: Formatter, config: OperationConfig, data: ResourceData
) -> ResponseEnvelope:
    return ResponseEnvelope(code=201, data=formatter(data.data, _metadata(config, data)))


def format_read(
    formatter: Formatter, config: OperationConfig, data: ResourceData
) -> ResponseEnvelope:
    """Format a read, applying the not-found policy.

    In related mode an absent or empty result is a valid answer. Otherwise
    absent data, or an empty collection when a single result was expected,
    is a 404.
    """
    records = data.data
    empty = records is None or (
        isinstance(records, list) and not records and data.single_result
    )
    if empty and data.mode != "related":
        return format_error(NotFoundError("Resource not found."))
    return ResponseEnvelope(code=200, data=formatter(records, _metadata(config, data)))


def format_update(
    formatter: Formatter, config: OperationConfig, data: ResourceData | None
) -> ResponseEnvelope:
    """Format an update; ``None`` means nothing changed and yields 204."""
    if data is None:
        return ResponseEnvelope(code=204)
    return ResponseEnvelope(code=200, data=formatter(data.data, _metadata(config, data)))


def format_destroy() -> ResponseEnvelope:
    return ResponseEnvelope(code=204)
