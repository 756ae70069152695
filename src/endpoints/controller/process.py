"""Request processing.

``process`` closes over an operation's configuration and adapter and
returns the coroutine that serves one request: parse, validate, call the
adapter, format, respond. Every failure is turned into an error envelope
here, so the responder is always called exactly once.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from endpoints.controller.configure import OperationConfig
from endpoints.errors import BadRequestError, EndpointsError, NotFoundError
from endpoints.formatter import (
    ResponseEnvelope,
    format_create,
    format_destroy,
    format_error,
    format_read,
    format_update,
)
from endpoints.request import (
    ResourceDocument,
    ResourceRequest,
    parse_document,
    parse_include,
    parse_read_query,
)
from endpoints.store.base import ReadQuery, Record, ResourceData, StoreAdapter

logger = logging.getLogger(__name__)

Handler = Callable[[ResourceRequest], Awaitable[Any]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def _run_validators(
    config: OperationConfig,
    request: ResourceRequest,
    document: ResourceDocument | None = None,
) -> None:
    """Run request validators in order; the first to raise stops the request."""
    for validator in config.validators:
        await _maybe_await(validator(request, config, document))


async def _reload(
    config: OperationConfig,
    adapter: StoreAdapter,
    request: ResourceRequest,
    record: Record,
) -> ResourceData:
    """Re-read a written record when the request asks for side-loaded relations."""
    include = parse_include(request, config, adapter)
    if not include:
        return ResourceData(data=record, single_result=True)
    data = await adapter.read(ReadQuery(id=record.id, include=include))
    return data.model_copy(update={"single_result": True})


def _require_id(request: ResourceRequest) -> str:
    if request.id is None:
        raise BadRequestError("A resource id is required", source={"parameter": "id"})
    return request.id


async def _create(
    config: OperationConfig, adapter: StoreAdapter, request: ResourceRequest
) -> ResponseEnvelope:
    document = parse_document(request, adapter, "create")
    await _run_validators(config, request, document)

    attributes = dict(document.attributes)
    if document.id is not None:
        attributes["id"] = document.id
    record = await adapter.create(attributes, document.to_many)

    data = await _reload(config, adapter, request, record)
    return format_create(config.formatter, config, data)


async def _read(
    config: OperationConfig, adapter: StoreAdapter, request: ResourceRequest
) -> ResponseEnvelope:
    query = parse_read_query(request, config, adapter)
    await _run_validators(config, request)

    data = await adapter.read(query)
    if config.single_result is not None:
        data = data.model_copy(update={"single_result": config.single_result})
    return format_read(config.formatter, config, data)


async def _update(
    config: OperationConfig, adapter: StoreAdapter, request: ResourceRequest
) -> ResponseEnvelope:
    id = _require_id(request)
    document = parse_document(request, adapter, "update")
    await _run_validators(config, request, document)

    previous = await adapter.read(ReadQuery(id=id))
    if not isinstance(previous.data, Record):
        raise NotFoundError("Resource not found.")

    record = await adapter.update(id, document.attributes, document.to_many, previous.data)
    if record is None:
        return format_update(config.formatter, config, None)

    data = await _reload(config, adapter, request, record)
    return format_update(config.formatter, config, data)


async def _destroy(
    config: OperationConfig, adapter: StoreAdapter, request: ResourceRequest
) -> ResponseEnvelope:
    id = _require_id(request)
    await _run_validators(config, request)
    await adapter.destroy(id)
    return format_destroy()


OPERATIONS = {
    "create": _create,
    "read": _read,
    "update": _update,
    "destroy": _destroy,
}


def process(config: OperationConfig, adapter: StoreAdapter) -> Handler:
    """Return the request handler for ``config``.

    The handler never raises: request errors become their own status,
    anything else becomes a 500 envelope after being logged.
    """
    operation = OPERATIONS[config.method]

    async def handle(request: ResourceRequest) -> Any:
        try:
            envelope = await operation(config, adapter, request)
        except EndpointsError as exc:
            logger.debug(
                "%s %s rejected with %s: %s",
                config.method,
                adapter.resource_type,
                exc.status_code,
                exc,
            )
            envelope = format_error(exc)
        except Exception:
            logger.exception(
                "Unhandled error during %s of %s", config.method, adapter.resource_type
            )
            envelope = format_error(EndpointsError())
        return await _maybe_await(config.responder(envelope))

    handle.__name__ = f"{config.method}_{adapter.resource_type}"
    return handle
