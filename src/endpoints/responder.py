"""Responders turning a ``ResponseEnvelope`` into a transport response."""

from __future__ import annotations

from fastapi import Response
from fastapi.responses import JSONResponse

from endpoints.formatter.response import ResponseEnvelope
from endpoints.schemas.jsonapi import JSONAPI_MEDIA_TYPE, JSONAPIErrorResponse


def fastapi_responder(envelope: ResponseEnvelope) -> Response:
    """Render an envelope as a Starlette response.

    Errors are wrapped in a top-level ``errors`` array. A 201 carries a
    ``Location`` header equal to the created resource's self link. An
    envelope without data (204) has no body.
    """
    if envelope.errors is not None:
        body = JSONAPIErrorResponse(errors=envelope.errors)
        return JSONResponse(
            body.model_dump(mode="json", exclude_none=True),
            status_code=envelope.code,
            media_type=JSONAPI_MEDIA_TYPE,
        )

    if envelope.data is None:
        return Response(status_code=envelope.code)

    headers = {}
    if envelope.code == 201:
        primary = envelope.data.get("data") or {}
        location = (primary.get("links") or {}).get("self")
        if location:
            headers["Location"] = location
    return JSONResponse(
        envelope.data,
        status_code=envelope.code,
        headers=headers,
        media_type=JSONAPI_MEDIA_TYPE,
    )
