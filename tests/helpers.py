"""Request builders shared by the test modules."""

import json

from endpoints.request import ResourceRequest
from endpoints.schemas.jsonapi import JSONAPI_MEDIA_TYPE


def make_request(method="GET", data=None, query=None, content_type=JSONAPI_MEDIA_TYPE, **path_params):
    """Build a ResourceRequest with a JSON:API body wrapping ``data``."""
    body = b"" if data is None else json.dumps({"data": data}).encode()
    return ResourceRequest(
        method=method,
        path_params={key: str(value) for key, value in path_params.items()},
        query=query or {},
        content_type=content_type if data is not None else None,
        body=body,
    )


def document(data):
    """Serialize ``data`` as a JSON:API request body."""
    return json.dumps({"data": data})


def echo(envelope):
    """Responder returning the envelope untouched."""
    return envelope
