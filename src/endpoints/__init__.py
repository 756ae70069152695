"""Declarative JSON:API request handlers over pluggable store adapters."""

from endpoints.application import Application
from endpoints.controller import Controller
from endpoints.errors import ConfigurationError, EndpointsError
from endpoints.formatter import ResponseEnvelope, format_jsonapi
from endpoints.request import ResourceRequest
from endpoints.responder import fastapi_responder
from endpoints.validators import validate_attributes

__all__ = [
    "Application",
    "ConfigurationError",
    "Controller",
    "EndpointsError",
    "ResourceRequest",
    "ResponseEnvelope",
    "fastapi_responder",
    "format_jsonapi",
    "validate_attributes",
]
