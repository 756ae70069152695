"""Handler factories, one per CRUD method.

Each factory runs configure, then validate, then process for its method.
Validation failures abort with ``ConfigurationError`` at build time so an
invalid route never serves a request.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from endpoints.controller.configure import configure
from endpoints.controller.process import Handler, process
from endpoints.controller.validate import validate
from endpoints.errors import ConfigurationError

logger = logging.getLogger(__name__)


def build_handler(method: str, adapter: Any, options: Mapping[str, Any]) -> Handler:
    """Build the request handler for ``method`` on ``adapter``.

    Raises:
        ConfigurationError: If the options are invalid or the adapter is
            incompatible; the message lists every failure, one per line.
    """
    config = configure(method, {**options, "adapter": adapter})
    failures = validate(method, adapter, config)
    if failures:
        raise ConfigurationError("\n".join(failures))
    logger.debug("Built %s handler for %s", method, getattr(adapter, "resource_type", adapter))
    return process(config, adapter)


def create(adapter: Any, **options: Any) -> Handler:
    return build_handler("create", adapter, options)


def read(adapter: Any, **options: Any) -> Handler:
    return build_handler("read", adapter, options)


def update(adapter: Any, **options: Any) -> Handler:
    return build_handler("update", adapter, options)


def destroy(adapter: Any, **options: Any) -> Handler:
    return build_handler("destroy", adapter, options)
