"""Resource modules and their silent loading.

A resource lives in a package named after its type. The package provides
a ``controller`` module exposing ``controller`` (a ``Controller``) and may
provide a ``routes`` module exposing ``routes(controller) -> list[Route]``.
Optional modules are loaded with ``import_optional``, which reports a
missing module as a value instead of raising.
"""

from __future__ import annotations

import importlib
import logging
from types import ModuleType
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict

from endpoints.errors import ConfigurationError
from endpoints.routes import Route, default_routes

if TYPE_CHECKING:
    from endpoints.controller import Controller

logger = logging.getLogger(__name__)


class ModuleLoaded(BaseModel):
    """Successful import."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: Literal["loaded"] = "loaded"
    module: ModuleType


class ModuleMissing(BaseModel):
    """The module (or a package on its path) does not exist."""

    status: Literal["missing"] = "missing"
    name: str
    reason: str


LoadResult = ModuleLoaded | ModuleMissing


def import_optional(name: str) -> LoadResult:
    """Import ``name``, returning ``ModuleMissing`` if it cannot be found.

    Only the absence of ``name`` itself is reported as a value; an import
    error raised from inside an existing module propagates.
    """
    try:
        return ModuleLoaded(module=importlib.import_module(name))
    except ModuleNotFoundError as exc:
        if exc.name is None or not (name == exc.name or name.startswith(f"{exc.name}.")):
            raise
        return ModuleMissing(name=name, reason=str(exc))


class Resource:
    """A resource type loaded from ``<package>.<name>``.

    Args:
        name: Resource type name, also the URL segment.
        package: Dotted name of the package holding resource packages.

    Raises:
        ConfigurationError: If the resource has no controller module.
    """

    def __init__(self, name: str, package: str) -> None:
        self.name = name
        self.module_path = f"{package}.{name}"

        loaded = import_optional(f"{self.module_path}.controller")
        if isinstance(loaded, ModuleMissing):
            raise ConfigurationError(
                f"Resource '{name}' has no controller module: {loaded.reason}"
            )
        self.controller: Controller = loaded.module.controller

    def routes(self) -> list[Route]:
        """Return the resource's declared routes, or the default CRUD routes."""
        loaded = import_optional(f"{self.module_path}.routes")
        if isinstance(loaded, ModuleMissing):
            logger.debug("Resource '%s' declares no routes; using defaults", self.name)
            return default_routes(self.controller)
        return loaded.module.routes(self.controller)
