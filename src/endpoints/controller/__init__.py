"""Controller facade generating CRUD request handlers for one adapter."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from endpoints.controller import factory
from endpoints.controller.configure import OperationConfig, configure
from endpoints.controller.process import Handler, process
from endpoints.controller.validate import validate
from endpoints.errors import ConfigurationError


class Controller:
    """Binds an adapter and default options to four handler factories.

    Defaults come from the class (see ``extend``) and from the constructor;
    options passed to ``create``/``read``/``update``/``destroy`` win over
    both.

    Args:
        adapter: Store adapter for the resource type.
        **options: Default operation options (``store``, ``formatter``,
            ``responder``, ``validators``, ``base_url`` ...).

    Raises:
        ConfigurationError: If no adapter is given.
    """

    defaults: Mapping[str, Any] = MappingProxyType({})

    def __init__(self, adapter: Any = None, **options: Any) -> None:
        if adapter is None:
            raise ConfigurationError("No adapter specified.")
        self.adapter = adapter
        self.options: Mapping[str, Any] = MappingProxyType({**self.defaults, **options})

    @classmethod
    def extend(cls, **defaults: Any) -> type[Controller]:
        """Return a subclass whose instances start from ``defaults``."""
        merged = MappingProxyType({**cls.defaults, **defaults})
        return type(cls.__name__, (cls,), {"defaults": merged})

    def _options(self, options: Mapping[str, Any]) -> dict[str, Any]:
        return {**self.options, **options}

    def create(self, **options: Any) -> Handler:
        """Return a handler for create requests."""
        return factory.create(self.adapter, **self._options(options))

    def read(self, **options: Any) -> Handler:
        """Return a handler for read requests."""
        return factory.read(self.adapter, **self._options(options))

    def update(self, **options: Any) -> Handler:
        """Return a handler for update requests."""
        return factory.update(self.adapter, **self._options(options))

    def destroy(self, **options: Any) -> Handler:
        """Return a handler for destroy requests."""
        return factory.destroy(self.adapter, **self._options(options))


__all__ = [
    "Controller",
    "Handler",
    "OperationConfig",
    "configure",
    "process",
    "validate",
]
