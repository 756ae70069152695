"""Setup-time compatibility checks between a configuration and an adapter.

Every check takes ``(method, adapter, config)`` and returns a list of
messages, empty when the check passes.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any

from endpoints.controller.configure import OperationConfig

SetupValidator = Callable[[str, Any, OperationConfig], list[str]]

# Adapter coroutines each method calls; create and update read back.
REQUIRED_OPERATIONS: dict[str, tuple[str, ...]] = {
    "create": ("create", "read"),
    "read": ("read",),
    "update": ("update", "read"),
    "destroy": ("destroy",),
}


def _name(adapter: Any) -> str:
    return getattr(adapter, "resource_type", None) or type(adapter).__name__


def adapter_implements_method(method: str, adapter: Any, config: OperationConfig) -> list[str]:
    failures = []
    for operation in REQUIRED_OPERATIONS.get(method, ()):
        if not inspect.iscoroutinefunction(getattr(adapter, operation, None)):
            failures.append(
                f"Adapter '{_name(adapter)}' does not implement '{operation}', required by {method}."
            )
    return failures


def required_components(method: str, adapter: Any, config: OperationConfig) -> list[str]:
    failures = []
    for field in ("store", "formatter", "responder"):
        value = getattr(config, field)
        if value is None:
            failures.append(f"No {field} specified for {method}.")
        elif field != "store" and not callable(value):
            failures.append(f"The {field} for {method} is not callable.")
    return failures


def validators_are_callable(method: str, adapter: Any, config: OperationConfig) -> list[str]:
    return [
        f"Validator #{index} for {method} is not callable: {validator!r}."
        for index, validator in enumerate(config.validators)
        if not callable(validator)
    ]


def adapter_uses_store(method: str, adapter: Any, config: OperationConfig) -> list[str]:
    if config.store is None or getattr(adapter, "store", None) is config.store:
        return []
    return [f"Adapter '{_name(adapter)}' is not bound to the configured store."]


def related_mode_is_read(method: str, adapter: Any, config: OperationConfig) -> list[str]:
    if config.mode == "related" and method != "read":
        return [f"Mode 'related' is only supported by read, not {method}."]
    return []


def relations_are_declared(method: str, adapter: Any, config: OperationConfig) -> list[str]:
    declared = getattr(adapter, "relations", None) or {}
    return [
        f"Adapter '{_name(adapter)}' has no relation '{name}'."
        for name in sorted(config.relations)
        if name not in declared
    ]


SETUP_VALIDATORS: tuple[SetupValidator, ...] = (
    adapter_implements_method,
    required_components,
    validators_are_callable,
    adapter_uses_store,
    related_mode_is_read,
    relations_are_declared,
)


def validate(method: str, adapter: Any, config: OperationConfig) -> list[str]:
    """Return every incompatibility between ``config`` and ``adapter``."""
    failures: list[str] = []
    for check in SETUP_VALIDATORS:
        failures.extend(check(method, adapter, config))
    return failures
