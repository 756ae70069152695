"""Operation configuration.

``configure`` merges the options a route was declared with onto the
defaults of its CRUD method and freezes the result. The resulting
``OperationConfig`` is captured by exactly one generated handler.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from endpoints.errors import ConfigurationError

Method = Literal["create", "read", "update", "destroy"]

METHOD_DEFAULTS: dict[str, dict[str, Any]] = {
    "create": {"single_result": True},
    # None: inferred per request (by id -> single, otherwise collection)
    "read": {"single_result": None},
    "update": {"single_result": True},
    "destroy": {"single_result": True},
}


class OperationConfig(BaseModel):
    """Immutable configuration of one generated request handler."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    method: Method
    base_url: str = ""
    adapter: Any = None
    formatter: Any = None
    store: Any = None
    responder: Any = None
    validators: tuple[Any, ...] = ()
    relations: frozenset[str] = frozenset()
    base_type: str | None = None
    base_id: str | None = None
    base_relation: str | None = None
    mode: Literal["related"] | None = None
    single_result: bool | None = None


def configure(method: str, options: Mapping[str, Any] | None = None) -> OperationConfig:
    """Build the configuration of a ``method`` handler.

    Caller options win over method defaults. ``options`` is never mutated;
    sequences are copied into tuples and frozensets.

    Raises:
        ConfigurationError: Unknown method, unknown option, or an option of
            the wrong type.
    """
    if method not in METHOD_DEFAULTS:
        raise ConfigurationError(f"Unknown method '{method}'.")

    merged = {**METHOD_DEFAULTS[method], **(options or {}), "method": method}
    if "validators" in merged:
        merged["validators"] = tuple(merged["validators"] or ())
    if "relations" in merged:
        merged["relations"] = frozenset(merged["relations"] or ())

    try:
        return OperationConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid options for '{method}': {exc}") from exc
