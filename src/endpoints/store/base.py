"""Store adapter contract shared by every persistence backend.

A ``Store`` owns the backend resources (connections, tables) and keeps a
registry of the adapters bound to it. A ``StoreAdapter`` exposes CRUD
coroutines for exactly one resource type; the processor only ever talks
to adapters.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal

from pydantic import BaseModel


class RelationInfo(BaseModel):
    """A relationship an adapter declares for its resource type.

    ``attribute`` is the key under which a to-one linkage travels inside
    the ``attributes`` mapping passed to ``create``/``update``.
    """

    name: str
    type: str
    to_many: bool
    attribute: str | None = None


class RelationAttachment(BaseModel):
    """A to-many relation to (re)attach as part of create or update."""

    name: str
    ids: list[str]


class Record(BaseModel):
    """One resource as returned by a store adapter.

    ``relationships`` holds linkage ids only: a string or None for to-one,
    a list for to-many. ``relation_types`` names the resource type behind
    each relationship.
    """

    type: str
    id: str
    attributes: dict[str, Any] = {}
    relationships: dict[str, str | list[str] | None] = {}
    relation_types: dict[str, str] = {}


class ReadQuery(BaseModel):
    """Parameters of a read operation."""

    id: str | None = None
    include: list[str] = []
    filters: dict[str, list[str]] = {}
    sort: list[str] = []
    mode: Literal["related"] | None = None
    base_id: str | None = None
    base_relation: str | None = None


class ResourceData(BaseModel):
    """Result of a read, carrying shaping hints for the formatter."""

    data: Record | list[Record] | None = None
    included: list[Record] = []
    single_result: bool = False
    relations: list[str] = []
    mode: Literal["related"] | None = None
    base_type: str | None = None
    base_id: str | None = None
    base_relation: str | None = None


class Store(ABC):
    """Base class for persistence backends.

    Args:
        fanout_limit: Maximum number of relation operations run
            concurrently inside a single create or update.
    """

    def __init__(self, fanout_limit: int = 8) -> None:
        self.fanout_limit = fanout_limit
        self._adapters: dict[str, StoreAdapter] = {}

    def register(self, adapter: StoreAdapter) -> None:
        """Register an adapter so related resources can be resolved by type."""
        self._adapters[adapter.resource_type] = adapter

    def adapter_for(self, resource_type: str) -> StoreAdapter:
        """Return the adapter registered for ``resource_type``.

        Raises:
            KeyError: If no adapter handles that type.
        """
        return self._adapters[resource_type]

    async def close(self) -> None:
        """Release backend resources. Default implementation does nothing."""
        return None


class StoreAdapter(ABC):
    """Per-resource CRUD interface consumed by the processor."""

    resource_type: str
    store: Store
    allow_client_generated_ids: bool = False

    @property
    @abstractmethod
    def relations(self) -> dict[str, RelationInfo]:
        """Relationships declared by this resource type, keyed by name."""
        ...

    @property
    @abstractmethod
    def fields(self) -> set[str]:
        """Attribute names that can be filtered and sorted on."""
        ...

    @abstractmethod
    async def create(
        self, attributes: dict[str, Any], to_many: list[RelationAttachment]
    ) -> Record:
        """Persist a new record, attach its to-many relations, and reload it."""
        ...

    @abstractmethod
    async def read(self, query: ReadQuery) -> ResourceData:
        """Read one record, a collection, or a related resource."""
        ...

    @abstractmethod
    async def update(
        self,
        id: str,
        attributes: dict[str, Any],
        to_many: list[RelationAttachment],
        previous: Record,
    ) -> Record | None:
        """Apply a partial update and replace the named to-many relations.

        Returns:
            The reloaded record, or None when it holds exactly ``previous``
            with the requested changes applied.
        """
        ...

    @abstractmethod
    async def destroy(self, id: str) -> None:
        """Delete a record.

        Raises:
            NotFoundError: If the record does not exist.
        """
        ...


def _state(record: Record) -> tuple[dict[str, Any], dict[str, Any]]:
    relationships = {
        name: sorted(set(value)) if isinstance(value, list) else value
        for name, value in record.relationships.items()
    }
    return record.attributes, relationships


def expected_state(
    previous: Record,
    attributes: dict[str, Any],
    to_many: list[RelationAttachment],
    relations: dict[str, RelationInfo],
) -> Record:
    """Return ``previous`` with the changes of a partial update overlaid.

    To-one foreign key attributes are folded into ``relationships``; each
    to-many relation named in ``to_many`` has its linkage replaced.
    """
    to_one = {
        info.attribute: name
        for name, info in relations.items()
        if not info.to_many and info.attribute is not None
    }
    merged_attributes = dict(previous.attributes)
    merged_relationships = dict(previous.relationships)
    for key, value in attributes.items():
        if key in to_one:
            merged_relationships[to_one[key]] = None if value is None else str(value)
        else:
            merged_attributes[key] = value
    for rel in to_many:
        merged_relationships[rel.name] = list(rel.ids)
    return previous.model_copy(
        update={"attributes": merged_attributes, "relationships": merged_relationships}
    )


def is_unchanged(expected: Record, current: Record) -> bool:
    """Return True when ``current`` holds exactly the ``expected`` state.

    To-many linkage is compared as a set.
    """
    return _state(expected) == _state(current)
