"""In-memory store backend.

Keeps every resource type in a plain dict keyed by id. It implements the
full adapter contract, including concurrent relation fan-out, and is the
backend used by the pipeline's unit tests.
"""

from __future__ import annotations

import logging
from typing import Any

from endpoints.errors import BadRequestError, ConflictError, NotFoundError
from endpoints.store.base import (
    ReadQuery,
    Record,
    RelationAttachment,
    RelationInfo,
    ResourceData,
    Store,
    StoreAdapter,
    expected_state,
    is_unchanged,
)
from endpoints.store.fanout import gather_bounded

logger = logging.getLogger(__name__)


class MemoryStore(Store):
    """Dict-backed store shared by a set of ``MemoryAdapter`` instances."""

    def __init__(self, fanout_limit: int = 8) -> None:
        super().__init__(fanout_limit=fanout_limit)
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._sequences: dict[str, int] = {}

    def next_id(self, resource_type: str) -> str:
        """Return the next free integer id (as a string) for a type."""
        table = self.tables.setdefault(resource_type, {})
        value = self._sequences.get(resource_type, 0)
        while True:
            value += 1
            if str(value) not in table:
                break
        self._sequences[resource_type] = value
        return str(value)


class MemoryAdapter(StoreAdapter):
    """Adapter for one resource type held in a ``MemoryStore``.

    Args:
        store: The store holding the data.
        resource_type: JSON:API type name, also the table name.
        fields: Attribute names accepted for this type.
        relations: Relationships declared for this type.
        allow_client_generated_ids: Accept an ``id`` supplied by the client.
    """

    def __init__(
        self,
        store: MemoryStore,
        resource_type: str,
        fields: list[str],
        relations: list[RelationInfo] | None = None,
        allow_client_generated_ids: bool = False,
    ) -> None:
        self.store = store
        self.resource_type = resource_type
        self.allow_client_generated_ids = allow_client_generated_ids
        self._fields = set(fields)
        self._relations: dict[str, RelationInfo] = {}
        for info in relations or []:
            if not info.to_many and info.attribute is None:
                info = info.model_copy(update={"attribute": info.name})
            self._relations[info.name] = info
        store.tables.setdefault(resource_type, {})
        store.register(self)

    @property
    def relations(self) -> dict[str, RelationInfo]:
        return self._relations

    @property
    def fields(self) -> set[str]:
        return self._fields

    @property
    def table(self) -> dict[str, dict[str, Any]]:
        return self.store.tables[self.resource_type]

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def create(
        self, attributes: dict[str, Any], to_many: list[RelationAttachment]
    ) -> Record:
        values = dict(attributes)
        client_id = values.pop("id", None)
        if client_id is not None:
            id = str(client_id)
            if id in self.table:
                raise ConflictError(
                    f"A {self.resource_type} resource with id '{id}' already exists",
                    source={"pointer": "/data/id"},
                )
        else:
            id = self.store.next_id(self.resource_type)

        row: dict[str, Any] = {"attributes": {}, "relationships": {}}
        for name, info in self._relations.items():
            row["relationships"][name] = [] if info.to_many else None
        self._apply(row, values)
        self.table[id] = row

        await gather_bounded(
            (self._attach(row, rel) for rel in to_many), self.store.fanout_limit
        )
        return self._record(id, row)

    async def read(self, query: ReadQuery) -> ResourceData:
        if query.mode == "related":
            return await self._read_related(query)

        if query.id is not None:
            row = self.table.get(query.id)
            data: Record | list[Record] | None = (
                self._record(query.id, row) if row is not None else None
            )
            records = [data] if data is not None else []
        else:
            records = self._select(query)
            data = records

        return ResourceData(
            data=data,
            included=self._included(records, query.include),
            single_result=query.id is not None,
            relations=query.include,
        )

    async def update(
        self,
        id: str,
        attributes: dict[str, Any],
        to_many: list[RelationAttachment],
        previous: Record,
    ) -> Record | None:
        row = self.table.get(id)
        if row is None:
            raise NotFoundError(f"No {self.resource_type} resource with id '{id}'")

        self._apply(row, attributes)
        await gather_bounded(
            (self._replace(row, rel) for rel in to_many), self.store.fanout_limit
        )

        current = self._record(id, row)
        expected = expected_state(previous, attributes, to_many, self._relations)
        if is_unchanged(expected, current):
            logger.debug("Update of %s/%s matched the request", self.resource_type, id)
            return None
        return current

    async def destroy(self, id: str) -> None:
        if self.table.pop(id, None) is None:
            raise NotFoundError(f"No {self.resource_type} resource with id '{id}'")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply(self, row: dict[str, Any], values: dict[str, Any]) -> None:
        to_one = {
            info.attribute: name
            for name, info in self._relations.items()
            if not info.to_many
        }
        for key, value in values.items():
            if key in to_one:
                name = to_one[key]
                if value is not None:
                    self._check_targets(name, [str(value)])
                row["relationships"][name] = None if value is None else str(value)
            else:
                row["attributes"][key] = value

    def _check_targets(self, name: str, ids: list[str]) -> None:
        info = self._relation(name)
        table = self.store.tables.get(info.type, {})
        missing = [id for id in ids if id not in table]
        if missing:
            raise NotFoundError(
                f"Related {info.type} not found: {', '.join(missing)}",
                source={"pointer": f"/data/relationships/{name}"},
            )

    def _relation(self, name: str) -> RelationInfo:
        try:
            return self._relations[name]
        except KeyError:
            raise BadRequestError(
                f"Unknown relationship '{name}' for {self.resource_type}"
            ) from None

    async def _attach(self, row: dict[str, Any], rel: RelationAttachment) -> None:
        self._check_targets(rel.name, rel.ids)
        linked = row["relationships"][rel.name]
        for id in rel.ids:
            if id not in linked:
                linked.append(id)

    async def _replace(self, row: dict[str, Any], rel: RelationAttachment) -> None:
        row["relationships"][rel.name] = []
        await self._attach(row, rel)

    def _record(self, id: str, row: dict[str, Any]) -> Record:
        return Record(
            type=self.resource_type,
            id=id,
            attributes=dict(row["attributes"]),
            relationships={
                name: list(value) if isinstance(value, list) else value
                for name, value in row["relationships"].items()
            },
            relation_types={name: info.type for name, info in self._relations.items()},
        )

    def _select(self, query: ReadQuery) -> list[Record]:
        records = [self._record(id, row) for id, row in self.table.items()]
        for field, values in query.filters.items():
            if field == "id":
                records = [r for r in records if r.id in values]
            else:
                records = [
                    r for r in records if str(r.attributes.get(field)) in values
                ]
        for key in reversed(query.sort):
            records.sort(key=_sort_key(key.lstrip("-")), reverse=key.startswith("-"))
        return records

    def _included(self, records: list[Record], include: list[str]) -> list[Record]:
        included: dict[tuple[str, str], Record] = {}
        for name in include:
            info = self._relation(name)
            target = self.store.adapter_for(info.type)
            for record in records:
                linkage = record.relationships.get(name)
                ids = linkage if isinstance(linkage, list) else [linkage] if linkage else []
                for id in ids:
                    row = target.table.get(id)
                    if row is not None:
                        included.setdefault((info.type, id), target._record(id, row))
        return list(included.values())

    async def _read_related(self, query: ReadQuery) -> ResourceData:
        base_row = self.table.get(query.base_id or "")
        if base_row is None:
            raise NotFoundError(
                f"No {self.resource_type} resource with id '{query.base_id}'"
            )
        info = self._relation(query.base_relation or "")
        target: MemoryAdapter = self.store.adapter_for(info.type)
        linkage = base_row["relationships"].get(info.name)

        if info.to_many:
            data: Record | list[Record] | None = [
                target._record(id, target.table[id])
                for id in linkage or []
                if id in target.table
            ]
            records = data
        else:
            row = target.table.get(linkage) if linkage else None
            data = target._record(linkage, row) if row is not None else None
            records = [data] if data is not None else []

        return ResourceData(
            data=data,
            included=target._included(records, query.include),
            single_result=not info.to_many,
            relations=query.include,
            mode="related",
            base_type=self.resource_type,
            base_id=query.base_id,
            base_relation=info.name,
        )


def _sort_key(field: str):
    """Order by ``field``; missing values sort after present ones when ascending."""

    def key(record: Record) -> tuple[bool, Any]:
        value = record.id if field == "id" else record.attributes.get(field)
        return value is None, value

    return key
