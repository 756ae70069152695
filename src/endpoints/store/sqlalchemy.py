"""Async SQLAlchemy store backend.

``SQLAlchemyStore`` opens sessions on an async engine; ``SQLAlchemyAdapter``
exposes one declarative model as a resource type. Relationships are read
from the model's mapper: many-to-one relationships travel as foreign key
attributes, one-to-many and many-to-many relationships are attached and
detached through the relation fan-out.

Each relation operation opens its own session so the fan-out really runs
concurrently. The base write and the relation writes are separate
commits; a failure midway leaves the earlier commits in place.
"""

from __future__ import annotations

import logging
from functools import cached_property
from typing import Any

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python
from sqlalchemy import Column, delete, func, insert, inspect, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import RelationshipProperty, selectinload
from sqlalchemy.orm.interfaces import MANYTOONE

from endpoints.database import close_db, get_session_factory
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


class SQLAlchemyStore(Store):
    """Store backed by an async SQLAlchemy engine.

    Args:
        engine: Engine the store opens its sessions on; disposed by ``close``.
        fanout_limit: Maximum concurrent relation operations per request.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        fanout_limit: int = 8,
    ) -> None:
        super().__init__(fanout_limit=fanout_limit)
        self.engine = engine
        self.session_factory = get_session_factory(engine)

    def type_for(self, model: type) -> str:
        """Return the resource type registered for a model class."""
        for adapter in self._adapters.values():
            if isinstance(adapter, SQLAlchemyAdapter) and adapter.model is model:
                return adapter.resource_type
        return model.__tablename__

    async def close(self) -> None:
        await close_db(self.engine)


class SQLAlchemyAdapter(StoreAdapter):
    """Adapter exposing one declarative model as a JSON:API resource type.

    Args:
        store: The store providing sessions.
        model: Declarative model class with a single-column primary key.
        resource_type: JSON:API type name; defaults to ``__tablename__``.
        relations: Names of the relationships to expose; defaults to all.
        allow_client_generated_ids: Accept an ``id`` supplied by the client.
    """

    def __init__(
        self,
        store: SQLAlchemyStore,
        model: type,
        resource_type: str | None = None,
        relations: list[str] | None = None,
        allow_client_generated_ids: bool = False,
    ) -> None:
        self.store = store
        self.model = model
        self.resource_type = resource_type or model.__tablename__
        self.allow_client_generated_ids = allow_client_generated_ids
        self._mapper = inspect(model)
        self._pk: Column = self._mapper.primary_key[0]
        self._pk_key = self._mapper.get_property_by_column(self._pk).key
        self._exposed = relations
        self._coercers: dict[str, TypeAdapter] = {}
        store.register(self)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @cached_property
    def _relationships(self) -> dict[str, RelationshipProperty]:
        return {
            rel.key: rel
            for rel in self._mapper.relationships
            if self._exposed is None or rel.key in self._exposed
        }

    @cached_property
    def _foreign_keys(self) -> dict[str, str]:
        """Map each many-to-one relationship to its local foreign key attribute."""
        keys = {}
        for name, rel in self._relationships.items():
            if rel.direction is MANYTOONE:
                column = next(iter(rel.local_columns))
                keys[name] = self._mapper.get_property_by_column(column).key
        return keys

    @property
    def relations(self) -> dict[str, RelationInfo]:
        return {
            name: RelationInfo(
                name=name,
                type=self.store.type_for(rel.mapper.class_),
                to_many=rel.direction is not MANYTOONE,
                attribute=self._foreign_keys.get(name),
            )
            for name, rel in self._relationships.items()
        }

    @cached_property
    def fields(self) -> set[str]:
        hidden = {self._pk_key, *self._foreign_keys.values()}
        return {
            attr.key for attr in self._mapper.column_attrs if attr.key not in hidden
        }

    def _coerce(self, key: str, value: Any) -> Any:
        if value is None:
            return None
        if key not in self._coercers:
            column = self._mapper.columns[key]
            try:
                python_type = column.type.python_type
            except NotImplementedError:
                python_type = Any
            self._coercers[key] = TypeAdapter(python_type)
        try:
            return self._coercers[key].validate_python(value)
        except ValidationError as exc:
            raise BadRequestError(
                f"Invalid value for '{key}': {exc.errors()[0]['msg']}",
                source={"pointer": f"/data/attributes/{key}"},
            ) from exc

    def _coerce_id(self, id: Any) -> Any:
        return self._coerce(self._pk_key, id)

    def _lookup_id(self, id: Any) -> Any:
        """Coerce an id from a URL, returning None when it cannot name a row."""
        try:
            return self._coerce_id(id)
        except BadRequestError:
            return None

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    async def create(
        self, attributes: dict[str, Any], to_many: list[RelationAttachment]
    ) -> Record:
        values = dict(attributes)
        client_id = self._coerce_id(values.pop("id", None))
        values = {key: self._coerce(key, value) for key, value in values.items()}

        async with self.store.session_factory() as session:
            if client_id is not None:
                if await session.get(self.model, client_id) is not None:
                    raise ConflictError(
                        f"A {self.resource_type} resource with id '{client_id}' already exists",
                        source={"pointer": "/data/id"},
                    )
                values[self._pk_key] = client_id
            obj = self.model(**values)
            session.add(obj)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(
                    f"Could not create {self.resource_type}: {exc.orig}"
                ) from exc
            pk = getattr(obj, self._pk_key)

        await gather_bounded(
            (self._attach(pk, rel, replace=False) for rel in to_many),
            self.store.fanout_limit,
        )

        async with self.store.session_factory() as session:
            record = await self._fetch_one(session, pk)
        logger.info("Created %s/%s", self.resource_type, record.id)
        return record

    async def read(self, query: ReadQuery) -> ResourceData:
        async with self.store.session_factory() as session:
            if query.mode == "related":
                return await self._read_related(session, query)

            if query.id is not None:
                record = await self._fetch_one(session, self._lookup_id(query.id))
                data: Record | list[Record] | None = record
                records = [record] if record is not None else []
            else:
                records = await self._fetch_many(session, query)
                data = records

            return ResourceData(
                data=data,
                included=await self._included(session, records, query.include),
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
        pk = self._lookup_id(id)
        async with self.store.session_factory() as session:
            obj = await session.get(self.model, pk) if pk is not None else None
            if obj is None:
                raise NotFoundError(f"No {self.resource_type} resource with id '{id}'")
            values = {key: self._coerce(key, value) for key, value in attributes.items()}
            for key, value in values.items():
                setattr(obj, key, value)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError(
                    f"Could not update {self.resource_type}: {exc.orig}"
                ) from exc

        await gather_bounded(
            (self._attach(pk, rel, replace=True) for rel in to_many),
            self.store.fanout_limit,
        )

        async with self.store.session_factory() as session:
            current = await self._fetch_one(session, pk)
        if current is None:
            return None
        expected = expected_state(
            previous,
            {key: to_jsonable_python(value) for key, value in values.items()},
            to_many,
            self.relations,
        )
        if is_unchanged(expected, current):
            logger.debug("Update of %s/%s matched the request", self.resource_type, id)
            return None
        logger.info("Updated %s/%s", self.resource_type, id)
        return current

    async def destroy(self, id: str) -> None:
        async with self.store.session_factory() as session:
            pk = self._lookup_id(id)
            obj = await session.get(self.model, pk) if pk is not None else None
            if obj is None:
                raise NotFoundError(f"No {self.resource_type} resource with id '{id}'")
            await session.delete(obj)
            await session.commit()
        logger.info("Deleted %s/%s", self.resource_type, id)

    # ------------------------------------------------------------------
    # Relation writes
    # ------------------------------------------------------------------

    async def _attach(self, pk: Any, rel: RelationAttachment, replace: bool) -> None:
        """Attach ``rel.ids`` to the record, first detaching all when replacing."""
        prop = self._relationship(rel.name)
        target: SQLAlchemyAdapter = self.store.adapter_for(self.store.type_for(prop.mapper.class_))
        ids = [target._coerce_id(id) for id in dict.fromkeys(rel.ids)]

        async with self.store.session_factory() as session:
            found = await session.scalar(
                select(func.count()).select_from(target.model).where(target._pk.in_(ids))
            )
            if found != len(ids):
                raise NotFoundError(
                    f"Related {target.resource_type} not found for '{rel.name}'",
                    source={"pointer": f"/data/relationships/{rel.name}"},
                )

            if prop.secondary is not None:
                parent_fk = prop.synchronize_pairs[0][1]
                target_fk = prop.secondary_synchronize_pairs[0][1]
                if replace:
                    await session.execute(
                        delete(prop.secondary).where(parent_fk == pk)
                    )
                if ids:
                    await session.execute(
                        insert(prop.secondary),
                        [{parent_fk.key: pk, target_fk.key: id} for id in ids],
                    )
            else:
                child_fk = prop.synchronize_pairs[0][1]
                if replace:
                    await session.execute(
                        update(prop.target).where(child_fk == pk).values({child_fk.key: None})
                    )
                if ids:
                    await session.execute(
                        update(prop.target)
                        .where(target._pk.in_(ids))
                        .values({child_fk.key: pk})
                    )
            await session.commit()

    def _relationship(self, name: str) -> RelationshipProperty:
        try:
            return self._relationships[name]
        except KeyError:
            raise BadRequestError(
                f"Unknown relationship '{name}' for {self.resource_type}"
            ) from None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _select(self):
        stmt = select(self.model)
        for name, rel in self._relationships.items():
            if rel.direction is not MANYTOONE:
                stmt = stmt.options(selectinload(getattr(self.model, name)))
        return stmt

    def _to_record(self, obj: Any) -> Record:
        relationships: dict[str, str | list[str] | None] = {}
        relation_types: dict[str, str] = {}
        for name, rel in self._relationships.items():
            relation_types[name] = self.store.type_for(rel.mapper.class_)
            if rel.direction is MANYTOONE:
                value = getattr(obj, self._foreign_keys[name])
                relationships[name] = None if value is None else str(value)
            else:
                target_pk = rel.mapper.get_property_by_column(rel.mapper.primary_key[0]).key
                relationships[name] = [str(getattr(t, target_pk)) for t in getattr(obj, name)]
        return Record(
            type=self.resource_type,
            id=str(getattr(obj, self._pk_key)),
            attributes={
                key: to_jsonable_python(getattr(obj, key)) for key in sorted(self.fields)
            },
            relationships=relationships,
            relation_types=relation_types,
        )

    async def _fetch_one(self, session: AsyncSession, pk: Any) -> Record | None:
        if pk is None:
            return None
        result = await session.execute(self._select().where(self._pk == pk))
        obj = result.scalar_one_or_none()
        return self._to_record(obj) if obj is not None else None

    async def _fetch_ids(self, session: AsyncSession, ids: list[str]) -> list[Record]:
        if not ids:
            return []
        pks = [self._coerce_id(id) for id in ids]
        result = await session.execute(self._select().where(self._pk.in_(pks)))
        by_id = {record.id: record for record in map(self._to_record, result.scalars())}
        return [by_id[id] for id in ids if id in by_id]

    async def _fetch_many(self, session: AsyncSession, query: ReadQuery) -> list[Record]:
        stmt = self._select()
        for field, values in query.filters.items():
            if field == "id":
                stmt = stmt.where(self._pk.in_([self._coerce_id(v) for v in values]))
            else:
                column = self._mapper.columns[field]
                stmt = stmt.where(column.in_([self._coerce(field, v) for v in values]))
        for key in query.sort:
            field = key.lstrip("-")
            column = self._pk if field == "id" else self._mapper.columns[field]
            stmt = stmt.order_by(column.desc() if key.startswith("-") else column.asc())
        if not query.sort:
            stmt = stmt.order_by(self._pk.asc())
        result = await session.execute(stmt)
        return [self._to_record(obj) for obj in result.scalars()]

    async def _included(
        self, session: AsyncSession, records: list[Record], include: list[str]
    ) -> list[Record]:
        included: dict[tuple[str, str], Record] = {}
        for name in include:
            info = self.relations[name]
            target: SQLAlchemyAdapter = self.store.adapter_for(info.type)
            ids: list[str] = []
            for record in records:
                linkage = record.relationships.get(name)
                if isinstance(linkage, list):
                    ids.extend(linkage)
                elif linkage is not None:
                    ids.append(linkage)
            for related in await target._fetch_ids(session, list(dict.fromkeys(ids))):
                included.setdefault((related.type, related.id), related)
        return list(included.values())

    async def _read_related(self, session: AsyncSession, query: ReadQuery) -> ResourceData:
        base = await self._fetch_one(session, self._lookup_id(query.base_id))
        if base is None:
            raise NotFoundError(
                f"No {self.resource_type} resource with id '{query.base_id}'"
            )
        info = self.relations[query.base_relation]
        target: SQLAlchemyAdapter = self.store.adapter_for(info.type)
        linkage = base.relationships.get(info.name)

        if info.to_many:
            records = await target._fetch_ids(session, linkage or [])
            data: Record | list[Record] | None = records
        else:
            found = await target._fetch_ids(session, [linkage] if linkage else [])
            data = found[0] if found else None
            records = found

        return ResourceData(
            data=data,
            included=await target._included(session, records, query.include),
            single_result=not info.to_many,
            relations=query.include,
            mode="related",
            base_type=self.resource_type,
            base_id=query.base_id,
            base_relation=info.name,
        )
