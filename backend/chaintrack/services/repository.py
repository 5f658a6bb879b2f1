# Overview: Row-oriented repository over one SQLAlchemy model.

"""
EntityRepository: list / get / insert / update / delete for a single model.

Services use this for the plain CRUD paths. Anything with business rules
(lineage appends, uniqueness checks, delete guards) stays in the owning
service and uses the session directly.

Every write commits. SQLAlchemy failures are rolled back and surfaced as
StoreError so callers see one failure type for persistence problems.
"""
from __future__ import annotations

from typing import Any, Generic, Iterable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from .concurrency import StoreError, commit_or_raise

ModelT = TypeVar("ModelT")


class EntityRepository(Generic[ModelT]):
    def __init__(self, model: type[ModelT], *, default_order: Iterable[Any] | None = None):
        self.model = model
        self.default_order = list(default_order) if default_order is not None else [model.id.asc()]

    def query(self):
        return db.session.query(self.model)

    def list(
        self,
        filters: dict | None = None,
        order_by: Iterable[Any] | None = None,
        limit: int | None = None,
    ) -> list[ModelT]:
        """
        Equality filters on column attributes, explicit ordering, optional limit.

        Unknown filter keys raise ValueError rather than being ignored.
        """
        query = self.query()
        for key, value in (filters or {}).items():
            column = getattr(self.model, key, None)
            if column is None:
                raise ValueError(f"Unknown filter field: {key}")
            query = query.filter(column == value)

        query = query.order_by(*(list(order_by) if order_by is not None else self.default_order))
        if limit is not None:
            query = query.limit(limit)

        try:
            return query.all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(str(exc)) from exc

    def get(self, entity_id: int) -> ModelT | None:
        try:
            return db.session.get(self.model, entity_id)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(str(exc)) from exc

    def insert(self, values: dict) -> ModelT:
        row = self.model(**values)
        db.session.add(row)
        commit_or_raise()
        return row

    def update(self, entity_id: int, patch: dict) -> ModelT | None:
        row = self.get(entity_id)
        if row is None:
            return None
        for key, value in patch.items():
            setattr(row, key, value)
        commit_or_raise()
        return row

    def delete(self, entity_id: int) -> bool:
        row = self.get(entity_id)
        if row is None:
            return False
        db.session.delete(row)
        commit_or_raise()
        return True
