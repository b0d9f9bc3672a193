"""SQLAlchemy queries shared by every lookup-style entity."""
from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from .config import EntityConfig, QueryOptions


class EntityRepository:
    """Data access for the table described by ``config``.

    Callers own the transaction boundary only for ``insert``/``save``/
    ``delete``, which commit on success; everything else is read-only.
    """

    def __init__(self, db, config: EntityConfig) -> None:
        self.db = db
        self.config = config

    @property
    def model(self) -> type:
        return self.config.model

    @property
    def session(self):
        return self.db.session

    def column(self, name: str):
        return getattr(self.model, name)

    def get(self, key: Any) -> Any:
        return self.session.get(self.model, key)

    def filters(self, options: QueryOptions) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        if options.search:
            clauses.append(
                or_(
                    *(
                        self.column(name).icontains(options.search, autoescape=True)
                        for name in self.config.searchable_fields
                    )
                )
            )
        if options.is_active is not None and hasattr(self.model, "is_active"):
            clauses.append(self.column("is_active").is_(options.is_active))
        return clauses

    def order_by(self, options: QueryOptions):
        sort_field = options.sort_by
        if sort_field not in self.config.sortable_fields:
            sort_field = self.config.default_sort
        column = self.column(sort_field)
        return column.desc() if options.sort_order == "desc" else column.asc()

    def count(self, clauses: list[ColumnElement[bool]] | None = None) -> int:
        statement = select(func.count()).select_from(self.model)
        if clauses:
            statement = statement.where(*clauses)
        return self.session.scalar(statement) or 0

    def list(self, options: QueryOptions, limit: int) -> tuple[list[Any], int]:
        """Return one page of rows plus the unpaginated total."""

        clauses = self.filters(options)
        statement = select(self.model)
        if clauses:
            statement = statement.where(*clauses)
        statement = (
            statement.order_by(self.order_by(options))
            .limit(limit)
            .offset((options.page - 1) * limit)
        )
        rows = list(self.session.scalars(statement))
        return rows, self.count(clauses)

    def find_by_name(self, name: str, exclude_key: Any = None) -> Any:
        """Case-insensitive, whitespace-insensitive lookup on the name field."""

        column = self.column(self.config.name_field)
        statement = select(self.model).where(
            func.lower(func.trim(column)) == name.strip().lower()
        )
        if exclude_key is not None:
            statement = statement.where(self.column(self.config.primary_key) != exclude_key)
        return self.session.scalars(statement.limit(1)).first()

    def filter_by(self, **criteria: Any) -> list[Any]:
        statement = (
            select(self.model)
            .filter_by(**criteria)
            .order_by(self.column(self.config.default_sort).asc())
        )
        return list(self.session.scalars(statement))

    def search_by_name(self, term: str, limit: int) -> list[Any]:
        column = self.column(self.config.name_field)
        statement = (
            select(self.model)
            .where(column.icontains(term.strip(), autoescape=True))
            .order_by(column.asc())
            .limit(limit)
        )
        return list(self.session.scalars(statement))

    def statistics(self) -> dict[str, int]:
        total = self.count()
        if not hasattr(self.model, "is_active"):
            return {"total": total}
        active = self.count([self.column("is_active").is_(True)])
        return {"total": total, "active": active, "inactive": total - active}

    def insert(self, values: dict[str, Any]) -> Any:
        instance = self.model(**values)
        self.session.add(instance)
        self.session.commit()
        return instance

    def save(self, instance: Any, values: dict[str, Any]) -> Any:
        for name, value in values.items():
            setattr(instance, name, value)
        self.session.commit()
        return instance

    def delete(self, instance: Any) -> None:
        self.session.delete(instance)
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
