"""
SQLAlchemy implementation of the storage contract.

Usage:
    from data_crud.repositories.sql import SqlAlchemyStore

    store = SqlAlchemyStore(db, Foo)
    store.find_by_id(42)
    store.search(create_search_options("bar", PageRequest.of(0, 20), query))

    # Extra predicates per operation
    class ActiveSpec(Specification):
        def to_expression(self):
            return Foo.is_active.is_(True)

    store = SpecificationSqlAlchemyStore(
        db, Foo, specifications={CrudOperation.PAGE: ActiveSpec()}
    )
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, TypeVar

from sqlalchemy import and_, exists as sql_exists, func, inspect, not_, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from data_crud.services import rsql
from data_crud.services.operations import CrudOperation
from data_crud.services.rsql import ComparisonNode, AndNode, OrNode, RSQLVisitor
from data_crud.services.search import SearchBaseOptions, SearchOptions, Sort
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import InvalidQueryError
from shared.utils.strings import escape_like_pattern

from .base import EntityStore

logger = get_logger(__name__)

ModelT = TypeVar("ModelT")

_TRUE = frozenset({"true", "1", "yes", "y"})
_FALSE = frozenset({"false", "0", "no", "n"})


def _python_type(column_attr: Any) -> type:
    try:
        return column_attr.type.python_type
    except NotImplementedError:
        return str


def wildcard_to_like(value: str) -> str:
    """``foo*bar`` -> ``foo%bar`` with LIKE metacharacters escaped."""
    return "%".join(escape_like_pattern(part) for part in value.split(rsql.WILDCARD))


# =============================================================================
# RSQL -> SQLAlchemy
# =============================================================================


class SqlAlchemyQueryBuilder(RSQLVisitor[Any]):
    """
    Compiles a filter tree into a SQLAlchemy boolean expression.

    Selectors name mapped columns; dotted selectors (``owner.name``) follow
    relationships through ``has``/``any``. Arguments are coerced to the
    column's Python type.
    """

    def __init__(self, model: type):
        self._model = model

    def visit_and(self, node: AndNode) -> Any:
        return and_(*(child.accept(self) for child in node))

    def visit_or(self, node: OrNode) -> Any:
        return or_(*(child.accept(self) for child in node))

    def visit_comparison(self, node: ComparisonNode) -> Any:
        return self._compile(self._model, node.selector.split("."), node)

    def _compile(self, model: type, path: list[str], node: ComparisonNode) -> Any:
        mapper = inspect(model)
        name = path[0]

        if len(path) > 1:
            if name not in mapper.relationships:
                raise self._unknown(node)
            relationship = mapper.relationships[name]
            inner = self._compile(relationship.mapper.class_, path[1:], node)
            attribute = getattr(model, name)
            return attribute.any(inner) if relationship.uselist else attribute.has(inner)

        if name not in mapper.column_attrs:
            raise self._unknown(node)
        column = getattr(model, name)
        return self._comparison(column, _python_type(column), node)

    def _comparison(self, column: Any, python_type: type, node: ComparisonNode) -> Any:
        operator = node.operator
        value = node.argument

        if operator in (rsql.IS_NULL, rsql.NOT_NULL):
            want_null = self._coerce(value, bool, node)
            if operator is rsql.NOT_NULL:
                want_null = not want_null
            return column.is_(None) if want_null else column.is_not(None)

        if operator is rsql.IN:
            return column.in_([self._coerce(v, python_type, node) for v in node.arguments])
        if operator is rsql.NOT_IN:
            return column.not_in([self._coerce(v, python_type, node) for v in node.arguments])

        if operator in (rsql.LIKE, rsql.ILIKE):
            pattern = wildcard_to_like(value)
            if rsql.WILDCARD not in value:
                pattern = f"%{pattern}%"
            if operator is rsql.ILIKE:
                return column.ilike(pattern, escape="\\")
            return column.like(pattern, escape="\\")

        if python_type is str and rsql.WILDCARD in value:
            if operator is rsql.EQUAL:
                return column.like(wildcard_to_like(value), escape="\\")
            if operator is rsql.NOT_EQUAL:
                return not_(column.like(wildcard_to_like(value), escape="\\"))

        coerced = self._coerce(value, python_type, node)
        if operator is rsql.EQUAL:
            return column == coerced
        if operator is rsql.NOT_EQUAL:
            return column != coerced
        if operator is rsql.LESS_THAN:
            return column < coerced
        if operator is rsql.LESS_THAN_OR_EQUAL:
            return column <= coerced
        if operator is rsql.GREATER_THAN:
            return column > coerced
        if operator is rsql.GREATER_THAN_OR_EQUAL:
            return column >= coerced

        raise InvalidQueryError(str(node), reason=f"unsupported operator {operator}")

    def _coerce(self, value: str, python_type: type, node: ComparisonNode) -> Any:
        try:
            if python_type is str:
                return value
            if python_type is bool:
                lowered = value.lower()
                if lowered in _TRUE:
                    return True
                if lowered in _FALSE:
                    return False
                raise ValueError(value)
            if issubclass(python_type, enum.Enum):
                try:
                    return python_type[value]
                except KeyError:
                    return python_type(value)
            if python_type is datetime:
                return datetime.fromisoformat(value)
            if python_type is date:
                return date.fromisoformat(value)
            if python_type is time:
                return time.fromisoformat(value)
            if python_type is uuid.UUID:
                return uuid.UUID(value)
            if python_type in (int, float, Decimal):
                return python_type(value)
            return value
        except (ValueError, InvalidOperation) as exc:
            raise InvalidQueryError(
                str(node),
                reason=f"cannot convert {value!r} to {python_type.__name__}",
            ) from exc

    @staticmethod
    def _unknown(node: ComparisonNode) -> InvalidQueryError:
        return InvalidQueryError(str(node), reason=f"unknown selector {node.selector!r}")


# =============================================================================
# Specifications
# =============================================================================


class Specification:
    """
    Base class for query specifications.

    Specifications encapsulate query conditions that can be
    combined using logical operators (&, |, ~).
    """

    def to_expression(self) -> Any:
        raise NotImplementedError

    def __and__(self, other: Specification) -> AndSpecification:
        return AndSpecification(self, other)

    def __or__(self, other: Specification) -> OrSpecification:
        return OrSpecification(self, other)

    def __invert__(self) -> NotSpecification:
        return NotSpecification(self)


class ExpressionSpecification(Specification):
    """Specification wrapping a ready-made SQLAlchemy expression."""

    def __init__(self, expression: Any):
        self._expression = expression

    def to_expression(self) -> Any:
        return self._expression


class AndSpecification(Specification):
    def __init__(self, left: Specification, right: Specification):
        self._left = left
        self._right = right

    def to_expression(self) -> Any:
        return and_(self._left.to_expression(), self._right.to_expression())


class OrSpecification(Specification):
    def __init__(self, left: Specification, right: Specification):
        self._left = left
        self._right = right

    def to_expression(self) -> Any:
        return or_(self._left.to_expression(), self._right.to_expression())


class NotSpecification(Specification):
    def __init__(self, spec: Specification):
        self._spec = spec

    def to_expression(self) -> Any:
        return not_(self._spec.to_expression())


# =============================================================================
# Stores
# =============================================================================


def _and(*expressions: Any) -> Any:
    present = [e for e in expressions if e is not None]
    if not present:
        return None
    return present[0] if len(present) == 1 else and_(*present)


class SqlAlchemyStore(EntityStore[ModelT, Any], Generic[ModelT]):
    """
    Store over a mapped SQLAlchemy model.

    ``save`` only adds and flushes; the surrounding transaction commits.
    ``delete`` commits immediately.
    """

    def __init__(
        self,
        session: Session,
        model: type[ModelT],
        *,
        id_field: str = "id",
        search_fields: Iterable[str] | None = None,
    ):
        self._session = session
        self._model = model
        self._id_field = id_field
        self._search_fields = (
            tuple(search_fields) if search_fields is not None else self._string_columns()
        )
        self._query_builder = SqlAlchemyQueryBuilder(model)

    @property
    def entity_class(self) -> type[ModelT]:
        return self._model

    @property
    def session(self) -> Session:
        return self._session

    @property
    def search_fields(self) -> tuple[str, ...]:
        return self._search_fields

    def _string_columns(self) -> tuple[str, ...]:
        return tuple(
            attr.key
            for attr in inspect(self._model).column_attrs
            if attr.key != self._id_field and _python_type(attr.columns[0]) is str
        )

    def _id_column(self) -> Any:
        return getattr(self._model, self._id_field)

    # =========================================================================
    # Expressions
    # =========================================================================

    def combine_specification(self, expression: Any, operation: CrudOperation) -> Any:
        """
        Extension point applied to every query this store runs.

        Return ``expression`` combined with any extra predicate for
        ``operation``; None means no restriction.
        """
        return expression

    def search_expression(self, search: str | None) -> Any:
        if search is None or not self._search_fields:
            return None
        pattern = f"%{escape_like_pattern(search)}%"
        return or_(
            *(getattr(self._model, f).ilike(pattern, escape="\\") for f in self._search_fields)
        )

    def filter_expression(self, options: SearchBaseOptions | None) -> Any:
        if options is None:
            return None
        query = options.query.accept(self._query_builder) if options.query is not None else None
        return _and(self.search_expression(options.search), query)

    def _where(self, stmt: Select, expression: Any) -> Select:
        if expression is not None:
            stmt = stmt.where(expression)
        return stmt

    def _order_by(self, stmt: Select, sort: Sort) -> Select:
        mapper = inspect(self._model)
        for order in sort:
            if order.property not in mapper.column_attrs:
                raise InvalidQueryError(
                    order.property,
                    reason=f"unknown sort property {order.property!r}",
                )
            column = getattr(self._model, order.property)
            stmt = stmt.order_by(column.asc() if order.ascending else column.desc())
        return stmt

    # =========================================================================
    # Reads
    # =========================================================================

    def find_by_id(self, entity_id: Any) -> ModelT | None:
        expression = self.combine_specification(self._id_column() == entity_id, CrudOperation.FIND)
        return self._session.scalar(self._where(select(self._model), expression))

    def find_all_by_ids(self, ids: Iterable[Any]) -> Sequence[ModelT]:
        ids = list(ids)
        if not ids:
            return []
        expression = self.combine_specification(self._id_column().in_(ids), CrudOperation.FIND)
        return self._session.scalars(self._where(select(self._model), expression)).all()

    def search(self, options: SearchOptions) -> Sequence[ModelT]:
        expression = self.combine_specification(self.filter_expression(options), CrudOperation.PAGE)
        stmt = self._where(select(self._model), expression)
        stmt = self._order_by(stmt, options.sort)
        if options.pagination.is_paginated:
            stmt = stmt.offset(options.pagination.offset).limit(options.pagination.size)
        return self._session.scalars(stmt).all()

    def count(self, options: SearchBaseOptions | None = None) -> int:
        return self._count(options, CrudOperation.COUNT)

    def count_page(self, options: SearchBaseOptions | None = None) -> int:
        return self._count(options, CrudOperation.PAGE)

    def _count(self, options: SearchBaseOptions | None, operation: CrudOperation) -> int:
        expression = self.combine_specification(self.filter_expression(options), operation)
        stmt = self._where(select(func.count()).select_from(self._model), expression)
        return self._session.scalar(stmt) or 0

    def exists(self, entity_id: Any) -> bool:
        expression = self.combine_specification(
            self._id_column() == entity_id, CrudOperation.EXISTS
        )
        return self._session.scalar(select(sql_exists().where(expression))) or False

    # =========================================================================
    # Writes
    # =========================================================================

    def save(self, entity: ModelT) -> ModelT:
        self._session.add(entity)
        self._session.flush()
        return entity

    def delete(self, entity: ModelT) -> None:
        self._session.delete(entity)
        safe_commit(self._session)
        logger.debug("Entity deleted", entity=self._model.__name__)


class SpecificationSqlAlchemyStore(SqlAlchemyStore[ModelT]):
    """
    Store that ANDs a ``Specification`` into the queries of chosen operations.

    ``default`` applies to every operation without its own entry.
    """

    def __init__(
        self,
        session: Session,
        model: type[ModelT],
        *,
        specifications: Mapping[CrudOperation, Specification] | None = None,
        default: Specification | None = None,
        **kwargs: Any,
    ):
        super().__init__(session, model, **kwargs)
        self._specifications = dict(specifications or {})
        self._default = default

    def specification_for(self, operation: CrudOperation) -> Specification | None:
        return self._specifications.get(operation, self._default)

    def combine_specification(self, expression: Any, operation: CrudOperation) -> Any:
        specification = self.specification_for(operation)
        if specification is None:
            return expression
        return _and(expression, specification.to_expression())
