"""
MongoDB implementation of the storage contract.

Entities are pydantic models; the entity id is stored as ``_id``.

Usage:
    class Bar(BaseModel):
        id: str | None = None
        name: str
        size: int = 0

    store = MongoStore(get_collection("bars"), Bar)
    store.save(Bar(name="x"))            # assigns an ObjectId string id
    store.search(create_search_options("x", PageRequest.of(0, 20), None))
"""

from __future__ import annotations

import re
import types
import typing
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time
from typing import Any, Generic, TypeVar

import pydantic
from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection

from data_crud.services import rsql
from data_crud.services.rsql import AndNode, ComparisonNode, OrNode, RSQLVisitor
from data_crud.services.search import SearchBaseOptions, SearchOptions, Sort
from data_crud.services.transactions import MongoTransactionTemplate
from shared.config.logging import get_logger
from shared.utils.exceptions import InvalidQueryError, ValidationError

from .base import EntityStore

logger = get_logger(__name__)

EntityT = TypeVar("EntityT", bound=BaseModel)

_TRUE = frozenset({"true", "1", "yes", "y"})
_FALSE = frozenset({"false", "0", "no", "n"})


def _unwrap_optional(annotation: Any) -> Any:
    """``int | None`` -> ``int``; anything else unchanged."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def to_bson_value(value: Any) -> Any:
    """BSON has no date type: store ``date`` values as midnight ``datetime``."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    if isinstance(value, dict):
        return {key: to_bson_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_bson_value(item) for item in value]
    return value


def wildcard_to_regex(value: str) -> str:
    """``foo*bar`` -> ``^foo.*bar$`` with regex metacharacters escaped."""
    return "^" + ".*".join(re.escape(part) for part in value.split(rsql.WILDCARD)) + "$"


# =============================================================================
# RSQL -> MongoDB filter
# =============================================================================


class MongoQueryBuilder(RSQLVisitor[dict[str, Any]]):
    """
    Compiles a filter tree into a MongoDB filter document.

    The first segment of a selector must be a field of the entity model;
    dotted selectors address embedded documents. Arguments are coerced
    using the top-level field's annotation.
    """

    def __init__(self, entity_class: type[BaseModel], id_field: str = "id"):
        self._entity_class = entity_class
        self._id_field = id_field

    def visit_and(self, node: AndNode) -> dict[str, Any]:
        return {"$and": [child.accept(self) for child in node]}

    def visit_or(self, node: OrNode) -> dict[str, Any]:
        return {"$or": [child.accept(self) for child in node]}

    def visit_comparison(self, node: ComparisonNode) -> dict[str, Any]:
        head, _, rest = node.selector.partition(".")
        fields = self._entity_class.model_fields
        if head not in fields:
            raise InvalidQueryError(str(node), reason=f"unknown selector {node.selector!r}")

        field = "_id" if node.selector == self._id_field else node.selector
        python_type = _unwrap_optional(fields[head].annotation) if not rest else str
        return {field: self._condition(python_type, node)}

    def _condition(self, python_type: Any, node: ComparisonNode) -> Any:
        operator = node.operator
        value = node.argument

        if operator in (rsql.IS_NULL, rsql.NOT_NULL):
            want_null = self._coerce(value, bool, node)
            if operator is rsql.NOT_NULL:
                want_null = not want_null
            return None if want_null else {"$ne": None}

        if operator is rsql.IN:
            return {"$in": [self._coerce(v, python_type, node) for v in node.arguments]}
        if operator is rsql.NOT_IN:
            return {"$nin": [self._coerce(v, python_type, node) for v in node.arguments]}

        if operator in (rsql.LIKE, rsql.ILIKE):
            pattern = wildcard_to_regex(value) if rsql.WILDCARD in value else re.escape(value)
            condition: dict[str, Any] = {"$regex": pattern}
            if operator is rsql.ILIKE:
                condition["$options"] = "i"
            return condition

        if python_type is str and rsql.WILDCARD in value:
            if operator is rsql.EQUAL:
                return {"$regex": wildcard_to_regex(value)}
            if operator is rsql.NOT_EQUAL:
                return {"$not": re.compile(wildcard_to_regex(value))}

        coerced = self._coerce(value, python_type, node)
        if operator is rsql.EQUAL:
            return coerced
        if operator is rsql.NOT_EQUAL:
            return {"$ne": coerced}
        if operator is rsql.LESS_THAN:
            return {"$lt": coerced}
        if operator is rsql.LESS_THAN_OR_EQUAL:
            return {"$lte": coerced}
        if operator is rsql.GREATER_THAN:
            return {"$gt": coerced}
        if operator is rsql.GREATER_THAN_OR_EQUAL:
            return {"$gte": coerced}

        raise InvalidQueryError(str(node), reason=f"unsupported operator {operator}")

    def _coerce(self, value: str, python_type: Any, node: ComparisonNode) -> Any:
        try:
            if python_type is bool:
                lowered = value.lower()
                if lowered in _TRUE:
                    return True
                if lowered in _FALSE:
                    return False
                raise ValueError(value)
            if python_type in (int, float):
                return python_type(value)
            if python_type is datetime:
                return datetime.fromisoformat(value)
            if python_type is date:
                return datetime.combine(date.fromisoformat(value), time.min)
            return value
        except ValueError as exc:
            raise InvalidQueryError(
                str(node),
                reason=f"cannot convert {value!r} to {python_type.__name__}",
            ) from exc


# =============================================================================
# Store
# =============================================================================


class MongoStore(EntityStore[EntityT, str], Generic[EntityT]):
    """
    Store over one MongoDB collection.

    Pass the service's ``MongoTransactionTemplate`` as ``transactions`` so
    writes join its client session.
    """

    def __init__(
        self,
        collection: Collection,
        entity_class: type[EntityT],
        *,
        id_field: str = "id",
        search_fields: Iterable[str] | None = None,
        transactions: MongoTransactionTemplate | None = None,
    ):
        self._collection = collection
        self._entity_class = entity_class
        self._id_field = id_field
        self._search_fields = (
            tuple(search_fields) if search_fields is not None else self._string_fields()
        )
        self._transactions = transactions
        self._query_builder = MongoQueryBuilder(entity_class, id_field)
        self._date_fields = tuple(
            name
            for name, info in entity_class.model_fields.items()
            if _unwrap_optional(info.annotation) is date
        )

    @property
    def entity_class(self) -> type[EntityT]:
        return self._entity_class

    @property
    def collection(self) -> Collection:
        return self._collection

    @property
    def search_fields(self) -> tuple[str, ...]:
        return self._search_fields

    def _session_kwargs(self) -> dict[str, Any]:
        session = self._transactions.current_session if self._transactions else None
        return {"session": session} if session is not None else {}

    def _string_fields(self) -> tuple[str, ...]:
        return tuple(
            name
            for name, info in self._entity_class.model_fields.items()
            if name != self._id_field and _unwrap_optional(info.annotation) is str
        )

    # =========================================================================
    # Conversion
    # =========================================================================

    def to_entity(self, document: dict[str, Any]) -> EntityT:
        data = dict(document)
        _id = data.pop("_id", None)
        data[self._id_field] = str(_id) if isinstance(_id, ObjectId) else _id
        for name in self._date_fields:
            if isinstance(data.get(name), datetime):
                data[name] = data[name].date()
        return self._entity_class.model_validate(data)

    def to_document(self, entity: EntityT) -> dict[str, Any]:
        try:
            validated = self._entity_class.model_validate(dict(vars(entity)))
        except pydantic.ValidationError as exc:
            raise ValidationError(
                f"Invalid {self._entity_class.__name__}",
                errors=exc.errors(include_url=False, include_context=False),
            ) from exc
        document = to_bson_value(validated.model_dump())
        document["_id"] = document.pop(self._id_field)
        return document

    # =========================================================================
    # Filters
    # =========================================================================

    def search_filter(self, search: str | None) -> dict[str, Any] | None:
        if search is None or not self._search_fields:
            return None
        pattern = re.escape(search)
        return {
            "$or": [
                {field: {"$regex": pattern, "$options": "i"}} for field in self._search_fields
            ]
        }

    def filter_document(self, options: SearchBaseOptions | None) -> dict[str, Any]:
        if options is None:
            return {}
        parts = [self.search_filter(options.search)]
        if options.query is not None:
            parts.append(options.query.accept(self._query_builder))
        parts = [p for p in parts if p]
        if not parts:
            return {}
        return parts[0] if len(parts) == 1 else {"$and": parts}

    def _sort_spec(self, sort: Sort) -> list[tuple[str, int]]:
        spec = []
        for order in sort:
            head = order.property.partition(".")[0]
            if head not in self._entity_class.model_fields:
                raise InvalidQueryError(
                    order.property,
                    reason=f"unknown sort property {order.property!r}",
                )
            field = "_id" if order.property == self._id_field else order.property
            spec.append((field, ASCENDING if order.ascending else DESCENDING))
        return spec

    # =========================================================================
    # Reads
    # =========================================================================

    def find_by_id(self, entity_id: str) -> EntityT | None:
        document = self._collection.find_one({"_id": entity_id}, **self._session_kwargs())
        return self.to_entity(document) if document is not None else None

    def find_all_by_ids(self, ids: Iterable[str]) -> Sequence[EntityT]:
        ids = list(ids)
        if not ids:
            return []
        cursor = self._collection.find({"_id": {"$in": ids}}, **self._session_kwargs())
        return [self.to_entity(d) for d in cursor]

    def search(self, options: SearchOptions) -> Sequence[EntityT]:
        cursor = self._collection.find(self.filter_document(options), **self._session_kwargs())
        sort = self._sort_spec(options.sort)
        if sort:
            cursor = cursor.sort(sort)
        if options.pagination.is_paginated:
            cursor = cursor.skip(options.pagination.offset).limit(options.pagination.size)
        return [self.to_entity(d) for d in cursor]

    def count(self, options: SearchBaseOptions | None = None) -> int:
        return self._collection.count_documents(
            self.filter_document(options), **self._session_kwargs()
        )

    def exists(self, entity_id: str) -> bool:
        return (
            self._collection.count_documents({"_id": entity_id}, limit=1, **self._session_kwargs())
            > 0
        )

    # =========================================================================
    # Writes
    # =========================================================================

    def save(self, entity: EntityT) -> EntityT:
        if getattr(entity, self._id_field, None) is None:
            setattr(entity, self._id_field, str(ObjectId()))
        document = self.to_document(entity)
        self._collection.replace_one(
            {"_id": document["_id"]}, document, upsert=True, **self._session_kwargs()
        )
        return self.to_entity(document)

    def delete(self, entity: EntityT) -> None:
        entity_id = getattr(entity, self._id_field)
        self._collection.delete_one({"_id": entity_id}, **self._session_kwargs())
        logger.debug("Document deleted", collection=self._collection.name, entity_id=entity_id)
