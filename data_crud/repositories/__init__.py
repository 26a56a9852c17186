"""
Storage backends: the ``EntityStore`` contract and its SQLAlchemy and
MongoDB implementations.
"""

from data_crud.repositories.base import EntityStore
from data_crud.repositories.sql import (
    SqlAlchemyStore,
    SqlAlchemyQueryBuilder,
    SpecificationSqlAlchemyStore,
    Specification,
    ExpressionSpecification,
    AndSpecification,
    OrSpecification,
    NotSpecification,
)
from data_crud.repositories.mongo import MongoStore, MongoQueryBuilder

__all__ = [
    "EntityStore",
    # sql
    "SqlAlchemyStore",
    "SqlAlchemyQueryBuilder",
    "SpecificationSqlAlchemyStore",
    "Specification",
    "ExpressionSpecification",
    "AndSpecification",
    "OrSpecification",
    "NotSpecification",
    # mongo
    "MongoStore",
    "MongoQueryBuilder",
]
