"""
CRUD services: operation classification, hooks, authorization,
transactions, paging/search options, RSQL filters and the generic
Read/Write/Crud services.

Backend-bound services live in ``data_crud.services.standard``.
"""

from data_crud.services.operations import CrudOperation, READ_OPERATIONS, WRITE_OPERATIONS
from data_crud.services.hooks import (
    ReadHooks,
    WriteHooks,
    CrudHooks,
    CallbackHooks,
    DEFAULT_READ_HOOKS,
    DEFAULT_WRITE_HOOKS,
    DEFAULT_CRUD_HOOKS,
)
from data_crud.services.authorization import (
    AuthorizationDecision,
    AuthorizationManager,
    PermitAllAuthorizationManager,
    DenyAllAuthorizationManager,
    AuthenticatedAuthorizationManager,
    ReadOnlyAuthorizationManager,
    RoleAuthorizationManager,
    GRANTED,
    DENIED,
    crud_operation,
    get_current_principal,
    principal_scope,
)
from data_crud.services.transactions import (
    TransactionStatus,
    TransactionOperations,
    WithoutTransaction,
    SessionTransactionTemplate,
    MongoTransactionTemplate,
)
from data_crud.services.search import (
    Order,
    Sort,
    PageRequest,
    Pagination,
    Page,
    SearchBaseOptions,
    SearchOptions,
    create_search_options,
    create_search_base_options,
)
from data_crud.services.rsql import RSQLParser, parse_query
from data_crud.services.base import ReadService, WriteService, CrudService, copy_fields

__all__ = [
    # operations
    "CrudOperation",
    "READ_OPERATIONS",
    "WRITE_OPERATIONS",
    # hooks
    "ReadHooks",
    "WriteHooks",
    "CrudHooks",
    "CallbackHooks",
    "DEFAULT_READ_HOOKS",
    "DEFAULT_WRITE_HOOKS",
    "DEFAULT_CRUD_HOOKS",
    # authorization
    "AuthorizationDecision",
    "AuthorizationManager",
    "PermitAllAuthorizationManager",
    "DenyAllAuthorizationManager",
    "AuthenticatedAuthorizationManager",
    "ReadOnlyAuthorizationManager",
    "RoleAuthorizationManager",
    "GRANTED",
    "DENIED",
    "crud_operation",
    "get_current_principal",
    "principal_scope",
    # transactions
    "TransactionStatus",
    "TransactionOperations",
    "WithoutTransaction",
    "SessionTransactionTemplate",
    "MongoTransactionTemplate",
    # search
    "Order",
    "Sort",
    "PageRequest",
    "Pagination",
    "Page",
    "SearchBaseOptions",
    "SearchOptions",
    "create_search_options",
    "create_search_base_options",
    # rsql
    "RSQLParser",
    "parse_query",
    # services
    "ReadService",
    "WriteService",
    "CrudService",
    "copy_fields",
]
