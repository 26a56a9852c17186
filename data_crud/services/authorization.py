"""
Operation-level authorization for CRUD services.

The principal of the current request lives in a context variable; routers
bind it with ``principal_scope`` and services ask their
``AuthorizationManager`` to verify it against the classified operation
before doing any work.

Usage:
    manager = RoleAuthorizationManager(
        read_roles={"VIEWER", "EDITOR"},
        write_roles={"EDITOR"},
        operation_roles={CrudOperation.DELETE: {"ADMIN"}},
    )
    service = FooService(db, authorization=manager)

    with principal_scope({"sub": "7", "roles": ["VIEWER"]}):
        service.page(None, PageRequest.of(0, 20), None)   # granted
        service.delete(3)                                 # ForbiddenError
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, TypeVar

from shared.config.logging import security_audit_logger
from shared.utils.exceptions import ForbiddenError

from .operations import CrudOperation

F = TypeVar("F", bound=Callable[..., Any])


# =============================================================================
# Principal Context
# =============================================================================


_current_principal: ContextVar[Any] = ContextVar("crud_principal", default=None)


def get_current_principal() -> Any:
    """Principal bound to the current context, or None."""
    return _current_principal.get()


@contextmanager
def principal_scope(principal: Any) -> Iterator[Any]:
    """Bind ``principal`` as the current principal inside the block."""
    token = _current_principal.set(principal)
    try:
        yield principal
    finally:
        _current_principal.reset(token)


def principal_roles(principal: Any) -> frozenset[str]:
    """Roles of a principal given as a mapping or an object with ``roles``."""
    if principal is None:
        return frozenset()
    if isinstance(principal, Mapping):
        roles = principal.get("roles") or ()
    else:
        roles = getattr(principal, "roles", None) or ()
    if isinstance(roles, str):
        return frozenset({roles})
    return frozenset(roles)


# =============================================================================
# Decisions and Managers
# =============================================================================


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of an authorization check."""

    granted: bool

    def __bool__(self) -> bool:
        return self.granted


GRANTED = AuthorizationDecision(True)
DENIED = AuthorizationDecision(False)


class AuthorizationManager(ABC):
    """
    Decides whether a principal may perform a CRUD operation.

    ``check`` may return None to abstain; ``verify`` treats abstention as
    a denial.
    """

    @abstractmethod
    def check(self, principal: Any, operation: CrudOperation) -> AuthorizationDecision | None:
        ...

    def verify(self, principal: Any, operation: CrudOperation) -> None:
        """Raise ForbiddenError unless the decision grants access."""
        decision = self.check(principal, operation)
        if decision is None or not decision.granted:
            security_audit_logger.warning(
                "CRUD access denied",
                operation=operation.value,
                manager=type(self).__name__,
            )
            raise ForbiddenError(operation.value)


class PermitAllAuthorizationManager(AuthorizationManager):
    """Grants every operation."""

    def check(self, principal: Any, operation: CrudOperation) -> AuthorizationDecision:
        return GRANTED


class DenyAllAuthorizationManager(AuthorizationManager):
    """Denies every operation."""

    def check(self, principal: Any, operation: CrudOperation) -> AuthorizationDecision:
        return DENIED


class AuthenticatedAuthorizationManager(AuthorizationManager):
    """Grants every operation to any bound principal."""

    def check(self, principal: Any, operation: CrudOperation) -> AuthorizationDecision:
        return GRANTED if principal is not None else DENIED


class ReadOnlyAuthorizationManager(AuthorizationManager):
    """Grants read-only operations and denies writes."""

    def check(self, principal: Any, operation: CrudOperation) -> AuthorizationDecision:
        return GRANTED if operation.is_read_only else DENIED


class RoleAuthorizationManager(AuthorizationManager):
    """
    Role-based decisions keyed by the operation classification.

    Per-operation roles take precedence; otherwise read-only operations
    need one of ``read_roles`` and write operations one of ``write_roles``.
    An empty role set means the operation is closed to everyone.
    """

    def __init__(
        self,
        read_roles: Iterable[str] = (),
        write_roles: Iterable[str] = (),
        operation_roles: Mapping[CrudOperation, Iterable[str]] | None = None,
    ):
        self._read_roles = frozenset(read_roles)
        self._write_roles = frozenset(write_roles)
        self._operation_roles = {
            op: frozenset(roles) for op, roles in (operation_roles or {}).items()
        }

    def required_roles(self, operation: CrudOperation) -> frozenset[str]:
        if operation in self._operation_roles:
            return self._operation_roles[operation]
        return self._read_roles if operation.is_read_only else self._write_roles

    def check(self, principal: Any, operation: CrudOperation) -> AuthorizationDecision:
        if principal is None:
            return DENIED
        required = self.required_roles(operation)
        return GRANTED if required & principal_roles(principal) else DENIED


# =============================================================================
# Service Pre-processing
# =============================================================================


def verify_access(manager: AuthorizationManager | None, operation: CrudOperation) -> None:
    """Verify the current principal when a manager is configured."""
    if manager is not None:
        manager.verify(get_current_principal(), operation)


def crud_operation(operation: CrudOperation) -> Callable[[F], F]:
    """
    Mark a service method as a classified CRUD operation.

    The service's ``pre_process(operation)`` runs before the method body,
    so authorization happens before any hook, transaction or storage call.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(self, *args: Any, **kwargs: Any) -> Any:
            self.pre_process(operation)
            return func(self, *args, **kwargs)

        wrapper.crud_operation = operation  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
