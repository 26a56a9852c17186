"""
Transaction boundaries for write operations.

A ``TransactionOperations`` runs a callback inside a transaction and hands
it a ``TransactionStatus``. The callback marks the status rollback-only
when it fails; the template then rolls back instead of committing. The
callback's exception always propagates unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from sqlalchemy.orm import Session

from shared.config.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TransactionStatus:
    """State of the transaction a callback runs in."""

    def __init__(self, new_transaction: bool = True):
        self.new_transaction = new_transaction
        self._rollback_only = False

    @property
    def rollback_only(self) -> bool:
        return self._rollback_only

    def set_rollback_only(self) -> None:
        self._rollback_only = True


class TransactionOperations(ABC):
    """Executes callbacks inside a transaction boundary."""

    @abstractmethod
    def execute(self, callback: Callable[[TransactionStatus], T]) -> T:
        ...


class WithoutTransaction(TransactionOperations):
    """
    Runs callbacks directly, without transactional semantics.

    Used when a service has no transaction manager configured.
    """

    def execute(self, callback: Callable[[TransactionStatus], T]) -> T:
        return callback(TransactionStatus(new_transaction=False))


class SessionTransactionTemplate(TransactionOperations):
    """
    Transaction boundary over a SQLAlchemy session.

    Commits when the callback returns normally and was not marked
    rollback-only; rolls back otherwise.
    """

    def __init__(self, session: Session):
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def execute(self, callback: Callable[[TransactionStatus], T]) -> T:
        status = TransactionStatus()
        try:
            result = callback(status)
        except Exception:
            logger.warning("Rolling back transaction after error", exc_info=True)
            self._session.rollback()
            raise

        if status.rollback_only:
            logger.debug("Transaction marked rollback-only, rolling back")
            self._session.rollback()
            return result

        try:
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return result


class MongoTransactionTemplate(TransactionOperations):
    """
    Transaction boundary over a pymongo client session.

    Requires a replica set or sharded cluster. The callback runs with the
    client session started; pass ``session=template.current_session`` to
    collection calls that must join the transaction.
    """

    def __init__(self, client: Any):
        self._client = client
        self.current_session: Any = None

    def execute(self, callback: Callable[[TransactionStatus], T]) -> T:
        status = TransactionStatus()
        with self._client.start_session() as session:
            session.start_transaction()
            self.current_session = session
            try:
                result = callback(status)
            except Exception:
                logger.warning("Aborting MongoDB transaction after error", exc_info=True)
                session.abort_transaction()
                raise
            finally:
                self.current_session = None

            if status.rollback_only:
                session.abort_transaction()
            else:
                session.commit_transaction()
            return result
