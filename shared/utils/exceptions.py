"""
Centralized HTTP exceptions for consistent error handling.

Every exception is an ``HTTPException`` so FastAPI renders it without extra
handlers, and every exception logs itself with its context when raised.

Usage:
    from shared.utils.exceptions import NotFoundEntityError, InvalidQueryError

    raise NotFoundEntityError(Foo, foo_id)
    raise InvalidQueryError("name=", position=5, reason="missing argument")
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions inherit from this class to get consistent
    logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: Any,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(str(detail), status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


def _entity_name(entity_class: type | str) -> str:
    if isinstance(entity_class, str):
        return entity_class
    return getattr(entity_class, "__name__", str(entity_class))


class NotFoundEntityError(AppException):
    """
    Entity lookup by id found nothing (404).

    Usage:
        raise NotFoundEntityError(Foo, 123)
    """

    def __init__(self, entity_class: type | str, entity_id: Any = None, **log_context: Any):
        self.entity_class = entity_class
        self.entity_id = entity_id
        name = _entity_name(entity_class)

        if entity_id is not None:
            detail = f"{name} with id {entity_id} not found"
        else:
            detail = f"{name} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=name,
            entity_id=entity_id,
            **log_context,
        )


# =============================================================================
# 403 Forbidden Errors
# =============================================================================


class ForbiddenError(AppException):
    """
    Authorization denied (403).

    Usage:
        raise ForbiddenError("CREATE")
    """

    def __init__(self, operation: str | None = None, **log_context: Any):
        self.operation = operation
        if operation:
            detail = f"Not authorized to perform {operation}"
        else:
            detail = "Access denied"

        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            log_level="warning",
            operation=operation,
            **log_context,
        )


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class InvalidQueryError(AppException):
    """
    Filter expression could not be parsed or applied (400).

    Usage:
        raise InvalidQueryError(source, position=4, reason="unexpected ';'")
    """

    def __init__(
        self,
        source: str,
        position: int | None = None,
        reason: str | None = None,
        **log_context: Any,
    ):
        self.source = source
        self.position = position
        self.reason = reason

        detail = f"Invalid RSQL query: {source}"
        if reason:
            detail = f"{detail} ({reason}"
            if position is not None:
                detail += f" at position {position}"
            detail += ")"

        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            source=source,
            position=position,
            **log_context,
        )


# =============================================================================
# 422 Validation Errors
# =============================================================================


class ValidationError(AppException):
    """
    DTO failed constraint validation (422).

    Usage:
        raise ValidationError("name must not be empty", errors=[...])
    """

    def __init__(self, detail: str, errors: list[dict[str, Any]] | None = None, **log_context: Any):
        self.errors = errors or []
        body: Any = detail
        if self.errors:
            body = {"message": detail, "errors": self.errors}

        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=body,
            log_level="warning",
            **log_context,
        )


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class InternalError(AppException):
    """
    Internal server error (500).

    Usage:
        raise InternalError("Exporter failed", exporter="csv")
    """

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )
