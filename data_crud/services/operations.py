"""
CRUD operation classification.

Every service call is tagged with exactly one operation. The read/write
flags decide how authorization treats the call and whether it runs inside
a transaction boundary.
"""

from enum import Enum


class CrudOperation(str, Enum):
    """Operation kinds handled by the CRUD services."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    PAGE = "PAGE"
    FIND = "FIND"
    COUNT = "COUNT"
    EXISTS = "EXISTS"

    @property
    def write(self) -> bool:
        """The operation creates, modifies or removes an entity."""
        return _FLAGS[self][0]

    @property
    def read(self) -> bool:
        """The operation retrieves data or checks existence."""
        return _FLAGS[self][1]

    @property
    def is_read_only(self) -> bool:
        return self.read and not self.write

    @property
    def is_write_only(self) -> bool:
        return self.write and not self.read

    def __str__(self) -> str:
        return self.value


# (write, read)
_FLAGS: dict[CrudOperation, tuple[bool, bool]] = {
    CrudOperation.CREATE: (True, False),
    CrudOperation.UPDATE: (True, False),
    CrudOperation.DELETE: (True, False),
    CrudOperation.PAGE: (False, True),
    CrudOperation.FIND: (False, True),
    CrudOperation.COUNT: (False, True),
    CrudOperation.EXISTS: (False, True),
}

READ_OPERATIONS: frozenset[CrudOperation] = frozenset(
    op for op in CrudOperation if op.is_read_only
)
WRITE_OPERATIONS: frozenset[CrudOperation] = frozenset(
    op for op in CrudOperation if op.is_write_only
)
