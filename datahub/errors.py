from dataclasses import dataclass
from typing import Optional, Union

from fastapi import status
from sqlalchemy.exc import DBAPIError


class ApiError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingQuery(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self):
        super().__init__('Query parameter "q" is required')


class NoFieldsToUpdate(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self):
        super().__init__("No fields to update")


class DatasetNotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self):
        super().__init__("Dataset not found")


# Postgres SQLSTATE codes for integrity violations
NOT_NULL_VIOLATION = "23502"
FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"
CHECK_VIOLATION = "23514"


@dataclass(frozen=True)
class NotNullViolation:
    column: Optional[str] = None
    table: Optional[str] = None

    def message(self) -> str:
        column = self.column or "unknown column"
        table = self.table or "unknown table"
        return f"Missing required field: {column} in {table}"


@dataclass(frozen=True)
class UniqueViolation:
    constraint: Optional[str] = None

    def message(self) -> str:
        return f"Duplicate entry violates {self.constraint or 'unique constraint'}"


@dataclass(frozen=True)
class ForeignKeyViolation:
    constraint: Optional[str] = None

    def message(self) -> str:
        return f"Invalid reference violates {self.constraint or 'foreign key constraint'}"


@dataclass(frozen=True)
class CheckViolation:
    constraint: Optional[str] = None

    def message(self) -> str:
        return f"Data violates {self.constraint or 'check constraint'}"


@dataclass(frozen=True)
class Other:
    message_text: str = "An unknown error occurred"

    def message(self) -> str:
        return self.message_text


DatabaseError = Union[
    NotNullViolation, UniqueViolation, ForeignKeyViolation, CheckViolation, Other
]


def classify_database_error(error: BaseException) -> DatabaseError:
    """Map a storage-layer exception onto one of the known failure categories.

    SQLAlchemy wraps the psycopg2 exception in ``.orig``; the SQLSTATE lives in
    ``pgcode`` and the column/table/constraint names in ``diag``. The SQL text
    carried by the SQLAlchemy wrapper is never part of the returned message.
    """
    orig = error.orig if isinstance(error, DBAPIError) else error
    code = getattr(orig, "pgcode", None)
    diag = getattr(orig, "diag", None)

    if code == NOT_NULL_VIOLATION:
        return NotNullViolation(
            column=getattr(diag, "column_name", None),
            table=getattr(diag, "table_name", None),
        )
    if code == UNIQUE_VIOLATION:
        return UniqueViolation(constraint=getattr(diag, "constraint_name", None))
    if code == FOREIGN_KEY_VIOLATION:
        return ForeignKeyViolation(constraint=getattr(diag, "constraint_name", None))
    if code == CHECK_VIOLATION:
        return CheckViolation(constraint=getattr(diag, "constraint_name", None))

    primary = getattr(diag, "message_primary", None)
    if primary:
        return Other(primary)
    if orig is not None and str(orig).strip():
        return Other(str(orig).strip().splitlines()[0])
    return Other()


def database_error_message(error: BaseException) -> str:
    return classify_database_error(error).message()
