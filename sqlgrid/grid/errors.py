"""Error types surfaced by the result grid."""

from typing import Any, Optional

DEFAULT_SAVE_ERROR = "Failed to save changes."


class QueryError:
    """Query failure reported by the query runner.

    The text has two segments separated by a blank line: the executed
    statement and the error detail. It is displayed, never retried.
    """

    PREFIX = "Error executing query:\n"

    def __init__(self, text: str):
        self.text = text or ""
        parts = self.text.split("\n\n", 1)
        self.statement = parts[0].replace(self.PREFIX, "", 1)
        self.detail = parts[1] if len(parts) > 1 else ""

    @classmethod
    def parse(cls, text: str) -> "QueryError":
        return cls(text)

    @classmethod
    def build(cls, sql: str, detail: str) -> "QueryError":
        return cls(f"{cls.PREFIX}{sql}\n\n{detail}")

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"QueryError({self.statement!r}, {self.detail!r})"


class PersistenceError(Exception):
    """A row update could not be applied by the persistence backend."""

    def __init__(self, message: str, row_key: Optional[str] = None):
        super().__init__(message)
        self.row_key = row_key


def save_error_message(error: Any) -> str:
    """Human readable message for a failed save."""
    if error is None:
        return DEFAULT_SAVE_ERROR
    if isinstance(error, BaseException):
        message = str(error)
        if not message and error.args:
            message = str(error.args[0])
        return message or type(error).__name__
    return str(error) or DEFAULT_SAVE_ERROR
