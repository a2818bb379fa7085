"""
Structured exceptions for the Doxygen symbol search server.

Shard-level failures are raised by the store and contained by the query
engine, which turns them into diagnostics instead of propagating them.
"""

from typing import Any


class DoxySearchError(Exception):
    """Base exception for search index errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.details = details or {}


class ShardNotFound(DoxySearchError):
    """No shard was generated for the requested bucket."""

    def __init__(self, shard_key: str):
        super().__init__(f"Shard '{shard_key}' not found", {"shard_key": shard_key})
        self.shard_key = shard_key


class MalformedShard(DoxySearchError):
    """A shard failed structural validation."""

    def __init__(self, shard_key: str, reason: str):
        super().__init__(
            f"Shard '{shard_key}' is malformed: {reason}",
            {"shard_key": shard_key, "reason": reason},
        )
        self.shard_key = shard_key
        self.reason = reason


class ShardFetchError(DoxySearchError):
    """Transport failure while fetching a shard or the index catalogue."""

    pass


class IndexUnavailable(DoxySearchError):
    """No usable index catalogue exists at the configured location."""

    pass


class QueryEvaluationCancelled(DoxySearchError):
    """A superseded evaluation finished after a newer query was issued."""

    def __init__(self, query: str):
        super().__init__(f"Evaluation of '{query}' was superseded", {"query": query})
        self.query = query


def handle_multiple_errors(errors: list[Exception], context: str = "") -> None:
    """
    Raise collected errors.

    A single error is raised as-is, several are wrapped in an ExceptionGroup.
    """
    if not errors:
        return

    if len(errors) == 1:
        raise errors[0]

    message = f"Multiple errors occurred{f' in {context}' if context else ''}"
    raise ExceptionGroup(message, errors)


class ErrorCollector:
    """Collect errors for batch processing."""

    def __init__(self):
        self.errors: list[Exception] = []
        self.context = ""

    def add_error(self, error: Exception) -> None:
        """Add an error to the collection."""
        self.errors.append(error)

    def set_context(self, context: str) -> None:
        """Set context for error reporting."""
        self.context = context

    def raise_if_errors(self) -> None:
        """Raise collected errors if any exist."""
        if self.errors:
            handle_multiple_errors(self.errors, self.context)

    def __enter__(self) -> "ErrorCollector":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None:
            self.raise_if_errors()


class ErrorResult:
    """Structured error result for operator-facing diagnostics."""

    def __init__(self, error: Exception, context: str = "", recoverable: bool = False):
        self.error = error
        self.context = context
        self.recoverable = recoverable
        self.error_type = type(error).__name__
        self.message = str(error)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "context": self.context,
            "recoverable": self.recoverable,
            "details": getattr(self.error, "details", {}),
        }
