"""The error hierarchy of the framework and helpers for attaching context."""

from __future__ import annotations

import copy
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol, Sequence, TypeVar

from .types import (
    Autocorrection,
    DiagnosticResult,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
)

T = TypeVar("T")


class AutocorrectionEngine(Protocol):
    """Anything able to propose an autocorrection for an error."""

    def suggest_autocorrection(
        self, error: FaultError, source_code_context: Optional[str] = None
    ) -> Optional[Autocorrection]: ...


def _copy_source(source: BaseException) -> BaseException:
    """Return a fresh exception carrying the same kind and message."""
    try:
        return type(source)(*source.args)
    except Exception:
        return Exception(str(source))


class FaultError(Exception):
    """Base class of every error raised by the framework."""

    _category = ErrorCategory.UNSPECIFIED
    _fields: tuple[str, ...] = ()

    def __init__(self, message: str, source: Optional[BaseException] = None) -> None:
        super().__init__(message)
        if source is not None:
            self.__cause__ = source

    def category(self) -> ErrorCategory:
        """Return the broad category of this error."""
        return self._category

    def severity(self) -> ErrorSeverity:
        """Return the severity; errors without rich context are ``ERROR``."""
        return ErrorSeverity.ERROR

    def add_context(self, context: ErrorContext) -> RichContextError:
        """Wrap this error together with structured context."""
        return RichContextError(context=context, source=self)

    def add_context_msg(self, message: str) -> RichContextError:
        """Wrap this error together with a plain context message."""
        return self.add_context(ErrorContext(message))

    def rich_context(self) -> Optional[ErrorContext]:
        """Return the attached rich context, if this error carries one."""
        return None

    def diagnostic_info(self) -> Optional[DiagnosticResult]:
        """Return tool diagnostics embedded in the rich context, if any."""
        context = self.rich_context()
        return context.diagnostic_info if context is not None else None

    def suggest_autocorrection(
        self, engine: AutocorrectionEngine, source_code_context: Optional[str] = None
    ) -> Optional[Autocorrection]:
        """Ask ``engine`` for a fix suggestion for this error."""
        return engine.suggest_autocorrection(self, source_code_context)

    def clone(self) -> FaultError:
        """Return an independent copy of this error with the same fields."""
        values = {name: self._clone_value(getattr(self, name)) for name in self._fields}
        return type(self)(**values)

    @staticmethod
    def _clone_value(value: Any) -> Any:
        if isinstance(value, FaultError):
            return value.clone()
        if isinstance(value, BaseException):
            return _copy_source(value)
        if isinstance(value, list):
            return [FaultError._clone_value(item) for item in value]
        if isinstance(value, ErrorContext):
            return copy.deepcopy(value)
        return value


class IoError(FaultError):
    """An I/O operation failed."""

    _category = ErrorCategory.IO
    _fields = ("source", "path", "operation")

    def __init__(self, *, source: OSError, operation: str, path: Optional[Path | str] = None) -> None:
        self.source = source
        self.path = Path(path) if path is not None else None
        self.operation = operation
        where = f" on '{self.path}'" if self.path is not None else ""
        super().__init__(f"I/O error during '{operation}'{where}: {source}", source)


class ParseError(FaultError):
    """Input could not be parsed."""

    _category = ErrorCategory.PARSING
    _fields = ("source", "kind", "context_info")

    def __init__(self, *, source: BaseException, kind: str, context_info: str) -> None:
        self.source = source
        self.kind = kind
        self.context_info = context_info
        super().__init__(f"Failed to parse {kind} ({context_info}): {source}", source)


class NetworkError(FaultError):
    """A network operation failed."""

    _category = ErrorCategory.NETWORK
    _fields = ("source", "url", "kind")

    def __init__(self, *, source: BaseException, kind: str, url: Optional[str] = None) -> None:
        self.source = source
        self.url = url
        self.kind = kind
        target = f" for {url}" if url is not None else ""
        super().__init__(f"{kind} network error{target}: {source}", source)


class ConfigError(FaultError):
    """Configuration is missing or invalid."""

    _category = ErrorCategory.CONFIGURATION
    _fields = ("message", "path", "source")

    def __init__(
        self,
        *,
        message: str,
        path: Optional[Path | str] = None,
        source: Optional[BaseException] = None,
    ) -> None:
        self.message = message
        self.path = Path(path) if path is not None else None
        self.source = source
        where = f" in '{self.path}'" if self.path is not None else ""
        super().__init__(f"Configuration error{where}: {message}", source)


class ValidationError(FaultError):
    """A value failed validation."""

    _category = ErrorCategory.VALIDATION
    _fields = ("field", "message")

    def __init__(self, *, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"Validation failed for '{field}': {message}")


class InternalError(FaultError):
    """An unexpected internal failure."""

    _category = ErrorCategory.INTERNAL
    _fields = ("message", "source")

    def __init__(self, *, message: str, source: Optional[BaseException] = None) -> None:
        self.message = message
        self.source = source
        super().__init__(f"Internal error: {message}", source)


class CircuitBreakerOpenError(FaultError):
    """A circuit breaker rejected the call; ``retry_after`` is in seconds."""

    _category = ErrorCategory.CIRCUIT_BREAKER
    _fields = ("name", "retry_after")

    def __init__(self, *, name: str, retry_after: Optional[float] = None) -> None:
        self.name = name
        self.retry_after = retry_after
        hint = f" (retry after {retry_after:.3f}s)" if retry_after is not None else ""
        super().__init__(f"Circuit breaker '{name}' is open{hint}")


class OperationTimeoutError(FaultError):
    """An operation exceeded its time limit; ``duration`` is in seconds."""

    _category = ErrorCategory.TIMEOUT
    _fields = ("operation", "duration")

    def __init__(self, *, operation: str, duration: float) -> None:
        self.operation = operation
        self.duration = duration
        super().__init__(f"{operation} timed out after {duration:.3f}s")


class ResourceExhaustedError(FaultError):
    """A resource limit was reached."""

    _category = ErrorCategory.RESOURCE_EXHAUSTION
    _fields = ("resource", "limit", "current")

    def __init__(self, *, resource: str, limit: str, current: str) -> None:
        self.resource = resource
        self.limit = limit
        self.current = current
        super().__init__(f"Resource '{resource}' exhausted: {current} of limit {limit}")


class NotFoundError(FaultError):
    """A requested resource does not exist."""

    _category = ErrorCategory.NOT_FOUND
    _fields = ("resource_type", "identifier")

    def __init__(self, *, resource_type: str, identifier: str) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} '{identifier}' not found")


class StateConflictError(FaultError):
    """The operation conflicts with the current state."""

    _category = ErrorCategory.STATE_CONFLICT
    _fields = ("message",)

    def __init__(self, *, message: str) -> None:
        self.message = message
        super().__init__(f"State conflict: {message}")


class ConcurrencyError(FaultError):
    """A concurrency problem such as a poisoned lock."""

    _category = ErrorCategory.CONCURRENCY
    _fields = ("message", "source")

    def __init__(self, *, message: str, source: Optional[BaseException] = None) -> None:
        self.message = message
        self.source = source
        super().__init__(f"Concurrency error: {message}", source)


class ExternalServiceError(FaultError):
    """An external service reported a failure."""

    _category = ErrorCategory.EXTERNAL_SERVICE
    _fields = ("service_name", "message", "source")

    def __init__(
        self, *, service_name: str, message: str, source: Optional[BaseException] = None
    ) -> None:
        self.service_name = service_name
        self.message = message
        self.source = source
        super().__init__(f"External service '{service_name}' failed: {message}", source)


class MissingValueError(FaultError):
    """A required value was absent."""

    _category = ErrorCategory.VALIDATION
    _fields = ("item_description",)

    def __init__(self, *, item_description: str) -> None:
        self.item_description = item_description
        super().__init__(f"Missing value: {item_description}")


class MultipleErrors(FaultError):
    """Several errors reported together."""

    _category = ErrorCategory.MULTIPLE
    _fields = ("errors",)

    def __init__(self, *, errors: Sequence[FaultError]) -> None:
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} errors occurred")


class RichContextError(FaultError):
    """An error wrapped together with structured context."""

    _fields = ("context", "source")

    def __init__(self, *, context: ErrorContext, source: FaultError) -> None:
        self.context = context
        self.source = source
        super().__init__(context.message, source)

    def category(self) -> ErrorCategory:
        return self.source.category()

    def severity(self) -> ErrorSeverity:
        return self.context.severity

    def rich_context(self) -> Optional[ErrorContext]:
        return self.context


class GeneralError(FaultError):
    """General-purpose error carrying a message and an optional cause."""

    _category = ErrorCategory.UNSPECIFIED
    _fields = ("message", "source")

    def __init__(self, *, message: str, source: Optional[BaseException] = None) -> None:
        self.message = message
        self.source = source
        super().__init__(message, source)


def _as_fault(exc: Exception) -> FaultError:
    if isinstance(exc, FaultError):
        return exc
    return GeneralError(message=str(exc), source=exc)


@contextmanager
def context_msg(message: str) -> Iterator[None]:
    """Re-raise any error from the block wrapped with a context message."""
    try:
        yield
    except Exception as exc:
        raise _as_fault(exc).add_context_msg(message) from exc


@contextmanager
def context_rich(context: ErrorContext) -> Iterator[None]:
    """Re-raise any error from the block wrapped with rich context."""
    try:
        yield
    except Exception as exc:
        raise _as_fault(exc).add_context(context) from exc


def ok_or_missing_value(value: Optional[T], item_description: str) -> T:
    """Return ``value``, or raise ``MissingValueError`` if it is ``None``."""
    if value is None:
        raise MissingValueError(item_description=item_description)
    return value