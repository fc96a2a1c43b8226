"""
Error taxonomy and error handling helpers for ColorVars.

Internal recursive helpers (chain resolution, import following) raise the
typed errors defined here so that callers at the same depth can apply
fallback substitution. Public entry points catch them, report them through an
:class:`ErrorHandler` and degrade to ``None`` or an empty result.

"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
	from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RECENT_ERRORS = 50


class ErrorType(str, Enum):
	"""Categories of errors raised by the engine."""

	VARIABLE_RESOLUTION = "variable_resolution"
	PERFORMANCE_TIMEOUT = "performance_timeout"
	SETTINGS_VALIDATION = "settings_validation"
	PARSER_ERROR = "parser_error"
	FILE_ACCESS = "file_access"


class ErrorSeverity(str, Enum):
	"""Severity levels, mapped onto logging levels by the error handler."""

	LOW = "low"
	MEDIUM = "medium"
	HIGH = "high"
	CRITICAL = "critical"


class ColorVarsError(Exception):
	"""Base class for all errors raised by ColorVars."""

	def __init__(
		self,
		message: str,
		error_type: ErrorType,
		severity: ErrorSeverity = ErrorSeverity.MEDIUM,
		context: dict[str, Any] | None = None,
	) -> None:
		"""
		Initialize the error.

		Args:
		    message: Human readable description
		    error_type: Category of the error
		    severity: How serious the error is
		    context: Extra details for collaborators rendering the error

		"""
		super().__init__(message)
		self.message = message
		self.error_type = error_type
		self.severity = severity
		self.context = context or {}
		self.timestamp = datetime.now(tz=UTC)


class VariableResolutionReason(str, Enum):
	"""Why a variable could not be resolved."""

	NOT_FOUND = "Variable not found"
	CIRCULAR_REFERENCE = "Circular reference detected"
	MAX_DEPTH_EXCEEDED = "Maximum resolution depth exceeded"
	INVALID_VALUE = "Invalid color value"
	IMPORT_ERROR = "Failed to resolve import"


class VariableResolutionError(ColorVarsError):
	"""A variable could not be turned into a color."""

	reason_kind = VariableResolutionReason.NOT_FOUND

	def __init__(
		self,
		variable_name: str,
		reason: str | None = None,
		*,
		depth: int = 0,
		visited: set[str] | frozenset[str] | None = None,
		context: dict[str, Any] | None = None,
	) -> None:
		"""
		Initialize the error.

		Args:
		    variable_name: The variable being resolved when the failure happened
		    reason: Optional detail, defaults to the reason of the concrete subclass
		    depth: Chain depth at which resolution failed
		    visited: Names already on the resolution path
		    context: Additional context entries

		"""
		self.variable_name = variable_name
		self.reason = reason or self.reason_kind.value
		self.depth = depth
		self.visited = frozenset(visited or ())
		super().__init__(
			f"Failed to resolve variable '{variable_name}': {self.reason}",
			ErrorType.VARIABLE_RESOLUTION,
			ErrorSeverity.LOW,
			{
				"variable_name": variable_name,
				"reason": self.reason,
				"depth": depth,
				"visited": sorted(self.visited),
				**(context or {}),
			},
		)


class VariableNotFoundError(VariableResolutionError):
	"""No definition exists for the variable."""

	reason_kind = VariableResolutionReason.NOT_FOUND


class CircularReferenceError(VariableResolutionError):
	"""The variable references itself through a chain."""

	reason_kind = VariableResolutionReason.CIRCULAR_REFERENCE


class MaxDepthExceededError(VariableResolutionError):
	"""The reference chain is longer than the configured maximum depth."""

	reason_kind = VariableResolutionReason.MAX_DEPTH_EXCEEDED


class InvalidColorValueError(VariableResolutionError):
	"""The variable resolved to text that is not a color."""

	reason_kind = VariableResolutionReason.INVALID_VALUE


class ImportResolutionError(VariableResolutionError):
	"""An imported stylesheet could not be located or read."""

	reason_kind = VariableResolutionReason.IMPORT_ERROR


class PerformanceTimeoutError(ColorVarsError):
	"""An operation exceeded its time budget."""

	def __init__(self, operation: str, timeout: float, context: dict[str, Any] | None = None) -> None:
		"""
		Initialize the error.

		Args:
		    operation: Name of the operation that timed out
		    timeout: Budget in seconds
		    context: Additional context entries

		"""
		self.operation = operation
		self.timeout = timeout
		super().__init__(
			f"Operation '{operation}' timed out after {timeout:.2f}s",
			ErrorType.PERFORMANCE_TIMEOUT,
			ErrorSeverity.HIGH,
			{"operation": operation, "timeout": timeout, **(context or {})},
		)


class SettingsValidationError(ColorVarsError):
	"""A configuration value is malformed."""

	def __init__(self, setting_key: str, value: Any, reason: str, context: dict[str, Any] | None = None) -> None:  # noqa: ANN401
		"""
		Initialize the error.

		Args:
		    setting_key: Dotted key of the offending setting
		    value: The rejected value
		    reason: Why the value was rejected
		    context: Additional context entries

		"""
		self.setting_key = setting_key
		self.value = value
		self.reason = reason
		super().__init__(
			f"Invalid setting '{setting_key}' with value '{value}': {reason}",
			ErrorType.SETTINGS_VALIDATION,
			ErrorSeverity.MEDIUM,
			{"setting_key": setting_key, "value": value, "reason": reason, **(context or {})},
		)


class ParserError(ColorVarsError):
	"""A token extractor failed unexpectedly on a document."""

	def __init__(self, parser_type: str, document_uri: str, reason: str) -> None:
		"""
		Initialize the error.

		Args:
		    parser_type: Which extractor failed
		    document_uri: The document being parsed
		    reason: Failure detail

		"""
		super().__init__(
			f"Parser error in {parser_type} for document '{document_uri}': {reason}",
			ErrorType.PARSER_ERROR,
			ErrorSeverity.MEDIUM,
			{"parser_type": parser_type, "document_uri": document_uri, "reason": reason},
		)


@dataclass
class RecentError:
	"""An error kept in the handler's bounded history."""

	error: ColorVarsError
	timestamp: datetime


@dataclass
class ErrorStats:
	"""Aggregated error statistics."""

	total_errors: int = 0
	errors_by_type: Counter[ErrorType] = field(default_factory=Counter)
	errors_by_severity: Counter[ErrorSeverity] = field(default_factory=Counter)
	recent_errors: list[RecentError] = field(default_factory=list)


_SEVERITY_LEVELS = {
	ErrorSeverity.LOW: logging.DEBUG,
	ErrorSeverity.MEDIUM: logging.WARNING,
	ErrorSeverity.HIGH: logging.ERROR,
	ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ErrorHandler:
	"""Records error statistics and logs errors according to their severity."""

	def __init__(self, max_recent_errors: int = MAX_RECENT_ERRORS) -> None:
		"""
		Initialize the handler.

		Args:
		    max_recent_errors: How many errors to keep in the recent history

		"""
		self.max_recent_errors = max_recent_errors
		self._stats = ErrorStats()
		self._warned_operations: set[str] = set()

	def handle_error(self, error: BaseException) -> None:
		"""
		Handle any error, wrapping foreign exceptions as parser errors.

		Args:
		    error: The error to record

		"""
		if isinstance(error, ColorVarsError):
			self._record(error)
			return
		wrapped = ColorVarsError(
			str(error) or type(error).__name__,
			ErrorType.PARSER_ERROR,
			ErrorSeverity.MEDIUM,
			{"original_error": type(error).__name__},
		)
		self._record(wrapped)

	def handle_variable_resolution_error(self, error: VariableResolutionError) -> None:
		"""Record a resolution failure; these are expected and only logged at debug level."""
		self._record(error)

	def handle_performance_timeout_error(self, error: PerformanceTimeoutError) -> None:
		"""
		Record a timeout.

		The first timeout of each operation is additionally logged as a warning so
		collaborators can surface it once to the user.

		"""
		self._record(error)
		if error.operation not in self._warned_operations:
			self._warned_operations.add(error.operation)
			logger.warning(
				"Operation '%s' is slow; consider narrowing the workspace or disabling workspace resolution.",
				error.operation,
			)

	def handle_settings_validation_error(self, error: SettingsValidationError) -> None:
		"""Record an invalid setting that has been replaced by its default."""
		self._record(error)

	def get_error_stats(self) -> ErrorStats:
		"""
		Return a snapshot of the error statistics.

		Returns:
		    ErrorStats: A copy of the current statistics

		"""
		return ErrorStats(
			total_errors=self._stats.total_errors,
			errors_by_type=Counter(self._stats.errors_by_type),
			errors_by_severity=Counter(self._stats.errors_by_severity),
			recent_errors=list(self._stats.recent_errors),
		)

	def clear_error_stats(self) -> None:
		"""Reset all statistics."""
		self._stats = ErrorStats()
		self._warned_operations.clear()

	def _record(self, error: ColorVarsError) -> None:
		self._stats.total_errors += 1
		self._stats.errors_by_type[error.error_type] += 1
		self._stats.errors_by_severity[error.severity] += 1
		self._stats.recent_errors.insert(0, RecentError(error=error, timestamp=error.timestamp))
		del self._stats.recent_errors[self.max_recent_errors :]

		level = _SEVERITY_LEVELS[error.severity]
		if error.severity is ErrorSeverity.CRITICAL:
			logger.log(level, "CRITICAL: %s %s", error.message, error.context)
		else:
			logger.log(level, "%s %s", error.message, error.context)


async def with_timeout(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
	"""
	Await an operation, converting an expired budget into a typed error.

	Args:
	    awaitable: The coroutine or future to await
	    timeout: Budget in seconds
	    operation: Name used in the error message

	Returns:
	    The awaited result

	Raises:
	    PerformanceTimeoutError: If the budget is exceeded

	"""
	try:
		return await asyncio.wait_for(awaitable, timeout=timeout)
	except TimeoutError as e:
		raise PerformanceTimeoutError(operation, timeout) from e


async def safe_execute(
	operation: Callable[[], Awaitable[T]],
	fallback: T,
	error_handler: ErrorHandler,
	operation_name: str,
) -> T:
	"""
	Run an async operation, reporting any failure and returning a fallback.

	Args:
	    operation: Zero-argument coroutine factory
	    fallback: Value returned on failure
	    error_handler: Handler receiving the failure
	    operation_name: Name used in the log message

	Returns:
	    The operation result, or ``fallback`` when it failed

	"""
	try:
		return await operation()
	except VariableResolutionError as e:
		error_handler.handle_variable_resolution_error(e)
	except PerformanceTimeoutError as e:
		error_handler.handle_performance_timeout_error(e)
	except ColorVarsError as e:
		error_handler.handle_error(e)
	except Exception as e:
		logger.exception("Unexpected error in %s", operation_name)
		error_handler.handle_error(e)
	return fallback


def safe_execute_sync(
	operation: Callable[[], T],
	fallback: T,
	error_handler: ErrorHandler,
	operation_name: str,
) -> T:
	"""
	Synchronous counterpart of :func:`safe_execute`.

	Args:
	    operation: Zero-argument callable
	    fallback: Value returned on failure
	    error_handler: Handler receiving the failure
	    operation_name: Name used in the log message

	Returns:
	    The operation result, or ``fallback`` when it failed

	"""
	try:
		return operation()
	except VariableResolutionError as e:
		error_handler.handle_variable_resolution_error(e)
	except ColorVarsError as e:
		error_handler.handle_error(e)
	except Exception as e:
		logger.exception("Unexpected error in %s", operation_name)
		error_handler.handle_error(e)
	return fallback
