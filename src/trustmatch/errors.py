"""Tagged error families for connectors and reconciliation.

Both families carry the same payload (code, message, suggestion,
context, trace) so that :func:`to_actionable_message` renders any of
them uniformly for an operator or an automated caller.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from trustmatch.telemetry import TraceContext

__all__ = [
    "ErrorKind",
    "ConnectorErrorCode",
    "ReconciliationErrorCode",
    "TrustMatchError",
    "ConnectorError",
    "ReconciliationError",
    "to_actionable_message",
    "wrap_error",
]


class ErrorKind(StrEnum):
    """How an error affects a run.

    Attributes
    ----------
    CONFIGURATION : str
        Invalid input configuration; raised before any I/O or comparison.
    DATA_ACCESS : str
        A connector failed to supply records.
    """

    CONFIGURATION = "configuration"
    DATA_ACCESS = "data_access"


class ConnectorErrorCode(StrEnum):
    """Failure codes raised by record connectors."""

    CONNECTION_FAILED = "CONNECTION_FAILED"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    SCHEMA_MISMATCH = "SCHEMA_MISMATCH"
    WRITE_FAILED = "WRITE_FAILED"
    READ_FAILED = "READ_FAILED"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNKNOWN = "UNKNOWN"


class ReconciliationErrorCode(StrEnum):
    """Failure codes raised by the reconciliation engine."""

    SOURCE_NOT_CONNECTED = "SOURCE_NOT_CONNECTED"
    TARGET_NOT_CONNECTED = "TARGET_NOT_CONNECTED"
    INVALID_OPTIONS = "INVALID_OPTIONS"
    INVALID_THRESHOLDS = "INVALID_THRESHOLDS"
    INVALID_RULE = "INVALID_RULE"
    UNKNOWN_FIELD = "UNKNOWN_FIELD"
    EMPTY_COMPOSITE = "EMPTY_COMPOSITE"
    MISSING_WEIGHTS = "MISSING_WEIGHTS"
    RECONCILIATION_ERROR = "RECONCILIATION_ERROR"


_DEFAULT_SUGGESTIONS: dict[str, str] = {
    ConnectorErrorCode.CONNECTION_FAILED: (
        "Check that the data source is reachable and the connection settings are correct."
    ),
    ConnectorErrorCode.AUTHENTICATION_FAILED: (
        "Verify the credentials configured for this connector."
    ),
    ConnectorErrorCode.NOT_FOUND: "Check that the requested resource exists.",
    ConnectorErrorCode.VALIDATION_ERROR: "Review the request parameters against the source schema.",
    ConnectorErrorCode.PERMISSION_DENIED: (
        "Grant the connector read access to the requested resource."
    ),
    ConnectorErrorCode.RATE_LIMITED: "Wait before retrying or lower the request rate.",
    ConnectorErrorCode.TIMEOUT: "Retry later or increase the connector timeout.",
    ConnectorErrorCode.SCHEMA_MISMATCH: "Update the field mapping to match the source schema.",
    ConnectorErrorCode.READ_FAILED: "Check that the source data is readable and well formed.",
    ConnectorErrorCode.WRITE_FAILED: "Check write permissions and available storage on the target.",
    ConnectorErrorCode.UNSUPPORTED_OPERATION: "Use an operation supported by this connector type.",
    ConnectorErrorCode.CONFIGURATION_ERROR: "Review the connector configuration.",
    ReconciliationErrorCode.SOURCE_NOT_CONNECTED: (
        "Connect the source connector before reconciling."
    ),
    ReconciliationErrorCode.TARGET_NOT_CONNECTED: (
        "Connect the target connector before reconciling."
    ),
    ReconciliationErrorCode.INVALID_OPTIONS: "Review the reconciliation options.",
    ReconciliationErrorCode.INVALID_THRESHOLDS: (
        "Use 0 <= review_threshold <= match_threshold <= 100."
    ),
    ReconciliationErrorCode.INVALID_RULE: "Fix the matching rule definition.",
    ReconciliationErrorCode.UNKNOWN_FIELD: "Reference only fields present in the source schema.",
    ReconciliationErrorCode.EMPTY_COMPOSITE: "Provide at least one similarity configuration.",
    ReconciliationErrorCode.MISSING_WEIGHTS: "Provide one weight per similarity configuration.",
}

_DATA_ACCESS_CODES = frozenset(
    {
        ConnectorErrorCode.CONNECTION_FAILED,
        ConnectorErrorCode.AUTHENTICATION_FAILED,
        ConnectorErrorCode.NOT_FOUND,
        ConnectorErrorCode.PERMISSION_DENIED,
        ConnectorErrorCode.RATE_LIMITED,
        ConnectorErrorCode.TIMEOUT,
        ConnectorErrorCode.READ_FAILED,
        ConnectorErrorCode.WRITE_FAILED,
        ConnectorErrorCode.UNKNOWN,
        ReconciliationErrorCode.SOURCE_NOT_CONNECTED,
        ReconciliationErrorCode.TARGET_NOT_CONNECTED,
    }
)


class TrustMatchError(Exception):
    """Base for tagged errors.

    Attributes
    ----------
    code : StrEnum
        Machine-readable error code.
    message : str
        Human-readable description.
    suggestion : str | None
        Remediation hint; defaults to the code's standard suggestion.
    context : dict[str, Any]
        Free-form diagnostic payload.
    trace : TraceContext | None
        Trace metadata of the failing invocation.
    """

    code: StrEnum

    def __init__(
        self,
        code: StrEnum,
        message: str,
        *,
        suggestion: str | None = None,
        context: dict[str, Any] | None = None,
        trace: TraceContext | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion if suggestion is not None else _DEFAULT_SUGGESTIONS.get(code)
        self.context = dict(context or {})
        self.trace = trace

    @property
    def kind(self) -> ErrorKind:
        """Error kind derived from the code."""
        if self.code in _DATA_ACCESS_CODES:
            return ErrorKind.DATA_ACCESS
        return ErrorKind.CONFIGURATION

    def with_trace(self, trace: TraceContext | None) -> TrustMatchError:
        """Attach *trace* unless the error already carries one; returns self."""
        if trace is not None and self.trace is None:
            self.trace = trace
        return self

    def to_actionable_message(self) -> str:
        """Render the error for an operator."""
        return to_actionable_message(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_class": type(self).__name__,
            "code": str(self.code),
            "kind": str(self.kind),
            "message": self.message,
            "suggestion": self.suggestion,
            "context": self.context,
            "trace": self.trace.to_dict() if self.trace is not None else None,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={str(self.code)!r}, message={self.message!r})"


class ConnectorError(TrustMatchError):
    """Failure reported by (or on behalf of) a record connector."""

    code: ConnectorErrorCode

    def __init__(
        self,
        code: ConnectorErrorCode,
        message: str,
        *,
        connector_id: str | None = None,
        suggestion: str | None = None,
        context: dict[str, Any] | None = None,
        trace: TraceContext | None = None,
    ) -> None:
        super().__init__(code, message, suggestion=suggestion, context=context, trace=trace)
        self.connector_id = connector_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = super().to_dict()
        data["connector_id"] = self.connector_id
        return data


class ReconciliationError(TrustMatchError):
    """Failure raised by the reconciliation engine itself."""

    code: ReconciliationErrorCode

    def __init__(
        self,
        code: ReconciliationErrorCode,
        message: str,
        *,
        suggestion: str | None = None,
        context: dict[str, Any] | None = None,
        trace: TraceContext | None = None,
    ) -> None:
        super().__init__(code, message, suggestion=suggestion, context=context, trace=trace)


def to_actionable_message(error: TrustMatchError) -> str:
    """Render any tagged error as a multi-line operator message.

    Parameters
    ----------
    error : TrustMatchError
        Connector or reconciliation error.

    Returns
    -------
    str
        ``Error [CODE]: message`` followed by optional connector, trace
        and suggested-action lines.
    """
    lines = [f"Error [{error.code}]: {error.message}"]
    connector_id = getattr(error, "connector_id", None)
    if connector_id:
        lines.append(f"Connector: {connector_id}")
    if error.trace is not None:
        lines.append(f"Trace: {error.trace.trace_id}")
    if error.suggestion:
        lines.append(f"Suggested action: {error.suggestion}")
    return "\n".join(lines)


def wrap_error(
    exc: BaseException,
    connector_id: str | None = None,
    code: ConnectorErrorCode = ConnectorErrorCode.UNKNOWN,
    *,
    trace: TraceContext | None = None,
) -> TrustMatchError:
    """Convert a foreign exception into a ``ConnectorError``.

    Tagged errors pass through unchanged apart from the trace, which is
    added when missing. Timeouts and missing files map to their codes.
    """
    if isinstance(exc, TrustMatchError):
        return exc.with_trace(trace)

    if isinstance(exc, TimeoutError):
        code = ConnectorErrorCode.TIMEOUT
    elif isinstance(exc, FileNotFoundError):
        code = ConnectorErrorCode.NOT_FOUND
    elif isinstance(exc, PermissionError):
        code = ConnectorErrorCode.PERMISSION_DENIED

    message = str(exc) or type(exc).__name__
    return ConnectorError(
        code,
        message,
        connector_id=connector_id,
        context={"original_error": type(exc).__name__},
        trace=trace,
    )
