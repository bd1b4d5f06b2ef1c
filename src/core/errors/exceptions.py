"""
Exception hierarchy for the trade ingestion pipeline.

Fatal errors (SourceReadError, ProvisionError, BrokerConnectionError) abort
the run. PublishError is per-record and never stops the batch.
"""

from typing import TYPE_CHECKING, Any

from core.types import ErrorCategory

if TYPE_CHECKING:
    from trade_ingest.schemas import TradeRecord


class PipelineError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for reporting
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN
    fatal: bool = True

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


class SourceReadError(PipelineError):
    """Source file missing, unreadable, undecodable or malformed."""

    category = ErrorCategory.PERMANENT

    def __init__(
        self,
        message: str,
        path: str | None = None,
        line_number: int | None = None,
        cause: Exception | None = None,
    ):
        context: dict[str, Any] = {}
        if path is not None:
            context["path"] = path
        if line_number is not None:
            context["line_number"] = line_number
        super().__init__(message, cause, context)
        self.path = path
        self.line_number = line_number


class ProvisionError(PipelineError):
    """Topic could not be created or its leaders never became available."""

    def __init__(
        self,
        message: str,
        topic: str,
        cause: Exception | None = None,
        category: ErrorCategory | None = None,
    ):
        super().__init__(message, cause, {"topic": topic})
        self.topic = topic
        if category is not None:
            self.category = category


class BrokerConnectionError(PipelineError):
    """Producer could not connect to any bootstrap broker."""

    category = ErrorCategory.TRANSIENT

    def __init__(
        self,
        message: str,
        brokers: list[str],
        cause: Exception | None = None,
    ):
        super().__init__(message, cause, {"brokers": list(brokers)})
        self.brokers = list(brokers)


class PublishError(PipelineError):
    """A single trade record was not acknowledged by the broker."""

    fatal = False

    def __init__(
        self,
        message: str,
        record: "TradeRecord",
        topic: str,
        cause: Exception | None = None,
        category: ErrorCategory | None = None,
    ):
        super().__init__(message, cause, {"topic": topic})
        self.record = record
        self.topic = topic
        if category is not None:
            self.category = category
