"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- PipelineError hierarchy for typed exceptions
- Kafka error classification for log reporting
"""

from core.errors.exceptions import (
    BrokerConnectionError,
    PipelineError,
    ProvisionError,
    PublishError,
    SourceReadError,
)
from core.errors.kafka_classifier import (
    KAFKA_ERROR_MAPPINGS,
    classify_kafka_error,
    classify_kafka_error_type,
)
from core.types import ErrorCategory

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "PipelineError",
    # Pipeline errors
    "SourceReadError",
    "ProvisionError",
    "BrokerConnectionError",
    "PublishError",
    # Classification
    "KAFKA_ERROR_MAPPINGS",
    "classify_kafka_error",
    "classify_kafka_error_type",
]
