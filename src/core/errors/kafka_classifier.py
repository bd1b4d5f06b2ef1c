"""
Kafka error classification for admin and producer operations.

Maps aiokafka exception types to ErrorCategory so failures can be labelled
consistently in the log stream.
"""

from typing import Optional

from core.errors.exceptions import PipelineError
from core.types import ErrorCategory

# Kafka error classifications based on aiokafka exception types
KAFKA_ERROR_MAPPINGS = {
    ErrorCategory.TRANSIENT: [
        "BrokerNotAvailableError",
        "KafkaConnectionError",
        "NodeNotReadyError",
        "LeaderNotAvailableError",
        "NotLeaderForPartitionError",
        "NotEnoughReplicasError",
        "RequestTimedOutError",
        "KafkaTimeoutError",
        "NetworkException",
        "CorrelationIdError",
    ],
    ErrorCategory.AUTH: [
        "TopicAuthorizationFailedError",
        "ClusterAuthorizationFailedError",
        "SaslAuthenticationFailedError",
        "SaslAuthenticationError",
        "AuthenticationFailedError",
    ],
    ErrorCategory.PERMANENT: [
        "UnknownTopicOrPartitionError",
        "MessageSizeTooLargeError",
        "RecordTooLargeError",
        "InvalidTopicError",
        "InvalidConfigurationError",
        "UnsupportedVersionError",
        "IllegalStateError",
        "InvalidReplicationFactorError",
        "InvalidPartitionsError",
        "InvalidRequestError",
        "RecordBatchTooLargeError",
        "PolicyViolationError",
    ],
}

# Lowercase markers used when the exception type is not recognised
_TRANSIENT_MARKERS = ("timeout", "timed out", "connection", "unavailable")
_AUTH_MARKERS = ("authoriz", "authenticat", "sasl")


def classify_kafka_error_type(error_type_name: str) -> Optional[ErrorCategory]:
    """
    Classify Kafka error by exception type name.

    Args:
        error_type_name: Name of the exception class

    Returns:
        Matching ErrorCategory, or None if the type is not mapped
    """
    for category, error_types in KAFKA_ERROR_MAPPINGS.items():
        if error_type_name in error_types:
            return category
    return None


def classify_kafka_error(error: BaseException) -> ErrorCategory:
    """
    Classify an exception raised by aiokafka.

    PipelineError instances keep their own category. Otherwise the exception
    type name is checked first, then the message text.
    """
    if isinstance(error, PipelineError):
        return error.category

    category = classify_kafka_error_type(type(error).__name__)
    if category is not None:
        return category

    error_str = str(error).lower()
    if any(marker in error_str for marker in _AUTH_MARKERS):
        return ErrorCategory.AUTH
    if any(marker in error_str for marker in _TRANSIENT_MARKERS):
        return ErrorCategory.TRANSIENT
    return ErrorCategory.UNKNOWN
