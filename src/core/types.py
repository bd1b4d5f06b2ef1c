"""
Core types shared across modules.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for reporting.

    The ingestion run never retries, so the category only labels failures
    in the log stream for operators.

    Categories:
        TRANSIENT: Temporary broker or network failures
                   (e.g., broker not available, request timed out)
        AUTH: Authentication or authorization failures
              (e.g., SASL failure, topic authorization failed)
        PERMANENT: Failures that would not succeed if repeated
                   (e.g., message too large, invalid topic, unreadable file)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"
