"""
Core library: infrastructure pieces shared by the ingestion pipeline.

Modules:
    logging     - Console and JSON logging with run context
    errors      - Error classification and exception hierarchy
"""

from .types import ErrorCategory

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
]
