"""Shared enums for the content sync pipeline."""

from enum import Enum


class SyncRunStatus(str, Enum):
    """Outcome of the most recent sync run."""

    NONE = "none"
    SUCCESS = "success"
    ERROR = "error"
    NO_CONTENT = "no_content"
    NO_EMBEDDINGS = "no_embeddings"


class ErrorCategory(str, Enum):
    """Failure categories used to decide retries and to report errors."""

    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"
    RATE_LIMIT = "RATE_LIMIT"
    TIMEOUT = "TIMEOUT"
    NETWORK = "NETWORK"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    SERVER_ERROR = "SERVER_ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"
    UNKNOWN = "UNKNOWN"
