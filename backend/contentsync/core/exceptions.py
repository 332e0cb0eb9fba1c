"""Shared exceptions for the content sync pipeline."""

from typing import List, Optional


class ContentSyncException(Exception):
    """Base exception for the content sync pipeline."""

    def __init__(self, message: Optional[str] = "A content sync error occurred."):
        """Create a new ContentSyncException instance.

        Args:
            message: The error message
        """
        self.message = message
        super().__init__(self.message)


class ConfigurationError(ContentSyncException):
    """Raised when a client cannot be built from the current settings."""

    def __init__(self, message: str, missing_env_vars: Optional[List[str]] = None):
        """Create a new ConfigurationError instance.

        Args:
            message: The error message
            missing_env_vars: Environment variables that must be set
        """
        self.missing_env_vars = missing_env_vars or []
        if self.missing_env_vars:
            message = f"{message} Missing: {', '.join(self.missing_env_vars)}"
        super().__init__(message)


class SyncAlreadyRunningError(ContentSyncException):
    """Raised when an explicit sync request arrives while a run is in flight."""

    def __init__(self, message: Optional[str] = "Sync job already running"):
        """Create a new SyncAlreadyRunningError instance.

        Args:
            message: The error message
        """
        super().__init__(message)
