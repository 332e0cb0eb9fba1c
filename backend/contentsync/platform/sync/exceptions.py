"""Sync-specific exceptions for error handling."""


class RecordTransformError(Exception):
    """Raised when a single raw record cannot be converted to a canonical record.

    This is a recoverable error - the record is logged and skipped, the page
    it came from is still accumulated.
    """

    pass


class EmbeddingBatchError(Exception):
    """Raised when one embedding batch cannot be turned into valid vectors.

    This is a recoverable error - the batch's records are dropped and the
    remaining batches are still embedded.

    Examples:
    - Provider returned fewer vectors than texts
    - Provider returned vectors of the wrong dimension
    - A vector contained NaN or infinite values
    """

    pass


class SyncFailureError(Exception):
    """Raised when a critical error occurs that should fail the entire run.

    This is a non-recoverable error - the run transitions to ERROR and the
    exception is re-raised to the caller.

    Examples:
    - Category discovery failed after retries
    - Store write failed
    - No record survived validation before the store write
    """

    pass


class SyncValidationError(SyncFailureError):
    """Raised when no record survives the pre-write validation gate."""

    pass
