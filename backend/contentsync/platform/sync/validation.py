"""Validation gates applied between pipeline phases."""

from typing import Any, List, Sequence, Tuple

from contentsync.core.logging import ContextualLogger
from contentsync.platform.entities.content import EmbeddedRecord

REQUIRED_RECORD_FIELDS = ("id", "title", "category", "locale")
REQUIRED_WRITE_FIELDS = REQUIRED_RECORD_FIELDS + ("embedding",)
VALIDATION_SAMPLE_SIZE = 5
MAX_LOGGED_REASONS = 5


def _field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def missing_fields(record: Any, required: Sequence[str]) -> List[str]:
    """Names of required fields that are absent or empty on ``record``."""
    return [name for name in required if not _field(record, name)]


def validate_fetch_result(records: Any, logger: ContextualLogger) -> bool:
    """Check the shape of a fetch result before it is embedded.

    The result must be a list; the first few records must carry every
    required field. An empty list is valid (there is simply nothing to sync).
    """
    if not isinstance(records, list):
        logger.error(f"Fetch result is not a list: {type(records).__name__}")
        return False
    if not records:
        logger.warning("Fetch result is empty")
        return True

    for position, record in enumerate(records[:VALIDATION_SAMPLE_SIZE]):
        if record is None or isinstance(record, (str, bytes, int, float)):
            logger.error(f"Record {position} is not a valid record: {record!r}")
            return False
        missing = missing_fields(record, REQUIRED_RECORD_FIELDS)
        if missing:
            logger.error(f"Record {position} is missing required fields: {missing}")
            return False

    categories = {_field(record, "category") for record in records}
    locales = {_field(record, "locale") for record in records}
    logger.debug(
        f"Fetch result validated: {len(records)} records, {len(categories)} content types, "
        f"{len(locales)} locales"
    )
    return True


def partition_writable(
    records: List[EmbeddedRecord], logger: ContextualLogger
) -> Tuple[List[EmbeddedRecord], int]:
    """Split embedded records into writable ones and a count of discarded ones.

    Up to ``MAX_LOGGED_REASONS`` discard reasons are logged.
    """
    writable = []
    reasons = []
    for record in records:
        missing = missing_fields(record, REQUIRED_WRITE_FIELDS)
        if missing:
            reasons.append(f"{_field(record, 'id') or 'unknown'}: missing {missing}")
            continue
        writable.append(record)

    discarded = len(records) - len(writable)
    if discarded:
        logger.warning(
            f"Discarding {discarded} invalid records before write: "
            f"{reasons[:MAX_LOGGED_REASONS]}"
        )
    return writable, discarded
