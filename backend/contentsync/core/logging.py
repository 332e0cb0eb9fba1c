"""Logging for the content sync pipeline.

``logger`` is the module default. Components that run inside a sync receive a
``ContextualLogger`` built by ``LoggerConfigurator.configure_logger`` so every
line carries the run's dimensions (run id, trigger, category, ...).
"""

import logging
import sys
from typing import Any, Dict, MutableMapping, Optional, Tuple

from contentsync.core.config import settings

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class _DimensionsFormatter(logging.Formatter):
    """Formatter that appends the record's dimensions as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        dimensions = getattr(record, "dimensions", None)
        if dimensions:
            rendered = " ".join(f"{key}={value}" for key, value in dimensions.items())
            message = f"{message} [{rendered}]"
        return message


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that attaches a set of dimensions to every record."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[Dict[str, Any]] = None):
        """Initialize the adapter.

        Args:
            logger: Underlying standard-library logger
            dimensions: Key/value pairs added to every record
        """
        super().__init__(logger, {})
        self.dimensions: Dict[str, Any] = dict(dimensions or {})

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        """Merge the adapter's dimensions into the record's ``extra``."""
        extra = dict(kwargs.get("extra") or {})
        dimensions = {**self.dimensions, **extra.pop("dimensions", {})}
        extra["dimensions"] = dimensions
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger carrying these dimensions on top of the current ones."""
        return ContextualLogger(self.logger, {**self.dimensions, **dimensions})


class LoggerConfigurator:
    """Builds contextual loggers sharing one handler configuration."""

    _configured = False

    @classmethod
    def _configure_root(cls) -> None:
        if cls._configured:
            return

        root = logging.getLogger("contentsync")
        root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
        if not root.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(_DimensionsFormatter(_LOG_FORMAT))
            root.addHandler(handler)
        cls._configured = True

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Create a contextual logger.

        Args:
            name: Logger name, normally under the ``contentsync`` namespace
            dimensions: Dimensions attached to every line

        Returns:
            ContextualLogger bound to ``name``
        """
        cls._configure_root()
        return ContextualLogger(logging.getLogger(name), dimensions)


logger = LoggerConfigurator.configure_logger("contentsync")
