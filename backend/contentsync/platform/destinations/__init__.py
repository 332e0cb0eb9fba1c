"""Content stores and the upsert sink."""

from ._base import BaseContentStore, WriteResult
from .sink import UpsertResult, UpsertSink

__all__ = ["BaseContentStore", "UpsertResult", "UpsertSink", "WriteResult"]
