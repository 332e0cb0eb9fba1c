"""Embedders and the batch embedding processor."""

from .batch_processor import EmbeddingBatchProcessor
from .openai import OpenAIEmbedder

__all__ = ["EmbeddingBatchProcessor", "OpenAIEmbedder"]
