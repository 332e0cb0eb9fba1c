"""Unit test conftest for setting up test environment."""

import os

# Set minimal required environment variables before importing any contentsync modules
# This keeps Settings deterministic during test collection
os.environ.setdefault("CONTENTSTACK_API_KEY", "test_api_key")
os.environ.setdefault("CONTENTSTACK_DELIVERY_TOKEN", "test_delivery_token")
os.environ.setdefault("CONTENTSTACK_ENVIRONMENT", "test")
os.environ.setdefault("CONTENTSTACK_LOCALES", "en-us")
os.environ.setdefault("CONTENT_BASE_URL", "https://example.com")
os.environ.setdefault("SYNC_PAGE_DELAY", "0")
os.environ.setdefault("EMBEDDING_BATCH_DELAY", "0")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test_user")
os.environ.setdefault("POSTGRES_PASSWORD", "test_password")
os.environ.setdefault("POSTGRES_DB", "test_db")

import pytest  # noqa: E402

from contentsync.platform.sync.retry_helpers import RetryPolicy  # noqa: E402


@pytest.fixture
def fast_retry_policy():
    """Retry policy with no waiting between attempts."""
    return RetryPolicy(max_retries=2, base_delay=0, max_delay=0, jitter=0)
