"""Contentstack source implementation.

Reads content types and published entries through the Content Delivery API.

References:
    https://www.contentstack.com/docs/developers/apis/content-delivery-api
"""

from typing import Any, Dict, List, Optional

import httpx

from contentsync.core.config import settings
from contentsync.core.exceptions import ConfigurationError
from contentsync.core.logging import ContextualLogger
from contentsync.platform.entities.content import ContentCategory, RecordPage
from contentsync.platform.sources._base import BaseContentSource


class ContentSourceError(Exception):
    """Error returned by the content source.

    Carries the HTTP status and the source's structured error fields so the
    error classifier can categorize it.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[Any] = None,
        error_message: Optional[str] = None,
    ):
        """Create a new ContentSourceError instance.

        Args:
            message: Human-readable error message
            status_code: HTTP status of the failed response
            error_code: Source error code from the response body
            error_message: Source error message from the response body
        """
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.error_message = error_message


class ContentstackSource(BaseContentSource):
    """Contentstack Content Delivery API client.

    Retries are not performed here; callers wrap each call in the retry engine.
    """

    API_VERSION = "v3"

    def __init__(
        self,
        api_key: str,
        delivery_token: str,
        environment: str,
        host: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the Contentstack source.

        Args:
            api_key: Stack API key
            delivery_token: Delivery token for the environment
            environment: Publishing environment name
            host: CDN host, e.g. ``cdn.contentstack.io``
            timeout: Request timeout in seconds
            client: Preconfigured HTTP client (mainly for tests)
        """
        super().__init__()
        self.environment = environment
        self.host = host
        self._client = client or httpx.AsyncClient(
            base_url=f"https://{host}/{self.API_VERSION}",
            headers={"api_key": api_key, "access_token": delivery_token},
            timeout=timeout,
        )

    @classmethod
    async def create(
        cls,
        config: Optional[Dict[str, Any]] = None,
        logger: Optional[ContextualLogger] = None,
    ) -> "ContentstackSource":
        """Create a Contentstack source from settings, overridden by ``config``.

        Raises:
            ConfigurationError: If the API key, delivery token or environment is missing
        """
        config = config or {}
        api_key = config.get("api_key", settings.CONTENTSTACK_API_KEY)
        delivery_token = config.get("delivery_token", settings.CONTENTSTACK_DELIVERY_TOKEN)
        environment = config.get("environment", settings.CONTENTSTACK_ENVIRONMENT)

        missing = [
            env_var
            for env_var, value in (
                ("CONTENTSTACK_API_KEY", api_key),
                ("CONTENTSTACK_DELIVERY_TOKEN", delivery_token),
                ("CONTENTSTACK_ENVIRONMENT", environment),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                "Contentstack configuration is incomplete. Set the variables from your "
                "stack settings.",
                missing_env_vars=missing,
            )

        instance = cls(
            api_key=api_key,
            delivery_token=delivery_token,
            environment=environment,
            host=config.get("host", settings.contentstack_host),
            timeout=config.get("timeout", settings.CONTENTSTACK_TIMEOUT),
        )
        if logger:
            instance.set_logger(logger)
        instance.logger.info(
            f"Contentstack client initialized (environment={environment}, host={instance.host})"
        )
        return instance

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET a Content Delivery API path and return the decoded body.

        Raises:
            ContentSourceError: On a non-2xx response
            httpx.TransportError: On timeouts and connection failures
        """
        response = await self._client.get(path, params=params)
        if response.is_success:
            return response.json()

        error_code = None
        error_message = None
        try:
            body = response.json()
            error_code = body.get("error_code")
            error_message = body.get("error_message")
        except ValueError:
            body = None

        message = error_message or response.reason_phrase or "request failed"
        raise ContentSourceError(
            f"Contentstack API error {response.status_code} for {path}: {message}",
            status_code=response.status_code,
            error_code=error_code,
            error_message=error_message,
        )

    async def list_categories(self) -> List[ContentCategory]:
        """List content types in the stack."""
        body = await self._get("/content_types", params={"include_count": "true"})
        content_types = body.get("content_types") or []
        categories = [
            ContentCategory(uid=ct["uid"], title=ct.get("title"))
            for ct in content_types
            if isinstance(ct, dict) and ct.get("uid")
        ]
        self.logger.debug(
            f"Fetched {len(categories)} content types: "
            f"{[c.uid for c in categories][:10]}"
        )
        return categories

    async def list_records(
        self, category: str, locale: str, limit: int, skip: int
    ) -> RecordPage:
        """Fetch a page of published entries for one content type and locale."""
        body = await self._get(
            f"/content_types/{category}/entries",
            params={
                "environment": self.environment,
                "locale": locale,
                "limit": limit,
                "skip": skip,
                "include_count": "true",
            },
        )
        entries = body.get("entries") or []
        return RecordPage(records=entries, total_count=body.get("count") or 0)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
