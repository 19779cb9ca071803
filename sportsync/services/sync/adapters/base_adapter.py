"""
Base adapter for provider HTTP access.

The base adapter provides:
- Sliding-window rate limiting shared by every call to one provider
- Retry with exponential backoff for transport errors and 5xx answers
- 429 handling: sleep for Retry-After, then try again (not counted as a failure)
- normalize()/normalize_many() dispatch to the provider's pure normalizers

Usage:
    class CustomAdapter(ProviderAdapter):
        provider = "custom"
        normalizers = {"team": normalize_team}

    adapter = CustomAdapter(base_url="https://example.test", headers={...})
    payloads = await adapter.get_list("/teams", {"league": 1})
    teams, errors = adapter.normalize_many("team", payloads)
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from sportsync.core.logging import get_logger
from sportsync.core.metrics import record_provider_request_failure, record_provider_request_success
from sportsync.models.canonical import CanonicalRecord
from sportsync.services.core.rate_limiter import SlidingWindowRateLimiter
from sportsync.services.sync.exceptions import MalformedPayloadError, ProviderError
from sportsync.services.sync.normalizers.base import normalize_many

logger = get_logger(__name__)

# Errors worth another attempt; anything else fails the request immediately
RETRYABLE_ERRORS = (httpx.RequestError, httpx.TimeoutException)

DEFAULT_RETRY_AFTER = 5.0
MAX_RATE_LIMITED_RETRIES = 5


class RetryableProviderError(ProviderError):
    """5xx answer from a provider; retried with backoff."""


class ProviderAdapter:
    """
    Base class for provider adapters.

    Subclasses set ``provider`` and ``normalizers`` and implement the
    ``fetch_*`` methods on top of get()/get_list().

    Attributes:
        provider: Provider name tag carried by every normalized record
        normalizers: Entity type -> pure normalizer function
        rate_limiter: Sliding-window limiter for this provider
    """

    provider: str = ""
    normalizers: Dict[str, Callable[..., CanonicalRecord]] = {}

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        max_attempts: int = 3,
        retry_wait: Any = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the adapter.

        Args:
            base_url: Provider base URL
            headers: Authentication headers sent with every request
            rate_limiter: Shared limiter (a 100 req/60 s limiter when omitted)
            timeout: Request timeout in seconds
            client: Pre-built httpx client (tests pass one with a MockTransport)
            max_attempts: Attempts per request for retryable errors
            retry_wait: tenacity wait strategy (exponential 2-10 s by default)
            sleep: Async sleep used for 429 backoff
        """
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(name=self.provider or "default")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self._sleep = sleep
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout,
            )
        return self._client

    async def _get_once(self, path: str, params: Optional[Dict[str, Any]]) -> Any:
        """One rate-limited GET; 429 answers wait and try again."""
        for _ in range(MAX_RATE_LIMITED_RETRIES + 1):
            await self.rate_limiter.acquire()
            response = await self.client.get(f"{self.base_url}{path}", params=params, headers=self.headers)

            if response.status_code == 429:
                wait_time = _retry_after_seconds(response)
                logger.warning(f"{self.provider} rate limited on {path}, waiting {wait_time:.1f}s before retry")
                record_provider_request_failure(self.provider, "rate_limited")
                await self._sleep(wait_time)
                continue

            if response.status_code >= 500:
                raise RetryableProviderError(self.provider, response.status_code, response.text[:200])

            if response.status_code >= 400:
                raise ProviderError(self.provider, response.status_code, response.text[:200])

            try:
                return response.json()
            except ValueError as e:
                raise ProviderError(self.provider, response.status_code, f"invalid JSON: {e}")

        raise ProviderError(self.provider, 429, f"still rate limited after {MAX_RATE_LIMITED_RETRIES} retries")

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a provider endpoint with rate limiting and retries.

        Returns:
            Parsed JSON body

        Raises:
            ProviderError: When the provider stays unavailable or rejects the request
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=self.retry_wait,
                retry=retry_if_exception_type(RETRYABLE_ERRORS + (RetryableProviderError,)),
                reraise=True,
            ):
                with attempt:
                    body = await self._get_once(path, params)
        except ProviderError as e:
            record_provider_request_failure(self.provider, f"http_{e.status}")
            logger.error(f"{self.provider} request {path} failed: {e}")
            raise
        except RETRYABLE_ERRORS as e:
            record_provider_request_failure(self.provider, type(e).__name__)
            logger.error(f"{self.provider} request {path} failed after {self.max_attempts} attempts: {e}")
            raise ProviderError(self.provider, None, str(e)) from e

        record_provider_request_success(self.provider)
        self.check_body(body)
        return body

    def check_body(self, body: Any) -> None:
        """Hook for providers that report errors inside a 200 body."""

    def extract_items(self, body: Any) -> List[Dict[str, Any]]:
        """Pull the record list out of a response body."""
        if isinstance(body, list):
            return body
        if isinstance(body, dict):
            for key in ("response", "data", "results"):
                items = body.get(key)
                if isinstance(items, list):
                    return items
            return [body] if body else []
        return []

    async def get_list(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """GET an endpoint and return its record list."""
        return self.extract_items(await self.get(path, params))

    # ─── Normalization ───────────────────────────────────────────────────

    def normalize(self, entity_type: str, payload: Dict[str, Any], **context: Any) -> CanonicalRecord:
        """
        Convert one raw payload into a canonical record.

        Raises:
            MalformedPayloadError: If the payload lacks an id or name
        """
        normalizer = self.normalizers.get(entity_type)
        if normalizer is None:
            raise MalformedPayloadError(entity_type, self.provider, None, "entity type not supported")
        return normalizer(payload, **context)

    def normalize_many(
        self,
        entity_type: str,
        payloads: List[Dict[str, Any]],
        **context: Any,
    ) -> Tuple[List[CanonicalRecord], List[MalformedPayloadError]]:
        """Normalize a batch; malformed payloads are skipped and returned as errors."""
        normalizer = self.normalizers.get(entity_type)
        if normalizer is None:
            raise MalformedPayloadError(entity_type, self.provider, None, "entity type not supported")
        return normalize_many(normalizer, payloads, **context)

    async def close(self):
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def _retry_after_seconds(response: httpx.Response) -> float:
    value = response.headers.get("Retry-After")
    if value is None:
        return DEFAULT_RETRY_AFTER
    try:
        return max(0.0, float(value))
    except ValueError:
        return DEFAULT_RETRY_AFTER
