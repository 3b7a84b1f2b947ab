"""
Base Signal Provider - Abstract interface for all risk signal providers.

All providers MUST:
- Declare the entity types they apply to
- Return None when they have no opinion on an entity
- Raise on failure (the invoker isolates the error)
- Receive credentials through the constructor, never from the environment
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import aiohttp

from risk_check.exceptions import FetchError, RateLimitError
from risk_check.logging_utils import mask_headers
from risk_check.models import Entity, EntityType, SignalKind, SignalResult


logger = logging.getLogger(__name__)


class BaseSignalProvider(ABC):
    """
    Abstract base class for all signal providers.

    Each provider must:
    1. Declare name, kind and applicable_types
    2. Implement check() - produce one typed SignalResult or None
    3. Override is_configured() if it needs credentials
    """

    name: str = "base"
    kind: SignalKind
    applicable_types: frozenset[EntityType] = frozenset()

    # Per-provider timeout in seconds; None uses the invoker default
    timeout: Optional[float] = None

    def applies_to(self, entity: Entity) -> bool:
        """Cheap filter evaluated before the provider is invoked."""
        return entity.entity_type in self.applicable_types

    def is_configured(self) -> bool:
        """False means the provider is skipped without affecting the verdict."""
        return True

    @abstractmethod
    async def check(self, entity: Entity) -> Optional[SignalResult]:
        """
        Compute this provider's signal for an entity.

        Args:
            entity: Classified, normalized entity

        Returns:
            SignalResult of this provider's kind, or None for no opinion

        Raises:
            ProviderError: On upstream or internal failure
        """
        pass

    async def close(self) -> None:
        """Release resources. No-op for providers without I/O."""
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, kind={self.kind.value})>"


class JsonHttpClient:
    """
    Client for a JSON HTTP API.

    Features:
    - Lazily created aiohttp session (or an injected shared one)
    - 429 mapped to RateLimitError, other >= 400 to FetchError
    - Connection errors wrapped in FetchError
    """

    name: str = "http"
    DEFAULT_TIMEOUT = 10.0
    USER_AGENT = "EntityRiskCheck/1.0"

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    # ─────────────────────────────────────────────────────────────
    # HTTP Helpers
    # ─────────────────────────────────────────────────────────────

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        """Get default HTTP headers."""
        return {
            "Accept": "application/json",
            "User-Agent": self.USER_AGENT,
        }

    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        allow_not_found: bool = False,
    ) -> Optional[dict[str, Any]]:
        """
        Make HTTP request with error handling.

        Returns:
            Decoded JSON body, or None for a 404 when allow_not_found is set

        Raises:
            RateLimitError: HTTP 429
            FetchError: Any other HTTP error or connection failure
        """
        session = await self._get_session()
        logger.debug(
            f"[{self.name}] {method} {url} headers={mask_headers(headers)}"
        )

        start_time = time.time()
        try:
            async with session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
            ) as response:
                latency_ms = (time.time() - start_time) * 1000
                logger.debug(f"[{self.name}] HTTP {response.status} in {latency_ms:.0f}ms")

                if response.status == 404 and allow_not_found:
                    return None

                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        message="Rate limit exceeded",
                        provider_name=self.name,
                        retry_after_seconds=int(retry_after) if retry_after and retry_after.isdigit() else 60,
                        request_url=url,
                    )

                if response.status >= 400:
                    body = await response.text()
                    raise FetchError(
                        message=f"HTTP {response.status}",
                        provider_name=self.name,
                        status_code=response.status,
                        response_body=body[:500],
                        request_url=url,
                    )

                return await response.json(content_type=None)

        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Connection error: {e}",
                provider_name=self.name,
                request_url=url,
                original_error=e,
            )
        except asyncio.TimeoutError as e:
            raise FetchError(
                message=f"Request timed out after {self.timeout}s",
                provider_name=self.name,
                request_url=url,
                original_error=e,
            )

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "JsonHttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class HttpSignalProvider(JsonHttpClient, BaseSignalProvider):
    """Signal provider that talks to a JSON HTTP API directly."""
