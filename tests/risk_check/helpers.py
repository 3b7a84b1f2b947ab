"""
Test helpers shared across risk check tests.
"""

import asyncio
from typing import Any, Optional

from risk_check.models import Chain, Entity, EntityType, SignalKind, SignalResult
from risk_check.providers.base import BaseSignalProvider


# Well-known development account "Alice"
ALICE_SUBSTRATE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
ALICE_HEX = "0xd43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d"

EVM_ADDRESS = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"


class StubProvider(BaseSignalProvider):
    """Configurable provider for invoker and service tests."""

    def __init__(
        self,
        kind: SignalKind,
        result: Optional[SignalResult] = None,
        applicable_types: frozenset = frozenset(EntityType),
        delay: float = 0.0,
        error: Optional[Exception] = None,
        configured: bool = True,
        timeout: Optional[float] = None,
        name: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.name = name or f"stub_{kind.value}"
        self.applicable_types = applicable_types
        self.timeout = timeout
        self._result = result
        self._delay = delay
        self._error = error
        self._configured = configured
        self.calls = 0
        self.cancelled = False
        self.closed = False

    def is_configured(self) -> bool:
        return self._configured

    async def check(self, entity: Entity) -> Any:
        self.calls += 1
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self._error:
            raise self._error
        return self._result

    async def close(self) -> None:
        self.closed = True


def make_entity(
    value: str = "example.com",
    entity_type: EntityType = EntityType.DOMAIN,
    normalized_value: Optional[str] = None,
    chain: Optional[Chain] = None,
) -> Entity:
    return Entity(
        value=value,
        entity_type=entity_type,
        normalized_value=normalized_value or value.lower(),
        chain=chain,
    )


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(
        self,
        status: int = 200,
        payload: Any = None,
        headers: Optional[dict[str, str]] = None,
        text: str = "",
    ) -> None:
        self.status = status
        self._payload = payload
        self.headers = headers or {}
        self._text = text

    async def json(self, content_type: Optional[str] = "application/json") -> Any:
        return self._payload

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None


class FakeSession:
    """Records requests and replays queued responses or errors."""

    def __init__(self, *responses: Any) -> None:
        self._responses = list(responses)
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True
