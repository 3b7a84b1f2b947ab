"""
Subscan Client - Shared access to the Subscan explorer API.

Subscan API Docs: https://support.subscan.io/

One client backs the identity, ML scoring and transaction summary
providers. Account and transfer lookups are cached per (network, address)
with single-flight fetches, so a check that runs all three providers hits
each Subscan endpoint once.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

from risk_check.addresses import to_ss58
from risk_check.cache import SingleFlightCache
from risk_check.config import SubscanConfig
from risk_check.exceptions import FetchError, ProviderUnconfiguredError
from risk_check.models import Chain, Entity, EntityType
from risk_check.providers.base import BaseSignalProvider, JsonHttpClient


logger = logging.getLogger(__name__)

# Generic prefix-42 accounts are looked up on Polkadot
SUBSCAN_NETWORKS: dict[Chain, Chain] = {
    Chain.POLKADOT: Chain.POLKADOT,
    Chain.SUBSTRATE: Chain.POLKADOT,
    Chain.KUSAMA: Chain.KUSAMA,
}

# (symbol, decimals)
NATIVE_TOKENS: dict[Chain, tuple[str, int]] = {
    Chain.POLKADOT: ("DOT", 10),
    Chain.KUSAMA: ("KSM", 12),
}


@dataclass(frozen=True)
class Transfer:
    """One native-token transfer touching the account."""
    from_address: str
    to_address: str
    amount: float
    success: bool
    block_timestamp: int

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Transfer":
        try:
            amount = float(raw.get("amount") or 0)
        except (TypeError, ValueError):
            amount = 0.0
        return cls(
            from_address=raw.get("from") or "",
            to_address=raw.get("to") or "",
            amount=amount,
            success=bool(raw.get("success")),
            block_timestamp=int(raw.get("block_timestamp") or 0),
        )


@dataclass(frozen=True)
class TransferPage:
    """Most recent transfers plus the account's total transfer count."""
    count: int
    transfers: tuple[Transfer, ...]


@dataclass(frozen=True)
class SubscanAccount:
    """Account lookup target resolved for one network."""
    network: Chain
    address: str


class SubscanClient(JsonHttpClient):
    """
    Subscan v2 API client.

    Usage:
        client = SubscanClient(SubscanConfig(api_key="..."))
        account = await client.get_account(client.resolve(entity))
    """

    name = "subscan"

    def __init__(
        self,
        config: SubscanConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout=config.timeout_seconds, session=session)
        self._config = config
        self._accounts: SingleFlightCache[dict[str, Any]] = SingleFlightCache(
            name="subscan.accounts",
            ttl_seconds=config.cache_ttl_seconds,
        )
        self._transfers: SingleFlightCache[TransferPage] = SingleFlightCache(
            name="subscan.transfers",
            ttl_seconds=config.cache_ttl_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def resolve(self, entity: Entity) -> Optional[SubscanAccount]:
        """Map an address entity to the Subscan network and SS58 form to query."""
        if entity.entity_type != EntityType.ADDRESS or entity.chain is None:
            return None
        network = SUBSCAN_NETWORKS.get(entity.chain)
        if network is None or network not in self._config.base_urls:
            return None
        return SubscanAccount(
            network=network,
            address=to_ss58(entity.normalized_value, network),
        )

    def _url(self, network: Chain, path: str) -> str:
        return f"{self._config.base_urls[network]}{path}"

    def _auth_headers(self) -> dict[str, str]:
        return {"X-API-Key": self._config.api_key or ""}

    async def _post(self, network: Chain, path: str, body: dict[str, Any]) -> dict[str, Any]:
        if not self.is_configured:
            raise ProviderUnconfiguredError(
                "Subscan API key not configured",
                provider_name=self.name,
                config_key="SUBSCAN_API_KEY",
            )
        data = await self._make_request(
            "POST",
            self._url(network, path),
            json_body=body,
            headers=self._auth_headers(),
        )
        if not isinstance(data, dict):
            raise FetchError(
                message="Unexpected Subscan response shape",
                provider_name=self.name,
                request_url=self._url(network, path),
            )
        return data

    # ─────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────

    async def get_account(self, target: SubscanAccount) -> Optional[dict[str, Any]]:
        """
        Fetch account info (balance, account_display) via /scan/search.

        Returns:
            Account dict, or None if Subscan has no record of the address
        """
        key = f"{target.network.value}:{target.address}"
        try:
            return await self._accounts.get_or_fetch(key, lambda: self._fetch_account(target))
        except _AccountNotFound:
            return None

    async def _fetch_account(self, target: SubscanAccount) -> dict[str, Any]:
        data = await self._post(target.network, "/api/v2/scan/search", {"key": target.address})
        if data.get("code") not in (0, None):
            logger.debug(
                f"[{self.name}] Search for {target.address} returned "
                f"code={data.get('code')} ({data.get('message')})"
            )
            raise _AccountNotFound(target.address)
        account = (data.get("data") or {}).get("account")
        if not account:
            raise _AccountNotFound(target.address)
        return account

    async def get_transfers(self, target: SubscanAccount) -> TransferPage:
        """Fetch the most recent transfers page via /scan/transfers."""
        key = f"{target.network.value}:{target.address}"
        return await self._transfers.get_or_fetch(key, lambda: self._fetch_transfers(target))

    async def _fetch_transfers(self, target: SubscanAccount) -> TransferPage:
        data = await self._post(
            target.network,
            "/api/v2/scan/transfers",
            {
                "address": target.address,
                "row": self._config.transfer_page_size,
                "page": 0,
            },
        )
        payload = data.get("data") or {}
        raw_transfers = payload.get("transfers") or []
        transfers = tuple(Transfer.from_api(t) for t in raw_transfers)
        return TransferPage(
            count=int(payload.get("count") or len(transfers)),
            transfers=transfers,
        )

    async def get_account_with_transfers(
        self,
        target: SubscanAccount,
    ) -> tuple[Optional[dict[str, Any]], TransferPage]:
        """Fetch account info and transfers concurrently."""
        account, transfers = await asyncio.gather(
            self.get_account(target),
            self.get_transfers(target),
        )
        return account, transfers


class _AccountNotFound(Exception):
    """Raised inside a fetch so a missing account is not cached as a value."""


def format_amount(amount: float, network: Chain) -> str:
    symbol, _ = NATIVE_TOKENS[network]
    return f"{amount:.5f} {symbol}"


class SubscanSignalProvider(BaseSignalProvider):
    """Base for providers that read Polkadot/Kusama accounts through Subscan."""

    applicable_types = frozenset({EntityType.ADDRESS})

    def __init__(self, client: SubscanClient) -> None:
        self._client = client
        self.timeout = client.timeout

    def applies_to(self, entity: Entity) -> bool:
        return super().applies_to(entity) and self._client.resolve(entity) is not None

    def is_configured(self) -> bool:
        return self._client.is_configured

    async def close(self) -> None:
        await self._client.close()
