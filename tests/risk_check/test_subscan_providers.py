"""
Subscan Provider Tests.

============================================================
PURPOSE
============================================================
Verify the Subscan-backed address providers.

- Account resolution per network
- Identity parsing and verification
- Transaction summary totals and token formatting
- ML scoring over live data and the identity-only fallback
- Shared, cached account/transfer lookups
============================================================
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from risk_check.addresses import ss58_encode
from risk_check.config import SubscanConfig
from risk_check.exceptions import FetchError, ProviderUnconfiguredError
from risk_check.models import Chain, EntityType, MLRecommendation
from risk_check.providers.identity import SubscanIdentityProvider, parse_identity
from risk_check.providers.ml import MLScoringProvider
from risk_check.providers.subscan import (
    SubscanAccount,
    SubscanClient,
    TransferPage,
    format_amount,
)
from risk_check.providers.transactions import TransactionSummaryProvider, summarize_transfers

from helpers import ALICE_HEX, EVM_ADDRESS, FakeResponse, FakeSession, make_entity


ALICE_ID = bytes.fromhex(ALICE_HEX[2:])
ALICE_POLKADOT = ss58_encode(ALICE_ID, 0)
ALICE_KUSAMA = ss58_encode(ALICE_ID, 2)
NOW = 1_700_000_000


def account_payload(address=ALICE_POLKADOT, balance="32500000000", display=None):
    account = {"address": address, "balance": balance}
    if display is not None:
        account["account_display"] = display
    return {"code": 0, "message": "Success", "data": {"account": account}}


def transfer(from_address, to_address, amount, timestamp, success=True):
    return {
        "from": from_address,
        "to": to_address,
        "amount": str(amount),
        "success": success,
        "block_timestamp": timestamp,
    }


def transfers_payload(transfers, count=None):
    return {
        "code": 0,
        "data": {
            "count": count if count is not None else len(transfers),
            "transfers": transfers,
        },
    }


VERIFIED_DISPLAY = {
    "address": ALICE_POLKADOT,
    "people": {
        "identity": True,
        "display": "Alice",
        "twitter": "@alice",
        "web": "https://alice.dev",
        "judgements": [{"index": 1, "judgement": "Reasonable"}],
    },
}


@pytest.fixture
def client():
    return SubscanClient(SubscanConfig(api_key="subscan-test-key"))


def route(account=None, transfers=None, account_error=None, transfers_error=None):
    """Fake SubscanClient._post dispatching on the endpoint path."""

    async def _post(network, path, body):
        if path.endswith("/scan/search"):
            if account_error:
                raise account_error
            return account if account is not None else {"code": 10004, "message": "Record Not Found"}
        if transfers_error:
            raise transfers_error
        return transfers if transfers is not None else transfers_payload([])

    return AsyncMock(side_effect=_post)


# =============================================================================
# CLIENT
# =============================================================================

class TestSubscanClient:
    """Tests for SubscanClient."""

    def test_resolve_polkadot(self, client, polkadot_entity):
        assert client.resolve(polkadot_entity) == SubscanAccount(Chain.POLKADOT, ALICE_POLKADOT)

    def test_resolve_generic_substrate_on_polkadot(self, client):
        entity = make_entity("x", EntityType.ADDRESS, ALICE_HEX, Chain.SUBSTRATE)

        assert client.resolve(entity) == SubscanAccount(Chain.POLKADOT, ALICE_POLKADOT)

    def test_resolve_kusama(self, client):
        entity = make_entity("x", EntityType.ADDRESS, ALICE_HEX, Chain.KUSAMA)

        assert client.resolve(entity) == SubscanAccount(Chain.KUSAMA, ALICE_KUSAMA)

    @pytest.mark.parametrize("chain", [Chain.ETHEREUM, Chain.ASTAR])
    def test_resolve_unsupported_chain(self, client, chain):
        entity = make_entity(EVM_ADDRESS, EntityType.ADDRESS, ALICE_HEX, chain)

        assert client.resolve(entity) is None

    def test_resolve_non_address(self, client, domain_entity):
        assert client.resolve(domain_entity) is None

    @pytest.mark.asyncio
    async def test_post_sends_api_key(self):
        session = FakeSession(FakeResponse(200, account_payload()))
        client = SubscanClient(SubscanConfig(api_key="subscan-test-key"), session=session)

        account = await client.get_account(SubscanAccount(Chain.POLKADOT, ALICE_POLKADOT))

        assert account["address"] == ALICE_POLKADOT
        request = session.requests[0]
        assert request["method"] == "POST"
        assert request["url"] == "https://polkadot.api.subscan.io/api/v2/scan/search"
        assert request["headers"] == {"X-API-Key": "subscan-test-key"}
        assert request["json"] == {"key": ALICE_POLKADOT}

    @pytest.mark.asyncio
    async def test_unconfigured_client_declines(self):
        client = SubscanClient(SubscanConfig(api_key=None))

        assert not client.is_configured
        with pytest.raises(ProviderUnconfiguredError):
            await client.get_account(SubscanAccount(Chain.POLKADOT, ALICE_POLKADOT))

    @pytest.mark.asyncio
    async def test_missing_account_not_cached(self, client):
        target = SubscanAccount(Chain.POLKADOT, ALICE_POLKADOT)
        mock_post = route(account=None)

        with patch.object(client, "_post", mock_post):
            assert await client.get_account(target) is None
            assert await client.get_account(target) is None

        assert mock_post.await_count == 2

    @pytest.mark.asyncio
    async def test_account_and_transfers_cached(self, client):
        target = SubscanAccount(Chain.POLKADOT, ALICE_POLKADOT)
        mock_post = route(
            account=account_payload(),
            transfers=transfers_payload([transfer("B", ALICE_POLKADOT, 1, NOW)]),
        )

        with patch.object(client, "_post", mock_post):
            await client.get_account_with_transfers(target)
            account, page = await client.get_account_with_transfers(target)

        assert account["balance"] == "32500000000"
        assert page.count == 1
        assert mock_post.await_count == 2

    @pytest.mark.asyncio
    async def test_transfers_request_body(self, client):
        target = SubscanAccount(Chain.KUSAMA, ALICE_KUSAMA)
        mock_post = route()

        with patch.object(client, "_post", mock_post):
            page = await client.get_transfers(target)

        assert page == TransferPage(count=0, transfers=())
        network, path, body = mock_post.call_args.args
        assert network == Chain.KUSAMA
        assert path == "/api/v2/scan/transfers"
        assert body == {"address": ALICE_KUSAMA, "row": 100, "page": 0}

    def test_format_amount(self):
        assert format_amount(1.5, Chain.POLKADOT) == "1.50000 DOT"
        assert format_amount(0.000001, Chain.KUSAMA) == "0.00000 KSM"


# =============================================================================
# IDENTITY
# =============================================================================

class TestParseIdentity:
    """Tests for parse_identity()."""

    def test_people_chain_identity(self):
        result = parse_identity({"account_display": VERIFIED_DISPLAY})

        assert result.has_identity
        assert result.is_verified
        assert result.display_name == "Alice"
        assert result.twitter == "@alice"
        assert result.web == "https://alice.dev"
        assert result.judgements[0].registrar_id == 1
        assert result.judgements[0].judgement == "Reasonable"

    def test_unverified_identity(self):
        display = {
            "display": "Bob",
            "identity": True,
            "judgements": [{"index": 0, "judgement": "FeePaid"}],
        }

        result = parse_identity({"account_display": display})

        assert result.has_identity
        assert not result.is_verified
        assert result.display_name == "Bob"

    def test_display_without_identity(self):
        result = parse_identity({"account_display": {"display": "5Grwva...utQY"}})

        assert not result.has_identity
        assert result.display_name is None

    @pytest.mark.parametrize("account", [None, {}, {"account_display": None}])
    def test_no_identity(self, account):
        result = parse_identity(account)

        assert not result.has_identity
        assert not result.is_verified
        assert result.judgements == ()


class TestIdentityProvider:
    """Tests for SubscanIdentityProvider."""

    def test_applies_to_subscan_networks_only(self, client, polkadot_entity):
        provider = SubscanIdentityProvider(client)
        evm = make_entity(EVM_ADDRESS, EntityType.ADDRESS, EVM_ADDRESS.lower(), Chain.ETHEREUM)

        assert provider.applies_to(polkadot_entity)
        assert not provider.applies_to(evm)
        assert provider.timeout == client.timeout

    def test_configuration_follows_client(self):
        provider = SubscanIdentityProvider(SubscanClient(SubscanConfig(api_key=None)))

        assert not provider.is_configured()

    @pytest.mark.asyncio
    async def test_verified_identity(self, client, polkadot_entity):
        provider = SubscanIdentityProvider(client)

        with patch.object(client, "_post", route(account=account_payload(display=VERIFIED_DISPLAY))):
            result = await provider.check(polkadot_entity)

        assert result.is_verified

    @pytest.mark.asyncio
    async def test_unknown_account_has_no_identity(self, client, polkadot_entity):
        provider = SubscanIdentityProvider(client)

        with patch.object(client, "_post", route(account=None)):
            result = await provider.check(polkadot_entity)

        assert not result.has_identity


# =============================================================================
# TRANSACTION SUMMARY
# =============================================================================

class TestTransactionSummary:
    """Tests for summarize_transfers() and TransactionSummaryProvider."""

    @pytest.mark.asyncio
    async def test_summary(self, client, polkadot_entity):
        provider = TransactionSummaryProvider(client)
        transfers = [
            transfer("B", ALICE_POLKADOT, 1.5, NOW - 300),
            transfer("C", ALICE_POLKADOT, 2.25, NOW - 200),
            transfer(ALICE_POLKADOT, "D", 0.5, NOW - 100),
            transfer("E", ALICE_POLKADOT, 100, NOW, success=False),
        ]
        mock_post = route(
            account=account_payload(),
            transfers=transfers_payload(transfers, count=42),
        )

        with patch.object(client, "_post", mock_post):
            result = await provider.check(polkadot_entity)

        assert result.total_transactions == 42
        assert result.total_received == "3.75000 DOT"
        assert result.total_sent == "0.50000 DOT"
        assert result.current_balance == "3.25000 DOT"
        assert result.last_activity_at == datetime.fromtimestamp(NOW - 100, tz=timezone.utc)

    def test_kusama_decimals(self):
        result = summarize_transfers(
            ALICE_KUSAMA,
            "2000000000000",
            TransferPage(count=0, transfers=()),
            Chain.KUSAMA,
        )

        assert result.current_balance == "2.00000 KSM"
        assert result.total_received == "0.00000 KSM"
        assert result.last_activity_at is None

    @pytest.mark.asyncio
    async def test_unknown_account_no_opinion(self, client, polkadot_entity):
        provider = TransactionSummaryProvider(client)

        with patch.object(client, "_post", route(account=None)):
            assert await provider.check(polkadot_entity) is None


# =============================================================================
# ML SCORING PROVIDER
# =============================================================================

class TestMLScoringProvider:
    """Tests for MLScoringProvider."""

    @pytest.mark.asyncio
    async def test_scores_new_account(self, client, polkadot_entity):
        provider = MLScoringProvider(client, clock=lambda: NOW)
        transfers = [
            transfer("B", ALICE_POLKADOT, 10, NOW - 3600),
            transfer(ALICE_POLKADOT, "C", 9, NOW - 1800),
        ]
        mock_post = route(account=account_payload(), transfers=transfers_payload(transfers))

        with patch.object(client, "_post", mock_post):
            result = await provider.check(polkadot_entity)

        assert result.available
        assert result.recommendation == MLRecommendation.HIGH_RISK
        assert result.top_features[0].name == "New account (< 24h)"

    @pytest.mark.asyncio
    async def test_transfers_failure_scores_identity_only(self, client, polkadot_entity):
        provider = MLScoringProvider(client, clock=lambda: NOW)
        mock_post = route(
            account=account_payload(display=VERIFIED_DISPLAY),
            transfers_error=FetchError("HTTP 502", provider_name="subscan", status_code=502),
        )

        with patch.object(client, "_post", mock_post):
            result = await provider.check(polkadot_entity)

        assert result.risk_score == 31
        assert result.recommendation == MLRecommendation.REVIEW
        assert result.confidence == 0.1167

    @pytest.mark.asyncio
    async def test_account_failure_propagates(self, client, polkadot_entity):
        provider = MLScoringProvider(client, clock=lambda: NOW)
        mock_post = route(
            account_error=FetchError("HTTP 500", provider_name="subscan", status_code=500),
        )

        with patch.object(client, "_post", mock_post):
            with pytest.raises(FetchError):
                await provider.check(polkadot_entity)

    @pytest.mark.asyncio
    async def test_unknown_account_no_opinion(self, client, polkadot_entity):
        provider = MLScoringProvider(client, clock=lambda: NOW)

        with patch.object(client, "_post", route(account=None)):
            assert await provider.check(polkadot_entity) is None

    @pytest.mark.asyncio
    async def test_close_leaves_injected_session_open(self):
        session = FakeSession()
        client = SubscanClient(SubscanConfig(api_key="k"), session=session)

        await MLScoringProvider(client).close()

        assert not session.closed
