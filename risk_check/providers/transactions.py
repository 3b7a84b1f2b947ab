"""
Transaction Summary Provider - Totals and balance for Polkadot/Kusama accounts.

Amounts are summed over the most recent page of successful transfers and
formatted with the network's native token symbol.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from risk_check.models import Chain, Entity, SignalKind, TransactionSummary
from risk_check.providers.subscan import (
    NATIVE_TOKENS,
    SubscanSignalProvider,
    TransferPage,
    format_amount,
)


logger = logging.getLogger(__name__)


def summarize_transfers(
    account_address: str,
    raw_balance: Optional[str],
    page: TransferPage,
    network: Chain,
) -> TransactionSummary:
    """Build a TransactionSummary from a transfers page and raw balance."""
    own = account_address.lower()
    received = sent = 0.0
    last_activity: Optional[int] = None

    for tx in page.transfers:
        if not tx.success:
            continue
        if tx.to_address.lower() == own:
            received += tx.amount
        else:
            sent += tx.amount
        if last_activity is None or tx.block_timestamp > last_activity:
            last_activity = tx.block_timestamp

    _, decimals = NATIVE_TOKENS[network]
    try:
        balance = float(raw_balance or 0) / (10 ** decimals)
    except (TypeError, ValueError):
        balance = 0.0

    return TransactionSummary(
        total_transactions=page.count,
        total_received=format_amount(received, network),
        total_sent=format_amount(sent, network),
        current_balance=format_amount(balance, network),
        last_activity_at=(
            datetime.fromtimestamp(last_activity, tz=timezone.utc)
            if last_activity else None
        ),
    )


class TransactionSummaryProvider(SubscanSignalProvider):
    """Transfer totals and current balance."""

    name = "transaction_summary"
    kind = SignalKind.TRANSACTION_SUMMARY

    async def check(self, entity: Entity) -> Optional[TransactionSummary]:
        target = self._client.resolve(entity)
        if target is None:
            return None

        account, page = await self._client.get_account_with_transfers(target)
        if account is None:
            return None

        return summarize_transfers(
            account.get("address") or target.address,
            account.get("balance"),
            page,
            target.network,
        )
