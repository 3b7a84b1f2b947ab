"""
Identity Provider - On-chain identity for Polkadot/Kusama accounts.

Reads account_display from Subscan. Identity data may sit under
account_display.people (People chain) or directly on account_display.
An identity is verified when any registrar judged it Reasonable or
KnownGood.
"""

import logging
from typing import Any, Optional

from risk_check.models import Entity, IdentityResult, Judgement, SignalKind
from risk_check.providers.subscan import SubscanSignalProvider


logger = logging.getLogger(__name__)

VERIFIED_JUDGEMENTS = frozenset({"Reasonable", "KnownGood"})


def parse_identity(account: Optional[dict[str, Any]]) -> IdentityResult:
    """Build an IdentityResult from a Subscan account record."""
    display = (account or {}).get("account_display")
    if not display:
        return IdentityResult(has_identity=False, is_verified=False)

    people = display.get("people") or {}
    has_identity = people.get("identity") is True or display.get("identity") is True

    raw_judgements = people.get("judgements") or display.get("judgements") or []
    judgements = tuple(
        Judgement(registrar_id=int(j.get("index", 0)), judgement=str(j.get("judgement", "")))
        for j in raw_judgements
    )
    is_verified = any(j.judgement in VERIFIED_JUDGEMENTS for j in judgements)
    display_name = people.get("display") or display.get("display") or None

    return IdentityResult(
        has_identity=has_identity,
        is_verified=is_verified,
        display_name=display_name if has_identity else None,
        twitter=people.get("twitter") or None,
        web=people.get("web") or None,
        riot=people.get("riot") or None,
        judgements=judgements,
    )


class SubscanIdentityProvider(SubscanSignalProvider):
    """On-chain identity lookup."""

    name = "identity"
    kind = SignalKind.IDENTITY

    async def check(self, entity: Entity) -> Optional[IdentityResult]:
        target = self._client.resolve(entity)
        if target is None:
            return None

        account = await self._client.get_account(target)
        result = parse_identity(account)
        logger.debug(
            f"[{self.name}] {target.address} on {target.network.value}: "
            f"identity={result.has_identity} verified={result.is_verified}"
        )
        return result
