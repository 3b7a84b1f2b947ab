"""
Result Assembler - Shapes the verdict and signals into a CheckResponse.

Pure transformation. Absent signals stay None so the response can tell
"checked and clean" from "could not check". Stats are merged, never
computed here.
"""

from typing import Any, Optional

from risk_check.addresses import to_ss58
from risk_check.models import (
    Chain,
    CheckResponse,
    Entity,
    EntityStats,
    EntityType,
    ExternalLinks,
    RiskAssessment,
    SignalKind,
    SignalSet,
)


RESPONSE_FIELDS: dict[SignalKind, str] = {
    SignalKind.BLACKLIST: "blacklist",
    SignalKind.WHITELIST: "whitelist",
    SignalKind.IDENTITY: "identity",
    SignalKind.LOOK_ALIKE: "look_alike",
    SignalKind.ML_ANALYSIS: "ml_analysis",
    SignalKind.VIRUS_TOTAL: "virus_total",
    SignalKind.TRANSACTION_SUMMARY: "transaction_summary",
    SignalKind.LINKED_IDENTITIES: "linked_identities",
}

if set(RESPONSE_FIELDS) != set(SignalKind):
    raise RuntimeError("RESPONSE_FIELDS must cover every SignalKind")

# Explorer host per SS58 chain; generic prefix-42 accounts open on Polkadot
SUBSCAN_EXPLORERS: dict[Chain, Chain] = {
    Chain.POLKADOT: Chain.POLKADOT,
    Chain.KUSAMA: Chain.KUSAMA,
    Chain.ASTAR: Chain.ASTAR,
    Chain.EDGEWARE: Chain.EDGEWARE,
    Chain.SUBSTRATE: Chain.POLKADOT,
}


def block_explorer_url(entity: Entity) -> Optional[str]:
    """Explorer page for an address entity, or None for other types."""
    if entity.entity_type != EntityType.ADDRESS or entity.chain is None:
        return None
    if entity.chain == Chain.ETHEREUM:
        return f"https://etherscan.io/address/{entity.normalized_value}"
    if entity.chain == Chain.SOLANA:
        return f"https://solscan.io/account/{entity.normalized_value}"
    explorer = SUBSCAN_EXPLORERS.get(entity.chain)
    if explorer is None:
        return None
    address = to_ss58(entity.normalized_value, explorer)
    return f"https://{explorer.value}.subscan.io/account/{address}"


class ResultAssembler:
    """Builds the external CheckResponse."""

    def assemble(
        self,
        entity: Entity,
        assessment: RiskAssessment,
        signals: SignalSet,
        stats: Optional[EntityStats] = None,
    ) -> CheckResponse:
        fields: dict[str, Any] = {
            RESPONSE_FIELDS[kind]: result for kind, result in signals.items()
        }
        return CheckResponse(
            entity=entity.value,
            entity_type=entity.entity_type,
            assessment=assessment,
            chain=entity.chain,
            stats=stats,
            links=self.links(entity, signals),
            **fields,
        )

    @staticmethod
    def links(entity: Entity, signals: SignalSet) -> Optional[ExternalLinks]:
        scan = signals.virus_total
        links = ExternalLinks(
            block_explorer=block_explorer_url(entity),
            virus_total=scan.scan_url if scan else None,
        )
        return None if links.is_empty() else links
