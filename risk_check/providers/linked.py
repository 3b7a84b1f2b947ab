"""
Linked Identities Provider - Reverse lookup of on-chain identities.

Finds synced on-chain identities whose twitter or web field claims the
checked handle or domain. Verified identities are listed first.
"""

import logging
from typing import Optional

from risk_check.models import (
    Entity,
    EntityType,
    LinkedIdentitiesResult,
    LinkedIdentity,
    SignalKind,
)
from risk_check.providers.base import BaseSignalProvider
from risk_check.repository import EntityRepository


logger = logging.getLogger(__name__)


class LinkedIdentitiesProvider(BaseSignalProvider):
    """Reverse identity lookup for Twitter handles and domains."""

    name = "linked_identities"
    kind = SignalKind.LINKED_IDENTITIES
    applicable_types = frozenset({EntityType.TWITTER, EntityType.DOMAIN})

    MAX_RESULTS = 10

    def __init__(self, repository: EntityRepository) -> None:
        self._repository = repository

    async def check(self, entity: Entity) -> Optional[LinkedIdentitiesResult]:
        # One extra row tells us whether more exist
        if entity.entity_type == EntityType.TWITTER:
            records = await self._repository.find_identities_by_twitter(
                entity.normalized_value, self.MAX_RESULTS + 1
            )
            matched_field = "twitter"
        else:
            records = await self._repository.find_identities_by_domain(
                entity.normalized_value, self.MAX_RESULTS + 1
            )
            matched_field = "web"

        has_more = len(records) > self.MAX_RESULTS
        records = records[:self.MAX_RESULTS]

        identities = tuple(
            LinkedIdentity(
                address=r.address,
                chain=r.chain,
                display_name=r.display_name,
                is_verified=r.is_verified,
                matched_field=matched_field,
                judgements=r.judgements,
            )
            for r in records
        )
        return LinkedIdentitiesResult(
            found=bool(identities),
            count=len(identities),
            identities=identities,
            has_more=has_more,
        )
