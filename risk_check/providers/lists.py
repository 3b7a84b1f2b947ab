"""
Blacklist / Whitelist Providers - Curated list lookups.

Both apply to every entity type and delegate to the repository. A miss is
still an opinion (found=False), not an absence.
"""

import logging
from typing import Optional

from risk_check.models import (
    BlacklistResult,
    Entity,
    EntityType,
    SignalKind,
    WhitelistResult,
)
from risk_check.providers.base import BaseSignalProvider
from risk_check.repository import EntityRepository


logger = logging.getLogger(__name__)

ALL_ENTITY_TYPES = frozenset(EntityType)


class BlacklistProvider(BaseSignalProvider):
    """Looks the normalized entity up in the curated blacklist."""

    name = "blacklist"
    kind = SignalKind.BLACKLIST
    applicable_types = ALL_ENTITY_TYPES

    def __init__(self, repository: EntityRepository) -> None:
        self._repository = repository

    async def check(self, entity: Entity) -> Optional[BlacklistResult]:
        result = await self._repository.lookup_blacklist(
            entity.normalized_value,
            entity.entity_type,
        )
        if result.found:
            logger.info(
                f"[{self.name}] Hit for {entity.entity_type.value} "
                f"{entity.normalized_value} (source={result.source})"
            )
        return result


class WhitelistProvider(BaseSignalProvider):
    """Looks the normalized entity up in the verified whitelist."""

    name = "whitelist"
    kind = SignalKind.WHITELIST
    applicable_types = ALL_ENTITY_TYPES

    def __init__(self, repository: EntityRepository) -> None:
        self._repository = repository

    async def check(self, entity: Entity) -> Optional[WhitelistResult]:
        return await self._repository.lookup_whitelist(
            entity.normalized_value,
            entity.entity_type,
        )
