"""
Entity Repository - Persistence collaborator for list lookups and stats.

The check pipeline only depends on the abstract EntityRepository. The
in-memory implementation backs tests and local runs; a database-backed
implementation lives with the surrounding API layer.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from risk_check.models import (
    BlacklistResult,
    Entity,
    EntityStats,
    EntityType,
    Judgement,
    ThreatCategory,
    WhitelistResult,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlacklistEntry:
    """A known-bad entity."""
    entity_type: EntityType
    normalized_value: str
    source: str
    threat_name: Optional[str] = None
    threat_category: Optional[ThreatCategory] = None
    source_url: Optional[str] = None


@dataclass(frozen=True)
class WhitelistEntry:
    """A verified legitimate entity."""
    entity_type: EntityType
    normalized_value: str
    name: str
    category: str
    is_active: bool = True
    verified_at: Optional[datetime] = None


@dataclass(frozen=True)
class IdentityRecord:
    """A synced on-chain identity, indexed by normalized twitter/web."""
    address: str
    chain: str
    display_name: Optional[str] = None
    twitter: Optional[str] = None
    web: Optional[str] = None
    has_identity: bool = True
    is_verified: bool = False
    judgements: tuple[Judgement, ...] = ()
    last_synced_at: Optional[datetime] = None


@dataclass
class _StatsRow:
    times_searched: int = 0
    user_reports: int = 0
    last_searched: Optional[datetime] = None


class EntityRepository(ABC):
    """Read-only lookups plus search bookkeeping used by a check."""

    @abstractmethod
    async def lookup_blacklist(
        self,
        normalized_value: str,
        entity_type: EntityType,
    ) -> BlacklistResult:
        """Return found=True with entry details when blacklisted."""

    @abstractmethod
    async def lookup_whitelist(
        self,
        normalized_value: str,
        entity_type: EntityType,
    ) -> WhitelistResult:
        """Return found=True with entry details when actively whitelisted."""

    @abstractmethod
    async def list_whitelisted(self, entity_type: EntityType) -> list[WhitelistEntry]:
        """All active whitelist entries of a type (look-alike candidates)."""

    @abstractmethod
    async def find_identities_by_twitter(
        self,
        handle: str,
        limit: int,
    ) -> list[IdentityRecord]:
        """Identities claiming a normalized twitter handle, verified first."""

    @abstractmethod
    async def find_identities_by_domain(
        self,
        domain: str,
        limit: int,
    ) -> list[IdentityRecord]:
        """Identities claiming a normalized web domain, verified first."""

    @abstractmethod
    async def record_search(self, entity: Entity) -> EntityStats:
        """Count a search of the entity and return its updated stats."""


class InMemoryEntityRepository(EntityRepository):
    """
    Dictionary-backed repository.

    Keys are (entity_type, normalized_value); callers must pass values
    normalized by the classifier.
    """

    def __init__(
        self,
        blacklist: Optional[list[BlacklistEntry]] = None,
        whitelist: Optional[list[WhitelistEntry]] = None,
        identities: Optional[list[IdentityRecord]] = None,
    ) -> None:
        self._blacklist: dict[tuple[EntityType, str], BlacklistEntry] = {}
        self._whitelist: dict[tuple[EntityType, str], WhitelistEntry] = {}
        self._identities: list[IdentityRecord] = list(identities or [])
        self._stats: dict[tuple[EntityType, str], _StatsRow] = {}
        self._lock = asyncio.Lock()

        for entry in blacklist or []:
            self.add_blacklist(entry)
        for entry in whitelist or []:
            self.add_whitelist(entry)

    def add_blacklist(self, entry: BlacklistEntry) -> None:
        self._blacklist[(entry.entity_type, entry.normalized_value)] = entry

    def add_whitelist(self, entry: WhitelistEntry) -> None:
        self._whitelist[(entry.entity_type, entry.normalized_value)] = entry

    def add_identity(self, record: IdentityRecord) -> None:
        self._identities.append(record)

    def add_user_report(self, entity_type: EntityType, normalized_value: str) -> None:
        row = self._stats.setdefault((entity_type, normalized_value), _StatsRow())
        row.user_reports += 1

    async def lookup_blacklist(
        self,
        normalized_value: str,
        entity_type: EntityType,
    ) -> BlacklistResult:
        entry = self._blacklist.get((entity_type, normalized_value))
        if entry is None:
            return BlacklistResult(found=False)
        return BlacklistResult(
            found=True,
            source=entry.source,
            threat_name=entry.threat_name,
            threat_category=entry.threat_category,
            source_url=entry.source_url,
        )

    async def lookup_whitelist(
        self,
        normalized_value: str,
        entity_type: EntityType,
    ) -> WhitelistResult:
        entry = self._whitelist.get((entity_type, normalized_value))
        if entry is None or not entry.is_active:
            return WhitelistResult(found=False)
        return WhitelistResult(
            found=True,
            name=entry.name,
            category=entry.category,
            verified_at=entry.verified_at,
        )

    async def list_whitelisted(self, entity_type: EntityType) -> list[WhitelistEntry]:
        return [
            entry for (kind, _), entry in self._whitelist.items()
            if kind == entity_type and entry.is_active
        ]

    async def find_identities_by_twitter(
        self,
        handle: str,
        limit: int,
    ) -> list[IdentityRecord]:
        return self._find_identities(lambda r: r.twitter == handle, limit)

    async def find_identities_by_domain(
        self,
        domain: str,
        limit: int,
    ) -> list[IdentityRecord]:
        return self._find_identities(lambda r: r.web == domain, limit)

    def _find_identities(self, predicate, limit: int) -> list[IdentityRecord]:
        matches = [r for r in self._identities if r.has_identity and predicate(r)]
        matches.sort(
            key=lambda r: (
                not r.is_verified,
                -(r.last_synced_at.timestamp() if r.last_synced_at else 0),
            )
        )
        return matches[:limit]

    async def record_search(self, entity: Entity) -> EntityStats:
        async with self._lock:
            row = self._stats.setdefault(
                (entity.entity_type, entity.normalized_value),
                _StatsRow(),
            )
            row.times_searched += 1
            row.last_searched = datetime.utcnow()
            return EntityStats(
                times_searched=row.times_searched,
                user_reports=row.user_reports,
                last_searched=row.last_searched,
            )
