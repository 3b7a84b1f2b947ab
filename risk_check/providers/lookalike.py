"""
Look-alike Provider - Flags handles and domains that imitate verified ones.

Compares the normalized entity against every active whitelist entry of the
same type using Levenshtein edit distance. An exact match is not a
look-alike (it is the real entity).

Domains are compared on their trailing labels only, as many as the
whitelisted domain has, so "docs.po1kadot.network" is measured as
"po1kadot.network". A whitelisted domain and its subdomains are never
look-alikes.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import Levenshtein

from risk_check.models import Entity, EntityType, LookAlikeResult, SignalKind
from risk_check.providers.base import BaseSignalProvider
from risk_check.repository import EntityRepository


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    name: str
    known_handle: str
    distance: int
    similarity: float


def is_same_site(domain: str, known: str) -> bool:
    """True for the whitelisted domain itself or any of its subdomains."""
    return domain == known or domain.endswith("." + known)


def comparable_part(domain: str, known: str) -> str:
    """Trailing labels of domain, as many as known has."""
    labels = domain.split(".")
    return ".".join(labels[-len(known.split(".")):])


def similarity_ratio(s1: str, s2: str) -> tuple[int, float]:
    """Return (edit distance, 1 - distance / longer length)."""
    a, b = s1.lower(), s2.lower()
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 0, 1.0
    dist = Levenshtein.distance(a, b)
    return dist, 1 - dist / max_len


class LookAlikeProvider(BaseSignalProvider):
    """Impersonation detection for Twitter handles and domains."""

    name = "look_alike"
    kind = SignalKind.LOOK_ALIKE
    applicable_types = frozenset({EntityType.TWITTER, EntityType.DOMAIN})

    def __init__(
        self,
        repository: EntityRepository,
        similarity_threshold: float = 0.7,
    ) -> None:
        self._repository = repository
        self._threshold = similarity_threshold

    async def check(self, entity: Entity) -> Optional[LookAlikeResult]:
        whitelisted = await self._repository.list_whitelisted(entity.entity_type)
        if not whitelisted:
            return LookAlikeResult(is_look_alike=False)

        is_domain = entity.entity_type == EntityType.DOMAIN
        if is_domain and any(
            is_same_site(entity.normalized_value, entry.normalized_value)
            for entry in whitelisted
        ):
            return LookAlikeResult(is_look_alike=False)

        best: Optional[_Candidate] = None
        for entry in whitelisted:
            value = entity.normalized_value
            if is_domain:
                value = comparable_part(value, entry.normalized_value)
            dist, similarity = similarity_ratio(value, entry.normalized_value)
            if dist == 0 or similarity <= self._threshold:
                continue
            if best is None or similarity > best.similarity:
                best = _Candidate(
                    name=entry.name,
                    known_handle=entry.normalized_value,
                    distance=dist,
                    similarity=similarity,
                )

        if best is None:
            return LookAlikeResult(is_look_alike=False)

        logger.info(
            f"[{self.name}] {entity.normalized_value} resembles "
            f"{best.known_handle} (similarity={best.similarity:.2f})"
        )
        return LookAlikeResult(
            is_look_alike=True,
            possible_impersonating=best.name,
            known_handle=best.known_handle,
            similarity=round(best.similarity, 4),
            warning=(
                f"This {'domain' if is_domain else 'handle'} is similar to "
                f"{best.name} ({best.known_handle})"
            ),
        )
