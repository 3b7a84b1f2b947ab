"""
Severity Policy - Pluggable ordering of risk levels.

Used to rank and compare verdicts (e.g. the most severe result of a batch).
Never used to reorder the resolver's precedence rules.
"""

from typing import Iterable, Optional, Sequence

from risk_check.models import RiskLevel


DEFAULT_SEVERITY_ORDER: tuple[RiskLevel, ...] = (
    RiskLevel.SAFE,
    RiskLevel.LOW_RISK,
    RiskLevel.UNKNOWN,
    RiskLevel.CAUTION,
    RiskLevel.FRAUD,
)


class SeverityPolicy:
    """
    Total order over RiskLevel, least to most severe.

    Usage:
        policy = SeverityPolicy()
        policy.most_severe([RiskLevel.SAFE, RiskLevel.CAUTION])  # CAUTION
    """

    def __init__(self, order: Sequence[RiskLevel] = DEFAULT_SEVERITY_ORDER) -> None:
        if len(order) != len(set(order)) or set(order) != set(RiskLevel):
            raise ValueError("Severity order must list every RiskLevel exactly once")
        self._order = tuple(order)
        self._rank = {level: i for i, level in enumerate(self._order)}

    @property
    def order(self) -> tuple[RiskLevel, ...]:
        return self._order

    def rank(self, level: RiskLevel) -> int:
        return self._rank[level]

    def is_more_severe(self, a: RiskLevel, b: RiskLevel) -> bool:
        return self._rank[a] > self._rank[b]

    def most_severe(self, levels: Iterable[RiskLevel]) -> Optional[RiskLevel]:
        """Most severe level, or None for an empty input."""
        return max(levels, key=self.rank, default=None)

    def sort(self, levels: Iterable[RiskLevel], descending: bool = False) -> list[RiskLevel]:
        return sorted(levels, key=self.rank, reverse=descending)

    def __repr__(self) -> str:
        return f"SeverityPolicy({' < '.join(level.value for level in self._order)})"
