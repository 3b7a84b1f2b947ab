"""
Verdict Resolver - Merges a signal set into one RiskAssessment.

Precedence (first matching rule is final):
1. Blacklist hit                      -> FRAUD, score 100, blacklist category
2. Whitelist hit                      -> SAFE, score 0
3. VirusTotal malicious               -> FRAUD, score 90, PHISHING
4. Look-alike flagged                 -> CAUTION, score 70, IMPERSONATION
   VirusTotal suspicious              -> CAUTION, score 60
5. ML available                       -> high_risk CAUTION, review LOW_RISK,
                                         safe SAFE; score = ML score
6. 3+ user reports (stats)            -> CAUTION, score 60
7. Nothing expressed an opinion       -> UNKNOWN, no score, no confidence

Confidence is 1 - 0.5 ** n, where n counts the signals whose direction
agrees with the verdict (the deciding signal always counts, and a
report-count decision counts once for the reports).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from risk_check.exceptions import ResolutionError
from risk_check.models import (
    BlacklistResult,
    EntityStats,
    IdentityResult,
    LinkedIdentitiesResult,
    LookAlikeResult,
    MLAnalysisResult,
    MLRecommendation,
    RiskAssessment,
    RiskLevel,
    ScanVerdict,
    SignalKind,
    SignalResult,
    SignalSet,
    ThreatCategory,
    TransactionSummary,
    VirusTotalResult,
    WhitelistResult,
)


logger = logging.getLogger(__name__)

USER_REPORT_THRESHOLD = 3


class Direction(Enum):
    """Qualitative lean of one signal."""
    RISK = "risk"
    TRUST = "trust"
    NEUTRAL = "neutral"


# ─────────────────────────────────────────────────────────────
# Signal directions
# ─────────────────────────────────────────────────────────────

def _blacklist_direction(r: BlacklistResult) -> Direction:
    return Direction.RISK if r.found else Direction.NEUTRAL


def _whitelist_direction(r: WhitelistResult) -> Direction:
    return Direction.TRUST if r.found else Direction.NEUTRAL


def _identity_direction(r: IdentityResult) -> Direction:
    return Direction.TRUST if r.is_verified else Direction.NEUTRAL


def _look_alike_direction(r: LookAlikeResult) -> Direction:
    return Direction.RISK if r.is_look_alike else Direction.NEUTRAL


def _ml_direction(r: MLAnalysisResult) -> Direction:
    if not r.available:
        return Direction.NEUTRAL
    if r.recommendation == MLRecommendation.HIGH_RISK:
        return Direction.RISK
    if r.recommendation == MLRecommendation.SAFE:
        return Direction.TRUST
    return Direction.NEUTRAL


def _virus_total_direction(r: VirusTotalResult) -> Direction:
    if r.verdict in (ScanVerdict.MALICIOUS, ScanVerdict.SUSPICIOUS):
        return Direction.RISK
    if r.verdict == ScanVerdict.CLEAN:
        return Direction.TRUST
    return Direction.NEUTRAL


def _transaction_summary_direction(r: TransactionSummary) -> Direction:
    return Direction.NEUTRAL


def _linked_identities_direction(r: LinkedIdentitiesResult) -> Direction:
    if any(identity.is_verified for identity in r.identities):
        return Direction.TRUST
    return Direction.NEUTRAL


SIGNAL_DIRECTIONS: dict[SignalKind, Callable[..., Direction]] = {
    SignalKind.BLACKLIST: _blacklist_direction,
    SignalKind.WHITELIST: _whitelist_direction,
    SignalKind.IDENTITY: _identity_direction,
    SignalKind.LOOK_ALIKE: _look_alike_direction,
    SignalKind.ML_ANALYSIS: _ml_direction,
    SignalKind.VIRUS_TOTAL: _virus_total_direction,
    SignalKind.TRANSACTION_SUMMARY: _transaction_summary_direction,
    SignalKind.LINKED_IDENTITIES: _linked_identities_direction,
}

if set(SIGNAL_DIRECTIONS) != set(SignalKind):
    raise RuntimeError("SIGNAL_DIRECTIONS must cover every SignalKind")


VERDICT_DIRECTIONS: dict[RiskLevel, Direction] = {
    RiskLevel.FRAUD: Direction.RISK,
    RiskLevel.CAUTION: Direction.RISK,
    RiskLevel.LOW_RISK: Direction.TRUST,
    RiskLevel.SAFE: Direction.TRUST,
    RiskLevel.UNKNOWN: Direction.NEUTRAL,
}


def signal_direction(result: SignalResult) -> Direction:
    return SIGNAL_DIRECTIONS[result.kind](result)


# ─────────────────────────────────────────────────────────────
# Precedence rules
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Decision:
    """Output of the first matching precedence rule."""
    risk_level: RiskLevel
    risk_score: Optional[int] = None
    threat_category: Optional[ThreatCategory] = None
    deciding: Optional[SignalKind] = None
    from_reports: bool = False


Rule = Callable[[SignalSet, Optional[EntityStats]], Optional[Decision]]


def _rule_blacklist(signals: SignalSet, stats: Optional[EntityStats]) -> Optional[Decision]:
    blacklist = signals.blacklist
    if blacklist and blacklist.found:
        return Decision(
            RiskLevel.FRAUD, 100, blacklist.threat_category, SignalKind.BLACKLIST
        )
    return None


def _rule_whitelist(signals: SignalSet, stats: Optional[EntityStats]) -> Optional[Decision]:
    whitelist = signals.whitelist
    if whitelist and whitelist.found:
        return Decision(RiskLevel.SAFE, 0, None, SignalKind.WHITELIST)
    return None


def _rule_scan_malicious(signals: SignalSet, stats: Optional[EntityStats]) -> Optional[Decision]:
    scan = signals.virus_total
    if scan and scan.verdict == ScanVerdict.MALICIOUS:
        return Decision(
            RiskLevel.FRAUD, 90, ThreatCategory.PHISHING, SignalKind.VIRUS_TOTAL
        )
    return None


def _rule_suspicion(signals: SignalSet, stats: Optional[EntityStats]) -> Optional[Decision]:
    look_alike = signals.look_alike
    if look_alike and look_alike.is_look_alike:
        return Decision(
            RiskLevel.CAUTION, 70, ThreatCategory.IMPERSONATION, SignalKind.LOOK_ALIKE
        )
    scan = signals.virus_total
    if scan and scan.verdict == ScanVerdict.SUSPICIOUS:
        return Decision(RiskLevel.CAUTION, 60, None, SignalKind.VIRUS_TOTAL)
    return None


ML_LEVELS: dict[MLRecommendation, RiskLevel] = {
    MLRecommendation.HIGH_RISK: RiskLevel.CAUTION,
    MLRecommendation.REVIEW: RiskLevel.LOW_RISK,
    MLRecommendation.SAFE: RiskLevel.SAFE,
}


def _rule_ml(signals: SignalSet, stats: Optional[EntityStats]) -> Optional[Decision]:
    ml = signals.ml_analysis
    if ml is None or not ml.available or ml.recommendation is None:
        return None
    return Decision(
        ML_LEVELS[ml.recommendation], ml.risk_score, None, SignalKind.ML_ANALYSIS
    )


def _rule_user_reports(signals: SignalSet, stats: Optional[EntityStats]) -> Optional[Decision]:
    if stats and stats.user_reports >= USER_REPORT_THRESHOLD:
        return Decision(RiskLevel.CAUTION, 60, from_reports=True)
    return None


def _rule_unknown(signals: SignalSet, stats: Optional[EntityStats]) -> Optional[Decision]:
    return Decision(RiskLevel.UNKNOWN)


PRECEDENCE_RULES: tuple[Rule, ...] = (
    _rule_blacklist,
    _rule_whitelist,
    _rule_scan_malicious,
    _rule_suspicion,
    _rule_ml,
    _rule_user_reports,
    _rule_unknown,
)


class VerdictResolver:
    """
    Deterministic signal-to-verdict resolution.

    Pure: no clock, no randomness, no I/O. Resolving the same SignalSet
    and stats twice yields equal assessments.
    """

    def __init__(
        self,
        rules: tuple[Rule, ...] = PRECEDENCE_RULES,
    ) -> None:
        self._rules = rules

    def decide(
        self,
        signals: SignalSet,
        stats: Optional[EntityStats] = None,
    ) -> Decision:
        """
        Apply the precedence rules top-down.

        Raises:
            ResolutionError: No rule matched (defect in the rule table)
        """
        for rule in self._rules:
            decision = rule(signals, stats)
            if decision is not None:
                return decision
        raise ResolutionError(
            "No precedence rule matched",
            context={"signals": [k.value for k in signals]},
        )

    def resolve(
        self,
        signals: SignalSet,
        stats: Optional[EntityStats] = None,
    ) -> RiskAssessment:
        """Resolve a signal set (and optional search stats) into a RiskAssessment."""
        decision = self.decide(signals, stats)
        confidence = self.confidence(decision, signals)

        assessment = RiskAssessment(
            risk_level=decision.risk_level,
            risk_score=decision.risk_score,
            threat_category=decision.threat_category,
            confidence=confidence,
        )
        logger.debug(
            f"Resolved {assessment.risk_level.value} "
            f"(deciding={decision.deciding.value if decision.deciding else None}, "
            f"confidence={confidence})"
        )
        return assessment

    @staticmethod
    def agreeing_signals(decision: Decision, signals: SignalSet) -> frozenset[SignalKind]:
        """Signals whose direction matches the verdict, deciding signal included."""
        if decision.deciding is None and not decision.from_reports:
            return frozenset()
        verdict_direction = VERDICT_DIRECTIONS[decision.risk_level]
        agreeing = {
            kind for kind, result in signals.items()
            if signal_direction(result) == verdict_direction
        }
        if decision.deciding is not None:
            agreeing.add(decision.deciding)
        return frozenset(agreeing)

    def confidence(self, decision: Decision, signals: SignalSet) -> Optional[float]:
        count = len(self.agreeing_signals(decision, signals))
        if decision.from_reports:
            count += 1
        if count == 0:
            return None
        return round(1 - 0.5 ** count, 4)
