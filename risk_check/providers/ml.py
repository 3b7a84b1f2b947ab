"""
ML Scoring Provider - Rule-based risk scoring for Polkadot/Kusama addresses.

Risk Scoring Philosophy:
- Start at 50 (neutral/unknown)
- Risk factors push score UP (towards 100)
- Trust factors push score DOWN (towards 0)
- Each factor contributes score * importance
- Final score clamped to 0-100

Features are extracted from the account's most recent Subscan transfers.
When transfers cannot be fetched the score falls back to identity-only
features at half confidence.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass, fields
from typing import Any, Callable, Optional, Union

from risk_check.exceptions import ProviderError
from risk_check.models import (
    Entity,
    FeatureContribution,
    MLAnalysisResult,
    MLRecommendation,
    SignalKind,
)
from risk_check.providers.identity import parse_identity
from risk_check.providers.subscan import SubscanClient, SubscanSignalProvider, Transfer


logger = logging.getLogger(__name__)

DUST_THRESHOLD = 0.001  # DOT/KSM
REGULAR_PATTERN_MAX_CV = 0.3
REGULAR_PATTERN_MIN_DIFFS = 5
ACTIVE_WINDOW_SECONDS = 7 * 24 * 3600
BASE_SCORE = 50
TOP_FEATURES = 5

FeatureValue = Union[int, float, str]


@dataclass(frozen=True)
class AddressFeatures:
    """On-chain behaviour features. None means the feature is unavailable."""
    account_age_hours: Optional[float] = None
    has_identity: Optional[bool] = None
    total_transactions: Optional[int] = None
    avg_transactions_per_day: Optional[float] = None
    unique_counterparties: Optional[int] = None
    inbound_outbound_ratio: Optional[float] = None
    avg_transaction_value: Optional[float] = None
    max_transaction_value: Optional[float] = None
    avg_time_between_tx: Optional[float] = None
    has_regular_pattern: Optional[bool] = None
    is_active_now: Optional[bool] = None
    known_fraud_interactions: Optional[int] = None
    exchange_interactions: Optional[int] = None
    dust_transactions: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


CONFIDENCE_FIELDS = (
    "account_age_hours",
    "has_identity",
    "total_transactions",
    "unique_counterparties",
    "has_regular_pattern",
    "dust_transactions",
)


@dataclass(frozen=True)
class RiskFactor:
    name: str
    score: float  # positive = risky, negative = trustworthy
    importance: float
    value: FeatureValue

    @property
    def weight(self) -> float:
        return self.score * self.importance


# ============================================================
# FEATURE EXTRACTION
# ============================================================


def detect_regular_pattern(time_diffs: list[float]) -> bool:
    """Coefficient of variation below 0.3 suggests automated transfers."""
    if len(time_diffs) < REGULAR_PATTERN_MIN_DIFFS:
        return False
    mean = sum(time_diffs) / len(time_diffs)
    if mean <= 0:
        return False
    variance = sum((d - mean) ** 2 for d in time_diffs) / len(time_diffs)
    return math.sqrt(variance) / mean < REGULAR_PATTERN_MAX_CV


def extract_features(
    account_address: str,
    has_identity: bool,
    transfers: tuple[Transfer, ...],
    now: float,
) -> AddressFeatures:
    """Compute behaviour features from an account's recent transfers."""
    ordered = sorted(transfers, key=lambda t: t.block_timestamp)
    first = ordered[0] if ordered else None
    last = ordered[-1] if ordered else None
    age_hours = (now - first.block_timestamp) / 3600 if first else 0.0

    own = account_address.lower()
    counterparties: set[str] = set()
    inbound = outbound = 0
    values: list[float] = []
    timestamps: list[int] = []

    for tx in ordered:
        if not tx.success:
            continue
        values.append(tx.amount)
        timestamps.append(tx.block_timestamp)
        if tx.from_address.lower() == own:
            outbound += 1
            counterparties.add(tx.to_address)
        else:
            inbound += 1
            counterparties.add(tx.from_address)

    time_diffs = [b - a for a, b in zip(timestamps, timestamps[1:])]
    total = len(transfers)

    return AddressFeatures(
        account_age_hours=age_hours,
        has_identity=has_identity,
        total_transactions=total,
        avg_transactions_per_day=(total / age_hours) * 24 if age_hours > 0 else 0.0,
        unique_counterparties=len(counterparties),
        inbound_outbound_ratio=inbound / outbound if outbound > 0 else float(inbound),
        avg_transaction_value=sum(values) / len(values) if values else 0.0,
        max_transaction_value=max(values, default=0.0),
        avg_time_between_tx=sum(time_diffs) / len(time_diffs) if time_diffs else 0.0,
        has_regular_pattern=detect_regular_pattern(time_diffs),
        is_active_now=bool(last) and now - last.block_timestamp < ACTIVE_WINDOW_SECONDS,
        # Needs cross-reference with the blacklist and an exchange address list
        known_fraud_interactions=0,
        exchange_interactions=0,
        dust_transactions=sum(1 for v in values if v < DUST_THRESHOLD),
    )


# ============================================================
# SCORING
# ============================================================


def _age_factor(age_hours: float) -> Optional[RiskFactor]:
    if age_hours <= 0:
        return None
    if age_hours < 24:
        return RiskFactor("New account (< 24h)", 30, 0.9, f"{age_hours:.1f} hours")
    if age_hours < 168:
        return RiskFactor("Recent account (< 1 week)", 15, 0.7, f"{age_hours / 24:.1f} days")
    if age_hours < 720:
        return RiskFactor("Account < 1 month old", 5, 0.4, f"{age_hours / 24:.0f} days")
    if age_hours > 8760:
        return RiskFactor("Established account (> 1 year)", -15, 0.8, f"{age_hours / 8760:.1f} years")
    if age_hours > 4380:
        return RiskFactor("Account > 6 months old", -8, 0.6, f"{age_hours / 720:.1f} months")
    return None


def collect_risk_factors(features: AddressFeatures) -> list[RiskFactor]:
    """Evaluate every heuristic and return the factors that fired."""
    factors: list[RiskFactor] = []

    age_hours = features.account_age_hours or 0.0
    age = _age_factor(age_hours)
    if age:
        factors.append(age)

    if features.has_identity is not None:
        if features.has_identity:
            factors.append(RiskFactor("Has on-chain identity", -20, 0.95, "Yes"))
        else:
            factors.append(RiskFactor("No on-chain identity", 10, 0.5, "No"))

    tx_count = features.total_transactions or 0
    if 0 < tx_count < 3:
        factors.append(RiskFactor("Minimal transaction history", 15, 0.6, f"{tx_count} transactions"))
    elif tx_count > 100:
        factors.append(RiskFactor("Active transaction history", -10, 0.7, f"{tx_count} transactions"))
    elif tx_count > 20:
        factors.append(RiskFactor("Moderate activity", -5, 0.5, f"{tx_count} transactions"))

    counterparties = features.unique_counterparties or 0
    if counterparties > 0 and tx_count > 0:
        diversity = counterparties / tx_count
        if diversity < 0.1 and tx_count > 10:
            factors.append(RiskFactor(
                "Low counterparty diversity", 25, 0.85,
                f"{counterparties} unique / {tx_count} tx",
            ))
        elif diversity > 0.5:
            factors.append(RiskFactor(
                "High counterparty diversity", -10, 0.7,
                f"{counterparties} unique addresses",
            ))

    if features.has_regular_pattern:
        factors.append(RiskFactor("Regular timing pattern (potential bot)", 20, 0.8, "Detected"))

    per_day = features.avg_transactions_per_day or 0.0
    if per_day > 50:
        factors.append(RiskFactor("Very high transaction frequency", 15, 0.7, f"{per_day:.1f} tx/day"))

    dust = features.dust_transactions or 0
    dust_ratio = dust / tx_count if tx_count > 0 else 0.0
    if dust_ratio > 0.5 and dust > 5:
        factors.append(RiskFactor("High dust transaction ratio", 20, 0.75, f"{dust_ratio * 100:.0f}% dust"))
    elif dust > 0 and dust_ratio > 0.2:
        factors.append(RiskFactor("Some dust transactions", 8, 0.4, f"{dust} dust tx"))

    ratio = features.inbound_outbound_ratio if features.inbound_outbound_ratio is not None else 1.0
    if ratio > 10:
        factors.append(RiskFactor(
            "High inbound ratio (collection pattern)", 15, 0.6, f"{ratio:.1f}:1 in/out",
        ))
    elif ratio < 0.1 and tx_count > 5:
        value = f"1:{1 / ratio:.1f} in/out" if ratio > 0 else "outbound only"
        factors.append(RiskFactor("High outbound ratio (distribution pattern)", 20, 0.7, value))

    if features.is_active_now and age_hours > 720:
        factors.append(RiskFactor(
            "Recently active established account", -5, 0.4, "Active in last 7 days",
        ))

    fraud = features.known_fraud_interactions or 0
    if fraud > 0:
        factors.append(RiskFactor(
            "Interacted with known fraud addresses", 35, 0.95, f"{fraud} interactions",
        ))

    exchanges = features.exchange_interactions or 0
    if exchanges > 0:
        factors.append(RiskFactor("Exchange interactions", -8, 0.5, f"{exchanges} interactions"))

    return factors


def compute_confidence(features: AddressFeatures) -> float:
    """Confidence from data completeness plus a transaction-count boost."""
    available = sum(1 for name in CONFIDENCE_FIELDS if getattr(features, name) is not None)
    completeness = available / len(CONFIDENCE_FIELDS)
    tx_boost = (
        min(0.2, features.total_transactions / 500)
        if features.total_transactions is not None
        else 0.0
    )
    return min(1.0, completeness * 0.8 + tx_boost + 0.1)


def score_to_recommendation(score: int) -> MLRecommendation:
    if score < 30:
        return MLRecommendation.SAFE
    if score < 70:
        return MLRecommendation.REVIEW
    return MLRecommendation.HIGH_RISK


def score_features(features: AddressFeatures, confidence_factor: float = 1.0) -> MLAnalysisResult:
    """
    Score a feature set.

    Args:
        features: Extracted features
        confidence_factor: Multiplier applied to confidence for partial data

    Returns:
        MLAnalysisResult with score, confidence, recommendation and top features
    """
    factors = collect_risk_factors(features)
    raw = BASE_SCORE + sum(f.weight for f in factors)
    # Round half up
    score = int(math.floor(max(0.0, min(100.0, raw)) + 0.5))

    top = sorted(factors, key=lambda f: abs(f.weight), reverse=True)[:TOP_FEATURES]

    return MLAnalysisResult(
        available=True,
        risk_score=score,
        confidence=round(compute_confidence(features) * confidence_factor, 4),
        recommendation=score_to_recommendation(score),
        top_features=tuple(
            FeatureContribution(name=f.name, importance=f.importance, value=f.value)
            for f in top
        ),
    )


class MLScoringProvider(SubscanSignalProvider):
    """Heuristic risk score over Subscan account activity."""

    name = "ml_analysis"
    kind = SignalKind.ML_ANALYSIS

    IDENTITY_ONLY_CONFIDENCE = 0.5

    def __init__(
        self,
        client: SubscanClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(client)
        self._clock = clock

    async def check(self, entity: Entity) -> Optional[MLAnalysisResult]:
        target = self._client.resolve(entity)
        if target is None:
            return None

        account, transfers = await asyncio.gather(
            self._client.get_account(target),
            self._client.get_transfers(target),
            return_exceptions=True,
        )
        if isinstance(account, BaseException):
            raise account
        if account is None:
            logger.debug(f"[{self.name}] No Subscan record for {target.address}")
            return None

        has_identity = parse_identity(account).has_identity

        if isinstance(transfers, ProviderError):
            logger.warning(
                f"[{self.name}] Transfers unavailable for {target.address}, "
                f"scoring identity only: {transfers}"
            )
            return score_features(
                AddressFeatures(has_identity=has_identity),
                confidence_factor=self.IDENTITY_ONLY_CONFIDENCE,
            )
        if isinstance(transfers, BaseException):
            raise transfers

        features = extract_features(
            account.get("address") or target.address,
            has_identity,
            transfers.transfers,
            self._clock(),
        )
        result = score_features(features)
        logger.debug(
            f"[{self.name}] {target.address}: score={result.risk_score} "
            f"confidence={result.confidence}"
        )
        return result
