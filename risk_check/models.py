"""
Risk Check Data Models - Entities, signal results and the final verdict.

All models are request-scoped. Signal results and assessments are frozen;
they are built once per check and never mutated afterwards.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional, TypeVar


class EntityType(Enum):
    """Kinds of entity that can be checked."""
    ADDRESS = "ADDRESS"
    DOMAIN = "DOMAIN"
    TWITTER = "TWITTER"
    EMAIL = "EMAIL"


class Chain(Enum):
    """Chains whose address formats the classifier recognises."""
    POLKADOT = "polkadot"
    KUSAMA = "kusama"
    ASTAR = "astar"
    EDGEWARE = "edgeware"
    SUBSTRATE = "substrate"
    ETHEREUM = "ethereum"
    SOLANA = "solana"


class RiskLevel(Enum):
    """Resolved risk level. Declaration order is not severity order."""
    SAFE = "SAFE"
    LOW_RISK = "LOW_RISK"
    UNKNOWN = "UNKNOWN"
    CAUTION = "CAUTION"
    FRAUD = "FRAUD"


class ThreatCategory(Enum):
    """Threat categories attached to blacklist entries and verdicts."""
    PHISHING = "PHISHING"
    SCAM = "SCAM"
    RUG_PULL = "RUG_PULL"
    IMPERSONATION = "IMPERSONATION"
    FAKE_AIRDROP = "FAKE_AIRDROP"
    RANSOMWARE = "RANSOMWARE"
    MIXER = "MIXER"
    OFAC_SANCTIONED = "OFAC_SANCTIONED"
    OTHER = "OTHER"


class SignalKind(Enum):
    """Closed set of signal provider kinds."""
    BLACKLIST = "blacklist"
    WHITELIST = "whitelist"
    IDENTITY = "identity"
    LOOK_ALIKE = "look_alike"
    ML_ANALYSIS = "ml_analysis"
    VIRUS_TOTAL = "virus_total"
    TRANSACTION_SUMMARY = "transaction_summary"
    LINKED_IDENTITIES = "linked_identities"


class ScanVerdict(Enum):
    """Malware/URL-reputation verdict."""
    CLEAN = "clean"
    MALICIOUS = "malicious"
    SUSPICIOUS = "suspicious"
    UNKNOWN = "unknown"


class MLRecommendation(Enum):
    """Recommendation derived from the ML risk score."""
    SAFE = "safe"
    REVIEW = "review"
    HIGH_RISK = "high_risk"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ============================================================
# ENTITY
# ============================================================


@dataclass(frozen=True)
class Entity:
    """A classified, normalized value being checked."""
    value: str
    entity_type: EntityType
    normalized_value: str
    chain: Optional[Chain] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "entityType": self.entity_type.value,
            "normalizedValue": self.normalized_value,
            "chain": self.chain.value if self.chain else None,
        }


# ============================================================
# SIGNAL RESULTS
# ============================================================


@dataclass(frozen=True)
class SignalResult:
    """Base class for the typed output of one signal provider."""

    kind: ClassVar[SignalKind]

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class BlacklistResult(SignalResult):
    kind: ClassVar[SignalKind] = SignalKind.BLACKLIST

    found: bool
    source: Optional[str] = None
    threat_name: Optional[str] = None
    threat_category: Optional[ThreatCategory] = None
    source_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "source": self.source,
            "threatName": self.threat_name,
            "threatCategory": self.threat_category.value if self.threat_category else None,
            "sourceUrl": self.source_url,
        }


@dataclass(frozen=True)
class WhitelistResult(SignalResult):
    kind: ClassVar[SignalKind] = SignalKind.WHITELIST

    found: bool
    name: Optional[str] = None
    category: Optional[str] = None
    verified_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "name": self.name,
            "category": self.category,
            "verifiedAt": _iso(self.verified_at),
        }


@dataclass(frozen=True)
class Judgement:
    """A registrar judgement on an on-chain identity."""
    registrar_id: int
    judgement: str

    def to_dict(self) -> dict[str, Any]:
        return {"registrarId": self.registrar_id, "judgement": self.judgement}


@dataclass(frozen=True)
class IdentityResult(SignalResult):
    kind: ClassVar[SignalKind] = SignalKind.IDENTITY

    has_identity: bool
    is_verified: bool
    display_name: Optional[str] = None
    twitter: Optional[str] = None
    web: Optional[str] = None
    riot: Optional[str] = None
    judgements: tuple[Judgement, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasIdentity": self.has_identity,
            "isVerified": self.is_verified,
            "displayName": self.display_name,
            "twitter": self.twitter,
            "web": self.web,
            "riot": self.riot,
            "judgements": [j.to_dict() for j in self.judgements],
        }


@dataclass(frozen=True)
class LookAlikeResult(SignalResult):
    kind: ClassVar[SignalKind] = SignalKind.LOOK_ALIKE

    is_look_alike: bool
    possible_impersonating: Optional[str] = None
    known_handle: Optional[str] = None
    similarity: Optional[float] = None
    warning: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "isLookAlike": self.is_look_alike,
            "possibleImpersonating": self.possible_impersonating,
            "knownHandle": self.known_handle,
            "similarity": self.similarity,
            "warning": self.warning,
        }


@dataclass(frozen=True)
class FeatureContribution:
    """One factor that moved the ML risk score."""
    name: str
    importance: float
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "importance": self.importance, "value": self.value}


@dataclass(frozen=True)
class MLAnalysisResult(SignalResult):
    kind: ClassVar[SignalKind] = SignalKind.ML_ANALYSIS

    available: bool
    risk_score: Optional[int] = None
    confidence: Optional[float] = None
    recommendation: Optional[MLRecommendation] = None
    top_features: tuple[FeatureContribution, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "available": self.available,
            "riskScore": self.risk_score,
            "confidence": self.confidence,
            "recommendation": self.recommendation.value if self.recommendation else None,
            "topFeatures": [f.to_dict() for f in self.top_features],
        }


@dataclass(frozen=True)
class VirusTotalResult(SignalResult):
    kind: ClassVar[SignalKind] = SignalKind.VIRUS_TOTAL

    verdict: ScanVerdict
    positives: int
    total: int
    scan_url: str
    top_engines: Optional[tuple[str, ...]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "positives": self.positives,
            "total": self.total,
            "scanUrl": self.scan_url,
            "topEngines": list(self.top_engines) if self.top_engines else None,
        }


@dataclass(frozen=True)
class TransactionSummary(SignalResult):
    kind: ClassVar[SignalKind] = SignalKind.TRANSACTION_SUMMARY

    total_transactions: int
    total_received: str
    total_sent: str
    current_balance: str
    last_activity_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalTransactions": self.total_transactions,
            "totalReceived": self.total_received,
            "totalSent": self.total_sent,
            "currentBalance": self.current_balance,
            "lastActivityAt": _iso(self.last_activity_at),
        }


@dataclass(frozen=True)
class LinkedIdentity:
    """An on-chain identity that claims a handle or domain."""
    address: str
    chain: str
    display_name: Optional[str]
    is_verified: bool
    matched_field: str
    judgements: tuple[Judgement, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "chain": self.chain,
            "displayName": self.display_name,
            "isVerified": self.is_verified,
            "matchedField": self.matched_field,
            "judgements": [j.to_dict() for j in self.judgements],
        }


@dataclass(frozen=True)
class LinkedIdentitiesResult(SignalResult):
    kind: ClassVar[SignalKind] = SignalKind.LINKED_IDENTITIES

    found: bool
    count: int
    identities: tuple[LinkedIdentity, ...] = ()
    has_more: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "count": self.count,
            "identities": [i.to_dict() for i in self.identities],
            "hasMore": self.has_more,
        }


SIGNAL_RESULT_TYPES: dict[SignalKind, type[SignalResult]] = {
    SignalKind.BLACKLIST: BlacklistResult,
    SignalKind.WHITELIST: WhitelistResult,
    SignalKind.IDENTITY: IdentityResult,
    SignalKind.LOOK_ALIKE: LookAlikeResult,
    SignalKind.ML_ANALYSIS: MLAnalysisResult,
    SignalKind.VIRUS_TOTAL: VirusTotalResult,
    SignalKind.TRANSACTION_SUMMARY: TransactionSummary,
    SignalKind.LINKED_IDENTITIES: LinkedIdentitiesResult,
}

if set(SIGNAL_RESULT_TYPES) != set(SignalKind):
    raise RuntimeError("SIGNAL_RESULT_TYPES must cover every SignalKind")


_R = TypeVar("_R", bound=SignalResult)


class SignalSet(Mapping[SignalKind, SignalResult]):
    """
    Immutable, partial mapping from signal kind to result.

    A kind missing from the set means the provider expressed no opinion
    (not applicable, unconfigured, failed or timed out). It never means
    "safe".
    """

    __slots__ = ("_results",)

    def __init__(self, results: Optional[Mapping[SignalKind, SignalResult]] = None) -> None:
        validated: dict[SignalKind, SignalResult] = {}
        for kind, result in (results or {}).items():
            expected = SIGNAL_RESULT_TYPES[kind]
            if not isinstance(result, expected):
                raise TypeError(
                    f"Signal {kind.value} expects {expected.__name__}, "
                    f"got {type(result).__name__}"
                )
            validated[kind] = result
        # Stable iteration order regardless of arrival order
        self._results = {k: validated[k] for k in SignalKind if k in validated}

    @classmethod
    def of(cls, *results: SignalResult) -> "SignalSet":
        """Build a set from results, keyed by each result's kind."""
        return cls({r.kind: r for r in results})

    def __getitem__(self, kind: SignalKind) -> SignalResult:
        return self._results[kind]

    def __iter__(self) -> Iterator[SignalKind]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __repr__(self) -> str:
        return f"SignalSet({[k.value for k in self._results]})"

    def typed(self, kind: SignalKind, expected: type[_R]) -> Optional[_R]:
        result = self._results.get(kind)
        return result if isinstance(result, expected) else None

    @property
    def blacklist(self) -> Optional[BlacklistResult]:
        return self.typed(SignalKind.BLACKLIST, BlacklistResult)

    @property
    def whitelist(self) -> Optional[WhitelistResult]:
        return self.typed(SignalKind.WHITELIST, WhitelistResult)

    @property
    def identity(self) -> Optional[IdentityResult]:
        return self.typed(SignalKind.IDENTITY, IdentityResult)

    @property
    def look_alike(self) -> Optional[LookAlikeResult]:
        return self.typed(SignalKind.LOOK_ALIKE, LookAlikeResult)

    @property
    def ml_analysis(self) -> Optional[MLAnalysisResult]:
        return self.typed(SignalKind.ML_ANALYSIS, MLAnalysisResult)

    @property
    def virus_total(self) -> Optional[VirusTotalResult]:
        return self.typed(SignalKind.VIRUS_TOTAL, VirusTotalResult)

    @property
    def transaction_summary(self) -> Optional[TransactionSummary]:
        return self.typed(SignalKind.TRANSACTION_SUMMARY, TransactionSummary)

    @property
    def linked_identities(self) -> Optional[LinkedIdentitiesResult]:
        return self.typed(SignalKind.LINKED_IDENTITIES, LinkedIdentitiesResult)


# ============================================================
# VERDICT & RESPONSE
# ============================================================


@dataclass(frozen=True)
class RiskAssessment:
    """The resolved verdict for one check. Never mutated."""
    risk_level: RiskLevel
    risk_score: Optional[int] = None
    threat_category: Optional[ThreatCategory] = None
    confidence: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "riskLevel": self.risk_level.value,
            "riskScore": self.risk_score,
            "threatCategory": self.threat_category.value if self.threat_category else None,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class EntityStats:
    """Bookkeeping stats owned by the persistence layer."""
    times_searched: int = 0
    user_reports: int = 0
    last_searched: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timesSearched": self.times_searched,
            "userReports": self.user_reports,
            "lastSearched": _iso(self.last_searched),
        }


@dataclass(frozen=True)
class ExternalLinks:
    block_explorer: Optional[str] = None
    virus_total: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.block_explorer or self.virus_total)

    def to_dict(self) -> dict[str, Any]:
        data = {}
        if self.block_explorer:
            data["blockExplorer"] = self.block_explorer
        if self.virus_total:
            data["virusTotal"] = self.virus_total
        return data


@dataclass(frozen=True)
class CheckResponse:
    """
    Full external contract for one check.

    Signal fields are None when the provider gave no opinion; to_dict()
    omits them so consumers can tell "checked and clean" from
    "could not check".
    """
    entity: str
    entity_type: EntityType
    assessment: RiskAssessment
    chain: Optional[Chain] = None
    blacklist: Optional[BlacklistResult] = None
    whitelist: Optional[WhitelistResult] = None
    identity: Optional[IdentityResult] = None
    look_alike: Optional[LookAlikeResult] = None
    ml_analysis: Optional[MLAnalysisResult] = None
    virus_total: Optional[VirusTotalResult] = None
    transaction_summary: Optional[TransactionSummary] = None
    linked_identities: Optional[LinkedIdentitiesResult] = None
    stats: Optional[EntityStats] = None
    links: Optional[ExternalLinks] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "entity": self.entity,
            "entityType": self.entity_type.value,
            "assessment": self.assessment.to_dict(),
        }
        if self.chain:
            data["chain"] = self.chain.value
        for key, value in (
            ("blacklist", self.blacklist),
            ("whitelist", self.whitelist),
            ("identity", self.identity),
            ("lookAlike", self.look_alike),
            ("mlAnalysis", self.ml_analysis),
            ("virusTotal", self.virus_total),
            ("transactionSummary", self.transaction_summary),
            ("linkedIdentities", self.linked_identities),
            ("stats", self.stats),
        ):
            if value is not None:
                data[key] = value.to_dict()
        if self.links and not self.links.is_empty():
            data["links"] = self.links.to_dict()
        return data


@dataclass
class ProviderIncident:
    """A provider failure recorded by the invoker for diagnostics."""
    provider_name: str
    incident_type: str
    message: str
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_name": self.provider_name,
            "incident_type": self.incident_type,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
