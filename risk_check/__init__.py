"""
Risk Check Package - Entity risk aggregation for crypto fraud detection.

Checks a chain address, domain/URL, Twitter handle or email against every
applicable risk signal and resolves them into one verdict.

Quick Start:
    from risk_check import Settings, create_default_service

    async def check(value: str):
        async with create_default_service(Settings.from_env()) as service:
            response = await service.check_entity(value)
            print(response.assessment.risk_level)
            return response.to_dict()

Pipeline:
- classify()          raw string -> Entity (type + normalized value)
- SignalInvoker       concurrent providers, per-provider timeout, isolation
- VerdictResolver     fixed precedence -> RiskAssessment
- ResultAssembler     verdict + signals + stats -> CheckResponse

Adding New Providers:
    class NewProvider(BaseSignalProvider):
        name = "new_provider"
        kind = SignalKind.NEW_KIND
        applicable_types = frozenset({EntityType.DOMAIN})

        async def check(self, entity): ...

    New signal kinds must be added to the resolver's direction table and
    the assembler's field table; both are checked at import.
"""

from risk_check.assembler import ResultAssembler
from risk_check.cache import SingleFlightCache
from risk_check.classifier import classify, detect_entity_type, normalize_domain
from risk_check.config import (
    InvokerConfig,
    LookAlikeConfig,
    Settings,
    SubscanConfig,
    VirusTotalConfig,
)
from risk_check.exceptions import (
    FetchError,
    InvalidInputError,
    ProviderError,
    ProviderTimeoutError,
    ProviderUnconfiguredError,
    RateLimitError,
    ResolutionError,
    RiskCheckError,
    UnclassifiableEntityError,
)
from risk_check.invoker import InvocationReport, SignalInvoker
from risk_check.logging_utils import setup_logging
from risk_check.models import (
    Chain,
    CheckResponse,
    Entity,
    EntityStats,
    EntityType,
    ExternalLinks,
    RiskAssessment,
    RiskLevel,
    ScanVerdict,
    SignalKind,
    SignalResult,
    SignalSet,
    ThreatCategory,
)
from risk_check.providers import BaseSignalProvider
from risk_check.repository import EntityRepository, InMemoryEntityRepository
from risk_check.resolver import VerdictResolver
from risk_check.service import BatchCheckResult, RiskCheckService, create_default_service
from risk_check.severity import SeverityPolicy


__all__ = [
    # Service
    "RiskCheckService",
    "BatchCheckResult",
    "create_default_service",
    # Pipeline
    "classify",
    "detect_entity_type",
    "normalize_domain",
    "SignalInvoker",
    "InvocationReport",
    "VerdictResolver",
    "SeverityPolicy",
    "ResultAssembler",
    "BaseSignalProvider",
    "SingleFlightCache",
    # Persistence
    "EntityRepository",
    "InMemoryEntityRepository",
    # Models
    "Chain",
    "CheckResponse",
    "Entity",
    "EntityStats",
    "EntityType",
    "ExternalLinks",
    "RiskAssessment",
    "RiskLevel",
    "ScanVerdict",
    "SignalKind",
    "SignalResult",
    "SignalSet",
    "ThreatCategory",
    # Config
    "Settings",
    "VirusTotalConfig",
    "SubscanConfig",
    "LookAlikeConfig",
    "InvokerConfig",
    "setup_logging",
    # Exceptions
    "RiskCheckError",
    "InvalidInputError",
    "UnclassifiableEntityError",
    "ProviderError",
    "FetchError",
    "RateLimitError",
    "ProviderTimeoutError",
    "ProviderUnconfiguredError",
    "ResolutionError",
]
