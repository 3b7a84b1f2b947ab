"""
Risk Check Service - Single entry point for checking an entity.

Flow:
    raw string -> classify -> (invoke providers || record search)
               -> resolve -> assemble -> CheckResponse

Only input errors reach the caller. Provider failures reduce the signal
set; a stats failure leaves stats absent.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import aiohttp
from pydantic import ValidationError

from risk_check.assembler import ResultAssembler
from risk_check.classifier import classify
from risk_check.config import Settings
from risk_check.exceptions import InvalidInputError
from risk_check.invoker import SignalInvoker
from risk_check.models import CheckResponse, Entity, EntityStats, RiskLevel
from risk_check.providers import (
    BlacklistProvider,
    LinkedIdentitiesProvider,
    LookAlikeProvider,
    MLScoringProvider,
    SubscanClient,
    SubscanIdentityProvider,
    TransactionSummaryProvider,
    VirusTotalProvider,
    WhitelistProvider,
)
from risk_check.repository import EntityRepository, InMemoryEntityRepository
from risk_check.resolver import VerdictResolver
from risk_check.schemas import MAX_BATCH_SIZE, BatchCheckRequest
from risk_check.severity import SeverityPolicy


logger = logging.getLogger(__name__)


@dataclass
class BatchFailure:
    """An entity in a batch that could not be checked."""
    entity: str
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"entity": self.entity, "error": {"code": self.code, "message": self.message}}


@dataclass
class BatchCheckResult:
    """Per-entity results of a batch check, in request order."""
    results: list[Union[CheckResponse, BatchFailure]] = field(default_factory=list)
    most_severe: Optional[RiskLevel] = None

    @property
    def total_processed(self) -> int:
        return len(self.results)

    @property
    def total_failed(self) -> int:
        return sum(1 for r in self.results if isinstance(r, BatchFailure))

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "totalProcessed": self.total_processed,
            "totalFailed": self.total_failed,
            "mostSevere": self.most_severe.value if self.most_severe else None,
        }


class RiskCheckService:
    """
    Entity risk check orchestration.

    Usage:
        service = create_default_service(Settings.from_env())
        response = await service.check_entity("@Polkadot")
        print(response.assessment.risk_level)
    """

    def __init__(
        self,
        invoker: SignalInvoker,
        repository: EntityRepository,
        resolver: Optional[VerdictResolver] = None,
        assembler: Optional[ResultAssembler] = None,
        severity: Optional[SeverityPolicy] = None,
    ) -> None:
        self._invoker = invoker
        self._repository = repository
        self._resolver = resolver or VerdictResolver()
        self._assembler = assembler or ResultAssembler()
        self._severity = severity or SeverityPolicy()

    @property
    def invoker(self) -> SignalInvoker:
        return self._invoker

    async def check_entity(self, raw: str) -> CheckResponse:
        """
        Check one raw entity string.

        Args:
            raw: Address, domain/URL, Twitter handle or email

        Returns:
            CheckResponse with verdict, present signals, stats and links

        Raises:
            InvalidInputError: Empty input
            UnclassifiableEntityError: Input matches no entity shape
        """
        entity = classify(raw)

        report, stats = await asyncio.gather(
            self._invoker.invoke(entity),
            self._record_search(entity),
        )

        assessment = self._resolver.resolve(report.signals, stats)
        response = self._assembler.assemble(entity, assessment, report.signals, stats)

        logger.info(
            f"Checked {entity.entity_type.value} {entity.normalized_value}: "
            f"{assessment.risk_level.value} "
            f"(signals={[k.value for k in report.signals]}, "
            f"incidents={len(report.incidents)})"
        )
        return response

    async def _record_search(self, entity: Entity) -> Optional[EntityStats]:
        try:
            return await self._repository.record_search(entity)
        except Exception as e:
            logger.warning(f"Failed to record search for {entity.normalized_value}: {e}")
            return None

    async def check_batch(self, raws: list[str]) -> BatchCheckResult:
        """
        Check up to MAX_BATCH_SIZE entities concurrently.

        A failing entity becomes a BatchFailure; it never fails the batch.

        Raises:
            InvalidInputError: Batch is empty or too large
        """
        try:
            request = BatchCheckRequest(entities=raws)
        except ValidationError as e:
            raise InvalidInputError(
                f"Batch must contain 1 to {MAX_BATCH_SIZE} entities",
                context={"size": len(raws), "errors": e.error_count()},
            ) from e

        results = await asyncio.gather(
            *(self._check_one(raw) for raw in request.entities)
        )
        levels = [
            r.assessment.risk_level for r in results if isinstance(r, CheckResponse)
        ]
        return BatchCheckResult(
            results=list(results),
            most_severe=self._severity.most_severe(levels),
        )

    async def _check_one(self, raw: str) -> Union[CheckResponse, BatchFailure]:
        try:
            return await self.check_entity(raw)
        except InvalidInputError as e:
            return BatchFailure(entity=raw, code=e.code, message=e.message)
        except Exception as e:
            logger.error(f"Batch check failed for {raw!r}: {e}")
            return BatchFailure(
                entity=raw,
                code="INTERNAL_ERROR",
                message="Failed to check entity",
            )

    async def close(self) -> None:
        await self._invoker.close()

    async def __aenter__(self) -> "RiskCheckService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def create_default_service(
    settings: Optional[Settings] = None,
    repository: Optional[EntityRepository] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> RiskCheckService:
    """
    Wire every provider from settings.

    Args:
        settings: Configuration; loaded from the environment when omitted
        repository: Persistence collaborator; in-memory when omitted
        session: Shared aiohttp session for HTTP providers

    Returns:
        Ready-to-use RiskCheckService
    """
    settings = settings or Settings.from_env()
    repository = repository or InMemoryEntityRepository()

    subscan = SubscanClient(settings.subscan, session=session)
    providers = [
        BlacklistProvider(repository),
        WhitelistProvider(repository),
        LookAlikeProvider(repository, settings.look_alike.similarity_threshold),
        LinkedIdentitiesProvider(repository),
        VirusTotalProvider(settings.virustotal, session=session),
        SubscanIdentityProvider(subscan),
        MLScoringProvider(subscan),
        TransactionSummaryProvider(subscan),
    ]

    logger.info(f"Risk check service configured: {settings.to_dict()}")
    return RiskCheckService(
        invoker=SignalInvoker(
            providers,
            default_timeout=settings.invoker.default_timeout_seconds,
        ),
        repository=repository,
    )
