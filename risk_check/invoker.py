"""
Signal Invoker - Concurrent fan-out over signal providers.

Features:
- Providers filtered by applicability and configuration before launch
- All applicable providers run concurrently, each under its own timeout
- A failing or slow provider only loses its own entry
- Waits for every provider to settle; no retries
- Caller cancellation cancels every in-flight provider
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from risk_check.exceptions import (
    FetchError,
    ProviderTimeoutError,
    ProviderUnconfiguredError,
)
from risk_check.models import (
    SIGNAL_RESULT_TYPES,
    Entity,
    ProviderIncident,
    SignalKind,
    SignalResult,
    SignalSet,
)
from risk_check.providers.base import BaseSignalProvider


logger = logging.getLogger(__name__)


@dataclass
class InvocationReport:
    """Outcome of one fan-out: collected signals plus diagnostics."""
    signals: SignalSet
    incidents: list[ProviderIncident] = field(default_factory=list)
    skipped_unconfigured: list[str] = field(default_factory=list)


@dataclass
class _Outcome:
    provider: BaseSignalProvider
    result: Optional[SignalResult] = None
    incident: Optional[ProviderIncident] = None
    declined: bool = False


class SignalInvoker:
    """
    Runs every applicable provider for an entity and collects the results.

    Usage:
        invoker = SignalInvoker([BlacklistProvider(repo), VirusTotalProvider(cfg)])
        signals = await invoker.run_all(entity)

    Never raises on provider failure. Only caller cancellation propagates.
    """

    def __init__(
        self,
        providers: Iterable[BaseSignalProvider],
        default_timeout: float = 10.0,
        max_incidents: int = 500,
    ) -> None:
        self._providers = list(providers)
        self._default_timeout = default_timeout

        kinds = [p.kind for p in self._providers]
        duplicates = {k.value for k in kinds if kinds.count(k) > 1}
        if duplicates:
            raise ValueError(f"Duplicate providers for signal kinds: {sorted(duplicates)}")

        # Diagnostic log across runs
        self._incidents: list[ProviderIncident] = []
        self._max_incidents = max_incidents

    @property
    def providers(self) -> list[BaseSignalProvider]:
        return list(self._providers)

    def select(self, entity: Entity) -> tuple[list[BaseSignalProvider], list[str]]:
        """Return (providers to run, names skipped as unconfigured)."""
        selected: list[BaseSignalProvider] = []
        skipped: list[str] = []
        for provider in self._providers:
            if not provider.applies_to(entity):
                continue
            if not provider.is_configured():
                logger.info(f"[{provider.name}] Not configured, skipping")
                skipped.append(provider.name)
                continue
            selected.append(provider)
        return selected, skipped

    async def run_all(self, entity: Entity) -> SignalSet:
        """Run all applicable providers and return the collected signals."""
        report = await self.invoke(entity)
        return report.signals

    async def invoke(self, entity: Entity) -> InvocationReport:
        """
        Run all applicable providers and return signals plus incidents.

        Raises:
            asyncio.CancelledError: Caller cancelled; all providers are cancelled
        """
        selected, skipped = self.select(entity)
        if not selected:
            return InvocationReport(signals=SignalSet(), skipped_unconfigured=skipped)

        # gather cancels every child when the awaiting task is cancelled
        outcomes = await asyncio.gather(
            *(self._invoke_one(provider, entity) for provider in selected)
        )

        results: dict[SignalKind, SignalResult] = {}
        incidents: list[ProviderIncident] = []
        for outcome in outcomes:
            if outcome.declined:
                skipped.append(outcome.provider.name)
            elif outcome.incident:
                incidents.append(outcome.incident)
            elif outcome.result is not None:
                results[outcome.provider.kind] = outcome.result

        self._record_incidents(incidents)
        logger.debug(
            f"Invoked {len(selected)} providers for {entity.entity_type.value}: "
            f"{len(results)} signals, {len(incidents)} incidents"
        )
        return InvocationReport(
            signals=SignalSet(results),
            incidents=incidents,
            skipped_unconfigured=skipped,
        )

    async def _invoke_one(self, provider: BaseSignalProvider, entity: Entity) -> _Outcome:
        timeout = provider.timeout if provider.timeout is not None else self._default_timeout
        try:
            result = await asyncio.wait_for(self._check(provider, entity), timeout=timeout)
        except ProviderUnconfiguredError as e:
            logger.info(f"[{provider.name}] Declined: {e.message}")
            return _Outcome(provider, declined=True)
        except asyncio.TimeoutError:
            error = ProviderTimeoutError(
                f"No result within {timeout}s",
                provider_name=provider.name,
                timeout_seconds=timeout,
            )
            return _Outcome(provider, incident=self._incident(provider, error))
        except Exception as e:
            return _Outcome(provider, incident=self._incident(provider, e))

        if result is None:
            return _Outcome(provider)

        expected = SIGNAL_RESULT_TYPES[provider.kind]
        if not isinstance(result, expected):
            logger.error(
                f"[{provider.name}] Discarding {type(result).__name__}, "
                f"expected {expected.__name__}"
            )
            return _Outcome(
                provider,
                incident=ProviderIncident(
                    provider_name=provider.name,
                    incident_type="ProviderDefect",
                    message=(
                        f"Returned {type(result).__name__}, "
                        f"expected {expected.__name__}"
                    ),
                ),
            )
        return _Outcome(provider, result=result)

    @staticmethod
    async def _check(provider: BaseSignalProvider, entity: Entity) -> Optional[SignalResult]:
        # A provider's own timeout is an upstream failure
        try:
            return await provider.check(entity)
        except asyncio.TimeoutError as e:
            raise FetchError(
                "Upstream timed out",
                provider_name=provider.name,
                original_error=e,
            ) from e

    def _incident(self, provider: BaseSignalProvider, error: Exception) -> ProviderIncident:
        logger.warning(f"[{provider.name}] Incident: {error}")
        return ProviderIncident(
            provider_name=provider.name,
            incident_type=error.__class__.__name__,
            message=str(error),
        )

    def _record_incidents(self, incidents: list[ProviderIncident]) -> None:
        if not incidents:
            return
        self._incidents.extend(incidents)
        if len(self._incidents) > self._max_incidents:
            self._incidents = self._incidents[-self._max_incidents:]

    def get_incidents(self, limit: int = 50) -> list[ProviderIncident]:
        """Get recent incidents across runs."""
        return self._incidents[-limit:]

    async def close(self) -> None:
        """Close every provider."""
        for provider in self._providers:
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"[{provider.name}] Close failed: {e}")
