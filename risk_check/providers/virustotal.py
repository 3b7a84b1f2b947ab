"""
VirusTotal Provider - Domain and URL reputation via the VirusTotal v3 API.

API Docs: https://developers.virustotal.com/reference/overview

Verdict rules (over last_analysis_stats):
- positives = malicious + suspicious
- clean       if positives == 0
- malicious   if malicious >= 3 or positives >= 5
- suspicious  if positives >= 1

A domain VirusTotal has never seen (404) is reported as verdict=unknown.
Any other non-2xx status is a provider failure.
"""

import base64
import logging
from typing import Any, Optional

import aiohttp

from risk_check.cache import SingleFlightCache
from risk_check.classifier import is_url_shaped
from risk_check.config import VirusTotalConfig
from risk_check.exceptions import FetchError, ProviderUnconfiguredError
from risk_check.models import Entity, EntityType, ScanVerdict, SignalKind, VirusTotalResult
from risk_check.providers.base import HttpSignalProvider


logger = logging.getLogger(__name__)

DETECTING_CATEGORIES = frozenset({"malicious", "suspicious"})


def url_identifier(url: str) -> str:
    """VirusTotal URL id: unpadded url-safe base64 of the URL."""
    return base64.urlsafe_b64encode(url.encode()).decode().rstrip("=")


def compute_verdict(stats: dict[str, Any]) -> tuple[ScanVerdict, int, int]:
    """Return (verdict, positives, total) for last_analysis_stats."""
    malicious = int(stats.get("malicious") or 0)
    suspicious = int(stats.get("suspicious") or 0)
    undetected = int(stats.get("undetected") or 0)
    harmless = int(stats.get("harmless") or 0)

    positives = malicious + suspicious
    total = malicious + suspicious + undetected + harmless

    if positives == 0:
        verdict = ScanVerdict.CLEAN
    elif malicious >= 3 or positives >= 5:
        verdict = ScanVerdict.MALICIOUS
    else:
        verdict = ScanVerdict.SUSPICIOUS
    return verdict, positives, total


class VirusTotalProvider(HttpSignalProvider):
    """
    Domain reputation provider.

    Usage:
        provider = VirusTotalProvider(VirusTotalConfig(api_key="..."))
        result = await provider.check(entity)
    """

    name = "virustotal"
    kind = SignalKind.VIRUS_TOTAL
    applicable_types = frozenset({EntityType.DOMAIN})

    def __init__(
        self,
        config: VirusTotalConfig,
        session: Optional[aiohttp.ClientSession] = None,
        cache: Optional[SingleFlightCache[VirusTotalResult]] = None,
    ) -> None:
        super().__init__(timeout=config.timeout_seconds, session=session)
        self._config = config
        self._cache = cache or SingleFlightCache(
            name=self.name,
            ttl_seconds=config.cache_ttl_seconds,
        )

    def is_configured(self) -> bool:
        return self._config.is_configured

    def _auth_headers(self) -> dict[str, str]:
        return {"x-apikey": self._config.api_key or ""}

    def scan_page_url(self, domain: str) -> str:
        return f"{self._config.gui_url}/domain/{domain}"

    async def check(self, entity: Entity) -> Optional[VirusTotalResult]:
        if not self.is_configured():
            raise ProviderUnconfiguredError(
                "VirusTotal API key not configured",
                provider_name=self.name,
                config_key="VIRUSTOTAL_API_KEY",
            )
        if is_url_shaped(entity.value):
            url = entity.value
            return await self._cache.get_or_fetch(
                f"url:{url}",
                lambda: self.scan_url(url, entity.normalized_value),
            )
        domain = entity.normalized_value
        return await self._cache.get_or_fetch(
            f"domain:{domain}",
            lambda: self.scan_domain(domain),
        )

    async def scan_domain(self, domain: str) -> VirusTotalResult:
        """
        Look a domain up in VirusTotal.

        Raises:
            FetchError: Non-404 HTTP error or transport failure
        """
        data = await self._make_request(
            "GET",
            f"{self._config.base_url}/domains/{domain}",
            headers=self._auth_headers(),
            allow_not_found=True,
        )
        if data is None:
            logger.debug(f"[{self.name}] {domain} not known to VirusTotal")
            return VirusTotalResult(
                verdict=ScanVerdict.UNKNOWN,
                positives=0,
                total=0,
                scan_url=self.scan_page_url(domain),
            )
        return self.parse_response(data, domain)

    async def scan_url(self, url: str, domain: str) -> VirusTotalResult:
        """Look a full URL up, falling back to its domain when never scanned."""
        data = await self._make_request(
            "GET",
            f"{self._config.base_url}/urls/{url_identifier(url)}",
            headers=self._auth_headers(),
            allow_not_found=True,
        )
        if data is None:
            logger.debug(f"[{self.name}] URL not scanned, falling back to {domain}")
            return await self.scan_domain(domain)
        return self.parse_response(data, domain)

    def parse_response(self, data: dict[str, Any], domain: str) -> VirusTotalResult:
        """Convert a VirusTotal object response into a VirusTotalResult."""
        try:
            attributes = data["data"]["attributes"]
            stats = attributes["last_analysis_stats"]
        except (KeyError, TypeError) as e:
            raise FetchError(
                message="Malformed VirusTotal response",
                provider_name=self.name,
                original_error=e,
            )

        verdict, positives, total = compute_verdict(stats)

        results = attributes.get("last_analysis_results") or {}
        detecting = [
            engine for engine, result in results.items()
            if (result or {}).get("category") in DETECTING_CATEGORIES
        ]
        top_engines = tuple(detecting[:self._config.max_top_engines])

        return VirusTotalResult(
            verdict=verdict,
            positives=positives,
            total=total,
            scan_url=self.scan_page_url(domain),
            top_engines=top_engines or None,
        )
