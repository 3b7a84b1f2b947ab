"""
Risk Check Configuration - Provider credentials, timeouts and thresholds.

API keys are loaded from environment variables (optionally via a .env file)
and passed into providers at construction. Providers never read the
environment themselves.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Optional

from dotenv import load_dotenv

from risk_check.models import Chain


def _mask(secret: Optional[str]) -> Optional[str]:
    if not secret:
        return None
    return secret[:4] + "****" if len(secret) > 8 else "****"


@dataclass(frozen=True)
class VirusTotalConfig:
    """VirusTotal v3 API settings."""
    api_key: Optional[str] = None
    base_url: str = "https://www.virustotal.com/api/v3"
    gui_url: str = "https://www.virustotal.com/gui"
    timeout_seconds: float = 15.0
    cache_ttl_seconds: int = 300  # 5 min
    max_top_engines: int = 5

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_key": _mask(self.api_key),
            "base_url": self.base_url,
            "timeout_seconds": self.timeout_seconds,
            "cache_ttl_seconds": self.cache_ttl_seconds,
        }


def _default_subscan_urls() -> dict[Chain, str]:
    return {
        Chain.POLKADOT: "https://polkadot.api.subscan.io",
        Chain.KUSAMA: "https://kusama.api.subscan.io",
    }


@dataclass(frozen=True)
class SubscanConfig:
    """Subscan API settings for identity, transfers and ML features."""
    api_key: Optional[str] = None
    base_urls: dict[Chain, str] = field(default_factory=_default_subscan_urls)
    timeout_seconds: float = 10.0
    cache_ttl_seconds: int = 300
    transfer_page_size: int = 100

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_key": _mask(self.api_key),
            "base_urls": {c.value: url for c, url in self.base_urls.items()},
            "timeout_seconds": self.timeout_seconds,
            "cache_ttl_seconds": self.cache_ttl_seconds,
        }


@dataclass(frozen=True)
class LookAlikeConfig:
    """Impersonation detection thresholds."""
    similarity_threshold: float = 0.7  # strictly above counts as look-alike

    def to_dict(self) -> dict[str, Any]:
        return {"similarity_threshold": self.similarity_threshold}


@dataclass(frozen=True)
class InvokerConfig:
    """Signal invoker settings."""
    default_timeout_seconds: float = 10.0

    def to_dict(self) -> dict[str, Any]:
        return {"default_timeout_seconds": self.default_timeout_seconds}


@dataclass(frozen=True)
class Settings:
    """Top-level configuration for the risk check service."""
    virustotal: VirusTotalConfig = field(default_factory=VirusTotalConfig)
    subscan: SubscanConfig = field(default_factory=SubscanConfig)
    look_alike: LookAlikeConfig = field(default_factory=LookAlikeConfig)
    invoker: InvokerConfig = field(default_factory=InvokerConfig)
    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """
        Build settings from environment variables.

        Reads a .env file first when present; real environment variables
        take precedence.
        """
        load_dotenv(dotenv_path)

        return cls(
            virustotal=VirusTotalConfig(
                api_key=os.environ.get("VIRUSTOTAL_API_KEY") or None,
                timeout_seconds=float(os.environ.get("VIRUSTOTAL_TIMEOUT_SECONDS", "15")),
            ),
            subscan=SubscanConfig(
                api_key=os.environ.get("SUBSCAN_API_KEY") or None,
                timeout_seconds=float(os.environ.get("SUBSCAN_TIMEOUT_SECONDS", "10")),
            ),
            look_alike=LookAlikeConfig(
                similarity_threshold=float(
                    os.environ.get("LOOKALIKE_SIMILARITY_THRESHOLD", "0.7")
                ),
            ),
            invoker=InvokerConfig(
                default_timeout_seconds=float(
                    os.environ.get("PROVIDER_TIMEOUT_SECONDS", "10")
                ),
            ),
            log_level=os.environ.get("RISK_CHECK_LOG_LEVEL", "INFO"),
            log_format=os.environ.get("RISK_CHECK_LOG_FORMAT", "text"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "virustotal": self.virustotal.to_dict(),
            "subscan": self.subscan.to_dict(),
            "look_alike": self.look_alike.to_dict(),
            "invoker": self.invoker.to_dict(),
            "log_level": self.log_level,
            "log_format": self.log_format,
        }
