"""
Signal Providers.

Each provider contributes one typed signal for the entity types it
applies to.
"""

from risk_check.providers.base import BaseSignalProvider, HttpSignalProvider, JsonHttpClient
from risk_check.providers.identity import SubscanIdentityProvider
from risk_check.providers.linked import LinkedIdentitiesProvider
from risk_check.providers.lists import BlacklistProvider, WhitelistProvider
from risk_check.providers.lookalike import LookAlikeProvider
from risk_check.providers.ml import MLScoringProvider
from risk_check.providers.subscan import SubscanClient
from risk_check.providers.transactions import TransactionSummaryProvider
from risk_check.providers.virustotal import VirusTotalProvider


__all__ = [
    "BaseSignalProvider",
    "HttpSignalProvider",
    "JsonHttpClient",
    "BlacklistProvider",
    "WhitelistProvider",
    "LookAlikeProvider",
    "LinkedIdentitiesProvider",
    "MLScoringProvider",
    "SubscanClient",
    "SubscanIdentityProvider",
    "TransactionSummaryProvider",
    "VirusTotalProvider",
]
