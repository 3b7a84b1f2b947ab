"""
Shared fixtures for risk check tests.
"""

import pytest

from risk_check.models import Chain, Entity, EntityType, ThreatCategory
from risk_check.repository import (
    BlacklistEntry,
    IdentityRecord,
    InMemoryEntityRepository,
    WhitelistEntry,
)

from helpers import ALICE_HEX, ALICE_SUBSTRATE, make_entity


@pytest.fixture
def domain_entity() -> Entity:
    return make_entity("example.com")


@pytest.fixture
def polkadot_entity() -> Entity:
    return make_entity(
        ALICE_SUBSTRATE,
        EntityType.ADDRESS,
        normalized_value=ALICE_HEX,
        chain=Chain.POLKADOT,
    )


@pytest.fixture
def repository() -> InMemoryEntityRepository:
    return InMemoryEntityRepository(
        blacklist=[
            BlacklistEntry(
                entity_type=EntityType.DOMAIN,
                normalized_value="polkadot-airdrop.xyz",
                source="polkadot-js-phishing",
                threat_name="Fake airdrop",
                threat_category=ThreatCategory.FAKE_AIRDROP,
            ),
        ],
        whitelist=[
            WhitelistEntry(
                entity_type=EntityType.TWITTER,
                normalized_value="polkadot",
                name="Polkadot",
                category="ecosystem",
            ),
            WhitelistEntry(
                entity_type=EntityType.DOMAIN,
                normalized_value="polkadot.network",
                name="Polkadot",
                category="ecosystem",
            ),
        ],
        identities=[
            IdentityRecord(
                address="14ShUZUYUR35RBZW6uVVt1zXDxmSQddkeDdXf1JkMA6P721N",
                chain="polkadot",
                display_name="Polkadot Official",
                twitter="polkadot",
                web="polkadot.network",
                is_verified=True,
            ),
        ],
    )
