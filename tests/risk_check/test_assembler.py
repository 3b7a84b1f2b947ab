"""
Result Assembler Tests.
"""

from datetime import datetime

from risk_check.assembler import ResultAssembler, block_explorer_url
from risk_check.models import (
    BlacklistResult,
    Chain,
    EntityStats,
    EntityType,
    RiskAssessment,
    RiskLevel,
    ScanVerdict,
    SignalSet,
    VirusTotalResult,
)

from helpers import ALICE_HEX, ALICE_SUBSTRATE, EVM_ADDRESS, make_entity


SCAN = VirusTotalResult(
    verdict=ScanVerdict.CLEAN,
    positives=0,
    total=70,
    scan_url="https://www.virustotal.com/gui/domain/example.com",
)


class TestBlockExplorerUrl:
    """Tests for block_explorer_url()."""

    def test_ethereum(self):
        entity = make_entity(EVM_ADDRESS, EntityType.ADDRESS, EVM_ADDRESS.lower(), Chain.ETHEREUM)

        assert block_explorer_url(entity) == (
            f"https://etherscan.io/address/{EVM_ADDRESS.lower()}"
        )

    def test_solana(self):
        mint = "So11111111111111111111111111111111111111112"
        entity = make_entity(mint, EntityType.ADDRESS, mint, Chain.SOLANA)

        assert block_explorer_url(entity) == f"https://solscan.io/account/{mint}"

    def test_generic_substrate_opens_on_polkadot(self):
        entity = make_entity(ALICE_SUBSTRATE, EntityType.ADDRESS, ALICE_HEX, Chain.SUBSTRATE)

        url = block_explorer_url(entity)

        assert url.startswith("https://polkadot.subscan.io/account/1")

    def test_astar(self):
        entity = make_entity(ALICE_SUBSTRATE, EntityType.ADDRESS, ALICE_HEX, Chain.ASTAR)

        assert block_explorer_url(entity).startswith("https://astar.subscan.io/account/")

    def test_non_address(self):
        assert block_explorer_url(make_entity("example.com")) is None


class TestResultAssembler:
    """Tests for ResultAssembler.assemble()."""

    def test_absent_signals_omitted(self, domain_entity):
        assessment = RiskAssessment(risk_level=RiskLevel.UNKNOWN)
        signals = SignalSet.of(BlacklistResult(found=False))

        response = ResultAssembler().assemble(domain_entity, assessment, signals)
        data = response.to_dict()

        assert data["entity"] == "example.com"
        assert data["entityType"] == "DOMAIN"
        assert data["assessment"]["riskLevel"] == "UNKNOWN"
        assert data["blacklist"] == {
            "found": False,
            "source": None,
            "threatName": None,
            "threatCategory": None,
            "sourceUrl": None,
        }
        assert "whitelist" not in data
        assert "virusTotal" not in data
        assert "stats" not in data
        assert "links" not in data

    def test_links_and_stats(self, domain_entity):
        assessment = RiskAssessment(risk_level=RiskLevel.SAFE, risk_score=0, confidence=0.5)
        stats = EntityStats(times_searched=3, user_reports=1, last_searched=datetime(2024, 5, 1))

        response = ResultAssembler().assemble(
            domain_entity, assessment, SignalSet.of(SCAN), stats
        )
        data = response.to_dict()

        assert response.virus_total == SCAN
        assert data["links"] == {"virusTotal": SCAN.scan_url}
        assert data["stats"] == {
            "timesSearched": 3,
            "userReports": 1,
            "lastSearched": "2024-05-01T00:00:00",
        }

    def test_address_chain_and_explorer(self, polkadot_entity):
        assessment = RiskAssessment(risk_level=RiskLevel.UNKNOWN)

        data = ResultAssembler().assemble(polkadot_entity, assessment, SignalSet()).to_dict()

        assert data["chain"] == "polkadot"
        assert data["links"]["blockExplorer"].startswith("https://polkadot.subscan.io/account/")
