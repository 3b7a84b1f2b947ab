"""
Severity Policy Tests.
"""

import pytest

from risk_check.models import RiskLevel
from risk_check.severity import DEFAULT_SEVERITY_ORDER, SeverityPolicy


class TestSeverityPolicy:
    """Tests for SeverityPolicy."""

    def test_default_order(self):
        policy = SeverityPolicy()

        assert policy.order == DEFAULT_SEVERITY_ORDER
        assert policy.is_more_severe(RiskLevel.FRAUD, RiskLevel.CAUTION)
        assert policy.is_more_severe(RiskLevel.CAUTION, RiskLevel.UNKNOWN)
        assert policy.is_more_severe(RiskLevel.UNKNOWN, RiskLevel.LOW_RISK)
        assert not policy.is_more_severe(RiskLevel.SAFE, RiskLevel.LOW_RISK)

    def test_most_severe(self):
        policy = SeverityPolicy()

        assert policy.most_severe(
            [RiskLevel.SAFE, RiskLevel.CAUTION, RiskLevel.UNKNOWN]
        ) == RiskLevel.CAUTION
        assert policy.most_severe([]) is None

    def test_sort(self):
        policy = SeverityPolicy()
        levels = [RiskLevel.FRAUD, RiskLevel.SAFE, RiskLevel.UNKNOWN]

        assert policy.sort(levels) == [RiskLevel.SAFE, RiskLevel.UNKNOWN, RiskLevel.FRAUD]
        assert policy.sort(levels, descending=True)[0] == RiskLevel.FRAUD

    def test_custom_order(self):
        # Treat "could not check" as the most alarming outcome
        order = (
            RiskLevel.SAFE,
            RiskLevel.LOW_RISK,
            RiskLevel.CAUTION,
            RiskLevel.FRAUD,
            RiskLevel.UNKNOWN,
        )
        policy = SeverityPolicy(order)

        assert policy.most_severe([RiskLevel.FRAUD, RiskLevel.UNKNOWN]) == RiskLevel.UNKNOWN

    @pytest.mark.parametrize("order", [
        (RiskLevel.SAFE, RiskLevel.FRAUD),
        (
            RiskLevel.SAFE,
            RiskLevel.SAFE,
            RiskLevel.LOW_RISK,
            RiskLevel.UNKNOWN,
            RiskLevel.CAUTION,
            RiskLevel.FRAUD,
        ),
    ])
    def test_incomplete_order_rejected(self, order):
        with pytest.raises(ValueError):
            SeverityPolicy(order)
