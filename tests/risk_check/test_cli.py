"""
CLI Tests.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from risk_check.cli import create_parser, main
from risk_check.config import Settings
from risk_check.service import RiskCheckService


@pytest.fixture
def offline_settings():
    with patch("risk_check.cli.Settings.from_env", return_value=Settings()), \
            patch("risk_check.cli.setup_logging"):
        yield


class TestParser:
    """Tests for create_parser()."""

    def test_requires_entity(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_options(self):
        args = create_parser().parse_args(
            ["@polkadot", "example.com", "--log-level", "DEBUG", "--indent", "0"]
        )

        assert args.entities == ["@polkadot", "example.com"]
        assert args.log_level == "DEBUG"
        assert args.indent == 0


class TestMain:
    """Tests for main()."""

    def test_single_entity(self, offline_settings, capsys):
        exit_code = main(["@SomeHandle"])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert output["data"]["entity"] == "@SomeHandle"
        assert output["data"]["entityType"] == "TWITTER"
        assert output["data"]["assessment"]["riskLevel"] == "UNKNOWN"
        assert "requestId" in output["meta"]

    def test_batch(self, offline_settings, capsys):
        exit_code = main(["@SomeHandle", "example.com", "not a real entity"])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert output["data"]["totalProcessed"] == 3
        assert output["data"]["totalFailed"] == 1

    def test_invalid_input(self, offline_settings, capsys):
        exit_code = main(["   "])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert output["error"]["code"] == "INVALID_INPUT"

    def test_internal_error(self, offline_settings, capsys):
        with patch.object(
            RiskCheckService, "check_entity", AsyncMock(side_effect=RuntimeError("boom"))
        ):
            exit_code = main(["example.com"])

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 2
        assert output["error"] == {
            "code": "INTERNAL_ERROR",
            "message": "Failed to check entity",
        }
