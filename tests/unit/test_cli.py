"""Unit tests for the ui-parity command line."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from ui_parity.cli.main import apply_viewport_options, cli
from ui_parity.config import CONFIG_ENV_VAR, ParityConfig
from ui_parity.errors import FailureKind
from ui_parity.models import Implementation, SectionResult, ValidationResult
from ui_parity.orchestrator import ComparisonResult
from ui_parity.report.aggregator import aggregate, compare


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every command in an empty directory with no config env var."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.setenv("NO_COLOR", "1")


def make_result(candidate_failures: int = 0) -> ComparisonResult:
    passing = [ValidationResult.success("heroTitle", "fontSize", 'heroTitle fontSize: "60px"')]
    failing = [
        ValidationResult.failure(
            "ctaButton",
            "backgroundColor",
            f'ctaButton backgroundColor: "rgb({i}, 0, 0)" (expected: "rgb(255, 220, 97)")',
            FailureKind.PROPERTY_MISMATCH,
        )
        for i in range(candidate_failures)
    ]
    baseline = aggregate(
        Implementation.BASELINE, [SectionResult("hero", passing)], timestamp="t"
    )
    candidate = aggregate(
        Implementation.CANDIDATE, [SectionResult("hero", passing + failing)], timestamp="t"
    )
    return ComparisonResult(
        reports={Implementation.BASELINE: baseline, Implementation.CANDIDATE: candidate},
        gap=compare(baseline, candidate),
    )


def patch_orchestrator(result: ComparisonResult):
    patcher = patch("ui_parity.cli.main.ParityOrchestrator")
    mock_cls = patcher.start()
    mock_cls.return_value.run = AsyncMock(return_value=result)
    return patcher, mock_cls


class TestRunCommand:
    """Tests for `ui-parity run`."""

    def test_passing_gate_exits_zero(self):
        """Test exit code 0 when there are no failures."""
        patcher, mock_cls = patch_orchestrator(make_result())
        try:
            result = CliRunner().invoke(cli, ["run"])
        finally:
            patcher.stop()

        assert result.exit_code == 0, result.output
        assert "UI Parity: candidate" in result.output
        assert "Parity gap: 0.0% EXCELLENT" in result.output
        mock_cls.return_value.run.assert_awaited_once_with(
            [Implementation.BASELINE, Implementation.CANDIDATE]
        )

    def test_failures_exit_one(self):
        """Test exit code 1 when the candidate has failures."""
        patcher, _ = patch_orchestrator(make_result(candidate_failures=1))
        try:
            result = CliRunner().invoke(cli, ["run"])
        finally:
            patcher.stop()

        assert result.exit_code == 1
        assert 'x ctaButton backgroundColor: "rgb(0, 0, 0)"' in result.output
        assert "only candidate:" in result.output

    def test_tolerance_option(self):
        """Test that --tolerance and --max-gap relax the gate."""
        patcher, mock_cls = patch_orchestrator(make_result(candidate_failures=1))
        try:
            result = CliRunner().invoke(
                cli, ["run", "--tolerance", "1", "--max-gap", "1.0"]
            )
        finally:
            patcher.stop()

        assert result.exit_code == 0, result.output
        config = mock_cls.call_args.args[1]
        assert config.gate.failure_tolerance == 1
        assert config.gate.max_parity_gap == 1.0

    def test_single_target(self):
        """Test that --target selects one implementation."""
        patcher, mock_cls = patch_orchestrator(make_result())
        try:
            CliRunner().invoke(cli, ["run", "--target", "baseline"])
        finally:
            patcher.stop()

        mock_cls.return_value.run.assert_awaited_once_with([Implementation.BASELINE])

    def test_json_output(self):
        """Test the machine-readable report."""
        patcher, _ = patch_orchestrator(make_result(candidate_failures=2))
        try:
            result = CliRunner().invoke(cli, ["run", "--json"])
        finally:
            patcher.stop()

        data = json.loads(result.stdout)
        assert data["reports"]["candidate"]["failed"] == 2
        assert data["gap"]["assessment"] == "poor"

    def test_viewport_and_headed_options(self):
        """Test that viewport and browser options reach the configuration."""
        patcher, mock_cls = patch_orchestrator(make_result())
        try:
            result = CliRunner().invoke(
                cli, ["run", "--viewport", "wide=1440x900", "--headed"]
            )
        finally:
            patcher.stop()

        assert result.exit_code == 0, result.output
        config = mock_cls.call_args.args[1]
        assert config.viewport("wide").width == 1440
        assert config.browser.headless is False

    def test_invalid_viewport_exits_two(self):
        """Test that a malformed --viewport is a configuration error."""
        result = CliRunner().invoke(cli, ["run", "--viewport", "wide"])

        assert result.exit_code == 2
        assert "Invalid viewport" in result.output

    def test_invalid_config_exits_two(self, tmp_path):
        """Test that a broken config file exits with code 2."""
        path = tmp_path / "broken.json"
        path.write_text("{", encoding="utf-8")

        result = CliRunner().invoke(cli, ["run", "--config", str(path)])

        assert result.exit_code == 2
        assert "Invalid JSON" in result.output

    def test_quiet_and_verbose_conflict(self):
        result = CliRunner().invoke(cli, ["run", "--quiet", "--verbose"])

        assert result.exit_code == 2
        assert "mutually exclusive" in result.output


class TestCheckConfigCommand:
    """Tests for `ui-parity check-config`."""

    def test_packaged_tables(self):
        """Test that the packaged tables and default config are consistent."""
        result = CliRunner().invoke(cli, ["check-config"])

        assert result.exit_code == 0, result.output
        assert "Configuration OK" in result.output
        assert "Viewports:    narrow, tablet, desktop" in result.output
        assert "Structure:    12" in result.output

    def test_unknown_role(self, tmp_path):
        """Test that a config naming an unknown role is rejected."""
        path = tmp_path / "ui-parity.config.json"
        path.write_text(
            json.dumps({"interactions": {"hoverRoles": ["pricingToggle"]}}), encoding="utf-8"
        )

        result = CliRunner().invoke(cli, ["check-config"])

        assert result.exit_code == 2
        assert "pricingToggle" in result.output


class TestApplyViewportOptions:
    """Tests for apply_viewport_options."""

    def test_replace_and_append(self):
        config = ParityConfig()

        apply_viewport_options(config, ("narrow=320x568", "wide=1440x900"))

        assert [v.name for v in config.viewports] == ["narrow", "tablet", "desktop", "wide"]
        assert config.viewport("narrow").width == 320


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "1.0.0" in result.output
