"""
Tests for the CLI module.

These tests verify argument parsing, override mapping and exit codes; the
analyzer run itself is mocked.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from devops_analytics.cli import analyze, cli
from devops_analytics.pipeline_types import FetchOutcome, FetchStatus, ResourceKind, RunSummary

PROJECT_URL = "https://dev.azure.com/contoso/Fabrikam"


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("AZURE_DEVOPS_TOKEN", raising=False)
    return CliRunner()


class TestCLI:
    """Test cases for the main CLI functionality."""

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "DevOps Analytics" in result.output
        assert "analyze" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "1.0.0" in result.output

    def test_analyze_command_help(self, runner):
        result = runner.invoke(analyze, ["--help"])

        assert result.exit_code == 0
        for option in ["--project", "--skipbuilds", "--allbranches", "--week-rule", "--strict"]:
            assert option in result.output

    def test_missing_project_is_configuration_error(self, runner):
        result = runner.invoke(analyze, [])

        assert result.exit_code == 1
        assert "No project URL" in result.output

    def test_invalid_regex_is_configuration_error(self, runner):
        result = runner.invoke(analyze, ["-u", PROJECT_URL, "-f", "(oops"])

        assert result.exit_code == 1


class TestAnalyze:
    @patch("devops_analytics.cli.run_analysis")
    def test_options_reach_configuration(self, mock_run, runner):
        mock_run.return_value = RunSummary()

        result = runner.invoke(
            analyze,
            [
                "-u", PROJECT_URL,
                "-t", "pat",
                "-c", "50",
                "-f", "^svc-",
                "-e",
                "--builds",
                "-n",
                "--allbranches",
                "-r", "develop",
                "--timezone", "UTC",
                "--week-rule", "first-day",
                "--quiet",
            ],
        )

        assert result.exit_code == 0, result.output
        config = mock_run.call_args.args[0]
        assert config.token == "pat"
        assert config.limits.commits == 50
        assert config.repository_filter.exclude is True
        assert config.skip.builds is False
        assert config.skip.build_artifacts is True
        assert config.skip.commits is True
        assert config.skip.all_branch_commits is False
        assert config.branch == "develop"
        assert config.verbose is False

    @patch("devops_analytics.cli.run_analysis")
    def test_bare_options_default_to_analyze(self, mock_run, runner):
        mock_run.return_value = RunSummary()

        result = runner.invoke(cli, ["-u", PROJECT_URL])

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once()

    @patch("devops_analytics.cli.run_analysis")
    def test_failures_only_fail_in_strict_mode(self, mock_run, runner):
        failed = FetchOutcome(ResourceKind.COMMITS, "alpha", FetchStatus.FAILED, reason="timeout")
        mock_run.return_value = RunSummary(outcomes=[failed])

        lenient = runner.invoke(analyze, ["-u", PROJECT_URL])
        strict = runner.invoke(analyze, ["-u", PROJECT_URL, "--strict"])

        assert lenient.exit_code == 0
        assert strict.exit_code == 2

    @patch("devops_analytics.cli.run_analysis")
    def test_config_file(self, mock_run, runner, tmp_path):
        mock_run.return_value = RunSummary()
        config_path = tmp_path / "devops.yaml"
        config_path.write_text(f"azure_devops:\n  projects: {PROJECT_URL}\n")

        result = runner.invoke(analyze, ["--config", str(config_path), "-p", "10"])

        assert result.exit_code == 0, result.output
        config = mock_run.call_args.args[0]
        assert config.project_urls == [PROJECT_URL]
        assert config.limits.pushes == 10
