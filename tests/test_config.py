"""Tests for settings and the command-line interface."""

import pytest

from readiness_report import cli
from readiness_report.config import (
    BATCH_SIZE,
    DEFAULT_JQL,
    ReportSettings,
    clean_token,
)
from readiness_report.errors import ConfigurationError

ENV_VARS = (
    "JIRA_BASE_URL",
    "JIRA_API_TOKEN",
    "JIRA_USERNAME",
    "JIRA_JQL",
    "CONFLUENCE_BASE_URL",
    "CONFLUENCE_API_TOKEN",
    "CONFLUENCE_EMAIL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestCleanToken:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("  abc  ", "abc"),
            ("ab\nc\r\n", "abc"),
            ("   ", None),
            (None, None),
        ],
    )
    def test_clean(self, raw, expected):
        assert clean_token(raw) == expected


class TestReportSettings:
    def test_from_env(self, clean_env):
        clean_env.setenv("JIRA_BASE_URL", "https://jira.example.com/")
        clean_env.setenv("JIRA_API_TOKEN", " jira-token\n")
        clean_env.setenv("JIRA_USERNAME", "me")
        clean_env.setenv("CONFLUENCE_BASE_URL", "https://wiki.example.com/")
        clean_env.setenv("CONFLUENCE_API_TOKEN", "wiki-token")
        clean_env.setenv("CONFLUENCE_EMAIL", "me@example.com")
        clean_env.setenv("JIRA_JQL", "project = FEAT")

        settings = ReportSettings.from_env()

        assert settings.jira_base_url == "https://jira.example.com"
        assert settings.jira_token == "jira-token"
        assert settings.jira_username == "me"
        assert settings.wiki_base_url == "https://wiki.example.com"
        assert settings.wiki_token == "wiki-token"
        assert settings.wiki_email == "me@example.com"
        assert settings.jql == "project = FEAT"

    def test_wiki_token_falls_back_to_jira_token(self, clean_env):
        clean_env.setenv("JIRA_BASE_URL", "https://jira.example.com")
        clean_env.setenv("JIRA_API_TOKEN", "shared")

        settings = ReportSettings.from_env()

        assert settings.wiki_token == "shared"
        assert settings.wiki_base_url is None
        assert settings.jql == DEFAULT_JQL

    def test_validate(self):
        ReportSettings(jira_base_url="https://j", jira_token="t").validate()

    @pytest.mark.parametrize(
        "settings,missing",
        [
            (ReportSettings(jira_token="t"), "JIRA_BASE_URL"),
            (ReportSettings(jira_base_url="https://j"), "JIRA_API_TOKEN"),
        ],
    )
    def test_validate_missing(self, settings, missing):
        with pytest.raises(ConfigurationError, match=missing):
            settings.validate()

    def test_search_fields(self):
        settings = ReportSettings(extra_fields=["assignee", "status.category"])
        assert settings.search_fields == [
            "summary",
            "status",
            "fixVersions",
            "labels",
            "assignee",
        ]


class TestCli:
    def test_parser_defaults(self):
        args = cli.build_parser().parse_args([])

        assert args.formats is None
        assert args.batch_size == BATCH_SIZE
        assert not args.use_labels

    def test_parser_options(self):
        args = cli.build_parser().parse_args(
            ["-f", "json", "-f", "markdown", "--batch-size", "5", "--use-labels"]
        )

        assert args.formats == ["json", "markdown"]
        assert args.batch_size == 5
        assert args.use_labels

    @pytest.mark.parametrize("value", ["0", "-3", "ten"])
    def test_batch_size_must_be_positive(self, value, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(["--batch-size", value])

        assert exc_info.value.code == 2
        assert "--batch-size" in capsys.readouterr().err

    def test_missing_configuration_exits(self, clean_env, tmp_path):
        clean_env.setattr(cli, "load_dotenv", lambda: None)
        clean_env.setattr("sys.argv", ["readiness-report", "-o", str(tmp_path)])

        with pytest.raises(SystemExit) as exc_info:
            cli.main()

        assert exc_info.value.code == 1
