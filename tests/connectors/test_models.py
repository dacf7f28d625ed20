"""Tests for source configuration parsing and fetch options."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from connectors.errors import ConfigurationError
from connectors.models import (
    FetchOptions,
    GitHubSourceConfig,
    GitSourceConfig,
    NormalizedItem,
    SourceType,
    parse_source_config,
)


class TestParseSourceConfig:
    """Tests for parse_source_config."""

    def test_git_config_snake_case(self):
        config = parse_source_config(
            {
                "type": "git",
                "source_id": "s1",
                "project_id": "p1",
                "repo_path": "/tmp/repo",
                "branch_whitelist": ["main"],
            }
        )
        assert isinstance(config, GitSourceConfig)
        assert config.type == SourceType.GIT
        assert config.repo_path == Path("/tmp/repo")
        assert config.branch_whitelist == ("main",)
        assert config.author is None
        assert config.max_commits == 300
        assert config.extraction.include_diff is False

    def test_git_config_camel_case_and_detail_level(self):
        config = parse_source_config(
            {
                "type": "git",
                "sourceId": "s1",
                "projectId": "p1",
                "gitPath": "/tmp/repo",
                "detailLevel": "detailed",
                "extraction": {"maxFilesInDiff": 3},
                "maxCommits": 50,
            }
        )
        assert config.extraction.include_diff is True
        assert config.extraction.max_files_in_diff == 3
        assert config.max_commits == 50

    def test_github_config_defaults(self):
        config = parse_source_config(
            {"type": "github", "sourceId": "s1", "projectId": "p1", "repo": "acme/api"}
        )
        assert isinstance(config, GitHubSourceConfig)
        assert config.author == "@me"
        assert config.include_commits is True
        assert config.include_prs is True
        assert config.include_issues is False
        assert config.commit_stats is True

    def test_github_toggles(self):
        config = parse_source_config(
            {
                "type": SourceType.GITHUB,
                "source_id": "s1",
                "project_id": "p1",
                "repo": "acme/api",
                "includePRs": False,
                "includeIssues": True,
            }
        )
        assert config.include_prs is False
        assert config.include_issues is True

    def test_unknown_fields_kept_in_extra(self):
        config = parse_source_config(
            {"type": "github", "source_id": "s1", "project_id": "p1", "repo": "acme/api", "jiraKey": "ACME"}
        )
        assert config.extra == {"jiraKey": "ACME"}

    def test_unsupported_type(self):
        with pytest.raises(ConfigurationError, match="Must be one of: git, github"):
            parse_source_config({"type": "jira", "source_id": "s1", "project_id": "p1"})

    @pytest.mark.parametrize("missing", ["source_id", "project_id", "repo"])
    def test_missing_required_field(self, missing):
        data = {"type": "github", "source_id": "s1", "project_id": "p1", "repo": "acme/api"}
        data[missing] = "  "
        with pytest.raises(ConfigurationError, match=missing):
            parse_source_config(data)

    @pytest.mark.parametrize("repo", ["acme", "acme/api/extra", "https://github.com/acme/api", "ac me/api"])
    def test_invalid_repo_format(self, repo):
        with pytest.raises(ConfigurationError, match="Invalid repository format"):
            parse_source_config({"type": "github", "source_id": "s1", "project_id": "p1", "repo": repo})

    @pytest.mark.parametrize("source_id", ["..", "a/b"])
    def test_unsafe_source_id(self, source_id):
        with pytest.raises(ConfigurationError, match="Invalid source id"):
            parse_source_config(
                {"type": "git", "source_id": source_id, "project_id": "p1", "repo_path": "."}
            )

    def test_unknown_detail_level(self):
        with pytest.raises(ConfigurationError, match="Unsupported detail level"):
            parse_source_config(
                {"type": "git", "source_id": "s1", "project_id": "p1", "repo_path": ".", "detail_level": "max"}
            )

    def test_non_positive_max_commits(self):
        with pytest.raises(ConfigurationError, match="max_commits"):
            parse_source_config(
                {"type": "git", "source_id": "s1", "project_id": "p1", "repo_path": ".", "max_commits": -5}
            )


class TestFetchOptions:
    """Tests for FetchOptions validation."""

    def test_naive_datetimes_become_utc(self):
        options = FetchOptions(since=datetime(2025, 1, 1))
        assert options.since == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_since_after_until_rejected(self):
        with pytest.raises(ValueError, match="since"):
            FetchOptions(since=datetime(2025, 2, 1), until=datetime(2025, 1, 1))

    def test_non_positive_limit_rejected(self):
        with pytest.raises(ValueError, match="limit"):
            FetchOptions(limit=0)


class TestNormalizedItem:
    """Tests for NormalizedItem serialization."""

    def test_to_dict(self):
        item = NormalizedItem(
            id="abc",
            title="Fix bug",
            description="Fix bug\n\nDetails",
            author="Ada",
            timestamp=datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            raw={"type": "commit"},
            is_cached=True,
        )
        data = item.to_dict()
        assert data["timestamp"] == "2025-01-02T03:04:05+00:00"
        assert data["raw"] == {"type": "commit"}
        assert "is_cached" not in data
