"""Data models shared by all source connectors."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from common.detail_levels import ExtractionConfig, resolve_extraction_config

from .errors import ConfigurationError

REPO_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")


class SourceType(str, Enum):
    """Supported source types."""

    GIT = "git"
    GITHUB = "github"


@dataclass(frozen=True)
class GitSourceConfig:
    """A local git repository.

    Attributes:
        source_id: Stable, filesystem-safe identifier of the source
        project_id: Project the extracted achievements belong to
        repo_path: Path to the repository working tree
        branch_whitelist: Branches allowed for extraction (empty = all)
        author: Only read commits by this author (None = all authors)
        max_commits: Upper bound on commits read per fetch
        extraction: Stats/diff settings for each commit
        extra: Unrecognized configuration fields, kept for forward compatibility
    """

    source_id: str
    project_id: str
    repo_path: Path
    branch_whitelist: tuple[str, ...] = ()
    author: str | None = None
    max_commits: int = 300
    extraction: ExtractionConfig = field(default_factory=resolve_extraction_config)
    extra: dict[str, Any] = field(default_factory=dict)
    type: Literal[SourceType.GIT] = SourceType.GIT


@dataclass(frozen=True)
class GitHubSourceConfig:
    """A GitHub repository read through the gh CLI.

    Attributes:
        source_id: Stable, filesystem-safe identifier of the source
        project_id: Project the extracted achievements belong to
        repo: Repository coordinates as owner/name
        branch: Branch to read commits from (None = default branch)
        author: Author filter; '@me' is resolved by gh
        include_commits: Fetch commits
        include_prs: Fetch merged pull requests
        include_issues: Fetch closed issues
        commit_stats: Fetch per-commit stats (one extra call per commit)
        extra: Unrecognized configuration fields, kept for forward compatibility
    """

    source_id: str
    project_id: str
    repo: str
    branch: str | None = None
    author: str = "@me"
    include_commits: bool = True
    include_prs: bool = True
    include_issues: bool = False
    commit_stats: bool = True
    extra: dict[str, Any] = field(default_factory=dict)
    type: Literal[SourceType.GITHUB] = SourceType.GITHUB


SourceConfig = GitSourceConfig | GitHubSourceConfig


@dataclass
class NormalizedItem:
    """One unit of work in the standard shape every connector produces.

    Attributes:
        id: Unique, stable identifier within the source
        title: One-line summary (commit subject, PR or issue title)
        description: Full message or body
        author: Who did the work
        timestamp: When the work happened (timezone-aware)
        raw: Source-specific payload (stats, diffs, PR metadata...)
        is_cached: Whether the item is already in the source's ledger
    """

    id: str
    title: str
    description: str
    author: str
    timestamp: datetime
    raw: dict[str, Any] = field(default_factory=dict)
    is_cached: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON payloads."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "author": self.author,
            "timestamp": self.timestamp.isoformat(),
            "raw": self.raw,
        }


@dataclass(frozen=True)
class FetchOptions:
    """Filters for Connector.fetch.

    Attributes:
        since: Only items at or after this time
        until: Only items at or before this time
        limit: Maximum number of items per record kind
        skip_cache: Return items already in the ledger too
    """

    since: datetime | None = None
    until: datetime | None = None
    limit: int | None = None
    skip_cache: bool = False

    def __post_init__(self):
        # Naive datetimes are taken as UTC so they compare with item timestamps
        for name in ("since", "until"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=timezone.utc))
        if self.limit is not None and self.limit <= 0:
            raise ValueError("limit must be positive")
        if self.since and self.until and self.since > self.until:
            raise ValueError("since must not be after until")


# camelCase keys as stored by the web app's source records
_ALIASES = {
    "sourceId": "source_id",
    "projectId": "project_id",
    "gitPath": "repo_path",
    "path": "repo_path",
    "branchWhitelist": "branch_whitelist",
    "maxCommits": "max_commits",
    "includeCommits": "include_commits",
    "includePRs": "include_prs",
    "includeIssues": "include_issues",
    "commitStats": "commit_stats",
    "detailLevel": "detail_level",
}

_GIT_FIELDS = {
    "source_id",
    "project_id",
    "repo_path",
    "branch_whitelist",
    "author",
    "max_commits",
    "detail_level",
    "extraction",
}

_GITHUB_FIELDS = {
    "source_id",
    "project_id",
    "repo",
    "branch",
    "author",
    "include_commits",
    "include_prs",
    "include_issues",
    "commit_stats",
}


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _require(values: dict[str, Any], name: str) -> str:
    value = values.get(name)
    if value is None or not str(value).strip():
        raise ConfigurationError(f"Source configuration is missing required field '{name}'")
    return str(value).strip()


def validate_source_id(source_id: str) -> str:
    """Reject source IDs that are not safe as a file name."""
    if source_id in (".", "..") or "/" in source_id or "\\" in source_id:
        raise ConfigurationError(f"Invalid source id: {source_id!r}")
    return source_id


def parse_source_config(data: dict[str, Any]) -> SourceConfig:
    """Build a typed source configuration from a loosely-typed mapping.

    Accepts snake_case keys and the camelCase keys used by stored source
    records. Unknown keys are preserved in ``extra``.

    Args:
        data: Raw configuration with at least 'type'

    Returns:
        GitSourceConfig or GitHubSourceConfig

    Raises:
        ConfigurationError: If the type is unsupported or a required field is
            missing or malformed

    Example:
        >>> config = parse_source_config(
        ...     {"type": "github", "sourceId": "s1", "projectId": "p1", "repo": "acme/api"}
        ... )
        >>> config.repo
        'acme/api'
    """
    raw_type = data.get("type")
    if isinstance(raw_type, SourceType):
        raw_type = raw_type.value
    try:
        source_type = SourceType(str(raw_type).lower())
    except ValueError as e:
        raise ConfigurationError(
            f"Unsupported source type: {raw_type}. "
            f"Must be one of: {', '.join(t.value for t in SourceType)}"
        ) from e

    values = {_ALIASES.get(key, key): value for key, value in data.items() if key != "type"}
    source_id = validate_source_id(_require(values, "source_id"))
    project_id = _require(values, "project_id")

    if source_type == SourceType.GIT:
        repo_path = Path(_require(values, "repo_path")).expanduser()
        extraction = values.get("extraction")
        if not isinstance(extraction, ExtractionConfig):
            overrides = {_snake_case(k): v for k, v in (extraction or {}).items()}
            try:
                extraction = resolve_extraction_config(values.get("detail_level"), overrides)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        max_commits = int(values.get("max_commits") or 300)
        if max_commits <= 0:
            raise ConfigurationError("max_commits must be positive")
        return GitSourceConfig(
            source_id=source_id,
            project_id=project_id,
            repo_path=repo_path,
            branch_whitelist=tuple(values.get("branch_whitelist") or ()),
            author=values.get("author") or None,
            max_commits=max_commits,
            extraction=extraction,
            extra={k: v for k, v in values.items() if k not in _GIT_FIELDS},
        )

    repo = _require(values, "repo")
    if not REPO_PATTERN.match(repo):
        raise ConfigurationError(f"Invalid repository format: {repo}. Expected: owner/repo")
    return GitHubSourceConfig(
        source_id=source_id,
        project_id=project_id,
        repo=repo,
        branch=values.get("branch") or None,
        author=values.get("author") or "@me",
        include_commits=values.get("include_commits", True) is not False,
        include_prs=values.get("include_prs", True) is not False,
        include_issues=values.get("include_issues", False) is True,
        commit_stats=values.get("commit_stats", True) is not False,
        extra={k: v for k, v in values.items() if k not in _GITHUB_FIELDS},
    )
