"""Connector for GitHub repositories, read through the gh CLI.

No local clone is needed. Commits come from the REST API (`gh api`), merged
pull requests and closed issues from `gh pr list` / `gh issue list`.
"""

from datetime import timezone

from common.logger import get_logger

from . import gh_cli
from .base import Connector
from .errors import ConfigurationError, ConnectorError
from .models import (
    REPO_PATTERN,
    FetchOptions,
    GitHubSourceConfig,
    NormalizedItem,
    SourceConfig,
    SourceType,
)

logger = get_logger(__name__)

DEFAULT_LIMIT = 100
# REST API page size cap
MAX_PER_PAGE = 100

PR_FIELDS = "number,title,body,mergedAt,additions,deletions,changedFiles,headRefName,baseRefName,url"
ISSUE_FIELDS = "number,title,body,closedAt,url,labels"


class GitHubConnector(Connector):
    """Read commits, merged PRs and closed issues of one GitHub repository.

    Example:
        >>> connector = GitHubConnector(cache)
        >>> connector.initialize(parse_source_config(
        ...     {"type": "github", "source_id": "s1", "project_id": "p1", "repo": "acme/api"}
        ... ))
        >>> items = connector.fetch(FetchOptions(limit=50))
    """

    @property
    def type(self) -> SourceType:
        return SourceType.GITHUB

    def initialize(self, config: SourceConfig) -> None:
        self._check_type(config)
        if not config.repo:
            raise ConfigurationError("GitHub repository (repo) not configured. Format: owner/repo")
        if not REPO_PATTERN.match(config.repo):
            raise ConfigurationError(f"Invalid repository format: {config.repo}. Expected: owner/repo")
        self.config = config
        logger.debug(f"Initialized GitHub connector for {config.repo} (source {config.source_id})")

    def fetch(self, options: FetchOptions | None = None) -> list[NormalizedItem]:
        config: GitHubSourceConfig = self._require_config()
        options = options or FetchOptions()
        limit = options.limit or DEFAULT_LIMIT

        logger.debug(
            f"Fetching {config.repo}: commits={config.include_commits}, "
            f"prs={config.include_prs}, issues={config.include_issues}"
        )

        items: list[NormalizedItem] = []
        if config.include_commits:
            commits = self._fetch_commits(config, options, limit)
            logger.debug(f"Fetched {len(commits)} commit(s)")
            items.extend(commits)
        if config.include_prs:
            prs = self._fetch_pull_requests(config, limit)
            logger.debug(f"Fetched {len(prs)} merged PR(s)")
            items.extend(prs)
        if config.include_issues:
            issues = self._fetch_issues(config, limit)
            logger.debug(f"Fetched {len(issues)} closed issue(s)")
            items.extend(issues)

        # The API filters `since` natively for commits only
        items = self._filter_window(items, options.since, options.until)
        return self._mark_cached(items, options.skip_cache)

    def _fetch_commits(
        self, config: GitHubSourceConfig, options: FetchOptions, limit: int
    ) -> list[NormalizedItem]:
        query = f"per_page={min(limit, MAX_PER_PAGE)}"
        if options.since:
            query += f"&since={options.since.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')}"
        if config.branch:
            query += f"&sha={config.branch}"

        commits = gh_cli.run_gh_json("api", f"repos/{config.repo}/commits?{query}")
        if not isinstance(commits, list):
            raise ConnectorError(f"Unexpected response listing commits of {config.repo}")

        if config.author and config.author != "@me":
            commits = [
                c
                for c in commits
                if config.author in (c["commit"]["author"].get("email"), c["commit"]["author"].get("name"))
            ]

        items = []
        for commit in commits[:limit]:
            sha = commit["sha"]
            author = commit["commit"]["author"]
            message = commit["commit"]["message"]
            raw = {"type": "commit", "sha": sha, "email": author.get("email"), "url": commit.get("html_url")}

            if config.commit_stats:
                try:
                    detail = gh_cli.run_gh_json("api", f"repos/{config.repo}/commits/{sha}")
                    if not isinstance(detail, dict):
                        raise ConnectorError(f"Unexpected response for commit {sha[:8]}")
                    raw["stats"] = detail.get("stats")
                    raw["files"] = [
                        {
                            "path": f["filename"],
                            "additions": f.get("additions", 0),
                            "deletions": f.get("deletions", 0),
                        }
                        for f in detail.get("files") or []
                    ]
                except ConnectorError as e:
                    logger.warning(f"Failed to fetch stats for commit {sha[:8]}: {e}")

            items.append(
                NormalizedItem(
                    id=sha,
                    title=message.split("\n", 1)[0].strip() or "No commit message",
                    description=message,
                    author=author.get("name") or "",
                    timestamp=gh_cli.parse_timestamp(author["date"]),
                    raw=raw,
                )
            )
        return items

    def _fetch_pull_requests(self, config: GitHubSourceConfig, limit: int) -> list[NormalizedItem]:
        prs = gh_cli.run_gh_json(
            "pr", "list",
            "--repo", config.repo,
            "--author", config.author,
            "--state", "merged",
            "--limit", str(limit),
            "--json", PR_FIELDS,
        )

        return [
            NormalizedItem(
                id=f"pr-{pr['number']}",
                title=pr["title"],
                description=pr.get("body") or "",
                author=config.author,
                timestamp=gh_cli.parse_timestamp(pr["mergedAt"]),
                raw={
                    "type": "pr",
                    "number": pr["number"],
                    "additions": pr.get("additions"),
                    "deletions": pr.get("deletions"),
                    "changed_files": pr.get("changedFiles"),
                    "head_branch": pr.get("headRefName"),
                    "base_branch": pr.get("baseRefName"),
                    "url": pr.get("url"),
                },
            )
            for pr in prs
            if pr.get("mergedAt")
        ]

    def _fetch_issues(self, config: GitHubSourceConfig, limit: int) -> list[NormalizedItem]:
        issues = gh_cli.run_gh_json(
            "issue", "list",
            "--repo", config.repo,
            "--author", config.author,
            "--state", "closed",
            "--limit", str(limit),
            "--json", ISSUE_FIELDS,
        )

        return [
            NormalizedItem(
                id=f"issue-{issue['number']}",
                title=issue["title"],
                description=issue.get("body") or "",
                author=config.author,
                timestamp=gh_cli.parse_timestamp(issue["closedAt"]),
                raw={
                    "type": "issue",
                    "number": issue["number"],
                    "labels": [label["name"] for label in issue.get("labels") or []],
                    "url": issue.get("url"),
                },
            )
            for issue in issues
            if issue.get("closedAt")
        ]

    def validate(self) -> bool:
        if self.config is None:
            logger.error("GitHub connector not initialized")
            return False

        status = gh_cli.check_gh_cli()
        if not status.available or not status.authenticated:
            logger.error(status.error)
            return False

        if not gh_cli.can_view_repo(self.config.repo):
            logger.error(
                f"Cannot access repository {self.config.repo}. "
                "Check permissions and repository name."
            )
            return False
        return True
