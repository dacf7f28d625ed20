"""Connector for local git repositories."""

import subprocess
from dataclasses import asdict

from common.logger import get_logger
from diffs.segmentation import build_file_diffs, parse_numstat

from . import git_utils
from .base import Connector
from .errors import ConfigurationError, ConnectorError, TransportError
from .models import FetchOptions, GitSourceConfig, NormalizedItem, SourceConfig, SourceType

logger = get_logger(__name__)


def _reason(e: Exception) -> str:
    if isinstance(e, subprocess.CalledProcessError) and e.stderr:
        return e.stderr.strip()
    return str(e)


class GitConnector(Connector):
    """Read commits from a git working tree on this machine.

    Only the checked-out branch is read. When a branch whitelist is
    configured and the current branch is not on it, nothing is returned.
    """

    @property
    def type(self) -> SourceType:
        return SourceType.GIT

    def initialize(self, config: SourceConfig) -> None:
        self._check_type(config)
        if not str(config.repo_path).strip():
            raise ConfigurationError("Git source requires repo_path")
        self.config = config
        logger.debug(f"Initialized git connector for {config.repo_path} (source {config.source_id})")

    def fetch(self, options: FetchOptions | None = None) -> list[NormalizedItem]:
        config: GitSourceConfig = self._require_config()
        options = options or FetchOptions()
        repo_root = config.repo_path

        try:
            branch = git_utils.get_current_branch(repo_root)
        except subprocess.CalledProcessError as e:
            raise TransportError(
                f"Failed to read current branch of {repo_root}: {e.stderr.strip()}"
            ) from e
        except (FileNotFoundError, NotADirectoryError) as e:
            raise ConnectorError(f"Cannot run git in {repo_root}: {e}") from e

        if config.branch_whitelist and branch not in config.branch_whitelist:
            logger.info(
                f"Branch '{branch}' is not in the whitelist "
                f"({', '.join(config.branch_whitelist)}), skipping {repo_root}"
            )
            return []

        max_count = min(options.limit, config.max_commits) if options.limit else config.max_commits
        try:
            commits = git_utils.log_commits(
                repo_root,
                branch,
                max_count=max_count,
                since=options.since,
                until=options.until,
                author=config.author,
            )
        except subprocess.CalledProcessError as e:
            raise TransportError(f"git log failed in {repo_root}: {e.stderr.strip()}") from e
        except ValueError as e:
            raise ConnectorError(f"Unexpected git log output in {repo_root}: {e}") from e

        logger.debug(f"Read {len(commits)} commit(s) from {branch} in {repo_root}")

        items = [self._to_item(commit, config) for commit in commits]
        items = self._filter_window(items, options.since, options.until)
        return self._mark_cached(items, options.skip_cache)

    def _to_item(self, commit: git_utils.GitCommit, config: GitSourceConfig) -> NormalizedItem:
        raw = {
            "type": "commit",
            "hash": commit.hash,
            "branch": commit.branch,
            "repository": str(config.repo_path),
        }
        extraction = config.extraction

        if extraction.include_stats:
            try:
                files = parse_numstat(git_utils.show_numstat(config.repo_path, commit.hash))
                raw["files"] = [asdict(f) for f in files]
                raw["stats"] = {
                    "files_changed": len(files),
                    "additions": sum(f.additions for f in files),
                    "deletions": sum(f.deletions for f in files),
                }
            except (subprocess.CalledProcessError, UnicodeDecodeError) as e:
                logger.warning(f"Could not read stats for commit {commit.hash[:8]}: {_reason(e)}")

        if extraction.include_diff:
            try:
                result = build_file_diffs(
                    git_utils.show_patch(config.repo_path, commit.hash), extraction
                )
                raw["diffs"] = [asdict(d) for d in result.diffs]
                raw["diff_truncated"] = result.truncated
            except (subprocess.CalledProcessError, UnicodeDecodeError) as e:
                logger.warning(f"Could not read diff for commit {commit.hash[:8]}: {_reason(e)}")

        title = commit.message.split("\n", 1)[0].strip()
        return NormalizedItem(
            id=commit.hash,
            title=title,
            description=commit.message,
            author=commit.author,
            timestamp=commit.date,
            raw=raw,
        )

    def validate(self) -> bool:
        if self.config is None:
            logger.error("Git connector not initialized")
            return False

        repo_root = self.config.repo_path
        if not repo_root.is_dir():
            logger.error(f"Repository path does not exist: {repo_root}")
            return False
        if not git_utils.is_git_repository(repo_root):
            logger.error(f"Not a git repository: {repo_root}")
            return False
        try:
            git_utils.get_head_commit(repo_root)
        except subprocess.CalledProcessError as e:
            logger.error(f"Repository has no commits or HEAD is invalid: {e.stderr.strip()}")
            return False
        return True
