"""Git command helpers for the local repository connector."""

import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from common.logger import get_logger

logger = get_logger(__name__)

# %x1f separates fields, %x00 separates commits
LOG_FORMAT = "%H%x1f%B%x1f%an%x1f%aI%x00"


@dataclass
class GitCommit:
    """A commit as read from `git log`."""

    hash: str
    message: str
    author: str
    date: datetime
    branch: str


def run_git(repo_root: Path, *args: str) -> str:
    """
    Run a git command in a repository and return its stdout.

    Args:
        repo_root: Path to the repository working tree
        *args: Arguments after `git`

    Returns:
        Command output, with undecodable bytes replaced

    Raises:
        subprocess.CalledProcessError: If git exits non-zero
        FileNotFoundError: If git is not installed or repo_root is missing
    """
    result = subprocess.run(
        ["git", *args],
        cwd=repo_root,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=True,
    )
    return result.stdout


def is_git_repository(repo_root: Path) -> bool:
    """Check whether a path is inside a git working tree."""
    try:
        return run_git(repo_root, "rev-parse", "--is-inside-work-tree").strip() == "true"
    except (subprocess.CalledProcessError, FileNotFoundError, NotADirectoryError):
        return False


def get_current_branch(repo_root: Path) -> str:
    """
    Get the checked-out branch name.

    Raises:
        subprocess.CalledProcessError: If git command fails
    """
    return run_git(repo_root, "rev-parse", "--abbrev-ref", "HEAD").strip()


def get_head_commit(repo_root: Path) -> str:
    """
    Get current HEAD commit hash.

    Raises:
        subprocess.CalledProcessError: If git command fails (e.g. no commits yet)
    """
    return run_git(repo_root, "rev-parse", "HEAD").strip()


def get_remote_url(repo_root: Path) -> str | None:
    """Get the origin remote URL, or None when no origin is configured."""
    try:
        return run_git(repo_root, "config", "--get", "remote.origin.url").strip() or None
    except subprocess.CalledProcessError:
        return None


def get_current_git_user(repo_root: Path) -> str | None:
    """Get the configured user.name, or None when unset."""
    try:
        return run_git(repo_root, "config", "user.name").strip() or None
    except subprocess.CalledProcessError:
        return None


def parse_log_output(output: str, branch: str) -> list[GitCommit]:
    """
    Parse `git log` output produced with LOG_FORMAT.

    Args:
        output: Raw stdout of git log
        branch: Branch the log was read from

    Returns:
        Commits in output order

    Raises:
        ValueError: If an entry does not have the expected four fields
    """
    commits: list[GitCommit] = []

    for entry in output.split("\x00"):
        if not entry.strip():
            continue

        fields = [part.strip() for part in entry.split("\x1f")]
        if len(fields) != 4 or not fields[0] or not fields[3]:
            raise ValueError(f"Invalid git log entry format: {entry!r}")

        commit_hash, message, author, date_text = fields
        commits.append(
            GitCommit(
                hash=commit_hash,
                message=message,
                author=author,
                date=datetime.fromisoformat(date_text),
                branch=branch,
            )
        )

    return commits


def _git_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %z").strip()


def log_commits(
    repo_root: Path,
    branch: str,
    max_count: int,
    since: datetime | None = None,
    until: datetime | None = None,
    author: str | None = None,
) -> list[GitCommit]:
    """
    Read commits of a branch, oldest first.

    Uses: git log <branch> --reverse --pretty=format:... --max-count=N

    Args:
        repo_root: Path to the repository working tree
        branch: Branch (or any revision) to read
        max_count: Maximum number of commits
        since: Only commits after this time
        until: Only commits before this time
        author: Only commits whose author matches

    Returns:
        List of GitCommit

    Raises:
        subprocess.CalledProcessError: If git command fails
        ValueError: If the output cannot be parsed
    """
    args = ["log", branch, "--reverse", f"--pretty=format:{LOG_FORMAT}", f"--max-count={max_count}"]
    if since is not None:
        args.append(f"--since={_git_date(since)}")
    if until is not None:
        args.append(f"--until={_git_date(until)}")
    if author:
        args.append(f"--author={author}")

    return parse_log_output(run_git(repo_root, *args), branch)


def show_numstat(repo_root: Path, commit_hash: str) -> str:
    """
    Get per-file line counts for a commit.

    Uses: git show --numstat --format= <hash>
    """
    return run_git(repo_root, "show", "--numstat", "--format=", commit_hash)


def show_patch(repo_root: Path, commit_hash: str) -> str:
    """
    Get the unified diff of a commit.

    Uses: git show --patch --format= <hash>
    """
    return run_git(repo_root, "show", "--patch", "--format=", "--no-color", commit_hash)
