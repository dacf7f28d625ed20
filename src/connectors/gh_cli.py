"""Helpers for running the GitHub CLI (gh)."""

import json
import subprocess
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from common.logger import get_logger

from .errors import AuthenticationError, ConnectorError, RateLimitError, TransportError

logger = get_logger(__name__)

GH_INSTALL_MESSAGE = "GitHub CLI (gh) is not installed. Install from https://cli.github.com/"
GH_NOT_AUTHENTICATED_MESSAGE = "GitHub CLI is not authenticated. Run 'gh auth login' first."
RATE_LIMIT_MESSAGE = "GitHub API rate limit exceeded. Please wait and try again."
AUTH_FAILED_MESSAGE = "GitHub authentication failed. Run 'gh auth login' to re-authenticate."


@dataclass
class GhStatus:
    """Availability of the gh CLI."""

    available: bool
    authenticated: bool
    error: str | None = None


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as returned by GitHub ('Z' suffix allowed)."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def run_gh(*args: str) -> str:
    """
    Run a gh command and return its stdout.

    Args:
        *args: Arguments after `gh`

    Returns:
        Command output

    Raises:
        RateLimitError: If GitHub reports rate limiting
        AuthenticationError: If GitHub rejects the credentials
        TransportError: For any other non-zero exit
        ConnectorError: If gh is not installed
    """
    try:
        result = subprocess.run(
            ["gh", *args],
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise ConnectorError(GH_INSTALL_MESSAGE) from e
    except subprocess.CalledProcessError as e:
        output = f"{e.stderr or ''}\n{e.stdout or ''}"
        lowered = output.lower()
        if "rate limit" in lowered:
            raise RateLimitError(RATE_LIMIT_MESSAGE) from e
        if "401" in output or "authentication" in lowered:
            raise AuthenticationError(AUTH_FAILED_MESSAGE) from e
        raise TransportError(f"gh {args[0] if args else ''} failed: {output.strip()}") from e

    return result.stdout


def run_gh_json(*args: str) -> Any:
    """
    Run a gh command whose output is JSON.

    Raises:
        ConnectorError: If the output is not valid JSON (plus everything
            run_gh raises)
    """
    output = run_gh(*args)
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise ConnectorError(f"gh returned invalid JSON for 'gh {' '.join(args)}': {e}") from e


def check_gh_cli() -> GhStatus:
    """Check that gh is installed and logged in."""
    try:
        subprocess.run(["gh", "--version"], capture_output=True, text=True, check=True)
    except (FileNotFoundError, subprocess.CalledProcessError):
        return GhStatus(available=False, authenticated=False, error=GH_INSTALL_MESSAGE)

    try:
        result = subprocess.run(
            ["gh", "auth", "status"], capture_output=True, text=True, check=True
        )
    except subprocess.CalledProcessError:
        return GhStatus(available=True, authenticated=False, error=GH_NOT_AUTHENTICATED_MESSAGE)

    # gh prints its status on stderr
    output = f"{result.stdout}{result.stderr}".lower()
    if "not logged" in output:
        return GhStatus(available=True, authenticated=False, error=GH_NOT_AUTHENTICATED_MESSAGE)
    return GhStatus(available=True, authenticated=True)


def can_view_repo(repo: str) -> bool:
    """Check that the authenticated user can read a repository."""
    try:
        subprocess.run(
            ["gh", "repo", "view", repo, "--json", "name"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (FileNotFoundError, subprocess.CalledProcessError):
        return False
    logger.debug(f"Repository {repo} is accessible")
    return True
