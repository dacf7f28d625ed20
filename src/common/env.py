"""Environment configuration interface for achievement extraction.

All environment variable access goes through this module. Values can also be
supplied through a `.env` file in the working directory.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


class Environment:
    """Interface for accessing environment configuration."""

    @staticmethod
    def cache_dir() -> Path:
        """Get the directory holding per-source item ledgers.

        Returns:
            Ledger directory, defaults to ~/.bragdoc/cache/commits
        """
        default = Path.home() / ".bragdoc" / "cache" / "commits"
        return Path(os.getenv("BRAG_CACHE_DIR", str(default))).expanduser()

    @staticmethod
    def api_url() -> str:
        """Get the achievements service base URL.

        Returns:
            Base URL without trailing slash, defaults to https://www.bragdoc.ai
        """
        return os.getenv("BRAG_API_URL", "https://www.bragdoc.ai").rstrip("/")

    @staticmethod
    def api_token() -> str | None:
        """Get the bearer token for the achievements service.

        Returns:
            Token, or None when unset
        """
        return os.getenv("BRAG_API_TOKEN") or None

    @staticmethod
    def batch_size() -> int:
        """Get the maximum number of items per summarization batch.

        Returns:
            Batch size, defaults to 10
        """
        return int(os.getenv("BRAG_BATCH_SIZE", "10"))

    @staticmethod
    def max_retries() -> int:
        """Get the number of attempts per batch.

        Returns:
            Attempts, defaults to 3
        """
        return int(os.getenv("BRAG_MAX_RETRIES", "3"))

    @staticmethod
    def retry_delay() -> float:
        """Get the delay between batch attempts in seconds.

        Returns:
            Delay, defaults to 1.0
        """
        return float(os.getenv("BRAG_RETRY_DELAY", "1.0"))

    @staticmethod
    def detail_level() -> str:
        """Get the default detail level for git extraction.

        Returns:
            Preset name, defaults to 'standard'
        """
        return os.getenv("BRAG_DETAIL_LEVEL", "standard")

    @staticmethod
    def max_commits() -> int:
        """Get the default maximum number of commits read per source.

        Returns:
            Commit limit, defaults to 300
        """
        return int(os.getenv("BRAG_MAX_COMMITS", "300"))


env = Environment()
