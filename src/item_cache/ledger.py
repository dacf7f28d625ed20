"""Per-source ledger of already-processed item identifiers.

Each source gets one UTF-8 text file, ``<cache_dir>/<source_id>.txt``, holding
one identifier per line. Files are only ever appended to; a ledger shrinks
only through an explicit clear.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from common.logger import get_logger

logger = get_logger(__name__)

LEDGER_SUFFIX = ".txt"


class CacheError(Exception):
    """Ledger I/O failed for a reason other than a missing file."""

    pass


@dataclass
class CacheStats:
    """Summary of ledger contents."""

    sources: int
    items: int
    per_source: dict[str, int] = field(default_factory=dict)


class ItemCache:
    """Append-only, per-source set of processed item IDs.

    Ledgers are loaded lazily the first time a source is touched and served
    from memory afterwards. Mutations append to the file first and update the
    in-memory set only once the write succeeded.

    Example:
        >>> cache = ItemCache(Path("~/.bragdoc/cache/commits").expanduser())
        >>> cache.add("source-1", ["abc123", "def456"])
        >>> cache.has("source-1", "abc123")
        True
    """

    def __init__(self, cache_dir: Path | str):
        """Initialize the cache.

        Args:
            cache_dir: Directory holding one ledger file per source
        """
        self.cache_dir = Path(cache_dir)
        self._ledgers: dict[str, set[str]] = {}

    def ledger_path(self, source_id: str) -> Path:
        """Get the ledger file path for a source.

        Raises:
            ValueError: If source_id could escape the cache directory
        """
        if not source_id or source_id in (".", "..") or "/" in source_id or "\\" in source_id:
            raise ValueError(f"Invalid source id for item cache: {source_id!r}")
        return self.cache_dir / f"{source_id}{LEDGER_SUFFIX}"

    def _ledger_files(self) -> list[Path]:
        if not self.cache_dir.is_dir():
            return []
        return sorted(self.cache_dir.glob(f"*{LEDGER_SUFFIX}"))

    def _load(self, source_id: str) -> set[str]:
        ledger = self._ledgers.get(source_id)
        if ledger is not None:
            return ledger

        path = self.ledger_path(source_id)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            content = ""
        except OSError as e:
            raise CacheError(f"Failed to read item cache {path}: {e}") from e

        ledger = {line.strip() for line in content.split("\n") if line.strip()}
        self._ledgers[source_id] = ledger
        logger.debug(f"Loaded {len(ledger)} cached item(s) for source {source_id}")
        return ledger

    def has(self, source_id: str, item_id: str) -> bool:
        """Check whether an item was already processed for a source."""
        return item_id in self._load(source_id)

    def list(self, source_id: str) -> list[str]:
        """List processed item IDs for a source, sorted."""
        return sorted(self._load(source_id))

    def add(self, source_id: str, item_ids: Iterable[str]) -> None:
        """Record items as processed.

        IDs already in the ledger (and repeats within ``item_ids``) are
        skipped. An empty input does no I/O.

        Args:
            source_id: Source the items belong to
            item_ids: Identifiers of successfully processed items

        Raises:
            CacheError: If the ledger cannot be written
        """
        item_ids = list(item_ids)
        if not item_ids:
            return

        ledger = self._load(source_id)
        new_ids: list[str] = []
        seen: set[str] = set()
        for item_id in item_ids:
            if item_id in ledger or item_id in seen:
                continue
            seen.add(item_id)
            new_ids.append(item_id)

        if not new_ids:
            return

        path = self.ledger_path(source_id)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write("\n".join(new_ids) + "\n")
        except OSError as e:
            raise CacheError(f"Failed to add items to cache {path}: {e}") from e

        ledger.update(new_ids)
        logger.debug(f"Cached {len(new_ids)} new item(s) for source {source_id} ({path})")

    def clear(self, source_id: str | None = None) -> None:
        """Clear one source's ledger, or every ledger when source_id is None.

        Clearing everything deletes every ``*.txt`` file directly inside
        ``cache_dir``, so the directory should not be shared with other
        text files. Files with other suffixes and subdirectories are left alone.

        Raises:
            CacheError: If a ledger file exists but cannot be removed
        """
        if source_id is not None:
            path = self.ledger_path(source_id)
            logger.debug(f"Deleting cache file: {path}")
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise CacheError(f"Failed to clear cache {path}: {e}") from e
            self._ledgers.pop(source_id, None)
            return

        logger.debug(f"Clearing all cache files in {self.cache_dir}")
        try:
            for path in self._ledger_files():
                path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to clear cache directory {self.cache_dir}: {e}") from e
        self._ledgers.clear()

    def stats(self, source_id: str | None = None) -> CacheStats:
        """Count cached items for one source or for all sources on disk."""
        if source_id is not None:
            count = len(self._load(source_id))
            return CacheStats(sources=1, items=count, per_source={source_id: count})

        try:
            source_ids = [path.stem for path in self._ledger_files()]
        except OSError as e:
            raise CacheError(f"Failed to read cache directory {self.cache_dir}: {e}") from e

        per_source = {sid: len(self._load(sid)) for sid in sorted(source_ids)}
        return CacheStats(
            sources=len(per_source),
            items=sum(per_source.values()),
            per_source=per_source,
        )
