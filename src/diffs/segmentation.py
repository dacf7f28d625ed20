"""Split unified diffs into per-file blocks and bound their size.

Everything here is pure: no git calls and no I/O. The git connector feeds the
output of `git show --patch` through `build_file_diffs` so that a single huge
commit cannot blow up the summarization payload.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache

from common.detail_levels import ExtractionConfig

_HEADER_RE = re.compile(r"^diff --git a/(.+) b/(.+)$")
_MARKER_RE = re.compile(r"^\.\.\. \((\d+) more lines\)$")


@dataclass(frozen=True)
class DiffBlock:
    """Raw diff text for one file, header line included."""

    path: str
    diff: str


@dataclass(frozen=True)
class FileDiff:
    """Budgeted diff for one file."""

    path: str
    diff: str
    is_truncated: bool = False


@dataclass(frozen=True)
class DiffLimitResult:
    """Output of limit_size."""

    diffs: list[FileDiff]
    truncated: bool


@dataclass(frozen=True)
class FileStat:
    """Per-file line statistics from `git show --numstat`."""

    path: str
    additions: int
    deletions: int


def split_by_file(diff_text: str) -> list[DiffBlock]:
    """Split unified diff output into per-file blocks.

    A block starts at each ``diff --git a/<old> b/<new>`` header and runs
    until the next header. The ``b/`` path names the block. Lines before the
    first header are ignored.

    Args:
        diff_text: Output of ``git diff`` / ``git show --patch``

    Returns:
        Blocks in the order they appear
    """
    blocks: list[DiffBlock] = []
    current_path: str | None = None
    current_lines: list[str] = []

    for line in diff_text.split("\n"):
        match = _HEADER_RE.match(line)
        if match:
            if current_path is not None:
                blocks.append(DiffBlock(path=current_path, diff="\n".join(current_lines)))
            current_path = match.group(2)
            current_lines = [line]
        elif current_path is not None:
            current_lines.append(line)

    if current_path is not None:
        blocks.append(DiffBlock(path=current_path, diff="\n".join(current_lines)))

    return blocks


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**", i):
            parts.append(".*")
            i += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        i += 1
    return re.compile("".join(parts))


def matches_pattern(path: str, patterns: Iterable[str]) -> bool:
    """Check whether a path matches any glob pattern.

    ``**`` matches across path separators, ``*`` and ``?`` stay within one
    segment, and the whole path must match.

    Example:
        >>> matches_pattern("src/core/app.py", ["src/**"])
        True
        >>> matches_pattern("src/core/app.py", ["src/*"])
        False
    """
    return any(_compile_glob(pattern).fullmatch(path) for pattern in patterns)


def prioritize_and_filter(
    blocks: Sequence[DiffBlock],
    exclude_patterns: Iterable[str] = (),
    include_patterns: Iterable[str] = (),
) -> list[DiffBlock]:
    """Drop excluded files and move prioritized files to the front.

    Relative order is preserved inside both the prioritized and the remaining
    group.

    Args:
        blocks: Per-file diff blocks
        exclude_patterns: Globs of paths to drop
        include_patterns: Globs of paths to put first

    Returns:
        Filtered, reordered blocks
    """
    exclude_patterns = tuple(exclude_patterns)
    include_patterns = tuple(include_patterns)

    priority: list[DiffBlock] = []
    normal: list[DiffBlock] = []
    for block in blocks:
        if matches_pattern(block.path, exclude_patterns):
            continue
        if matches_pattern(block.path, include_patterns):
            priority.append(block)
        else:
            normal.append(block)

    return priority + normal


def _content_lines(diff: str) -> tuple[list[str], int]:
    """Split a diff into content lines and the count a trailing marker reports."""
    lines = diff.split("\n")
    match = _MARKER_RE.match(lines[-1])
    if match:
        return lines[:-1], int(match.group(1))
    return lines, 0


def _truncate(path: str, lines: list[str], keep: int, hidden: int) -> FileDiff:
    omitted = len(lines) - keep + hidden
    marker = f"... ({omitted} more lines)"
    text = "\n".join([*lines[:keep], marker])
    return FileDiff(path=path, diff=text, is_truncated=True)


def limit_size(
    blocks: Sequence[DiffBlock | FileDiff],
    max_lines_per_file: int,
    max_lines_per_commit: int,
    max_files: int,
) -> DiffLimitResult:
    """Apply per-file, per-commit and file-count budgets to diff blocks.

    Files are taken in input order. A file longer than ``max_lines_per_file``
    keeps its first lines followed by a ``... (N more lines)`` marker. If a
    file would push the running total past ``max_lines_per_commit`` it is cut
    to the remaining budget (or dropped when nothing remains) and processing
    stops. Marker lines do not count against the budgets, so feeding the
    result back in with the same budgets returns it unchanged.

    Args:
        blocks: Blocks to budget (already-limited FileDiffs are accepted)
        max_lines_per_file: Line budget for one file
        max_lines_per_commit: Line budget for all files together
        max_files: Maximum number of files to keep

    Returns:
        DiffLimitResult with the kept diffs and whether anything was cut
    """
    diffs: list[FileDiff] = []
    total_lines = 0
    truncated = False

    for block in blocks:
        if len(diffs) >= max_files:
            truncated = True
            break

        lines, hidden = _content_lines(block.diff)
        already_truncated = getattr(block, "is_truncated", False)

        if len(lines) > max_lines_per_file:
            candidate = _truncate(block.path, lines, max_lines_per_file, hidden)
            kept = max_lines_per_file
        else:
            candidate = FileDiff(path=block.path, diff=block.diff, is_truncated=already_truncated)
            kept = len(lines)

        if total_lines + kept > max_lines_per_commit:
            remaining = max_lines_per_commit - total_lines
            if remaining > 0:
                diffs.append(_truncate(block.path, lines, remaining, hidden))
            truncated = True
            break

        diffs.append(candidate)
        total_lines += kept
        truncated = truncated or candidate.is_truncated

    return DiffLimitResult(diffs=diffs, truncated=truncated)


def build_file_diffs(diff_text: str, config: ExtractionConfig) -> DiffLimitResult:
    """Split, filter, prioritize and budget a commit's diff.

    Args:
        diff_text: Raw unified diff of one commit
        config: Extraction settings supplying patterns and budgets

    Returns:
        Budgeted per-file diffs
    """
    blocks = split_by_file(diff_text)
    blocks = prioritize_and_filter(
        blocks, config.exclude_diff_patterns, config.prioritize_diff_patterns
    )
    return limit_size(
        blocks,
        max_lines_per_file=config.max_diff_lines_per_file,
        max_lines_per_commit=config.max_diff_lines_per_commit,
        max_files=config.max_files_in_diff,
    )


def parse_numstat(numstat_text: str) -> list[FileStat]:
    """Parse ``git show --numstat`` output.

    Format per line: ``<additions>\\t<deletions>\\t<path>``. Binary files
    report ``-`` for both counts and are recorded as zero.
    """
    stats: list[FileStat] = []
    for line in numstat_text.strip().split("\n"):
        if not line.strip():
            continue
        parts = line.split("\t")
        if len(parts) != 3:
            continue
        additions, deletions, path = parts
        stats.append(
            FileStat(
                path=path,
                additions=int(additions) if additions.isdigit() else 0,
                deletions=int(deletions) if deletions.isdigit() else 0,
            )
        )
    return stats
