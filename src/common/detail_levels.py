"""Detail-level presets controlling how much diff/stat data git items carry."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class DetailLevel(str, Enum):
    """Named extraction presets."""

    MINIMAL = "minimal"
    STANDARD = "standard"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


DEFAULT_EXCLUDE_DIFF_PATTERNS: tuple[str, ...] = (
    "package-lock.json",
    "**/package-lock.json",
    "yarn.lock",
    "**/yarn.lock",
    "pnpm-lock.yaml",
    "**/pnpm-lock.yaml",
    "poetry.lock",
    "**/poetry.lock",
    "dist/**",
    "build/**",
    "node_modules/**",
    "**/*.min.js",
    "**/*.map",
)

DEFAULT_PRIORITIZE_DIFF_PATTERNS: tuple[str, ...] = ("src/**", "lib/**", "app/**")


@dataclass(frozen=True)
class ExtractionConfig:
    """Resolved extraction settings for a git source.

    Attributes:
        include_stats: Attach per-file addition/deletion counts
        include_diff: Attach budgeted per-file diffs
        max_diff_lines_per_commit: Line budget across all files of one commit
        max_diff_lines_per_file: Line budget for a single file
        max_files_in_diff: Maximum number of files kept per commit
        exclude_diff_patterns: Globs for paths never included in diffs
        prioritize_diff_patterns: Globs for paths moved to the front
    """

    include_stats: bool = True
    include_diff: bool = False
    max_diff_lines_per_commit: int = 500
    max_diff_lines_per_file: int = 100
    max_files_in_diff: int = 20
    exclude_diff_patterns: tuple[str, ...] = field(default=DEFAULT_EXCLUDE_DIFF_PATTERNS)
    prioritize_diff_patterns: tuple[str, ...] = field(default=DEFAULT_PRIORITIZE_DIFF_PATTERNS)

    def __post_init__(self):
        for name in ("max_diff_lines_per_commit", "max_diff_lines_per_file", "max_files_in_diff"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


PRESETS: dict[DetailLevel, ExtractionConfig] = {
    DetailLevel.MINIMAL: ExtractionConfig(include_stats=False, include_diff=False),
    DetailLevel.STANDARD: ExtractionConfig(include_stats=True, include_diff=False),
    DetailLevel.DETAILED: ExtractionConfig(
        include_stats=True,
        include_diff=True,
        max_diff_lines_per_commit=500,
        max_diff_lines_per_file=100,
        max_files_in_diff=20,
    ),
    DetailLevel.COMPREHENSIVE: ExtractionConfig(
        include_stats=True,
        include_diff=True,
        max_diff_lines_per_commit=1000,
        max_diff_lines_per_file=200,
        max_files_in_diff=50,
    ),
}


def resolve_extraction_config(
    detail_level: DetailLevel | str | None = None,
    overrides: dict[str, Any] | None = None,
) -> ExtractionConfig:
    """Resolve a detail level plus explicit overrides into an ExtractionConfig.

    Fine-grained overrides win over the preset's values. Pattern lists may be
    given as any sequence and are stored as tuples.

    Args:
        detail_level: Preset name (default: 'standard')
        overrides: Field values replacing the preset's

    Returns:
        Resolved configuration

    Raises:
        ValueError: If the preset name or an override key is unknown

    Example:
        >>> resolve_extraction_config("detailed", {"max_files_in_diff": 5}).max_files_in_diff
        5
    """
    if detail_level is None:
        detail_level = DetailLevel.STANDARD
    if isinstance(detail_level, str):
        try:
            detail_level = DetailLevel(detail_level.lower())
        except ValueError as e:
            raise ValueError(
                f"Unsupported detail level: {detail_level}. "
                f"Must be one of: {', '.join(level.value for level in DetailLevel)}"
            ) from e

    config = PRESETS[detail_level]
    if not overrides:
        return config

    known = set(ExtractionConfig.__dataclass_fields__)
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"Unknown extraction setting(s): {', '.join(unknown)}")

    values = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key.endswith("_patterns"):
            value = tuple(value)
        values[key] = value

    return replace(config, **values)
