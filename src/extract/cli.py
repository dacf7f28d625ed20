#!/usr/bin/env python3
"""CLI interface for achievement extraction."""

import argparse
from datetime import datetime
from typing import Any

from api.client import APIError, ApiClient
from common.detail_levels import DetailLevel
from common.env import env
from common.logger import error, get_logger, progress, setup_logging, success
from connectors.errors import ConnectorError
from connectors.models import FetchOptions, SourceConfig, parse_source_config
from connectors.registry import create_default_registry
from item_cache.ledger import CacheError, ItemCache

from .batching import BatchConfig
from .errors import BatchProcessingError
from .models import ExtractionContext
from .pipeline import run_extraction

logger = get_logger(__name__)


def _source_from_args(args) -> SourceConfig:
    """Build a source configuration from parsed arguments."""
    data: dict[str, Any] = {
        "type": args.source,
        "source_id": args.source_id,
        "project_id": args.project_id,
    }
    if args.source == "git":
        data.update(
            repo_path=args.repo_path,
            branch_whitelist=args.branch_whitelist or (),
            author=args.author,
            max_commits=args.max_commits,
            detail_level=args.detail_level,
        )
    else:
        data.update(
            repo=args.repo,
            branch=args.branch,
            author=args.author or "@me",
            include_commits=not args.no_commits,
            include_prs=not args.no_prs,
            include_issues=args.include_issues,
            commit_stats=not args.no_commit_stats,
        )
    return parse_source_config(data)


def cmd_extract(args):
    """Fetch items from a source and turn them into achievements.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        source = _source_from_args(args)
        fetch_options = FetchOptions(
            since=args.since, until=args.until, limit=args.limit, skip_cache=args.no_cache
        )
        batch_config = BatchConfig(
            max_items_per_batch=args.batch_size,
            max_retries=args.max_retries,
            retry_delay=env.retry_delay(),
        )
    except (ConnectorError, ValueError) as e:
        error(f"Invalid configuration: {e}")
        return 1

    cache = ItemCache(env.cache_dir())
    registry = create_default_registry(cache)

    try:
        if args.dry_run:
            client = None
            context = ExtractionContext(project_id=source.project_id)
        else:
            client = ApiClient(env.api_url(), env.api_token())
            if not client.is_authenticated():
                error("No API token configured. Set BRAG_API_TOKEN or add it to .env")
                return 1
            context = client.fetch_extraction_context(source.project_id)

        progress(f"Extracting from {args.source} source {source.source_id}...")
        stats = run_extraction(
            [source],
            registry,
            cache,
            summarize=client.extract_achievements if client else None,
            save=client.create_achievements if client else None,
            context=context,
            fetch_options=fetch_options,
            batch_config=batch_config,
            dry_run=args.dry_run,
        )
    except BatchProcessingError as e:
        error(str(e))
        logger.info("Items of earlier batches were recorded; rerun to continue")
        return 1
    except (ConnectorError, APIError, CacheError) as e:
        error(str(e))
        return 1

    if args.dry_run:
        success(f"Dry run: {stats['items']} item(s) would be processed")
    else:
        success(
            f"Processed {stats['items']} item(s) in {stats['batches']} batch(es): "
            f"{stats['achievements']} achievement(s), {stats['errors']} error(s)"
        )
    return 0


def cmd_validate(args):
    """Check that a source is reachable and correctly configured.

    Returns:
        Exit code (0 if valid, 1 otherwise)
    """
    try:
        source = _source_from_args(args)
        registry = create_default_registry(ItemCache(env.cache_dir()))
        connector = registry.get(source.type)
        connector.initialize(source)
    except ConnectorError as e:
        error(f"Invalid configuration: {e}")
        return 1

    if connector.validate():
        success(f"Source {source.source_id} is ready for extraction")
        return 0
    error(f"Source {source.source_id} failed validation")
    return 1


def cmd_cache(args):
    """List, count or clear cached item IDs.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    cache = ItemCache(env.cache_dir())

    try:
        if args.action == "list":
            if args.source_id:
                for item_id in cache.list(args.source_id):
                    progress(item_id)
            else:
                for source_id in cache.stats().per_source:
                    progress(source_id)

        elif args.action == "stats":
            stats = cache.stats(args.source_id)
            progress(f"Cache directory: {cache.cache_dir}")
            progress(f"Sources: {stats.sources}")
            progress(f"Cached items: {stats.items}")
            for source_id, count in stats.per_source.items():
                progress(f"  {source_id}: {count}")

        elif args.action == "clear":
            cache.clear(args.source_id)
            target = f"source {args.source_id}" if args.source_id else "all sources"
            success(f"Cache cleared for {target}")

    except (CacheError, ValueError) as e:
        error(str(e))
        return 1

    return 0


def _parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid date: {value} (expected ISO 8601)") from e


def _add_source_parsers(parser: argparse.ArgumentParser, with_run_options: bool) -> None:
    """Add `git` and `github` sub-subcommands sharing source arguments."""
    sources = parser.add_subparsers(dest="source", required=True)

    git_parser = sources.add_parser("git", help="Local git repository")
    git_parser.add_argument("--repo-path", default=".", help="Repository path (default: .)")
    git_parser.add_argument(
        "--branch-whitelist",
        nargs="+",
        default=None,
        help="Only extract when the current branch is one of these",
    )
    git_parser.add_argument(
        "--detail-level",
        choices=[level.value for level in DetailLevel],
        default=env.detail_level(),
        help="How much commit detail to include (default: %(default)s)",
    )
    git_parser.add_argument("--author", default=None, help="Only commits by this author")
    git_parser.add_argument(
        "--max-commits",
        type=int,
        default=env.max_commits(),
        help="Maximum commits to read (default: %(default)s)",
    )

    github_parser = sources.add_parser("github", help="GitHub repository via the gh CLI")
    github_parser.add_argument("--repo", required=True, help="Repository as owner/name")
    github_parser.add_argument("--branch", default=None, help="Branch to read commits from")
    github_parser.add_argument("--author", default=None, help="Author filter (default: @me)")
    github_parser.add_argument("--include-issues", action="store_true", help="Include closed issues")
    github_parser.add_argument("--no-prs", action="store_true", help="Skip merged pull requests")
    github_parser.add_argument("--no-commits", action="store_true", help="Skip commits")
    github_parser.add_argument(
        "--no-commit-stats",
        action="store_true",
        help="Skip per-commit stats (one API call per commit)",
    )

    for source_parser in (git_parser, github_parser):
        source_parser.add_argument("--source-id", required=True, help="Identifier of the source")
        source_parser.add_argument("--project-id", required=True, help="Project to attribute achievements to")
        if with_run_options:
            source_parser.add_argument("--since", type=_parse_datetime, help="Only items after this date")
            source_parser.add_argument("--until", type=_parse_datetime, help="Only items before this date")
            source_parser.add_argument("--limit", type=int, default=None, help="Maximum items per kind")
            source_parser.add_argument(
                "--batch-size",
                type=int,
                default=env.batch_size(),
                help="Items per batch (default: %(default)s)",
            )
            source_parser.add_argument(
                "--max-retries",
                type=int,
                default=env.max_retries(),
                help="Attempts per batch (default: %(default)s)",
            )
            source_parser.add_argument(
                "--no-cache", action="store_true", help="Include items that were already processed"
            )
            source_parser.add_argument(
                "--dry-run", action="store_true", help="Show what would be processed without extracting"
            )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Extract achievements from git and GitHub work history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract achievements from a source",
        description=(
            "Extract achievements from a source.\n\n"
            "Examples:\n"
            "  # Current repository, last month\n"
            "  achievement-extract extract git --source-id my-repo --project-id P --since 2025-10-01\n\n"
            "  # Merged PRs and commits from GitHub\n"
            "  achievement-extract extract github --repo acme/api --source-id acme-api --project-id P\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_source_parsers(extract_parser, with_run_options=True)
    extract_parser.set_defaults(func=cmd_extract)

    validate_parser = subparsers.add_parser("validate", help="Check a source configuration")
    _add_source_parsers(validate_parser, with_run_options=False)
    validate_parser.set_defaults(func=cmd_validate)

    cache_parser = subparsers.add_parser("cache", help="Inspect or clear the item cache")
    cache_parser.add_argument("action", choices=["list", "stats", "clear"])
    cache_parser.add_argument("--source-id", default=None, help="Limit to one source")
    cache_parser.set_defaults(func=cmd_cache)

    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)
    return args.func(args)


if __name__ == "__main__":
    exit(main())
