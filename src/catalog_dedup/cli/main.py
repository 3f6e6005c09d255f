"""CLI entry point for catalog duplicate detection."""

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .. import __version__
from ..core import (
    ApplicationConfig,
    CatalogSnapshot,
    CategoryFilter,
    ComparisonConfig,
    ComparisonField,
    DuplicateFinder,
    DuplicateSearchResult,
    EntrySource,
    MissingFileReport,
    find_missing_files,
)


def setup_logging(level: str = "INFO") -> None:
    """
    Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_catalog(catalog_path: Path) -> CatalogSnapshot:
    """
    Load a catalog snapshot exported as JSON.

    Raises:
        FileNotFoundError: If the file does not exist
        ValidationError: If the file is not a valid snapshot
    """
    if not catalog_path.is_file():
        raise FileNotFoundError(f"Catalog file not found: {catalog_path}")
    return CatalogSnapshot.model_validate_json(catalog_path.read_text(encoding="utf-8"))


def progress_callback(current: int, total: int | None = None, message: str = "") -> None:
    """Print progress on a single console line."""
    if message:
        print(f"\r{message}", end="", flush=True)
    elif total:
        percent = (current / total) * 100
        print(f"\rProgress: {current}/{total} ({percent:.1f}%)", end="", flush=True)
    else:
        print(f"\rProcessed: {current}", end="", flush=True)


def print_search_results(result: DuplicateSearchResult, detailed: bool = False) -> None:
    """
    Print duplicate search results to console.

    Args:
        result: Results from the search
        detailed: Whether to show similarity and platform details per file
    """
    print("\n" + "=" * 60)
    print("DUPLICATE SEARCH RESULTS")
    print("=" * 60)

    if result.cancelled:
        print("Search was cancelled, no results.")
        return

    print(f"Entries compared: {result.entries_compared}")
    print(f"Files compared: {result.items_compared}")
    print(f"Similar pairs stored: {result.edges_stored}")
    print(f"Duplicate groups: {len(result.groups)}")
    print(f"Files suggested for deletion: {result.duplicate_count}")

    if not result.groups:
        print("\nNo duplicates found!")
        return

    print("\n" + "-" * 60)
    print("DUPLICATE GROUPS")
    print("-" * 60)

    for i, group in enumerate(result.groups, 1):
        print(f"\nGroup {i}: {group.members[0].entry_name} ({group.member_count} files)")
        if group.common_path:
            print(f"  In: {group.common_path}")

        for member in group.members:
            marker = "DELETE" if member.suggested_delete else "keep  "
            indent = "    " if member.is_independent else "      + "
            print(f"  {marker}{indent}{member.relative_path}")

            if detailed:
                average = member.similarity_to_group_average
                similarity = f"{average:.2%}" if average is not None else "linked part"
                print(f"          Entry: {member.entry_name} [{', '.join(member.platforms)}]")
                print(f"          Similarity: {similarity}")


def print_missing_files(reports: list[MissingFileReport]) -> None:
    """Print the missing file report to console."""
    if not reports:
        print("No missing files found")
        return

    removals = sum(1 for r in reports if r.remove_entry)
    print(f"{len(reports)} entries have missing files, {removals} have none left:")
    for report in reports:
        action = "remove entry" if report.remove_entry else "remove files"
        print(f"\n{report.entry_name} ({action})")
        for path in report.missing_paths:
            print(f"  - {path}")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Catalog Dedup - Find duplicate files of catalog entries by fuzzy name matching",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compare every entry against every entry
  catalog-dedup library.json --using all --against all

  # Compare the selected entries by entry name across all platforms
  catalog-dedup library.json --field entry-name --category all

  # Loosen the grouping threshold and show details
  catalog-dedup library.json --using all --grouping-threshold 0.9 --detailed

  # List entries whose files are missing on disk
  catalog-dedup library.json --missing-files
        """,
    )

    parser.add_argument("catalog", type=Path, help="Catalog snapshot exported as JSON")

    # Comparison options
    sources = [s.value for s in EntrySource]
    parser.add_argument(
        "--using",
        choices=sources,
        default=EntrySource.SELECTED_ENTRIES.value,
        help="Entries whose files are compared (default: selected)",
    )
    parser.add_argument(
        "--against",
        choices=sources,
        default=EntrySource.ALL_ENTRIES.value,
        help="Entries they are compared against (default: all)",
    )
    parser.add_argument(
        "--field",
        choices=[f.value for f in ComparisonField],
        default=ComparisonField.FILE_NAME_NO_EXT.value,
        help="Text that is compared (default: file-name)",
    )
    parser.add_argument(
        "--graph-threshold",
        type=float,
        default=0.5,
        help="Minimum similarity stored for grouping (default: 0.5)",
    )
    parser.add_argument(
        "--grouping-threshold",
        type=float,
        default=0.99,
        help="Minimum similarity that groups two files (default: 0.99)",
    )
    parser.add_argument(
        "--category",
        choices=[c.value for c in CategoryFilter],
        default=CategoryFilter.SAME_PLATFORM.value,
        help="Platform restriction on grouping (default: same-platform)",
    )
    parser.add_argument("--workers", type=int, help="Worker threads for comparison")

    # Output options
    parser.add_argument(
        "--output-format",
        choices=["text", "json"],
        default="text",
        help="Output format for results (default: text)",
    )
    parser.add_argument(
        "--detailed", action="store_true", help="Show platform and similarity per file"
    )
    parser.add_argument(
        "--missing-files",
        action="store_true",
        help="List entries with missing files instead of searching duplicates",
    )

    # Logging options
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Set logging level (default: WARNING)",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the CLI application.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        catalog = load_catalog(args.catalog)
        show_progress = args.output_format == "text"

        if args.missing_files:
            reports = find_missing_files(
                catalog, progress_callback=progress_callback if show_progress else None
            )
            if show_progress:
                print()
            if args.output_format == "json":
                print("[" + ",".join(r.model_dump_json() for r in reports) + "]")
            else:
                print_missing_files(reports)
            return 0

        config = ComparisonConfig(
            using_source=EntrySource(args.using),
            against_source=EntrySource(args.against),
            comparison_field=ComparisonField(args.field),
            graph_threshold=args.graph_threshold,
            grouping_threshold=args.grouping_threshold,
            category_filter=CategoryFilter(args.category),
        )
        app_config = ApplicationConfig(log_level=args.log_level)
        if args.workers:
            app_config = ApplicationConfig(log_level=args.log_level, max_workers=args.workers)

        finder = DuplicateFinder(catalog, config, app_config)
        result = finder.find_duplicates(progress_callback if show_progress else None)
        if show_progress:
            print()  # New line after progress

        if args.output_format == "json":
            print(result.model_dump_json(indent=2))
        else:
            print_search_results(result, detailed=args.detailed)

        return 0

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 1
    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1
    except ValidationError as e:
        print(f"Error: invalid catalog or settings:\n{e}")
        return 1
    except Exception as e:
        logger.exception("Unexpected error occurred")
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
