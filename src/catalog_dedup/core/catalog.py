"""Catalog collaborator interface and preparation of comparable items."""

import logging
import os
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import BaseModel, Field

from .models import CatalogEntry, ComparisonField, DuplicateGroup, EntrySource
from .normalizer import NameNormalizer
from .progress import CancellationToken, ProgressCallback
from .similarity import ComparableItem

logger = logging.getLogger(__name__)

INSTALL_DIR_VARIABLE = "{InstallDir}"


class CatalogProvider(Protocol):
    """What the duplicate search needs from the catalog store."""

    def get_entries(self, source: EntrySource) -> Iterable[CatalogEntry]:
        """Entries belonging to a source list."""
        ...

    def expand_path(self, entry: CatalogEntry, declared_path: str) -> str:
        """Absolute path of a declared file path of an entry."""
        ...

    def get_platform_name(self, platform_id: str) -> str | None:
        """Display name of a platform id, None if unknown."""
        ...


class CatalogSnapshot(BaseModel):
    """In-memory catalog, loadable from a JSON export."""

    entries: list[CatalogEntry] = Field(default_factory=list, description="All entries")
    platforms: dict[str, str] = Field(default_factory=dict, description="Platform id to name")
    filtered_ids: list[str] = Field(default_factory=list, description="Ids of filtered entries")
    selected_ids: list[str] = Field(default_factory=list, description="Ids of selected entries")

    def get_entries(self, source: EntrySource) -> list[CatalogEntry]:
        """Entries of a source list, in catalog order."""
        if source == EntrySource.ALL_ENTRIES:
            return list(self.entries)
        wanted = set(
            self.filtered_ids if source == EntrySource.FILTERED_ENTRIES else self.selected_ids
        )
        return [entry for entry in self.entries if entry.id in wanted]

    def expand_path(self, entry: CatalogEntry, declared_path: str) -> str:
        """
        Expand the variables of a declared path into an absolute path.

        Raises:
            ValueError: If the path uses {InstallDir} and the entry has none
        """
        path = declared_path
        if INSTALL_DIR_VARIABLE in path:
            if not entry.install_dir:
                raise ValueError(f"Entry '{entry.name}' has no install directory for {path}")
            path = path.replace(INSTALL_DIR_VARIABLE, entry.install_dir)
        path = os.path.expanduser(os.path.expandvars(path))
        return os.path.abspath(path)

    def get_platform_name(self, platform_id: str) -> str | None:
        """Display name of a platform id, None if unknown."""
        return self.platforms.get(platform_id)


@dataclass
class PreparedItems:
    """Comparable items of a search, split into the two sides of the comparison."""

    items: list[ComparableItem] = field(default_factory=list)
    using: list[ComparableItem] = field(default_factory=list)
    against: list[ComparableItem] = field(default_factory=list)
    entry_count: int = 0
    excluded_files: int = 0


class ComparableItemBuilder:
    """Builds comparable items from catalog entries."""

    def __init__(self, catalog: CatalogProvider, normalizer: NameNormalizer | None = None):
        """
        Initialize the builder.

        Args:
            catalog: Source of entries, path expansion and platform names
            normalizer: Name normalizer, defaults to NameNormalizer()
        """
        self.catalog = catalog
        self.normalizer = normalizer or NameNormalizer()

    def platform_names(self, entry: CatalogEntry) -> frozenset[str]:
        """Platform names of an entry, falling back to the id for unknown platforms."""
        return frozenset(
            self.catalog.get_platform_name(platform_id) or platform_id
            for platform_id in entry.platform_ids
        )

    def parse_entry(
        self, entry: CatalogEntry, comparison_field: ComparisonField, first_id: int = 0
    ) -> list[ComparableItem]:
        """
        Resolve, normalize and fingerprint the files of one entry.

        Files whose path cannot be expanded are skipped. The file at sorted
        position n gets id `first_id + n`, so ids stay stable whichever
        worker parses the entry.

        Returns:
            One ComparableItem per usable file
        """
        if not entry.files:
            logger.debug(f"Skipping entry without files: {entry.name}")
            return []

        platforms = self.platform_names(entry)
        parsed = []
        for offset, file in enumerate(sorted(entry.files, key=lambda f: f.index)):
            try:
                resolved_path = self.catalog.expand_path(entry, file.declared_path)
            except (ValueError, KeyError, OSError) as e:
                logger.debug(f"Skipping unresolvable path {file.declared_path}: {e}")
                continue
            if not resolved_path:
                logger.debug(f"Skipping empty path for file {file.index} of {entry.name}")
                continue

            parsed.append(
                ComparableItem(
                    id=first_id + offset,
                    entry_id=entry.id,
                    entry_name=entry.name,
                    file_index=file.index,
                    declared_path=file.declared_path,
                    resolved_path=resolved_path,
                    comparison_text=self.normalizer.comparison_text(
                        entry, file, resolved_path, comparison_field
                    ),
                    platform_names=platforms,
                    release_year=entry.release_year,
                )
            )
        return parsed

    def build(
        self,
        using_source: EntrySource,
        against_source: EntrySource,
        comparison_field: ComparisonField,
        executor: Executor,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> PreparedItems | None:
        """
        Build comparable items for both sides of a search.

        Entries in both source lists get a single set of items. Fingerprinting
        runs on the executor; items come back in catalog order.

        Args:
            using_source: Entries whose files are compared
            against_source: Entries they are compared against
            comparison_field: Text that is fingerprinted
            executor: Pool running normalization and fingerprinting
            progress_callback: Optional callback for progress updates
            cancel_token: Optional token stopping the build early

        Returns:
            The prepared items, or None if cancelled
        """
        start_time = time.time()

        using_entries = list(self.catalog.get_entries(using_source))
        against_entries = list(self.catalog.get_entries(against_source))
        using_ids = {entry.id for entry in using_entries}
        against_ids = {entry.id for entry in against_entries}

        entries: dict[str, CatalogEntry] = {}
        for entry in [*using_entries, *against_entries]:
            entries.setdefault(entry.id, entry)

        first_ids = []
        next_id = 0
        for entry in entries.values():
            first_ids.append(next_id)
            next_id += entry.file_count

        if progress_callback:
            progress_callback(0, len(entries), "Parsing entries...")

        def parse(entry: CatalogEntry, first_id: int) -> list[ComparableItem]:
            if cancel_token is not None and cancel_token.is_cancelled:
                return []
            return self.parse_entry(entry, comparison_field, first_id)

        parsed_entries = list(executor.map(parse, entries.values(), first_ids))

        if cancel_token is not None and cancel_token.is_cancelled:
            logger.warning("Building comparable items cancelled")
            return None

        prepared = PreparedItems(entry_count=len(entries))
        for entry, items in zip(entries.values(), parsed_entries):
            prepared.excluded_files += entry.file_count - len(items)
            prepared.items.extend(items)
            if entry.id in using_ids:
                prepared.using.extend(items)
            if entry.id in against_ids:
                prepared.against.extend(items)

        if progress_callback:
            progress_callback(len(entries), len(entries), "Parsing entries...")

        logger.info(
            f"Built {len(prepared.items)} comparable files from {prepared.entry_count} entries "
            f"({prepared.excluded_files} files excluded) in {time.time() - start_time:.2f} seconds"
        )
        return prepared


class MissingFileReport(BaseModel):
    """Files of an entry that do not exist on disk."""

    entry_id: str = Field(..., description="Catalog entry id")
    entry_name: str = Field(..., description="Catalog entry name")
    missing_paths: list[str] = Field(default_factory=list, description="Declared missing paths")
    remove_entry: bool = Field(default=False, description="Whether every file is missing")


def find_missing_files(
    catalog: CatalogProvider,
    source: EntrySource = EntrySource.ALL_ENTRIES,
    exists: Callable[[str], bool] = os.path.exists,
    progress_callback: ProgressCallback | None = None,
    cancel_token: CancellationToken | None = None,
) -> list[MissingFileReport] | None:
    """
    Find entries whose files are missing on disk.

    Args:
        catalog: Catalog to inspect
        source: Which entries to inspect
        exists: Predicate telling whether an expanded path exists
        progress_callback: Optional callback for progress updates
        cancel_token: Optional token stopping the check early

    Returns:
        One report per entry with missing files, or None if cancelled. An
        entry with no existing file at all is flagged for removal.
    """
    entries = list(catalog.get_entries(source))
    reports = []

    for i, entry in enumerate(entries):
        if cancel_token is not None and cancel_token.is_cancelled:
            logger.warning(f"Missing file check cancelled after {i} of {len(entries)} entries")
            return None
        if progress_callback:
            progress_callback(i + 1, len(entries), f"Checking {entry.name}...")

        if not entry.files:
            continue

        missing = []
        for file in entry.files:
            try:
                path = catalog.expand_path(entry, file.declared_path)
            except (ValueError, KeyError, OSError) as e:
                logger.debug(f"Treating unresolvable path {file.declared_path} as missing: {e}")
                path = None
            if not path or not exists(path):
                missing.append(file.declared_path)

        if missing:
            reports.append(
                MissingFileReport(
                    entry_id=entry.id,
                    entry_name=entry.name,
                    missing_paths=missing,
                    remove_entry=len(missing) == len(entry.files),
                )
            )

    logger.info(f"Found {len(reports)} entries with missing files out of {len(entries)}")
    return reports


class EntryDeletion(BaseModel):
    """What deleting the marked files would do to one catalog entry."""

    entry_id: str = Field(..., description="Catalog entry id")
    entry_name: str = Field(..., description="Catalog entry name")
    file_indexes: list[int] = Field(default_factory=list, description="Files to delete")
    resolved_paths: list[str] = Field(default_factory=list, description="Paths to delete")
    remove_entry: bool = Field(default=False, description="Whether no file would remain")


def build_deletion_plan(
    groups: Sequence[DuplicateGroup], entries: Iterable[CatalogEntry]
) -> list[EntryDeletion]:
    """
    Collect the members marked for deletion per catalog entry.

    Args:
        groups: Ranked groups, with the caller's final deletion marks
        entries: Catalog entries, used to tell whether an entry loses every file

    Returns:
        One plan per affected entry, in order of first appearance
    """
    file_counts = {entry.id: entry.file_count for entry in entries}
    plans: dict[str, EntryDeletion] = {}

    for group in groups:
        for member in group.get_deleted():
            plan = plans.get(member.entry_id)
            if plan is None:
                plan = plans[member.entry_id] = EntryDeletion(
                    entry_id=member.entry_id, entry_name=member.entry_name
                )
            if member.file_index in plan.file_indexes:
                continue
            plan.file_indexes.append(member.file_index)
            plan.resolved_paths.append(member.resolved_path)

    for plan in plans.values():
        ordered = sorted(zip(plan.file_indexes, plan.resolved_paths))
        plan.file_indexes = [index for index, _ in ordered]
        plan.resolved_paths = [path for _, path in ordered]
        total = file_counts.get(plan.entry_id)
        plan.remove_entry = total is not None and len(plan.file_indexes) >= total

    logger.info(
        f"Deletion plan: {sum(len(p.file_indexes) for p in plans.values())} files "
        f"across {len(plans)} entries, {sum(p.remove_entry for p in plans.values())} entries emptied"
    )
    return list(plans.values())
