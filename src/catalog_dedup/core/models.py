"""Pydantic models for catalog duplicate detection."""

import os
from enum import Enum
from pathlib import PureWindowsPath

from pydantic import BaseModel, Field, computed_field, field_validator


class EntrySource(str, Enum):
    """Which catalog entries take part in a comparison."""

    ALL_ENTRIES = "all"
    FILTERED_ENTRIES = "filtered"
    SELECTED_ENTRIES = "selected"


class ComparisonField(str, Enum):
    """Which text of a file reference is fingerprinted."""

    FILE_NAME_NO_EXT = "file-name"
    ENTRY_NAME = "entry-name"
    FULL_PATH = "full-path"


class CategoryFilter(str, Enum):
    """Restricts which similarity edges may form a group."""

    SAME_PLATFORM = "same-platform"
    SAME_PLATFORM_CATEGORY = "same-category"
    ALL_PLATFORMS = "all"


class FileReference(BaseModel):
    """A single file path tied to a catalog entry."""

    index: int = Field(..., ge=0, description="Position of the file within its entry")
    declared_path: str = Field(..., description="Path as stored in the catalog")
    resolved_path: str | None = Field(None, description="Expanded absolute path")

    @property
    def file_name(self) -> str:
        """File name of the declared path, regardless of separator style."""
        return PureWindowsPath(self.declared_path).name


class CatalogEntry(BaseModel):
    """A logical work in the catalog that references one or more files."""

    id: str = Field(..., description="Catalog identifier of the entry")
    name: str = Field(..., description="Display name of the entry")
    platform_ids: set[str] = Field(default_factory=set, description="Platform tags")
    release_year: int | None = Field(None, description="Release year, if known")
    install_dir: str | None = Field(None, description="Value substituted for {InstallDir}")
    files: list[FileReference] = Field(default_factory=list, description="File references")

    @field_validator("files")
    @classmethod
    def validate_file_indexes(cls, v: list[FileReference]) -> list[FileReference]:
        """Ensure file indexes are unique within the entry."""
        indexes = [f.index for f in v]
        if len(indexes) != len(set(indexes)):
            raise ValueError("file indexes must be unique within an entry")
        return v

    @property
    def file_count(self) -> int:
        """Number of file references on this entry."""
        return len(self.files)

    def __str__(self) -> str:
        return f"{self.name} ({self.file_count} files)"


class ComparisonConfig(BaseModel):
    """Settings for one duplicate search."""

    using_source: EntrySource = Field(
        default=EntrySource.SELECTED_ENTRIES, description="Entries whose files are compared"
    )
    against_source: EntrySource = Field(
        default=EntrySource.ALL_ENTRIES, description="Entries the using set is compared against"
    )
    comparison_field: ComparisonField = Field(
        default=ComparisonField.FILE_NAME_NO_EXT, description="Text that is fingerprinted"
    )
    graph_threshold: float = Field(
        default=0.5, ge=0.0, le=1.0, description="Minimum similarity stored in the graph"
    )
    grouping_threshold: float = Field(
        default=0.99, ge=0.0, le=1.0, description="Minimum similarity that groups two files"
    )
    category_filter: CategoryFilter = Field(
        default=CategoryFilter.SAME_PLATFORM, description="Platform restriction on grouping"
    )


class ApplicationConfig(BaseModel):
    """Runtime settings for the application."""

    log_level: str = Field(default="INFO", description="Logging level")
    max_workers: int = Field(
        default_factory=lambda: min(32, (os.cpu_count() or 1) + 4),
        ge=1,
        description="Worker threads used for fingerprinting and comparison",
    )
    progress_steps: int = Field(
        default=100, ge=1, description="Approximate number of progress updates per phase"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure the level is one the logging module knows."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class GroupMember(BaseModel):
    """One file reference inside a duplicate group."""

    item_id: int = Field(..., description="Run-local id of the comparable item")
    entry_id: str = Field(..., description="Catalog entry the file belongs to")
    entry_name: str = Field(..., description="Name of the catalog entry")
    file_index: int = Field(..., ge=0, description="Index of the file within its entry")
    declared_path: str = Field(..., description="Path as stored in the catalog")
    resolved_path: str = Field(..., description="Expanded absolute path")
    comparison_text: str = Field(..., description="Normalized text that was compared")
    platforms: list[str] = Field(default_factory=list, description="Platform names of the entry")
    release_year: int | None = Field(None, description="Release year of the entry")
    parent_item_id: int | None = Field(None, description="Item this file is a required part of")
    suggested_delete: bool = Field(default=False, description="Whether deletion is suggested")
    similarities: dict[int, float] = Field(
        default_factory=dict, description="Numeric similarity to other members by item id"
    )
    common_path: str = Field(default="", description="Common directory of the group")

    @computed_field
    @property
    def is_independent(self) -> bool:
        """Whether this member is not a required part of another member."""
        return self.parent_item_id is None

    @computed_field
    @property
    def similarity_to_group_average(self) -> float | None:
        """Mean numeric similarity to the other members, None if only linked."""
        if not self.similarities:
            return None
        return sum(self.similarities.values()) / len(self.similarities)

    @property
    def file_name(self) -> str:
        """File name of the resolved path."""
        return PureWindowsPath(self.resolved_path).name

    @property
    def relative_path(self) -> str:
        """Resolved path relative to the group's common directory."""
        if self.common_path and self.resolved_path.startswith(self.common_path):
            return self.resolved_path[len(self.common_path) :]
        return self.resolved_path

    @property
    def search_terms(self) -> list[str]:
        """Phrases suitable for looking this file up on the web."""
        platforms = ", ".join(self.platforms)
        terms = []
        for term in (self.comparison_text, self.entry_name, self.file_name):
            terms.append(term)
            terms.append(f"{term} for the {platforms}")
        return terms

    def __str__(self) -> str:
        marker = "delete" if self.suggested_delete else "keep"
        return f"[{marker}] {self.resolved_path}"


class DuplicateGroup(BaseModel):
    """A set of file references believed to be the same release."""

    members: list[GroupMember] = Field(default_factory=list, description="Ordered members")

    @property
    def member_count(self) -> int:
        """Number of members in this group."""
        return len(self.members)

    @property
    def independent_count(self) -> int:
        """Number of members that are not parts of another member."""
        return sum(1 for m in self.members if m.is_independent)

    @property
    def name(self) -> str:
        """Display name of the group."""
        return self.members[0].resolved_path if self.members else "N/A"

    @property
    def common_path(self) -> str:
        """Common directory of all member paths, empty for fewer than two members."""
        return self.members[0].common_path if self.members else ""

    def get_member(self, item_id: int) -> GroupMember | None:
        """Find a member by its item id."""
        for member in self.members:
            if member.item_id == item_id:
                return member
        return None

    def get_parts(self, item_id: int) -> list[GroupMember]:
        """Members that are required parts of the given member."""
        return [m for m in self.members if m.parent_item_id == item_id]

    def get_kept(self) -> list[GroupMember]:
        """Members not marked for deletion."""
        return [m for m in self.members if not m.suggested_delete]

    def get_deleted(self) -> list[GroupMember]:
        """Members marked for deletion."""
        return [m for m in self.members if m.suggested_delete]

    def __str__(self) -> str:
        return f"Duplicate group '{self.name}' ({self.member_count} files)"


class DuplicateSearchResult(BaseModel):
    """Outcome of a duplicate search run."""

    config: ComparisonConfig = Field(..., description="Settings the search ran with")
    groups: list[DuplicateGroup] = Field(default_factory=list, description="Ordered groups")
    entries_compared: int = Field(default=0, ge=0, description="Entries taking part")
    items_compared: int = Field(default=0, ge=0, description="File references taking part")
    edges_stored: int = Field(default=0, ge=0, description="Similarity edges above the floor")
    cancelled: bool = Field(default=False, description="Whether the run stopped early")
    duration_seconds: float = Field(default=0.0, ge=0, description="Time taken")

    @property
    def duplicate_count(self) -> int:
        """Members suggested for deletion across all groups."""
        return sum(len(g.get_deleted()) for g in self.groups)

    def __str__(self) -> str:
        if self.cancelled:
            return "Duplicate search cancelled"
        return (
            f"{self.items_compared} files from {self.entries_compared} entries: "
            f"{len(self.groups)} duplicate groups, "
            f"{self.duplicate_count} files suggested for deletion"
        )
