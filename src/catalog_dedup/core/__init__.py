"""Core functionality for catalog duplicate detection."""

from .catalog import (
    CatalogProvider,
    CatalogSnapshot,
    ComparableItemBuilder,
    EntryDeletion,
    MissingFileReport,
    build_deletion_plan,
    find_missing_files,
)
from .engine import DuplicateFinder
from .grouper import DuplicateGrouper
from .models import (
    ApplicationConfig,
    CatalogEntry,
    CategoryFilter,
    ComparisonConfig,
    ComparisonField,
    DuplicateGroup,
    DuplicateSearchResult,
    EntrySource,
    FileReference,
    GroupMember,
)
from .normalizer import NameNormalizer
from .platforms import PlatformCategory, PlatformDatabase, PlatformInfo
from .progress import CancellationToken, ProgressCallback
from .ranker import CandidateRanker
from .shingles import ShingleProfile
from .similarity import ComparableItem, Similarity, SimilarityGraph

__all__ = [
    "ApplicationConfig",
    "CancellationToken",
    "CandidateRanker",
    "CatalogEntry",
    "CatalogProvider",
    "CatalogSnapshot",
    "CategoryFilter",
    "ComparableItem",
    "ComparableItemBuilder",
    "ComparisonConfig",
    "ComparisonField",
    "DuplicateFinder",
    "DuplicateGroup",
    "DuplicateGrouper",
    "DuplicateSearchResult",
    "EntryDeletion",
    "EntrySource",
    "FileReference",
    "GroupMember",
    "MissingFileReport",
    "NameNormalizer",
    "PlatformCategory",
    "PlatformDatabase",
    "PlatformInfo",
    "ProgressCallback",
    "ShingleProfile",
    "Similarity",
    "SimilarityGraph",
    "build_deletion_plan",
    "find_missing_files",
]
