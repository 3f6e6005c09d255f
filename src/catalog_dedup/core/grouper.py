"""Duplicate grouping of similar file references."""

import itertools
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass

from .models import CategoryFilter, DuplicateGroup, GroupMember
from .platforms import PlatformDatabase
from .progress import CancellationToken, ProgressCallback, progress_interval
from .similarity import ComparableItem, SimilarityGraph

logger = logging.getLogger(__name__)

DEFAULT_GROUPING_THRESHOLD = 0.99


@dataclass
class MemberRecord:
    """Placement of one item in the group arena."""

    item: ComparableItem
    group_id: int
    parent_id: int | None = None

    @property
    def is_independent(self) -> bool:
        """Whether this member is not a required part of another member."""
        return self.parent_id is None


class GroupArena:
    """
    Groups addressed by integer id.

    Members refer to their group by id, so merging two groups is a bulk
    reassignment of ids.
    """

    def __init__(self) -> None:
        self.members: dict[int, MemberRecord] = {}
        self.groups: dict[int, list[int]] = {}
        self._group_ids = itertools.count()

    def group_of(self, item_id: int) -> int | None:
        """Group id of an item, None if it is not placed yet."""
        record = self.members.get(item_id)
        return record.group_id if record else None

    def create_group(self, item: ComparableItem) -> int:
        """Open a new group holding a single item."""
        group_id = next(self._group_ids)
        self.groups[group_id] = []
        self.attach(item, group_id)
        return group_id

    def attach(self, item: ComparableItem, group_id: int) -> MemberRecord:
        """Place an item that has no group yet into a group."""
        if item.id in self.members:
            raise ValueError(f"Item {item.id} already belongs to group {self.group_of(item.id)}")
        record = MemberRecord(item=item, group_id=group_id)
        self.members[item.id] = record
        self.groups[group_id].append(item.id)
        return record

    def merge(self, first_id: int, second_id: int) -> int:
        """
        Merge two groups, moving the smaller into the larger.

        Returns:
            Id of the surviving group
        """
        if first_id == second_id:
            return first_id

        target, source = first_id, second_id
        if len(self.groups[second_id]) > len(self.groups[first_id]):
            target, source = second_id, first_id

        moved = self.groups.pop(source)
        for item_id in moved:
            self.members[item_id].group_id = target
        self.groups[target].extend(moved)

        logger.debug(f"Merged group {source} ({len(moved)} members) into group {target}")
        return target

    def has_parts(self, item_id: int) -> bool:
        """Whether any member is a required part of the given item."""
        group_id = self.group_of(item_id)
        if group_id is None:
            return False
        return any(self.members[m].parent_id == item_id for m in self.groups[group_id])

    def records(self, group_id: int) -> list[MemberRecord]:
        """Members of a group in placement order."""
        return [self.members[item_id] for item_id in self.groups[group_id]]

    def independent_count(self, group_id: int) -> int:
        """Number of members of a group that are not parts of another member."""
        return sum(1 for record in self.records(group_id) if record.is_independent)


class DuplicateGrouper:
    """Turns similarity edges into disjoint groups of duplicate files."""

    def __init__(self, platform_database: PlatformDatabase | None = None):
        """Initialize the grouper with platform reference data."""
        self.platform_database = platform_database or PlatformDatabase()

    def passes_category_filter(
        self, first: ComparableItem, second: ComparableItem, category_filter: CategoryFilter
    ) -> bool:
        """
        Check whether two items may be grouped under a category filter.

        Args:
            first: One item
            second: The other item
            category_filter: Platform restriction to apply

        Returns:
            True if the entries share a platform (or a platform category, or
            the filter allows all platforms)
        """
        if category_filter == CategoryFilter.ALL_PLATFORMS:
            return True
        if category_filter == CategoryFilter.SAME_PLATFORM:
            return bool(first.platform_names & second.platform_names)
        if category_filter == CategoryFilter.SAME_PLATFORM_CATEGORY:
            first_categories = self.platform_database.categories(first.platform_names)
            second_categories = self.platform_database.categories(second.platform_names)
            return bool(first_categories & second_categories)
        raise ValueError(f"Unsupported category filter: {category_filter}")

    def build_arena(
        self,
        graph: SimilarityGraph,
        grouping_threshold: float = DEFAULT_GROUPING_THRESHOLD,
        category_filter: CategoryFilter = CategoryFilter.SAME_PLATFORM,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        progress_steps: int = 100,
    ) -> GroupArena | None:
        """
        Place every item with a groupable edge into a group.

        Items are visited in input order. An edge is groupable when it passes
        the category filter and is either a structural link or at least the
        grouping threshold. A structural link also marks the neighbour as a
        part of the visited item, unless the visited item is itself a part or
        the neighbour already is one or has parts of its own.

        Returns:
            The filled arena, or None if cancelled
        """
        arena = GroupArena()
        total = len(graph.items)
        every = progress_interval(total, progress_steps)

        for position, item in enumerate(graph.items):
            if cancel_token is not None and cancel_token.is_cancelled:
                logger.warning(f"Grouping cancelled after {position} of {total} files")
                return None

            for other, similarity in graph.neighbors(item):
                if not self.passes_category_filter(item, other, category_filter):
                    continue
                if not similarity.meets(grouping_threshold):
                    continue

                current_group = arena.group_of(item.id)
                other_group = arena.group_of(other.id)

                if current_group is None and other_group is None:
                    arena.attach(other, arena.create_group(item))
                elif current_group is None:
                    arena.attach(item, other_group)
                elif other_group is None:
                    arena.attach(other, current_group)
                elif current_group != other_group:
                    arena.merge(current_group, other_group)

                if similarity.linked:
                    self._link_part(arena, item, other)

            if progress_callback and (position % every == 0 or position == total - 1):
                done = position + 1
                progress_callback(done, total, f"Grouping duplicates... ({done} / {total})")

        return arena

    def _link_part(self, arena: GroupArena, item: ComparableItem, other: ComparableItem) -> None:
        record = arena.members[item.id]
        other_record = arena.members[other.id]
        if record.parent_id is not None or other_record.parent_id is not None:
            return
        if arena.has_parts(other.id):
            return
        other_record.parent_id = item.id
        logger.debug(f"Marked {other} as a part of {item}")

    def create_duplicate_groups(
        self,
        graph: SimilarityGraph,
        grouping_threshold: float = DEFAULT_GROUPING_THRESHOLD,
        category_filter: CategoryFilter = CategoryFilter.SAME_PLATFORM,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        progress_steps: int = 100,
    ) -> list[DuplicateGroup] | None:
        """
        Create duplicate groups from a similarity graph.

        Args:
            graph: Compared items with their stored edges
            grouping_threshold: Minimum score that groups two files
            category_filter: Platform restriction on grouping
            progress_callback: Optional callback for progress updates
            cancel_token: Optional token stopping grouping early
            progress_steps: Approximate number of progress updates

        Returns:
            Groups with at least two independent members, largest first and
            then by entry name, or None if cancelled. Members are in placement
            order and carry no deletion suggestion yet.
        """
        arena = self.build_arena(
            graph,
            grouping_threshold,
            category_filter,
            progress_callback,
            cancel_token,
            progress_steps,
        )
        if arena is None:
            return None

        surviving = [
            group_id for group_id in arena.groups if arena.independent_count(group_id) >= 2
        ]
        discarded = len(arena.groups) - len(surviving)

        duplicate_groups = [self._to_duplicate_group(arena, graph, gid) for gid in surviving]
        duplicate_groups.sort(key=lambda g: (-g.member_count, g.members[0].entry_name.casefold()))

        logger.info(
            f"Created {len(duplicate_groups)} duplicate groups "
            f"({discarded} groups without two independent members discarded)"
        )
        return duplicate_groups

    def _to_duplicate_group(
        self, arena: GroupArena, graph: SimilarityGraph, group_id: int
    ) -> DuplicateGroup:
        records = arena.records(group_id)
        common_path = common_directory(r.item.resolved_path for r in records)

        members = []
        for record in records:
            item = record.item
            similarities = {}
            for other in records:
                if other is record:
                    continue
                similarity = graph.similarity(item.id, other.item.id)
                if similarity is not None and similarity.numeric is not None:
                    similarities[other.item.id] = similarity.numeric

            members.append(
                GroupMember(
                    item_id=item.id,
                    entry_id=item.entry_id,
                    entry_name=item.entry_name,
                    file_index=item.file_index,
                    declared_path=item.declared_path,
                    resolved_path=item.resolved_path,
                    comparison_text=item.comparison_text,
                    platforms=sorted(item.platform_names),
                    release_year=item.release_year,
                    parent_item_id=record.parent_id,
                    similarities=similarities,
                    common_path=common_path,
                )
            )

        logger.debug(f"Built group {group_id} with {len(members)} members")
        return DuplicateGroup(members=members)


def common_directory(paths: Iterable[str]) -> str:
    """
    Longest directory prefix shared by several paths.

    Returns:
        The shared directory including its trailing separator, or an empty
        string for fewer than two paths
    """
    directories = [path[: max(path.rfind("/"), path.rfind("\\")) + 1] for path in paths]
    if len(directories) < 2:
        return ""
    prefix = os.path.commonprefix(directories)
    return prefix[: max(prefix.rfind("/"), prefix.rfind("\\")) + 1]
