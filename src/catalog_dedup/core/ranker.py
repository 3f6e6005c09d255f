"""Ranking of duplicate group members and keep/delete suggestions."""

import logging
from pathlib import PureWindowsPath

from .models import DuplicateGroup, GroupMember
from .platforms import PlatformDatabase

logger = logging.getLogger(__name__)


class CandidateRanker:
    """Orders the members of a duplicate group and suggests which to delete."""

    # Checked in order, the first marker found sets the region score
    REGION_SCORES = (
        ("(USA)", 200),
        ("(Europe)", 150),
        ("(World)", 100),
    )
    ENGLISH_MARKER = "(En"
    ENGLISH_SCORE = 25

    def __init__(self, platform_database: PlatformDatabase | None = None):
        """Initialize the ranker with platform reference data."""
        self.platform_database = platform_database or PlatformDatabase()

    def get_language_score(self, member: GroupMember) -> int:
        """
        Score a member's region and language from its file name.

        Args:
            member: Member to score

        Returns:
            200 for "(USA)", 150 for "(Europe)", 100 for "(World)", 0 otherwise,
            plus 25 if an "(En" language marker is present
        """
        file_name = PureWindowsPath(member.resolved_path).stem.casefold()

        score = 0
        for marker, marker_score in self.REGION_SCORES:
            if marker.casefold() in file_name:
                score += marker_score
                break

        if self.ENGLISH_MARKER.casefold() in file_name:
            score += self.ENGLISH_SCORE

        return score

    def get_platform_rank(self, member: GroupMember) -> int:
        """Preference rank of the member's best known platform, -1 if none."""
        return self.platform_database.best_rank(member.platforms)

    def sort_key(self, member: GroupMember) -> tuple:
        """Key ordering members from most to least worth keeping when reversed."""
        return (
            self.get_platform_rank(member),
            member.release_year or 0,
            self.get_language_score(member),
            1 if member.is_independent else 0,
            member.resolved_path.casefold(),
        )

    def rank_group(self, group: DuplicateGroup) -> DuplicateGroup:
        """
        Order a group's members and set the default deletion suggestion.

        The first independent member is kept, every other independent member
        is suggested for deletion, and parts follow their parent.

        Args:
            group: Group to rank, modified in place

        Returns:
            The same group
        """
        group.members.sort(key=self.sort_key, reverse=True)

        kept = next((m for m in group.members if m.is_independent), None)
        for member in group.members:
            if member.is_independent:
                member.suggested_delete = member is not kept
        self._sync_parts(group)

        if kept is not None:
            logger.debug(
                f"Keeping '{kept.file_name}' of {group.member_count} files, "
                f"{len(group.get_deleted())} suggested for deletion"
            )
        return group

    def rank_groups(self, groups: list[DuplicateGroup]) -> list[DuplicateGroup]:
        """Rank every group of a list."""
        for group in groups:
            self.rank_group(group)
        logger.info(
            f"Ranked {len(groups)} groups, "
            f"{sum(len(g.get_deleted()) for g in groups)} files suggested for deletion"
        )
        return groups

    def set_delete(self, group: DuplicateGroup, item_id: int, delete: bool) -> None:
        """
        Change the deletion mark of an independent member and its parts.

        Raises:
            KeyError: If the item is not a member of the group
            ValueError: If the member is a part whose parent is in the group
        """
        member = group.get_member(item_id)
        if member is None:
            raise KeyError(f"Item {item_id} is not a member of this group")
        if not member.is_independent and group.get_member(member.parent_item_id) is not None:
            raise ValueError(f"Item {item_id} is a part and follows its parent")

        member.suggested_delete = delete
        for part in group.get_parts(item_id):
            part.suggested_delete = delete

    def exclusively_keep(self, group: DuplicateGroup, item_id: int) -> None:
        """Keep one independent member, with its parts, and mark every other for deletion."""
        member = group.get_member(item_id)
        if member is None:
            raise KeyError(f"Item {item_id} is not a member of this group")
        if not member.is_independent:
            raise ValueError(f"Item {item_id} is a part and follows its parent")

        for other in group.members:
            if other.is_independent:
                other.suggested_delete = other is not member
        self._sync_parts(group)

    def _sync_parts(self, group: DuplicateGroup) -> None:
        for member in group.members:
            if member.is_independent:
                continue
            parent = group.get_member(member.parent_item_id)
            if parent is not None:
                member.suggested_delete = parent.suggested_delete
