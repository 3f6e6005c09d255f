"""Tests for duplicate grouping."""

from unittest.mock import Mock

import pytest

from ..grouper import DuplicateGrouper, GroupArena, common_directory
from ..models import CategoryFilter
from ..normalizer import NameNormalizer
from ..progress import CancellationToken
from ..similarity import ComparableItem, Similarity, SimilarityGraph

NES = "Nintendo Entertainment System"
SNES = "Super Nintendo Entertainment System"
GAME_BOY = "Nintendo Game Boy"


def make_item(
    item_id: int,
    path: str,
    entry_id: str | None = None,
    entry_name: str | None = None,
    platforms: tuple[str, ...] = (NES,),
) -> ComparableItem:
    """Helper creating a comparable item compared by file name."""
    stem = path.rsplit("/", 1)[-1].rsplit(".", 1)[0]
    return ComparableItem(
        id=item_id,
        entry_id=entry_id or f"entry-{item_id}",
        entry_name=entry_name or stem,
        file_index=0,
        declared_path=path,
        resolved_path=path,
        comparison_text=NameNormalizer().normalize(stem),
        platform_names=frozenset(platforms),
    )


def compared_graph(items: list[ComparableItem]) -> SimilarityGraph:
    """Helper comparing every item against every item sequentially."""
    graph = SimilarityGraph(items)
    for item in items:
        graph.compare_one(item, items)
    return graph


def link(a: ComparableItem, b: ComparableItem, similarity: Similarity) -> None:
    """Helper storing an edge on both items."""
    a.record_similarity(b.id, similarity)
    b.record_similarity(a.id, similarity)


class TestGroupArena:
    """Test cases for GroupArena class."""

    def test_create_and_attach(self) -> None:
        """Test placing items into a group."""
        arena = GroupArena()
        a, b = make_item(1, "/roms/A.nes"), make_item(2, "/roms/B.nes")

        group_id = arena.create_group(a)
        arena.attach(b, group_id)

        assert arena.group_of(1) == group_id
        assert arena.group_of(2) == group_id
        assert arena.group_of(3) is None
        assert arena.independent_count(group_id) == 2

    def test_attach_twice_rejected(self) -> None:
        """Test that an item belongs to at most one group."""
        arena = GroupArena()
        a = make_item(1, "/roms/A.nes")
        group_id = arena.create_group(a)

        with pytest.raises(ValueError, match="already belongs"):
            arena.attach(a, group_id)

    def test_merge_moves_smaller_group(self) -> None:
        """Test that merging keeps the larger group and re-points members."""
        arena = GroupArena()
        items = [make_item(i, f"/roms/{i}.nes") for i in range(5)]
        big = arena.create_group(items[0])
        arena.attach(items[1], big)
        arena.attach(items[2], big)
        small = arena.create_group(items[3])
        arena.attach(items[4], small)

        survivor = arena.merge(small, big)

        assert survivor == big
        assert small not in arena.groups
        assert all(arena.group_of(i) == big for i in range(5))
        assert arena.groups[big] == [0, 1, 2, 3, 4]

    def test_merge_same_group(self) -> None:
        """Test that merging a group with itself changes nothing."""
        arena = GroupArena()
        group_id = arena.create_group(make_item(1, "/roms/A.nes"))

        assert arena.merge(group_id, group_id) == group_id
        assert arena.groups[group_id] == [1]


class TestDuplicateGrouper:
    """Test cases for DuplicateGrouper class."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.grouper = DuplicateGrouper()

    def test_region_variants_grouped(self) -> None:
        """Test that region variants of one game form one group."""
        items = [
            make_item(1, "/roms/Super Mario Bros. (USA).nes"),
            make_item(2, "/roms/Super Mario Bros. (Europe).nes"),
            make_item(3, "/roms/Super Mario Bros. (Japan).nes"),
            make_item(4, "/roms/Tetris (USA).nes"),
        ]
        graph = compared_graph(items)

        groups = self.grouper.create_duplicate_groups(graph)

        assert len(groups) == 1
        assert [m.item_id for m in groups[0].members] == [1, 2, 3]
        assert groups[0].common_path == "/roms/"
        assert not any(m.suggested_delete for m in groups[0].members)

    def test_below_threshold_not_grouped(self) -> None:
        """Test that similar but different titles stay apart at the default threshold."""
        items = [
            make_item(1, "/roms/Pokemon Red (USA).gb", platforms=(GAME_BOY,)),
            make_item(2, "/roms/Pokemon Blue (USA).gb", platforms=(GAME_BOY,)),
        ]
        graph = compared_graph(items)

        assert self.grouper.create_duplicate_groups(graph) == []

        groups = self.grouper.create_duplicate_groups(graph, grouping_threshold=0.6)
        assert len(groups) == 1
        member = groups[0].members[0]
        assert member.similarity_to_group_average == pytest.approx(0.632, abs=0.001)

    def test_same_platform_filter(self) -> None:
        """Test that identical names on different platforms are kept apart."""
        items = [
            make_item(1, "/roms/Tetris.nes", platforms=(NES,)),
            make_item(2, "/roms/Tetris.gb", platforms=(GAME_BOY,)),
        ]
        graph = compared_graph(items)

        assert graph.edge_count == 1
        assert self.grouper.create_duplicate_groups(graph, 0.99, CategoryFilter.SAME_PLATFORM) == []
        assert (
            self.grouper.create_duplicate_groups(graph, 0.99, CategoryFilter.SAME_PLATFORM_CATEGORY)
            == []
        )

        groups = self.grouper.create_duplicate_groups(graph, 0.99, CategoryFilter.ALL_PLATFORMS)
        assert len(groups) == 1
        assert groups[0].member_count == 2

    def test_same_category_filter(self) -> None:
        """Test that platforms of one category may be grouped."""
        items = [
            make_item(1, "/roms/Tetris.nes", platforms=(NES,)),
            make_item(2, "/roms/Tetris.sfc", platforms=(SNES,)),
        ]
        graph = compared_graph(items)

        assert self.grouper.create_duplicate_groups(graph, 0.99, CategoryFilter.SAME_PLATFORM) == []
        groups = self.grouper.create_duplicate_groups(
            graph, 0.99, CategoryFilter.SAME_PLATFORM_CATEGORY
        )
        assert len(groups) == 1

    def test_unknown_filter_rejected(self) -> None:
        """Test that an unknown category filter raises."""
        a, b = make_item(1, "/roms/A.nes"), make_item(2, "/roms/A.nes")
        with pytest.raises(ValueError, match="Unsupported category filter"):
            self.grouper.passes_category_filter(a, b, "bogus")

    def test_groups_merge_through_shared_members(self) -> None:
        """Test that groups started separately merge when an edge joins them."""
        items = [make_item(i, f"/roms/{name}.nes") for i, name in enumerate("ABCD")]
        a, b, c, d = items
        link(a, c, Similarity.of(1.0))
        link(b, d, Similarity.of(1.0))
        link(c, d, Similarity.of(1.0))
        graph = SimilarityGraph(items)

        groups = self.grouper.create_duplicate_groups(graph)

        assert len(groups) == 1
        assert sorted(m.item_id for m in groups[0].members) == [0, 1, 2, 3]

    def test_each_item_in_one_group(self) -> None:
        """Test that groups are disjoint."""
        items = [
            make_item(1, "/roms/Zelda (USA).nes"),
            make_item(2, "/roms/Zelda (Europe).nes"),
            make_item(3, "/roms/Metroid (USA).nes"),
            make_item(4, "/roms/Metroid (Europe).nes"),
            make_item(5, "/roms/Metroid (Japan).nes"),
        ]
        graph = compared_graph(items)

        groups = self.grouper.create_duplicate_groups(graph)
        member_ids = [m.item_id for g in groups for m in g.members]

        assert len(member_ids) == len(set(member_ids))
        assert len(groups) == 2

    def test_groups_sorted_by_size_then_name(self) -> None:
        """Test that larger groups come first, then by entry name."""
        items = [
            make_item(1, "/roms/Zelda (USA).nes"),
            make_item(2, "/roms/Zelda (Europe).nes"),
            make_item(3, "/roms/Contra (USA).nes"),
            make_item(4, "/roms/Contra (Europe).nes"),
            make_item(5, "/roms/Metroid (USA).nes"),
            make_item(6, "/roms/Metroid (Europe).nes"),
            make_item(7, "/roms/Metroid (Japan).nes"),
        ]
        graph = compared_graph(items)

        groups = self.grouper.create_duplicate_groups(graph)

        assert [g.members[0].entry_name for g in groups] == [
            "Metroid (USA)",
            "Contra (USA)",
            "Zelda (USA)",
        ]

    def test_discs_of_two_copies(self) -> None:
        """Test that discs become parts and copies of a multi-disc game group."""
        items = [
            make_item(1, "/roms/a/Final Fantasy VII (USA) (Disc 1).bin", entry_id="a"),
            make_item(2, "/roms/a/Final Fantasy VII (USA) (Disc 2).bin", entry_id="a"),
            make_item(3, "/roms/b/Final Fantasy VII (USA) (Disc 1).bin", entry_id="b"),
            make_item(4, "/roms/b/Final Fantasy VII (USA) (Disc 2).bin", entry_id="b"),
        ]
        graph = compared_graph(items)

        groups = self.grouper.create_duplicate_groups(graph)

        assert len(groups) == 1
        group = groups[0]
        assert group.member_count == 4
        assert group.independent_count == 2
        assert group.get_member(2).parent_item_id == 1
        assert group.get_member(4).parent_item_id == 3
        assert group.get_member(1).is_independent
        assert group.get_member(3).is_independent
        assert group.common_path == "/roms/"

    def test_linked_similarity_excluded_from_average(self) -> None:
        """Test that structural links carry no numeric similarity."""
        items = [
            make_item(1, "/roms/a/Riven (USA) (Disc 1).bin", entry_id="a"),
            make_item(2, "/roms/a/Riven (USA) (Disc 2).bin", entry_id="a"),
            make_item(3, "/roms/b/Riven (USA) (Disc 1).bin", entry_id="b"),
            make_item(4, "/roms/b/Riven (USA) (Disc 2).bin", entry_id="b"),
        ]
        graph = compared_graph(items)

        group = self.grouper.create_duplicate_groups(graph)[0]
        first = group.get_member(1)

        assert 2 not in first.similarities
        assert first.similarities == {3: pytest.approx(1.0), 4: pytest.approx(1.0)}

    def test_single_multi_disc_entry_discarded(self) -> None:
        """Test that one entry's discs alone are not a duplicate group."""
        items = [
            make_item(1, "/roms/Riven (USA) (Disc 1).bin", entry_id="riven"),
            make_item(2, "/roms/Riven (USA) (Disc 2).bin", entry_id="riven"),
            make_item(3, "/roms/Riven (USA) (Disc 3).bin", entry_id="riven"),
        ]
        graph = compared_graph(items)

        arena = self.grouper.build_arena(graph)
        assert len(arena.groups) == 1
        assert self.grouper.create_duplicate_groups(graph) == []

    def test_part_only_member_has_no_average(self) -> None:
        """Test that a member with only linked edges has no average similarity."""
        a = make_item(1, "/roms/x/Riven (Disc 1).bin", entry_id="riven")
        b = make_item(2, "/roms/x/Riven (Disc 2).bin", entry_id="riven")
        c = make_item(3, "/roms/y/Riven.bin", entry_id="other")
        link(a, b, Similarity.structural())
        link(a, c, Similarity.of(1.0))
        graph = SimilarityGraph([a, b, c])

        group = self.grouper.create_duplicate_groups(graph)[0]

        assert group.get_member(2).similarity_to_group_average is None
        assert group.get_member(2).parent_item_id == 1

    def test_lower_threshold_only_merges(self) -> None:
        """Test that lowering the threshold never splits a group."""
        items = [
            make_item(1, "/roms/Pokemon Red (USA).gb", platforms=(GAME_BOY,)),
            make_item(2, "/roms/Pokemon Red (Europe).gb", platforms=(GAME_BOY,)),
            make_item(3, "/roms/Pokemon Blue (USA).gb", platforms=(GAME_BOY,)),
            make_item(4, "/roms/Pokemon Blue (Europe).gb", platforms=(GAME_BOY,)),
        ]
        graph = compared_graph(items)

        strict = self.grouper.create_duplicate_groups(graph, grouping_threshold=0.99)
        loose = self.grouper.create_duplicate_groups(graph, grouping_threshold=0.6)

        assert len(strict) == 2
        assert len(loose) == 1
        loose_ids = {m.item_id for m in loose[0].members}
        for group in strict:
            assert {m.item_id for m in group.members} <= loose_ids

    def test_progress_reported(self) -> None:
        """Test that grouping reports progress up to the item count."""
        items = [make_item(i, "/roms/Tetris.nes") for i in range(3)]
        graph = compared_graph(items)
        progress = Mock()

        self.grouper.create_duplicate_groups(graph, progress_callback=progress)

        assert progress.call_args_list[-1].args[:2] == (3, 3)

    def test_cancelled(self) -> None:
        """Test that a cancelled grouping returns None."""
        items = [make_item(i, "/roms/Tetris.nes") for i in range(3)]
        graph = compared_graph(items)
        token = CancellationToken()
        token.cancel()

        assert self.grouper.create_duplicate_groups(graph, cancel_token=token) is None


class TestCommonDirectory:
    """Test cases for common_directory function."""

    def test_shared_directory(self) -> None:
        """Test the shared directory of sibling paths."""
        assert common_directory(["/roms/nes/a.nes", "/roms/nes/b.nes"]) == "/roms/nes/"

    def test_partial_directory_names_cut(self) -> None:
        """Test that a shared prefix inside a directory name is not kept."""
        assert common_directory(["/roms/nes1/a.nes", "/roms/nes2/a.nes"]) == "/roms/"

    def test_windows_paths(self) -> None:
        """Test backslash separated paths."""
        assert common_directory(["C:\\Roms\\a.nes", "C:\\Roms\\b.nes"]) == "C:\\Roms\\"

    def test_fewer_than_two_paths(self) -> None:
        """Test that a single path has no common directory."""
        assert common_directory(["/roms/a.nes"]) == ""
        assert common_directory([]) == ""
