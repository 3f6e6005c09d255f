"""Pairwise similarity between file references of catalog entries."""

import logging
import re
import threading
from collections.abc import Iterator, Sequence
from concurrent.futures import FIRST_COMPLETED, Executor, Future, wait
from dataclasses import dataclass, field

from .progress import CancellationToken, ProgressCallback, progress_interval
from .shingles import ShingleProfile

logger = logging.getLogger(__name__)

DEFAULT_GRAPH_THRESHOLD = 0.5


@dataclass(frozen=True)
class Similarity:
    """
    Similarity of two file references.

    Either a graded cosine score or a structural link. A structural link means
    both files are required parts of one logical release (discs of one game)
    and carries no numeric weight.
    """

    score: float = 0.0
    linked: bool = False

    @classmethod
    def of(cls, score: float) -> "Similarity":
        """A graded similarity score."""
        return cls(score=score)

    @classmethod
    def structural(cls) -> "Similarity":
        """A structural link between parts of the same release."""
        return cls(linked=True)

    @property
    def numeric(self) -> float | None:
        """The graded score, or None for a structural link."""
        return None if self.linked else self.score

    def meets(self, threshold: float) -> bool:
        """Whether this similarity groups two files at the given threshold."""
        return self.linked or self.score >= threshold

    def __str__(self) -> str:
        return "linked" if self.linked else f"{self.score:.2%}"


@dataclass(eq=False)
class ComparableItem:
    """One file reference of a catalog entry prepared for comparison."""

    id: int
    entry_id: str
    entry_name: str
    file_index: int
    declared_path: str
    resolved_path: str
    comparison_text: str
    platform_names: frozenset[str] = frozenset()
    release_year: int | None = None
    profile: ShingleProfile = field(init=False)
    similarities: dict[int, Similarity] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        self.profile = ShingleProfile.from_text(self.comparison_text)

    def has_similarity(self, other_id: int) -> bool:
        """Whether a similarity to the other item has been stored."""
        return other_id in self.similarities

    def get_similarity(self, other_id: int) -> Similarity | None:
        """Stored similarity to the other item, if any."""
        return self.similarities.get(other_id)

    def record_similarity(self, other_id: int, similarity: Similarity) -> Similarity:
        """
        Store a similarity unless one is already stored for the other item.

        Returns:
            The similarity that is stored after the call
        """
        with self._lock:
            return self.similarities.setdefault(other_id, similarity)

    def __str__(self) -> str:
        return f"{self.entry_name} #{self.file_index}: {self.comparison_text}"


class PartDetector:
    """Detects paths that name one part of a multi-file release."""

    # "(Disc 2)", "[Disk B]", or a split satellaview dump like "BS Zelda 1-2.bs"
    PART_PATTERN = re.compile(
        r"[(\[{]\s*dis[ck]|\b\d+[-\u2010-\u2015]\d+\b.*\.bs$",
        re.IGNORECASE,
    )

    def is_part(self, path: str) -> bool:
        """Whether the path looks like one part of a multi-file release."""
        return self.PART_PATTERN.search(path) is not None

    def are_parts_of_same_release(self, first: ComparableItem, second: ComparableItem) -> bool:
        """Whether two items are different parts of one entry's release."""
        return (
            first.entry_id == second.entry_id
            and self.is_part(first.declared_path)
            and self.is_part(second.declared_path)
        )


class SimilarityGraph:
    """Stores similarity edges between comparable items above a floor."""

    def __init__(
        self,
        items: Sequence[ComparableItem],
        graph_threshold: float = DEFAULT_GRAPH_THRESHOLD,
    ):
        """
        Initialize the graph over a set of items.

        Args:
            items: Items in input order, ids must be unique
            graph_threshold: Minimum score for an edge to be stored
        """
        self.items = list(items)
        self.items_by_id = {item.id: item for item in self.items}
        if len(self.items_by_id) != len(self.items):
            raise ValueError("Comparable item ids must be unique")
        self._positions = {item.id: position for position, item in enumerate(self.items)}
        self.graph_threshold = graph_threshold
        self.part_detector = PartDetector()

    def compute_similarity(self, a: ComparableItem, b: ComparableItem) -> Similarity:
        """Similarity of two items without storing it."""
        if self.part_detector.are_parts_of_same_release(a, b):
            return Similarity.structural()
        return Similarity.of(a.profile.cosine(b.profile))

    def compare(self, a: ComparableItem, b: ComparableItem) -> None:
        """
        Score a pair of items and store the edge on both if it passes the floor.

        Comparing an item with itself or an already scored pair does nothing.
        Safe to call concurrently for pairs sharing an item.
        """
        if a is b or a.has_similarity(b.id) or b.has_similarity(a.id):
            return

        similarity = self.compute_similarity(a, b)

        if similarity.meets(self.graph_threshold):
            a.record_similarity(b.id, similarity)
            b.record_similarity(a.id, similarity)

    def compare_one(self, item: ComparableItem, against: Sequence[ComparableItem]) -> None:
        """Compare one item against every item of a list."""
        for other in against:
            self.compare(item, other)

    def compare_all(
        self,
        using: Sequence[ComparableItem],
        against: Sequence[ComparableItem],
        executor: Executor,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
        progress_steps: int = 100,
    ) -> bool:
        """
        Compare every item of `using` against every item of `against`.

        Each outer item is one task on the executor. Progress is reported and
        cancellation checked as outer items finish.

        Args:
            using: Items whose neighbours are searched
            against: Items they are compared with
            executor: Pool running the comparisons
            progress_callback: Optional callback for progress updates
            cancel_token: Optional token stopping the comparison early
            progress_steps: Approximate number of progress updates

        Returns:
            True if every pair was compared, False if cancelled
        """
        total = len(using)
        every = progress_interval(total, progress_steps)
        logger.info(f"Comparing {total} files against {len(against)} files")

        def run(item: ComparableItem) -> None:
            if cancel_token is not None and cancel_token.is_cancelled:
                return
            self.compare_one(item, against)

        pending: set[Future] = {executor.submit(run, item) for item in using}
        done_count = 0
        reported = 0

        if progress_callback:
            progress_callback(0, total, f"Comparing files... (0 / {total})")

        try:
            while pending:
                done, pending = wait(pending, timeout=0.1, return_when=FIRST_COMPLETED)
                for future in done:
                    future.result()
                done_count += len(done)

                if cancel_token is not None and cancel_token.is_cancelled:
                    logger.warning(f"Comparison cancelled after {done_count} of {total} files")
                    return False

                if progress_callback and (done_count - reported >= every or not pending):
                    reported = done_count
                    progress_callback(
                        done_count, total, f"Comparing files... ({done_count} / {total})"
                    )
        finally:
            for future in pending:
                future.cancel()

        logger.info(f"Comparison complete: {self.edge_count} similarity edges stored")
        return True

    def neighbors(self, item: ComparableItem) -> Iterator[tuple[ComparableItem, Similarity]]:
        """
        Stored edges of an item in input order of the neighbouring items.

        Edges are recorded by concurrent workers in no fixed order, so they are
        sorted here to keep grouping reproducible.
        """
        edges = [
            (self._positions[other_id], other_id, similarity)
            for other_id, similarity in list(item.similarities.items())
            if other_id in self._positions
        ]
        for _, other_id, similarity in sorted(edges, key=lambda edge: edge[0]):
            yield self.items_by_id[other_id], similarity

    def similarity(self, a_id: int, b_id: int) -> Similarity | None:
        """Stored similarity between two items by id, looked up on either side."""
        a = self.items_by_id.get(a_id)
        b = self.items_by_id.get(b_id)
        if a is None or b is None:
            return None
        return a.get_similarity(b_id) or b.get_similarity(a_id)

    @property
    def edge_count(self) -> int:
        """Number of stored unordered edges."""
        return sum(len(item.similarities) for item in self.items) // 2
