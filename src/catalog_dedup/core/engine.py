"""Duplicate search over a catalog: build, compare, group and rank."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from .catalog import CatalogProvider, ComparableItemBuilder, PreparedItems
from .grouper import DuplicateGrouper
from .models import (
    ApplicationConfig,
    CategoryFilter,
    ComparisonConfig,
    DuplicateGroup,
    DuplicateSearchResult,
)
from .normalizer import NameNormalizer
from .platforms import PlatformDatabase
from .progress import CancellationToken, ProgressCallback
from .ranker import CandidateRanker
from .similarity import SimilarityGraph

logger = logging.getLogger(__name__)


class DuplicateFinder:
    """
    Finds duplicate files in a catalog.

    A search builds fresh comparable items from the catalog, scores every
    pair in parallel, then groups and ranks single threaded. The similarity
    graph of the last completed search is kept so grouping can be redone with
    another threshold or category filter without comparing again.
    """

    def __init__(
        self,
        catalog: CatalogProvider,
        config: ComparisonConfig | None = None,
        app_config: ApplicationConfig | None = None,
        platform_database: PlatformDatabase | None = None,
    ):
        """
        Initialize the finder.

        Args:
            catalog: Source of entries, path expansion and platform names
            config: Comparison settings, defaults to ComparisonConfig()
            app_config: Runtime settings, defaults to ApplicationConfig()
            platform_database: Platform reference data shared by grouper and ranker
        """
        self.catalog = catalog
        self.config = config or ComparisonConfig()
        self.app_config = app_config or ApplicationConfig()
        self.platform_database = platform_database or PlatformDatabase()

        self.builder = ComparableItemBuilder(catalog, NameNormalizer())
        self.grouper = DuplicateGrouper(self.platform_database)
        self.ranker = CandidateRanker(self.platform_database)

        self._prepared: PreparedItems | None = None
        self._graph: SimilarityGraph | None = None

    @property
    def graph(self) -> SimilarityGraph | None:
        """Similarity graph of the last completed search."""
        return self._graph

    def find_duplicates(
        self,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> DuplicateSearchResult:
        """
        Run a full duplicate search with the current configuration.

        Args:
            progress_callback: Optional callback for progress updates
            cancel_token: Optional token stopping the search early

        Returns:
            Ranked groups, or a result flagged as cancelled with no groups
        """
        start_time = time.time()
        self._prepared = None
        self._graph = None

        logger.info(
            f"Starting duplicate search: {self.config.using_source.value} against "
            f"{self.config.against_source.value} by {self.config.comparison_field.value}"
        )

        with ThreadPoolExecutor(max_workers=self.app_config.max_workers) as executor:
            prepared = self.builder.build(
                self.config.using_source,
                self.config.against_source,
                self.config.comparison_field,
                executor,
                progress_callback,
                cancel_token,
            )
            if prepared is None:
                return self._cancelled_result(start_time)

            graph = SimilarityGraph(prepared.items, self.config.graph_threshold)
            completed = graph.compare_all(
                prepared.using,
                prepared.against,
                executor,
                progress_callback,
                cancel_token,
                self.app_config.progress_steps,
            )
            if not completed:
                return self._cancelled_result(start_time)

        self._prepared = prepared
        self._graph = graph

        return self._group_and_rank(start_time, progress_callback, cancel_token)

    def regroup(
        self,
        grouping_threshold: float | None = None,
        category_filter: CategoryFilter | None = None,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> DuplicateSearchResult:
        """
        Group and rank the last search's similarity graph again.

        Args:
            grouping_threshold: New grouping threshold, keeps the current one if None
            category_filter: New category filter, keeps the current one if None
            progress_callback: Optional callback for progress updates
            cancel_token: Optional token stopping grouping early

        Returns:
            Ranked groups, or a result flagged as cancelled with no groups

        Raises:
            RuntimeError: If no search has completed yet
        """
        if self._graph is None or self._prepared is None:
            raise RuntimeError("No completed comparison to group; run find_duplicates first")

        updates = {}
        if grouping_threshold is not None:
            updates["grouping_threshold"] = grouping_threshold
        if category_filter is not None:
            updates["category_filter"] = category_filter
        if updates:
            self.config = ComparisonConfig.model_validate({**self.config.model_dump(), **updates})

        return self._group_and_rank(time.time(), progress_callback, cancel_token)

    def _group_and_rank(
        self,
        start_time: float,
        progress_callback: ProgressCallback | None,
        cancel_token: CancellationToken | None,
    ) -> DuplicateSearchResult:
        groups = self.grouper.create_duplicate_groups(
            self._graph,
            self.config.grouping_threshold,
            self.config.category_filter,
            progress_callback,
            cancel_token,
            self.app_config.progress_steps,
        )
        if groups is None:
            return self._cancelled_result(start_time)

        self.ranker.rank_groups(groups)

        result = DuplicateSearchResult(
            config=self.config.model_copy(),
            groups=groups,
            entries_compared=self._prepared.entry_count,
            items_compared=len(self._prepared.items),
            edges_stored=self._graph.edge_count,
            duration_seconds=time.time() - start_time,
        )
        logger.info(f"Duplicate search complete: {result}")
        return result

    def _cancelled_result(self, start_time: float) -> DuplicateSearchResult:
        logger.warning("Duplicate search cancelled, discarding partial results")
        return DuplicateSearchResult(
            config=self.config.model_copy(),
            cancelled=True,
            duration_seconds=time.time() - start_time,
        )

    def set_delete(self, group: DuplicateGroup, item_id: int, delete: bool) -> None:
        """Change the deletion mark of a member, see CandidateRanker.set_delete."""
        self.ranker.set_delete(group, item_id, delete)

    def exclusively_keep(self, group: DuplicateGroup, item_id: int) -> None:
        """Keep one member of a group, see CandidateRanker.exclusively_keep."""
        self.ranker.exclusively_keep(group, item_id)
