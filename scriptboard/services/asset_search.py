"""Asset Search Engine - multi-provider stock search, caching and ranking for one segment."""

from typing import Any, Optional

from scriptboard.core.config import Settings
from scriptboard.models.schemas import AssetSearchOptions, RankedAsset, StockAsset
from scriptboard.services.asset_cache import AssetCache
from scriptboard.services.asset_ranker import rank_assets
from scriptboard.services.stock_sources import StockSource
from scriptboard.utils.parallel_executor import ParallelExecutor


class AssetSearchEngine:
    """Queries every configured stock source and ranks the merged candidates."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        sources: list[StockSource],
        cache: Optional[AssetCache] = None,
    ):
        """
        Initialize the search engine.

        Args:
            settings: Application settings
            logger: Logger instance
            sources: Stock sources to fan out to
            cache: Optional asset cache fed with every search result
        """
        self.settings = settings
        self.logger = logger
        self.sources = sources
        self.cache = cache
        self.executor = ParallelExecutor(logger, max_workers=max(1, len(sources)))

    def configured_sources(self) -> list[StockSource]:
        return [s for s in self.sources if s.is_configured()]

    def search_all_providers(self, query: str, options: AssetSearchOptions) -> list[StockAsset]:
        """
        Query every configured source concurrently for one phrase.

        Both calls are always awaited. A source that raises contributes an
        empty list instead of failing the search.

        Returns:
            Results in source order
        """
        sources = self.configured_sources()
        if not sources:
            self.logger.warning("[Stock] No stock providers configured")
            return []

        outcomes = self.executor.execute_batch(
            [lambda s=source: s.search(query, options) for source in sources],
            task_names=[f"{s.get_source_name()} search '{query}'" for s in sources],
        )

        combined: list[StockAsset] = []
        counts = []
        for source, (results, error) in zip(sources, outcomes):
            if error is not None:
                self.logger.error(f"[Stock] {source.get_source_name()} failed for '{query}': {error}")
                results = []
            combined.extend(results or [])
            counts.append(f"{source.get_source_name()}={len(results or [])}")

        self.logger.info(f"[Stock] Combined {len(combined)} results for '{query}' ({', '.join(counts)})")
        return combined

    def search_and_rank(
        self,
        queries: list[str],
        target_duration: float,
        options: AssetSearchOptions,
        top_n: Optional[int] = None,
    ) -> list[RankedAsset]:
        """
        Search up to `stock_max_queries` phrases and return the best candidates.

        Args:
            queries: Search phrases, most specific first
            target_duration: Segment target duration (seconds)
            options: Per-query constraints
            top_n: Number of results (defaults to settings.stock_top_n)

        Returns:
            Ranked assets, best first (empty when nothing matched)
        """
        queries = [q for q in queries if q and q.strip()][: self.settings.stock_max_queries]
        if not queries:
            return []

        candidates: list[StockAsset] = []
        for query in queries:
            candidates.extend(self.search_all_providers(query, options))

        if not candidates:
            self.logger.info("[Stock] No assets found for any query")
            return []

        if self.cache is not None:
            self.cache.put_many(candidates)

        return rank_assets(
            candidates,
            search_query=queries[0],
            target_duration=target_duration,
            top_n=top_n or self.settings.stock_top_n,
            logger=self.logger,
        )
