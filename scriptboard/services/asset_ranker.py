"""Asset Ranker - scores stock candidates and picks the top N for a segment.

SCORE = 0.40 * keyword + 0.30 * duration + 0.20 * orientation + 0.10 * quality

Every function here is pure and deterministic: the same candidates and
parameters always produce the same scores and the same order.
"""

import math
import re
from typing import Any, Optional

from scriptboard.models.schemas import AssetType, RankedAsset, StockAsset

TARGET_ASPECT_RATIO = 16 / 9
MIN_ASPECT_RATIO = TARGET_ASPECT_RATIO * 0.8
MAX_ASPECT_RATIO = TARGET_ASPECT_RATIO * 1.2

KEYWORD_WEIGHT = 0.40
DURATION_WEIGHT = 0.30
ORIENTATION_WEIGHT = 0.20
QUALITY_WEIGHT = 0.10

IMAGE_DURATION_SCORE = 60
NEUTRAL_SCORE = 50
MAX_DURATION_RATIO = 0.5

_TAG_SPLIT = re.compile(r"[,\s]+")


def keyword_score(asset: StockAsset, search_query: str) -> int:
    """
    Share of query words (longer than 2 chars) found in the asset's tags or
    the query it was found with, bucketed to 100/85/70/55/40.

    An exact match on the metadata query with no word hits scores 30,
    anything else 10. An empty query scores 50.
    """
    query_words = [w for w in search_query.lower().split() if len(w) > 2]
    if not query_words:
        return NEUTRAL_SCORE

    tags = [t for t in _TAG_SPLIT.split(str(asset.metadata.get("tags") or "").lower()) if len(t) > 2]
    asset_query = str(asset.metadata.get("query") or "").lower()

    matches = 0
    for word in query_words:
        if any(word in tag or tag in word for tag in tags) or word in asset_query:
            matches += 1

    ratio = matches / len(query_words)
    if ratio >= 0.9:
        return 100
    if ratio >= 0.7:
        return 85
    if ratio >= 0.5:
        return 70
    if ratio >= 0.3:
        return 55
    if ratio > 0:
        return 40
    if asset_query and asset_query == search_query.lower():
        return 30
    return 10


def duration_score(asset: StockAsset, target_duration: float) -> int:
    """
    100 * (1 - |duration - target| / target), rounded; 0 beyond a 50% mismatch.

    Images score a flat 60. A non-positive target cannot be compared against
    and scores neutral.
    """
    if asset.asset_type == AssetType.IMAGE or asset.duration is None:
        return IMAGE_DURATION_SCORE
    if target_duration <= 0:
        return NEUTRAL_SCORE

    ratio = abs(asset.duration - target_duration) / target_duration
    if ratio > MAX_DURATION_RATIO:
        return 0
    return round(100 * (1 - ratio))


def orientation_score(asset: StockAsset) -> int:
    """Closeness to 16:9. Anything outside +/-20% of 16:9 scores 0."""
    ratio = asset.aspect_ratio
    if ratio < MIN_ASPECT_RATIO or ratio > MAX_ASPECT_RATIO:
        return 0

    deviation = abs(ratio - TARGET_ASPECT_RATIO) / TARGET_ASPECT_RATIO
    if deviation <= 0.02:
        return 100
    if deviation <= 0.05:
        return 95
    if deviation <= 0.10:
        return 85
    if deviation <= 0.15:
        return 70
    return 60


def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


def quality_score(asset: StockAsset) -> int:
    """Base 50, log-boosted by views/downloads/likes, +5 for video, capped at 100."""
    score = float(NEUTRAL_SCORE)

    views = _positive_number(asset.metadata.get("views"))
    if views is not None:
        score = min(100.0, 50 + math.log10(views) * 10)

    downloads = _positive_number(asset.metadata.get("downloads"))
    if downloads is not None:
        score = min(100.0, score + math.log10(downloads) * 5)

    likes = _positive_number(asset.metadata.get("likes"))
    if likes is not None:
        score = min(100.0, score + math.log10(likes) * 2)

    if asset.asset_type == AssetType.VIDEO:
        score = min(100.0, score + 5)

    return round(score)


def rank_asset(asset: StockAsset, search_query: str, target_duration: float) -> RankedAsset:
    """Attach the four sub-scores and the composite score to one candidate."""
    k = keyword_score(asset, search_query)
    d = duration_score(asset, target_duration)
    o = orientation_score(asset)
    q = quality_score(asset)
    composite = k * KEYWORD_WEIGHT + d * DURATION_WEIGHT + o * ORIENTATION_WEIGHT + q * QUALITY_WEIGHT

    return RankedAsset(
        **asset.model_dump(include=set(StockAsset.model_fields)),
        keyword_score=k,
        duration_score=d,
        orientation_score=o,
        quality_score=q,
        ranking_score=round(composite, 2),
    )


def rank_assets(
    assets: list[StockAsset],
    search_query: str,
    target_duration: float,
    top_n: int = 3,
    logger: Any = None,
) -> list[RankedAsset]:
    """
    Score, filter, deduplicate and order candidates.

    Drops candidates with a 0 orientation score and videos with a 0 duration
    score. Duplicates sharing (provider, provider asset id) collapse to the
    highest-scoring one (the first seen wins a tie). Sorting is stable, so
    equal scores keep their input order.

    Args:
        assets: Candidates from every provider and query
        search_query: Phrase used for keyword scoring
        target_duration: Segment target duration in seconds
        top_n: Number of results to keep
        logger: Optional logger for filter decisions

    Returns:
        Up to top_n ranked assets with rank_position set, best first
    """
    best_by_key: dict[tuple[str, str], RankedAsset] = {}

    for asset in assets:
        ranked = rank_asset(asset, search_query, target_duration)

        if ranked.orientation_score == 0:
            if logger:
                logger.debug(f"[Ranking] Filtered out {ranked.id}: wrong aspect ratio ({ranked.aspect_ratio:.2f})")
            continue
        if ranked.asset_type == AssetType.VIDEO and ranked.duration_score == 0:
            if logger:
                logger.debug(f"[Ranking] Filtered out {ranked.id}: duration mismatch too large")
            continue

        existing = best_by_key.get(ranked.cache_key)
        if existing is None or ranked.ranking_score > existing.ranking_score:
            best_by_key[ranked.cache_key] = ranked

    ordered = sorted(best_by_key.values(), key=lambda a: a.ranking_score, reverse=True)
    top = [a.model_copy(update={"rank_position": i + 1}) for i, a in enumerate(ordered[:top_n])]

    if logger:
        logger.info(f"[Ranking] Selected {len(top)}/{len(assets)} assets")
        for a in top:
            logger.debug(
                f"  {a.rank_position}. {a.id} (score: {a.ranking_score}, K:{a.keyword_score} "
                f"D:{a.duration_score} O:{a.orientation_score} Q:{a.quality_score})"
            )
    return top
