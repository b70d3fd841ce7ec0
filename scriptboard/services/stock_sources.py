"""Stock footage sources (Pexels, Pixabay) normalized to StockAsset."""

from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from scriptboard.core.config import Settings
from scriptboard.models.schemas import (
    AssetSearchOptions,
    AssetType,
    StockAsset,
    StockProvider,
)
from scriptboard.services.duration_reconciler import orientation_for

MIN_VIDEOS_BEFORE_PHOTOS = 3


class StockSource(ABC):
    """A stock-footage provider searched once per query."""

    def __init__(self, settings: Settings, logger: Any, session: Optional[requests.Session] = None):
        """
        Initialize stock source.

        Args:
            settings: Application settings
            logger: Logger instance
            session: Optional requests session (shared connection pool)
        """
        self.settings = settings
        self.logger = logger
        self.session = session or requests.Session()
        self.timeout = settings.stock_request_timeout

    @abstractmethod
    def get_source_name(self) -> str:
        """Provider name, e.g. "pexels"."""

    @abstractmethod
    def is_configured(self) -> bool:
        """True when the provider has an API key."""

    @abstractmethod
    def search_videos(self, query: str, options: AssetSearchOptions) -> list[StockAsset]:
        """Search videos. Raises requests exceptions on transport failure."""

    @abstractmethod
    def search_photos(self, query: str, options: AssetSearchOptions) -> list[StockAsset]:
        """Search photos. Raises requests exceptions on transport failure."""

    def search(self, query: str, options: AssetSearchOptions) -> list[StockAsset]:
        """
        Search videos, topping up with photos when fewer than 3 videos match.

        Provider errors never propagate: they are logged and degrade to an
        empty result.

        Args:
            query: Search phrase
            options: Duration window, page size and photo fallback flag

        Returns:
            Normalized assets (videos first)
        """
        name = self.get_source_name()
        if not query.strip():
            return []
        if not self.is_configured():
            self.logger.debug(f"[{name.title()}] Skipping search - no API key configured")
            return []

        try:
            videos = self.search_videos(query, options)
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            self.logger.error(f"[{name.title()}] Video search failed for '{query}': {e}")
            videos = []

        if len(videos) >= MIN_VIDEOS_BEFORE_PHOTOS or not options.include_photos:
            return videos

        try:
            photos = self.search_photos(query, options)
        except (requests.RequestException, ValueError, KeyError, TypeError) as e:
            self.logger.error(f"[{name.title()}] Photo search failed for '{query}': {e}")
            photos = []

        return videos + photos

    def _get_json(self, url: str, params: dict, headers: Optional[dict] = None) -> dict:
        response = self.session.get(url, params=params, headers=headers or {}, timeout=self.timeout)
        if response.status_code == 429:
            self.logger.warning(f"[{self.get_source_name().title()}] Rate limit exceeded")
        response.raise_for_status()
        return response.json()


class PexelsSource(StockSource):
    """
    Pexels stock videos and photos.

    API Documentation: https://www.pexels.com/api/documentation/
    """

    BASE_URL = "https://api.pexels.com"

    def get_source_name(self) -> str:
        return StockProvider.PEXELS.value

    def is_configured(self) -> bool:
        return bool(self.settings.pexels_api_key)

    def _headers(self) -> dict:
        return {"Authorization": self.settings.pexels_api_key or ""}

    def search_videos(self, query: str, options: AssetSearchOptions) -> list[StockAsset]:
        data = self._get_json(
            f"{self.BASE_URL}/videos/search",
            params={"query": query, "per_page": options.per_page, "orientation": "landscape"},
            headers=self._headers(),
        )

        assets = []
        for video in data.get("videos", []):
            duration = video.get("duration") or 0
            if duration < options.min_duration or duration > options.max_duration:
                continue

            files = video.get("video_files") or []
            hd_file = next((f for f in files if f.get("quality") == "hd" and (f.get("width") or 0) >= 1280), None)
            sd_file = next((f for f in files if f.get("quality") == "sd"), None)
            video_file = hd_file or sd_file or (files[0] if files else None)
            if not video_file or not video_file.get("link"):
                continue

            width, height = video.get("width", 0), video.get("height", 0)
            assets.append(
                StockAsset(
                    id=f"pexels_video_{video['id']}",
                    provider=StockProvider.PEXELS,
                    provider_asset_id=str(video["id"]),
                    asset_type=AssetType.VIDEO,
                    url=video_file["link"],
                    thumbnail_url=video.get("image", ""),
                    duration=float(duration),
                    width=width,
                    height=height,
                    orientation=orientation_for(width, height),
                    metadata={
                        "query": query,
                        "quality": video_file.get("quality", "unknown"),
                        "file_type": video_file.get("file_type", "video/mp4"),
                    },
                )
            )

        self.logger.info(f"[Pexels] Found {len(assets)} videos for query: '{query}'")
        return assets

    def search_photos(self, query: str, options: AssetSearchOptions) -> list[StockAsset]:
        data = self._get_json(
            f"{self.BASE_URL}/v1/search",
            params={"query": query, "per_page": options.per_page, "orientation": "landscape"},
            headers=self._headers(),
        )

        assets = []
        for photo in data.get("photos", []):
            src = photo.get("src") or {}
            url = src.get("large2x") or src.get("large")
            if not url:
                continue
            width, height = photo.get("width", 0), photo.get("height", 0)
            assets.append(
                StockAsset(
                    id=f"pexels_photo_{photo['id']}",
                    provider=StockProvider.PEXELS,
                    provider_asset_id=str(photo["id"]),
                    asset_type=AssetType.IMAGE,
                    url=url,
                    thumbnail_url=src.get("medium", ""),
                    duration=None,
                    width=width,
                    height=height,
                    orientation=orientation_for(width, height),
                    metadata={"query": query, "sizes": sorted(src.keys())},
                )
            )

        self.logger.info(f"[Pexels] Found {len(assets)} photos for query: '{query}'")
        return assets


class PixabaySource(StockSource):
    """
    Pixabay stock videos and photos.

    API Documentation: https://pixabay.com/api/docs/
    """

    BASE_URL = "https://pixabay.com/api"
    THUMBNAIL_URL = "https://i.vimeocdn.com/video/{picture_id}_295x166.jpg"

    def get_source_name(self) -> str:
        return StockProvider.PIXABAY.value

    def is_configured(self) -> bool:
        return bool(self.settings.pixabay_api_key)

    def search_videos(self, query: str, options: AssetSearchOptions) -> list[StockAsset]:
        data = self._get_json(
            f"{self.BASE_URL}/videos/",
            params={
                "key": self.settings.pixabay_api_key,
                "q": query,
                "per_page": options.per_page,
                "video_type": "film",
                "safesearch": "true",
            },
        )

        assets = []
        for video in data.get("hits", []):
            duration = video.get("duration") or 0
            if duration < options.min_duration or duration > options.max_duration:
                continue

            files = video.get("videos") or {}
            video_file = files.get("large") or files.get("medium") or files.get("small")
            if not video_file or not video_file.get("url"):
                continue

            width, height = video_file.get("width", 0), video_file.get("height", 0)
            assets.append(
                StockAsset(
                    id=f"pixabay_video_{video['id']}",
                    provider=StockProvider.PIXABAY,
                    provider_asset_id=str(video["id"]),
                    asset_type=AssetType.VIDEO,
                    url=video_file["url"],
                    thumbnail_url=self.THUMBNAIL_URL.format(picture_id=video.get("picture_id", "")),
                    duration=float(duration),
                    width=width,
                    height=height,
                    orientation=orientation_for(width, height),
                    metadata=self._engagement(query, video),
                )
            )

        self.logger.info(f"[Pixabay] Found {len(assets)} videos for query: '{query}'")
        return assets

    def search_photos(self, query: str, options: AssetSearchOptions) -> list[StockAsset]:
        data = self._get_json(
            f"{self.BASE_URL}/",
            params={
                "key": self.settings.pixabay_api_key,
                "q": query,
                "per_page": options.per_page,
                "image_type": "photo",
                "orientation": "horizontal",
                "safesearch": "true",
            },
        )

        assets = []
        for photo in data.get("hits", []):
            if not photo.get("largeImageURL"):
                continue
            width, height = photo.get("imageWidth", 0), photo.get("imageHeight", 0)
            assets.append(
                StockAsset(
                    id=f"pixabay_photo_{photo['id']}",
                    provider=StockProvider.PIXABAY,
                    provider_asset_id=str(photo["id"]),
                    asset_type=AssetType.IMAGE,
                    url=photo["largeImageURL"],
                    thumbnail_url=photo.get("webformatURL", ""),
                    duration=None,
                    width=width,
                    height=height,
                    orientation=orientation_for(width, height),
                    metadata=self._engagement(query, photo),
                )
            )

        self.logger.info(f"[Pixabay] Found {len(assets)} photos for query: '{query}'")
        return assets

    @staticmethod
    def _engagement(query: str, hit: dict) -> dict:
        return {
            "query": query,
            "tags": hit.get("tags", ""),
            "views": hit.get("views"),
            "downloads": hit.get("downloads"),
            "likes": hit.get("likes"),
            "user": hit.get("user"),
        }


def build_stock_sources(settings: Settings, logger: Any) -> list[StockSource]:
    """Every known source, configured or not; unconfigured ones return nothing."""
    session = requests.Session()
    return [
        PexelsSource(settings, logger, session=session),
        PixabaySource(settings, logger, session=session),
    ]
