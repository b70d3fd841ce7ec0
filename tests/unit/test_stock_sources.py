"""Tests for Pexels and Pixabay sources with a mocked HTTP session."""

from unittest.mock import MagicMock

import pytest
import requests

from scriptboard.models.schemas import AssetSearchOptions, AssetType, Orientation, StockProvider
from scriptboard.services.stock_sources import PexelsSource, PixabaySource, build_stock_sources


def _json_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


def _pexels_video(video_id, duration, width=1920, height=1080):
    return {
        "id": video_id,
        "duration": duration,
        "width": width,
        "height": height,
        "image": f"https://images.pexels.com/{video_id}.jpg",
        "video_files": [
            {"quality": "sd", "width": 640, "link": f"https://pexels.com/{video_id}-sd.mp4", "file_type": "video/mp4"},
            {"quality": "hd", "width": 1920, "link": f"https://pexels.com/{video_id}-hd.mp4", "file_type": "video/mp4"},
        ],
    }


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def options():
    return AssetSearchOptions(min_duration=5, max_duration=40, per_page=5, include_photos=True)


class TestPexelsSource:
    def test_unconfigured_source_returns_nothing(self, settings, logger, session, options):
        source = PexelsSource(settings, logger, session=session)

        assert source.search("coffee", options) == []
        session.get.assert_not_called()

    def test_videos_normalized_and_filtered_by_duration(self, settings, logger, session, options):
        settings.pexels_api_key = "pexels-key"
        session.get.return_value = _json_response(
            {"videos": [_pexels_video(1, 12), _pexels_video(2, 90), _pexels_video(3, 20), _pexels_video(4, 25)]}
        )
        source = PexelsSource(settings, logger, session=session)

        assets = source.search("coffee", options)

        assert [a.provider_asset_id for a in assets] == ["1", "3", "4"]
        first = assets[0]
        assert first.id == "pexels_video_1"
        assert first.provider == StockProvider.PEXELS
        assert first.asset_type == AssetType.VIDEO
        assert first.url.endswith("-hd.mp4")
        assert first.orientation == Orientation.LANDSCAPE
        assert first.metadata["query"] == "coffee"
        assert session.get.call_args.kwargs["headers"] == {"Authorization": "pexels-key"}

    def test_tops_up_with_photos_when_few_videos(self, settings, logger, session, options):
        settings.pexels_api_key = "pexels-key"
        session.get.side_effect = [
            _json_response({"videos": [_pexels_video(1, 12)]}),
            _json_response(
                {
                    "photos": [
                        {
                            "id": 9,
                            "width": 4000,
                            "height": 2250,
                            "src": {"large2x": "https://pexels.com/9.jpg", "medium": "https://pexels.com/9m.jpg"},
                        }
                    ]
                }
            ),
        ]
        source = PexelsSource(settings, logger, session=session)

        assets = source.search("coffee", options)

        assert [a.asset_type for a in assets] == [AssetType.VIDEO, AssetType.IMAGE]
        assert assets[1].duration is None
        assert assets[1].id == "pexels_photo_9"

    def test_photos_skipped_when_disabled(self, settings, logger, session):
        settings.pexels_api_key = "pexels-key"
        session.get.return_value = _json_response({"videos": []})
        source = PexelsSource(settings, logger, session=session)

        assert source.search("coffee", AssetSearchOptions(include_photos=False)) == []
        assert session.get.call_count == 1

    def test_transport_errors_degrade_to_empty(self, settings, logger, session, options):
        settings.pexels_api_key = "pexels-key"
        session.get.side_effect = requests.ConnectionError("network down")
        source = PexelsSource(settings, logger, session=session)

        assert source.search("coffee", options) == []

    def test_rate_limit_degrades_to_empty(self, settings, logger, session, options):
        settings.pexels_api_key = "pexels-key"
        session.get.return_value = _json_response({}, status_code=429)
        source = PexelsSource(settings, logger, session=session)

        assert source.search("coffee", options) == []

    def test_blank_query_skips_request(self, settings, logger, session, options):
        settings.pexels_api_key = "pexels-key"
        source = PexelsSource(settings, logger, session=session)

        assert source.search("   ", options) == []
        session.get.assert_not_called()


class TestPixabaySource:
    def test_videos_carry_engagement_metadata(self, settings, logger, session, options):
        settings.pixabay_api_key = "pixabay-key"
        session.get.side_effect = [
            _json_response(
                {
                    "hits": [
                        {
                            "id": 77,
                            "duration": 18,
                            "picture_id": "abc",
                            "tags": "coffee, beans",
                            "views": 5000,
                            "downloads": 300,
                            "likes": 12,
                            "user": "barista",
                            "videos": {"large": {"url": "https://pixabay.com/77.mp4", "width": 1920, "height": 1080}},
                        }
                    ]
                }
            ),
            _json_response({"hits": []}),
        ]
        source = PixabaySource(settings, logger, session=session)

        assets = source.search("coffee beans", options)

        assert len(assets) == 1
        asset = assets[0]
        assert asset.id == "pixabay_video_77"
        assert asset.thumbnail_url == "https://i.vimeocdn.com/video/abc_295x166.jpg"
        assert asset.metadata["views"] == 5000
        assert asset.metadata["tags"] == "coffee, beans"
        params = session.get.call_args_list[0].kwargs["params"]
        assert params["key"] == "pixabay-key"
        assert params["safesearch"] == "true"

    def test_malformed_payload_degrades_to_empty(self, settings, logger, session, options):
        settings.pixabay_api_key = "pixabay-key"
        session.get.return_value = _json_response({"hits": [{"duration": 10, "videos": {"large": {"url": "x"}}}]})
        source = PixabaySource(settings, logger, session=session)

        assert source.search("coffee", options) == []


def test_build_stock_sources_share_a_session(settings, logger):
    sources = build_stock_sources(settings, logger)

    assert [s.get_source_name() for s in sources] == ["pexels", "pixabay"]
    assert sources[0].session is sources[1].session
