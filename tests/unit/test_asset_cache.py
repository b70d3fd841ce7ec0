"""Tests for the stock asset cache."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_asset
from scriptboard.models.schemas import StockProvider
from scriptboard.services.asset_cache import AssetCache
from scriptboard.services.asset_ranker import rank_asset


class Clock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(settings, logger, clock):
    settings.asset_cache_ttl_days = 90
    return AssetCache(settings, logger, now=clock)


def test_put_and_get(cache, clock):
    asset = make_asset("42")

    assert cache.put_many([asset]) == 1

    cached = cache.get("pexels", "42")
    assert cached.asset == asset
    assert cached.expires_at == clock.now + timedelta(days=90)


def test_existing_key_is_left_untouched(cache):
    cache.put_many([make_asset("42", duration=20)])

    assert cache.put_many([make_asset("42", duration=33)]) == 0
    assert cache.get("pexels", "42").asset.duration == 20


def test_expired_entries_are_invisible_and_swept(cache, clock):
    cache.put_many([make_asset("1"), make_asset("2", provider=StockProvider.PIXABAY)])

    clock.advance(days=91)

    assert cache.get("pexels", "1") is None
    assert cache.clean_expired() == 2
    assert cache.put_many([make_asset("1")]) == 1


def test_get_many_filters_by_provider(cache):
    cache.put_many([make_asset("1"), make_asset("2"), make_asset("1", provider=StockProvider.PIXABAY)])

    found = cache.get_many("pexels", ["1", "2", "3"])

    assert sorted(found) == ["1", "2"]
    assert cache.get_many("pexels", []) == {}


def test_ranked_assets_stored_without_scores(cache):
    cache.put_many([rank_asset(make_asset("5"), "coffee", 20)])

    stored = cache.get("pexels", "5").asset
    assert not hasattr(stored, "ranking_score")
