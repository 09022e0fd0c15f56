from datetime import datetime, timedelta, timezone

import pytest

from qa_admin.listing import avatar_stats, category_stats, filter_rows, paginate, qa_stats
from qa_admin.utils.query_cache import QueryCache
from qa_admin.utils.rate_limit import InMemoryRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_cache_loads_once_then_expires():
    clock = FakeClock()
    cache = QueryCache(ttl_seconds=10, clock=clock)
    calls = []

    def loader():
        calls.append(1)
        return ['row']

    assert cache.get_or_load('categories', None, loader) == ['row']
    assert cache.get_or_load('categories', None, loader) == ['row']
    assert len(calls) == 1
    clock.now += 10
    cache.get_or_load('categories', None, loader)
    assert len(calls) == 2


def test_cache_caches_empty_lists_and_skips_failed_loads():
    cache = QueryCache()
    assert cache.get_or_load('avatars', None, lambda: []) == []
    assert cache.get_or_load('avatars', None, lambda: ['never']) == []

    def boom():
        raise RuntimeError('down')

    with pytest.raises(RuntimeError):
        cache.get_or_load('qa', None, boom)
    assert cache.get('qa', None) is None


def test_invalidate_drops_only_named_resources():
    cache = QueryCache()
    cache.put('categories', None, [1])
    cache.put('categories', 'pray', [1])
    cache.put('avatars', None, [2])
    assert cache.invalidate('categories') == 2
    assert cache.get('categories', 'pray') is None
    assert cache.get('avatars', None) == [2]


def test_oldest_entries_evicted_past_capacity():
    clock = FakeClock()
    cache = QueryCache(max_entries=2, clock=clock)
    for key in ('a', 'b', 'c'):
        cache.put('categories', key, key)
        clock.now += 1
    assert len(cache) == 2
    assert cache.get('categories', 'a') is None
    assert cache.get('categories', 'c') == 'c'


def test_filter_rows_substring_case_insensitive():
    rows = [{'name': 'Prayer'}, {'name': 'Fasting'}, {'name': None}, {}]
    assert filter_rows(rows, 'name', 'RAY') == [{'name': 'Prayer'}]
    assert filter_rows(rows, 'name', '') == rows
    assert filter_rows(rows, 'name', None) == rows
    assert filter_rows(rows, 'name', ' ray') == []
    assert filter_rows([{'name': 'Daily prayer'}], 'name', ' PRAY') == [{'name': 'Daily prayer'}]


def test_paginate():
    rows = list(range(25))
    page = paginate(rows, page=3, per_page=10)
    assert page['items'] == [20, 21, 22, 23, 24]
    assert (page['total'], page['pages']) == (25, 3)
    assert paginate(rows, page=4, per_page=10)['items'] == []
    assert paginate([], page=1)['pages'] == 0
    with pytest.raises(ValueError):
        paginate(rows, page=0)


def test_stats():
    now = datetime(2025, 6, 10, tzinfo=timezone.utc)
    assert category_stats([{'image': 'https://x/a.png'}, {'image': ''}, {'image': None}]) == {
        'total': 3, 'with_image': 1,
    }
    avatars = [
        {'created_at': (now - timedelta(days=1)).isoformat()},
        {'created_at': '2025-06-05T12:00:00'},
        {'created_at': (now - timedelta(days=30)).isoformat()},
        {'created_at': None},
    ]
    assert avatar_stats(avatars, now=now) == {'total': 4, 'recently_added': 2}
    questions = [
        {'difficulty': 'EASY', 'is_active': True},
        {'difficulty': 'HARD', 'is_active': False},
        {'difficulty': 'EASY', 'is_active': True},
    ]
    assert qa_stats(questions) == {
        'total': 3, 'active': 2, 'by_difficulty': {'EASY': 2, 'MEDIUM': 0, 'HARD': 1},
    }


def test_rate_limiter_window():
    clock = FakeClock()
    limiter = InMemoryRateLimiter(clock=clock)
    assert limiter.allow('k', 2, 60) == (True, 0)
    assert limiter.allow('k', 2, 60) == (True, 0)
    allowed, retry_after = limiter.allow('k', 2, 60)
    assert not allowed and retry_after == 60
    assert limiter.allow('other', 2, 60)[0]
    clock.now += 60
    assert limiter.allow('k', 2, 60) == (True, 0)
