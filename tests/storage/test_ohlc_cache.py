import os

import pytest

from proud_profits.storage.ohlc_cache import CachedApiClient, OHLCCache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock):
    return OHLCCache(str(tmp_path / 'cache'), max_age=300, clock=clock)


def test_make_key():
    assert OHLCCache.make_key('btcusdt', '1w', 104) == 'BTCUSDT_1w_104'


def test_put_and_get(cache, sample_response):
    assert cache.get('BTCUSDT', '1w', 104) is None
    cache.put('BTCUSDT', '1w', 104, sample_response)
    assert cache.get('BTCUSDT', '1w', 104) is sample_response
    assert cache.get('BTCUSDT', '1d', 104) is None


def test_get_reads_file_after_memory_is_cleared(cache, sample_response):
    cache.put('BTCUSDT', '1w', 104, sample_response)
    cache.memory_cache = {}

    loaded = cache.get('BTCUSDT', '1w', 104)
    assert loaded == sample_response
    assert loaded is not sample_response


def test_expired_entries_are_removed(cache, clock, sample_response):
    cache.put('BTCUSDT', '1w', 104, sample_response)
    path = cache._get_cache_path(cache.make_key('BTCUSDT', '1w', 104))
    assert os.path.exists(path)

    clock.now += 301
    assert cache.get('BTCUSDT', '1w', 104) is None
    assert not os.path.exists(path)
    assert cache.memory_cache == {}


def test_corrupted_file_is_removed(cache):
    path = cache._get_cache_path(cache.make_key('BTCUSDT', '1w', 104))
    with open(path, 'wb') as f:
        f.write(b'garbage')

    assert cache.get('BTCUSDT', '1w', 104) is None
    assert not os.path.exists(path)


def test_clear(cache, sample_response):
    cache.put('BTCUSDT', '1w', 104, sample_response)
    cache.put('ETHUSDT', '1w', 104, sample_response)
    cache.clear()
    assert cache.memory_cache == {}
    assert not [name for name in os.listdir(cache.cache_dir) if name.endswith('.pkl')]


def test_cached_client(cache, fake_client, sample_response):
    client = CachedApiClient(fake_client, cache)

    first = client.get_ohlc('BTCUSDT', '1w', 104, public=True)
    assert first is sample_response
    assert not first.cached

    second = client.get_ohlc('BTCUSDT', '1w', 104, public=True)
    assert second.cached
    assert second.data == sample_response.data
    assert not sample_response.cached
    assert len([c for c in fake_client.calls if c[0] == 'get_ohlc']) == 1

    client.get_ohlc('BTCUSDT', '1w', 104, use_cache=False)
    assert len([c for c in fake_client.calls if c[0] == 'get_ohlc']) == 2


def test_cached_client_delegates(cache, fake_client, sample_price):
    client = CachedApiClient(fake_client, cache)
    assert client.get_price('BTCUSDT') is sample_price


def test_cached_client_from_config(test_config, fake_client):
    client = CachedApiClient.from_config(fake_client, test_config)
    assert client.cache.cache_dir == test_config['cache']['dir']
    assert os.path.isdir(test_config['cache']['dir'])


def test_live_fetch_falls_back_to_cache(cache, fake_client, sample_response):
    from proud_profits.errors import ApiError

    client = CachedApiClient(fake_client, cache)
    client.get_ohlc('BTCUSDT', '1w', 104, use_cache=False)

    fake_client.fail = True
    fallback = client.get_ohlc('BTCUSDT', '1w', 104, use_cache=False)
    assert fallback.cached
    assert fallback.data == sample_response.data

    cache.clear()
    with pytest.raises(ApiError):
        client.get_ohlc('BTCUSDT', '1w', 104, use_cache=False)
