"""
OHLC response cache.

Two levels: an in-memory dict and pickle files named by the md5 of the
cache key. Entries older than max_age seconds are discarded.
"""

import os
import time
import hashlib
import pickle
import dataclasses
from typing import Any, Dict, Optional

from proud_profits.errors import ProudProfitsError
from proud_profits.models.market_data import OHLCResponse
from proud_profits.utils.logging_utils import get_component_logger

logger = get_component_logger("storage.ohlc_cache")


class OHLCCache:
    """Memory and file cache for OHLC responses"""

    def __init__(self, cache_dir: str = "./data/cache", max_age: float = 300,
                 clock=time.time):
        """
        Initialize the cache

        Args:
            cache_dir: Directory for cache files
            max_age: Maximum age of cached data in seconds
            clock: Time source in epoch seconds
        """
        self.cache_dir = cache_dir
        self.max_age = max_age
        self.clock = clock
        self.memory_cache: Dict[str, Any] = {}

        os.makedirs(cache_dir, exist_ok=True)

    @staticmethod
    def make_key(symbol: str, interval: str, limit: int) -> str:
        return f"{symbol.upper()}_{interval}_{limit}"

    def _get_cache_path(self, cache_key: str) -> str:
        cache_hash = hashlib.md5(cache_key.encode()).hexdigest()
        return os.path.join(self.cache_dir, f"{cache_hash}.pkl")

    def get(self, symbol: str, interval: str, limit: int) -> Optional[OHLCResponse]:
        """Get a response from the cache if available and not expired"""
        cache_key = self.make_key(symbol, interval, limit)
        now = self.clock()

        # Check memory cache first
        if cache_key in self.memory_cache:
            stored_at, data = self.memory_cache[cache_key]
            if now - stored_at <= self.max_age:
                return data
            del self.memory_cache[cache_key]

        cache_path = self._get_cache_path(cache_key)
        if not os.path.exists(cache_path):
            return None

        try:
            with open(cache_path, 'rb') as f:
                stored_at, data = pickle.load(f)
        except (OSError, pickle.UnpicklingError, EOFError, ValueError, TypeError) as e:
            logger.error(f"Error loading {cache_key} from cache: {e}")
            # Remove corrupted cache file
            os.remove(cache_path)
            return None

        if now - stored_at > self.max_age:
            os.remove(cache_path)
            return None

        self.memory_cache[cache_key] = (stored_at, data)
        return data

    def put(self, symbol: str, interval: str, limit: int, response: OHLCResponse):
        """Save a response to the cache"""
        cache_key = self.make_key(symbol, interval, limit)
        stored_at = self.clock()
        self.memory_cache[cache_key] = (stored_at, response)

        try:
            with open(self._get_cache_path(cache_key), 'wb') as f:
                pickle.dump((stored_at, response), f)
        except OSError as e:
            logger.error(f"Error saving {cache_key} to cache: {e}")

    def clear(self):
        """Clear all cached data"""
        self.memory_cache = {}

        for filename in os.listdir(self.cache_dir):
            if filename.endswith('.pkl'):
                os.remove(os.path.join(self.cache_dir, filename))
        logger.info("Cache cleared")


class CachedApiClient:
    """
    ApiClient wrapper that serves OHLC requests from an OHLCCache.

    Every other attribute is delegated to the wrapped client.
    """

    def __init__(self, client, cache: OHLCCache):
        self.client = client
        self.cache = cache

    @classmethod
    def from_config(cls, client, config: Dict[str, Any]) -> 'CachedApiClient':
        cache_config = config.get('cache', {})
        cache = OHLCCache(cache_config.get('dir', 'data/cache'), cache_config.get('max_age', 300))
        return cls(client, cache)

    def get_ohlc(self, symbol: str, interval: str = '1w', limit: int = 104,
                 public: bool = False, use_cache: bool = True) -> Optional[OHLCResponse]:
        """
        Get OHLC data, from the cache when allowed.

        With use_cache=False the backend is always asked first; if that
        fails the cached copy is returned instead, or the error is raised
        when there is none.
        """
        if use_cache:
            cached = self.cache.get(symbol, interval, limit)
            if cached is not None:
                logger.info(f"Using cached data for {symbol} {interval}")
                return dataclasses.replace(cached, cached=True)

        try:
            response = self.client.get_ohlc(symbol, interval, limit, public=public)
        except ProudProfitsError as e:
            cached = None if use_cache else self.cache.get(symbol, interval, limit)
            if cached is None:
                raise
            logger.warning(f"Fetching {symbol} {interval} failed ({e}), serving cached data")
            return dataclasses.replace(cached, cached=True)

        if response is not None:
            self.cache.put(symbol, interval, limit, response)
        return response
    def __getattr__(self, name):
        return getattr(self.client, name)
