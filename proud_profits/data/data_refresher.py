"""
Periodic data refresher for the signals dashboard.

Each feed (OHLC candles, alert signals, live price) is a named job with its
own refetch interval. A daemon worker thread ticks once per second and runs
every job that is due; results are pushed to subscribed callbacks. A failed
fetch keeps the last good data so the chart never goes blank.
"""

import time
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import pytz

from proud_profits.storage.ohlc_cache import CachedApiClient
from proud_profits.utils.logging_utils import get_component_logger

logger = get_component_logger("data.data_refresher")

# Consecutive failures after which a feed is reported as broken
MAX_CONSECUTIVE_FAILURES = 5

DEFAULT_INTERVALS = {
    'ohlc': 30,
    'signals': 15,
    'price': 5,
}


class RefreshJob:
    """State of one periodically refreshed feed."""

    def __init__(self, name: str, fetch: Callable[[], Any], interval: float):
        self.name = name
        self.fetch = fetch
        self.interval = interval
        self.data = None
        self.has_data = False
        self.last_attempt: Optional[float] = None
        self.last_success: Optional[float] = None
        self.failures = 0
        self.last_error: Optional[str] = None
        self.callbacks: List[Callable[[Any], None]] = []

    def is_due(self, now: float) -> bool:
        return self.last_attempt is None or now - self.last_attempt >= self.interval


class DataRefresher:
    """
    Polling scheduler for the dashboard feeds.

    This class provides mechanisms for:
    1. Periodic automatic refetching per feed
    2. Forced immediate refresh
    3. Callback notifications when data is updated
    4. A connection status derived from recent failures
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize the DataRefresher.

        Args:
            config: Configuration dictionary
        """
        self.config = config or {}
        self.jobs: Dict[str, RefreshJob] = {}
        self.lock = threading.RLock()

        # Refresh thread
        self.refresh_thread = None
        self.running = False
        self.stop_event = threading.Event()

        logger.info("DataRefresher initialized")

    def add_job(self, name: str, fetch: Callable[[], Any], interval_seconds: float,
                callback: Optional[Callable[[Any], None]] = None) -> RefreshJob:
        """
        Register a feed, replacing any existing job with the same name.

        Args:
            name: Job name
            fetch: Zero-argument callable returning fresh data
            interval_seconds: Refetch interval
            callback: Optional callback receiving each successful result
        """
        job = RefreshJob(name, fetch, interval_seconds)
        if callback:
            job.callbacks.append(callback)

        with self.lock:
            if name in self.jobs:
                logger.info(f"Replacing refresh job {name}")
            self.jobs[name] = job

        logger.info(f"Added refresh job {name} every {interval_seconds}s")
        return job

    def remove_job(self, name: str) -> bool:
        with self.lock:
            removed = self.jobs.pop(name, None) is not None
        if removed:
            logger.info(f"Removed refresh job {name}")
        return removed

    def subscribe(self, name: str, callback: Callable[[Any], None]):
        """
        Subscribe to updates of a job.

        The callback is called immediately when the job already holds data.
        """
        with self.lock:
            job = self.jobs[name]
            job.callbacks.append(callback)
            has_data, data = job.has_data, job.data

        if has_data:
            self._invoke(name, callback, data)

    def unsubscribe(self, name: str, callback: Callable[[Any], None]):
        with self.lock:
            job = self.jobs.get(name)
            if job and callback in job.callbacks:
                job.callbacks.remove(callback)

    def _invoke(self, name: str, callback: Callable[[Any], None], data: Any):
        try:
            callback(data)
        except Exception as e:
            logger.error(f"Error in callback for {name}: {e}")

    def _run_job(self, job: RefreshJob, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        job.last_attempt = now

        try:
            data = job.fetch()
        except Exception as e:
            job.failures += 1
            job.last_error = str(e)
            logger.error(f"Error refreshing {job.name} (failure {job.failures}): {e}")
            return False

        with self.lock:
            job.data = data
            job.has_data = True
            job.last_success = now
            job.failures = 0
            job.last_error = None
            callbacks = list(job.callbacks)

        for callback in callbacks:
            self._invoke(job.name, callback, data)

        logger.debug(f"Refreshed {job.name}")
        return True

    def tick(self, now: Optional[float] = None) -> List[str]:
        """
        Run every job that is due.

        Args:
            now: Current time in epoch seconds (defaults to time.time())

        Returns:
            Names of the jobs that were run
        """
        now = time.time() if now is None else now
        with self.lock:
            due = [job for job in self.jobs.values() if job.is_due(now)]

        for job in due:
            self._run_job(job, now)
        return [job.name for job in due]

    def refresh_now(self, name: Optional[str] = None) -> Dict[str, bool]:
        """
        Force a refresh of one job, or of all jobs.

        Returns:
            Mapping of job name to whether the fetch succeeded
        """
        with self.lock:
            if name is None:
                jobs = list(self.jobs.values())
            else:
                jobs = [self.jobs[name]]

        results = {}
        for job in jobs:
            logger.info(f"Force refreshing {job.name}")
            results[job.name] = self._run_job(job)
        return results

    def get_data(self, name: str) -> Any:
        with self.lock:
            job = self.jobs.get(name)
            return job.data if job else None

    def job_status(self, name: str) -> Dict[str, Any]:
        with self.lock:
            job = self.jobs[name]
            last_success = None
            if job.last_success is not None:
                last_success = datetime.fromtimestamp(job.last_success, tz=pytz.UTC).isoformat()
            return {
                'name': job.name,
                'interval': job.interval,
                'has_data': job.has_data,
                'failures': job.failures,
                'last_error': job.last_error,
                'last_success': last_success,
            }

    def connection_status(self) -> str:
        """
        'connecting' until the first successful fetch, 'error' once a feed
        has failed more than MAX_CONSECUTIVE_FAILURES times in a row,
        otherwise 'connected'.
        """
        with self.lock:
            jobs = list(self.jobs.values())

        if any(job.failures > MAX_CONSECUTIVE_FAILURES for job in jobs):
            return 'error'
        if not any(job.last_success is not None for job in jobs):
            return 'connecting'
        return 'connected'

    def start(self, check_interval: int = 1):
        """
        Start the refresh thread.

        Args:
            check_interval: Check interval in seconds
        """
        if self.refresh_thread and self.refresh_thread.is_alive():
            logger.warning("Refresh thread already running")
            return

        self.running = True
        self.stop_event.clear()
        self.refresh_thread = threading.Thread(
            target=self._refresh_worker,
            args=(check_interval,),
            daemon=True
        )
        self.refresh_thread.start()
        logger.info(f"Refresh thread started with {check_interval}s check interval")

    def stop(self):
        """Stop the refresh thread."""
        self.stop_event.set()
        self.running = False
        if self.refresh_thread:
            self.refresh_thread.join(timeout=5)
            self.refresh_thread = None
            logger.info("Refresh thread stopped")

    def _refresh_worker(self, check_interval: int = 1):
        logger.info("Refresh worker thread started")

        while not self.stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Error in refresh worker: {e}")

            # Returns early when stop() is called
            self.stop_event.wait(check_interval)


def create_chart_refresher(client,
                           symbol: str = 'BTCUSDT',
                           interval: str = '1w',
                           limit: int = 104,
                           timeframe: str = '1W',
                           intervals: Optional[Dict[str, float]] = None,
                           public: bool = True,
                           refresher: Optional[DataRefresher] = None) -> DataRefresher:
    """
    Wire the three chart feeds (ohlc, signals, price) onto a refresher.

    Args:
        client: ApiClient (or CachedApiClient) used for fetching
        symbol: Chart symbol
        interval: Candle interval
        limit: Number of candles to request
        timeframe: Signal timeframe
        intervals: Refetch periods in seconds keyed by job name
        public: Use the public endpoints
        refresher: Existing refresher to add the jobs to

    Returns:
        DataRefresher with the jobs registered
    """
    periods = dict(DEFAULT_INTERVALS)
    periods.update(intervals or {})
    refresher = refresher or DataRefresher()

    if isinstance(client, CachedApiClient):
        # Periodic and manual refreshes must reach the backend; the cache only covers failures
        fetch_ohlc = lambda: client.get_ohlc(symbol, interval, limit, public=public, use_cache=False)
    else:
        fetch_ohlc = lambda: client.get_ohlc(symbol, interval, limit, public=public)

    refresher.add_job('ohlc', fetch_ohlc, periods['ohlc'])
    refresher.add_job('signals', lambda: client.get_signals(symbol, timeframe), periods['signals'])
    refresher.add_job('price', lambda: client.get_price(symbol, public=public), periods['price'])

    return refresher


# Global singleton instance
_data_refresher = None


def get_data_refresher(config: Optional[Dict] = None) -> DataRefresher:
    """
    Get the global data refresher instance.

    Args:
        config: Optional configuration to initialize with

    Returns:
        DataRefresher instance
    """
    global _data_refresher

    if _data_refresher is None:
        if config is None:
            from proud_profits.utils.config import load_config
            config = load_config()

        _data_refresher = DataRefresher(config)

    return _data_refresher
