"""
Live price streaming from the Binance combined stream.

The service connects to wss://stream.binance.com:9443/stream with a ticker
and a 1m kline stream per symbol, throttles the updates per symbol and emits
them to registered listeners. When the WebSocket fails it backs off
exponentially and switches to the backend's CoinCap SSE relay.
"""

import asyncio
import json
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import pytz
import requests
import websockets

from proud_profits.errors import StreamError
from proud_profits.models.market_data import KlineUpdate, PriceTick, parse_timestamp
from proud_profits.utils.logging_utils import get_component_logger

logger = get_component_logger("data.price_stream")

DEFAULT_STREAM_URL = 'wss://stream.binance.com:9443/stream'
DEFAULT_SYMBOLS = ['btcusdt', 'ethusdt', 'solusdt']

MIN_THROTTLE_MS = 50
MAX_THROTTLE_MS = 1000
# Price updates smaller than this relative change are dropped
MIN_PRICE_CHANGE = 0.0001

EVENTS = ('price', 'kline', 'connected', 'disconnected', 'error', 'max_reconnect_attempts_reached')


class PriceStreamingService:
    """
    Streams live prices and closed 1m klines.

    Listeners are registered with on(event, listener); see EVENTS for the
    event names. Ticker updates arrive as PriceTick, klines as KlineUpdate.
    """

    def __init__(self,
                 url: str = DEFAULT_STREAM_URL,
                 coincap_sse_url: str = '/api/stream/coincap',
                 api_base_url: str = '',
                 throttle_ms: int = 100,
                 max_reconnect_attempts: int = 5,
                 clock: Callable[[], float] = time.time):
        self.url = url
        self.coincap_sse_url = coincap_sse_url
        self.api_base_url = (api_base_url or '').rstrip('/')
        self.throttle_ms = throttle_ms
        self.max_reconnect_attempts = max_reconnect_attempts
        self.clock = clock

        self.listeners: Dict[str, List[Callable]] = {}
        self.subscribed_symbols: List[str] = []
        self.is_connected = False
        self.source = 'none'
        self.reconnect_attempts = 0
        self.should_reconnect = True
        self.use_fallback = False
        self.start_time = clock()

        # Per-symbol time (ms) of the last emitted update, and last emitted price
        self.update_throttle: Dict[str, float] = {}
        self.last_price: Dict[str, float] = {}

        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ws = None
        self._sse_response = None
        self.session = requests.Session()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'PriceStreamingService':
        stream = config.get('stream', {})
        return cls(
            url=stream.get('url', DEFAULT_STREAM_URL),
            coincap_sse_url=stream.get('coincap_sse_url', '/api/stream/coincap'),
            api_base_url=config.get('api', {}).get('base_url', ''),
            throttle_ms=stream.get('throttle_ms', 100),
            max_reconnect_attempts=stream.get('max_reconnect_attempts', 5),
        )

    # Event emitter

    def on(self, event: str, listener: Callable):
        self.listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Callable):
        if listener in self.listeners.get(event, []):
            self.listeners[event].remove(listener)

    def emit(self, event: str, *args):
        for listener in list(self.listeners.get(event, [])):
            try:
                listener(*args)
            except Exception as e:
                logger.error(f"Error in {event} listener: {e}")

    # Message handling

    def build_stream_url(self, symbols: Optional[Iterable[str]] = None) -> str:
        symbols = [s.lower() for s in (symbols if symbols is not None else self.subscribed_symbols)]
        streams = []
        for symbol in symbols:
            streams.append(f"{symbol}@ticker")
            streams.append(f"{symbol}@kline_1m")
        return f"{self.url}?streams={'/'.join(streams)}"

    def handle_message(self, raw: Union[str, bytes, Dict]) -> Optional[str]:
        """
        Parse one stream message and emit the resulting update.

        Returns:
            The emitted event name, or None when the message was ignored
            or throttled
        """
        if isinstance(raw, (str, bytes)):
            try:
                message = json.loads(raw)
            except ValueError as e:
                logger.error(f"Error parsing stream message: {e}")
                return None
        else:
            message = raw

        if not isinstance(message, dict):
            return None

        try:
            if 'stream' in message and 'data' in message:
                stream_type = message['stream'].split('@')[-1]
                if stream_type == 'kline_1m':
                    return self._handle_kline(message['data'])
                if stream_type == 'ticker':
                    return self._handle_ticker(message['data'])
                return None

            if message.get('type') == 'price' and message.get('data'):
                return self._handle_coincap(message['data'])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed stream message: {e}")

        return None

    def _handle_kline(self, data: Dict) -> Optional[str]:
        kline = data.get('k') or {}
        if not kline.get('x'):
            return None

        update = KlineUpdate(
            symbol=kline['s'].upper(),
            open_time=parse_timestamp(kline['t']),
            close_time=parse_timestamp(kline['T']),
            open=float(kline['o']),
            high=float(kline['h']),
            low=float(kline['l']),
            close=float(kline['c']),
            volume=float(kline['v']),
            interval='1m',
        )
        return 'kline' if self._throttled_emit('kline', f"{update.symbol}@kline", update) else None

    def _handle_ticker(self, data: Dict) -> Optional[str]:
        change = float(data.get('P', 0))
        tick = PriceTick(
            symbol=data['s'],
            price=float(data['c']),
            change_24h=change,
            change_percent_24h=change,
            volume_24h=float(data.get('v', 0)),
            high_24h=float(data.get('h', 0)),
            low_24h=float(data.get('l', 0)),
            timestamp=datetime.now(pytz.UTC),
        )
        return 'price' if self._throttled_emit('price', tick.symbol, tick) else None

    def _handle_coincap(self, data: Dict) -> Optional[str]:
        change = float(data.get('changePercent24Hr') or 0)
        tick = PriceTick(
            symbol=f"{data['id'].upper()}USDT",
            price=float(data['priceUsd']),
            change_24h=change,
            change_percent_24h=change,
            volume_24h=float(data.get('volumeUsd24Hr') or 0),
            timestamp=datetime.now(pytz.UTC),
            is_fallback=True,
        )
        return 'price' if self._throttled_emit('price', tick.symbol, tick) else None

    def _throttled_emit(self, event: str, key: str, payload: Any) -> bool:
        now = self.clock() * 1000
        last = self.update_throttle.get(key)
        if last is not None and now - last < self.throttle_ms:
            return False

        self.update_throttle[key] = now

        if event == 'price':
            last_price = self.last_price.get(key)
            if last_price and abs(payload.price - last_price) / last_price < MIN_PRICE_CHANGE:
                return False
            self.last_price[key] = payload.price

        self.emit(event, payload)
        return True

    def set_throttle_delay(self, delay_ms: int):
        self.throttle_ms = max(MIN_THROTTLE_MS, min(delay_ms, MAX_THROTTLE_MS))

    # Connection management

    def next_reconnect_delay(self) -> Optional[float]:
        """
        Register a connection failure.

        Returns:
            Seconds to wait before the next attempt, or None once the
            attempts are exhausted
        """
        if self.reconnect_attempts < self.max_reconnect_attempts:
            self.reconnect_attempts += 1
            delay = 2 ** self.reconnect_attempts
            logger.info(f"Attempting reconnection {self.reconnect_attempts}/"
                        f"{self.max_reconnect_attempts} in {delay}s")
            return delay

        logger.error("Max reconnection attempts reached")
        self.emit('max_reconnect_attempts_reached')
        return None

    def _subscription_frame(self, method: str, symbols: Iterable[str]) -> Dict[str, Any]:
        return {
            'method': method,
            'params': [f"{s.lower()}@ticker" for s in symbols],
            'id': int(self.clock() * 1000),
        }

    def _send(self, frame: Dict[str, Any]) -> bool:
        if not (self.is_connected and self._ws is not None and self._loop is not None):
            return False
        asyncio.run_coroutine_threadsafe(self._ws.send(json.dumps(frame)), self._loop)
        return True

    def subscribe(self, symbols: Iterable[str]) -> Dict[str, Any]:
        symbols = [s.lower() for s in symbols]
        for symbol in symbols:
            if symbol not in self.subscribed_symbols:
                self.subscribed_symbols.append(symbol)
        frame = self._subscription_frame('SUBSCRIBE', symbols)
        self._send(frame)
        return frame

    def unsubscribe(self, symbols: Iterable[str]) -> Dict[str, Any]:
        symbols = [s.lower() for s in symbols]
        self.subscribed_symbols = [s for s in self.subscribed_symbols if s not in symbols]
        frame = self._subscription_frame('UNSUBSCRIBE', symbols)
        self._send(frame)
        return frame

    def _mark_connected(self, source: str):
        self.is_connected = True
        self.source = source
        self.reconnect_attempts = 0
        self.start_time = self.clock()
        logger.info(f"Price stream connected via {source}")
        self.emit('connected', {'source': source, 'is_connected': True})

    def _mark_disconnected(self, source: str):
        was_connected = self.is_connected
        self.is_connected = False
        self.source = 'none'
        if was_connected:
            self.emit('disconnected', {'source': source, 'is_connected': False})

    async def _listen_websocket(self):
        url = self.build_stream_url()
        logger.info(f"Connecting to Binance WebSocket: {url}")
        async with websockets.connect(url) as ws:
            self._ws = ws
            self._mark_connected('binance')
            try:
                async for message in ws:
                    self.handle_message(message)
            finally:
                self._ws = None
                self._mark_disconnected('binance')

    def _sse_url(self) -> str:
        if self.coincap_sse_url.startswith('http'):
            return self.coincap_sse_url
        return f"{self.api_base_url}{self.coincap_sse_url}"

    def _read_sse(self):
        url = self._sse_url()
        logger.info(f"Connecting to CoinCap SSE fallback: {url}")
        response = self.session.get(url, stream=True, timeout=(10, None),
                                    headers={'Accept': 'text/event-stream'})
        if not response.ok:
            response.close()
            raise StreamError(f"CoinCap SSE returned HTTP {response.status_code} {response.reason}")
        self._sse_response = response
        self._mark_connected('coincap')
        try:
            for line in response.iter_lines(decode_unicode=True):
                if not self.should_reconnect:
                    break
                if line and line.startswith('data:'):
                    self.handle_message(line[len('data:'):].strip())
        finally:
            response.close()
            self._sse_response = None
            self._mark_disconnected('coincap')

    async def _listen_sse(self):
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._read_sse)

    async def _sleep(self, seconds: float):
        deadline = self.clock() + seconds
        while self.should_reconnect and self.clock() < deadline:
            await asyncio.sleep(min(0.5, seconds))

    async def run(self):
        """Connect and keep reconnecting until stop() or the attempts run out."""
        while self.should_reconnect:
            source = 'coincap' if self.use_fallback else 'binance'
            try:
                if self.use_fallback:
                    await self._listen_sse()
                else:
                    await self._listen_websocket()
            except (websockets.WebSocketException, OSError, requests.RequestException, StreamError) as e:
                logger.error(f"Price stream error ({source}): {e}")
                self.emit('error', {'source': source, 'error': str(e)})

            if not self.should_reconnect:
                break

            delay = self.next_reconnect_delay()
            if delay is None:
                break
            if not self.use_fallback:
                logger.info("Switching to CoinCap SSE fallback")
                self.use_fallback = True
            await self._sleep(delay)

    def _run_loop(self):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self.run())
        finally:
            self._loop.close()
            self._loop = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, symbols: Optional[Iterable[str]] = None):
        """Start streaming on a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning("Price stream already running")
            return

        self.subscribed_symbols = [s.lower() for s in (symbols or DEFAULT_SYMBOLS)]
        self.should_reconnect = True
        self.use_fallback = False
        self.reconnect_attempts = 0
        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()
        logger.info(f"Price stream started for {', '.join(self.subscribed_symbols)}")

    def stop(self):
        """Disconnect, disable reconnection and clear the throttle state."""
        self.should_reconnect = False
        self.reconnect_attempts = 0

        if self._ws is not None and self._loop is not None:
            asyncio.run_coroutine_threadsafe(self._ws.close(), self._loop)
        if self._sse_response is not None:
            self._sse_response.close()

        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

        self.is_connected = False
        self.source = 'none'
        self.update_throttle = {}
        self.last_price = {}
        self.emit('disconnected', {'source': 'manual'})
        logger.info("Price stream stopped")

    def get_connection_status(self) -> Dict[str, Any]:
        return {
            'is_connected': self.is_connected,
            'reconnect_attempts': self.reconnect_attempts,
            'subscribed_symbols': list(self.subscribed_symbols),
            'source': self.source,
        }

    def get_metrics(self) -> Dict[str, Any]:
        return {
            'update_frequency': 1000 / self.throttle_ms,
            'data_points': len(self.subscribed_symbols),
            'reconnect_attempts': self.reconnect_attempts,
            'uptime': self.clock() - self.start_time,
        }
