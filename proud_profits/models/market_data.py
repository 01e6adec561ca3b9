from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Union
from datetime import datetime

import pytz

# Epoch values above this are treated as milliseconds
_EPOCH_MS_THRESHOLD = 1e11


def parse_timestamp(value: Union[str, int, float, datetime]) -> datetime:
    """
    Convert an API timestamp into a timezone-aware UTC datetime.

    Accepts ISO-8601 strings (with or without a trailing 'Z'), epoch seconds,
    epoch milliseconds and datetime objects. Naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000.0 if value > _EPOCH_MS_THRESHOLD else float(value)
        dt = datetime.fromtimestamp(seconds, tz=pytz.UTC)
    elif isinstance(value, str):
        text = value.strip()
        if text.lstrip('-').replace('.', '', 1).isdigit():
            return parse_timestamp(float(text))
        dt = datetime.fromisoformat(text.replace('Z', '+00:00'))
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == '':
        return default
    return float(value)


@dataclass
class Candle:
    """
    One OHLC record as served by the OHLC endpoint.
    """
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    source: Optional[str] = None

    @property
    def is_bullish(self) -> bool:
        # A flat candle is painted as bearish
        return self.close > self.open

    def to_dict(self) -> Dict:
        result = {
            'time': self.time.isoformat(),
            'open': self.open,
            'high': self.high,
            'low': self.low,
            'close': self.close,
            'volume': self.volume,
        }
        if self.source is not None:
            result['source'] = self.source
        return result

    @classmethod
    def from_dict(cls, data: Dict) -> 'Candle':
        """Create from an API dictionary; numeric fields may arrive as strings."""
        return cls(
            time=parse_timestamp(data['time']),
            open=_to_float(data['open']),
            high=_to_float(data['high']),
            low=_to_float(data['low']),
            close=_to_float(data['close']),
            volume=_to_float(data.get('volume')),
            source=data.get('source'),
        )


@dataclass
class OHLCResponse:
    """
    Envelope returned by /api/ohlc and /api/public/ohlc.
    """
    symbol: str
    interval: str
    data: List[Candle] = field(default_factory=list)
    count: int = 0
    cached: bool = False
    external: bool = False

    def __post_init__(self):
        if not self.count:
            self.count = len(self.data)

    @property
    def latest(self) -> Optional[Candle]:
        return self.data[-1] if self.data else None

    def to_dict(self) -> Dict:
        return {
            'symbol': self.symbol,
            'interval': self.interval,
            'count': self.count,
            'cached': self.cached,
            'external': self.external,
            'data': [candle.to_dict() for candle in self.data],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'OHLCResponse':
        candles = sorted(
            (Candle.from_dict(item) for item in data.get('data') or []),
            key=lambda c: c.time
        )
        return cls(
            symbol=data.get('symbol', ''),
            interval=data.get('interval', ''),
            data=candles,
            count=int(data.get('count') or len(candles)),
            cached=bool(data.get('cached', False)),
            external=bool(data.get('external', False)),
        )


@dataclass
class PriceTick:
    """
    Latest price snapshot for a symbol (REST price endpoint or ticker stream).
    """
    symbol: str
    price: float
    change_24h: float = 0.0
    change_percent_24h: float = 0.0
    volume_24h: float = 0.0
    high_24h: float = 0.0
    low_24h: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(pytz.UTC))
    is_fallback: bool = False

    def to_dict(self) -> Dict:
        return {
            'symbol': self.symbol,
            'price': self.price,
            'change24h': self.change_24h,
            'changePercent24h': self.change_percent_24h,
            'volume24h': self.volume_24h,
            'high24h': self.high_24h,
            'low24h': self.low_24h,
            'timestamp': self.timestamp.isoformat(),
            'isFallback': self.is_fallback,
        }

    @classmethod
    def from_dict(cls, data: Dict, symbol: Optional[str] = None) -> 'PriceTick':
        timestamp = data.get('lastUpdate') or data.get('timestamp')
        return cls(
            symbol=data.get('symbol') or symbol or '',
            price=_to_float(data['price']),
            change_24h=_to_float(data.get('change24h')),
            change_percent_24h=_to_float(data.get('changePercent24h', data.get('change24h'))),
            volume_24h=_to_float(data.get('volume24h')),
            high_24h=_to_float(data.get('high24h')),
            low_24h=_to_float(data.get('low24h')),
            timestamp=parse_timestamp(timestamp) if timestamp else datetime.now(pytz.UTC),
            is_fallback=bool(data.get('isFallback', False)),
        )


@dataclass
class KlineUpdate:
    """A closed kline received from the live stream."""
    symbol: str
    open_time: datetime
    close_time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float
    interval: str = '1m'

    def to_candle(self) -> Candle:
        return Candle(
            time=self.open_time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
            source='binance',
        )
