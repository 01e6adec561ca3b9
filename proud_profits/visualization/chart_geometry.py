"""
Candlestick chart geometry for the signals dashboard.

Turns OHLC candles, alert signals and a live price into pixel coordinates on
a canvas whose y axis grows downwards. Nothing in here draws; the matplotlib
and plotly renderers consume the ChartLayout produced by build_chart_layout.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

import pytz

from proud_profits.errors import ChartGeometryError
from proud_profits.models.market_data import Candle
from proud_profits.models.signal import AlertSignal

# Canvas layout
MARGIN_LEFT = 60
MARGIN_TOP = 40
MARGIN_RIGHT = 40
MARGIN_BOTTOM = 60
TITLE_Y = 25

CANDLE_BODY_RATIO = 0.8
PRICE_PADDING_RATIO = 0.1
FLAT_RANGE_PADDING_RATIO = 0.01
GRID_INTERVALS = 5
DEFAULT_MAX_CANDLES = 52

# Colours
BULLISH_COLOR = '#22c55e'
BEARISH_COLOR = '#ef4444'
GRID_COLOR = '#e5e7eb'
LABEL_COLOR = '#6b7280'
LIVE_PRICE_COLOR = '#fbbf24'
TITLE_COLOR = '#1f2937'
MARKER_TEXT_COLOR = '#ffffff'

# Signal triangle, offsets from the signal price in pixels
MARKER_APEX_OFFSET = 10
MARKER_BASE_OFFSET = 20
MARKER_HALF_WIDTH = 8
BUY_LABEL_OFFSET = 17
SELL_LABEL_OFFSET = -13
LIVE_LABEL_GAP = 10

_MINUTE = timedelta(minutes=1)
_HOUR = timedelta(hours=1)
_DAY = timedelta(days=1)

INTERVAL_DURATIONS = {
    # Binance kline intervals
    '1m': _MINUTE,
    '3m': 3 * _MINUTE,
    '5m': 5 * _MINUTE,
    '15m': 15 * _MINUTE,
    '30m': 30 * _MINUTE,
    '1h': _HOUR,
    '2h': 2 * _HOUR,
    '4h': 4 * _HOUR,
    '6h': 6 * _HOUR,
    '8h': 8 * _HOUR,
    '12h': 12 * _HOUR,
    '1d': _DAY,
    '3d': 3 * _DAY,
    '1w': 7 * _DAY,
    '1M': 30 * _DAY,
    # Signal timeframes
    '30M': 30 * _MINUTE,
    '1H': _HOUR,
    '4H': 4 * _HOUR,
    '12H': 12 * _HOUR,
    '1D': _DAY,
    '1W': 7 * _DAY,
    # Long forms
    '15min': 15 * _MINUTE,
    'daily': _DAY,
    'weekly': 7 * _DAY,
    'monthly': 30 * _DAY,
}


@dataclass(frozen=True)
class ChartArea:
    """Plotting rectangle inside the canvas margins."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @classmethod
    def for_canvas(cls, width: float, height: float) -> 'ChartArea':
        plot_width = width - MARGIN_LEFT - MARGIN_RIGHT
        plot_height = height - MARGIN_TOP - MARGIN_BOTTOM
        if plot_width <= 0 or plot_height <= 0:
            raise ChartGeometryError(
                f"Canvas {width}x{height} is too small for the chart margins"
            )
        return cls(MARGIN_LEFT, MARGIN_TOP, plot_width, plot_height)


@dataclass(frozen=True)
class PriceScale:
    """
    Linear price axis. Prices map onto the plotting area with `padding`
    of headroom above the maximum and below the minimum.
    """
    min_price: float
    max_price: float
    padding: float

    @property
    def price_range(self) -> float:
        return self.max_price - self.min_price

    @property
    def span(self) -> float:
        return self.price_range + 2 * self.padding

    @classmethod
    def from_candles(cls, candles: Sequence[Candle],
                     padding_ratio: float = PRICE_PADDING_RATIO) -> 'PriceScale':
        if not candles:
            raise ChartGeometryError("Cannot build a price scale without candles")

        min_price = min(c.low for c in candles)
        max_price = max(c.high for c in candles)
        price_range = max_price - min_price

        if price_range > 0:
            padding = price_range * padding_ratio
        else:
            padding = abs(max_price) * FLAT_RANGE_PADDING_RATIO or 1.0

        return cls(min_price, max_price, padding)

    def price_to_y(self, price: float, area: ChartArea) -> float:
        return area.top + ((self.max_price + self.padding - price) / self.span) * area.height

    def y_to_price(self, y: float, area: ChartArea) -> float:
        return self.max_price + self.padding - ((y - area.top) / area.height) * self.span

    def contains(self, price: float) -> bool:
        return self.min_price - self.padding <= price <= self.max_price + self.padding


@dataclass(frozen=True)
class GridLine:
    price: float
    y: float
    label: str


@dataclass(frozen=True)
class CandleShape:
    index: int
    x: float
    high_y: float
    low_y: float
    body_top: float
    body_height: float
    width: float
    color: str
    bullish: bool


@dataclass(frozen=True)
class SignalMarker:
    signal: AlertSignal
    index: int
    x: float
    y: float
    vertices: Tuple[Tuple[float, float], ...]
    label: str
    label_y: float
    color: str


@dataclass(frozen=True)
class PriceLine:
    price: float
    y: float
    label: str
    label_x: float = 0.0
    color: str = LIVE_PRICE_COLOR


@dataclass(frozen=True)
class TextLabel:
    text: str
    x: float
    y: float
    align: str
    color: str


@dataclass
class ChartLayout:
    """Everything a renderer needs to paint one chart frame."""
    width: float
    height: float
    area: ChartArea
    scale: PriceScale
    interval: str
    candles: List[Candle] = field(default_factory=list)
    shapes: List[CandleShape] = field(default_factory=list)
    grid: List[GridLine] = field(default_factory=list)
    markers: List[SignalMarker] = field(default_factory=list)
    live_line: Optional[PriceLine] = None
    title: Optional[TextLabel] = None
    updated: Optional[TextLabel] = None

    @property
    def buy_count(self) -> int:
        return sum(1 for m in self.markers if m.signal.is_buy)

    @property
    def sell_count(self) -> int:
        return sum(1 for m in self.markers if not m.signal.is_buy)


def visible_window(candles: Sequence[Candle], max_candles: int = DEFAULT_MAX_CANDLES) -> List[Candle]:
    if max_candles <= 0:
        return list(candles)
    return list(candles[-max_candles:])


def index_to_x(index: int, count: int, area: ChartArea) -> float:
    return area.left + (index + 0.5) * (area.width / count)


def candle_width(count: int, area: ChartArea) -> float:
    return area.width / count * CANDLE_BODY_RATIO


def format_price_label(price: float) -> str:
    return f"${price:.0f}"


def grid_lines(scale: PriceScale, area: ChartArea, intervals: int = GRID_INTERVALS) -> List[GridLine]:
    """Horizontal grid lines from the lowest low up to the highest high."""
    step = scale.price_range / intervals
    lines = []
    for i in range(intervals + 1):
        price = scale.min_price + step * i
        lines.append(GridLine(price, scale.price_to_y(price, area), format_price_label(price)))
    return lines


def candle_shapes(candles: Sequence[Candle], scale: PriceScale, area: ChartArea) -> List[CandleShape]:
    count = len(candles)
    if count == 0:
        return []

    body_width = candle_width(count, area)
    shapes = []
    for index, candle in enumerate(candles):
        open_y = scale.price_to_y(candle.open, area)
        close_y = scale.price_to_y(candle.close, area)
        bullish = candle.is_bullish
        shapes.append(CandleShape(
            index=index,
            x=index_to_x(index, count, area),
            high_y=scale.price_to_y(candle.high, area),
            low_y=scale.price_to_y(candle.low, area),
            body_top=min(open_y, close_y),
            body_height=max(abs(close_y - open_y), 1),
            width=body_width,
            color=BULLISH_COLOR if bullish else BEARISH_COLOR,
            bullish=bullish,
        ))
    return shapes


def interval_to_timedelta(interval: str) -> timedelta:
    """
    Duration of one candle for a Binance interval, a signal timeframe or a
    long-form name. '1M' is one month (30 days); '30M' is thirty minutes.
    """
    if interval in INTERVAL_DURATIONS:
        return INTERVAL_DURATIONS[interval]

    lowered = str(interval).lower()
    if lowered in INTERVAL_DURATIONS:
        return INTERVAL_DURATIONS[lowered]

    raise ChartGeometryError(f"Unknown interval: {interval!r}")


def match_signal_to_candle(signal: AlertSignal, candles: Sequence[Candle],
                           window: timedelta) -> Optional[int]:
    """Index of the first candle within `window` of the signal, or None."""
    for index, candle in enumerate(candles):
        if abs(candle.time - signal.timestamp) < window:
            return index
    return None


def _marker_vertices(x: float, y: float, buy: bool) -> Tuple[Tuple[float, float], ...]:
    direction = 1 if buy else -1
    apex_y = y + direction * MARKER_APEX_OFFSET
    base_y = y + direction * MARKER_BASE_OFFSET
    return ((x, apex_y), (x - MARKER_HALF_WIDTH, base_y), (x + MARKER_HALF_WIDTH, base_y))


def signal_markers(signals: Sequence[AlertSignal], candles: Sequence[Candle],
                   scale: PriceScale, area: ChartArea, window: timedelta) -> List[SignalMarker]:
    count = len(candles)
    markers = []
    for signal in signals:
        index = match_signal_to_candle(signal, candles, window)
        if index is None:
            continue

        x = index_to_x(index, count, area)
        y = scale.price_to_y(signal.price, area)
        buy = signal.is_buy
        markers.append(SignalMarker(
            signal=signal,
            index=index,
            x=x,
            y=y,
            vertices=_marker_vertices(x, y, buy),
            label=signal.signal_type.upper(),
            label_y=y + (BUY_LABEL_OFFSET if buy else SELL_LABEL_OFFSET),
            color=BULLISH_COLOR if buy else BEARISH_COLOR,
        ))
    return markers


def live_price_line(price: Optional[float], scale: PriceScale, area: ChartArea) -> Optional[PriceLine]:
    """Dashed live price line on the candle scale, or None if it can't be placed."""
    if price is None or price <= 0 or not scale.contains(price):
        return None
    return PriceLine(
        price=price,
        y=scale.price_to_y(price, area),
        label=f"Live: ${price:,.2f}",
        label_x=area.right + LIVE_LABEL_GAP,
    )


def format_updated_label(updated_at: datetime, timezone: str = 'UTC') -> str:
    tz = pytz.timezone(timezone)
    if updated_at.tzinfo is None:
        updated_at = pytz.UTC.localize(updated_at)
    return f"Updated: {updated_at.astimezone(tz).strftime('%H:%M:%S')}"


def build_chart_layout(candles: Sequence[Candle],
                       signals: Sequence[AlertSignal] = (),
                       live_price: Optional[float] = None,
                       width: float = 900,
                       height: float = 500,
                       interval: str = '1w',
                       title: Optional[str] = None,
                       updated_at: Optional[datetime] = None,
                       max_candles: int = DEFAULT_MAX_CANDLES,
                       timezone: str = 'UTC') -> ChartLayout:
    """
    Compose the full chart layout for the visible candle window.

    Args:
        candles: Candles sorted ascending by time
        signals: Alert signals to overlay (matched within one interval)
        live_price: Latest price for the dashed live line
        width: Canvas width in pixels
        height: Canvas height in pixels
        interval: Candle interval, used for the signal matching window
        title: Chart title drawn at the top left
        updated_at: Time of the last refresh for the 'Updated:' label
        max_candles: Size of the visible window
        timezone: Timezone name for the 'Updated:' label

    Returns:
        ChartLayout ready for a renderer

    Raises:
        ChartGeometryError: when there are no candles or the canvas is too small
    """
    area = ChartArea.for_canvas(width, height)
    window_candles = visible_window(candles, max_candles)
    scale = PriceScale.from_candles(window_candles)
    match_window = interval_to_timedelta(interval)

    layout = ChartLayout(
        width=width,
        height=height,
        area=area,
        scale=scale,
        interval=interval,
        candles=window_candles,
        shapes=candle_shapes(window_candles, scale, area),
        grid=grid_lines(scale, area),
        markers=signal_markers(signals, window_candles, scale, area, match_window),
        live_line=live_price_line(live_price, scale, area),
    )

    if title:
        layout.title = TextLabel(title, area.left, TITLE_Y, 'left', TITLE_COLOR)
    if updated_at is not None:
        layout.updated = TextLabel(format_updated_label(updated_at, timezone),
                                   area.right, TITLE_Y, 'right', LABEL_COLOR)

    return layout
