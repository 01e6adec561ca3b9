"""
Interactive signal charts for the Dash dashboard.
"""

from typing import List, Optional, Sequence

import plotly.graph_objects as go

from proud_profits.models.market_data import Candle
from proud_profits.models.signal import AlertSignal
from proud_profits.visualization.chart_geometry import (
    BEARISH_COLOR,
    BULLISH_COLOR,
    DEFAULT_MAX_CANDLES,
    GRID_COLOR,
    LIVE_PRICE_COLOR,
    TITLE_COLOR,
    PriceScale,
    interval_to_timedelta,
    match_signal_to_candle,
    visible_window,
)

CHART_COLORS = {
    'background': '#FFFFFF',
    'paper_bg': '#FFFFFF',
    'text': TITLE_COLOR,
    'grid': GRID_COLOR,
    'buy': BULLISH_COLOR,
    'sell': BEARISH_COLOR,
    'live': LIVE_PRICE_COLOR,
}


def _signal_trace(matches: List[tuple], signal_type: str) -> go.Scatter:
    buy = signal_type == 'buy'
    return go.Scatter(
        x=[candle.time for candle, _ in matches],
        y=[signal.price for _, signal in matches],
        mode='markers',
        name='Buy' if buy else 'Sell',
        marker=dict(
            symbol='triangle-up' if buy else 'triangle-down',
            size=14,
            color=CHART_COLORS['buy'] if buy else CHART_COLORS['sell'],
        ),
        text=[f"{signal.signal_type.upper()} ${signal.price:,.2f}" for _, signal in matches],
        hoverinfo='text+x',
    )


def create_signal_figure(candles: Sequence[Candle],
                         signals: Sequence[AlertSignal] = (),
                         live_price: Optional[float] = None,
                         interval: str = '1w',
                         title: Optional[str] = None,
                         max_candles: int = DEFAULT_MAX_CANDLES,
                         height: int = 500) -> go.Figure:
    """
    Build a candlestick figure with buy/sell markers and a live price line.

    Signals are placed on the first visible candle within one interval of
    their timestamp; unmatched signals are left out.

    Args:
        candles: Candles sorted ascending by time
        signals: Alert signals to overlay
        live_price: Latest price, drawn as a dashed line when on scale
        interval: Candle interval
        title: Figure title
        max_candles: Size of the visible window
        height: Figure height in pixels

    Returns:
        Plotly Figure object
    """
    window_candles = visible_window(candles, max_candles)
    if not window_candles:
        return create_empty_figure("No chart data available")

    fig = go.Figure()
    fig.add_trace(go.Candlestick(
        x=[c.time for c in window_candles],
        open=[c.open for c in window_candles],
        high=[c.high for c in window_candles],
        low=[c.low for c in window_candles],
        close=[c.close for c in window_candles],
        name='Price',
        increasing=dict(line=dict(color=CHART_COLORS['buy']), fillcolor=CHART_COLORS['buy']),
        decreasing=dict(line=dict(color=CHART_COLORS['sell']), fillcolor=CHART_COLORS['sell']),
    ))

    window = interval_to_timedelta(interval)
    buys, sells = [], []
    for signal in signals:
        index = match_signal_to_candle(signal, window_candles, window)
        if index is None:
            continue
        (buys if signal.is_buy else sells).append((window_candles[index], signal))

    if buys:
        fig.add_trace(_signal_trace(buys, 'buy'))
    if sells:
        fig.add_trace(_signal_trace(sells, 'sell'))

    scale = PriceScale.from_candles(window_candles)
    if live_price is not None and live_price > 0 and scale.contains(live_price):
        fig.add_hline(
            y=live_price,
            line=dict(color=CHART_COLORS['live'], width=2, dash='dash'),
            annotation_text=f"Live: ${live_price:,.2f}",
            annotation_position='right',
            annotation_font_color=CHART_COLORS['live'],
        )

    fig.update_layout(
        title=title,
        template='plotly_white',
        height=height,
        showlegend=True,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="center", x=0.5),
        xaxis_rangeslider_visible=False,
        yaxis=dict(
            range=[scale.min_price - scale.padding, scale.max_price + scale.padding],
            gridcolor=CHART_COLORS['grid'],
            tickprefix='$',
        ),
        plot_bgcolor=CHART_COLORS['background'],
        paper_bgcolor=CHART_COLORS['paper_bg'],
        font=dict(color=CHART_COLORS['text']),
        margin=dict(l=60, r=40, t=40, b=60),
    )

    return fig


def create_empty_figure(message: str = "No data available") -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        xref='paper',
        yref='paper',
        x=0.5,
        y=0.5,
        showarrow=False,
        font=dict(size=16, color=CHART_COLORS['text']),
    )
    fig.update_layout(
        template='plotly_white',
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
        height=500,
    )
    return fig
