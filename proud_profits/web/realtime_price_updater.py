"""
Real-time Price Updater for the Dashboard

This module provides components and callbacks for showing the live price
of the chart symbol. Prices come from the 'price' job of the data refresher.
"""

from typing import Dict, Optional

from dash import html, dcc, Input, Output, State
import dash_bootstrap_components as dbc

from proud_profits.data.data_refresher import DataRefresher
from proud_profits.models.market_data import PriceTick
from proud_profits.utils.logging_utils import get_component_logger

logger = get_component_logger("web.realtime_price_updater")


def price_to_store(tick: Optional[PriceTick], previous: Optional[Dict] = None) -> Dict:
    """
    Convert a price tick into the JSON-serializable store payload.

    The change is measured against the previously stored price.
    """
    if tick is None:
        return previous or {}

    prev_price = (previous or {}).get('price') or 0
    return {
        'symbol': tick.symbol,
        'price': tick.price,
        'timestamp': tick.timestamp.isoformat(),
        'change_24h': tick.change_percent_24h,
        'change': tick.price - prev_price if prev_price else 0,
        'is_fallback': tick.is_fallback,
    }


def _tick_change(change) -> list:
    """Movement since the previous tick, omitted when there is none"""
    if not change:
        return []
    arrow = "\u25B2" if change > 0 else "\u25BC"
    color = "success" if change > 0 else "danger"
    return [html.Span(f"{arrow} {change:+,.2f}", className=f"price-tick-change text-{color} me-2")]


def create_live_price_display(price_data: Optional[Dict]) -> html.Div:
    if not price_data or not price_data.get('price'):
        return html.Div("No real-time data available", className="text-muted")

    price = price_data['price']
    change_24h = price_data.get('change_24h', 0)
    color = "success" if change_24h >= 0 else "danger"

    badges = [dbc.Badge("LIVE", color="success", className="me-1")]
    if price_data.get('is_fallback'):
        badges.append(dbc.Badge("FALLBACK", color="warning"))

    return html.Div([
        html.H5([
            f"{price_data.get('symbol', '')} ",
            html.Span(f"${price:,.2f}", className=f"text-{color}"),
        ]),
        html.Div([
            html.Span(f"{change_24h:+.2f}% (24h)", className=f"text-{color} me-2"),
            *_tick_change(price_data.get('change')),
            html.Small(f"Updated: {price_data.get('timestamp', 'N/A')}", className="text-muted")
        ]),
        html.Div(badges, className="mt-1")
    ], className="real-time-price-display")


def register_realtime_price_callbacks(app, refresher: DataRefresher):
    """
    Register callbacks for real-time price updates.

    Args:
        app: Dash application instance
        refresher: Data refresher holding the 'price' job
    """
    logger.info("Registering real-time price update callbacks")

    @app.callback(
        Output("realtime-price-store", "data"),
        Input("realtime-price-interval", "n_intervals"),
        State("realtime-price-store", "data"),
    )
    def update_price(n_intervals, current_data):
        """Copy the refresher's latest price into the store"""
        tick = refresher.get_data('price')
        return price_to_store(tick, current_data)

    @app.callback(
        Output("realtime-price-display", "children"),
        Input("realtime-price-store", "data"),
    )
    def update_price_display(price_data):
        return create_live_price_display(price_data)


def create_realtime_price_components(refresh_interval_ms: int = 5000) -> Dict:
    """
    Create components for real-time price updates.

    Returns:
        Dict of components for real-time price updates
    """
    return {
        "interval": dcc.Interval(
            id="realtime-price-interval",
            interval=refresh_interval_ms,
            n_intervals=0,
        ),
        "price_store": dcc.Store(
            id="realtime-price-store",
            storage_type="memory"
        ),
        "display": html.Div(
            id="realtime-price-display",
            className="mt-2"
        ),
    }


def get_realtime_price_stylesheet() -> str:
    """
    Get CSS styles for real-time price components.

    Returns:
        CSS styles as string
    """
    return """
    .real-time-price-display {
        padding: 8px;
        border-radius: 4px;
        background-color: rgba(0, 0, 0, 0.05);
        margin-top: 10px;
    }

    .notification-unread {
        border-left: 3px solid #fbbf24;
    }
    """
