"""
Signals dashboard: weekly candlestick chart with buy/sell overlays, live
price, subscription plans and notifications.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional

import dash
from dash import dcc, html, Input, Output, State, ALL
import dash_bootstrap_components as dbc

from proud_profits.data.api_client import ApiClient
from proud_profits.data.data_refresher import DataRefresher, create_chart_refresher, get_data_refresher
from proud_profits.data.ohlc_frame import summarize
from proud_profits.errors import ProudProfitsError
from proud_profits.models.notification import NotificationPreferences
from proud_profits.models.signal import AlertSignal
from proud_profits.notifications.notification_center import NotificationCenter, signal_to_notification
from proud_profits.storage.ohlc_cache import CachedApiClient
from proud_profits.subscriptions.plans import SubscriptionManager
from proud_profits.utils.config import get_config_value
from proud_profits.utils.logging_utils import get_component_logger, log_exception
from proud_profits.visualization.plotly_charts import create_empty_figure, create_signal_figure
from proud_profits.web.panels import (
    create_connection_badge,
    create_contextual_alerts,
    create_data_summary_card,
    create_notifications_panel,
    create_pricing_panel,
    create_recent_signals_list,
    create_stats_row,
)
from proud_profits.web.realtime_price_updater import (
    create_realtime_price_components,
    get_realtime_price_stylesheet,
    register_realtime_price_callbacks,
)

logger = get_component_logger("web.dashboard")


def chart_title(symbol: str, interval: str) -> str:
    return f"{symbol} {interval.upper()} Chart with Trading Signals"


def build_chart_outputs(refresher: DataRefresher, config: Dict[str, Any]):
    """
    Build everything the chart callback renders from the refresher state.

    A failed refresh keeps the last good data, so the figure stays up and a
    warning is shown instead; an error alert is shown only when no data
    has ever been loaded.

    Returns:
        (figure, alert, stats_row, recent_signals, connection_badge, summary_card)
    """
    symbol = get_config_value(config, 'chart.symbol', 'BTCUSDT')
    interval = get_config_value(config, 'chart.interval', '1w')
    max_candles = get_config_value(config, 'chart.max_candles', 52)
    height = get_config_value(config, 'chart.height', 500)

    response = refresher.get_data('ohlc')
    signals = refresher.get_data('signals') or []
    price = refresher.get_data('price')

    alert = None
    if 'ohlc' in refresher.jobs:
        last_error = refresher.job_status('ohlc')['last_error']
        if last_error:
            if response is None:
                alert = dbc.Alert(f"Unable to load chart data: {last_error}", color="danger")
            else:
                alert = dbc.Alert(f"Showing last loaded data, refresh failed: {last_error}",
                                  color="warning", dismissable=True)

    if response is None or not response.data:
        figure = create_empty_figure("Chart data unavailable" if alert is not None else "Loading chart data...")
        summary = None
    else:
        try:
            figure = create_signal_figure(
                response.data,
                signals,
                live_price=price.price if price is not None else None,
                interval=interval,
                title=chart_title(symbol, interval),
                max_candles=max_candles,
                height=height,
            )
        except ValueError as e:
            log_exception(logger, e, "Error building chart:")
            figure = create_empty_figure("Unable to draw chart")
        summary = summarize(response)

    return (
        figure,
        alert,
        create_stats_row(response, signals, interval),
        create_recent_signals_list(signals),
        create_connection_badge(refresher.connection_status(), price),
        create_data_summary_card(summary),
    )


def make_signal_notifier(center: NotificationCenter) -> Callable[[Iterable[AlertSignal]], None]:
    """
    Refresher callback that turns newly seen signals into notifications.

    The first batch only seeds the seen set.
    """
    seen = set()
    state = {'seeded': False}

    def notify(signals):
        for signal in signals or []:
            if signal.id in seen:
                continue
            seen.add(signal.id)
            if state['seeded']:
                center.add(signal_to_notification(signal))
        state['seeded'] = True

    return notify


def load_notification_preferences(client) -> NotificationPreferences:
    try:
        return client.get_notification_preferences()
    except ProudProfitsError as e:
        logger.warning(f"Using default notification preferences: {e}")
        return NotificationPreferences()


def dismiss_closed_alerts(center: NotificationCenter, alert_ids, open_flags) -> List[str]:
    """Drop the contextual alerts whose close button was clicked; returns their ids."""
    dismissed = []
    for alert_id, is_open in zip(alert_ids or [], open_flags or []):
        if not is_open and center.dismiss_alert(alert_id['index']):
            dismissed.append(alert_id['index'])
    return dismissed


def load_plans(client, manager: SubscriptionManager):
    try:
        return manager.plans_from_api(client.get_subscription_plans())
    except ProudProfitsError as e:
        logger.warning(f"Using built-in subscription plans: {e}")
        return manager.plans


def create_layout(config: Dict[str, Any], plans, current_tier: str) -> html.Div:
    refresh = config.get('refresh', {})
    realtime_components = create_realtime_price_components(refresh.get('price', 5) * 1000)
    symbol = get_config_value(config, 'chart.symbol', 'BTCUSDT')

    return html.Div([
        # Refetch timers
        dcc.Interval(id="ohlc-interval", interval=refresh.get('ohlc', 30) * 1000, n_intervals=0),
        dcc.Interval(id="signals-interval", interval=refresh.get('signals', 15) * 1000, n_intervals=0),
        dcc.Interval(id="notifications-interval", interval=refresh.get('notifications', 30) * 1000, n_intervals=0),
        realtime_components["interval"],
        realtime_components["price_store"],

        # Header
        dbc.Navbar(
            dbc.Container([
                html.H3("Proud Profits Signals", className="text-white mb-0"),
                html.Div(id="connection-badge", className="text-white"),
            ]),
            color="dark",
            dark=True,
            className="mb-3"
        ),

        dbc.Container([
            dbc.Row([
                dbc.Col([
                    dbc.Card([
                        dbc.CardHeader(html.Div([
                            html.H5(f"{symbol} Signal Chart", className="mb-0"),
                            dbc.Button("Refresh", id="refresh-button", color="primary", size="sm",
                                       className="ms-auto"),
                        ], className="d-flex align-items-center")),
                        dbc.CardBody([
                            html.Div(id="chart-alert"),
                            dbc.Spinner(dcc.Graph(id="signal-chart", figure=create_empty_figure("Loading chart data..."))),
                            realtime_components["display"],
                        ])
                    ]),
                    html.Div(id="stats-row", className="mt-3"),
                ], md=8),
                dbc.Col([
                    html.Div(id="data-summary", className="mb-3"),
                    html.Div(id="recent-signals"),
                ], md=4),
            ]),

            html.Hr(),

            dbc.Row([
                dbc.Col([
                    dbc.RadioItems(
                        id="billing-toggle",
                        options=[
                            {"label": "Monthly", "value": "monthly"},
                            {"label": "Yearly", "value": "yearly"},
                        ],
                        value="monthly",
                        inline=True,
                        className="mb-2"
                    ),
                    html.Div(id="pricing-panel", children=create_pricing_panel(plans, current_tier)),
                ], md=8),
                dbc.Col([
                    html.Div([
                        dbc.Button("Mark all read", id="mark-all-read-button", color="link", size="sm"),
                    ], className="text-end"),
                    html.Div(id="notifications-alert"),
                    html.Div(id="contextual-alerts"),
                    dcc.Store(id="dismissed-alerts-store", data=[]),
                    html.Div(id="notifications-panel"),
                ], md=4),
            ]),
        ], fluid=True),
    ])


def register_callbacks(app, refresher: DataRefresher, client, center: NotificationCenter,
                       plans, current_tier: str, config: Dict[str, Any]):
    """
    Register the dashboard callbacks.

    Args:
        app: Dash application instance
        refresher: Data refresher with the ohlc/signals/price jobs
        client: API client for notifications
        center: Notification centre
        plans: Subscription plans to display
        current_tier: The user's subscription tier
        config: Configuration dictionary
    """
    register_realtime_price_callbacks(app, refresher)

    @app.callback(
        Output("signal-chart", "figure"),
        Output("chart-alert", "children"),
        Output("stats-row", "children"),
        Output("recent-signals", "children"),
        Output("connection-badge", "children"),
        Output("data-summary", "children"),
        Input("ohlc-interval", "n_intervals"),
        Input("signals-interval", "n_intervals"),
        Input("realtime-price-interval", "n_intervals"),
        Input("refresh-button", "n_clicks"),
    )
    def update_chart(ohlc_ticks, signal_ticks, price_ticks, refresh_clicks):
        ctx = dash.callback_context
        if ctx.triggered and ctx.triggered[0]['prop_id'].startswith("refresh-button"):
            logger.info("Manual refresh requested")
            refresher.refresh_now()
        return build_chart_outputs(refresher, config)

    @app.callback(
        Output("notifications-panel", "children"),
        Output("notifications-alert", "children"),
        Output("contextual-alerts", "children"),
        Input("notifications-interval", "n_intervals"),
        Input("mark-all-read-button", "n_clicks"),
    )
    def update_notifications(n_intervals, mark_clicks):
        ctx = dash.callback_context
        alert = None
        try:
            if ctx.triggered and ctx.triggered[0]['prop_id'].startswith("mark-all-read-button"):
                client.mark_all_notifications_read()
                center.mark_all_read()
            else:
                center.merge(client.get_notifications())
        except ProudProfitsError as e:
            log_exception(logger, e, "Error updating notifications:")
            alert = dbc.Alert(f"Notifications unavailable: {e}", color="warning", dismissable=True)

        return create_notifications_panel(center), alert, create_contextual_alerts(center)

    @app.callback(
        Output("dismissed-alerts-store", "data"),
        Input({'type': 'contextual-alert', 'index': ALL}, "is_open"),
        State({'type': 'contextual-alert', 'index': ALL}, "id"),
        State("dismissed-alerts-store", "data"),
        prevent_initial_call=True
    )
    def update_dismissed_alerts(open_flags, alert_ids, dismissed):
        return (dismissed or []) + dismiss_closed_alerts(center, alert_ids, open_flags)

    @app.callback(
        Output("pricing-panel", "children"),
        Input("billing-toggle", "value"),
        prevent_initial_call=True
    )
    def update_pricing(billing):
        return create_pricing_panel(plans, current_tier, billing or 'monthly')


def create_app(config: Dict[str, Any], client=None, refresher: Optional[DataRefresher] = None,
               start_refresher: bool = True) -> dash.Dash:
    """
    Create the Dash application.

    Args:
        config: Configuration dictionary
        client: API client (defaults to a cached ApiClient built from config)
        refresher: Data refresher (defaults to the global instance)
        start_refresher: Start the background refresh thread

    Returns:
        Dash application instance
    """
    if client is None:
        client = CachedApiClient.from_config(ApiClient.from_config(config), config)

    refresher = refresher or get_data_refresher(config)
    create_chart_refresher(
        client,
        symbol=get_config_value(config, 'chart.symbol', 'BTCUSDT'),
        interval=get_config_value(config, 'chart.interval', '1w'),
        limit=get_config_value(config, 'chart.limit', 104),
        timeframe=get_config_value(config, 'chart.signal_timeframe', '1W'),
        intervals=config.get('refresh'),
        public=get_config_value(config, 'chart.public', True),
        refresher=refresher,
    )

    center = NotificationCenter(load_notification_preferences(client))
    refresher.subscribe('signals', make_signal_notifier(center))

    current_tier = get_config_value(config, 'subscription.tier', 'free')
    plans = load_plans(client, SubscriptionManager())

    app = dash.Dash(
        __name__,
        external_stylesheets=[dbc.themes.FLATLY],
        suppress_callback_exceptions=True,
    )
    app.title = "Proud Profits Signals"
    app.index_string = app.index_string.replace(
        '</head>',
        f'<style>{get_realtime_price_stylesheet()}</style></head>'
    )
    app.layout = create_layout(config, plans, current_tier)

    register_callbacks(app, refresher, client, center, plans, current_tier, config)

    if start_refresher:
        refresher.start()

    return app


def run_app(config: Dict[str, Any], debug: Optional[bool] = None, port: Optional[int] = None,
            host: Optional[str] = None):
    """
    Run the Dash application.

    Args:
        config: Configuration dictionary
        debug: Whether to run in debug mode (defaults to web.debug)
        port: Port to run the server on (defaults to web.port)
        host: Host to run the server on (defaults to web.host)
    """
    web = config.get('web', {})
    host = host or web.get('host', '127.0.0.1')
    port = port or web.get('port', 8050)
    debug = web.get('debug', False) if debug is None else debug

    app = create_app(config)
    logger.info(f"Starting dashboard on http://{host}:{port}")
    app.run(debug=debug, port=port, host=host)
