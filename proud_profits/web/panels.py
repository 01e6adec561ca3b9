"""Dashboard panel builders"""
from typing import Any, Dict, List, Optional, Sequence

from dash import html
import dash_bootstrap_components as dbc

from proud_profits.models.market_data import OHLCResponse, PriceTick
from proud_profits.models.signal import AlertSignal
from proud_profits.models.subscription import SubscriptionPlan
from proud_profits.notifications.notification_center import NotificationCenter
from proud_profits.subscriptions.plans import BADGE_COLORS, PLAN_HEX_COLORS, SubscriptionManager

STATUS_BADGES = {
    'connected': ("Live", "success"),
    'connecting': ("Connecting", "warning"),
    'error': ("Connection Error", "danger"),
}

PRIORITY_COLORS = {
    'low': 'secondary',
    'medium': 'info',
    'high': 'warning',
    'critical': 'danger',
}


def _stat_card(title: str, value: str, class_name: str = "") -> dbc.Col:
    return dbc.Col([
        dbc.Card([
            dbc.CardBody([
                html.H6(title, className="card-title text-muted"),
                html.H3(value, className=f"card-text text-center {class_name}".strip())
            ])
        ])
    ], width=4)


def create_stats_row(response: Optional[OHLCResponse],
                     signals: Sequence[AlertSignal],
                     interval: str) -> html.Div:
    """
    Create the summary row under the chart.

    Args:
        response: Latest OHLC response (None while loading)
        signals: Alert signals for the chart symbol
        interval: Candle interval shown on the chart

    Returns:
        Dash Div with candle count, signal count and timeframe cards
    """
    candles = response.count if response is not None else 0
    buys = sum(1 for s in signals if s.is_buy)
    sells = len(signals) - buys

    return html.Div([
        dbc.Row([
            _stat_card("Candles", f"{candles}"),
            _stat_card("Signals", f"{len(signals)} ({buys} buy / {sells} sell)"),
            _stat_card("Timeframe", interval.upper()),
        ], className="g-2")
    ], id="stats-row-content")


def create_recent_signals_list(signals: Sequence[AlertSignal], limit: int = 10) -> html.Div:
    """List the most recent signals, newest first."""
    if not signals:
        return html.Div([
            html.H5("Recent Signals"),
            html.P("No signals yet", className="text-muted")
        ])

    recent = sorted(signals, key=lambda s: s.timestamp, reverse=True)[:limit]
    items = []
    for signal in recent:
        color = "success" if signal.is_buy else "danger"
        items.append(dbc.ListGroupItem([
            dbc.Badge(signal.signal_type.upper(), color=color, className="me-2"),
            html.Strong(signal.ticker, className="me-2"),
            html.Span(f"${signal.price:,.2f}", className="me-2"),
            html.Small(signal.timestamp.strftime('%Y-%m-%d %H:%M'), className="text-muted"),
        ]))

    return html.Div([
        html.H5("Recent Signals"),
        dbc.ListGroup(items, flush=True)
    ])


def create_connection_badge(status: str, price: Optional[PriceTick] = None) -> html.Div:
    label, color = STATUS_BADGES.get(status, (status.title(), "secondary"))
    children = [dbc.Badge(label, color=color, className="me-2", id="connection-status-badge")]

    if price is not None:
        change_color = "text-success" if price.change_percent_24h >= 0 else "text-danger"
        children.extend([
            html.Span(f"{price.symbol} ${price.price:,.2f}", className="fw-bold me-2"),
            html.Small(f"{price.change_percent_24h:+.2f}%", className=change_color),
        ])

    return html.Div(children, className="d-flex align-items-center")


def _plan_card(plan: SubscriptionPlan, current_tier: Optional[str], billing: str,
               manager: SubscriptionManager) -> dbc.Col:
    yearly = billing == 'yearly'
    price = plan.yearly_price if yearly else plan.monthly_price
    period = "/year" if yearly else "/month"
    is_current = plan.tier == current_tier

    header = [html.H5(plan.name, className="mb-0")]
    if plan.is_popular:
        header.append(dbc.Badge("Most Popular", color="warning", className="ms-2"))

    body = [
        html.H3([f"${price:,.2f}", html.Small(period, className="text-muted")]),
        html.P(plan.description, className="text-muted"),
        html.Ul([
            html.Li("Unlimited tickers" if plan.features.max_tickers == -1
                    else f"Up to {plan.features.max_tickers} tickers"),
            html.Li("Unlimited signals" if plan.features.max_signals_per_day == -1
                    else f"{plan.features.max_signals_per_day} signals per day"),
        ]),
    ]

    savings = manager.yearly_savings_percent(plan.tier)
    if yearly and savings > 0:
        body.append(html.Small(f"Save {savings}% with yearly billing", className="text-success d-block mb-2"))

    if is_current:
        body.append(dbc.Button("Current Plan", color="secondary", disabled=True, className="w-100"))
    else:
        body.append(dbc.Button("Choose Plan", color=BADGE_COLORS.get(plan.color, "primary"), className="w-100"))

    return dbc.Col([
        dbc.Card([
            dbc.CardHeader(header, className="d-flex align-items-center"),
            dbc.CardBody(body)
        ],
            className="h-100 border-warning" if plan.is_popular else "h-100",
            style={"borderTop": f"4px solid {PLAN_HEX_COLORS.get(plan.color, '#64748b')}"}
        )
    ], md=6, lg=True, className="mb-3")


def create_pricing_panel(plans: Sequence[SubscriptionPlan],
                         current_tier: Optional[str] = 'free',
                         billing: str = 'monthly') -> html.Div:
    """
    Create the plan comparison panel.

    Args:
        plans: Plans in tier order
        current_tier: The user's tier, marked as the current plan
        billing: 'monthly' or 'yearly'

    Returns:
        Dash Div with one card per plan
    """
    manager = SubscriptionManager(plans)
    return html.Div([
        html.H5("Subscription Plans"),
        dbc.Row([_plan_card(plan, current_tier, billing, manager) for plan in plans])
    ])


def create_notifications_panel(center: NotificationCenter, limit: int = 20) -> html.Div:
    unread = center.unread_count
    header = html.H5([
        "Notifications",
        dbc.Badge(f"{unread}", color="danger" if unread else "secondary", className="ms-2", pill=True),
    ])

    notifications = center.visible()[:limit]
    if not notifications:
        return html.Div([header, html.P("No notifications", className="text-muted")])

    items = []
    for notification in notifications:
        items.append(dbc.ListGroupItem([
            html.Div([
                html.Strong(notification.title, className="me-2"),
                dbc.Badge(notification.priority, color=PRIORITY_COLORS.get(notification.priority, "secondary")),
            ]),
            html.Small(notification.message, className="d-block"),
            html.Small(notification.timestamp.strftime('%Y-%m-%d %H:%M'), className="text-muted"),
        ], className="notification-read" if notification.is_read else "notification-unread fw-bold"))

    return html.Div([header, dbc.ListGroup(items, flush=True)])


def create_contextual_alerts(center: NotificationCenter) -> List[dbc.Alert]:
    """Dismissable alerts for the most recent live notifications."""
    alerts = []
    for notification in list(center.contextual_alerts):
        title = [html.Strong(notification.title, className="me-2")]
        if center.should_play_sound(notification):
            title.append(html.Span("\U0001F514", className="contextual-alert-sound", title="Sound alert"))
        alerts.append(dbc.Alert(
            [html.Div(title), html.Small(notification.message)],
            id={'type': 'contextual-alert', 'index': notification.id},
            color=PRIORITY_COLORS.get(notification.priority, "secondary"),
            dismissable=True,
            is_open=True,
            className="mb-2",
        ))
    return alerts


def create_data_summary_card(summary: Optional[Dict[str, Any]]) -> html.Div:
    """Card with the OHLC data summary (source, span, high/low, change)."""
    if not summary or not summary.get('candles'):
        return html.Div([
            dbc.Card(dbc.CardBody(html.P("No chart data available", className="text-muted")))
        ])

    def fmt_price(value):
        return "N/A" if value is None else f"${value:,.2f}"

    change = summary.get('change_percent')
    rows: List[html.Tr] = [
        html.Tr([html.Td("Symbol"), html.Td(summary['symbol'])]),
        html.Tr([html.Td("Candles"), html.Td(f"{summary['candles']} ({summary['interval']})")]),
        html.Tr([html.Td("Source"), html.Td(f"{summary['source']} / {summary['data_type']}")]),
        html.Tr([html.Td("From"), html.Td(summary['first_time'])]),
        html.Tr([html.Td("To"), html.Td(summary['last_time'])]),
        html.Tr([html.Td("Period High"), html.Td(fmt_price(summary['period_high']))]),
        html.Tr([html.Td("Period Low"), html.Td(fmt_price(summary['period_low']))]),
        html.Tr([html.Td("Change"), html.Td("N/A" if change is None else f"{change:+.2f}%",
                                            className="text-success" if (change or 0) >= 0 else "text-danger")]),
    ]

    return html.Div([
        dbc.Card([
            dbc.CardHeader("Data Summary"),
            dbc.CardBody(dbc.Table(html.Tbody(rows), bordered=False, size="sm"))
        ])
    ])
