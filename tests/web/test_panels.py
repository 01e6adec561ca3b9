from dash import html
import dash_bootstrap_components as dbc

from proud_profits.data.ohlc_frame import summarize
from proud_profits.models.notification import NotificationPreferences
from proud_profits.notifications.notification_center import NotificationCenter
from proud_profits.subscriptions.plans import SUBSCRIPTION_PLANS
from proud_profits.web.panels import (
    create_connection_badge,
    create_contextual_alerts,
    create_data_summary_card,
    create_notifications_panel,
    create_pricing_panel,
    create_recent_signals_list,
    create_stats_row,
)


def walk(component):
    """Yield a component and all of its descendants"""
    yield component
    children = getattr(component, 'children', None)
    if children is None or isinstance(children, (str, int, float)):
        return
    if not isinstance(children, (list, tuple)):
        children = [children]
    for child in children:
        yield from walk(child)


def texts(component):
    return [node for node in walk(component) if isinstance(node, str)]


def find(component, kind):
    return [node for node in walk(component) if isinstance(node, kind)]


def test_stats_row(sample_response, sample_signals):
    row = create_stats_row(sample_response, sample_signals, '1w')
    assert isinstance(row, html.Div)
    assert len(find(row, dbc.Card)) == 3
    assert '60' in texts(row)
    assert '3 (2 buy / 1 sell)' in texts(row)
    assert '1W' in texts(row)


def test_stats_row_while_loading():
    row = create_stats_row(None, [], '1w')
    assert '0' in texts(row)


def test_recent_signals_list(sample_signals):
    panel = create_recent_signals_list(sample_signals, limit=2)
    items = find(panel, dbc.ListGroupItem)
    assert len(items) == 2
    # Newest first
    assert 'SELL' in texts(items[0])


def test_recent_signals_empty():
    assert 'No signals yet' in texts(create_recent_signals_list([]))


def test_connection_badge(sample_price):
    badge = create_connection_badge('connected', sample_price)
    assert find(badge, dbc.Badge)[0].color == 'success'
    assert '+1.25%' in texts(badge)

    assert find(create_connection_badge('error'), dbc.Badge)[0].color == 'danger'
    assert find(create_connection_badge('paused'), dbc.Badge)[0].children == 'Paused'


def test_pricing_panel_monthly():
    panel = create_pricing_panel(SUBSCRIPTION_PLANS, current_tier='basic')
    assert len(find(panel, dbc.Card)) == 5
    assert 'Most Popular' in texts(panel)

    buttons = find(panel, dbc.Button)
    current = [b for b in buttons if b.children == 'Current Plan']
    assert len(current) == 1
    assert current[0].disabled
    assert '$29.99' in texts(panel)
    assert not [t for t in texts(panel) if t.startswith('Save ')]


def test_pricing_panel_yearly():
    panel = create_pricing_panel(SUBSCRIPTION_PLANS, current_tier='free', billing='yearly')
    assert '/year' in texts(panel)
    assert 'Save 17% with yearly billing' in texts(panel)
    assert 'Unlimited tickers' in texts(panel)


def test_notifications_panel(sample_notifications):
    center = NotificationCenter()
    center.ingest(sample_notifications)
    panel = create_notifications_panel(center)

    items = find(panel, dbc.ListGroupItem)
    assert len(items) == 3
    assert items[0].className == 'notification-read'
    assert items[1].className == 'notification-unread fw-bold'
    assert find(panel, dbc.Badge)[0].children == '2'


def test_notifications_panel_empty():
    assert 'No notifications' in texts(create_notifications_panel(NotificationCenter()))


def test_data_summary_card(sample_response):
    card = create_data_summary_card(summarize(sample_response))
    assert 'Data Summary' in texts(card)
    assert 'live / external' in texts(card)
    assert 'No chart data available' in texts(create_data_summary_card(None))


def test_contextual_alerts(sample_notifications):
    center = NotificationCenter()
    for notification in sample_notifications:
        center.add(notification)

    alerts = create_contextual_alerts(center)
    assert [a.id['index'] for a in alerts] == ['n3', 'n2', 'n1']
    assert all(a.dismissable and a.is_open for a in alerts)
    assert [a.color for a in alerts] == ['info', 'secondary', 'warning']
    # Low priority notifications never play a sound
    sounds = [bool(find(a, html.Span)) for a in alerts]
    assert sounds == [True, False, True]

    center.dismiss_alert('n2')
    assert [a.id['index'] for a in create_contextual_alerts(center)] == ['n3', 'n1']


def test_contextual_alerts_without_sound(sample_notifications):
    center = NotificationCenter(NotificationPreferences(enable_sound=False))
    center.add(sample_notifications[0])
    assert not find(create_contextual_alerts(center)[0], html.Span)
    assert create_contextual_alerts(NotificationCenter()) == []
