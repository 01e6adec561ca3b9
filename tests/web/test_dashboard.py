import dash
from dash import dcc
import dash_bootstrap_components as dbc
import plotly.graph_objects as go

from proud_profits.data.data_refresher import DataRefresher, create_chart_refresher
from proud_profits.errors import ApiError
from proud_profits.models.notification import NotificationPreferences
from proud_profits.notifications.notification_center import NotificationCenter, signal_to_notification
from proud_profits.subscriptions.plans import SubscriptionManager
from proud_profits.web.dashboard import (
    build_chart_outputs,
    chart_title,
    create_app,
    dismiss_closed_alerts,
    load_notification_preferences,
    load_plans,
    make_signal_notifier,
)


def component_ids(component):
    ids = set()
    stack = [component]
    while stack:
        node = stack.pop()
        node_id = getattr(node, 'id', None)
        if node_id:
            ids.add(node_id)
        children = getattr(node, 'children', None)
        if isinstance(children, (list, tuple)):
            stack.extend(children)
        elif children is not None and not isinstance(children, (str, int, float)):
            stack.append(children)
    return ids


def test_chart_title():
    assert chart_title('BTCUSDT', '1w') == 'BTCUSDT 1W Chart with Trading Signals'


def test_create_app(fake_client, test_config):
    app = create_app(test_config, client=fake_client, refresher=DataRefresher(), start_refresher=False)
    assert isinstance(app, dash.Dash)
    assert app.title == "Proud Profits Signals"

    ids = component_ids(app.layout)
    for expected in ('ohlc-interval', 'signals-interval', 'notifications-interval',
                     'realtime-price-interval', 'realtime-price-store', 'connection-badge',
                     'refresh-button', 'chart-alert', 'signal-chart', 'stats-row', 'data-summary',
                     'recent-signals', 'billing-toggle', 'pricing-panel', 'mark-all-read-button',
                     'notifications-panel', 'contextual-alerts', 'dismissed-alerts-store'):
        assert expected in ids


def test_build_chart_outputs(fake_client, test_config):
    refresher = create_chart_refresher(fake_client, refresher=DataRefresher())
    refresher.refresh_now()

    figure, alert, stats, recent, badge, summary = build_chart_outputs(refresher, test_config)
    assert isinstance(figure, go.Figure)
    assert [trace.name for trace in figure.data] == ['Price', 'Buy', 'Sell']
    assert alert is None
    assert badge.children[0].children == 'Live'


def test_build_chart_outputs_without_data(fake_client, test_config):
    fake_client.fail = True
    refresher = create_chart_refresher(fake_client, refresher=DataRefresher())
    refresher.refresh_now()

    figure, alert, *_ = build_chart_outputs(refresher, test_config)
    assert isinstance(alert, dbc.Alert)
    assert alert.color == 'danger'
    assert figure.layout.annotations[0].text == 'Chart data unavailable'


def test_build_chart_outputs_keeps_stale_data(fake_client, test_config):
    refresher = create_chart_refresher(fake_client, refresher=DataRefresher())
    refresher.refresh_now()
    fake_client.fail = True
    refresher.refresh_now('ohlc')

    figure, alert, *_ = build_chart_outputs(refresher, test_config)
    assert alert.color == 'warning'
    assert len(figure.data[0].x) == 52


def test_signal_notifier_skips_first_batch(sample_signals):
    center = NotificationCenter()
    notify = make_signal_notifier(center)

    notify(sample_signals[:2])
    assert center.notifications == []

    notify(sample_signals)
    assert [n.id for n in center.notifications] == ['signal-3']


def test_load_plans_falls_back_to_catalogue(fake_client):
    manager = SubscriptionManager()
    fake_client.fail = True
    assert load_plans(fake_client, manager) == manager.plans

    fake_client.fail = False
    fake_client.plans = [{'tier': 'basic', 'monthlyPrice': 1999}]
    assert load_plans(fake_client, manager)[1].monthly_price_cents == 1999


def test_signal_notifications_survive_polling(sample_signals, sample_notifications):
    center = NotificationCenter()
    notify = make_signal_notifier(center)
    notify(sample_signals[:2])
    notify(sample_signals)

    center.merge(sample_notifications)
    assert 'signal-3' in [n.id for n in center.visible()]
    assert len(center.visible()) == 4


def test_load_notification_preferences(fake_client):
    fake_client.preferences = NotificationPreferences(enable_sound=False)
    assert load_notification_preferences(fake_client).enable_sound is False

    fake_client.fail = True
    assert load_notification_preferences(fake_client) == NotificationPreferences()


def test_create_app_uses_server_preferences(fake_client, test_config):
    fake_client.preferences = NotificationPreferences(enable_contextual=False)
    create_app(test_config, client=fake_client, refresher=DataRefresher(), start_refresher=False)
    assert ('get_notification_preferences',) in fake_client.calls


def test_dismiss_closed_alerts(sample_signals):
    center = NotificationCenter()
    for signal in sample_signals[:2]:
        center.add(signal_to_notification(signal))

    ids = [{'type': 'contextual-alert', 'index': a.id} for a in center.contextual_alerts]
    assert dismiss_closed_alerts(center, ids, [True, False]) == ['signal-1']
    assert [a.id for a in center.contextual_alerts] == ['signal-2']
    assert dismiss_closed_alerts(center, [], []) == []
