from datetime import datetime

import pytest
import pytz

from proud_profits.models.notification import Notification, NotificationPreferences
from proud_profits.notifications.notification_center import (
    MAX_CONTEXTUAL_ALERTS,
    NotificationCenter,
    signal_to_notification,
)


def make_notification(id, type='system', priority='medium', hour=0):
    return Notification(id=id, type=type, title=f"Title {id}", message='m',
                        timestamp=datetime(2024, 1, 1, hour, tzinfo=pytz.UTC), priority=priority)


@pytest.fixture
def center():
    return NotificationCenter()


def test_signal_to_notification(sample_signals):
    notification = signal_to_notification(sample_signals[0])
    assert notification.id == 'signal-1'
    assert notification.type == 'signal'
    assert notification.priority == 'high'
    assert notification.title == 'BUY signal: BTCUSDT'
    assert notification.timestamp == sample_signals[0].timestamp
    assert notification.metadata == {'symbol': 'BTCUSDT', 'price': sample_signals[0].price,
                                     'signalType': 'buy'}


def test_ingest_orders_newest_first(center, sample_notifications):
    center.ingest(sample_notifications)
    assert [n.id for n in center.visible()] == ['n3', 'n2', 'n1']
    assert center.unread_count == 2


def test_mark_read_and_archive(center, sample_notifications):
    center.ingest(sample_notifications)
    assert center.mark_read('n1')
    assert not center.mark_read('missing')
    assert center.unread_count == 1

    assert center.archive('n2')
    assert center.unread_count == 0
    assert [n.id for n in center.visible()] == ['n3', 'n1']
    assert len(center.visible(include_archived=True)) == 3


def test_mark_all_read(center, sample_notifications):
    center.ingest(sample_notifications)
    assert center.mark_all_read() == 2
    assert center.mark_all_read() == 0
    assert center.unread_count == 0


def test_add_replaces_duplicates_and_tracks_alerts(center):
    assert center.add(make_notification('a'))
    assert center.add(make_notification('a'))
    assert [n.id for n in center.notifications] == ['a']
    assert [a.id for a in center.contextual_alerts] == ['a']


def test_contextual_alerts_are_capped(center):
    for i in range(MAX_CONTEXTUAL_ALERTS + 2):
        center.add(make_notification(str(i)))
    assert len(center.contextual_alerts) == MAX_CONTEXTUAL_ALERTS
    assert center.contextual_alerts[0].id == str(MAX_CONTEXTUAL_ALERTS + 1)

    assert center.dismiss_alert(str(MAX_CONTEXTUAL_ALERTS + 1))
    assert not center.dismiss_alert('missing')
    assert len(center.contextual_alerts) == MAX_CONTEXTUAL_ALERTS - 1


def test_preferences_filter(center):
    center.update_preferences(categories={'news': False}, priorities={'low': False})
    assert not center.add(make_notification('news', type='news'))
    assert not center.add(make_notification('quiet', priority='low'))
    assert center.add(make_notification('signal', type='signal', priority='high'))

    # Filtered notifications are still kept in the list
    assert len(center.notifications) == 3
    assert [a.id for a in center.contextual_alerts] == ['signal']
    assert center.preferences.categories['signal']


def test_contextual_alerts_disabled():
    center = NotificationCenter(NotificationPreferences(enable_contextual=False))
    assert center.add(make_notification('a'))
    assert center.contextual_alerts == []


def test_should_play_sound(center):
    assert center.should_play_sound(make_notification('a', priority='high'))
    assert not center.should_play_sound(make_notification('b', priority='low'))
    center.update_preferences(enable_sound=False)
    assert not center.should_play_sound(make_notification('c', priority='critical'))


def test_update_preferences_rejects_unknown_keys(center):
    with pytest.raises(AttributeError):
        center.update_preferences(enable_fireworks=True)


def test_create_test_notification(center):
    notification = center.create_test_notification('signal')
    assert notification.id.startswith('test-')
    assert notification.metadata['signalType'] == 'buy'
    assert center.notifications[0] is notification


def test_merge_keeps_live_notifications(center, sample_notifications):
    center.ingest(sample_notifications[:1])
    center.add(make_notification('signal-9', type='signal', priority='high', hour=5))

    center.merge(sample_notifications)
    assert [n.id for n in center.visible()] == ['signal-9', 'n3', 'n2', 'n1']

    # Once the server knows the id its copy replaces the live one
    server_copy = make_notification('signal-9', type='signal', priority='high', hour=5)
    server_copy.is_read = True
    center.merge(sample_notifications + [server_copy])
    assert [n.id for n in center.visible()].count('signal-9') == 1
    assert center._find('signal-9').is_read
    assert center.local_ids == set()


def test_merge_drops_server_items_no_longer_listed(center, sample_notifications):
    center.merge(sample_notifications)
    center.merge(sample_notifications[:1])
    assert [n.id for n in center.visible()] == ['n1']
