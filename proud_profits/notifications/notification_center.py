"""
Client-side notification state: list ordering, read/archive flags,
preference filtering and the short list of contextual alerts.
"""

import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

import pytz

from proud_profits.models.notification import Notification, NotificationPreferences
from proud_profits.models.signal import AlertSignal
from proud_profits.notifications.templates import NotificationTemplates
from proud_profits.utils.logging_utils import get_component_logger

logger = get_component_logger("notifications.notification_center")

MAX_CONTEXTUAL_ALERTS = 5

_templates = NotificationTemplates()


def signal_to_notification(signal: AlertSignal,
                           templates: Optional[NotificationTemplates] = None) -> Notification:
    """Build a high-priority 'signal' notification for an alert signal."""
    title, message = (templates or _templates).render(
        'signal_alert',
        signal_type=signal.signal_type,
        ticker=signal.ticker,
        price=signal.price,
        timeframe=signal.timeframe,
    )
    return Notification(
        id=f"signal-{signal.id}",
        type='signal',
        title=title,
        message=message,
        timestamp=signal.timestamp,
        priority='high',
        metadata={
            'symbol': signal.ticker,
            'price': signal.price,
            'signalType': signal.signal_type,
        },
    )


class NotificationCenter:
    """Holds the user's notifications and decides what to surface."""

    def __init__(self, preferences: Optional[NotificationPreferences] = None):
        self.preferences = preferences or NotificationPreferences()
        self.notifications: List[Notification] = []
        self.contextual_alerts: List[Notification] = []
        # Ids recorded through add() rather than fetched from the server
        self.local_ids: Set[str] = set()
        self.lock = threading.RLock()

    def ingest(self, notifications: Iterable[Notification]):
        """Replace the list with a fresh fetch, newest first."""
        with self.lock:
            self.notifications = sorted(notifications, key=lambda n: n.timestamp, reverse=True)
            self.local_ids = set()
        logger.debug(f"Ingested {len(self.notifications)} notifications")

    def merge(self, notifications: Iterable[Notification]):
        """
        Take a polled server list while keeping live notifications.

        Entries recorded through add() survive unless the server list now
        carries the same id, in which case the server copy wins.
        """
        fetched = list(notifications)
        with self.lock:
            server_ids = {n.id for n in fetched}
            kept = [n for n in self.notifications
                    if n.id in self.local_ids and n.id not in server_ids]
            self.local_ids = {n.id for n in kept}
            self.notifications = sorted(fetched + kept, key=lambda n: n.timestamp, reverse=True)
        logger.debug(f"Merged {len(fetched)} fetched notifications, kept {len(kept)} live ones")

    def should_show(self, notification: Notification) -> bool:
        return self.preferences.allows(notification)

    def should_play_sound(self, notification: Notification) -> bool:
        return self.preferences.enable_sound and notification.priority != 'low'

    def add(self, notification: Notification) -> bool:
        """
        Record a live notification.

        Returns:
            True when the notification passes the preference filter
        """
        with self.lock:
            self.notifications = [n for n in self.notifications if n.id != notification.id]
            self.notifications.insert(0, notification)
            self.local_ids.add(notification.id)

            if not self.should_show(notification):
                logger.debug(f"Notification {notification.id} filtered by preferences")
                return False

            if self.preferences.enable_contextual:
                alerts = [a for a in self.contextual_alerts if a.id != notification.id]
                self.contextual_alerts = [notification] + alerts[:MAX_CONTEXTUAL_ALERTS - 1]

        logger.info(f"New {notification.priority} {notification.type} notification: {notification.title}")
        return True

    def create_test_notification(self, notification_type: str = 'system') -> Notification:
        now = datetime.now(pytz.UTC)
        metadata: Dict[str, Any] = {}
        if notification_type == 'signal':
            metadata = {'symbol': 'BTCUSDT', 'price': 45000, 'change': 2.5, 'signalType': 'buy'}

        notification = Notification(
            id=f"test-{int(now.timestamp() * 1000)}",
            type=notification_type,
            title=f"Test {notification_type} notification",
            message=f"This is a test {notification_type} notification to verify the system is working correctly.",
            timestamp=now,
            priority='medium',
            metadata=metadata,
        )
        self.add(notification)
        return notification

    def _find(self, notification_id: str) -> Optional[Notification]:
        for notification in self.notifications:
            if notification.id == notification_id:
                return notification
        return None

    @property
    def unread_count(self) -> int:
        with self.lock:
            return sum(1 for n in self.notifications if not n.is_read and not n.is_archived)

    def mark_read(self, notification_id: str) -> bool:
        with self.lock:
            notification = self._find(notification_id)
            if notification is None:
                return False
            notification.is_read = True
            return True

    def mark_all_read(self) -> int:
        """Mark every notification read; returns how many changed."""
        with self.lock:
            changed = 0
            for notification in self.notifications:
                if not notification.is_read:
                    notification.is_read = True
                    changed += 1
            return changed

    def archive(self, notification_id: str) -> bool:
        with self.lock:
            notification = self._find(notification_id)
            if notification is None:
                return False
            notification.is_archived = True
            return True

    def dismiss_alert(self, notification_id: str) -> bool:
        with self.lock:
            before = len(self.contextual_alerts)
            self.contextual_alerts = [a for a in self.contextual_alerts if a.id != notification_id]
            return len(self.contextual_alerts) != before

    def update_preferences(self, **changes) -> NotificationPreferences:
        """
        Merge preference changes.

        The categories and priorities dicts are merged key by key; other
        fields are replaced.
        """
        with self.lock:
            for key, value in changes.items():
                if key in ('categories', 'priorities'):
                    getattr(self.preferences, key).update(value)
                elif hasattr(self.preferences, key):
                    setattr(self.preferences, key, value)
                else:
                    raise AttributeError(f"Unknown notification preference: {key}")
        return self.preferences

    def visible(self, include_archived: bool = False) -> List[Notification]:
        with self.lock:
            return [n for n in self.notifications if include_archived or not n.is_archived]
