from dataclasses import dataclass, field
from typing import Dict, Optional, Any
from datetime import datetime

import pytz

from proud_profits.models.market_data import parse_timestamp

NOTIFICATION_TYPES = ('signal', 'price', 'news', 'system', 'achievement')
PRIORITIES = ('low', 'medium', 'high', 'critical')

# Plural category names used by the preferences endpoint
CATEGORY_ALIASES = {
    'signals': 'signal',
    'prices': 'price',
    'systems': 'system',
    'achievements': 'achievement',
}


@dataclass
class Notification:
    """
    A user notification as listed by /api/notifications.
    """
    id: str
    type: str
    title: str
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(pytz.UTC))
    is_read: bool = False
    is_archived: bool = False
    priority: str = 'medium'
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Types outside NOTIFICATION_TYPES are kept; preferences allow them by default
        if not self.type:
            raise ValueError("Notification type must not be empty")
        if self.priority not in PRIORITIES:
            raise ValueError(f"Unknown notification priority: {self.priority!r}")
        self.timestamp = parse_timestamp(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'timestamp': self.timestamp.isoformat(),
            'isRead': self.is_read,
            'isArchived': self.is_archived,
            'priority': self.priority,
            'metadata': dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Notification':
        return cls(
            id=str(data['id']),
            type=data.get('type', 'system'),
            title=data.get('title', ''),
            message=data.get('message', ''),
            timestamp=data.get('timestamp') or data.get('createdAt') or datetime.now(pytz.UTC),
            is_read=bool(data.get('isRead', data.get('is_read', False))),
            is_archived=bool(data.get('isArchived', data.get('is_archived', False))),
            priority=data.get('priority', 'medium'),
            metadata=data.get('metadata') or {},
        )


def _all_enabled(keys) -> Dict[str, bool]:
    return {key: True for key in keys}


@dataclass
class NotificationPreferences:
    enable_sound: bool = True
    enable_browser: bool = True
    enable_contextual: bool = True
    categories: Dict[str, bool] = field(default_factory=lambda: _all_enabled(NOTIFICATION_TYPES))
    priorities: Dict[str, bool] = field(default_factory=lambda: _all_enabled(PRIORITIES))

    def allows(self, notification: Notification) -> bool:
        # Unlisted categories/priorities are allowed
        return (self.categories.get(notification.type, True)
                and self.priorities.get(notification.priority, True))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'enableSound': self.enable_sound,
            'enableBrowser': self.enable_browser,
            'enableContextual': self.enable_contextual,
            'categories': dict(self.categories),
            'priorities': dict(self.priorities),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'NotificationPreferences':
        prefs = cls()
        if not data:
            return prefs
        prefs.enable_sound = bool(data.get('enableSound', prefs.enable_sound))
        prefs.enable_browser = bool(data.get('enableBrowser', prefs.enable_browser))
        prefs.enable_contextual = bool(data.get('enableContextual', prefs.enable_contextual))
        for key, enabled in (data.get('categories') or {}).items():
            prefs.categories[CATEGORY_ALIASES.get(key, key)] = bool(enabled)
        prefs.priorities.update(data.get('priorities') or {})
        return prefs
