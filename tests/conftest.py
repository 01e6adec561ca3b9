import os
import sys
import tempfile
from datetime import datetime, timedelta

import numpy as np
import pytest
import pytz

# Keep test logs out of the working tree; must be set before the package is imported
os.environ.setdefault('PROUD_PROFITS_LOG_DIR', tempfile.mkdtemp(prefix='proud_profits_logs_'))

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from proud_profits.errors import ApiError
from proud_profits.models.market_data import Candle, OHLCResponse, PriceTick
from proud_profits.models.model_definitions import get_default_config
from proud_profits.models.notification import Notification, NotificationPreferences
from proud_profits.models.signal import AlertSignal

START = datetime(2023, 1, 2, tzinfo=pytz.UTC)
WEEK = timedelta(days=7)


def make_candles(count=60, start=START, step=WEEK, base=30000.0, amplitude=2000.0):
    """Deterministic weekly candles following a sine wave."""
    closes = base + np.sin(np.linspace(0, 6, count)) * amplitude
    candles = []
    for i, close in enumerate(closes):
        open_ = close - 150 if i % 2 == 0 else close + 150
        candles.append(Candle(
            time=start + step * i,
            open=float(open_),
            high=float(max(open_, close) + 200),
            low=float(min(open_, close) - 200),
            close=float(close),
            volume=float(1000 + i * 10),
        ))
    return candles


class FakeApiClient:
    """In-memory stand-in for ApiClient used by refresher and web tests"""

    def __init__(self, response=None, signals=None, price=None, plans=None, notifications=None):
        self.response = response
        self.signals = signals or []
        self.price = price
        self.plans = plans or []
        self.notifications = notifications or []
        self.preferences = None
        self.fail = False
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail:
            raise ApiError("backend unavailable", status=503, endpoint=name)

    def get_ohlc(self, symbol, interval='1w', limit=104, public=False):
        self._record('get_ohlc', symbol, interval, limit, public)
        return self.response

    def get_signals(self, ticker, timeframe='1W'):
        self._record('get_signals', ticker, timeframe)
        return list(self.signals)

    def get_price(self, symbol, public=False):
        self._record('get_price', symbol, public)
        return self.price

    def get_subscription_plans(self):
        self._record('get_subscription_plans')
        return list(self.plans)

    def get_notifications(self):
        self._record('get_notifications')
        return list(self.notifications)

    def mark_all_notifications_read(self):
        self._record('mark_all_notifications_read')
        return {'success': True}

    def get_notification_preferences(self):
        self._record('get_notification_preferences')
        return self.preferences or NotificationPreferences()


@pytest.fixture
def sample_candles():
    return make_candles()


@pytest.fixture
def sample_response(sample_candles):
    return OHLCResponse(symbol='BTCUSDT', interval='1w', data=sample_candles, external=True)


@pytest.fixture
def sample_signals(sample_candles):
    """One buy and one sell inside the visible window, one signal before it"""
    return [
        AlertSignal(
            id='1',
            ticker='BTCUSDT',
            signal_type='buy',
            price=sample_candles[50].low,
            timestamp=sample_candles[50].time + timedelta(days=1),
            timeframe='1W',
        ),
        AlertSignal(
            id='2',
            ticker='BTCUSDT',
            signal_type='sell',
            price=sample_candles[55].high,
            timestamp=sample_candles[55].time + timedelta(days=2),
            timeframe='1W',
        ),
        AlertSignal(
            id='3',
            ticker='BTCUSDT',
            signal_type='buy',
            price=sample_candles[0].low,
            timestamp=sample_candles[0].time,
            timeframe='1W',
        ),
    ]


@pytest.fixture
def sample_price(sample_candles):
    return PriceTick(symbol='BTCUSDT', price=sample_candles[-1].close, change_percent_24h=1.25)


@pytest.fixture
def sample_notifications():
    return [
        Notification(id='n1', type='signal', title='BUY BTCUSDT', message='Buy signal',
                     timestamp=START, priority='high'),
        Notification(id='n2', type='system', title='Maintenance', message='Scheduled maintenance',
                     timestamp=START + timedelta(hours=1), priority='low'),
        Notification(id='n3', type='price', title='ETH up 5%', message='ETH is moving',
                     timestamp=START + timedelta(hours=2), priority='medium', is_read=True),
    ]


@pytest.fixture
def fake_client(sample_response, sample_signals, sample_price, sample_notifications):
    return FakeApiClient(
        response=sample_response,
        signals=sample_signals,
        price=sample_price,
        notifications=sample_notifications,
    )


@pytest.fixture
def test_config(tmp_path):
    config = get_default_config()
    config['cache']['dir'] = str(tmp_path / 'cache')
    return config
