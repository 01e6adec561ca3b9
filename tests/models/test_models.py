import pytest
from datetime import datetime

import pytz

from proud_profits.models.market_data import Candle, KlineUpdate, OHLCResponse, PriceTick, parse_timestamp
from proud_profits.models.notification import Notification, NotificationPreferences
from proud_profits.models.signal import AlertSignal
from proud_profits.models.subscription import SubscriptionFeatures, SubscriptionPlan

EXPECTED = datetime(2024, 1, 1, tzinfo=pytz.UTC)


@pytest.mark.parametrize("value", [
    '2024-01-01T00:00:00Z',
    '2024-01-01T00:00:00+00:00',
    '2024-01-01T01:00:00+01:00',
    1704067200,
    1704067200000,
    '1704067200000',
    datetime(2024, 1, 1),
])
def test_parse_timestamp(value):
    parsed = parse_timestamp(value)
    assert parsed == EXPECTED
    assert parsed.tzinfo is not None


def test_parse_timestamp_rejects_unknown_types():
    with pytest.raises(ValueError):
        parse_timestamp(None)


def test_candle_from_dict_accepts_strings():
    candle = Candle.from_dict({'time': '2024-01-01T00:00:00Z', 'open': '100', 'high': '110',
                               'low': '95', 'close': '105', 'volume': '12.5'})
    assert candle.open == 100.0
    assert candle.volume == 12.5
    assert candle.is_bullish
    assert Candle.from_dict(candle.to_dict()) == candle


def test_flat_candle_is_bearish():
    candle = Candle(time=EXPECTED, open=100, high=101, low=99, close=100)
    assert not candle.is_bullish


def test_ohlc_response_sorts_candles():
    payload = {
        'symbol': 'BTCUSDT',
        'interval': '1w',
        'data': [
            {'time': '2024-01-08T00:00:00Z', 'open': 2, 'high': 3, 'low': 1, 'close': 2},
            {'time': '2024-01-01T00:00:00Z', 'open': 1, 'high': 2, 'low': 0.5, 'close': 1.5},
        ],
        'external': True,
    }
    response = OHLCResponse.from_dict(payload)
    assert response.count == 2
    assert response.data[0].time == EXPECTED
    assert response.latest.close == 2
    assert response.external
    assert not response.cached


def test_price_tick_from_dict():
    tick = PriceTick.from_dict({'price': '65000.5', 'changePercent24h': 2.5,
                                'lastUpdate': '2024-01-01T00:00:00Z'}, symbol='BTCUSDT')
    assert tick.symbol == 'BTCUSDT'
    assert tick.price == 65000.5
    assert tick.change_percent_24h == 2.5
    assert tick.timestamp == EXPECTED
    assert tick.to_dict()['changePercent24h'] == 2.5


def test_kline_update_to_candle():
    kline = KlineUpdate(symbol='BTCUSDT', open_time=EXPECTED, close_time=EXPECTED, open=1, high=2,
                        low=0.5, close=1.5, volume=10)
    candle = kline.to_candle()
    assert candle.time == EXPECTED
    assert candle.source == 'binance'


def test_alert_signal_normalizes_type():
    signal = AlertSignal.from_dict({'id': 7, 'ticker': 'BTCUSDT', 'signalType': 'BUY',
                                    'price': '42000', 'timestamp': '2024-01-01T00:00:00Z',
                                    'notes': 'breakout'})
    assert signal.id == '7'
    assert signal.signal_type == 'buy'
    assert signal.is_buy
    assert signal.price == 42000.0
    assert signal.note == 'breakout'
    assert signal.to_dict()['signalType'] == 'buy'


@pytest.mark.parametrize("data", [
    {'ticker': 'BTCUSDT', 'signalType': 'hold', 'price': 1, 'timestamp': 1704067200},
    {'ticker': 'BTCUSDT', 'price': 1, 'timestamp': 1704067200},
])
def test_alert_signal_rejects_bad_types(data):
    with pytest.raises(ValueError):
        AlertSignal.from_dict(data)


def test_subscription_features_defaults_match_free_plan():
    features = SubscriptionFeatures()
    assert features.max_tickers == 3
    assert features.max_signals_per_day == 5
    assert features.real_time_data
    assert not features.api_access
    assert len(SubscriptionFeatures.names()) == 24


def test_subscription_features_from_camel_case():
    features = SubscriptionFeatures.from_dict({'maxTickers': -1, 'apiAccess': True, 'unknownFlag': True})
    assert features.max_tickers == -1
    assert features.api_access
    assert SubscriptionFeatures.normalize_name('heatmapAnalyzer') == 'heatmap_analyzer'


def test_subscription_plan_prices():
    plan = SubscriptionPlan(id='pro', name='Pro', tier='pro', monthly_price_cents=4999,
                            yearly_price_cents=49990)
    assert plan.monthly_price == pytest.approx(49.99)
    assert plan.yearly_price == pytest.approx(499.90)
    assert not plan.is_free


def test_notification_validation():
    # Unlisted types pass through and are allowed by default preferences
    promo = Notification(id='1', type='promotion', title='', message='')
    assert NotificationPreferences().allows(promo)
    with pytest.raises(ValueError):
        Notification(id='1', type='', title='', message='')
    with pytest.raises(ValueError):
        Notification(id='1', type='system', title='', message='', priority='urgent')


def test_notification_from_dict():
    n = Notification.from_dict({'id': 3, 'type': 'news', 'title': 'T', 'message': 'M',
                                'createdAt': '2024-01-01T00:00:00Z', 'isRead': True})
    assert n.id == '3'
    assert n.timestamp == EXPECTED
    assert n.is_read
    assert not n.is_archived


def test_notification_preferences():
    prefs = NotificationPreferences.from_dict({'enableSound': False, 'categories': {'news': False}})
    assert not prefs.enable_sound
    news = Notification(id='1', type='news', title='', message='')
    signal = Notification(id='2', type='signal', title='', message='')
    assert not prefs.allows(news)
    assert prefs.allows(signal)

    prefs.priorities['low'] = False
    quiet = Notification(id='3', type='signal', title='', message='', priority='low')
    assert not prefs.allows(quiet)


def test_notification_preferences_plural_categories():
    prefs = NotificationPreferences.from_dict({'categories': {'signals': False, 'achievements': False}})
    assert prefs.categories['signal'] is False
    assert prefs.categories['achievement'] is False
    assert 'signals' not in prefs.categories
    assert not prefs.allows(Notification(id='1', type='signal', title='', message=''))
    assert prefs.allows(Notification(id='2', type='price', title='', message=''))
