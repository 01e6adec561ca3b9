"""
Proud Profits Signals Dashboard

Client side of the Proud Profits trading-signals service: candlestick charts
with buy/sell signal overlays, live prices, subscription plans and
notifications.

Subpackages:
- models: candles, signals, price ticks, plans, notifications
- data: REST client, polling refresher, live price stream
- storage: OHLC response cache
- visualization: chart geometry and renderers
- subscriptions: plan catalogue and feature gating
- notifications: notification centre and templates
- web: Dash dashboard
"""

# Version
__version__ = '1.0.0'
