from typing import Dict


def get_default_config() -> Dict:
    """
    Returns a default configuration dictionary for the dashboard.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "api": {
            "base_url": "",
            "token": None,
            "timeout": 10,
            "on_unauthorized": "throw"
        },
        "chart": {
            "symbol": "BTCUSDT",
            "interval": "1w",
            "limit": 104,
            "signal_timeframe": "1W",
            "max_candles": 52,
            "width": 900,
            "height": 500,
            "public": True
        },
        "refresh": {
            "ohlc": 30,  # seconds
            "signals": 15,
            "price": 5,
            "notifications": 30
        },
        "stream": {
            "url": "wss://stream.binance.com:9443/stream",
            "symbols": ["btcusdt", "ethusdt", "solusdt"],
            "throttle_ms": 100,
            "max_reconnect_attempts": 5,
            "coincap_sse_url": "/api/stream/coincap"
        },
        "cache": {
            "dir": "data/cache",
            "max_age": 300  # seconds
        },
        "display": {
            "timezone": "UTC"
        },
        "subscription": {
            "tier": "free"
        },
        "web": {
            "host": "127.0.0.1",
            "port": 8050,
            "debug": False
        },
        "logging": {
            "level": "INFO",
            "dir": "logs"
        }
    }
