from typing import Any, Dict, Sequence

import numpy as np
import pandas as pd

from proud_profits.models.market_data import Candle, OHLCResponse

FRAME_COLUMNS = ['open', 'high', 'low', 'close', 'volume']


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """
    Convert candles to a DataFrame indexed by time.

    Args:
        candles: Candles in any order

    Returns:
        DataFrame with open/high/low/close/volume columns, sorted by time
    """
    if not candles:
        return pd.DataFrame(columns=FRAME_COLUMNS, index=pd.DatetimeIndex([], name='time'))

    frame = pd.DataFrame(
        [[c.open, c.high, c.low, c.close, c.volume] for c in candles],
        columns=FRAME_COLUMNS,
        index=pd.DatetimeIndex([c.time for c in candles], name='time'),
    )
    return frame.sort_index()


def summarize(response: OHLCResponse) -> Dict[str, Any]:
    """
    Summarize an OHLC response for display.

    Returns:
        Dictionary with symbol, candle count, interval, source, data type,
        time span, period high/low, change percent and average volume
    """
    frame = candles_to_frame(response.data)
    summary = {
        'symbol': response.symbol,
        'candles': len(frame),
        'interval': response.interval,
        'source': 'cache' if response.cached else 'live',
        'data_type': 'external' if response.external else 'cached',
        'first_time': None,
        'last_time': None,
        'period_high': None,
        'period_low': None,
        'change_percent': None,
        'average_volume': None,
    }

    if frame.empty:
        return summary

    first_open = frame['open'].iloc[0]
    last_close = frame['close'].iloc[-1]

    summary.update({
        'first_time': frame.index[0].isoformat(),
        'last_time': frame.index[-1].isoformat(),
        'period_high': float(frame['high'].max()),
        'period_low': float(frame['low'].min()),
        'change_percent': float((last_close / first_open - 1) * 100) if first_open else None,
        'average_volume': float(np.mean(frame['volume'].values)),
    })
    return summary


def to_csv(response: OHLCResponse) -> str:
    """CSV text with columns time, open, high, low, close, volume."""
    frame = candles_to_frame(response.data)
    out = frame.reset_index()
    out['time'] = [t.isoformat() for t in out['time']]
    return out.to_csv(index=False)
