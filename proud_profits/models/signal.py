from dataclasses import dataclass
from typing import Dict, Optional
from datetime import datetime

from proud_profits.models.market_data import parse_timestamp

SIGNAL_TYPES = ('buy', 'sell')


@dataclass
class AlertSignal:
    """
    A buy/sell alert for a ticker, as served by the signals feed.
    """
    id: str
    ticker: str
    signal_type: str
    price: float
    timestamp: datetime
    timeframe: Optional[str] = None
    source: str = 'webhook'
    note: Optional[str] = None

    def __post_init__(self):
        self.signal_type = str(self.signal_type).lower()
        if self.signal_type not in SIGNAL_TYPES:
            raise ValueError(f"Unknown signal type: {self.signal_type!r}")
        self.timestamp = parse_timestamp(self.timestamp)
        self.price = float(self.price)

    @property
    def is_buy(self) -> bool:
        return self.signal_type == 'buy'

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'ticker': self.ticker,
            'signalType': self.signal_type,
            'price': self.price,
            'timestamp': self.timestamp.isoformat(),
            'timeframe': self.timeframe,
            'source': self.source,
            'note': self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'AlertSignal':
        """Create from an API dictionary (camelCase or snake_case keys)."""
        signal_type = data.get('signalType', data.get('signal_type'))
        if signal_type is None:
            raise ValueError("Signal is missing its type")
        return cls(
            id=str(data.get('id', '')),
            ticker=data.get('ticker', ''),
            signal_type=signal_type,
            price=data['price'],
            timestamp=data['timestamp'],
            timeframe=data.get('timeframe'),
            source=data.get('source') or 'webhook',
            note=data.get('note', data.get('notes')),
        )
