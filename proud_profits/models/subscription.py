from dataclasses import dataclass, field, fields, asdict
from typing import Dict, List, Optional, Any

TIERS = ('free', 'basic', 'premium', 'pro', 'elite')
PLAN_COLORS = ('slate', 'blue', 'orange', 'gold', 'purple')

# API (camelCase) name -> dataclass field
_FEATURE_KEYS = {
    'maxTickers': 'max_tickers',
    'advancedCharts': 'advanced_charts',
    'realTimeData': 'real_time_data',
    'historicalData': 'historical_data',
    'customTimeframes': 'custom_timeframes',
    'maxSignalsPerDay': 'max_signals_per_day',
    'buySellSignals': 'buy_sell_signals',
    'advancedSignals': 'advanced_signals',
    'customAlerts': 'custom_alerts',
    'webhookAlerts': 'webhook_alerts',
    'heatmapAnalyzer': 'heatmap_analyzer',
    'cycleForecasting': 'cycle_forecasting',
    'volatilityAnalysis': 'volatility_analysis',
    'technicalIndicators': 'technical_indicators',
    'portfolioTracking': 'portfolio_tracking',
    'emailNotifications': 'email_notifications',
    'smsNotifications': 'sms_notifications',
    'telegramAlerts': 'telegram_alerts',
    'discordWebhooks': 'discord_webhooks',
    'prioritySupport': 'priority_support',
    'advancedBacktesting': 'advanced_backtesting',
    'apiAccess': 'api_access',
    'whitelabelAccess': 'whitelabel_access',
    'customStrategies': 'custom_strategies',
}


@dataclass
class SubscriptionFeatures:
    """
    Feature switches and limits granted by a plan.

    The two limit fields use -1 for unlimited.
    """
    # Chart features
    max_tickers: int = 3
    advanced_charts: bool = False
    real_time_data: bool = True
    historical_data: bool = False
    custom_timeframes: bool = False

    # Signal features
    max_signals_per_day: int = 5
    buy_sell_signals: bool = True
    advanced_signals: bool = False
    custom_alerts: bool = False
    webhook_alerts: bool = False

    # Analytics features
    heatmap_analyzer: bool = False
    cycle_forecasting: bool = False
    volatility_analysis: bool = False
    technical_indicators: bool = False
    portfolio_tracking: bool = False

    # Communication features
    email_notifications: bool = True
    sms_notifications: bool = False
    telegram_alerts: bool = False
    discord_webhooks: bool = False

    # Premium features
    priority_support: bool = False
    advanced_backtesting: bool = False
    api_access: bool = False
    whitelabel_access: bool = False
    custom_strategies: bool = False

    @classmethod
    def names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @staticmethod
    def normalize_name(name: str) -> str:
        """Map a camelCase feature name onto its field name."""
        return _FEATURE_KEYS.get(name, name)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SubscriptionFeatures':
        known = set(cls.names())
        kwargs = {}
        for key, value in data.items():
            name = cls.normalize_name(key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)


@dataclass
class SubscriptionPlan:
    id: str
    name: str
    tier: str
    monthly_price_cents: int
    yearly_price_cents: int
    features: SubscriptionFeatures = field(default_factory=SubscriptionFeatures)
    description: str = ''
    color: str = 'slate'
    is_popular: bool = False

    @property
    def monthly_price(self) -> float:
        return self.monthly_price_cents / 100.0

    @property
    def yearly_price(self) -> float:
        return self.yearly_price_cents / 100.0

    @property
    def is_free(self) -> bool:
        return self.monthly_price_cents == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'tier': self.tier,
            'monthlyPrice': self.monthly_price_cents,
            'yearlyPrice': self.yearly_price_cents,
            'features': self.features.to_dict(),
            'description': self.description,
            'color': self.color,
            'isPopular': self.is_popular,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], fallback: Optional['SubscriptionPlan'] = None) -> 'SubscriptionPlan':
        features = data.get('features')
        if isinstance(features, dict):
            plan_features = SubscriptionFeatures.from_dict(features)
        elif fallback is not None:
            plan_features = fallback.features
        else:
            plan_features = SubscriptionFeatures()

        return cls(
            id=str(data.get('id', data.get('tier', ''))),
            name=data.get('name') or (fallback.name if fallback else ''),
            tier=data.get('tier', ''),
            monthly_price_cents=int(data.get('monthlyPrice', fallback.monthly_price_cents if fallback else 0)),
            yearly_price_cents=int(data.get('yearlyPrice') or (fallback.yearly_price_cents if fallback else 0)),
            features=plan_features,
            description=data.get('description') or (fallback.description if fallback else ''),
            color=data.get('color') or (fallback.color if fallback else 'slate'),
            is_popular=bool(data.get('isPopular', fallback.is_popular if fallback else False)),
        )
