"""
Subscription plan catalogue and feature gating.
"""

from typing import Any, Dict, Iterable, List, Optional

from proud_profits.models.subscription import (
    SubscriptionFeatures,
    SubscriptionPlan,
    TIERS,
)
from proud_profits.utils.logging_utils import get_component_logger

logger = get_component_logger("subscriptions.plans")

UNLIMITED = -1

# Features every plan has from the premium tier up
_PREMIUM_FEATURES = dict(
    advanced_charts=True,
    real_time_data=True,
    historical_data=True,
    custom_timeframes=True,
    buy_sell_signals=True,
    advanced_signals=True,
    custom_alerts=True,
    webhook_alerts=True,
    heatmap_analyzer=True,
    cycle_forecasting=True,
    volatility_analysis=True,
    technical_indicators=True,
    portfolio_tracking=True,
    email_notifications=True,
    sms_notifications=True,
    telegram_alerts=True,
    discord_webhooks=True,
    priority_support=True,
    advanced_backtesting=True,
    custom_strategies=True,
)

SUBSCRIPTION_PLANS: List[SubscriptionPlan] = [
    SubscriptionPlan(
        id='free',
        name='Free Tier',
        tier='free',
        monthly_price_cents=0,
        yearly_price_cents=0,
        description='Get started with basic crypto analytics',
        color='slate',
        features=SubscriptionFeatures(max_tickers=3, max_signals_per_day=5),
    ),
    SubscriptionPlan(
        id='basic',
        name='Basic Plan',
        tier='basic',
        monthly_price_cents=2999,
        yearly_price_cents=29999,
        description='Essential tools for serious traders',
        color='blue',
        features=SubscriptionFeatures(max_tickers=5, max_signals_per_day=50, custom_alerts=True),
    ),
    SubscriptionPlan(
        id='premium',
        name='Premium Plan',
        tier='premium',
        monthly_price_cents=5999,
        yearly_price_cents=59999,
        description='Advanced analytics for professional traders',
        color='orange',
        is_popular=True,
        features=SubscriptionFeatures(max_tickers=25, max_signals_per_day=200, **_PREMIUM_FEATURES),
    ),
    SubscriptionPlan(
        id='pro',
        name='Pro Plan',
        tier='pro',
        monthly_price_cents=9999,
        yearly_price_cents=99999,
        description='Complete toolkit for institutional traders',
        color='gold',
        features=SubscriptionFeatures(max_tickers=UNLIMITED, max_signals_per_day=UNLIMITED,
                                      api_access=True, **_PREMIUM_FEATURES),
    ),
    SubscriptionPlan(
        id='elite',
        name='Elite Plan',
        tier='elite',
        monthly_price_cents=19999,
        yearly_price_cents=199999,
        description='White-label solution for trading firms',
        color='purple',
        features=SubscriptionFeatures(max_tickers=UNLIMITED, max_signals_per_day=UNLIMITED,
                                      api_access=True, whitelabel_access=True, **_PREMIUM_FEATURES),
    ),
]

UPGRADE_MESSAGES = {
    'max_tickers': "Upgrade to access more tickers",
    'advanced_charts': "Upgrade to unlock advanced chart features",
    'real_time_data': "Upgrade for real-time data access",
    'historical_data': "Upgrade to access historical data",
    'custom_timeframes': "Upgrade for custom timeframe options",
    'max_signals_per_day': "Upgrade to receive more daily signals",
    'buy_sell_signals': "Upgrade to access buy/sell signals",
    'advanced_signals': "Upgrade for advanced signal analytics",
    'custom_alerts': "Upgrade to create custom alerts",
    'webhook_alerts': "Upgrade for webhook integration",
    'heatmap_analyzer': "Upgrade to access heatmap analyzer",
    'cycle_forecasting': "Upgrade for cycle forecasting tools",
    'volatility_analysis': "Upgrade for volatility analysis",
    'technical_indicators': "Upgrade to access technical indicators",
    'portfolio_tracking': "Upgrade for portfolio tracking",
    'email_notifications': "Upgrade for email notifications",
    'sms_notifications': "Upgrade for SMS alerts",
    'telegram_alerts': "Upgrade for Telegram notifications",
    'discord_webhooks': "Upgrade for Discord integration",
    'priority_support': "Upgrade for priority customer support",
    'advanced_backtesting': "Upgrade for advanced backtesting",
    'api_access': "Upgrade for API access",
    'whitelabel_access': "Upgrade for white-label solution",
    'custom_strategies': "Upgrade for custom strategy builder",
}
DEFAULT_UPGRADE_MESSAGE = "Upgrade for premium features"

# Bootstrap badge colours for each plan colour
BADGE_COLORS = {
    'slate': 'secondary',
    'blue': 'primary',
    'orange': 'warning',
    'gold': 'warning',
    'purple': 'info',
}

# Hex accents used when rendering plan cards
PLAN_HEX_COLORS = {
    'slate': '#64748b',
    'blue': '#3b82f6',
    'orange': '#f97316',
    'gold': '#eab308',
    'purple': '#a855f7',
}


class SubscriptionManager:
    """Feature gating against a plan catalogue."""

    def __init__(self, plans: Optional[Iterable[SubscriptionPlan]] = None):
        self.plans = list(plans) if plans is not None else list(SUBSCRIPTION_PLANS)

    def get_plan_config(self, tier: Optional[str]) -> Optional[SubscriptionPlan]:
        for plan in self.plans:
            if plan.tier == tier:
                return plan
        return None

    def get_features(self, tier: Optional[str]) -> SubscriptionFeatures:
        plan = self.get_plan_config(tier)
        if plan is None:
            # Unknown tiers get the free features
            return self.plans[0].features
        return plan.features

    def has_feature(self, tier: Optional[str], feature: str) -> bool:
        name = SubscriptionFeatures.normalize_name(feature)
        if name not in SubscriptionFeatures.names():
            raise KeyError(f"Unknown feature: {feature}")
        return bool(getattr(self.get_features(tier), name))

    def can_access_ticker(self, tier: Optional[str], current_count: int) -> bool:
        limit = self.get_features(tier).max_tickers
        return limit == UNLIMITED or current_count < limit

    def can_create_signal(self, tier: Optional[str], daily_count: int) -> bool:
        limit = self.get_features(tier).max_signals_per_day
        return limit == UNLIMITED or daily_count < limit

    @staticmethod
    def get_upgrade_message(feature: str) -> str:
        return UPGRADE_MESSAGES.get(SubscriptionFeatures.normalize_name(feature), DEFAULT_UPGRADE_MESSAGE)

    def get_plan_badge_color(self, tier: Optional[str]) -> str:
        plan = self.get_plan_config(tier)
        if plan is None:
            return BADGE_COLORS['slate']
        return BADGE_COLORS.get(plan.color, BADGE_COLORS['slate'])

    @staticmethod
    def tier_rank(tier: Optional[str]) -> int:
        if tier in TIERS:
            return TIERS.index(tier)
        return 0

    def meets_tier(self, user_tier: Optional[str], required_tier: str) -> bool:
        return self.tier_rank(user_tier) >= self.tier_rank(required_tier)

    def minimum_tier_for(self, feature: str) -> Optional[str]:
        """Cheapest tier whose plan includes the feature, or None."""
        for plan in sorted(self.plans, key=lambda p: self.tier_rank(p.tier)):
            if self.has_feature(plan.tier, feature):
                return plan.tier
        return None

    def yearly_savings_percent(self, tier: str) -> int:
        plan = self.get_plan_config(tier)
        if plan is None or plan.monthly_price_cents == 0:
            return 0
        return round((1 - plan.yearly_price_cents / (plan.monthly_price_cents * 12)) * 100)

    def plans_from_api(self, payload: Iterable[Dict[str, Any]]) -> List[SubscriptionPlan]:
        """
        Overlay plans from /api/subscription-plans onto the built-in catalogue.

        Prices and descriptive fields come from the API; feature switches
        fall back to the catalogue when the API entry has none. Plans come
        back in tier order.
        """
        plans = {plan.tier: plan for plan in self.plans}
        for item in payload or []:
            tier = item.get('tier')
            if not tier:
                logger.warning(f"Skipping subscription plan without tier: {item!r}")
                continue
            plans[tier] = SubscriptionPlan.from_dict(item, fallback=plans.get(tier))
        return sorted(plans.values(), key=lambda p: self.tier_rank(p.tier))
