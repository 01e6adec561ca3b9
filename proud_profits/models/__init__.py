from proud_profits.models.market_data import Candle, OHLCResponse, PriceTick, KlineUpdate
from proud_profits.models.signal import AlertSignal
from proud_profits.models.subscription import SubscriptionFeatures, SubscriptionPlan
from proud_profits.models.notification import Notification, NotificationPreferences
