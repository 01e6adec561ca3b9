"""
REST client for the signals backend.

Wraps a requests.Session with the backend's conventions: JSON bodies, an
optional bearer token, error messages taken from the response body and a
configurable policy for expired sessions (401).
"""

from typing import Any, Dict, Iterable, List, Optional, Union

import requests

from proud_profits.errors import ApiConnectionError, ApiError, SessionExpiredError
from proud_profits.models.market_data import OHLCResponse, PriceTick
from proud_profits.models.notification import Notification, NotificationPreferences
from proud_profits.models.signal import AlertSignal
from proud_profits.utils.logging_utils import get_component_logger

logger = get_component_logger("data.api_client")

UNAUTHORIZED_POLICIES = ('throw', 'return_none')


class ApiClient:
    """Client for the dashboard's REST endpoints"""

    def __init__(self,
                 base_url: str = '',
                 token: Optional[str] = None,
                 timeout: float = 10,
                 on_unauthorized: str = 'throw',
                 session: Optional[requests.Session] = None):
        """
        Initialize the API client

        Args:
            base_url: Backend origin, e.g. "https://app.example.com". Empty
                keeps endpoint paths relative.
            token: Bearer token sent with every request
            timeout: Request timeout in seconds
            on_unauthorized: 'throw' raises SessionExpiredError on 401,
                'return_none' makes the request return None instead
            session: Optional pre-built requests session
        """
        if on_unauthorized not in UNAUTHORIZED_POLICIES:
            raise ValueError(f"on_unauthorized must be one of {UNAUTHORIZED_POLICIES}")

        self.base_url = (base_url or '').rstrip('/')
        self.token = token
        self.timeout = timeout
        self.on_unauthorized = on_unauthorized
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ApiClient':
        api = config.get('api', {})
        return cls(
            base_url=api.get('base_url', ''),
            token=api.get('token'),
            timeout=api.get('timeout', 10),
            on_unauthorized=api.get('on_unauthorized', 'throw'),
        )

    def build_url(self, endpoint: str) -> str:
        if not isinstance(endpoint, str):
            raise TypeError(f"Endpoint must be a string, got {type(endpoint).__name__}")

        if endpoint.startswith('http://') or endpoint.startswith('https://'):
            return endpoint

        if not endpoint.startswith('/'):
            endpoint = '/' + endpoint
        return f"{self.base_url}{endpoint}"

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            message = body.get('message') or body.get('error')
            if message:
                return str(message)

        text = response.text or response.reason or ''
        return f"{response.status_code}: {text}"

    def request(self,
                method: str,
                endpoint: str,
                params: Optional[Dict[str, Any]] = None,
                json: Optional[Any] = None) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method: HTTP method
            endpoint: Path (or absolute URL) of the endpoint
            params: Query parameters
            json: JSON request body

        Returns:
            Decoded JSON (None for empty bodies, or for a 401 under the
            'return_none' policy)

        Raises:
            SessionExpiredError: 401 under the 'throw' policy
            ApiError: any other non-2xx response
            ApiConnectionError: timeout or connection failure
        """
        url = self.build_url(endpoint)
        logger.debug(f"{method} {url} params={params}")

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Request to {endpoint} failed: {e}")
            raise ApiConnectionError(str(e), endpoint=endpoint) from e

        if response.status_code == 401:
            if self.on_unauthorized == 'return_none':
                logger.warning(f"Unauthorized response from {endpoint}")
                return None
            raise SessionExpiredError(self._error_message(response), status=401, endpoint=endpoint)

        if not response.ok:
            message = self._error_message(response)
            logger.error(f"API error from {endpoint}: {message}")
            raise ApiError(message, status=response.status_code, endpoint=endpoint)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON in response: {e}", status=response.status_code,
                           endpoint=endpoint) from e

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request('GET', endpoint, params=params)

    def patch(self, endpoint: str, json: Optional[Any] = None) -> Any:
        return self.request('PATCH', endpoint, json=json)

    def put(self, endpoint: str, json: Optional[Any] = None) -> Any:
        return self.request('PUT', endpoint, json=json)

    # Market data

    def get_ohlc(self, symbol: str, interval: str = '1w', limit: int = 104,
                 public: bool = False) -> Optional[OHLCResponse]:
        endpoint = '/api/public/ohlc' if public else '/api/ohlc'
        payload = self.get(endpoint, params={'symbol': symbol, 'interval': interval, 'limit': limit})
        if payload is None:
            return None

        response = OHLCResponse.from_dict(payload)
        if not response.symbol:
            response.symbol = symbol
        if not response.interval:
            response.interval = interval
        logger.info(f"Fetched {response.count} {interval} candles for {symbol}")
        return response

    def get_signals(self, ticker: str, timeframe: str = '1W') -> List[AlertSignal]:
        payload = self.get('/api/public/signals/alerts', params={'ticker': ticker, 'timeframe': timeframe})
        if not payload:
            return []

        items = payload.get('signals', payload.get('data', [])) if isinstance(payload, dict) else payload
        signals = []
        for item in items:
            try:
                signals.append(AlertSignal.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed signal {item!r}: {e}")
        return signals

    def get_price(self, symbol: str, public: bool = False) -> Optional[PriceTick]:
        prefix = '/api/public/market/price' if public else '/api/market/price'
        payload = self.get(f"{prefix}/{symbol}")
        if payload is None:
            return None
        return PriceTick.from_dict(payload, symbol=symbol)

    def get_prices(self, symbols: Iterable[str]) -> Dict[str, PriceTick]:
        symbols = list(symbols)
        payload = self.get('/api/market/prices', params={'symbols': ','.join(symbols)})
        if not payload:
            return {}

        if isinstance(payload, dict):
            entries = payload.get('prices', payload)
        else:
            entries = {item.get('symbol'): item for item in payload}

        prices = {}
        for symbol, item in entries.items():
            if isinstance(item, dict) and 'price' in item:
                prices[symbol] = PriceTick.from_dict(item, symbol=symbol)
        return prices

    def get_enabled_tickers(self) -> List[str]:
        payload = self.get('/api/tickers/enabled') or []
        tickers = []
        for item in payload:
            if isinstance(item, dict):
                symbol = item.get('symbol')
                if symbol:
                    tickers.append(symbol)
            else:
                tickers.append(str(item))
        return tickers

    def get_subscription_plans(self) -> List[Dict[str, Any]]:
        return self.get('/api/subscription-plans') or []

    # Notifications

    def get_notifications(self) -> List[Notification]:
        payload = self.get('/api/notifications') or []
        items = payload.get('notifications', []) if isinstance(payload, dict) else payload
        notifications = []
        for item in items:
            try:
                notifications.append(Notification.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed notification {item!r}: {e}")
        return notifications

    def mark_notification_read(self, notification_id: Union[str, int]) -> Any:
        return self.patch(f"/api/notifications/{notification_id}/read")

    def archive_notification(self, notification_id: Union[str, int]) -> Any:
        return self.patch(f"/api/notifications/{notification_id}/archive")

    def mark_all_notifications_read(self) -> Any:
        return self.patch('/api/notifications/mark-all-read')

    def get_notification_preferences(self) -> NotificationPreferences:
        payload = self.get('/api/user/notification-preferences')
        if isinstance(payload, dict) and isinstance(payload.get('preferences'), dict):
            payload = payload['preferences']
        return NotificationPreferences.from_dict(payload if isinstance(payload, dict) else None)

    def update_notification_preferences(self, preferences: Union[NotificationPreferences, Dict[str, Any]]) -> Any:
        if isinstance(preferences, NotificationPreferences):
            preferences = preferences.to_dict()
        return self.put('/api/user/notification-preferences', json=preferences)
