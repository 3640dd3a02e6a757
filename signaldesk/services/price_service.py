"""
SignalDesk - Price Service
CoinGecko price and market-data lookups with a shared cache
"""
import logging
import requests
from typing import Optional, Dict, List, Any
from urllib.parse import quote

from signaldesk.services.cache_service import CacheService

logger = logging.getLogger(__name__)

PRICE_CACHE_TTL = 15 * 60

COINGECKO_ID_MAP = {
    'BTC': 'bitcoin',
    'ETH': 'ethereum',
    'MATIC': 'matic-network',
    'SOL': 'solana',
    'USDT': 'tether',
    'BNB': 'binancecoin',
    'XRP': 'ripple',
    'ADA': 'cardano',
    'DOGE': 'dogecoin',
    'DOT': 'polkadot',
    'AVAX': 'avalanche-2',
}


def get_coingecko_id(symbol: str) -> str:
    """Known symbols map to their CoinGecko id; anything else is lower-cased"""
    return COINGECKO_ID_MAP.get(symbol, symbol.lower())


class PriceServiceError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PriceService:
    """CoinGecko REST client for simple prices and coin market data"""

    def __init__(self, cache: CacheService, api_key: str = '', base_url: str = 'https://api.coingecko.com/api/v3', timeout: int = 10):
        self.cache = cache
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def _key_param(self) -> str:
        return 'x_cg_pro_api_key' if 'pro-api' in self.base_url else 'x_cg_demo_api_key'

    def _get(self, endpoint: str, params: Dict[str, Any]) -> Any:
        if self.api_key:
            params[self._key_param()] = self.api_key

        try:
            response = requests.get(f"{self.base_url}{endpoint}", params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise PriceServiceError(f'CoinGecko request failed: {e}')

        if not response.ok:
            logger.error(f"CoinGecko API error: {response.status_code} {response.text[:200]}")
            raise PriceServiceError('Failed to fetch from CoinGecko API', response.status_code)

        return response.json()

    def get_simple_price(
        self,
        ids: str,
        vs_currencies: str = 'usd',
        include_24h_change: bool = False
    ) -> Dict[str, Any]:
        """
        Raw /simple/price response, cached for 15 minutes per argument set.

        Raises PriceServiceError when CoinGecko fails; failures are not cached.
        """
        cache_key = f"coingecko:price:{ids}:{vs_currencies}:{include_24h_change}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        params = {'ids': ids, 'vs_currencies': vs_currencies}
        if include_24h_change:
            params['include_24hr_change'] = 'true'

        data = self._get('/simple/price', params)
        self.cache.set(cache_key, data, ttl=PRICE_CACHE_TTL)
        return data

    def get_market_data(self, coingecko_id: str) -> Dict[str, Any]:
        """USD market summary for one coin from /coins/{id}, cached like simple prices"""
        cache_key = f"coingecko:market:{coingecko_id}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        data = self._get(f"/coins/{quote(coingecko_id, safe='')}", {
            'localization': 'false',
            'tickers': 'false',
            'market_data': 'true',
            'community_data': 'false',
            'developer_data': 'false',
            'sparkline': 'false',
        })

        market = data.get('market_data') or {}
        if not market.get('current_price'):
            raise PriceServiceError(f'No market data for {coingecko_id}', 404)

        summary = {
            'price': market['current_price'].get('usd'),
            'priceChange24h': market.get('price_change_percentage_24h'),
            'marketCap': (market.get('market_cap') or {}).get('usd'),
            'volume24h': (market.get('total_volume') or {}).get('usd'),
            'high24h': (market.get('high_24h') or {}).get('usd'),
            'low24h': (market.get('low_24h') or {}).get('usd'),
            'lastUpdated': market.get('last_updated'),
        }
        self.cache.set(cache_key, summary, ttl=PRICE_CACHE_TTL)
        return summary

    def fetch_token_price(self, coingecko_id: str) -> Optional[float]:
        try:
            data = self.get_simple_price(coingecko_id)
        except PriceServiceError as e:
            logger.error(f"Failed to fetch token price: {e}")
            return None
        return (data.get(coingecko_id) or {}).get('usd') or None

    def fetch_token_prices(self, coingecko_ids: List[str]) -> Dict[str, float]:
        unique_ids = sorted({cid for cid in coingecko_ids if cid})
        if not unique_ids:
            return {}

        try:
            data = self.get_simple_price(','.join(unique_ids))
        except PriceServiceError as e:
            logger.error(f"Failed to fetch token prices: {e}")
            return {}

        return {
            cid: data[cid]['usd']
            for cid in unique_ids
            if (data.get(cid) or {}).get('usd')
        }


def get_price_service() -> PriceService:
    from flask import current_app
    from signaldesk.services.cache_service import get_cache_service
    return PriceService(
        get_cache_service(),
        api_key=current_app.config.get('COINGECKO_API_KEY', ''),
        base_url=current_app.config.get('COINGECKO_API_URL', 'https://api.coingecko.com/api/v3')
    )
