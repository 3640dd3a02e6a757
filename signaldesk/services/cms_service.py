"""
SignalDesk - CMS Service
Sanity content lake access over the HTTP query and mutate APIs (GROQ)
"""
import json
import math
import logging
import requests
from typing import Dict, List, Any, Optional

logger = logging.getLogger(__name__)


class CMSError(Exception):
    """Raised when the Sanity API cannot be reached or rejects a request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# ==========================================
# GROQ PROJECTIONS
# ==========================================

SIGNAL_LIST_PROJECTION = """{
    _id,
    name,
    "slug": slug.current,
    "token": token->{name, symbol, "logo": logo.asset->url},
    "analyst": analyst->{name, "slug": slug.current, "image": image.asset->url},
    "category": category->{name, "slug": slug.current, color},
    direction,
    signalType,
    entryPrice,
    targetPrices,
    stopLoss,
    riskRewardRatio,
    status,
    accessLevel,
    premium,
    publishedAt,
    notes,
    _createdAt,
    _updatedAt
}"""

SIGNAL_DETAIL_PROJECTION = """{
    _id,
    name,
    "slug": slug.current,
    "token": token->{
        name,
        symbol,
        "logo": logo.asset->url,
        price,
        priceChange24h,
        marketCap,
        volume24h
    },
    "analyst": analyst->{
        name,
        "slug": slug.current,
        "image": image.asset->url,
        bio,
        socialLinks
    },
    "category": category->{name, "slug": slug.current, color},
    direction,
    signalType,
    entryPrice,
    targetPrices,
    stopLoss,
    riskRewardRatio,
    status,
    accessLevel,
    premium,
    publishedAt,
    exitPrice,
    exitDate,
    notes,
    technicalAnalysis,
    timeframes,
    confidenceLevel,
    tags
}"""

ADMIN_SIGNAL_PROJECTION = """{
    _id,
    _createdAt,
    _updatedAt,
    name,
    slug,
    token->{_id, symbol, name, logoURL},
    category->{_id, name, color},
    analyst->{_id, displayName, tier},
    direction,
    signalType,
    entryPrice,
    targetPrices,
    stopLoss,
    timeframe,
    riskLevel,
    confidence,
    accessLevel,
    priority,
    featured,
    status,
    notes
}"""

CATEGORIES_QUERY = """*[_type == "signalCategory"] | order(name asc) {
    _id,
    name,
    "slug": slug.current,
    description,
    color,
    "count": count(*[_type == "signal" && references(^._id)])
}"""

TRENDING_NEWS_QUERY = """*[_type == 'news' && category->name == $category] | order(_createdAt desc) [0...$limit] {
    title,
    smallDescription,
    "currentSlug": slug.current,
    titleImage,
    "categoryName": category->name,
    category,
    publishedAt,
    tags[]->{name, color},
    impacts[]->{name, color}
}"""


class SanityClient:
    """Thin client for one Sanity project/dataset"""

    def __init__(
        self,
        project_id: str,
        dataset: str,
        api_version: str = '2023-05-03',
        token: str = '',
        use_cdn: bool = True,
        timeout: int = 15
    ):
        self.project_id = project_id
        self.dataset = dataset
        self.api_version = api_version
        self.token = token
        self.use_cdn = use_cdn
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.project_id and self.dataset)

    def _base_url(self, cdn: bool) -> str:
        host = 'apicdn.sanity.io' if cdn else 'api.sanity.io'
        return f"https://{self.project_id}.{host}/v{self.api_version}"

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def fetch(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a GROQ query and return its `result`.

        Params are sent as `$name=<json>` query arguments; None values are dropped.
        Authenticated requests bypass the CDN.
        """
        if not self.is_configured():
            raise CMSError('Sanity project is not configured')

        query_args = {'query': query}
        for key, value in (params or {}).items():
            if value is not None:
                query_args[f'${key}'] = json.dumps(value)

        url = f"{self._base_url(self.use_cdn and not self.token)}/data/query/{self.dataset}"

        try:
            response = requests.get(url, params=query_args, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise CMSError(f'Sanity request failed: {e}')

        if not response.ok:
            raise CMSError(f'Sanity query failed: {response.text[:200]}', response.status_code)

        return response.json().get('result')

    def create(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Create a document and return it as stored"""
        if not self.token:
            raise CMSError('SANITY_API_TOKEN is required for writes')

        url = f"{self._base_url(False)}/data/mutate/{self.dataset}"
        body = {'mutations': [{'create': document}]}

        try:
            response = requests.post(
                url,
                params={'returnDocuments': 'true'},
                json=body,
                headers=self._headers(),
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise CMSError(f'Sanity request failed: {e}')

        if not response.ok:
            raise CMSError(f'Sanity mutation failed: {response.text[:200]}', response.status_code)

        results = response.json().get('results') or []
        if not results:
            raise CMSError('Sanity mutation returned no documents')
        return results[0].get('document') or {'_id': results[0].get('id')}


class CMSService:
    """Signal and news queries used by the API routes"""

    def __init__(self, client: SanityClient):
        self.client = client

    @staticmethod
    def _signal_filters(status=None, category=None, direction=None, search=None) -> str:
        filters = [
            '_type == "signal"',
            'status == $status' if status else None,
            'category->slug.current == $category' if category else None,
            'direction == $direction' if direction else None,
            '(name match $search || notes match $search)' if search else None,
        ]
        return ' && '.join(f for f in filters if f)

    def list_signals(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        category: Optional[str] = None,
        direction: Optional[str] = None
    ) -> Dict[str, Any]:
        """Newest-first page of signals plus pagination metadata"""
        offset = (page - 1) * limit
        filters = self._signal_filters(status, category, direction)
        params = {'status': status, 'category': category, 'direction': direction}

        total = self.client.fetch(f'count(*[{filters}])', params) or 0
        signals = self.client.fetch(
            f'*[{filters}] | order(publishedAt desc) [{offset}...{offset + limit}] {SIGNAL_LIST_PROJECTION}',
            params
        ) or []

        return {
            'data': signals,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'totalPages': math.ceil(total / limit) if limit else 0,
                'hasNextPage': (offset + limit) < total,
                'hasPreviousPage': offset > 0,
            }
        }

    def get_signal(self, slug: str) -> Optional[Dict[str, Any]]:
        return self.client.fetch(
            f'*[_type == "signal" && slug.current == $slug][0] {SIGNAL_DETAIL_PROJECTION}',
            {'slug': slug}
        )

    def list_signal_categories(self) -> List[Dict[str, Any]]:
        return self.client.fetch(CATEGORIES_QUERY) or []

    def get_trending_news(self, limit: int = 5, category: str = 'Trending') -> List[Dict[str, Any]]:
        return self.client.fetch(TRENDING_NEWS_QUERY, {'category': category, 'limit': limit}) or []

    def admin_list_signals(
        self,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        status: Optional[str] = None
    ) -> Dict[str, Any]:
        """Signals for the management dashboard, newest created first"""
        offset = (page - 1) * limit
        search_term = f'{search}*' if search else None
        filters = self._signal_filters(status=status, search=search_term)
        params = {'status': status, 'search': search_term}

        signals = self.client.fetch(
            f'*[{filters}] | order(_createdAt desc) [{offset}...{offset + limit}] {ADMIN_SIGNAL_PROJECTION}',
            params
        ) or []
        total = self.client.fetch(f'count(*[{filters}])', params) or 0

        return {
            'signals': signals,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'pages': math.ceil(total / limit) if limit else 0,
            }
        }

    def create_signal(self, document: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.create(document)


def get_cms_service() -> CMSService:
    """Build a CMS service from the current app config"""
    from flask import current_app
    cfg = current_app.config
    client = SanityClient(
        project_id=cfg.get('SANITY_PROJECT_ID', ''),
        dataset=cfg.get('SANITY_DATASET', ''),
        api_version=cfg.get('SANITY_API_VERSION', '2023-05-03'),
        token=cfg.get('SANITY_API_TOKEN', ''),
        use_cdn=cfg.get('SANITY_USE_CDN', True),
    )
    return CMSService(client)
