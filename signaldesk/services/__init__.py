"""
SignalDesk - Services
Provider clients (Sanity, Clerk, BoomFi, CoinGecko) and local data services
"""
from signaldesk.services.cms_service import CMSError, SanityClient, CMSService, get_cms_service
from signaldesk.services.payment_service import (
    PaymentProviderError, BoomFiService, PaymentReconciler, get_payment_reconciler
)
from signaldesk.services.auth_provider import AuthProviderError, ClerkService, session_permission, get_clerk_service
from signaldesk.services.price_service import PriceService, PriceServiceError, get_price_service
from signaldesk.services.cache_service import CacheService, get_cache_service

__all__ = [
    'CMSError',
    'SanityClient',
    'CMSService',
    'get_cms_service',
    'PaymentProviderError',
    'BoomFiService',
    'PaymentReconciler',
    'get_payment_reconciler',
    'AuthProviderError',
    'ClerkService',
    'session_permission',
    'get_clerk_service',
    'PriceService',
    'PriceServiceError',
    'get_price_service',
    'CacheService',
    'get_cache_service',
]
