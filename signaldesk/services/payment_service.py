"""
SignalDesk - Payment Service
BoomFi crypto payments: customers, payment links, subscription lookups,
webhook signatures, and reconciliation of premium state onto local profiles
"""
import hmac
import hashlib
import logging
import requests
from datetime import datetime, timezone
from typing import Optional, Dict, List, Any

from signaldesk.models.db_models import DBUser, PaymentStatus
from signaldesk.services.db_service import DataService

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    """Raised when BoomFi is unconfigured, unreachable, or rejects a request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BoomFiService:
    """
    BoomFi REST API client

    All list endpoints answer with `{"data": [...]}`.
    """

    def __init__(self, api_key: str, base_url: str = 'https://api.boomfi.xyz', webhook_secret: str = '', timeout: int = 15):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.webhook_secret = webhook_secret
        self.timeout = timeout

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _request(self, method: str, endpoint: str, params: dict = None, data: dict = None) -> dict:
        if not self.api_key:
            raise PaymentProviderError('BOOMFI_API_KEY not configured')

        url = f"{self.base_url}{endpoint}"
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json'
        }

        try:
            response = requests.request(
                method=method,
                url=url,
                params=params,
                json=data,
                headers=headers,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise PaymentProviderError(f'BoomFi request failed: {e}')

        if not response.ok:
            raise PaymentProviderError(
                f'BoomFi {method} {endpoint} failed: {response.text[:200]}',
                response.status_code
            )

        return response.json()

    def create_customer(self, email: str, name: str = '', metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Create a BoomFi customer; returns the provider record (with `id`)"""
        result = self._request('POST', '/customers', data={
            'email': email,
            'name': name,
            'metadata': metadata or {}
        })
        return result.get('data', result)

    def create_payment_link(
        self,
        customer_id: str,
        amount: float,
        currency: str = 'USD',
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Create a hosted pay link; returns the provider record (with `url`)"""
        result = self._request('POST', '/paylinks', data={
            'customer': customer_id,
            'amount': amount,
            'currency': currency,
            'metadata': metadata or {}
        })
        return result.get('data', result)

    def get_active_subscription(self, customer_id: str) -> Optional[Dict[str, Any]]:
        result = self._request('GET', '/subscriptions', params={
            'customer': customer_id,
            'status': 'active'
        })
        subscriptions = result.get('data') or []
        return subscriptions[0] if subscriptions else None

    def get_successful_payments(self, customer_id: str) -> List[Dict[str, Any]]:
        result = self._request('GET', '/payments', params={
            'customer': customer_id,
            'status': 'success'
        })
        return result.get('data') or []

    def verify_webhook_signature(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """HMAC-SHA256 of the raw body, hex encoded, compared in constant time"""
        if not self.webhook_secret or not signature:
            return False
        if isinstance(raw_body, str):
            raw_body = raw_body.encode('utf-8')

        expected = hmac.new(
            self.webhook_secret.encode('utf-8'),
            raw_body,
            hashlib.sha256
        ).hexdigest()
        return hmac.compare_digest(expected, signature.strip())


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_timestamp(value) -> Optional[datetime]:
    """BoomFi timestamps arrive as ISO-8601 strings or epoch seconds"""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class PaymentReconciler:
    """
    Copies BoomFi's view of a customer onto the local profile.

    The local `is_premium` flag is a cache of the provider's state; every
    successful lookup overwrites it (last write wins).
    """

    def __init__(self, boomfi: BoomFiService, data_service: Optional[DataService] = None):
        self.boomfi = boomfi
        self.data_service = data_service or DataService()

    def check_user_payment_status(self, clerk_user_id: str) -> bool:
        user = self.data_service.get_user_by_clerk_id(clerk_user_id)
        if not user:
            logger.info(f"No profile for {clerk_user_id}")
            return False

        if user.is_premium:
            return True

        if not user.boomfi_customer_id:
            return False

        try:
            subscription = self.boomfi.get_active_subscription(user.boomfi_customer_id)
            if subscription:
                self.data_service.mark_premium(user, subscription_id=subscription.get('id'))
                return True

            payments = self.boomfi.get_successful_payments(user.boomfi_customer_id)
            if payments:
                self.data_service.set_payment_state(
                    user,
                    is_premium=True,
                    payment_status=PaymentStatus.ACTIVE,
                    paid_at=_parse_timestamp(payments[0].get('created_at') or payments[0].get('createdAt')) or datetime.utcnow()
                )
                return True
        except PaymentProviderError as e:
            logger.error(f"Payment status check failed for {clerk_user_id}: {e}")

        return False

    def _resolve_user(self, customer_or_user_id: str) -> Optional[DBUser]:
        return (
            self.data_service.get_user_by_customer_id(customer_or_user_id)
            or self.data_service.get_user_by_clerk_id(customer_or_user_id)
        )

    def check_recent_payments(self, customer_or_user_id: str, since: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """
        Look for successful payments made after `since`.

        Accepts either a BoomFi customer id or a Clerk user id; returns None
        when neither matches a profile. Raises PaymentProviderError when BoomFi
        cannot be queried.
        """
        user = self._resolve_user(customer_or_user_id)
        if not user:
            return None

        if user.is_premium:
            return {
                'hasRecentPayments': True,
                'isPremium': True,
                'lastPaymentDate': _isoformat(user.last_payment_date)
            }

        customer_id = user.boomfi_customer_id or customer_or_user_id
        payments = self.boomfi.get_successful_payments(customer_id)

        recent = []
        for payment in payments:
            created = _parse_timestamp(payment.get('created_at') or payment.get('createdAt'))
            if since is None or (created and created > since):
                recent.append(payment)

        if recent:
            self.data_service.mark_premium(user)
            logger.info(f"Recent payment found for {user.clerk_user_id}")

        return {
            'hasRecentPayments': bool(recent),
            'isPremium': user.is_premium,
            'lastPaymentDate': _isoformat(user.last_payment_date)
        }

    def create_payment_link(self, clerk_user_id: str, amount: float, currency: str = 'USD') -> str:
        """Return a pay link URL, creating the BoomFi customer on first use"""
        user = self.data_service.get_user_by_clerk_id(clerk_user_id)
        if not user:
            raise PaymentProviderError('User profile not found', 404)

        if not user.boomfi_customer_id:
            customer = self.boomfi.create_customer(
                user.email,
                user.name,
                metadata={'clerkUserId': clerk_user_id}
            )
            self.data_service.set_customer_id(user, customer['id'])

        link = self.boomfi.create_payment_link(
            user.boomfi_customer_id,
            amount,
            currency=currency,
            metadata={'clerkUserId': clerk_user_id}
        )
        url = link.get('url')
        if not url:
            raise PaymentProviderError('BoomFi did not return a payment URL')
        return url


def get_boomfi_service() -> BoomFiService:
    from flask import current_app
    cfg = current_app.config
    return BoomFiService(
        api_key=cfg.get('BOOMFI_API_KEY', ''),
        base_url=cfg.get('BOOMFI_API_URL', 'https://api.boomfi.xyz'),
        webhook_secret=cfg.get('BOOMFI_WEBHOOK_SECRET', '')
    )


def get_payment_reconciler() -> PaymentReconciler:
    return PaymentReconciler(get_boomfi_service())
