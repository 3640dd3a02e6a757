"""
SignalDesk - Webhook Service
Processes verified inbound events from BoomFi (payments) and Clerk (users).
Every event is logged by provider event id; redeliveries are acknowledged
without being applied twice.
"""
import json
import logging
from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from signaldesk.database import db
from signaldesk.models.db_models import DBWebhookLog, DBUser, PaymentStatus
from signaldesk.services.db_service import DataService
from signaldesk.services.payment_service import BoomFiService, PaymentProviderError
from signaldesk.services.auth_provider import ClerkService, AuthProviderError

logger = logging.getLogger(__name__)

# Log states a redelivery may pick up again
RETRYABLE_STATUSES = ('received', 'failed')


class WebhookProcessor:
    """Applies provider events to local profiles and mirrors state back to Clerk"""

    def __init__(
        self,
        boomfi: BoomFiService,
        clerk: ClerkService,
        data_service: Optional[DataService] = None
    ):
        self.boomfi = boomfi
        self.clerk = clerk
        self.data_service = data_service or DataService()

    # ==========================================
    # EVENT LOG
    # ==========================================

    def record(self, provider: str, event_id: str, event_type: str, payload: Dict[str, Any]) -> Optional[DBWebhookLog]:
        """
        Insert a log row for this event; None when it was already settled.

        A row left `received` or `failed` by an earlier delivery that never
        finished is handed back so the redelivery applies the event.
        """
        existing = DBWebhookLog.query.filter_by(event_id=event_id).first()
        if existing:
            if existing.status in RETRYABLE_STATUSES:
                logger.info(f"Retrying {provider} event {event_id} (previous status {existing.status})")
                return existing
            return None

        log = DBWebhookLog(
            event_id=event_id,
            event_type=event_type,
            provider=provider,
            payload=json.dumps(payload),
            status='received'
        )
        db.session.add(log)
        try:
            db.session.commit()
        except IntegrityError:
            # Concurrent delivery of the same event won the insert
            db.session.rollback()
            return None
        return log

    def _finish(self, log: DBWebhookLog, status: str, user: Optional[DBUser] = None, error: Optional[str] = None):
        log.status = status
        log.processed_at = datetime.utcnow()
        if user:
            log.user_id = user.id
        log.error_message = error[:1000] if error else None
        db.session.commit()

    def _fail(self, log: DBWebhookLog, error: Exception):
        """Roll back a half-applied event and leave its log row open for redelivery"""
        db.session.rollback()
        log.status = 'failed'
        log.error_message = str(error)[:1000]
        db.session.commit()

    def _sync_premium_metadata(self, user: DBUser, is_premium: bool):
        """Mirror the premium flag into Clerk public metadata; failures are logged only"""
        metadata = user.get_public_metadata()
        metadata['isPremium'] = is_premium
        user.set_public_metadata(metadata)
        db.session.commit()

        try:
            self.clerk.update_user_metadata(user.clerk_user_id, metadata)
        except AuthProviderError as e:
            logger.error(f"Failed to update Clerk metadata for {user.clerk_user_id}: {e}")

    # ==========================================
    # BOOMFI
    # ==========================================

    @staticmethod
    def boomfi_event_id(event: Dict[str, Any]) -> str:
        if event.get('id'):
            return str(event['id'])
        data = event.get('data') or {}
        return f"{event.get('type', 'unknown')}:{data.get('id', '')}"

    def handle_boomfi_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        event_type = event.get('type', 'unknown')
        event_id = self.boomfi_event_id(event)

        log = self.record('boomfi', event_id, event_type, event)
        if log is None:
            logger.info(f"Duplicate BoomFi event {event_id} ignored")
            return {'received': True, 'duplicate': True}

        try:
            self._apply_boomfi_event(log, event_type, event.get('data') or {})
        except SQLAlchemyError as e:
            logger.error(f"Failed to apply BoomFi event {event_id}: {e}")
            self._fail(log, e)
            raise

        return {'received': True, 'duplicate': False}

    def _apply_boomfi_event(self, log: DBWebhookLog, event_type: str, data: Dict[str, Any]):
        if event_type not in ('payment.succeeded', 'subscription.created', 'subscription.updated'):
            self._finish(log, 'ignored')
            return

        user = self.data_service.get_user_by_customer_id(data.get('customer'))
        if not user:
            logger.warning(f"BoomFi {event_type} for unknown customer {data.get('customer')}")
            self._finish(log, 'ignored', error='Unknown customer')
            return

        if event_type == 'payment.succeeded':
            self.data_service.mark_premium(user)
        else:
            status = data.get('status') or PaymentStatus.INACTIVE
            self.data_service.set_payment_state(
                user,
                is_premium=status == 'active',
                payment_status=status,
                subscription_id=data.get('id')
            )

        self._sync_premium_metadata(user, user.is_premium)
        self._finish(log, 'processed', user=user)
        logger.info(f"BoomFi {event_type} applied to {user.clerk_user_id}")

    # ==========================================
    # CLERK
    # ==========================================

    def handle_clerk_event(self, event_id: str, event: Dict[str, Any]) -> Dict[str, Any]:
        event_type = event.get('type', 'unknown')

        log = self.record('clerk', event_id, event_type, event)
        if log is None:
            logger.info(f"Duplicate Clerk event {event_id} ignored")
            return {'received': True, 'duplicate': True}

        try:
            self._apply_clerk_event(log, event_type, event.get('data') or {})
        except SQLAlchemyError as e:
            logger.error(f"Failed to apply Clerk event {event_id}: {e}")
            self._fail(log, e)
            raise

        return {'received': True, 'duplicate': False}

    def _apply_clerk_event(self, log: DBWebhookLog, event_type: str, data: Dict[str, Any]):
        if event_type in ('user.created', 'user.deleted') and not data.get('id'):
            self._finish(log, 'error', error='Event has no user id')
        elif event_type == 'user.created':
            user = self._on_user_created(data)
            self._finish(log, 'processed', user=user)
        elif event_type == 'user.deleted':
            found = self.data_service.deactivate_user(data.get('id'))
            self._finish(log, 'processed' if found else 'ignored')
        else:
            self._finish(log, 'ignored')

    def _on_user_created(self, data: Dict[str, Any]) -> DBUser:
        clerk_user_id = data['id']
        addresses = data.get('email_addresses') or []
        email = addresses[0].get('email_address', '') if addresses else ''
        name = f"{data.get('first_name') or ''} {data.get('last_name') or ''}".strip()

        user = self.data_service.create_user_profile(clerk_user_id, email=email, name=name)

        if not user.boomfi_customer_id:
            try:
                customer = self.boomfi.create_customer(email, name, metadata={'clerkUserId': clerk_user_id})
                self.data_service.set_customer_id(user, customer['id'])
            except (PaymentProviderError, KeyError) as e:
                logger.error(f"Failed to create BoomFi customer for {clerk_user_id}: {e}")

        metadata = user.get_public_metadata()
        metadata.update({
            'boomFiCustomerId': user.boomfi_customer_id,
            'canAccessProducts': False,
            'canAccessResearch': False,
            'isPremium': False,
        })
        user.set_public_metadata(metadata)
        db.session.commit()

        try:
            self.clerk.update_user_metadata(clerk_user_id, metadata)
        except AuthProviderError as e:
            logger.error(f"Failed to set default Clerk metadata for {clerk_user_id}: {e}")

        return user


def get_webhook_processor() -> WebhookProcessor:
    from signaldesk.services.payment_service import get_boomfi_service
    from signaldesk.services.auth_provider import get_clerk_service
    return WebhookProcessor(get_boomfi_service(), get_clerk_service())
