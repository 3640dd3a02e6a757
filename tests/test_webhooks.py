"""
SignalDesk - Webhook Tests
"""
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from signaldesk.config import TestingConfig
from signaldesk.models.db_models import DBUser, DBWebhookLog
from signaldesk.services.auth_provider import ClerkService, AuthProviderError
from signaldesk.services.payment_service import BoomFiService, PaymentProviderError
from signaldesk.services.db_service import DataService
from signaldesk.services.webhook_service import WebhookProcessor

from conftest import boomfi_signature, svix_headers, to_json


@pytest.fixture
def clerk_api():
    with patch.object(ClerkService, 'update_user_metadata', return_value={}) as mocked:
        yield mocked


def post_boomfi(client, payload, signature=None):
    body = to_json(payload).encode('utf-8')
    return client.post(
        '/api/webhooks/boomfi',
        data=body,
        headers={
            'Content-Type': 'application/json',
            'BoomFi-Signature': signature if signature is not None else boomfi_signature(body),
        }
    )


def post_clerk(client, msg_id, payload):
    body = to_json(payload)
    return client.post('/api/webhooks/clerk', data=body, headers=svix_headers(msg_id, body))


class TestBoomFiSignature:

    def test_verify(self):
        service = BoomFiService('key', webhook_secret=TestingConfig.BOOMFI_WEBHOOK_SECRET)
        body = b'{"type":"payment.succeeded"}'
        assert service.verify_webhook_signature(body, boomfi_signature(body))
        assert not service.verify_webhook_signature(body, '0' * 64)
        assert not service.verify_webhook_signature(body, None)

    def test_no_secret_rejects_everything(self):
        assert not BoomFiService('key').verify_webhook_signature(b'{}', 'anything')

    def test_route_rejects_bad_signature(self, client, make_user):
        user = make_user('user_sig', boomfi_customer_id='cus_sig')
        response = post_boomfi(client, {'type': 'payment.succeeded', 'data': {'customer': 'cus_sig'}}, signature='bad')
        assert response.status_code == 401
        assert response.get_json() == {'error': 'Invalid signature'}
        assert DBUser.query.filter_by(id=user.id).first().is_premium is False
        assert DBWebhookLog.query.count() == 0

    def test_route_rejects_non_json(self, client):
        body = b'not json'
        response = client.post('/api/webhooks/boomfi', data=body, headers={'BoomFi-Signature': boomfi_signature(body)})
        assert response.status_code == 400


class TestBoomFiEvents:

    def test_payment_succeeded(self, client, make_user, clerk_api):
        make_user('user_pay', boomfi_customer_id='cus_pay')
        response = post_boomfi(client, {
            'id': 'evt_1',
            'type': 'payment.succeeded',
            'data': {'id': 'pay_1', 'customer': 'cus_pay'}
        })

        assert response.status_code == 200
        assert response.get_json() == {'received': True, 'duplicate': False}

        user = DBUser.query.filter_by(clerk_user_id='user_pay').first()
        assert user.is_premium is True
        assert user.payment_status == 'active'
        assert user.last_payment_date is not None
        assert user.get_public_metadata()['isPremium'] is True
        clerk_api.assert_called_once()

        log = DBWebhookLog.query.filter_by(event_id='evt_1').first()
        assert log.status == 'processed'
        assert log.user_id == user.id

    def test_duplicate_applied_once(self, client, make_user, clerk_api):
        make_user('user_dup', boomfi_customer_id='cus_dup')
        payload = {'id': 'evt_dup', 'type': 'payment.succeeded', 'data': {'customer': 'cus_dup'}}

        first = post_boomfi(client, payload)
        second = post_boomfi(client, payload)

        assert first.get_json()['duplicate'] is False
        assert second.status_code == 200
        assert second.get_json()['duplicate'] is True
        assert DBWebhookLog.query.count() == 1
        assert clerk_api.call_count == 1

    def test_failed_delivery_applied_on_redelivery(self, client, make_user, clerk_api):
        make_user('user_flaky', boomfi_customer_id='cus_flaky')
        payload = {'id': 'evt_flaky', 'type': 'payment.succeeded', 'data': {'customer': 'cus_flaky'}}

        with patch.object(DataService, 'mark_premium', side_effect=OperationalError('UPDATE', {}, Exception('db down'))):
            first = post_boomfi(client, payload)

        assert first.status_code == 500
        log = DBWebhookLog.query.filter_by(event_id='evt_flaky').first()
        assert log.status == 'failed'
        assert DBUser.query.filter_by(clerk_user_id='user_flaky').first().is_premium is False

        second = post_boomfi(client, payload)
        assert second.status_code == 200
        assert second.get_json() == {'received': True, 'duplicate': False}
        assert DBUser.query.filter_by(clerk_user_id='user_flaky').first().is_premium is True

        log = DBWebhookLog.query.filter_by(event_id='evt_flaky').first()
        assert log.status == 'processed'
        assert log.error_message is None
        assert DBWebhookLog.query.count() == 1

        assert post_boomfi(client, payload).get_json()['duplicate'] is True

    def test_event_without_id_uses_type_and_object(self, client, make_user, clerk_api):
        make_user('user_noid', boomfi_customer_id='cus_noid')
        payload = {'type': 'subscription.created', 'data': {'id': 'sub_9', 'customer': 'cus_noid', 'status': 'active'}}
        post_boomfi(client, payload)
        assert post_boomfi(client, payload).get_json()['duplicate'] is True
        assert DBWebhookLog.query.first().event_id == 'subscription.created:sub_9'

    def test_subscription_canceled(self, client, make_user, clerk_api):
        make_user('user_cancel', boomfi_customer_id='cus_cancel', is_premium=True, payment_status='active')
        post_boomfi(client, {
            'id': 'evt_cancel',
            'type': 'subscription.updated',
            'data': {'id': 'sub_1', 'customer': 'cus_cancel', 'status': 'canceled'}
        })

        user = DBUser.query.filter_by(clerk_user_id='user_cancel').first()
        assert user.is_premium is False
        assert user.payment_status == 'canceled'
        assert user.subscription_id == 'sub_1'

    def test_unknown_customer_acknowledged(self, client, clerk_api):
        response = post_boomfi(client, {'id': 'evt_x', 'type': 'payment.succeeded', 'data': {'customer': 'cus_ghost'}})
        assert response.status_code == 200
        log = DBWebhookLog.query.filter_by(event_id='evt_x').first()
        assert log.status == 'ignored'
        assert log.error_message == 'Unknown customer'
        clerk_api.assert_not_called()

    def test_other_event_types_ignored(self, client, make_user):
        make_user('user_other', boomfi_customer_id='cus_other')
        post_boomfi(client, {'id': 'evt_inv', 'type': 'invoice.created', 'data': {'customer': 'cus_other'}})
        assert DBWebhookLog.query.filter_by(event_id='evt_inv').first().status == 'ignored'
        assert DBUser.query.filter_by(clerk_user_id='user_other').first().is_premium is False

    def test_clerk_failure_does_not_fail_delivery(self, client, make_user):
        make_user('user_clerkdown', boomfi_customer_id='cus_cd')
        with patch.object(ClerkService, 'update_user_metadata', side_effect=AuthProviderError('down', 503)):
            response = post_boomfi(client, {'id': 'evt_cd', 'type': 'payment.succeeded', 'data': {'customer': 'cus_cd'}})
        assert response.status_code == 200
        assert DBUser.query.filter_by(clerk_user_id='user_clerkdown').first().is_premium is True


class TestClerkEvents:

    @patch.object(BoomFiService, 'create_customer', return_value={'id': 'cus_new'})
    def test_user_created(self, mock_customer, client, clerk_api):
        response = post_clerk(client, 'msg_created', {
            'type': 'user.created',
            'data': {
                'id': 'user_new',
                'first_name': 'Ada',
                'last_name': 'Lovelace',
                'email_addresses': [{'email_address': 'Ada@Example.com'}]
            }
        })

        assert response.status_code == 200
        user = DBUser.query.filter_by(clerk_user_id='user_new').first()
        assert user.email == 'ada@example.com'
        assert user.name == 'Ada Lovelace'
        assert user.boomfi_customer_id == 'cus_new'

        mock_customer.assert_called_once_with('Ada@Example.com', 'Ada Lovelace', metadata={'clerkUserId': 'user_new'})
        clerk_api.assert_called_once_with('user_new', {
            'boomFiCustomerId': 'cus_new',
            'canAccessProducts': False,
            'canAccessResearch': False,
            'isPremium': False,
        })

    @patch.object(BoomFiService, 'create_customer', side_effect=PaymentProviderError('down'))
    def test_user_created_without_boomfi(self, mock_customer, client, clerk_api):
        response = post_clerk(client, 'msg_nobf', {
            'type': 'user.created',
            'data': {'id': 'user_nobf', 'email_addresses': []}
        })
        assert response.status_code == 200
        user = DBUser.query.filter_by(clerk_user_id='user_nobf').first()
        assert user is not None
        assert user.boomfi_customer_id is None

    @patch.object(BoomFiService, 'create_customer', return_value={'id': 'cus_once'})
    def test_redelivery_creates_one_profile(self, mock_customer, client, clerk_api):
        payload = {'type': 'user.created', 'data': {'id': 'user_once', 'email_addresses': []}}
        post_clerk(client, 'msg_once', payload)
        response = post_clerk(client, 'msg_once', payload)

        assert response.get_json()['duplicate'] is True
        assert DBUser.query.filter_by(clerk_user_id='user_once').count() == 1
        assert mock_customer.call_count == 1

    @patch.object(BoomFiService, 'create_customer', return_value={'id': 'cus_retry'})
    def test_failed_user_created_applied_on_redelivery(self, mock_customer, client, clerk_api):
        payload = {'type': 'user.created', 'data': {'id': 'user_retry', 'email_addresses': []}}

        with patch.object(DataService, 'create_user_profile', side_effect=OperationalError('INSERT', {}, Exception('db down'))):
            assert post_clerk(client, 'msg_retry', payload).status_code == 500
        assert DBUser.query.filter_by(clerk_user_id='user_retry').first() is None

        response = post_clerk(client, 'msg_retry', payload)
        assert response.get_json()['duplicate'] is False
        assert DBUser.query.filter_by(clerk_user_id='user_retry').first().boomfi_customer_id == 'cus_retry'
        assert DBWebhookLog.query.filter_by(event_id='msg_retry').first().status == 'processed'

    def test_user_deleted(self, client, make_user):
        make_user('user_gone')
        response = post_clerk(client, 'msg_deleted', {'type': 'user.deleted', 'data': {'id': 'user_gone'}})
        assert response.status_code == 200
        assert DBUser.query.filter_by(clerk_user_id='user_gone').first().is_active is False

    def test_missing_user_id(self, client):
        response = post_clerk(client, 'msg_bad', {'type': 'user.created', 'data': {}})
        assert response.status_code == 200
        assert DBWebhookLog.query.filter_by(event_id='msg_bad').first().status == 'error'

    def test_bad_svix_signature(self, client):
        body = to_json({'type': 'user.deleted', 'data': {'id': 'user_1'}})
        headers = svix_headers('msg_forged', body)
        response = client.post('/api/webhooks/clerk', data=body.replace('user_1', 'user_2'), headers=headers)
        assert response.status_code == 400
        assert DBWebhookLog.query.count() == 0


class TestWebhookProcessor:

    def test_record_settled_and_unsettled_events(self, app):
        processor = WebhookProcessor(BoomFiService(''), ClerkService())
        log = processor.record('boomfi', 'evt_r', 'payment.succeeded', {})
        assert log is not None

        # Still `received`: a redelivery gets the same row back
        assert processor.record('boomfi', 'evt_r', 'payment.succeeded', {}).id == log.id

        processor._finish(log, 'processed')
        assert processor.record('boomfi', 'evt_r', 'payment.succeeded', {}) is None
