"""
SignalDesk - Payment Tests
"""
from datetime import datetime, timedelta
from unittest.mock import patch, MagicMock

import pytest

from signaldesk.models.db_models import DBUser
from signaldesk.services.payment_service import (
    BoomFiService, PaymentReconciler, PaymentProviderError, _parse_timestamp
)


@pytest.fixture
def boomfi():
    return MagicMock(spec=BoomFiService)


@pytest.fixture
def reconciler(app, boomfi):
    return PaymentReconciler(boomfi)


def reload_user(clerk_user_id):
    return DBUser.query.filter_by(clerk_user_id=clerk_user_id).first()


class TestBoomFiClient:

    @patch('signaldesk.services.payment_service.requests.request')
    def test_payment_link_request(self, mock_request):
        mock_request.return_value = MagicMock(ok=True, json=lambda: {'data': {'url': 'https://pay.boomfi.xyz/abc'}})
        service = BoomFiService('bf_key', base_url='https://api.boomfi.test/')

        link = service.create_payment_link('cus_1', 49, metadata={'clerkUserId': 'user_1'})

        assert link['url'] == 'https://pay.boomfi.xyz/abc'
        kwargs = mock_request.call_args.kwargs
        assert kwargs['method'] == 'POST'
        assert kwargs['url'] == 'https://api.boomfi.test/paylinks'
        assert kwargs['json']['customer'] == 'cus_1'
        assert kwargs['json']['amount'] == 49
        assert kwargs['headers']['Authorization'] == 'Bearer bf_key'

    @patch('signaldesk.services.payment_service.requests.request')
    def test_subscription_lookup(self, mock_request):
        mock_request.return_value = MagicMock(ok=True, json=lambda: {'data': []})
        assert BoomFiService('bf_key').get_active_subscription('cus_1') is None
        assert mock_request.call_args.kwargs['params'] == {'customer': 'cus_1', 'status': 'active'}

    @patch('signaldesk.services.payment_service.requests.request')
    def test_error_response(self, mock_request):
        mock_request.return_value = MagicMock(ok=False, status_code=502, text='bad gateway')
        with pytest.raises(PaymentProviderError) as exc:
            BoomFiService('bf_key').get_successful_payments('cus_1')
        assert exc.value.status_code == 502

    def test_unconfigured(self):
        with pytest.raises(PaymentProviderError):
            BoomFiService('').create_customer('a@example.com')

    def test_parse_timestamp(self):
        assert _parse_timestamp('2024-03-01T12:00:00Z') == datetime(2024, 3, 1, 12, 0)
        assert _parse_timestamp('2024-03-01T14:00:00+02:00') == datetime(2024, 3, 1, 12, 0)
        assert _parse_timestamp(0) == datetime(1970, 1, 1)
        assert _parse_timestamp('yesterday') is None


class TestPaymentStatus:

    def test_no_profile(self, reconciler):
        assert reconciler.check_user_payment_status('user_nobody') is False

    def test_already_premium_skips_provider(self, reconciler, boomfi, make_user):
        make_user('user_p', is_premium=True)
        assert reconciler.check_user_payment_status('user_p') is True
        boomfi.get_active_subscription.assert_not_called()

    def test_no_customer(self, reconciler, boomfi, make_user):
        make_user('user_nc')
        assert reconciler.check_user_payment_status('user_nc') is False
        boomfi.get_active_subscription.assert_not_called()

    def test_active_subscription_promotes(self, reconciler, boomfi, make_user):
        make_user('user_sub', boomfi_customer_id='cus_sub')
        boomfi.get_active_subscription.return_value = {'id': 'sub_42', 'status': 'active'}

        assert reconciler.check_user_payment_status('user_sub') is True
        user = reload_user('user_sub')
        assert user.is_premium is True
        assert user.subscription_id == 'sub_42'

    def test_successful_payment_promotes(self, reconciler, boomfi, make_user):
        make_user('user_once', boomfi_customer_id='cus_once')
        boomfi.get_active_subscription.return_value = None
        boomfi.get_successful_payments.return_value = [{'id': 'pay_1', 'created_at': '2024-05-01T00:00:00Z'}]

        assert reconciler.check_user_payment_status('user_once') is True
        assert reload_user('user_once').last_payment_date == datetime(2024, 5, 1)

    def test_nothing_found(self, reconciler, boomfi, make_user):
        make_user('user_free', boomfi_customer_id='cus_free')
        boomfi.get_active_subscription.return_value = None
        boomfi.get_successful_payments.return_value = []
        assert reconciler.check_user_payment_status('user_free') is False

    def test_provider_error_is_not_premium(self, reconciler, boomfi, make_user):
        make_user('user_err', boomfi_customer_id='cus_err')
        boomfi.get_active_subscription.side_effect = PaymentProviderError('timeout')
        assert reconciler.check_user_payment_status('user_err') is False


class TestRecentPayments:

    def test_unknown_id(self, reconciler):
        assert reconciler.check_recent_payments('cus_ghost') is None

    def test_resolves_by_customer_or_user_id(self, reconciler, boomfi, make_user):
        make_user('user_r', boomfi_customer_id='cus_r')
        boomfi.get_successful_payments.return_value = []
        assert reconciler.check_recent_payments('cus_r')['hasRecentPayments'] is False
        assert reconciler.check_recent_payments('user_r')['hasRecentPayments'] is False

    def test_only_payments_after_since(self, reconciler, boomfi, make_user):
        make_user('user_since', boomfi_customer_id='cus_since')
        boomfi.get_successful_payments.return_value = [{'id': 'pay_old', 'created_at': '2024-01-01T00:00:00Z'}]

        result = reconciler.check_recent_payments('cus_since', since=datetime(2024, 2, 1))
        assert result == {'hasRecentPayments': False, 'isPremium': False, 'lastPaymentDate': None}

        boomfi.get_successful_payments.return_value.append({'id': 'pay_new', 'createdAt': '2024-02-02T00:00:00Z'})
        result = reconciler.check_recent_payments('cus_since', since=datetime(2024, 2, 1))
        assert result['hasRecentPayments'] is True
        assert result['isPremium'] is True
        assert reload_user('user_since').is_premium is True

    def test_premium_short_circuits(self, reconciler, boomfi, make_user):
        make_user('user_pp', boomfi_customer_id='cus_pp', is_premium=True, last_payment_date=datetime(2024, 4, 1))
        result = reconciler.check_recent_payments('cus_pp')
        assert result == {'hasRecentPayments': True, 'isPremium': True, 'lastPaymentDate': '2024-04-01T00:00:00'}
        boomfi.get_successful_payments.assert_not_called()

    def test_provider_error_propagates(self, reconciler, boomfi, make_user):
        make_user('user_down', boomfi_customer_id='cus_down')
        boomfi.get_successful_payments.side_effect = PaymentProviderError('down', 503)
        with pytest.raises(PaymentProviderError):
            reconciler.check_recent_payments('cus_down')


class TestPaymentLink:

    def test_creates_customer_first(self, reconciler, boomfi, make_user):
        make_user('user_link', email='link@example.com', name='Link')
        boomfi.create_customer.return_value = {'id': 'cus_link'}
        boomfi.create_payment_link.return_value = {'url': 'https://pay.example/link'}

        assert reconciler.create_payment_link('user_link', 49) == 'https://pay.example/link'
        boomfi.create_customer.assert_called_once_with('link@example.com', 'Link', metadata={'clerkUserId': 'user_link'})
        assert boomfi.create_payment_link.call_args.args[0] == 'cus_link'
        assert reload_user('user_link').boomfi_customer_id == 'cus_link'

    def test_existing_customer(self, reconciler, boomfi, make_user):
        make_user('user_has', boomfi_customer_id='cus_has')
        boomfi.create_payment_link.return_value = {'url': 'https://pay.example/has'}
        reconciler.create_payment_link('user_has', 49)
        boomfi.create_customer.assert_not_called()

    def test_missing_profile(self, reconciler):
        with pytest.raises(PaymentProviderError) as exc:
            reconciler.create_payment_link('user_nobody', 49)
        assert exc.value.status_code == 404


class TestPaymentRoutes:

    def test_create_requires_session(self, client):
        assert client.post('/api/payment', json={}).status_code == 401

    @patch.object(PaymentReconciler, 'create_payment_link', return_value='https://pay.example/x')
    def test_create_uses_default_amount(self, mock_link, client, auth_headers):
        response = client.post('/api/payment', json={}, headers=auth_headers('user_route'))
        assert response.status_code == 200
        assert response.get_json() == {'url': 'https://pay.example/x'}
        mock_link.assert_called_once_with('user_route', 49)

    def test_create_rejects_zero_amount(self, client, auth_headers):
        response = client.post('/api/payment', json={'amount': 0}, headers=auth_headers())
        assert response.status_code == 400

    def test_create_unknown_user(self, client, auth_headers):
        response = client.post('/api/payment', json={'amount': 10}, headers=auth_headers('user_nobody'))
        assert response.status_code == 404
        assert response.get_json() == {'error': 'User not found'}

    @patch.object(PaymentReconciler, 'create_payment_link', side_effect=PaymentProviderError('boom'))
    def test_create_provider_failure(self, mock_link, client, auth_headers):
        response = client.post('/api/payment', json={'amount': 10}, headers=auth_headers())
        assert response.status_code == 500
        assert response.get_json() == {'error': 'Payment creation failed'}

    def test_status(self, client, auth_headers, make_user):
        make_user('user_status', is_premium=True)
        response = client.get('/api/payment', headers=auth_headers('user_status'))
        assert response.get_json() == {'isPremium': True}

    def test_check_payments_requires_customer(self, client, auth_headers):
        response = client.get('/api/check-payments', headers=auth_headers())
        assert response.status_code == 400
        assert response.get_json() == {'error': 'Customer ID is required'}

    def test_check_payments_rejects_bad_since(self, client, auth_headers):
        for since in ('99999999999999999999', 'yesterday'):
            response = client.get(
                '/api/check-payments',
                query_string={'customerId': 'cus_any', 'since': since},
                headers=auth_headers()
            )
            assert response.status_code == 400
            assert response.get_json() == {'error': 'Invalid since timestamp'}

    @patch.object(BoomFiService, 'get_successful_payments')
    def test_check_payments(self, mock_payments, client, auth_headers, make_user):
        make_user('user_check', boomfi_customer_id='cus_check')
        since = datetime.utcnow() - timedelta(minutes=5)
        mock_payments.return_value = [{'id': 'pay_now', 'created_at': datetime.utcnow().isoformat() + 'Z'}]

        response = client.get(
            '/api/check-payments',
            query_string={'customerId': 'cus_check', 'since': since.isoformat() + 'Z'},
            headers=auth_headers('user_check')
        )

        assert response.status_code == 200
        assert response.get_json()['hasRecentPayments'] is True
        assert response.headers['Cache-Control'].startswith('no-store')
        assert response.headers['Pragma'] == 'no-cache'
        assert response.headers['Expires'] == '0'

    def test_check_payments_unknown(self, client, auth_headers):
        response = client.get('/api/check-payments', query_string={'customerId': 'cus_none'}, headers=auth_headers())
        assert response.status_code == 404

    @patch.object(BoomFiService, 'get_successful_payments', side_effect=PaymentProviderError('down'))
    def test_check_payments_provider_down(self, mock_payments, client, auth_headers, make_user):
        make_user('user_down', boomfi_customer_id='cus_down')
        response = client.get('/api/check-payments', query_string={'customerId': 'cus_down'}, headers=auth_headers())
        assert response.status_code == 500
