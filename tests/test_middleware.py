"""
SignalDesk - Navigation Gate Tests
"""
from unittest.mock import patch

import pytest

from signaldesk.services.cms_service import SanityClient
from signaldesk.services.payment_service import PaymentReconciler


@pytest.fixture
def sanity():
    with patch.object(SanityClient, 'fetch', return_value=[]) as mocked:
        yield mocked


def sign_in(client, make_session_token, **kwargs):
    client.set_cookie('__session', make_session_token(**kwargs))


class TestPublicPages:

    def test_home(self, client, sanity):
        response = client.get('/')
        assert response.status_code == 200

    def test_pricing(self, client):
        response = client.get('/pricing')
        assert response.status_code == 200
        assert b'49' in response.data

    def test_unauthorized_page(self, client):
        assert client.get('/unauthorized').status_code == 403

    def test_api_is_not_gated(self, client):
        assert client.get('/api/chains').status_code == 200


class TestSignedOut:

    def test_redirect_to_sign_in(self, client):
        response = client.get('/research')
        assert response.status_code == 302
        assert response.headers['Location'] == '/sign-in?redirect_url=%2Fresearch'

    def test_nested_path_keeps_redirect(self, client):
        response = client.get('/signals/archive')
        assert response.headers['Location'] == '/sign-in?redirect_url=%2Fsignals%2Farchive'

    def test_sign_in_page_open(self, client):
        response = client.get('/sign-in?redirect_url=/research')
        assert response.status_code == 200

    def test_invalid_cookie_is_signed_out(self, client):
        client.set_cookie('__session', 'not-a-jwt')
        assert client.get('/research').status_code == 302


class TestSignedIn:

    def test_auth_pages_bounce_home(self, client, make_session_token):
        sign_in(client, make_session_token)
        for path in ('/sign-in', '/sign-up'):
            response = client.get(path)
            assert response.status_code == 302
            assert response.headers['Location'] == '/'

    def test_research_requires_flag(self, client, make_session_token):
        sign_in(client, make_session_token)
        response = client.get('/research')
        assert response.status_code == 302
        assert response.headers['Location'] == '/unauthorized'

    def test_research_with_flag(self, client, make_session_token):
        sign_in(client, make_session_token, public_metadata={'canAccessResearch': True})
        assert client.get('/research').status_code == 200

    def test_signals_flag_from_unsafe_metadata(self, client, make_session_token, sanity):
        sign_in(client, make_session_token, unsafe_metadata={'canAccessSignals': True})
        assert client.get('/signals').status_code == 200

    def test_flag_must_be_true(self, client, make_session_token):
        sign_in(client, make_session_token, public_metadata={'canAccessSignals': 'true'})
        assert client.get('/signals').headers['Location'] == '/unauthorized'

    def test_research_flag_does_not_open_signals(self, client, make_session_token):
        sign_in(client, make_session_token, public_metadata={'canAccessResearch': True})
        assert client.get('/signals').headers['Location'] == '/unauthorized'


class TestPaymentGate:

    def test_unpaid_redirects(self, client, make_session_token, make_user):
        make_user('user_test123')
        sign_in(client, make_session_token)
        response = client.get('/premium')
        assert response.status_code == 302
        assert response.headers['Location'] == '/payment-required'

    def test_paid_user(self, client, make_session_token, make_user):
        make_user('user_test123', is_premium=True)
        sign_in(client, make_session_token)
        assert client.get('/premium').status_code == 200

    @patch.object(PaymentReconciler, 'check_user_payment_status', return_value=True)
    def test_reconciled_on_visit(self, mock_check, client, make_session_token):
        sign_in(client, make_session_token, user_id='user_fresh')
        assert client.get('/premium').status_code == 200
        mock_check.assert_called_once_with('user_fresh')

    def test_payment_required_page(self, client, make_session_token):
        sign_in(client, make_session_token)
        assert client.get('/payment-required').status_code == 402
