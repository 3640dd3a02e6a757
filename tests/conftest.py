"""
SignalDesk - Test Fixtures
"""
import time
import json
import hmac
import base64
import hashlib

import jwt
import pytest

from signaldesk import create_app
from signaldesk.config import TestingConfig
from signaldesk.database import db
from signaldesk.limiter import limiter
from signaldesk.models.db_models import DBUser


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        limiter.reset()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    return db.session


@pytest.fixture
def make_session_token():
    """Build an HS256 session token shaped like a Clerk session JWT"""
    def _make(user_id='user_test123', public_metadata=None, unsafe_metadata=None, expires_in=3600):
        now = int(time.time())
        claims = {
            'sub': user_id,
            'iat': now,
            'exp': now + expires_in,
            'publicMetadata': public_metadata or {},
            'unsafeMetadata': unsafe_metadata or {},
        }
        return jwt.encode(claims, TestingConfig.CLERK_JWT_KEY, algorithm='HS256')
    return _make


@pytest.fixture
def auth_headers(make_session_token):
    def _headers(user_id='user_test123', **kwargs):
        return {'Authorization': f'Bearer {make_session_token(user_id, **kwargs)}'}
    return _headers


@pytest.fixture
def make_user(db_session):
    def _make(clerk_user_id='user_test123', email='trader@example.com', **kwargs):
        user = DBUser(clerk_user_id=clerk_user_id, email=email, **kwargs)
        db_session.add(user)
        db_session.commit()
        return user
    return _make


def boomfi_signature(body: bytes) -> str:
    return hmac.new(
        TestingConfig.BOOMFI_WEBHOOK_SECRET.encode('utf-8'),
        body,
        hashlib.sha256
    ).hexdigest()


def svix_headers(msg_id: str, body: str, timestamp: int = None) -> dict:
    timestamp = int(time.time()) if timestamp is None else timestamp
    key = base64.b64decode(TestingConfig.CLERK_WEBHOOK_SECRET[len('whsec_'):])
    digest = hmac.new(key, f"{msg_id}.{timestamp}.{body}".encode('utf-8'), hashlib.sha256).digest()
    return {
        'svix-id': msg_id,
        'svix-timestamp': str(timestamp),
        'svix-signature': f"v1,{base64.b64encode(digest).decode('utf-8')}",
        'Content-Type': 'application/json',
    }


def to_json(payload) -> str:
    return json.dumps(payload, separators=(',', ':'))
