"""
SignalDesk - Auth Provider
Clerk integration: session token verification, svix-signed webhooks
and user metadata updates through the Clerk backend API
"""
import hmac
import json
import time
import base64
import hashlib
import logging
import requests
import jwt
from typing import Optional, Dict, Any, List, Mapping

logger = logging.getLogger(__name__)

WEBHOOK_TOLERANCE_SECONDS = 5 * 60


class AuthProviderError(Exception):
    """Raised for invalid tokens, bad webhook signatures and failed Clerk API calls"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ClerkService:
    """Clerk backend client"""

    def __init__(
        self,
        secret_key: str = '',
        jwt_key: str = '',
        jwt_algorithms: Optional[List[str]] = None,
        webhook_secret: str = '',
        api_url: str = 'https://api.clerk.com/v1',
        timeout: int = 15
    ):
        self.secret_key = secret_key
        self.jwt_key = jwt_key
        self.jwt_algorithms = jwt_algorithms or ['RS256']
        self.webhook_secret = webhook_secret
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout

    # ==========================================
    # SESSIONS
    # ==========================================

    def verify_session_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a Clerk session JWT and return its claims.

        Claims of interest: `sub` (user id), `publicMetadata`, `unsafeMetadata`.
        """
        if not token:
            raise AuthProviderError('Session token is missing', 401)
        if not self.jwt_key:
            raise AuthProviderError('CLERK_JWT_KEY not configured', 500)

        try:
            claims = jwt.decode(
                token,
                self.jwt_key,
                algorithms=self.jwt_algorithms,
                options={'require': ['sub', 'exp']}
            )
        except jwt.ExpiredSignatureError:
            raise AuthProviderError('Session has expired', 401)
        except jwt.InvalidTokenError as e:
            raise AuthProviderError(f'Invalid session token: {e}', 401)

        return claims

    # ==========================================
    # WEBHOOKS (svix)
    # ==========================================

    def _webhook_key(self) -> bytes:
        secret = self.webhook_secret
        if secret.startswith('whsec_'):
            secret = secret[len('whsec_'):]
        return base64.b64decode(secret)

    def sign_webhook(self, msg_id: str, timestamp: int, body: str) -> str:
        """Signature header value for a payload, in svix `v1,<base64>` form"""
        content = f"{msg_id}.{timestamp}.{body}".encode('utf-8')
        digest = hmac.new(self._webhook_key(), content, hashlib.sha256).digest()
        return f"v1,{base64.b64encode(digest).decode('utf-8')}"

    def verify_webhook(self, raw_body: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
        """Check svix headers against the body and return the parsed event"""
        if not self.webhook_secret:
            raise AuthProviderError('CLERK_WEBHOOK_SECRET not configured', 500)

        msg_id = headers.get('svix-id')
        timestamp = headers.get('svix-timestamp')
        signature_header = headers.get('svix-signature')
        if not msg_id or not timestamp or not signature_header:
            raise AuthProviderError('Missing svix headers', 400)

        try:
            ts = int(timestamp)
        except ValueError:
            raise AuthProviderError('Invalid svix timestamp', 400)
        if abs(time.time() - ts) > WEBHOOK_TOLERANCE_SECONDS:
            raise AuthProviderError('Webhook timestamp outside tolerance', 400)

        try:
            body = raw_body.decode('utf-8') if isinstance(raw_body, bytes) else raw_body
        except UnicodeDecodeError:
            raise AuthProviderError('Webhook body is not valid UTF-8', 400)
        expected = self.sign_webhook(msg_id, ts, body).split(',', 1)[1]

        for entry in signature_header.split(' '):
            version, _, candidate = entry.partition(',')
            if version == 'v1' and hmac.compare_digest(candidate, expected):
                try:
                    return json.loads(body)
                except json.JSONDecodeError:
                    raise AuthProviderError('Webhook body is not JSON', 400)

        raise AuthProviderError('Invalid webhook signature', 400)

    # ==========================================
    # BACKEND API
    # ==========================================

    def _request(self, method: str, endpoint: str, data: dict = None) -> dict:
        if not self.secret_key:
            raise AuthProviderError('CLERK_SECRET_KEY not configured', 500)

        try:
            response = requests.request(
                method=method,
                url=f"{self.api_url}{endpoint}",
                json=data,
                headers={
                    'Authorization': f'Bearer {self.secret_key}',
                    'Content-Type': 'application/json'
                },
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise AuthProviderError(f'Clerk request failed: {e}')

        if not response.ok:
            raise AuthProviderError(
                f'Clerk {method} {endpoint} failed: {response.text[:200]}',
                response.status_code
            )
        return response.json()

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/users/{user_id}')

    def update_user_metadata(self, user_id: str, public_metadata: Dict[str, Any]) -> Dict[str, Any]:
        """Merge keys into the user's public metadata"""
        return self._request('PATCH', f'/users/{user_id}/metadata', data={
            'public_metadata': public_metadata
        })


def session_permission(
    claims: Optional[Dict[str, Any]],
    permission: str,
    sources=('publicMetadata', 'unsafeMetadata')
) -> bool:
    """True only when the flag is literally True in one of the metadata sources"""
    if not claims or not permission:
        return False
    for key in sources:
        metadata = claims.get(key) or {}
        if isinstance(metadata, dict) and metadata.get(permission) is True:
            return True
    return False


def get_clerk_service() -> ClerkService:
    from flask import current_app
    cfg = current_app.config
    return ClerkService(
        secret_key=cfg.get('CLERK_SECRET_KEY', ''),
        jwt_key=cfg.get('CLERK_JWT_KEY', ''),
        jwt_algorithms=cfg.get('CLERK_JWT_ALGORITHMS'),
        webhook_secret=cfg.get('CLERK_WEBHOOK_SECRET', ''),
        api_url=cfg.get('CLERK_API_URL', 'https://api.clerk.com/v1'),
    )
