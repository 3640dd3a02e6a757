"""
SignalDesk - Navigation Middleware
Session gate for page routes, plus the payment gate for premium pages
"""
from flask import request, redirect, url_for
from functools import wraps
from urllib.parse import urlencode
import logging

from signaldesk.routes.auth import get_session_claims
from signaldesk.services.auth_provider import session_permission

logger = logging.getLogger(__name__)

PUBLIC_PATHS = {'/', '/favicon.ico', '/unauthorized', '/health', '/pricing'}
PUBLIC_PREFIXES = ('/api', '/static')
AUTH_PREFIXES = ('/sign-in', '/sign-up')

# Path prefix -> session flag that must be True
GATED_PREFIXES = (
    ('/research', 'canAccessResearch'),
    ('/signals', 'canAccessSignals'),
)


def _matches(path, prefix):
    return path == prefix or path.startswith(prefix + '/') or path.startswith(prefix + '?')


def _is_public(path):
    return path in PUBLIC_PATHS or any(_matches(path, p) for p in PUBLIC_PREFIXES)


def navigation_gate():
    """before_request hook; returns a redirect or None to continue"""
    path = request.path

    if _is_public(path):
        return None

    claims = get_session_claims()

    if any(path.startswith(p) for p in AUTH_PREFIXES):
        if claims:
            return redirect('/')
        return None

    if not claims:
        return redirect('/sign-in?' + urlencode({'redirect_url': path}))

    for prefix, permission in GATED_PREFIXES:
        if _matches(path, prefix):
            if not session_permission(claims, permission):
                logger.info(f"{claims.get('sub')} lacks {permission} for {path}")
                return redirect('/unauthorized')
            break

    return None


def init_middleware(app):
    app.before_request(navigation_gate)


def payment_required(f):
    """Page decorator: reconcile payment state, else send the user to /payment-required"""
    @wraps(f)
    def decorated(*args, **kwargs):
        from signaldesk.services.payment_service import get_payment_reconciler

        claims = get_session_claims()
        if not claims:
            return redirect('/sign-in?' + urlencode({'redirect_url': request.path}))

        if not get_payment_reconciler().check_user_payment_status(claims['sub']):
            return redirect(url_for('pages.payment_required_page'))

        return f(*args, **kwargs)

    return decorated
