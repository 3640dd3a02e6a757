"""
SignalDesk - Authentication Routes
Clerk session handling, permission checks and entitlement lookups
"""
from flask import Blueprint, request, jsonify
from functools import wraps
import logging

from sqlalchemy.exc import SQLAlchemyError

from signaldesk.models.access import Role
from signaldesk.services.db_service import DataService
from signaldesk.services.auth_provider import get_clerk_service, session_permission, AuthProviderError
from signaldesk.services.access_service import get_user_access, check_content_access

logger = logging.getLogger(__name__)
auth_bp = Blueprint('auth', __name__)

SESSION_COOKIE = '__session'
SESSION_ENV_KEY = 'signaldesk.session_claims'

# Session metadata flags the navigation gate and check-permission read
ACCESS_FLAGS = ('canAccessProducts', 'canAccessResearch', 'canAccessSignals')


def get_session_token():
    """Bearer token from the Authorization header, else the Clerk session cookie"""
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header.split(' ', 1)[1].strip()
    return request.cookies.get(SESSION_COOKIE)


def get_session_claims():
    """Verified session claims for this request, or None when signed out"""
    if SESSION_ENV_KEY in request.environ:
        return request.environ[SESSION_ENV_KEY]

    claims = None
    token = get_session_token()
    if token:
        try:
            claims = get_clerk_service().verify_session_token(token)
        except AuthProviderError as e:
            logger.info(f"Rejected session token: {e}")

    request.environ[SESSION_ENV_KEY] = claims
    return claims


def session_required(f):
    """Decorator to require a valid Clerk session; passes the claims"""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = get_session_token()
        if not token:
            return jsonify({'error': 'Unauthorized'}), 401

        try:
            session = get_clerk_service().verify_session_token(token)
        except AuthProviderError as e:
            return jsonify({'error': 'Unauthorized', 'message': str(e)}), 401

        request.environ[SESSION_ENV_KEY] = session
        return f(session, *args, **kwargs)

    return decorated


def optional_session(f):
    """Decorator that passes the session claims, or None when signed out"""
    @wraps(f)
    def decorated(*args, **kwargs):
        return f(get_session_claims(), *args, **kwargs)

    return decorated


def roles_required(*roles):
    """Decorator to require one of the given profile roles"""
    allowed = {Role.parse(r) for r in roles}

    def decorator(f):
        @wraps(f)
        @session_required
        def decorated(session, *args, **kwargs):
            access = get_user_access(session['sub'])
            if access.role not in allowed:
                return jsonify({'error': 'Forbidden', 'message': 'Insufficient permissions'}), 403
            return f(session, *args, **kwargs)
        return decorated

    return decorator


@auth_bp.route('/check-permission', methods=['POST'])
@session_required
def check_permission(session):
    """
    Check a boolean permission flag on the caller's session

    POST /api/auth/check-permission
    {
        "permission": "canAccessSignals"
    }
    """
    data = request.get_json(silent=True) or {}
    permission = data.get('permission')
    if not permission:
        return jsonify({'error': 'Permission not specified'}), 400

    return jsonify({
        'hasPermission': session_permission(session, permission, sources=('unsafeMetadata',))
    })


@auth_bp.route('/check-access', methods=['POST'])
@optional_session
def check_access(session):
    """
    Evaluate the caller's access to a content item

    POST /api/auth/check-access
    {
        "accessLevel": "premium",
        "premium": false
    }
    """
    content = request.get_json(silent=True) or {}
    user_id = session['sub'] if session else None
    return jsonify(check_content_access(user_id, content).to_dict())


@auth_bp.route('/access', methods=['GET'])
@optional_session
def get_access(session):
    """Caller's role, subscription and capability flags"""
    user_id = session['sub'] if session else None
    return jsonify(get_user_access(user_id).to_dict())


@auth_bp.route('/users/<user_id>/permissions', methods=['PUT'])
@roles_required('admin')
def update_permissions(session, user_id):
    """
    Grant or revoke a user's access flags (admin only)

    PUT /api/auth/users/user_123/permissions
    {
        "canAccessResearch": true,
        "canAccessSignals": false
    }
    """
    data = request.get_json(silent=True) or {}

    unknown = sorted(set(data) - set(ACCESS_FLAGS))
    if unknown:
        return jsonify({'error': f"Unknown permissions: {', '.join(unknown)}"}), 400

    permissions = {key: value for key, value in data.items() if key in ACCESS_FLAGS}
    if not permissions:
        return jsonify({'error': 'Permission not specified'}), 400
    if not all(isinstance(value, bool) for value in permissions.values()):
        return jsonify({'error': 'Permission values must be true or false'}), 400

    try:
        get_clerk_service().update_user_metadata(user_id, permissions)
    except AuthProviderError as e:
        logger.error(f"Failed to update permissions for {user_id}: {e}")
        status = e.status_code if e.status_code in (400, 404) else 502
        return jsonify({'error': 'Failed to update permissions'}), status

    try:
        DataService().merge_public_metadata(user_id, permissions)
    except SQLAlchemyError as e:
        # Clerk holds the flags the gate reads; the local copy is a mirror
        logger.error(f"Failed to mirror permissions for {user_id}: {e}")

    logger.info(f"{session['sub']} updated permissions for {user_id}: {permissions}")
    return jsonify({'success': True, 'userId': user_id, 'permissions': permissions})
