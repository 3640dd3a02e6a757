"""
SignalDesk - Signal Routes
Public signal listings, gated signal detail and the analyst/admin signal desk
"""
from flask import Blueprint, request, jsonify
import logging

from signaldesk.routes.auth import optional_session, roles_required
from signaldesk.services.cms_service import get_cms_service, CMSError
from signaldesk.services.access_service import check_content_access
from signaldesk.services.db_service import DataService
from signaldesk.utils import get_page_params, safe_int, safe_float, safe_bool, slugify

logger = logging.getLogger(__name__)
signals_bp = Blueprint('signals', __name__)
data_service = DataService()


@signals_bp.route('/signals', methods=['GET'])
def list_signals():
    """
    Paginated signal list, newest published first

    GET /api/signals?page=1&limit=10&status=active&category=defi&direction=long
    """
    page, limit = get_page_params(request, default_limit=10, max_limit=50)

    try:
        result = get_cms_service().list_signals(
            page=page,
            limit=limit,
            status=request.args.get('status') or None,
            category=request.args.get('category') or None,
            direction=request.args.get('direction') or None
        )
    except CMSError as e:
        logger.error(f"Signals API error: {e}")
        return jsonify({'error': 'Failed to fetch signals', 'details': str(e)}), 500

    return jsonify(result)


@signals_bp.route('/signals/categories', methods=['GET'])
def list_categories():
    try:
        categories = get_cms_service().list_signal_categories()
    except CMSError as e:
        logger.error(f"Failed to fetch signal categories: {e}")
        return jsonify({'error': 'Failed to fetch categories'}), 500

    return jsonify(categories)


@signals_bp.route('/signals/<slug>', methods=['GET'])
@optional_session
def get_signal(session, slug):
    """
    Signal detail; premium/pro/analyst/admin signals are gated

    401 when the caller must sign in, 403 when their plan or role falls short.
    """
    try:
        signal = get_cms_service().get_signal(slug)
    except CMSError as e:
        logger.error(f"Failed to fetch signal {slug}: {e}")
        return jsonify({'error': 'Failed to fetch signal'}), 500

    if not signal:
        return jsonify({'error': 'Signal not found'}), 404

    result = check_content_access(session['sub'] if session else None, signal)
    if not result.has_access:
        body = {'error': result.message, 'access': result.to_dict()}
        return jsonify(body), 401 if result.login_required else 403

    return jsonify(signal)


# ==========================================
# SIGNAL DESK (analysts and admins)
# ==========================================

@signals_bp.route('/admin/signals', methods=['GET'])
@roles_required('admin', 'analyst')
def admin_list_signals(session):
    """
    Signals with their performance and analytics records

    GET /api/admin/signals?page=1&limit=20&search=btc&status=active
    """
    page = safe_int(request.args.get('page'), 1, min_val=1)
    limit = safe_int(request.args.get('limit'), 20, min_val=1, max_val=100)

    try:
        result = get_cms_service().admin_list_signals(
            page=page,
            limit=limit,
            search=request.args.get('search') or None,
            status=request.args.get('status') or None
        )
    except CMSError as e:
        logger.error(f"Error fetching signals: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    records = data_service.get_signal_records([s['_id'] for s in result['signals']])
    for signal in result['signals']:
        signal.update(records.get(signal['_id'], {'performance': None, 'analytics': None}))

    return jsonify(result)


def _reference(doc_id):
    return {'_type': 'reference', '_ref': doc_id} if doc_id else None


@signals_bp.route('/admin/signals', methods=['POST'])
@roles_required('admin', 'analyst')
def admin_create_signal(session):
    """
    Publish a signal to the CMS and open its performance/analytics records

    POST /api/admin/signals
    {
        "name": "BTC breakout",
        "tokenId": "token-btc",
        "direction": "long",
        "entryPrice": "64000",
        "targetPrices": ["68000", "72000"],
        "stopLoss": "61000",
        "accessLevel": "premium",
        "isDraft": false
    }
    """
    data = request.get_json(silent=True) or {}

    name = data.get('name')
    entry_price = safe_float(data.get('entryPrice'), None)
    if not name or not data.get('tokenId') or not data.get('direction') or not entry_price:
        return jsonify({'error': 'Missing required fields'}), 400

    is_draft = safe_bool(data.get('isDraft'))
    status = 'draft' if is_draft else 'active'
    analyst = data_service.get_or_create_analyst_profile(data.get('analystId') or session['sub'])

    document = {
        '_type': 'signal',
        'name': name,
        'slug': {'_type': 'slug', 'current': slugify(name)},
        'token': _reference(data.get('tokenId')),
        'category': _reference(data.get('categoryId')),
        'analyst': _reference(analyst.id),
        'direction': data.get('direction'),
        'signalType': data.get('signalType') or 'other',
        'entryPrice': entry_price,
        'targetPrices': [
            safe_float(p) for p in data.get('targetPrices') or []
            if str(p).strip()
        ],
        'stopLoss': safe_float(data.get('stopLoss'), None) if data.get('stopLoss') else None,
        'timeframe': data.get('timeframe'),
        'riskLevel': data.get('riskLevel'),
        'confidence': safe_float(data.get('confidence'), None) if data.get('confidence') else None,
        'accessLevel': data.get('accessLevel'),
        'priority': data.get('priority'),
        'featured': safe_bool(data.get('featured')),
        'status': status,
        'notes': data.get('notes'),
    }
    document = {k: v for k, v in document.items() if v is not None}

    try:
        created = get_cms_service().create_signal(document)
    except CMSError as e:
        logger.error(f"Error creating signal: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    data_service.create_signal_records(created['_id'], analyst, entry_price, status=status)

    return jsonify({
        'success': True,
        'signal': created,
        'message': f"Signal {'saved as draft' if is_draft else 'created'} successfully"
    }), 201
