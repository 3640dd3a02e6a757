"""
SignalDesk - Payment Routes
BoomFi payment links and premium status checks
"""
from flask import Blueprint, request, jsonify, current_app
import logging

from signaldesk.limiter import limiter
from signaldesk.routes.auth import session_required
from signaldesk.services.payment_service import get_payment_reconciler, PaymentProviderError
from signaldesk.utils import safe_float, parse_datetime

logger = logging.getLogger(__name__)
payments_bp = Blueprint('payments', __name__)

NO_STORE_HEADERS = {
    'Cache-Control': 'no-store, no-cache, must-revalidate, proxy-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}


@payments_bp.route('/payment', methods=['POST'])
@session_required
def create_payment(session):
    """
    Create a BoomFi pay link for the caller

    POST /api/payment
    {
        "amount": 49
    }
    """
    data = request.get_json(silent=True) or {}
    amount = safe_float(data.get('amount'), current_app.config.get('PAYMENT_AMOUNT_USD', 49), min_val=0)
    if amount <= 0:
        return jsonify({'error': 'Amount must be positive'}), 400

    try:
        url = get_payment_reconciler().create_payment_link(session['sub'], amount)
    except PaymentProviderError as e:
        logger.error(f"Payment creation error: {e}")
        if e.status_code == 404:
            return jsonify({'error': 'User not found'}), 404
        return jsonify({'error': 'Payment creation failed'}), 500

    return jsonify({'url': url})


@payments_bp.route('/payment', methods=['GET'])
@session_required
def payment_status(session):
    """Reconcile and return the caller's premium flag"""
    is_premium = get_payment_reconciler().check_user_payment_status(session['sub'])
    return jsonify({'isPremium': is_premium})


@payments_bp.route('/check-payments', methods=['GET'])
@limiter.limit("10 per minute")
@session_required
def check_payments(session):
    """
    Poll for a payment made after `since` (used right after checkout)

    GET /api/check-payments?customerId=cus_123&since=2024-01-01T00:00:00Z
    """
    customer_id = request.args.get('customerId')
    if not customer_id:
        return jsonify({'error': 'Customer ID is required'}), 400

    since = parse_datetime(request.args.get('since'))
    if request.args.get('since') and since is None:
        return jsonify({'error': 'Invalid since timestamp'}), 400

    try:
        result = get_payment_reconciler().check_recent_payments(customer_id, since)
    except PaymentProviderError as e:
        logger.error(f"Payment check failed: {e}")
        return jsonify({'error': 'Payment check failed', 'message': str(e)}), 500

    if result is None:
        return jsonify({'error': 'User not found'}), 404

    return jsonify(result), 200, NO_STORE_HEADERS
