"""
SignalDesk - Price Routes
Cached CoinGecko proxy
"""
from flask import Blueprint, request, jsonify
import logging

from signaldesk.limiter import limiter
from signaldesk.services.price_service import get_price_service, PriceServiceError
from signaldesk.utils import safe_bool

logger = logging.getLogger(__name__)
prices_bp = Blueprint('prices', __name__)


@prices_bp.route('/coingecko/price', methods=['GET'])
@limiter.limit("100 per 15 minutes")
def coingecko_price():
    """
    GET /api/coingecko/price?ids=bitcoin,ethereum&vs_currencies=usd&include_24hr_change=true
    """
    ids = request.args.get('ids')
    if not ids:
        return jsonify({'error': 'Missing required parameter: ids'}), 400

    try:
        data = get_price_service().get_simple_price(
            ids,
            vs_currencies=request.args.get('vs_currencies') or 'usd',
            include_24h_change=safe_bool(request.args.get('include_24hr_change'))
        )
    except PriceServiceError as e:
        logger.error(f"Error in CoinGecko price API: {e}")
        status = e.status_code if e.status_code and e.status_code >= 400 else 502
        return jsonify({'error': 'Failed to fetch from CoinGecko API'}), status

    return jsonify(data)


@prices_bp.route('/price/signals', methods=['GET'])
@limiter.limit("100 per 15 minutes")
def signal_token_price():
    """
    Market summary for the token a signal refers to

    GET /api/price/signals?id=bitcoin
    """
    coingecko_id = request.args.get('id')
    if not coingecko_id:
        return jsonify({'error': 'Token ID is required'}), 400

    try:
        data = get_price_service().get_market_data(coingecko_id)
    except PriceServiceError as e:
        logger.error(f"Error fetching token price: {e}")
        return jsonify({'error': 'Failed to fetch token price'}), 500

    return jsonify(data)
