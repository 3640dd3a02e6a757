"""
SignalDesk - Catalogue Routes
Tokens, chains and token lists from the database
"""
from flask import Blueprint, request, jsonify
import logging

from sqlalchemy.exc import SQLAlchemyError

from signaldesk.services.db_service import DataService
from signaldesk.utils import safe_int

logger = logging.getLogger(__name__)
tokens_bp = Blueprint('tokens', __name__)
data_service = DataService()


def _chain_id_arg():
    value = request.args.get('chainId')
    return safe_int(value, None) if value else None


@tokens_bp.route('/tokens', methods=['GET'])
def list_tokens():
    """
    List tokens, each with its TradingView symbol

    GET /api/tokens?chainId=1&symbol=WETH&address=0x...
    """
    try:
        tokens = data_service.list_tokens(
            chain_id=_chain_id_arg(),
            symbol=request.args.get('symbol'),
            address=request.args.get('address')
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch tokens: {e}")
        return jsonify({'error': 'Failed to fetch tokens'}), 500

    return jsonify([t.to_dict() for t in tokens])


@tokens_bp.route('/token-metadata', methods=['GET'])
def token_metadata():
    """
    Look up several tokens by symbol, case-insensitively

    GET /api/token-metadata?symbols=weth,USDC&chainId=1
    """
    symbols = request.args.get('symbols')
    if not symbols:
        return jsonify([])

    try:
        tokens = data_service.find_tokens_by_symbols(symbols.split(','), chain_id=_chain_id_arg())
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch token metadata: {e}")
        return jsonify({'error': 'Failed to fetch token metadata'}), 500

    return jsonify([t.to_dict() for t in tokens])


@tokens_bp.route('/chains', methods=['GET'])
def list_chains():
    """GET /api/chains?chainId=137&name=Polygon"""
    try:
        chains = data_service.list_chains(chain_id=_chain_id_arg(), name=request.args.get('name'))
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch chains: {e}")
        return jsonify({'error': 'Failed to fetch chains'}), 500

    return jsonify([c.to_dict() for c in chains])


@tokens_bp.route('/token-lists', methods=['GET'])
def list_token_lists():
    try:
        token_lists = data_service.list_token_lists()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching token lists: {e}")
        return jsonify({'error': 'Failed to fetch token lists'}), 500

    return jsonify([tl.to_dict() for tl in token_lists])
