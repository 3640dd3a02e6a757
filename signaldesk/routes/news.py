"""
SignalDesk - News Routes
"""
from flask import Blueprint, jsonify
import logging

from signaldesk.services.cms_service import get_cms_service, CMSError

logger = logging.getLogger(__name__)
news_bp = Blueprint('news', __name__)


@news_bp.route('/trending-news', methods=['GET'])
def trending_news():
    """Five newest articles in the Trending category"""
    try:
        articles = get_cms_service().get_trending_news(limit=5)
    except CMSError as e:
        logger.error(f"Error fetching trending news: {e}")
        return jsonify({'error': 'Failed to fetch trending news'}), 500

    response = jsonify(articles)
    response.headers['Cache-Control'] = 's-maxage=30, stale-while-revalidate'
    return response
