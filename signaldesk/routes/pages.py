"""
SignalDesk - Page Routes
Server-rendered marketing and product pages
"""
from flask import Blueprint, render_template, request, current_app
import logging

from signaldesk.middleware import payment_required
from signaldesk.routes.auth import get_session_claims
from signaldesk.services.cms_service import get_cms_service, CMSError
from signaldesk.utils import get_page_params

logger = logging.getLogger(__name__)
pages_bp = Blueprint('pages', __name__)


@pages_bp.route('/')
def home():
    try:
        news = get_cms_service().get_trending_news(limit=5)
    except CMSError as e:
        logger.error(f"Home page news unavailable: {e}")
        news = []
    return render_template('home.html', news=news, session=get_session_claims())


@pages_bp.route('/pricing')
def pricing():
    return render_template('pricing.html', amount=current_app.config.get('PAYMENT_AMOUNT_USD', 49))


@pages_bp.route('/sign-in')
@pages_bp.route('/sign-up')
def sign_in():
    return render_template('sign_in.html', redirect_url=request.args.get('redirect_url', '/'))


@pages_bp.route('/unauthorized')
def unauthorized_page():
    return render_template('unauthorized.html'), 403


@pages_bp.route('/payment-required')
def payment_required_page():
    return render_template('payment_required.html', amount=current_app.config.get('PAYMENT_AMOUNT_USD', 49)), 402


@pages_bp.route('/research')
def research():
    return render_template('research.html')


@pages_bp.route('/signals')
def signals_page():
    page, limit = get_page_params(request, default_limit=10, max_limit=50)
    try:
        result = get_cms_service().list_signals(page=page, limit=limit)
    except CMSError as e:
        logger.error(f"Signals page unavailable: {e}")
        result = {'data': [], 'pagination': None}
    return render_template('signals.html', signals=result['data'], pagination=result['pagination'])


@pages_bp.route('/premium')
@payment_required
def premium():
    return render_template('premium.html')
