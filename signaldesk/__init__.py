"""
SignalDesk - Crypto trading signals, research and news
Flask backend for the marketing site and premium dashboard
"""
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix
import os
import logging

__version__ = "1.4.0"

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Application factory pattern"""
    app = Flask(__name__)

    # Running behind a reverse proxy: trust one hop of X-Forwarded-* headers
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    # Load config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    from signaldesk.config import config
    # Use instance instead of class to support @property
    config_instance = config[config_name]()
    app.config.from_object(config_instance)

    # Enable CORS - IMPORTANT: Set CORS_ORIGINS env var in production!
    cors_origins = app.config.get('CORS_ORIGINS', '*')
    if cors_origins == '*' and config_name == 'production':
        logger.warning("SECURITY: CORS_ORIGINS is set to '*' in production! Set specific origins.")
    CORS(app, origins=cors_origins)

    # Rate limiting
    from signaldesk.limiter import init_limiter
    init_limiter(app)

    # Cache
    from signaldesk.services.cache_service import init_cache
    init_cache(app)

    # Initialize database
    from signaldesk.database import init_db
    init_db(app)

    # Page navigation gate
    from signaldesk.middleware import init_middleware
    init_middleware(app)

    # Register blueprints
    from signaldesk.routes import register_routes
    register_routes(app)

    # ==========================================
    # GLOBAL ERROR HANDLERS
    # ==========================================

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({
            'error': 'Bad request',
            'message': str(error.description) if hasattr(error, 'description') else 'Invalid request'
        }), 400

    @app.errorhandler(401)
    def unauthorized(error):
        return jsonify({
            'error': 'Unauthorized',
            'message': 'Authentication required'
        }), 401

    @app.errorhandler(403)
    def forbidden(error):
        return jsonify({
            'error': 'Forbidden',
            'message': 'Access denied'
        }), 403

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'error': 'Not found',
            'message': 'The requested resource was not found'
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'error': 'Method not allowed',
            'message': 'The method is not allowed for this resource'
        }), 405

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal server error: {error}")
        return jsonify({
            'error': 'Internal server error',
            'message': 'An unexpected error occurred'
        }), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Catch-all for unhandled exceptions"""
        from werkzeug.exceptions import HTTPException
        if isinstance(error, HTTPException):
            return error
        logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({
            'error': 'Server error',
            'message': 'An unexpected error occurred'
        }), 500

    # Health check
    @app.route('/health')
    def health():
        # Basic health check with database ping
        try:
            from signaldesk.database import db
            db.session.execute(db.text('SELECT 1'))
            db_status = 'connected'
        except Exception as e:
            db_status = f'error: {str(e)[:50]}'

        return {
            'status': 'healthy' if db_status == 'connected' else 'degraded',
            'version': __version__,
            'database': db_status,
            'cache': 'redis' if app.extensions['signaldesk.cache'].uses_redis else 'memory'
        }

    # API info endpoint
    @app.route('/api')
    def api_info():
        return {
            'name': 'SignalDesk API',
            'version': __version__,
            'status': 'running',
            'endpoints': {
                'auth': '/api/auth',
                'tokens': '/api/tokens',
                'chains': '/api/chains',
                'token_lists': '/api/token-lists',
                'token_metadata': '/api/token-metadata',
                'trending_news': '/api/trending-news',
                'signals': '/api/signals',
                'admin_signals': '/api/admin/signals',
                'payment': '/api/payment',
                'check_payments': '/api/check-payments',
                'prices': '/api/coingecko/price',
                'signal_prices': '/api/price/signals',
                'webhooks': '/api/webhooks'
            }
        }

    return app
