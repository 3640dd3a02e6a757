"""
SignalDesk - Routes
API endpoint registration
"""
from flask import Flask


def register_routes(app: Flask):
    """Register all blueprints"""

    from signaldesk.routes.auth import auth_bp
    from signaldesk.routes.tokens import tokens_bp
    from signaldesk.routes.news import news_bp
    from signaldesk.routes.signals import signals_bp
    from signaldesk.routes.payments import payments_bp
    from signaldesk.routes.prices import prices_bp
    from signaldesk.routes.webhooks import webhooks_bp
    from signaldesk.routes.pages import pages_bp

    # Register with /api prefix
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(tokens_bp, url_prefix='/api')
    app.register_blueprint(news_bp, url_prefix='/api')
    app.register_blueprint(signals_bp, url_prefix='/api')
    app.register_blueprint(payments_bp, url_prefix='/api')
    app.register_blueprint(prices_bp, url_prefix='/api')
    app.register_blueprint(webhooks_bp, url_prefix='/api/webhooks')

    # Server-rendered pages
    app.register_blueprint(pages_bp)
