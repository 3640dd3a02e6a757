"""
SignalDesk - Rate Limiting
Fixed-window, per-client limits held in process memory
"""
from flask import jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    strategy="fixed-window",
)


def init_limiter(app):
    limiter.init_app(app)

    @app.errorhandler(429)
    def ratelimit_handler(error):
        retry_after = 60
        item = getattr(getattr(error, 'limit', None), 'limit', None)
        if item is not None:
            retry_after = item.get_expiry()
        response = jsonify({
            'error': 'Too many requests',
            'message': 'Rate limit exceeded',
            'retryAfter': retry_after
        })
        response.status_code = 429
        response.headers['Retry-After'] = str(retry_after)
        return response

    return limiter
