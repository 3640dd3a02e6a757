# Gunicorn configuration for SignalDesk
# Rate limit counters and the fallback cache live in process memory,
# so limits are enforced per worker.

# Worker settings
workers = 2
worker_class = 'sync'

# Timeout settings - provider calls use 15s request timeouts
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = '-'
errorlog = '-'
loglevel = 'info'

# Request handling
max_requests = 1000  # Restart workers after 1000 requests
max_requests_jitter = 50

# Bind
bind = '0.0.0.0:5000'

wsgi_app = 'run:app'
