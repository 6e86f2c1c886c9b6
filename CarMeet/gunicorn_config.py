import os

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', '5000')}"
backlog = 128

# Worker processes
workers = int(os.environ.get('WEB_CONCURRENCY', os.environ.get('GUNICORN_WORKERS', 2)))
worker_class = os.environ.get('GUNICORN_WORKER_CLASS', 'gthread')
threads = int(os.environ.get('GUNICORN_THREADS', 4))
timeout = int(os.environ.get('GUNICORN_TIMEOUT', 30))  # Align with Heroku router
keepalive = 2

# Recycle workers periodically
max_requests = int(os.environ.get('GUNICORN_MAX_REQUESTS', 1000))
max_requests_jitter = int(os.environ.get('GUNICORN_MAX_REQUESTS_JITTER', 50))
preload_app = os.environ.get('GUNICORN_PRELOAD', 'false').lower() == 'true'

# Logging
accesslog = "-"
errorlog = "-"
loglevel = "warning"
access_log_format = '%h %t "%r" %s %b %D'

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 4096
