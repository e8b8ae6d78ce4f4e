import os

wsgi_app = "gatekeeper:create_app()"

# Bind & workers
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
# Every worker runs its own expired-token sweep; deletes are idempotent
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
threads = 1
# Above SMTP_TIMEOUT so a stalled relay fails the request instead of the worker
timeout = 60
graceful_timeout = 30
keepalive = 5

# Logs to stdout/stderr
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# Trust proxy headers
forwarded_allow_ips = "*"
proxy_protocol = False
