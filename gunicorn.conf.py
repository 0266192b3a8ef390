"""Gunicorn production configuration.

Upload status is held in process memory, so the default is a single worker.
Raise WEB_CONCURRENCY only if clients don't rely on /import/{entity}/status.
"""
import os

chdir = "backend"
wsgi_app = "app.main:app"
bind = os.environ.get("BIND", "0.0.0.0:8000")
workers = int(os.environ.get("WEB_CONCURRENCY", "1"))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
# Rows are posted one at a time; a large batch can take minutes.
timeout = 600
keepalive = 5
max_requests = 1000
max_requests_jitter = 100
preload_app = True
accesslog = "-"
errorlog = "-"
loglevel = "info"
