"""Gunicorn production configuration."""
import os

bind = os.environ.get("GATEWAY_BIND", "0.0.0.0:8080")
# Import wizards live in process memory, so every request must hit the same worker
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
# Synchronous imports of 500 rows can take a while on the platform side
timeout = 180
keepalive = 5
accesslog = "-"
errorlog = "-"
loglevel = "info"
wsgi_app = "app.main:app"
chdir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "backend")
