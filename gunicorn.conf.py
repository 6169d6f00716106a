"""
Gunicorn Configuration

Uvicorn workers under a Gunicorn master. Values come from the same
environment variables the application settings read.
"""

import os

import structlog

from src.config.logging import configure_logging

bind = f"{os.getenv('API_HOST', '0.0.0.0')}:{os.getenv('API_PORT', '8000')}"
backlog = 2048

# Each worker holds its own profit share cache; keep the count small
workers = int(os.getenv("API_WORKERS", 2))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 10000
max_requests_jitter = 1000
timeout = 60
keepalive = 5
graceful_timeout = 30

proc_name = "partner-ledger-api"

errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = None


def on_starting(server):
    configure_logging()
    structlog.get_logger("gunicorn").info("Master starting", workers=workers, bind=bind)


def post_fork(server, worker):
    structlog.get_logger("gunicorn").info("Worker spawned", pid=worker.pid)


def worker_abort(worker):
    structlog.get_logger("gunicorn").warning("Worker aborted", pid=worker.pid)
