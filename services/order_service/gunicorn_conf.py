"""Gunicorn configuration for the orders service.

Usage:
    gunicorn app.main:app -c gunicorn_conf.py
"""

import os

# ── Server Socket ─────────────────────────────
bind = f"0.0.0.0:{os.getenv('SERVER_PORT', '8080')}"

# ── Worker Processes ──────────────────────────
# Each worker owns its own event queue and background worker
workers = int(os.getenv("GUNICORN_WORKERS", "2"))
worker_class = "uvicorn.workers.UvicornWorker"
worker_tmp_dir = "/dev/shm"

# ── Timeouts ──────────────────────────────────
timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))
graceful_timeout = int(float(os.getenv("SHUTDOWN_TIMEOUT_SECONDS", "30")))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", "5"))

# ── Logging ───────────────────────────────────
accesslog = None
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()

# ── Process Naming ────────────────────────────
proc_name = os.getenv("SERVICE_NAME", "orders_service")

# ── Server Mechanics ─────────────────────────
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "1000"))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", "50"))
