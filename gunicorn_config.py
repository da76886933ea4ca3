"""
Gunicorn configuration for production deployment
"""
import multiprocessing
import os

# Application
wsgi_app = "englib:create_app()"

# Server socket
bind = f"0.0.0.0:{os.getenv('FLASK_PORT', '5000')}"
backlog = 2048

# Worker processes
# Handle empty string from environment variables
gunicorn_workers = os.getenv('GUNICORN_WORKERS', '').strip()
try:
    workers = int(gunicorn_workers) if gunicorn_workers else multiprocessing.cpu_count() * 2 + 1
except ValueError:
    workers = multiprocessing.cpu_count() * 2 + 1
worker_class = 'sync'
# Manual full syncs walk the whole storage tree inside one request
timeout = int(os.getenv('GUNICORN_TIMEOUT', '300'))
keepalive = 2

# Logging
accesslog = '-'
errorlog = '-'
loglevel = os.getenv('LOG_LEVEL', 'info')
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'englib'

def when_ready(server):
    """Called just after the server is started."""
    server.log.info("englib is ready. Spawning %s workers", workers)

def post_fork(server, worker):
    """Called just after a worker has been forked."""
    server.log.info("Worker spawned (pid: %s)", worker.pid)

def worker_abort(worker):
    """Called when a worker times out."""
    worker.log.warning("Worker timed out; a manual sync may still be running")
