"""
Gunicorn settings for the ReviewGuard API.

Run with:  gunicorn -c gunicorn.conf.py wsgi:application
Celery workers and beat run as separate processes (see reviewguard/celery_app.py).
"""
import multiprocessing
import os

# Server socket
bind = os.environ.get('GUNICORN_BIND', f"0.0.0.0:{os.environ.get('PORT', '5000')}")

# Carrier and Stripe webhooks plus LLM drafting block on outbound HTTP,
# so each worker serves requests from a small thread pool.
workers = int(os.environ.get('GUNICORN_WORKERS', min(multiprocessing.cpu_count() * 2 + 1, 8)))
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', '4'))
timeout = int(os.environ.get('GUNICORN_TIMEOUT', '60'))
graceful_timeout = 30
keepalive = 5

# Recycle workers periodically
max_requests = 1000
max_requests_jitter = 100

proc_name = 'reviewguard-backend'
forwarded_allow_ips = os.environ.get('FORWARDED_ALLOW_IPS', '127.0.0.1')

log_level = os.environ.get('LOG_LEVEL', 'info').lower()

logconfig_dict = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'default': {
            'format': '[%(asctime)s] %(levelname)s in %(name)s: %(message)s',
        }
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'default',
            'stream': 'ext://sys.stdout'
        }
    },
    'loggers': {
        'gunicorn.error': {'level': 'INFO', 'handlers': ['console'], 'propagate': False},
        'gunicorn.access': {'level': 'INFO', 'handlers': ['console'], 'propagate': False},
    }
}

raw_env = [
    'FLASK_ENV=production',
]


def post_fork(server, worker):
    server.log.info(f"ReviewGuard worker spawned (pid {worker.pid})")


def worker_abort(worker):
    worker.log.warning(f"ReviewGuard worker {worker.pid} timed out, request aborted")
