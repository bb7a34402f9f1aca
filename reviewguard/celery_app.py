"""
Celery application for ReviewGuard background work.

Worker:  celery -A reviewguard.celery_app worker -Q default,email_notifications,follow_ups
Beat:    celery -A reviewguard.celery_app beat
"""
import os
import logging

from celery import Celery, Task
from celery.schedules import crontab
from flask import has_app_context

logger = logging.getLogger(__name__)

_flask_app = None


def get_flask_app():
    """Flask app whose context tasks run in; created on demand inside workers"""
    global _flask_app
    if _flask_app is None:
        from reviewguard import create_app
        _flask_app = create_app()
    return _flask_app


class AppContextTask(Task):
    """Run every task inside a Flask application context"""

    def __call__(self, *args, **kwargs):
        if has_app_context():
            return super().__call__(*args, **kwargs)
        with get_flask_app().app_context():
            return super().__call__(*args, **kwargs)


# =============================================================================
# CELERY CONFIGURATION
# =============================================================================

celery = Celery('reviewguard', task_cls=AppContextTask)

celery_config = {
    # Broker and Backend
    'broker_url': os.getenv('CELERY_BROKER_URL', os.getenv('REDIS_URL', 'redis://localhost:6379/0')),
    'result_backend': os.getenv('CELERY_RESULT_BACKEND', os.getenv('REDIS_URL', 'redis://localhost:6379/0')),

    # Serialization
    'task_serializer': 'json',
    'accept_content': ['json'],
    'result_serializer': 'json',

    # Timezone
    'timezone': 'UTC',
    'enable_utc': True,

    # Task discovery
    'include': [
        'reviewguard.tasks.email_tasks',
        'reviewguard.tasks.follow_up_tasks',
    ],

    # Worker configuration
    'worker_prefetch_multiplier': 1,
    'task_acks_late': True,

    # Task routing
    'task_routes': {
        'reviewguard.tasks.email_tasks.*': {'queue': 'email_notifications'},
        'reviewguard.tasks.follow_up_tasks.*': {'queue': 'follow_ups'},
    },
    'task_default_queue': 'default',

    # Result backend settings
    'result_expires': 3600,

    # Task execution settings
    'task_time_limit': 300,
    'task_soft_time_limit': 240,

    # Scheduled jobs
    'beat_schedule': {
        'send-due-follow-ups': {
            'task': 'reviewguard.tasks.follow_up_tasks.send_due_follow_ups',
            'schedule': crontab(minute=0),
        },
    },
}

celery.conf.update(celery_config)


def init_celery(app):
    """Bind Celery to a Flask app and apply app-level overrides"""
    global _flask_app
    _flask_app = app

    celery.conf.update(
        broker_url=app.config.get('CELERY_BROKER_URL') or celery.conf.broker_url,
        result_backend=app.config.get('CELERY_RESULT_BACKEND') or celery.conf.result_backend,
        task_always_eager=app.config.get('CELERY_TASK_ALWAYS_EAGER', False),
    )
    logger.debug("Celery bound to Flask app")
    return celery
