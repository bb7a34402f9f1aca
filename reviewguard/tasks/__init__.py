"""
Tasks Package for ReviewGuard - Celery Task Definitions

- Email tasks: low rating alerts, quota warnings, billing notices
- Follow-up tasks: scheduled review request reminders
"""
from .email_tasks import (
    send_low_rating_alert,
    send_quota_warning_email,
    send_payment_failed_email,
    send_subscription_welcome_email,
)
from .follow_up_tasks import send_due_follow_ups

__all__ = [
    'send_low_rating_alert',
    'send_quota_warning_email',
    'send_payment_failed_email',
    'send_subscription_welcome_email',
    'send_due_follow_ups',
]
