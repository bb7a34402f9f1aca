"""Scheduled review request reminders"""
import logging

from reviewguard.celery_app import celery
from reviewguard.models.user import User
from reviewguard.services import get_messaging_service

logger = logging.getLogger(__name__)


def run_due_follow_ups():
    """Send reminders for every tenant's overdue review requests"""
    messaging_service = get_messaging_service()
    summary = {'tenants': 0, 'sent': 0, 'failed': 0}

    for user in User.query.filter_by(is_active=True).all():
        due = messaging_service.messages_needing_follow_up(user)
        if not due:
            continue

        result = messaging_service.send_follow_ups(user, [message.id for message in due])
        summary['tenants'] += 1
        summary['sent'] += result['sent_count']
        summary['failed'] += len(result['errors'])

    logger.info(
        f"Follow-up run complete: {summary['sent']} sent, {summary['failed']} failed "
        f"across {summary['tenants']} tenants"
    )
    return summary


@celery.task
def send_due_follow_ups():
    return run_due_follow_ups()
