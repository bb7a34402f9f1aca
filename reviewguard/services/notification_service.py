import logging
from typing import Optional

from celery.exceptions import CeleryError
from kombu.exceptions import OperationalError


class NotificationService:
    """Queues transactional emails on the Celery email queue"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _dispatch(self, task, *args):
        try:
            return task.delay(*args)
        except (OperationalError, CeleryError) as e:
            self.logger.error(f"❌ Could not queue {task.name}: {e}")
            return None

    def low_rating_alert(self, user, feedback):
        """Tell the tenant a customer left private negative feedback"""
        from reviewguard.tasks.email_tasks import send_low_rating_alert
        self.logger.info(f"Queueing low rating alert for user {user.id} (feedback {feedback.id})")
        return self._dispatch(send_low_rating_alert, user.id, feedback.id)

    def quota_warning(self, user, subscription, threshold: int):
        from reviewguard.tasks.email_tasks import send_quota_warning_email
        self.logger.info(f"Queueing {threshold}% quota warning for user {user.id}")
        return self._dispatch(
            send_quota_warning_email, user.id, threshold,
            subscription.sms_sent, subscription.sms_quota
        )

    def payment_failed(self, email: Optional[str]):
        if not email:
            return None
        from reviewguard.tasks.email_tasks import send_payment_failed_email
        return self._dispatch(send_payment_failed_email, email)

    def subscription_activated(self, email: Optional[str], plan: str):
        if not email:
            return None
        from reviewguard.tasks.email_tasks import send_subscription_welcome_email
        return self._dispatch(send_subscription_welcome_email, email, plan)
