import logging
from contextlib import contextmanager
from typing import Optional

from flask import current_app

from reviewguard.extensions import db
from reviewguard.exceptions import QuotaExceeded, SubscriptionInactive
from reviewguard.models.billing import Subscription, PLANS

WARNING_THRESHOLDS = (80, 90)


class SmsQuotaGuard:
    """
    Enforces the per-tenant SMS quota.

    reserve() locks the tenant's subscription row, checks status and usage,
    and counts the send before yielding. The increment is committed together
    with whatever the caller writes inside the block, or rolled back with it.
    """

    def __init__(self, notification_service=None):
        self.logger = logging.getLogger(__name__)
        self._notifications = notification_service

    @property
    def notifications(self):
        if self._notifications is None:
            from reviewguard.services import get_notification_service
            self._notifications = get_notification_service()
        return self._notifications

    def get_subscription(self, user) -> Optional[Subscription]:
        return Subscription.query.filter_by(user_id=user.id).first()

    def ensure_subscription(self, user) -> Subscription:
        """Return the tenant's subscription, creating a free trial row if missing"""
        subscription = self.get_subscription(user)
        if subscription:
            return subscription

        quota = current_app.config.get('DEFAULT_SMS_QUOTA', PLANS['free']['sms_quota'])
        subscription = Subscription(
            user_id=user.id,
            email=user.email,
            subscription_status='trial',
            plan='free',
            sms_quota=quota,
            sms_sent=0
        )
        db.session.add(subscription)
        db.session.commit()
        self.logger.info(f"Created trial subscription for user {user.id} with quota {quota}")
        return subscription

    def check(self, subscription: Subscription) -> None:
        """Raise if this subscription may not send another SMS"""
        if not subscription.can_send:
            raise SubscriptionInactive(
                f"Subscription is {subscription.subscription_status}. Please renew to send messages."
            )
        if subscription.sms_sent >= subscription.sms_quota:
            raise QuotaExceeded(quota=subscription.sms_quota, used=subscription.sms_sent)

    @contextmanager
    def reserve(self, user):
        self.ensure_subscription(user)

        subscription = (
            Subscription.query
            .filter_by(user_id=user.id)
            .with_for_update()
            .populate_existing()
            .one()
        )

        try:
            self.check(subscription)
        except (SubscriptionInactive, QuotaExceeded):
            db.session.rollback()
            self.logger.warning(
                f"SMS blocked for user {user.id}: "
                f"{subscription.subscription_status} {subscription.sms_sent}/{subscription.sms_quota}"
            )
            raise

        subscription.sms_sent += 1

        try:
            yield subscription
            db.session.commit()
        except Exception:
            db.session.rollback()
            self.logger.warning(f"SMS reservation rolled back for user {user.id}")
            raise

        self._warn_on_threshold(user, subscription)

    def _warn_on_threshold(self, user, subscription: Subscription) -> None:
        """Queue a warning email when usage first crosses 80% or 90%"""
        quota = subscription.sms_quota
        if not quota:
            return

        used = subscription.sms_sent
        before = (used - 1) * 100 / quota
        after = used * 100 / quota

        for threshold in sorted(WARNING_THRESHOLDS, reverse=True):
            if before < threshold <= after:
                self.notifications.quota_warning(user, subscription, threshold)
                break

    def reset_usage(self, subscription: Subscription) -> None:
        subscription.sms_sent = 0
        self.logger.info(f"SMS usage reset for user {subscription.user_id}")
