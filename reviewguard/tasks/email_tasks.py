"""
Email Tasks for tenant notifications
Low rating alerts, quota warnings and subscription notices
"""
import logging
from datetime import datetime
from smtplib import SMTPException

from flask import current_app, render_template
from flask_mail import Message as MailMessage

from reviewguard.celery_app import celery
from reviewguard.extensions import db, mail
from reviewguard.models.feedback import InternalFeedback
from reviewguard.models.user import User

logger = logging.getLogger(__name__)


def _send_email_with_template(to_email, subject, template, email_data):
    html = render_template(template, **email_data)
    message = MailMessage(subject=subject, recipients=[to_email], html=html)
    mail.send(message)


def _retry_or_fail(task, exc, description):
    logger.error(f"❌ Failed to send {description}: {exc}")

    # Retry with exponential backoff
    if task.request.retries < task.max_retries:
        retry_delay = 2 ** task.request.retries * 60  # 1, 2, 4 minutes
        raise task.retry(countdown=retry_delay, exc=exc)

    return {'success': False, 'error': str(exc)}


# =============================================================================
# FEEDBACK ALERTS
# =============================================================================

@celery.task(bind=True, max_retries=3)
def send_low_rating_alert(self, user_id, feedback_id):
    """
    Alert the business owner about private negative feedback.
    Queued by the sentiment router right after the feedback is stored.
    """
    user = db.session.get(User, user_id)
    feedback = db.session.get(InternalFeedback, feedback_id)
    if not user or not feedback:
        logger.info(f"Skipping low rating alert - user {user_id} or feedback {feedback_id} missing")
        return {'success': True, 'skipped': True}

    if feedback.rating is not None:
        subject = f"Low Rating Alert: {feedback.rating} stars from {feedback.customer_name}"
    else:
        subject = f"Negative Feedback Alert from {feedback.customer_name}"

    email_data = {
        'business_name': user.display_business_name,
        'customer_name': feedback.customer_name,
        'customer_phone': feedback.customer_phone,
        'rating': feedback.rating,
        'feedback_text': feedback.feedback_text,
        'customer_email': feedback.user_email,
        'dashboard_url': f"{current_app.config.get('APP_BASE_URL', '').rstrip('/')}/dashboard/feedback",
        'current_year': datetime.utcnow().year
    }

    try:
        _send_email_with_template(user.email, subject, 'emails/low_rating_alert.html', email_data)
    except (SMTPException, OSError) as e:
        return _retry_or_fail(self, e, f"low rating alert to user {user_id}")

    logger.info(f"✅ Low rating alert sent to user {user_id} (feedback {feedback_id})")
    return {
        'success': True,
        'user_id': user_id,
        'email_type': 'low_rating_alert',
        'sent_at': datetime.utcnow().isoformat()
    }


# =============================================================================
# BILLING EMAILS
# =============================================================================

@celery.task(bind=True, max_retries=3)
def send_quota_warning_email(self, user_id, threshold, sms_sent, sms_quota):
    """Warn the tenant that SMS usage crossed a warning threshold"""
    user = db.session.get(User, user_id)
    if not user:
        return {'success': True, 'skipped': True}

    email_data = {
        'first_name': user.first_name or user.display_business_name,
        'threshold': threshold,
        'sms_sent': sms_sent,
        'sms_quota': sms_quota,
        'remaining': max(sms_quota - sms_sent, 0),
        'billing_url': f"{current_app.config.get('APP_BASE_URL', '').rstrip('/')}/dashboard/billing",
        'current_year': datetime.utcnow().year
    }

    try:
        _send_email_with_template(
            user.email, f"You've used {threshold}% of your SMS quota",
            'emails/quota_warning.html', email_data
        )
    except (SMTPException, OSError) as e:
        return _retry_or_fail(self, e, f"quota warning to user {user_id}")

    logger.info(f"✅ Quota warning ({threshold}%) sent to user {user_id}")
    return {'success': True, 'user_id': user_id, 'email_type': 'quota_warning'}


@celery.task(bind=True, max_retries=3)
def send_payment_failed_email(self, email):
    email_data = {
        'billing_url': f"{current_app.config.get('APP_BASE_URL', '').rstrip('/')}/dashboard/billing",
        'current_year': datetime.utcnow().year
    }

    try:
        _send_email_with_template(
            email, 'Payment failed - action required',
            'emails/payment_failed.html', email_data
        )
    except (SMTPException, OSError) as e:
        return _retry_or_fail(self, e, f"payment failed notice to {email}")

    logger.info(f"✅ Payment failed email sent to {email}")
    return {'success': True, 'email_type': 'payment_failed'}


@celery.task(bind=True, max_retries=3)
def send_subscription_welcome_email(self, email, plan):
    email_data = {
        'plan': plan,
        'dashboard_url': f"{current_app.config.get('APP_BASE_URL', '').rstrip('/')}/dashboard",
        'current_year': datetime.utcnow().year
    }

    try:
        _send_email_with_template(
            email, f"Welcome to ReviewGuard {plan.title()}!",
            'emails/subscription_welcome.html', email_data
        )
    except (SMTPException, OSError) as e:
        return _retry_or_fail(self, e, f"subscription welcome to {email}")

    logger.info(f"✅ Subscription welcome email sent to {email} ({plan})")
    return {'success': True, 'email_type': 'subscription_welcome'}
