"""
Billing Service - Stripe checkout, customer portal and webhook handling
"""
import logging
from datetime import datetime
from functools import wraps
from typing import Dict, Any, Optional

import stripe
from flask import current_app

from reviewguard.extensions import db
from reviewguard.exceptions import BillingError, ReviewGuardError
from reviewguard.models.billing import Subscription, EventLog, PLANS
from reviewguard.utils.helpers import usage_percentage, usage_warning_level

logger = logging.getLogger(__name__)


def handle_stripe_errors(func):
    """Decorator to translate Stripe errors into BillingError"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except stripe.CardError as e:
            logger.error(f"Card error: {str(e)}")
            raise BillingError(f"Payment failed: {e.user_message}")
        except stripe.RateLimitError as e:
            logger.error(f"Rate limit error: {str(e)}")
            raise BillingError("Too many requests. Please try again later.")
        except stripe.InvalidRequestError as e:
            logger.error(f"Invalid request: {str(e)}")
            raise BillingError(f"Invalid request: {e.user_message or str(e)}")
        except stripe.AuthenticationError as e:
            logger.error(f"Authentication error: {str(e)}")
            raise BillingError("Payment system authentication failed")
        except stripe.APIConnectionError as e:
            logger.error(f"Network error: {str(e)}")
            raise BillingError("Network error. Please try again.")
        except stripe.StripeError as e:
            logger.error(f"Stripe error: {str(e)}")
            raise BillingError("Payment system error")
    return wrapper


class BillingService:
    """Plans, Stripe sessions and subscription lifecycle events"""

    def __init__(self, quota_guard=None, notification_service=None):
        self.logger = logging.getLogger(__name__)
        self._quota_guard = quota_guard
        self._notifications = notification_service
        stripe.api_key = current_app.config.get('STRIPE_SECRET_KEY')
        self.webhook_secret = current_app.config.get('STRIPE_WEBHOOK_SECRET')

    @property
    def quota_guard(self):
        if self._quota_guard is None:
            from reviewguard.services import get_quota_guard
            self._quota_guard = get_quota_guard()
        return self._quota_guard

    @property
    def notifications(self):
        if self._notifications is None:
            from reviewguard.services import get_notification_service
            self._notifications = get_notification_service()
        return self._notifications

    # =========================================================================
    # PLANS AND USAGE
    # =========================================================================

    def price_ids(self) -> Dict[str, str]:
        return {
            'starter': current_app.config.get('STRIPE_PRICE_ID_STARTER'),
            'pro': current_app.config.get('STRIPE_PRICE_ID_PRO'),
        }

    def get_pricing(self):
        prices = self.price_ids()
        return [
            {
                'id': plan_id,
                'name': plan['name'],
                'sms_quota': plan['sms_quota'],
                'monthly_price': plan['monthly_price'],
                'features': plan['features'],
                'price_id': prices.get(plan_id)
            }
            for plan_id, plan in PLANS.items()
        ]

    def get_subscription_summary(self, user) -> Dict[str, Any]:
        subscription = self.quota_guard.ensure_subscription(user)
        percentage = usage_percentage(subscription.sms_sent, subscription.sms_quota)
        summary = subscription.to_dict()
        summary.update({
            'usage_percentage': percentage,
            'warning_level': usage_warning_level(percentage)
        })
        return summary

    # =========================================================================
    # STRIPE SESSIONS
    # =========================================================================

    @handle_stripe_errors
    def create_checkout_session(self, user, plan_id: str) -> Dict[str, str]:
        if plan_id not in self.price_ids():
            raise ReviewGuardError(f"Unknown plan '{plan_id}'", code='VALIDATION_ERROR', status_code=400)

        subscription = self.quota_guard.ensure_subscription(user)
        base_url = current_app.config.get('APP_BASE_URL', '').rstrip('/')

        params = {
            'mode': 'subscription',
            'line_items': [{'price': self.price_ids()[plan_id], 'quantity': 1}],
            'success_url': f"{base_url}/?session_id={{CHECKOUT_SESSION_ID}}",
            'cancel_url': f"{base_url}/",
            'client_reference_id': str(user.id),
            'metadata': {
                'user_id': str(user.id),
                'email': user.email,
                'plan_id': plan_id,
                'sms_quota': str(PLANS[plan_id]['sms_quota'])
            }
        }
        if subscription.stripe_customer_id:
            params['customer'] = subscription.stripe_customer_id
        else:
            params['customer_email'] = user.email

        session = stripe.checkout.Session.create(**params)
        self.logger.info(f"Checkout session {session.id} created for user {user.id} ({plan_id})")
        return {'session_id': session.id, 'url': session.url}

    @handle_stripe_errors
    def create_portal_session(self, user) -> Dict[str, str]:
        subscription = self.quota_guard.ensure_subscription(user)
        if not subscription.stripe_customer_id:
            raise ReviewGuardError('No billing account found. Subscribe to a plan first.',
                                   code='NO_BILLING_ACCOUNT', status_code=400)

        base_url = current_app.config.get('APP_BASE_URL', '').rstrip('/')
        session = stripe.billing_portal.Session.create(
            customer=subscription.stripe_customer_id,
            return_url=f"{base_url}/"
        )
        return {'url': session.url}

    # =========================================================================
    # WEBHOOKS
    # =========================================================================

    def construct_event(self, payload: bytes, signature: Optional[str]):
        if not self.webhook_secret:
            raise ReviewGuardError('Webhook secret not configured', code='WEBHOOK_NOT_CONFIGURED', status_code=500)
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError:
            raise ReviewGuardError('Invalid payload', code='INVALID_PAYLOAD', status_code=400)
        except stripe.SignatureVerificationError:
            self.logger.warning("⚠️ Stripe webhook signature verification failed")
            raise ReviewGuardError('Invalid signature', code='INVALID_SIGNATURE', status_code=400)

    def handle_event(self, event) -> Dict[str, Any]:
        """Apply a verified Stripe event and record it in the event log"""
        event_type = event['type']
        obj = event['data']['object']
        handlers = {
            'checkout.session.completed': self._checkout_completed,
            'invoice.payment_succeeded': self._payment_succeeded,
            'customer.subscription.updated': self._subscription_updated,
            'customer.subscription.deleted': self._deactivate,
            'invoice.payment_failed': self._deactivate,
        }

        handler = handlers.get(event_type)
        if handler is None:
            self._log_event(event_type, obj, status='ignored')
            db.session.commit()
            self.logger.info(f"Unhandled Stripe event: {event_type}")
            return {'handled': False}

        try:
            subscription = handler(event_type, obj)
            self._log_event(event_type, obj, email=subscription.email if subscription else None,
                            status='processed' if subscription else 'unmatched')
            db.session.commit()
        except ReviewGuardError:
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            self._log_event(event_type, obj, status='failed', error_message=str(e))
            db.session.commit()
            self.logger.error(f"❌ Stripe webhook processing error for {event_type}: {e}")
            raise

        if subscription and event_type == 'invoice.payment_failed':
            self.notifications.payment_failed(subscription.email)
        if subscription and event_type == 'checkout.session.completed':
            self.notifications.subscription_activated(subscription.email, subscription.plan)

        return {'handled': True, 'matched': subscription is not None}

    def _checkout_completed(self, event_type, session) -> Optional[Subscription]:
        metadata = session.get('metadata') or {}
        plan_id = metadata.get('plan_id') or 'starter'
        plan = PLANS.get(plan_id, PLANS['starter'])

        subscription = self._find_subscription(session)
        if not subscription:
            self.logger.warning(f"Checkout completed for unknown tenant (session {session.get('id')})")
            return None

        subscription.subscription_status = 'active'
        subscription.plan = plan_id
        subscription.sms_quota = int(metadata.get('sms_quota') or plan['sms_quota'])
        subscription.stripe_customer_id = session.get('customer') or subscription.stripe_customer_id
        subscription.stripe_subscription_id = session.get('subscription') or subscription.stripe_subscription_id
        self.logger.info(f"✅ Subscription activated for user {subscription.user_id} - Plan: {plan_id}")
        return subscription

    def _payment_succeeded(self, event_type, invoice) -> Optional[Subscription]:
        subscription = self._find_subscription(invoice)
        if not subscription:
            return None

        subscription.subscription_status = 'active'
        self.quota_guard.reset_usage(subscription)
        return subscription

    def _subscription_updated(self, event_type, stripe_subscription) -> Optional[Subscription]:
        subscription = Subscription.query.filter_by(stripe_subscription_id=stripe_subscription.get('id')).first()
        if not subscription:
            return None

        status = stripe_subscription.get('status')
        subscription.subscription_status = 'active' if status in ('active', 'trialing') else 'inactive'
        return subscription

    def _deactivate(self, event_type, obj) -> Optional[Subscription]:
        subscription = self._find_subscription(obj)
        if not subscription:
            return None

        subscription.subscription_status = 'inactive'
        self.logger.info(f"Subscription deactivated for user {subscription.user_id} - Reason: {event_type}")
        return subscription

    def _find_subscription(self, obj) -> Optional[Subscription]:
        """Match a Stripe object to a tenant subscription"""
        metadata = obj.get('metadata') or {}
        user_id = metadata.get('user_id') or obj.get('client_reference_id')
        if user_id:
            subscription = Subscription.query.filter_by(user_id=int(user_id)).first()
            if subscription:
                return subscription

        stripe_subscription_id = obj.get('subscription')
        if obj.get('object') == 'subscription':
            stripe_subscription_id = obj.get('id')
        if stripe_subscription_id:
            subscription = Subscription.query.filter_by(stripe_subscription_id=stripe_subscription_id).first()
            if subscription:
                return subscription

        customer_id = obj.get('customer')
        if customer_id:
            subscription = Subscription.query.filter_by(stripe_customer_id=customer_id).first()
            if subscription:
                return subscription

        details = obj.get('customer_details') or {}
        email = obj.get('customer_email') or metadata.get('email') or details.get('email')
        if email:
            return Subscription.query.filter_by(email=email).first()
        return None

    def _log_event(self, event_type: str, obj, email: Optional[str] = None,
                   status: str = 'processed', error_message: Optional[str] = None) -> EventLog:
        entry = EventLog(
            event_type=event_type,
            event_data={
                'object_id': obj.get('id'),
                'object': obj.get('object'),
                'customer': obj.get('customer'),
                'received_at': datetime.utcnow().isoformat()
            },
            email=email,
            status=status,
            error_message=error_message
        )
        db.session.add(entry)
        return entry
