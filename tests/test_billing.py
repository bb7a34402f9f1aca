"""
Tests for plan pricing, Stripe sessions and subscription webhooks
"""

import pytest
from unittest.mock import patch, Mock

import stripe

from reviewguard.extensions import mail
from reviewguard.models import EventLog, Subscription
from reviewguard.services.billing_service import BillingService

from review_test_utils import ReviewGuardTestUtils


def post_event(client, event):
    with patch.object(BillingService, 'construct_event', return_value=event):
        return client.post(
            '/api/billing/webhook',
            data=b'{}',
            headers={'Stripe-Signature': 't=1,v1=abc', 'Content-Type': 'application/json'}
        )


class TestPricing:

    def test_pricing_is_public(self, client, app):
        response = client.get('/api/billing/pricing')

        plans = {plan['id']: plan for plan in response.get_json()['plans']}
        assert response.status_code == 200
        assert plans['free']['sms_quota'] == 50
        assert plans['starter']['sms_quota'] == 300
        assert plans['pro']['monthly_price'] == 99

    def test_subscription_summary(self, client, user, auth_headers):
        ReviewGuardTestUtils.create_test_subscription(user, sms_quota=100, sms_sent=85)

        response = client.get('/api/billing/subscription', headers=auth_headers)
        summary = response.get_json()['subscription']

        assert summary['usage_percentage'] == 85.0
        assert summary['warning_level'] == 'high'


class TestCheckout:

    def test_checkout_session(self, client, user, auth_headers, subscription):
        session = Mock(id='cs_test_1', url='https://checkout.stripe.com/c/pay/cs_test_1')

        with patch('stripe.checkout.Session.create',
                   return_value=session) as create:
            response = client.post('/api/billing/checkout', json={'plan_id': 'pro'}, headers=auth_headers)

        assert response.status_code == 201
        assert response.get_json()['url'] == session.url
        params = create.call_args.kwargs
        assert params['metadata']['user_id'] == str(user.id)
        assert params['metadata']['plan_id'] == 'pro'
        assert params['line_items'][0]['price'] == 'price_pro'

    def test_stripe_error_translated(self, client, auth_headers, subscription):
        with patch('stripe.checkout.Session.create',
                   side_effect=stripe.APIConnectionError('network down')):
            response = client.post('/api/billing/checkout', json={'plan_id': 'starter'}, headers=auth_headers)

        assert response.status_code == 502
        assert response.get_json()['code'] == 'BILLING_ERROR'

    def test_portal_requires_customer(self, client, auth_headers, subscription):
        response = client.post('/api/billing/portal', headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'NO_BILLING_ACCOUNT'


class TestStripeWebhook:

    def test_invalid_signature(self, client, app):
        response = client.post(
            '/api/billing/webhook',
            data=b'{"id": "evt_1"}',
            headers={'Stripe-Signature': 'bogus', 'Content-Type': 'application/json'}
        )

        assert response.status_code == 400
        assert response.get_json()['code'] in ('INVALID_SIGNATURE', 'INVALID_PAYLOAD')

    def test_checkout_completed_activates_plan(self, client, user):
        subscription = ReviewGuardTestUtils.create_test_subscription(
            user, subscription_status='trial', plan='free', sms_quota=50, sms_sent=12
        )
        event = ReviewGuardTestUtils.mock_stripe_event('checkout.session.completed', {
            'id': 'cs_test_1',
            'object': 'checkout.session',
            'customer': 'cus_123',
            'subscription': 'sub_123',
            'client_reference_id': str(user.id),
            'metadata': {'user_id': str(user.id), 'plan_id': 'pro', 'sms_quota': '1000'}
        })

        with mail.record_messages() as outbox:
            response = post_event(client, event)

        assert response.status_code == 200
        assert subscription.subscription_status == 'active'
        assert subscription.plan == 'pro'
        assert subscription.sms_quota == 1000
        assert subscription.stripe_customer_id == 'cus_123'
        assert subscription.stripe_subscription_id == 'sub_123'
        assert EventLog.query.one().status == 'processed'
        assert outbox[0].subject == 'Welcome to ReviewGuard Pro!'

    def test_payment_succeeded_resets_usage(self, client, user):
        subscription = ReviewGuardTestUtils.create_test_subscription(
            user, stripe_customer_id='cus_123', stripe_subscription_id='sub_123', sms_sent=250
        )
        event = ReviewGuardTestUtils.mock_stripe_event('invoice.payment_succeeded', {
            'id': 'in_1', 'object': 'invoice', 'customer': 'cus_123', 'subscription': 'sub_123'
        })

        post_event(client, event)

        assert subscription.sms_sent == 0
        assert subscription.subscription_status == 'active'

    @pytest.mark.parametrize('event_type', ['invoice.payment_failed', 'customer.subscription.deleted'])
    def test_deactivating_events(self, client, user, event_type):
        subscription = ReviewGuardTestUtils.create_test_subscription(
            user, stripe_customer_id='cus_123', stripe_subscription_id='sub_123'
        )
        obj = {'id': 'sub_123', 'object': 'subscription', 'customer': 'cus_123'}
        if event_type == 'invoice.payment_failed':
            obj = {'id': 'in_2', 'object': 'invoice', 'customer': 'cus_123', 'subscription': 'sub_123'}

        post_event(client, ReviewGuardTestUtils.mock_stripe_event(event_type, obj))

        assert subscription.subscription_status == 'inactive'

    def test_payment_failed_emails_customer(self, client, user):
        ReviewGuardTestUtils.create_test_subscription(user, stripe_customer_id='cus_123')
        event = ReviewGuardTestUtils.mock_stripe_event('invoice.payment_failed', {
            'id': 'in_3', 'object': 'invoice', 'customer': 'cus_123'
        })

        with mail.record_messages() as outbox:
            post_event(client, event)

        assert outbox[0].recipients == [user.email]
        assert outbox[0].subject == 'Payment failed - action required'

    def test_subscription_updated(self, client, user):
        subscription = ReviewGuardTestUtils.create_test_subscription(
            user, subscription_status='inactive', stripe_subscription_id='sub_123'
        )
        event = ReviewGuardTestUtils.mock_stripe_event('customer.subscription.updated', {
            'id': 'sub_123', 'object': 'subscription', 'status': 'active'
        })

        post_event(client, event)

        assert subscription.subscription_status == 'active'

    def test_unknown_event_logged_as_ignored(self, client, app):
        event = ReviewGuardTestUtils.mock_stripe_event('customer.created', {'id': 'cus_9', 'object': 'customer'})

        response = post_event(client, event)

        assert response.status_code == 200
        assert response.get_json()['handled'] is False
        assert EventLog.query.one().status == 'ignored'

    def test_unmatched_event(self, client, app):
        event = ReviewGuardTestUtils.mock_stripe_event('invoice.payment_failed', {
            'id': 'in_4', 'object': 'invoice', 'customer': 'cus_nobody'
        })

        response = post_event(client, event)

        assert response.get_json()['matched'] is False
        assert EventLog.query.one().status == 'unmatched'
        assert Subscription.query.count() == 0
