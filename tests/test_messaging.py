"""
Unit tests for review request sending and follow-ups
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock

from reviewguard.exceptions import (
    ConsentRequired, InvalidPhoneFormat, OnboardingIncomplete, OptedOut,
    DuplicateSmsBlocked, CarrierError, ReviewGuardError, QuotaExceeded
)
from reviewguard.models import Customer, Message, MessageType, ReviewStatus, SmsOptOut, Subscription
from reviewguard.services.messaging_service import MessagingService, STOP_FOOTER
from reviewguard.services.quota_service import SmsQuotaGuard

from review_test_utils import ReviewGuardTestUtils, GOOGLE_REVIEW_LINK


@pytest.fixture
def messaging(app):
    return MessagingService(quota_guard=SmsQuotaGuard(notification_service=Mock()))


def send(messaging, user, **overrides):
    params = {
        'customer_name': 'Jane Doe',
        'customer_phone': '(555) 123-4567',
        'sms_consent': True,
    }
    params.update(overrides)
    return messaging.send_review_request(user, **params)


class TestSendReviewRequest:

    def test_sends_review_request(self, messaging, user, subscription, sms_sender):
        """Test the happy path stores the message and issues a feedback token"""
        result = send(messaging, user)

        customer = Customer.query.one()
        message = Message.query.one()

        assert customer.phone == '+15551234567'
        assert customer.tracking_token
        assert message.feedback_token == customer.tracking_token
        assert message.review_status == ReviewStatus.PENDING.value
        assert message.provider_sid == 'SM0001'
        assert message.sms_consent_confirmed is True
        assert message.follow_up_due_at > message.sent_at

        link = f"https://reviews.example.com/r/{customer.tracking_token}"
        assert link in message.body
        assert message.body.startswith('Hi Jane!')
        assert message.body.endswith(STOP_FOOTER)

        sms_sender.assert_called_once_with('+15551234567', message.body, media_url=None)
        assert result['usage'] == {'sms_sent': 1, 'sms_quota': 300, 'remaining': 299}
        assert result['message']['review_status'] == 'pending'

    def test_custom_template(self, messaging, db, user, subscription, sms_sender):
        user.sms_template = 'Hey {name}, rate {business}: {link}'
        db.session.commit()

        send(messaging, user)

        message = Message.query.one()
        assert message.body.startswith('Hey Jane, rate Fix-It Phones: https://reviews.example.com/r/')

    def test_new_send_reissues_token(self, messaging, user, subscription, sms_sender):
        """Test an older link stops resolving once a new request goes out"""
        old = ReviewGuardTestUtils.create_review_request(
            user, sent_at=datetime.utcnow() - timedelta(hours=3)
        )
        old_token = old.feedback_token

        send(messaging, user)

        customer = Customer.query.one()
        assert customer.tracking_token != old_token

    def test_general_message(self, messaging, user, subscription, sms_sender):
        send(messaging, user, message_type='general', additional_info='Your repair is ready for pickup.')

        message = Message.query.one()
        assert message.message_type == MessageType.GENERAL.value
        assert message.body == 'Your repair is ready for pickup.' + STOP_FOOTER
        assert message.review_status is None
        assert message.feedback_token is None

    def test_general_message_requires_text(self, messaging, user, subscription, sms_sender):
        with pytest.raises(ReviewGuardError) as exc_info:
            send(messaging, user, message_type='general')

        assert exc_info.value.code == 'VALIDATION_ERROR'
        sms_sender.assert_not_called()

    def test_consent_required(self, messaging, user, subscription, sms_sender):
        with pytest.raises(ConsentRequired):
            send(messaging, user, sms_consent=False)

        sms_sender.assert_not_called()
        assert Message.query.count() == 0

    def test_invalid_phone(self, messaging, user, subscription, sms_sender):
        with pytest.raises(InvalidPhoneFormat):
            send(messaging, user, customer_phone='12345')

        sms_sender.assert_not_called()

    def test_onboarding_incomplete(self, messaging, db, user, subscription, sms_sender):
        """Test tenants without a Google review link cannot send"""
        user.google_review_link = None
        db.session.commit()

        with pytest.raises(OnboardingIncomplete) as exc_info:
            send(messaging, user)

        assert exc_info.value.to_dict()['missing_fields'] == ['google_review_link']
        sms_sender.assert_not_called()

    def test_opted_out_number(self, messaging, db, user, subscription, sms_sender):
        SmsOptOut.opt_out('+15551234567')
        db.session.commit()

        with pytest.raises(OptedOut):
            send(messaging, user)

        sms_sender.assert_not_called()

    def test_duplicate_within_window_blocked(self, messaging, user, subscription, sms_sender):
        """Test the same number cannot be messaged twice within the hour"""
        send(messaging, user)

        with pytest.raises(DuplicateSmsBlocked) as exc_info:
            send(messaging, user, customer_phone='555-123-4567')

        assert exc_info.value.status_code == 409
        assert sms_sender.call_count == 1
        assert subscription.sms_sent == 1

    def test_duplicate_check_is_per_tenant(self, messaging, user, subscription, sms_sender):
        other = ReviewGuardTestUtils.create_test_user()
        ReviewGuardTestUtils.create_test_subscription(other)

        send(messaging, user)
        send(messaging, other)

        assert sms_sender.call_count == 2

    def test_send_allowed_after_window(self, messaging, user, subscription, sms_sender):
        ReviewGuardTestUtils.create_review_request(user, sent_at=datetime.utcnow() - timedelta(minutes=61))

        send(messaging, user)

        assert Message.query.count() == 2

    def test_carrier_failure_rolls_back(self, messaging, user, subscription, sms_sender):
        """Test a rejected send leaves no message and consumes no quota"""
        sms_sender.side_effect = CarrierError('Failed to send SMS: invalid number', provider_code=21211)

        with pytest.raises(CarrierError):
            send(messaging, user)

        assert Message.query.count() == 0
        assert Customer.query.count() == 0
        assert subscription.sms_sent == 0

    def test_quota_exceeded(self, messaging, user, sms_sender):
        ReviewGuardTestUtils.create_test_subscription(user, sms_quota=1, sms_sent=1)

        with pytest.raises(QuotaExceeded):
            send(messaging, user)

        sms_sender.assert_not_called()
        assert Message.query.count() == 0

    def test_creates_trial_subscription_on_first_send(self, messaging, user, sms_sender):
        send(messaging, user)

        subscription = Subscription.query.filter_by(user_id=user.id).one()
        assert subscription.subscription_status == 'trial'
        assert subscription.sms_sent == 1


class TestFollowUps:

    def overdue(self, user, **kwargs):
        return ReviewGuardTestUtils.create_review_request(
            user, sent_at=datetime.utcnow() - timedelta(days=4), **kwargs
        )

    def test_lists_only_due_pending_messages(self, messaging, user):
        due = self.overdue(user)
        ReviewGuardTestUtils.create_review_request(user, name='Recent Person', phone='+15559876543')
        self.overdue(user, name='Clicked Person', phone='+15550000002',
                     review_status=ReviewStatus.LINK_CLICKED.value)

        assert [m.id for m in messaging.messages_needing_follow_up(user)] == [due.id]

    def test_sends_follow_up(self, messaging, user, subscription, sms_sender):
        original = self.overdue(user)

        result = messaging.send_follow_ups(user, [original.id])

        assert result['sent_count'] == 1
        assert result['sent'] == [original.id]
        assert result['errors'] == []

        assert original.review_status == ReviewStatus.FOLLOW_UP_SENT.value
        assert original.follow_up_sent_at is not None
        assert original.customer.follow_up_sent is True

        follow_up = Message.query.filter_by(message_type=MessageType.REVIEW_FOLLOW_UP.value).one()
        assert f"https://reviews.example.com/g/{original.review_link_token}" in follow_up.body
        assert follow_up.review_status is None
        assert subscription.sms_sent == 1
        sms_sender.assert_called_once()

    def test_follow_up_not_sent_twice(self, messaging, user, subscription, sms_sender):
        original = self.overdue(user)
        messaging.send_follow_ups(user, [original.id])

        result = messaging.send_follow_ups(user, [original.id])

        assert result['sent_count'] == 0
        assert result['errors'][0]['code'] == 'INVALID_STATUS_TRANSITION'
        assert sms_sender.call_count == 1

    def test_follow_up_for_other_tenant_not_found(self, messaging, user, subscription, sms_sender):
        other = ReviewGuardTestUtils.create_test_user()
        message = self.overdue(other)

        result = messaging.send_follow_ups(user, [message.id])

        assert result['errors'][0]['code'] == 'NOT_FOUND'
        sms_sender.assert_not_called()

    def test_follow_up_skips_opted_out(self, messaging, db, user, subscription, sms_sender):
        original = self.overdue(user)
        SmsOptOut.opt_out(original.customer.phone)
        db.session.commit()

        result = messaging.send_follow_ups(user, [original.id])

        assert result['errors'][0]['code'] == 'OPTED_OUT'
        sms_sender.assert_not_called()


class TestReviewLinkClicks:

    def test_google_redirect_token(self, messaging, user):
        message = ReviewGuardTestUtils.create_review_request(user)

        target = messaging.record_review_link_click(message.review_link_token)

        assert target == GOOGLE_REVIEW_LINK
        assert message.review_status == ReviewStatus.LINK_CLICKED.value
        assert message.customer.link_clicked is True

    def test_unknown_token(self, messaging, user):
        assert messaging.record_review_link_click('nope') is None

    def test_click_after_reviewed_keeps_status(self, messaging, user):
        message = ReviewGuardTestUtils.create_review_request(user, review_status=ReviewStatus.REVIEWED.value)

        messaging.record_review_link_click(message.review_link_token)

        assert message.review_status == ReviewStatus.REVIEWED.value
