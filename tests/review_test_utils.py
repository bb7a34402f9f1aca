# tests/review_test_utils.py
"""
Testing utilities for ReviewGuard
Provides factories and mock payloads shared by the test modules
"""

import uuid
from datetime import datetime, timedelta
from typing import Dict, Any

from reviewguard.extensions import db
from reviewguard.models import (
    User, Customer, Message, MessageType, ReviewStatus,
    InternalFeedback, Subscription, GoogleReview
)

GOOGLE_REVIEW_LINK = 'https://g.page/r/fixit-phones/review'


class ReviewGuardTestUtils:
    """Utilities for building test data"""

    @staticmethod
    def create_test_user(email: str = None, password: str = 'password123', **kwargs) -> User:
        """Create a tenant with a complete business profile"""
        user_data = {
            'email': email or f'owner_{uuid.uuid4().hex[:8]}@example.com',
            'first_name': 'Dana',
            'last_name': 'Owner',
            'business_name': 'Fix-It Phones',
            'google_review_link': GOOGLE_REVIEW_LINK,
            'is_active': True,
            **kwargs
        }

        user = User(**user_data)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    @staticmethod
    def create_test_subscription(user: User, **kwargs) -> Subscription:
        subscription_data = {
            'user_id': user.id,
            'email': user.email,
            'subscription_status': 'active',
            'plan': 'starter',
            'sms_quota': 300,
            'sms_sent': 0,
            **kwargs
        }

        subscription = Subscription(**subscription_data)
        db.session.add(subscription)
        db.session.commit()
        return subscription

    @staticmethod
    def create_review_request(user: User, name: str = 'Jane Doe', phone: str = '+15551234567',
                              sent_at: datetime = None, **kwargs) -> Message:
        """Create a sent review request as if it went out through the messaging service"""
        sent_at = sent_at or datetime.utcnow()
        token = uuid.uuid4().hex

        customer = Customer.query.filter_by(user_id=user.id, phone=phone).first()
        if customer is None:
            customer = Customer(user_id=user.id, name=name, phone=phone)
            db.session.add(customer)
        customer.tracking_token = token
        customer.last_sms_sent_at = sent_at

        message_data = {
            'user_id': user.id,
            'message_type': MessageType.REVIEW.value,
            'body': f'Hi {name}! How did we do? https://reviews.example.com/r/{token}',
            'provider_sid': f'SM{uuid.uuid4().hex[:16]}',
            'delivery_status': 'sent',
            'review_status': ReviewStatus.PENDING.value,
            'feedback_token': token,
            'review_link_token': uuid.uuid4().hex,
            'follow_up_due_at': sent_at + timedelta(days=3),
            'sms_consent_confirmed': True,
            'sent_at': sent_at,
            **kwargs
        }

        message = Message(**message_data)
        message.customer = customer
        db.session.add(message)
        db.session.commit()
        return message

    @staticmethod
    def create_feedback(user: User, **kwargs) -> InternalFeedback:
        feedback_data = {
            'user_id': user.id,
            'rating': 2,
            'feedback_text': 'Screen still flickers',
            'customer_name': 'Jane Doe',
            'customer_phone': '+15551234567',
            **kwargs
        }

        feedback = InternalFeedback(**feedback_data)
        db.session.add(feedback)
        db.session.commit()
        return feedback

    @staticmethod
    def create_google_review(user: User, **kwargs) -> GoogleReview:
        review_data = {
            'user_id': user.id,
            'review_id': f'g-{uuid.uuid4().hex[:10]}',
            'reviewer_name': 'Sam Patel',
            'star_rating': 5,
            'comment': 'My iPhone 13 screen repair was fast!',
            'review_date': datetime.utcnow(),
            'status': 'pending',
            **kwargs
        }

        review = GoogleReview(**review_data)
        db.session.add(review)
        db.session.commit()
        return review

    @staticmethod
    def mock_stripe_event(event_type: str, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Verified Stripe event as returned by stripe.Webhook.construct_event"""
        return {
            'id': f'evt_{uuid.uuid4().hex[:16]}',
            'type': event_type,
            'data': {'object': obj}
        }

    @staticmethod
    def mock_llm_response(content: str, total_tokens: int = 42) -> Dict[str, Any]:
        return {
            'choices': [{'message': {'role': 'assistant', 'content': content}}],
            'usage': {'total_tokens': total_tokens}
        }
