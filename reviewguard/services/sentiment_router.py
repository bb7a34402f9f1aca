import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any, Optional, Tuple

from reviewguard.extensions import db
from reviewguard.exceptions import AlreadySubmitted, InvalidRating, InvalidToken
from reviewguard.models.customer import Customer
from reviewguard.models.feedback import InternalFeedback
from reviewguard.models.message import Message, MessageType, ReviewStatus
from reviewguard.utils.validators import sanitize_string

POSITIVE_THRESHOLD = 4
SENTIMENTS = ('positive', 'negative')


@dataclass
class RoutingDecision:
    primary_action: str
    google_review_url: Optional[str]
    business_name: str
    rating: Optional[int] = None
    sentiment: Optional[str] = None
    feedback_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SentimentRouter:
    """
    Routes a customer's rating to the public review page or private feedback.

    Positive ratings (4-5 stars or 'positive') point at the tenant's Google
    review link. Negative ratings are stored as internal feedback and the
    tenant is alerted, but the Google link is still returned for display.
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

    def resolve(self, token: str) -> Tuple[Customer, Message]:
        if not token:
            raise InvalidToken()

        customer = Customer.query.filter_by(tracking_token=token).first()
        if not customer:
            raise InvalidToken()

        message = Message.query.filter_by(
            customer_id=customer.id,
            user_id=customer.user_id,
            feedback_token=token,
            message_type=MessageType.REVIEW.value
        ).order_by(Message.sent_at.desc()).first()
        if not message:
            raise InvalidToken()

        return customer, message

    def landing(self, token: str) -> Dict[str, Any]:
        """Record the link click and return what the feedback page shows"""
        customer, message = self.resolve(token)
        user = customer.user

        customer.link_clicked = True
        if not message.review_link_clicked_at:
            message.review_link_clicked_at = datetime.utcnow()
        db.session.commit()

        return {
            'customer_name': customer.first_name,
            'business_name': user.display_business_name,
            'google_review_url': user.google_review_link,
            'already_submitted': message.feedback_submitted
        }

    def submit(self, token: str, rating=None, sentiment: Optional[str] = None,
               feedback_text: Optional[str] = None, user_email: Optional[str] = None,
               max_rating: int = 5) -> RoutingDecision:
        rating, sentiment = self._validate(rating, sentiment, max_rating)
        customer, message = self.resolve(token)
        user = customer.user

        if message.feedback_submitted:
            raise AlreadySubmitted(google_review_url=user.google_review_link)

        now = datetime.utcnow()
        message.feedback_rating = rating
        message.feedback_sentiment = sentiment
        message.feedback_collected_at = now

        positive = self._is_positive(rating, sentiment)
        decision = RoutingDecision(
            primary_action='google_review' if positive else 'private_feedback',
            google_review_url=user.google_review_link,
            business_name=user.display_business_name,
            rating=rating,
            sentiment=sentiment
        )

        feedback = None
        if positive:
            # A message the tenant already marked reviewed stays reviewed
            if message.status != ReviewStatus.REVIEWED:
                message.transition_review_status(ReviewStatus.LINK_CLICKED, at=now)
            customer.link_clicked = True
        else:
            message.transition_review_status(ReviewStatus.REVIEWED, at=now)
            feedback = InternalFeedback(
                message_id=message.id,
                user_id=user.id,
                rating=rating,
                sentiment=sentiment,
                feedback_text=sanitize_string(feedback_text, max_length=5000),
                user_email=sanitize_string(user_email, max_length=255),
                customer_name=customer.name,
                customer_phone=customer.phone
            )
            db.session.add(feedback)

        db.session.commit()

        if feedback is not None:
            decision.feedback_id = feedback.id
            self.notifications.low_rating_alert(user, feedback)

        self.logger.info(
            f"Feedback routed for message {message.id}: {decision.primary_action} "
            f"(rating={rating}, sentiment={sentiment})"
        )
        return decision

    def _validate(self, rating, sentiment, max_rating) -> Tuple[Optional[int], Optional[str]]:
        if rating is not None and sentiment is not None:
            raise InvalidRating('Provide either a rating or a sentiment, not both')

        if sentiment is not None:
            sentiment = str(sentiment).strip().lower()
            if sentiment not in SENTIMENTS:
                raise InvalidRating("Sentiment must be 'positive' or 'negative'")
            return None, sentiment

        if rating is None or isinstance(rating, bool):
            raise InvalidRating()
        try:
            rating = int(rating)
        except (TypeError, ValueError):
            raise InvalidRating()
        if not 1 <= rating <= max_rating:
            raise InvalidRating(f"Rating must be between 1 and {max_rating}")
        return rating, None

    def _is_positive(self, rating: Optional[int], sentiment: Optional[str]) -> bool:
        if sentiment is not None:
            return sentiment == 'positive'
        return rating >= POSITIVE_THRESHOLD
