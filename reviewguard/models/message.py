import enum
from datetime import datetime
from typing import Dict, Any, Optional

from reviewguard.extensions import db
from reviewguard.exceptions import InvalidStatusTransition


class MessageType(str, enum.Enum):
    REVIEW = 'review'
    GENERAL = 'general'
    REVIEW_FOLLOW_UP = 'review_follow_up'


class ReviewStatus(str, enum.Enum):
    PENDING = 'pending'
    FOLLOW_UP_SENT = 'follow_up_sent'
    LINK_CLICKED = 'link_clicked'
    REVIEWED = 'reviewed'


# Allowed review status changes. Re-applying the current status is a no-op.
REVIEW_STATUS_TRANSITIONS = {
    ReviewStatus.PENDING: {
        ReviewStatus.LINK_CLICKED,
        ReviewStatus.REVIEWED,
        ReviewStatus.FOLLOW_UP_SENT,
    },
    ReviewStatus.FOLLOW_UP_SENT: {
        ReviewStatus.LINK_CLICKED,
        ReviewStatus.REVIEWED,
    },
    ReviewStatus.LINK_CLICKED: {
        ReviewStatus.REVIEWED,
    },
    ReviewStatus.REVIEWED: set(),
}


def can_transition(current: ReviewStatus, target: ReviewStatus) -> bool:
    return current == target or target in REVIEW_STATUS_TRANSITIONS[current]


class Message(db.Model):
    """Outbound SMS/MMS sent on behalf of a tenant"""
    __tablename__ = 'messages'
    __table_args__ = (
        db.Index('idx_messages_user_customer_sent', 'user_id', 'customer_id', 'sent_at'),
        db.Index('idx_messages_follow_up', 'review_status', 'follow_up_due_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False, index=True)

    message_type = db.Column(db.String(30), nullable=False, default=MessageType.REVIEW.value)
    body = db.Column(db.Text)
    media_url = db.Column(db.String(500))

    # Provider tracking
    provider_sid = db.Column(db.String(64), index=True)
    delivery_status = db.Column(db.String(20), default='queued')
    error_code = db.Column(db.String(20))

    # Review funnel
    # NULL for general messages and follow-ups; review requests start at pending
    review_status = db.Column(db.String(20), index=True)
    review_link_token = db.Column(db.String(64), index=True)
    feedback_token = db.Column(db.String(64), index=True)
    feedback_rating = db.Column(db.Integer)
    feedback_sentiment = db.Column(db.String(10))
    feedback_collected_at = db.Column(db.DateTime)
    review_link_clicked_at = db.Column(db.DateTime)
    review_received_at = db.Column(db.DateTime)

    # Follow-up scheduling
    follow_up_due_at = db.Column(db.DateTime)
    follow_up_sent_at = db.Column(db.DateTime)

    sms_consent_confirmed = db.Column(db.Boolean, default=False, nullable=False)
    sent_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    # Relationships
    user = db.relationship('User', back_populates='messages')
    customer = db.relationship('Customer', back_populates='messages')

    @property
    def status(self) -> Optional[ReviewStatus]:
        return ReviewStatus(self.review_status) if self.review_status else None

    @property
    def feedback_submitted(self) -> bool:
        return self.feedback_rating is not None or self.feedback_sentiment is not None

    def transition_review_status(self, target, at: Optional[datetime] = None) -> bool:
        """
        Move the message to a new review status.

        Returns True when the status changed, False when it already had the
        target status. Raises InvalidStatusTransition for disallowed moves.
        """
        target = ReviewStatus(target)
        current = self.status
        if current is None:
            raise InvalidStatusTransition('none', target.value)
        if current == target:
            return False
        if not can_transition(current, target):
            raise InvalidStatusTransition(current.value, target.value)

        now = at or datetime.utcnow()
        self.review_status = target.value
        if target == ReviewStatus.LINK_CLICKED and not self.review_link_clicked_at:
            self.review_link_clicked_at = now
        elif target == ReviewStatus.REVIEWED:
            self.review_received_at = now
        elif target == ReviewStatus.FOLLOW_UP_SENT:
            self.follow_up_sent_at = now
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'customer_name': self.customer.name if self.customer else None,
            'customer_phone': self.customer.phone if self.customer else None,
            'message_type': self.message_type,
            'body': self.body,
            'media_url': self.media_url,
            'provider_sid': self.provider_sid,
            'delivery_status': self.delivery_status,
            'error_code': self.error_code,
            'review_status': self.review_status,
            'feedback_rating': self.feedback_rating,
            'feedback_sentiment': self.feedback_sentiment,
            'link_clicked': bool(self.review_link_clicked_at),
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
            'follow_up_due_at': self.follow_up_due_at.isoformat() if self.follow_up_due_at else None,
            'follow_up_sent_at': self.follow_up_sent_at.isoformat() if self.follow_up_sent_at else None
        }

    def __repr__(self):
        return f'<Message {self.id} {self.message_type} {self.review_status}>'
