from reviewguard.extensions import db
from datetime import datetime
from typing import Dict, Any

FEEDBACK_READ_STATES = ('unread', 'read', 'ignored')
FEEDBACK_WORKFLOW_STATES = ('new', 'in_progress', 'resolved')


class InternalFeedback(db.Model):
    """Private feedback left by a customer instead of a public review"""
    __tablename__ = 'internal_feedback'

    id = db.Column(db.Integer, primary_key=True)
    message_id = db.Column(db.Integer, db.ForeignKey('messages.id'), index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    # Submitted content
    rating = db.Column(db.Integer)
    sentiment = db.Column(db.String(10))
    feedback_text = db.Column(db.Text)
    user_email = db.Column(db.String(255))
    customer_name = db.Column(db.String(100))
    customer_phone = db.Column(db.String(20), index=True)

    # Triage
    status = db.Column(db.String(20), default='unread', nullable=False)  # unread, read, ignored
    feedback_status = db.Column(db.String(20), default='new', nullable=False)  # new, in_progress, resolved
    assigned_to = db.Column(db.String(100))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    message = db.relationship('Message')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'message_id': self.message_id,
            'rating': self.rating,
            'sentiment': self.sentiment,
            'feedback_text': self.feedback_text,
            'user_email': self.user_email,
            'customer_name': self.customer_name,
            'customer_phone': self.customer_phone,
            'status': self.status,
            'feedback_status': self.feedback_status,
            'assigned_to': self.assigned_to,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<InternalFeedback {self.id} rating={self.rating}>'
