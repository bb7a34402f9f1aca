from reviewguard.extensions import db
from datetime import datetime
from typing import Dict, Any

REVIEW_STATUSES = ('pending', 'posted', 'ignored')


class GoogleReview(db.Model):
    """Google review pulled in by the n8n integration, awaiting a reply"""
    __tablename__ = 'google_reviews'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'review_id', name='uq_google_review_user_review'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    review_id = db.Column(db.String(255), nullable=False)

    reviewer_name = db.Column(db.String(200))
    star_rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)
    review_date = db.Column(db.DateTime)

    # Reply workflow
    ai_reply_draft = db.Column(db.Text)
    posted_reply = db.Column(db.Text)
    status = db.Column(db.String(20), default='pending', nullable=False, index=True)  # pending, posted, ignored
    approval_requested_at = db.Column(db.DateTime)
    posted_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'review_id': self.review_id,
            'reviewer_name': self.reviewer_name,
            'star_rating': self.star_rating,
            'comment': self.comment,
            'review_date': self.review_date.isoformat() if self.review_date else None,
            'ai_reply_draft': self.ai_reply_draft,
            'posted_reply': self.posted_reply,
            'status': self.status,
            'posted_at': self.posted_at.isoformat() if self.posted_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<GoogleReview {self.review_id} {self.star_rating}★ {self.status}>'
