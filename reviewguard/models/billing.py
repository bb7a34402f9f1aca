from datetime import datetime
from reviewguard.extensions import db

# Plan catalogue: monthly SMS quota and price in USD
PLANS = {
    'free': {
        'name': 'Free',
        'sms_quota': 50,
        'monthly_price': 0,
        'features': ['50 review requests per month', 'Sentiment routing', 'Private feedback inbox']
    },
    'starter': {
        'name': 'Starter',
        'sms_quota': 300,
        'monthly_price': 49,
        'features': ['300 review requests per month', 'Automatic follow-ups', 'AI reply drafts']
    },
    'pro': {
        'name': 'Pro',
        'sms_quota': 1000,
        'monthly_price': 99,
        'features': ['1000 review requests per month', 'Telegram approvals', 'Priority support']
    },
}

SENDABLE_STATUSES = ('active', 'trial')


class Subscription(db.Model):
    """Per-tenant plan, SMS quota and usage counter"""
    __tablename__ = 'subscriptions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)
    email = db.Column(db.String(255), index=True)

    # Status
    subscription_status = db.Column(db.String(20), nullable=False, default='trial')  # trial, active, inactive
    plan = db.Column(db.String(20), nullable=False, default='free')

    # Usage
    sms_quota = db.Column(db.Integer, nullable=False, default=50)
    sms_sent = db.Column(db.Integer, nullable=False, default=0)

    # Stripe references
    stripe_customer_id = db.Column(db.String(100), index=True)
    stripe_subscription_id = db.Column(db.String(100))

    # Dates
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', back_populates='subscription')

    @property
    def can_send(self):
        return self.subscription_status in SENDABLE_STATUSES

    @property
    def remaining(self):
        return max(self.sms_quota - self.sms_sent, 0)

    def to_dict(self):
        return {
            'plan': self.plan,
            'subscription_status': self.subscription_status,
            'sms_quota': self.sms_quota,
            'sms_sent': self.sms_sent,
            'remaining': self.remaining,
            'stripe_customer_id': self.stripe_customer_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<Subscription user={self.user_id} {self.plan} {self.sms_sent}/{self.sms_quota}>'


class EventLog(db.Model):
    """Audit trail of billing webhook events"""
    __tablename__ = 'event_logs'

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(100), nullable=False, index=True)
    event_data = db.Column(db.JSON)
    email = db.Column(db.String(255))
    status = db.Column(db.String(20), default='received')  # received, processed, failed, ignored
    error_message = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'event_type': self.event_type,
            'email': self.email,
            'status': self.status,
            'error_message': self.error_message,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
