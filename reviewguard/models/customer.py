from reviewguard.extensions import db
from datetime import datetime
from typing import Dict, Any


class Customer(db.Model):
    """A tenant's customer, keyed by phone number"""
    __tablename__ = 'customers'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'phone', name='uq_customer_user_phone'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20), nullable=False, index=True)

    # Latest feedback link token; reissued on every send
    tracking_token = db.Column(db.String(64), unique=True, index=True)

    link_clicked = db.Column(db.Boolean, default=False, nullable=False)
    follow_up_sent = db.Column(db.Boolean, default=False, nullable=False)
    last_sms_sent_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = db.relationship('User', back_populates='customers')
    messages = db.relationship('Message', back_populates='customer', lazy='dynamic')

    @property
    def first_name(self) -> str:
        return self.name.split(' ')[0] if self.name else ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'link_clicked': self.link_clicked,
            'follow_up_sent': self.follow_up_sent,
            'last_sms_sent_at': self.last_sms_sent_at.isoformat() if self.last_sms_sent_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<Customer {self.id} user={self.user_id}>'
