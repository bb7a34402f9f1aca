from datetime import datetime
from typing import Dict, Any, List
from werkzeug.security import generate_password_hash, check_password_hash

from reviewguard.extensions import db


class User(db.Model):
    """Tenant account - one business sending review requests"""
    __tablename__ = 'users'

    # Primary Key
    id = db.Column(db.Integer, primary_key=True)

    # Authentication
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # Personal Information
    first_name = db.Column(db.String(50))
    last_name = db.Column(db.String(50))
    company_name = db.Column(db.String(200))

    # Business profile used in review requests
    business_name = db.Column(db.String(200))
    google_review_link = db.Column(db.String(500))
    sms_template = db.Column(db.Text)

    # Telegram approval bot
    telegram_bot_token = db.Column(db.String(255))
    telegram_chat_id = db.Column(db.String(64))
    telegram_webhook_secret = db.Column(db.String(64))

    # Account Status
    is_active = db.Column(db.Boolean, default=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customers = db.relationship('Customer', back_populates='user', lazy='dynamic')
    messages = db.relationship('Message', back_populates='user', lazy='dynamic')
    subscription = db.relationship('Subscription', back_populates='user', uselist=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self) -> str:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name or self.company_name or self.email

    @property
    def display_business_name(self) -> str:
        return self.business_name or self.company_name or 'our business'

    def missing_onboarding_fields(self) -> List[str]:
        """Profile fields that must be filled before review requests go out"""
        missing = []
        if not self.business_name and not self.company_name:
            missing.append('business_name')
        if not self.google_review_link:
            missing.append('google_review_link')
        return missing

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'company_name': self.company_name,
            'business_name': self.business_name,
            'google_review_link': self.google_review_link,
            'sms_template': self.sms_template,
            'telegram_configured': self.telegram_configured,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<User {self.email}>'
