from datetime import datetime

from reviewguard.extensions import db

STOP_KEYWORDS = ('STOP', 'STOPALL', 'UNSUBSCRIBE', 'CANCEL', 'END', 'QUIT')
START_KEYWORDS = ('START', 'UNSTOP', 'YES')


class SmsOptOut(db.Model):
    """Numbers that replied STOP. Carrier opt-outs apply across all tenants."""
    __tablename__ = 'sms_optouts'

    id = db.Column(db.Integer, primary_key=True)
    phone = db.Column(db.String(20), unique=True, nullable=False, index=True)
    reason = db.Column(db.String(50), default='STOP')
    opted_out_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def is_opted_out(cls, phone):
        return db.session.query(cls.id).filter_by(phone=phone).first() is not None

    @classmethod
    def opt_out(cls, phone, reason='STOP'):
        record = cls.query.filter_by(phone=phone).first()
        if record:
            record.reason = reason
            record.opted_out_at = datetime.utcnow()
        else:
            record = cls(phone=phone, reason=reason)
            db.session.add(record)
        return record

    @classmethod
    def opt_in(cls, phone):
        """Remove the opt-out; returns True if one existed"""
        return cls.query.filter_by(phone=phone).delete() > 0

    def to_dict(self):
        return {
            'phone': self.phone,
            'reason': self.reason,
            'opted_out_at': self.opted_out_at.isoformat() if self.opted_out_at else None
        }
