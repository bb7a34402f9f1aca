# =============================================================================
# reviewguard/models/__init__.py
# =============================================================================
from reviewguard.models.user import User
from reviewguard.models.customer import Customer
from reviewguard.models.message import Message, MessageType, ReviewStatus
from reviewguard.models.feedback import InternalFeedback
from reviewguard.models.billing import Subscription, EventLog, PLANS
from reviewguard.models.optout import SmsOptOut
from reviewguard.models.review import GoogleReview

__all__ = [
    'User',
    'Customer',
    'Message',
    'MessageType',
    'ReviewStatus',
    'InternalFeedback',
    'Subscription',
    'EventLog',
    'PLANS',
    'SmsOptOut',
    'GoogleReview',
]
