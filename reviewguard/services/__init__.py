
# Service Factory Pattern
def get_sms_service():
    from .sms_service import SMSService
    return SMSService()

def get_quota_guard():
    from .quota_service import SmsQuotaGuard
    return SmsQuotaGuard()

def get_notification_service():
    from .notification_service import NotificationService
    return NotificationService()

def get_messaging_service():
    from .messaging_service import MessagingService
    return MessagingService()

def get_sentiment_router():
    from .sentiment_router import SentimentRouter
    return SentimentRouter()

def get_reply_drafting_service():
    from .ai_service import ReplyDraftingService
    return ReplyDraftingService()

def get_billing_service():
    from .billing_service import BillingService
    return BillingService()

def get_review_service():
    from .review_service import ReviewService
    return ReviewService()

def get_feedback_service():
    from .feedback_service import FeedbackService
    return FeedbackService()

def get_dashboard_service():
    from .dashboard_service import DashboardService
    return DashboardService()


__all__ = [
    "get_sms_service",
    "get_quota_guard",
    "get_notification_service",
    "get_messaging_service",
    "get_sentiment_router",
    "get_reply_drafting_service",
    "get_billing_service",
    "get_review_service",
    "get_feedback_service",
    "get_dashboard_service",
]
