from typing import Any, Dict, Optional


class ReviewGuardError(Exception):
    """Base exception for domain errors rendered as JSON responses"""

    code = 'INTERNAL_ERROR'
    status_code = 500
    default_message = 'An unexpected error occurred'

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None,
                 status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        super().__init__(self.message)
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {
            'success': False,
            'error': self.message,
            'code': self.code
        }
        body.update(self.payload)
        return body


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class InvalidPhoneFormat(ReviewGuardError):
    """Phone number cannot be normalized to E.164"""
    code = 'INVALID_PHONE_FORMAT'
    status_code = 400
    default_message = 'Invalid phone number format'


class ConsentRequired(ReviewGuardError):
    """Customer SMS consent was not confirmed"""
    code = 'CONSENT_REQUIRED'
    status_code = 400
    default_message = 'Customer SMS consent must be confirmed before sending'


class OnboardingIncomplete(ReviewGuardError):
    code = 'ONBOARDING_INCOMPLETE'
    status_code = 400
    default_message = 'Complete your business profile before sending review requests'

    def __init__(self, missing_fields, message=None):
        super().__init__(message, payload={'missing_fields': list(missing_fields)})


class OptedOut(ReviewGuardError):
    code = 'OPTED_OUT'
    status_code = 400
    default_message = 'This phone number has opted out of SMS messages'


class InvalidRating(ReviewGuardError):
    code = 'INVALID_RATING'
    status_code = 400
    default_message = 'Rating must be between 1 and 5'


# =============================================================================
# BILLING / QUOTA ERRORS
# =============================================================================

class SubscriptionInactive(ReviewGuardError):
    code = 'SUBSCRIPTION_INACTIVE'
    status_code = 402
    default_message = 'Your subscription is not active'


class QuotaExceeded(ReviewGuardError):
    """Tenant has used every SMS in the current billing cycle"""
    code = 'QUOTA_EXCEEDED'
    status_code = 402
    default_message = 'SMS quota exceeded. Please upgrade your plan.'

    def __init__(self, quota: int, used: int, message=None):
        super().__init__(message, payload={'quota': quota, 'used': used})


class BillingError(ReviewGuardError):
    code = 'BILLING_ERROR'
    status_code = 502
    default_message = 'Payment system error'


# =============================================================================
# STATE ERRORS
# =============================================================================

class DuplicateSmsBlocked(ReviewGuardError):
    code = 'DUPLICATE_SMS_BLOCKED'
    status_code = 409
    default_message = 'A review request was already sent to this number recently'


class AlreadySubmitted(ReviewGuardError):
    code = 'ALREADY_SUBMITTED'
    status_code = 409
    default_message = 'Feedback has already been submitted for this link'

    def __init__(self, google_review_url: Optional[str] = None, message=None):
        super().__init__(message, payload={'google_review_url': google_review_url})


class InvalidStatusTransition(ReviewGuardError):
    code = 'INVALID_STATUS_TRANSITION'
    status_code = 409

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot change review status from '{current}' to '{target}'",
            payload={'current_status': current, 'requested_status': target}
        )


class InvalidToken(ReviewGuardError):
    code = 'INVALID_TOKEN'
    status_code = 404
    default_message = 'Invalid or expired feedback link'


class NotFound(ReviewGuardError):
    code = 'NOT_FOUND'
    status_code = 404
    default_message = 'Resource not found'


class AuthenticationError(ReviewGuardError):
    code = 'UNAUTHORIZED'
    status_code = 401
    default_message = 'Authentication failed'


class RateLimitError(ReviewGuardError):
    code = 'RATE_LIMIT_EXCEEDED'
    status_code = 429
    default_message = 'Too many requests. Please try again later.'


# =============================================================================
# EXTERNAL SERVICE ERRORS
# =============================================================================

class CarrierError(ReviewGuardError):
    """SMS provider rejected or failed the send"""
    code = 'CARRIER_ERROR'
    status_code = 502
    default_message = 'Failed to send SMS'

    def __init__(self, message=None, provider_code=None):
        super().__init__(message, payload={'provider_code': provider_code})
        self.provider_code = provider_code


class AIServiceError(ReviewGuardError):
    """LLM endpoint unavailable or returned an unusable response"""
    code = 'AI_SERVICE_UNAVAILABLE'
    status_code = 503
    default_message = 'AI service is temporarily unavailable'


class IntegrationError(ReviewGuardError):
    code = 'INTEGRATION_ERROR'
    status_code = 502
    default_message = 'External integration failed'
