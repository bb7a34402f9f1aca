import logging
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional

from flask import current_app

from reviewguard.extensions import db
from reviewguard.exceptions import (
    ReviewGuardError, OnboardingIncomplete, OptedOut, DuplicateSmsBlocked,
    NotFound, InvalidStatusTransition
)
from reviewguard.models.customer import Customer
from reviewguard.models.message import Message, MessageType, ReviewStatus
from reviewguard.models.optout import SmsOptOut
from reviewguard.services import token_service
from reviewguard.utils.helpers import mask_phone
from reviewguard.utils.validators import format_phone_number, require_sms_consent, sanitize_string

STOP_FOOTER = "\n\nReply STOP to opt out."

DEFAULT_REVIEW_TEMPLATE = (
    "Hi {name}! Thanks for choosing {business}. "
    "How was your experience? Let us know here: {link}"
)

FOLLOW_UP_TEMPLATE = (
    "Hi {name}! Just a friendly reminder - we'd really appreciate your feedback on Google. "
    "Your review helps us serve you better! {link} Thank you! 🙏"
)


class MessagingService:
    """Review request sending, follow-ups and message status bookkeeping"""

    def __init__(self, sms_service=None, quota_guard=None):
        self.logger = logging.getLogger(__name__)
        self._sms_service = sms_service
        self._quota_guard = quota_guard

    @property
    def sms_service(self):
        if self._sms_service is None:
            from reviewguard.services import get_sms_service
            self._sms_service = get_sms_service()
        return self._sms_service

    @property
    def quota_guard(self):
        if self._quota_guard is None:
            from reviewguard.services import get_quota_guard
            self._quota_guard = get_quota_guard()
        return self._quota_guard

    # =========================================================================
    # REVIEW REQUESTS
    # =========================================================================

    def send_review_request(self, user, customer_name: str, customer_phone: str,
                            message_type: str = MessageType.REVIEW.value,
                            additional_info: Optional[str] = None,
                            sms_consent=False, media_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Send a review request (or general message) to one customer.

        The quota increment, customer token and message row are committed
        together; a carrier failure rolls all of them back.
        """
        require_sms_consent(sms_consent)
        phone = format_phone_number(customer_phone)
        message_type = MessageType(message_type).value
        customer_name = sanitize_string(customer_name, max_length=100)
        additional_info = sanitize_string(additional_info, max_length=1000)

        if message_type == MessageType.REVIEW_FOLLOW_UP.value:
            raise ReviewGuardError('Follow-ups are sent through the follow-up endpoint',
                                   code='VALIDATION_ERROR', status_code=400)
        if not customer_name:
            raise ReviewGuardError('Customer name is required', code='VALIDATION_ERROR', status_code=400)
        if message_type == MessageType.GENERAL.value and not additional_info:
            raise ReviewGuardError('Message text is required', code='VALIDATION_ERROR', status_code=400)

        missing = user.missing_onboarding_fields()
        if missing:
            raise OnboardingIncomplete(
                missing,
                'Please go to Settings and configure your Business Name and Google Review Link '
                'before sending messages.'
            )

        if SmsOptOut.is_opted_out(phone):
            raise OptedOut()

        self._check_duplicate(user, phone)

        with self.quota_guard.reserve(user) as subscription:
            customer = self._upsert_customer(user, customer_name, phone)
            now = datetime.utcnow()

            message = Message(
                user_id=user.id,
                message_type=message_type,
                media_url=media_url,
                review_status=None,
                sms_consent_confirmed=True,
                sent_at=now
            )
            message.customer = customer

            if message_type == MessageType.REVIEW.value:
                token = token_service.issue_tracking_token(customer)
                message.feedback_token = token
                message.review_link_token = token_service.generate_review_link_token()
                message.review_status = ReviewStatus.PENDING.value
                delay_days = current_app.config.get('FOLLOW_UP_DELAY_DAYS', 3)
                message.follow_up_due_at = now + timedelta(days=delay_days)
                body = self.render_review_body(user, customer, token_service.feedback_link(token), additional_info)
            else:
                body = additional_info + STOP_FOOTER

            message.body = body
            result = self.sms_service.send_message(phone, body, media_url=media_url)

            message.provider_sid = result['sid']
            message.delivery_status = result['status']
            customer.last_sms_sent_at = now
            db.session.add(message)

        self.logger.info(
            f"✅ {message_type} message {message.id} sent for user {user.id} to {mask_phone(phone)}"
        )

        return {
            'message': message.to_dict(),
            'customer': customer.to_dict(),
            'usage': {
                'sms_sent': subscription.sms_sent,
                'sms_quota': subscription.sms_quota,
                'remaining': subscription.remaining
            }
        }

    def render_review_body(self, user, customer, link: str, additional_info: Optional[str] = None) -> str:
        """Fill the tenant's template (or the default one) and append the opt-out footer"""
        template = user.sms_template or DEFAULT_REVIEW_TEMPLATE
        body = (
            template
            .replace('{name}', customer.first_name)
            .replace('{business}', user.display_business_name)
            .replace('{link}', link)
        )
        if link not in body:
            body = f"{body}\n\n{link}"
        if additional_info:
            body = f"{body}\n\n{additional_info}"
        return body + STOP_FOOTER

    def _check_duplicate(self, user, phone: str) -> None:
        window = current_app.config.get('DUPLICATE_SMS_WINDOW_MINUTES', 60)
        since = datetime.utcnow() - timedelta(minutes=window)

        recent = (
            Message.query
            .join(Customer, Message.customer_id == Customer.id)
            .filter(
                Message.user_id == user.id,
                Customer.phone == phone,
                Message.message_type.in_([MessageType.REVIEW.value, MessageType.GENERAL.value]),
                Message.sent_at >= since
            )
            .first()
        )
        if recent:
            self.logger.info(f"Duplicate send blocked for user {user.id} to {mask_phone(phone)}")
            raise DuplicateSmsBlocked(
                f"A message was already sent to this number in the last {window} minutes"
            )

    def _upsert_customer(self, user, name: str, phone: str) -> Customer:
        customer = Customer.query.filter_by(user_id=user.id, phone=phone).first()
        if customer:
            customer.name = name
            return customer

        customer = Customer(user_id=user.id, name=name, phone=phone)
        db.session.add(customer)
        return customer

    # =========================================================================
    # FOLLOW-UPS
    # =========================================================================

    def messages_needing_follow_up(self, user) -> List[Message]:
        now = datetime.utcnow()
        return (
            Message.query
            .filter(
                Message.user_id == user.id,
                Message.message_type == MessageType.REVIEW.value,
                Message.review_status == ReviewStatus.PENDING.value,
                Message.follow_up_due_at <= now,
                Message.follow_up_sent_at.is_(None),
                Message.review_link_clicked_at.is_(None)
            )
            .order_by(Message.follow_up_due_at.asc())
            .all()
        )

    def send_follow_ups(self, user, message_ids: List[int]) -> Dict[str, Any]:
        """Send a reminder for each message; per-message failures are reported, not raised"""
        sent = []
        errors = []

        for message_id in message_ids:
            try:
                sent.append(self._send_follow_up(user, message_id))
            except ReviewGuardError as e:
                self.logger.warning(f"Follow-up for message {message_id} failed: {e.code} {e.message}")
                errors.append({'message_id': message_id, 'error': e.message, 'code': e.code})

        self.logger.info(f"Follow-ups for user {user.id}: {len(sent)} sent, {len(errors)} failed")
        return {
            'sent_count': len(sent),
            'sent': sent,
            'errors': errors
        }

    def _send_follow_up(self, user, message_id: int) -> int:
        original = Message.query.filter_by(
            id=message_id, user_id=user.id, message_type=MessageType.REVIEW.value
        ).first()
        if not original:
            raise NotFound('Message not found')
        if original.status != ReviewStatus.PENDING or original.follow_up_sent_at:
            raise InvalidStatusTransition(original.status.value, ReviewStatus.FOLLOW_UP_SENT.value)

        customer = original.customer
        if SmsOptOut.is_opted_out(customer.phone):
            raise OptedOut('Phone number has opted out')

        if not original.review_link_token:
            original.review_link_token = token_service.generate_review_link_token()

        base_url = current_app.config.get('APP_BASE_URL', '').rstrip('/')
        link = f"{base_url}/g/{original.review_link_token}"
        body = FOLLOW_UP_TEMPLATE.replace('{name}', customer.first_name).replace('{link}', link) + STOP_FOOTER

        with self.quota_guard.reserve(user):
            now = datetime.utcnow()
            result = self.sms_service.send_message(customer.phone, body)

            follow_up = Message(
                user_id=user.id,
                message_type=MessageType.REVIEW_FOLLOW_UP.value,
                body=body,
                provider_sid=result['sid'],
                delivery_status=result['status'],
                review_status=None,
                sms_consent_confirmed=original.sms_consent_confirmed,
                sent_at=now
            )
            follow_up.customer = customer
            db.session.add(follow_up)

            original.transition_review_status(ReviewStatus.FOLLOW_UP_SENT, at=now)
            customer.follow_up_sent = True
            customer.last_sms_sent_at = now

        return original.id

    # =========================================================================
    # STATUS UPDATES
    # =========================================================================

    def get_message(self, user, message_id: int) -> Message:
        message = Message.query.filter_by(id=message_id, user_id=user.id).first()
        if not message:
            raise NotFound('Message not found')
        return message

    def update_review_status(self, user, message_id: int, status: str) -> Message:
        message = self.get_message(user, message_id)
        try:
            target = ReviewStatus(status)
        except ValueError:
            raise ReviewGuardError(f"Unknown review status '{status}'", code='VALIDATION_ERROR', status_code=400)

        if message.transition_review_status(target):
            db.session.commit()
            self.logger.info(f"Message {message.id} review status -> {target.value}")
        return message

    def mark_reviewed(self, user, message_id: int) -> Message:
        return self.update_review_status(user, message_id, ReviewStatus.REVIEWED.value)

    def record_review_link_click(self, review_link_token: str) -> Optional[str]:
        """Resolve a Google redirect token; returns the tenant's review URL"""
        message = Message.query.filter_by(review_link_token=review_link_token).first()
        if not message:
            return None

        now = datetime.utcnow()
        if message.status in (ReviewStatus.PENDING, ReviewStatus.FOLLOW_UP_SENT):
            message.transition_review_status(ReviewStatus.LINK_CLICKED, at=now)
        message.customer.link_clicked = True
        db.session.commit()
        return message.user.google_review_link

    def update_delivery_status(self, provider_sid: str, status: str, error_code: Optional[str] = None) -> bool:
        message = Message.query.filter_by(provider_sid=provider_sid).first()
        if not message:
            self.logger.warning(f"Delivery status for unknown message sid {provider_sid}")
            return False

        message.delivery_status = status
        if error_code:
            message.error_code = str(error_code)
        db.session.commit()
        return True

    def get_messages(self, user, page: int = 1, per_page: int = 20,
                     review_status: Optional[str] = None) -> Dict[str, Any]:
        query = Message.query.filter_by(user_id=user.id)
        if review_status:
            query = query.filter_by(review_status=review_status)

        pagination = query.order_by(Message.sent_at.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )
        return {
            'messages': [message.to_dict() for message in pagination.items],
            'pagination': {
                'page': page,
                'per_page': per_page,
                'total': pagination.total,
                'pages': pagination.pages
            }
        }
