import logging
from datetime import datetime
from typing import Dict, Any, List, Optional

import requests
from flask import current_app
from sqlalchemy import func

from reviewguard.extensions import db, telegram_bots
from reviewguard.exceptions import NotFound, ReviewGuardError, IntegrationError
from reviewguard.models.review import GoogleReview, REVIEW_STATUSES
from reviewguard.models.user import User
from reviewguard.services.telegram_service import TelegramError

APPROVAL_KEYWORD = 'YES'


class ReviewService:
    """Google review inbox: ingestion, drafts, posting and Telegram approval"""

    def __init__(self, drafting_service=None):
        self.logger = logging.getLogger(__name__)
        self._drafting_service = drafting_service

    @property
    def drafting_service(self):
        if self._drafting_service is None:
            from reviewguard.services import get_reply_drafting_service
            self._drafting_service = get_reply_drafting_service()
        return self._drafting_service

    # =========================================================================
    # INGESTION
    # =========================================================================

    def ingest(self, data: Dict[str, Any]) -> GoogleReview:
        """Insert or refresh a review pushed by the n8n integration"""
        user = User.query.filter_by(email=data['user_email']).first()
        if not user:
            raise NotFound('User not found')

        review = GoogleReview.query.filter_by(user_id=user.id, review_id=data['review_id']).first()
        if review is None:
            review = GoogleReview(user_id=user.id, review_id=data['review_id'], status='pending')
            db.session.add(review)

        review.reviewer_name = data['reviewer_name']
        review.star_rating = data['star_rating']
        review.comment = data.get('comment') or ''
        review.review_date = data.get('review_date') or review.review_date or datetime.utcnow()
        if data.get('ai_reply_draft'):
            review.ai_reply_draft = data['ai_reply_draft']

        db.session.commit()
        self.logger.info(
            f"Ingested review {review.review_id} ({review.star_rating} stars) for user {user.id}"
        )
        return review

    # =========================================================================
    # INBOX
    # =========================================================================

    def list_reviews(self, user, status: str = 'pending') -> List[GoogleReview]:
        query = GoogleReview.query.filter_by(user_id=user.id)
        if status and status != 'all':
            if status not in REVIEW_STATUSES:
                raise ReviewGuardError(f"Unknown review status '{status}'", code='VALIDATION_ERROR', status_code=400)
            query = query.filter_by(status=status)
        return query.order_by(GoogleReview.review_date.desc(), GoogleReview.id.desc()).all()

    def get_review(self, user, review_id: int) -> GoogleReview:
        review = GoogleReview.query.filter_by(id=review_id, user_id=user.id).first()
        if not review:
            raise NotFound('Review not found')
        return review

    def update_draft(self, user, review_id: int, draft: str) -> GoogleReview:
        review = self.get_review(user, review_id)
        review.ai_reply_draft = draft
        db.session.commit()
        return review

    def generate_draft(self, user, review_id: int) -> Dict[str, Any]:
        review = self.get_review(user, review_id)
        result = self.drafting_service.draft_reply(
            review_text=review.comment or '',
            star_rating=review.star_rating,
            customer_name=review.reviewer_name or 'there',
            business_name=user.display_business_name,
            support_email=user.email
        )
        review.ai_reply_draft = result['reply']
        db.session.commit()
        result['review'] = review.to_dict()
        return result

    def post_reply(self, user, review_id: int, reply_text: str) -> Dict[str, Any]:
        review = self.get_review(user, review_id)
        if review.status == 'posted':
            raise ReviewGuardError('Reply already posted for this review', code='ALREADY_POSTED', status_code=409)

        forwarded = self._forward_reply(user, review, reply_text)

        review.status = 'posted'
        review.posted_reply = reply_text
        review.posted_at = datetime.utcnow()
        db.session.commit()

        self.logger.info(f"Reply posted for review {review.id} by user {user.id}")
        return {'review': review.to_dict(), 'forwarded': forwarded}

    def ignore(self, user, review_id: int) -> GoogleReview:
        review = self.get_review(user, review_id)
        review.status = 'ignored'
        db.session.commit()
        return review

    def stats(self, user) -> Dict[str, Any]:
        rows = (
            db.session.query(GoogleReview.status, func.count(GoogleReview.id))
            .filter(GoogleReview.user_id == user.id)
            .group_by(GoogleReview.status)
            .all()
        )
        counts = {status: 0 for status in REVIEW_STATUSES}
        counts.update({status: count for status, count in rows})

        avg_rating = (
            db.session.query(func.avg(GoogleReview.star_rating))
            .filter(GoogleReview.user_id == user.id)
            .scalar()
        )
        return {
            'pending': counts['pending'],
            'posted': counts['posted'],
            'ignored': counts['ignored'],
            'total': sum(counts.values()),
            'avg_rating': round(float(avg_rating), 1) if avg_rating is not None else None
        }

    def _forward_reply(self, user, review: GoogleReview, reply_text: str) -> bool:
        """Hand the reply to the n8n workflow that publishes it on Google"""
        webhook_url = current_app.config.get('N8N_POST_REPLY_WEBHOOK')
        if not webhook_url:
            return False

        try:
            response = requests.post(webhook_url, json={
                'review_id': review.review_id,
                'reviewer_name': review.reviewer_name,
                'reply_text': reply_text,
                'user_email': user.email
            }, timeout=15)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"n8n reply webhook failed for review {review.id}: {e}")
            return False

        if not response.ok:
            self.logger.error(f"n8n reply webhook returned {response.status_code} for review {review.id}")
            return False
        return True

    # =========================================================================
    # TELEGRAM APPROVAL
    # =========================================================================

    def bot_for(self, user):
        """Running bot for the tenant, started on demand from stored credentials"""
        bot = telegram_bots.get(user.id)
        if bot is None and user.telegram_configured:
            bot = telegram_bots.start(user.id, user.telegram_bot_token, user.telegram_chat_id)
        if bot is None:
            raise ReviewGuardError('Telegram bot not configured. Add your bot token and chat id in Settings.',
                                   code='TELEGRAM_NOT_CONFIGURED', status_code=400)
        return bot

    def send_test_message(self, user) -> None:
        bot = self.bot_for(user)
        try:
            bot.send_message(f"✅ ReviewGuard is connected for {user.display_business_name}.")
        except TelegramError as e:
            self.logger.error(f"Telegram test message failed for user {user.id}: {e}")
            raise IntegrationError('Failed to reach Telegram. Check your bot token and chat id.')
        self.logger.info(f"Telegram test message sent for user {user.id}")

    @staticmethod
    def format_approval_message(review: GoogleReview, reply: str) -> str:
        stars = '⭐' * (review.star_rating or 0)
        return (
            f"🌟 New Google Review!\n"
            f"From: {review.reviewer_name} ({review.star_rating} {stars})\n"
            f"Review: {review.comment or ''}\n\n"
            f"🤖 AI Proposed Reply:\n{reply}\n\n"
            f"Reply '{APPROVAL_KEYWORD}' to post this to Google."
        )

    def request_approval(self, user, review_id: int) -> GoogleReview:
        review = self.get_review(user, review_id)
        if review.status != 'pending':
            raise ReviewGuardError('Only pending reviews can be sent for approval',
                                   code='VALIDATION_ERROR', status_code=400)
        if not review.ai_reply_draft:
            raise ReviewGuardError('Generate or write a reply draft first', code='VALIDATION_ERROR', status_code=400)

        bot = self.bot_for(user)
        try:
            bot.send_message(self.format_approval_message(review, review.ai_reply_draft))
        except TelegramError as e:
            self.logger.error(f"Failed to send Telegram approval for review {review.id}: {e}")
            raise IntegrationError('Failed to send review to Telegram')

        review.approval_requested_at = datetime.utcnow()
        db.session.commit()
        self.logger.info(f"✅ Review {review.id} sent to Telegram for approval")
        return review

    def handle_telegram_update(self, user_id: int, update: Dict[str, Any]) -> Dict[str, Any]:
        """Process a chat reply: YES posts the latest review awaiting approval"""
        user = db.session.get(User, user_id)
        if not user:
            raise NotFound('User not found')

        message = update.get('message') or {}
        chat_id = (message.get('chat') or {}).get('id')
        text = (message.get('text') or '').strip()
        if chat_id is None:
            return {'action': 'ignored'}

        bot = self.bot_for(user)
        if not bot.owns_chat(chat_id):
            self.logger.warning(f"Telegram update from unknown chat for user {user.id}")
            return {'action': 'ignored'}

        if text.upper() != APPROVAL_KEYWORD:
            self._reply(bot, chat_id, '❌ Edit mode not supported yet. Please log in to Dashboard.')
            return {'action': 'edit_unsupported'}

        review = (
            GoogleReview.query
            .filter(
                GoogleReview.user_id == user.id,
                GoogleReview.status == 'pending',
                GoogleReview.approval_requested_at.isnot(None)
            )
            .order_by(GoogleReview.approval_requested_at.desc())
            .first()
        )
        if review is None:
            self._reply(bot, chat_id, 'No reviews are waiting for approval.')
            return {'action': 'nothing_pending'}

        self.post_reply(user, review.id, review.ai_reply_draft)
        self._reply(bot, chat_id, '✅ Reply Posted!')
        return {'action': 'posted', 'review_id': review.id}

    def _reply(self, bot, chat_id, text: str) -> None:
        try:
            bot.send_message(text, chat_id=chat_id)
        except TelegramError as e:
            self.logger.error(f"Telegram reply failed: {e}")
