import logging
from typing import Dict, Any, List, Optional

from reviewguard.extensions import db
from reviewguard.exceptions import NotFound, ReviewGuardError
from reviewguard.models.feedback import InternalFeedback, FEEDBACK_WORKFLOW_STATES


class FeedbackService:
    """Tenant-side triage of private customer feedback"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def list_feedback(self, user, feedback_status: Optional[str] = None) -> List[InternalFeedback]:
        query = InternalFeedback.query.filter(
            InternalFeedback.user_id == user.id,
            InternalFeedback.status != 'ignored'
        )
        if feedback_status:
            self._check_workflow_state(feedback_status)
            query = query.filter(InternalFeedback.feedback_status == feedback_status)
        return query.order_by(InternalFeedback.created_at.desc(), InternalFeedback.id.desc()).all()

    def grouped_by_customer(self, user) -> List[Dict[str, Any]]:
        """One entry per customer phone, newest conversation first"""
        groups: Dict[str, Dict[str, Any]] = {}
        for feedback in self.list_feedback(user):
            key = feedback.customer_phone or f"feedback-{feedback.id}"
            group = groups.get(key)
            if group is None:
                group = groups[key] = {
                    'customer_phone': feedback.customer_phone,
                    'customer_name': feedback.customer_name,
                    'count': 0,
                    'unread_count': 0,
                    'ratings': [],
                    'latest': feedback.to_dict(),
                    'feedback': []
                }
            group['count'] += 1
            if feedback.status == 'unread':
                group['unread_count'] += 1
            if feedback.rating is not None:
                group['ratings'].append(feedback.rating)
            group['feedback'].append(feedback.to_dict())

        result = []
        for group in groups.values():
            ratings = group.pop('ratings')
            group['average_rating'] = round(sum(ratings) / len(ratings), 1) if ratings else None
            result.append(group)
        return result

    def get_feedback(self, user, feedback_id: int) -> InternalFeedback:
        feedback = InternalFeedback.query.filter_by(id=feedback_id, user_id=user.id).first()
        if not feedback:
            raise NotFound('Feedback not found')
        return feedback

    def mark_read(self, user, feedback_id: int) -> InternalFeedback:
        feedback = self.get_feedback(user, feedback_id)
        if feedback.status == 'unread':
            feedback.status = 'read'
            db.session.commit()
        return feedback

    def ignore(self, user, feedback_id: int) -> InternalFeedback:
        feedback = self.get_feedback(user, feedback_id)
        feedback.status = 'ignored'
        db.session.commit()
        self.logger.info(f"Feedback {feedback.id} ignored by user {user.id}")
        return feedback

    def set_status(self, user, feedback_id: int, feedback_status: str) -> InternalFeedback:
        self._check_workflow_state(feedback_status)
        feedback = self.get_feedback(user, feedback_id)
        feedback.feedback_status = feedback_status
        db.session.commit()
        return feedback

    def assign(self, user, feedback_id: int, assignee: Optional[str]) -> InternalFeedback:
        feedback = self.get_feedback(user, feedback_id)
        feedback.assigned_to = assignee or None
        if assignee and feedback.feedback_status == 'new':
            feedback.feedback_status = 'in_progress'
        db.session.commit()
        return feedback

    def unread_count(self, user) -> int:
        return InternalFeedback.query.filter_by(user_id=user.id, status='unread').count()

    def _check_workflow_state(self, state: str) -> None:
        if state not in FEEDBACK_WORKFLOW_STATES:
            raise ReviewGuardError(
                f"feedback_status must be one of {', '.join(FEEDBACK_WORKFLOW_STATES)}",
                code='VALIDATION_ERROR', status_code=400
            )

