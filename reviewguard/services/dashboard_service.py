import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

from sqlalchemy import func, or_

from reviewguard.extensions import db
from reviewguard.models.customer import Customer
from reviewguard.models.message import Message, MessageType, ReviewStatus

RECENT_MESSAGES_LIMIT = 10


class DashboardService:
    """Tenant-scoped customer list and messaging stats for the dashboard"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def list_customers(self, user, page: int = 1, per_page: int = 20,
                       search: Optional[str] = None) -> Dict[str, Any]:
        """Customers with their message count and latest send, most recent first"""
        last_message_at = func.max(Message.sent_at)
        query = (
            db.session.query(
                Customer,
                func.count(Message.id).label('message_count'),
                last_message_at.label('last_message_at')
            )
            .outerjoin(Message, Message.customer_id == Customer.id)
            .filter(Customer.user_id == user.id)
        )
        count_query = Customer.query.filter(Customer.user_id == user.id)

        if search:
            pattern = f"%{search.strip()}%"
            condition = or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern))
            query = query.filter(condition)
            count_query = count_query.filter(condition)

        total = count_query.count()
        rows = (
            query.group_by(Customer.id)
            .order_by(func.coalesce(last_message_at, Customer.created_at).desc(), Customer.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )

        customers = []
        for customer, message_count, last_sent in rows:
            data = customer.to_dict()
            data['message_count'] = message_count
            data['last_message_at'] = last_sent.isoformat() if last_sent else None
            customers.append(data)

        return {
            'customers': customers,
            'pagination': {
                'page': page,
                'per_page': per_page,
                'total': total,
                'pages': (total + per_page - 1) // per_page if per_page else 0
            }
        }

    def stats(self, user) -> Dict[str, Any]:
        now = datetime.utcnow()
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = now - timedelta(days=7)

        messages = Message.query.filter(Message.user_id == user.id)

        type_rows = (
            db.session.query(Message.message_type, func.count(Message.id))
            .filter(Message.user_id == user.id)
            .group_by(Message.message_type)
            .all()
        )
        by_type = {message_type.value: 0 for message_type in MessageType}
        by_type.update({message_type: count for message_type, count in type_rows})

        funnel_rows = (
            db.session.query(Message.review_status, func.count(Message.id))
            .filter(Message.user_id == user.id, Message.review_status.isnot(None))
            .group_by(Message.review_status)
            .all()
        )
        review_funnel = {status.value: 0 for status in ReviewStatus}
        review_funnel.update({status: count for status, count in funnel_rows})

        needs_follow_up = messages.filter(
            Message.message_type == MessageType.REVIEW.value,
            Message.review_status == ReviewStatus.PENDING.value,
            Message.follow_up_due_at <= now,
            Message.follow_up_sent_at.is_(None),
            Message.review_link_clicked_at.is_(None)
        ).count()

        recent = messages.order_by(Message.sent_at.desc(), Message.id.desc()).limit(RECENT_MESSAGES_LIMIT).all()

        return {
            'messages_today': messages.filter(Message.sent_at >= start_of_today).count(),
            'messages_this_week': messages.filter(Message.sent_at >= week_ago).count(),
            'total_messages': messages.count(),
            'total_customers': Customer.query.filter_by(user_id=user.id).count(),
            'by_type': by_type,
            'review_funnel': review_funnel,
            'needs_follow_up': needs_follow_up,
            'recent_messages': [message.to_dict() for message in recent]
        }
