from flask import Blueprint, request, jsonify, render_template, redirect, url_for, abort
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate

from reviewguard.exceptions import InvalidToken
from reviewguard.models.feedback import FEEDBACK_WORKFLOW_STATES
from reviewguard.services import get_sentiment_router, get_messaging_service, get_feedback_service
from reviewguard.utils.auth import get_current_user
from reviewguard.utils.validators import validate_request_json

feedback_bp = Blueprint('feedback', __name__)


class FeedbackSubmitSchema(Schema):
    token = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    rating = fields.Raw(allow_none=True, load_default=None)
    sentiment = fields.Str(allow_none=True, load_default=None)
    feedback_text = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=5000))
    user_email = fields.Email(allow_none=True, load_default=None)


class InternalFeedbackSchema(Schema):
    token = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    rating = fields.Raw(required=True)
    feedback_text = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=5000))
    user_email = fields.Email(allow_none=True, load_default=None)


class FeedbackStatusSchema(Schema):
    feedback_status = fields.Str(required=True, validate=validate.OneOf(FEEDBACK_WORKFLOW_STATES))


class AssignSchema(Schema):
    assigned_to = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=100))


# =============================================================================
# PUBLIC CUSTOMER PAGES
# =============================================================================

@feedback_bp.route('/r/<token>', methods=['GET'])
def feedback_page(token):
    """Sentiment selection page opened from the review request SMS"""
    try:
        data = get_sentiment_router().landing(token)
    except InvalidToken:
        return render_template('link_invalid.html'), 404
    return render_template(
        'feedback.html',
        token=token,
        submit_url=url_for('feedback.submit_feedback'),
        **data
    )


@feedback_bp.route('/g/<token>', methods=['GET'])
def google_redirect(token):
    """Tracked redirect to the tenant's Google review page used in follow-ups"""
    target = get_messaging_service().record_review_link_click(token)
    if not target:
        abort(404)
    return redirect(target, code=302)


@feedback_bp.route('/api/feedback/<token>', methods=['GET'])
def feedback_details(token):
    data = get_sentiment_router().landing(token)
    return jsonify({'success': True, **data}), 200


@feedback_bp.route('/api/feedback/submit', methods=['POST'])
@validate_request_json(FeedbackSubmitSchema())
def submit_feedback():
    """Route a rating or sentiment to Google or to private feedback"""
    data = request.validated_data
    decision = get_sentiment_router().submit(
        data['token'],
        rating=data.get('rating'),
        sentiment=data.get('sentiment'),
        feedback_text=data.get('feedback_text'),
        user_email=data.get('user_email')
    )
    return jsonify({'success': True, **decision.to_dict()}), 200


@feedback_bp.route('/api/internal-feedback', methods=['POST'])
@validate_request_json(InternalFeedbackSchema())
def submit_internal_feedback():
    """Private 'message the owner' form for 1-3 star experiences"""
    data = request.validated_data
    decision = get_sentiment_router().submit(
        data['token'],
        rating=data['rating'],
        feedback_text=data.get('feedback_text'),
        user_email=data.get('user_email'),
        max_rating=3
    )
    return jsonify({
        'success': True,
        'message': 'Thank you for your feedback. The owner has been notified.',
        **decision.to_dict()
    }), 201


# =============================================================================
# TENANT FEEDBACK INBOX
# =============================================================================

@feedback_bp.route('/api/feedback/inbox', methods=['GET'])
@jwt_required()
def list_feedback():
    user = get_current_user()
    service = get_feedback_service()
    items = service.list_feedback(user, request.args.get('feedback_status'))
    return jsonify({
        'success': True,
        'feedback': [item.to_dict() for item in items],
        'unread_count': service.unread_count(user)
    }), 200


@feedback_bp.route('/api/feedback/inbox/grouped', methods=['GET'])
@jwt_required()
def grouped_feedback():
    user = get_current_user()
    return jsonify({
        'success': True,
        'customers': get_feedback_service().grouped_by_customer(user)
    }), 200


@feedback_bp.route('/api/feedback/inbox/<int:feedback_id>/read', methods=['POST'])
@jwt_required()
def mark_feedback_read(feedback_id):
    user = get_current_user()
    feedback = get_feedback_service().mark_read(user, feedback_id)
    return jsonify({'success': True, 'feedback': feedback.to_dict()}), 200


@feedback_bp.route('/api/feedback/inbox/<int:feedback_id>/ignore', methods=['POST'])
@jwt_required()
def ignore_feedback(feedback_id):
    user = get_current_user()
    feedback = get_feedback_service().ignore(user, feedback_id)
    return jsonify({'success': True, 'feedback': feedback.to_dict()}), 200


@feedback_bp.route('/api/feedback/inbox/<int:feedback_id>/status', methods=['PATCH'])
@jwt_required()
@validate_request_json(FeedbackStatusSchema())
def update_feedback_status(feedback_id):
    user = get_current_user()
    feedback = get_feedback_service().set_status(
        user, feedback_id, request.validated_data['feedback_status']
    )
    return jsonify({'success': True, 'feedback': feedback.to_dict()}), 200


@feedback_bp.route('/api/feedback/inbox/<int:feedback_id>/assign', methods=['PATCH'])
@jwt_required()
@validate_request_json(AssignSchema())
def assign_feedback(feedback_id):
    user = get_current_user()
    feedback = get_feedback_service().assign(
        user, feedback_id, request.validated_data.get('assigned_to')
    )
    return jsonify({'success': True, 'feedback': feedback.to_dict()}), 200
