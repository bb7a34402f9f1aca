from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate

from reviewguard.services import get_review_service
from reviewguard.utils.auth import get_current_user
from reviewguard.utils.security import require_n8n_secret
from reviewguard.utils.validators import validate_request_json

reviews_bp = Blueprint('reviews', __name__, url_prefix='/api/reviews')


class ReviewIngestSchema(Schema):
    user_email = fields.Email(required=True)
    review_id = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    reviewer_name = fields.Str(required=True, validate=validate.Length(max=200))
    star_rating = fields.Int(required=True, validate=validate.Range(min=1, max=5))
    comment = fields.Str(allow_none=True, load_default=None)
    review_date = fields.DateTime(allow_none=True, load_default=None)
    ai_reply_draft = fields.Str(allow_none=True, load_default=None)


class DraftSchema(Schema):
    ai_reply_draft = fields.Str(required=True, validate=validate.Length(min=1, max=4000))


class PostReplySchema(Schema):
    reply_text = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=4000))


@reviews_bp.route('/ingest', methods=['POST'])
@require_n8n_secret
@validate_request_json(ReviewIngestSchema())
def ingest_review():
    """Receive a Google review from the n8n workflow"""
    review = get_review_service().ingest(request.validated_data)
    return jsonify({'success': True, 'review': review.to_dict()}), 201


@reviews_bp.route('', methods=['GET'])
@jwt_required()
def list_reviews():
    user = get_current_user()
    status = request.args.get('status', 'pending')
    reviews = get_review_service().list_reviews(user, status)
    return jsonify({'success': True, 'reviews': [review.to_dict() for review in reviews]}), 200


@reviews_bp.route('/stats', methods=['GET'])
@jwt_required()
def review_stats():
    user = get_current_user()
    return jsonify({'success': True, 'stats': get_review_service().stats(user)}), 200


@reviews_bp.route('/<int:review_id>/draft', methods=['PUT'])
@jwt_required()
@validate_request_json(DraftSchema())
def update_draft(review_id):
    user = get_current_user()
    review = get_review_service().update_draft(user, review_id, request.validated_data['ai_reply_draft'])
    return jsonify({'success': True, 'review': review.to_dict()}), 200


@reviews_bp.route('/<int:review_id>/generate-draft', methods=['POST'])
@jwt_required()
def generate_draft(review_id):
    """Draft a reply with the AI assistant and store it on the review"""
    user = get_current_user()
    result = get_review_service().generate_draft(user, review_id)
    return jsonify({'success': True, **result}), 200


@reviews_bp.route('/<int:review_id>/post', methods=['POST'])
@jwt_required()
@validate_request_json(PostReplySchema())
def post_reply(review_id):
    """Post the edited reply, falling back to the stored draft"""
    user = get_current_user()
    service = get_review_service()
    reply_text = request.validated_data.get('reply_text')
    if not reply_text:
        reply_text = service.get_review(user, review_id).ai_reply_draft
    if not reply_text:
        return jsonify({
            'success': False,
            'error': 'Reply text is required',
            'code': 'VALIDATION_ERROR'
        }), 400

    result = service.post_reply(user, review_id, reply_text)
    return jsonify({'success': True, **result}), 200


@reviews_bp.route('/<int:review_id>/ignore', methods=['POST'])
@jwt_required()
def ignore_review(review_id):
    user = get_current_user()
    review = get_review_service().ignore(user, review_id)
    return jsonify({'success': True, 'review': review.to_dict()}), 200


@reviews_bp.route('/<int:review_id>/request-approval', methods=['POST'])
@jwt_required()
def request_approval(review_id):
    """Send the draft to the tenant's Telegram chat for a YES approval"""
    user = get_current_user()
    review = get_review_service().request_approval(user, review_id)
    return jsonify({'success': True, 'review': review.to_dict()}), 200
