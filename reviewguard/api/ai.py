from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate

from reviewguard.services import get_reply_drafting_service
from reviewguard.utils.auth import get_current_user
from reviewguard.utils.security import rate_limit
from reviewguard.utils.validators import validate_request_json

ai_bp = Blueprint('ai', __name__, url_prefix='/api/ai')


class GenerateReplySchema(Schema):
    review_text = fields.Str(required=True, validate=validate.Length(min=1, max=5000))
    star_rating = fields.Int(required=True, validate=validate.Range(min=1, max=5))
    customer_name = fields.Str(load_default='there', validate=validate.Length(max=200))
    business_name = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=200))


@ai_bp.route('/generate-reply', methods=['POST'])
@jwt_required()
@rate_limit(max_requests=60, window_seconds=3600, scope='ai_generate_reply')
@validate_request_json(GenerateReplySchema())
def generate_reply():
    """Draft a reply to a review pasted in by the tenant"""
    user = get_current_user()
    data = request.validated_data
    result = get_reply_drafting_service().draft_reply(
        review_text=data['review_text'],
        star_rating=data['star_rating'],
        customer_name=data['customer_name'],
        business_name=data.get('business_name') or user.display_business_name,
        support_email=user.email
    )
    return jsonify({'success': True, **result}), 200
