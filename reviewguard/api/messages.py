from flask import Blueprint, request, jsonify, current_app, send_from_directory, abort
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate

from reviewguard.models.message import MessageType, ReviewStatus
from reviewguard.services import get_messaging_service
from reviewguard.utils.auth import get_current_user
from reviewguard.utils.helpers import allowed_upload, save_upload, remove_upload
from reviewguard.utils.security import rate_limit
from reviewguard.utils.validators import validate_request_json

messages_bp = Blueprint('messages', __name__, url_prefix='/api')


class SendReviewRequestSchema(Schema):
    customer_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    customer_phone = fields.Str(required=True)
    message_type = fields.Str(
        load_default=MessageType.REVIEW.value,
        validate=validate.OneOf([MessageType.REVIEW.value, MessageType.GENERAL.value])
    )
    additional_info = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=1000))
    sms_consent = fields.Raw(load_default=False)


class FollowUpSchema(Schema):
    message_ids = fields.List(fields.Int(), required=True, validate=validate.Length(min=1, max=100))


class ReviewStatusSchema(Schema):
    review_status = fields.Str(required=True, validate=validate.OneOf([s.value for s in ReviewStatus]))


@messages_bp.route('/send-review-request', methods=['POST'])
@jwt_required()
@rate_limit()
def send_review_request():
    """Send a review request SMS, or an MMS when a photo is attached"""
    user = get_current_user()

    if request.is_json:
        payload = request.get_json(silent=True) or {}
    else:
        payload = request.form.to_dict()
    data = SendReviewRequestSchema().load(payload)

    media_url = None
    filename = None
    photo = request.files.get('photo')
    if photo and photo.filename:
        if not allowed_upload(photo.filename, current_app.config['ALLOWED_UPLOAD_EXTENSIONS']):
            return jsonify({
                'success': False,
                'error': 'Unsupported photo type',
                'code': 'VALIDATION_ERROR'
            }), 400
        filename = save_upload(photo, current_app.config['UPLOAD_FOLDER'], f"u{user.id}")
        base_url = current_app.config.get('APP_BASE_URL', '').rstrip('/')
        media_url = f"{base_url}/uploads/{filename}"

    try:
        result = get_messaging_service().send_review_request(
            user,
            customer_name=data['customer_name'],
            customer_phone=data['customer_phone'],
            message_type=data['message_type'],
            additional_info=data.get('additional_info'),
            sms_consent=data.get('sms_consent'),
            media_url=media_url
        )
    except Exception:
        # Failed sends keep no photo on disk
        if filename:
            remove_upload(current_app.config['UPLOAD_FOLDER'], filename)
        raise

    return jsonify({'success': True, **result}), 201


@messages_bp.route('/messages', methods=['GET'])
@jwt_required()
def list_messages():
    """Get the tenant's sent messages"""
    user = get_current_user()
    page = request.args.get('page', 1, type=int)
    per_page = min(request.args.get('per_page', 20, type=int), 100)
    review_status = request.args.get('review_status')

    result = get_messaging_service().get_messages(user, page, per_page, review_status)
    return jsonify({'success': True, **result}), 200


@messages_bp.route('/messages/follow-ups', methods=['GET'])
@jwt_required()
def messages_needing_follow_up():
    user = get_current_user()
    messages = get_messaging_service().messages_needing_follow_up(user)
    return jsonify({
        'success': True,
        'messages': [message.to_dict() for message in messages]
    }), 200


@messages_bp.route('/messages/follow-ups', methods=['POST'])
@jwt_required()
@validate_request_json(FollowUpSchema())
def send_follow_ups():
    user = get_current_user()
    result = get_messaging_service().send_follow_ups(user, request.validated_data['message_ids'])
    return jsonify({'success': True, **result}), 200


@messages_bp.route('/messages/<int:message_id>/review-status', methods=['PATCH'])
@jwt_required()
@validate_request_json(ReviewStatusSchema())
def update_review_status(message_id):
    user = get_current_user()
    message = get_messaging_service().update_review_status(
        user, message_id, request.validated_data['review_status']
    )
    return jsonify({'success': True, 'message': message.to_dict()}), 200


@messages_bp.route('/messages/<int:message_id>/mark-reviewed', methods=['POST'])
@jwt_required()
def mark_reviewed(message_id):
    user = get_current_user()
    message = get_messaging_service().mark_reviewed(user, message_id)
    return jsonify({'success': True, 'message': message.to_dict()}), 200


uploads_bp = Blueprint('uploads', __name__)


@uploads_bp.route('/uploads/<path:filename>', methods=['GET'])
def uploaded_file(filename):
    """Serve MMS photos to the carrier"""
    if not allowed_upload(filename, current_app.config['ALLOWED_UPLOAD_EXTENSIONS']):
        abort(404)
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)
