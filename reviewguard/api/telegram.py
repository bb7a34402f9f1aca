from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required

from reviewguard.services import get_review_service
from reviewguard.utils.auth import get_current_user
from reviewguard.utils.security import require_telegram_secret

telegram_bp = Blueprint('telegram', __name__, url_prefix='/api/telegram')


@telegram_bp.route('/webhook/<int:user_id>', methods=['POST'])
@require_telegram_secret
def telegram_webhook(user_id):
    """Updates from a tenant's approval bot"""
    update = request.get_json(silent=True) or {}
    result = get_review_service().handle_telegram_update(user_id, update)
    current_app.logger.info(f"Telegram update for user {user_id}: {result['action']}")
    # Telegram retries non-2xx responses, so always acknowledge
    return jsonify({'success': True, **result}), 200


@telegram_bp.route('/test', methods=['POST'])
@jwt_required()
def send_test_message():
    user = get_current_user()
    get_review_service().send_test_message(user)
    return jsonify({'success': True, 'message': 'Test message sent'}), 200
