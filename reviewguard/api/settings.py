import secrets

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate

from reviewguard.extensions import db, telegram_bots
from reviewguard.services.telegram_service import TelegramError
from reviewguard.utils.auth import get_current_user
from reviewguard.utils.validators import validate_request_json, sanitize_string

settings_bp = Blueprint('settings', __name__, url_prefix='/api/settings')

PROFILE_FIELDS = ('first_name', 'last_name', 'company_name', 'business_name', 'google_review_link', 'sms_template')
TELEGRAM_FIELDS = ('telegram_bot_token', 'telegram_chat_id')


class SettingsSchema(Schema):
    first_name = fields.Str(allow_none=True, validate=validate.Length(max=50))
    last_name = fields.Str(allow_none=True, validate=validate.Length(max=50))
    company_name = fields.Str(allow_none=True, validate=validate.Length(max=200))
    business_name = fields.Str(allow_none=True, validate=validate.Length(max=200))
    google_review_link = fields.Url(allow_none=True)
    sms_template = fields.Str(allow_none=True, validate=validate.Length(max=1000))
    telegram_bot_token = fields.Str(allow_none=True, validate=validate.Length(max=255))
    telegram_chat_id = fields.Str(allow_none=True, validate=validate.Length(max=64))


def settings_payload(user):
    data = user.to_dict()
    data['onboarding_complete'] = not user.missing_onboarding_fields()
    data['missing_fields'] = user.missing_onboarding_fields()
    data['telegram_bot_running'] = telegram_bots.get(user.id) is not None
    return data


@settings_bp.route('', methods=['GET'])
@jwt_required()
def get_settings():
    user = get_current_user()
    return jsonify({'success': True, 'settings': settings_payload(user)}), 200


@settings_bp.route('', methods=['PUT'])
@jwt_required()
@validate_request_json(SettingsSchema())
def update_settings():
    """Update the business profile; new Telegram credentials restart the tenant's bot"""
    user = get_current_user()
    data = request.validated_data

    for field in PROFILE_FIELDS:
        if field in data:
            value = data[field]
            if isinstance(value, str) and field != 'google_review_link':
                value = sanitize_string(value) or None
            setattr(user, field, value)

    telegram_changed = False
    for field in TELEGRAM_FIELDS:
        if field in data and data[field] != getattr(user, field):
            setattr(user, field, (data[field] or '').strip() or None)
            telegram_changed = True

    if telegram_changed:
        # New credentials get a fresh secret for the webhook header
        user.telegram_webhook_secret = secrets.token_urlsafe(32) if user.telegram_configured else None

    db.session.commit()

    telegram_error = None
    if telegram_changed:
        base_url = current_app.config.get('APP_BASE_URL', '').rstrip('/')
        webhook_url = f"{base_url}/api/telegram/webhook/{user.id}" if base_url.startswith('https://') else None
        try:
            telegram_bots.restart(user.id, user.telegram_bot_token, user.telegram_chat_id,
                                  webhook_url=webhook_url, secret_token=user.telegram_webhook_secret)
        except TelegramError as e:
            current_app.logger.error(f"❌ Telegram bot restart failed for user {user.id}: {e}")
            telegram_error = 'Settings saved but the Telegram bot could not be started'

    current_app.logger.info(f"Settings updated for user {user.id}")
    response = {'success': True, 'settings': settings_payload(user)}
    if telegram_error:
        response['warning'] = telegram_error
    return jsonify(response), 200
