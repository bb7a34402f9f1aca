from flask import request, jsonify, current_app
from functools import wraps
from datetime import datetime
import hmac
import redis

from reviewguard.exceptions import RateLimitError
from reviewguard.extensions import db, get_redis


def get_client_ip():
    """Client IP, honouring the first hop of X-Forwarded-For"""
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr or 'unknown'


def rate_limit(max_requests=None, window_seconds=None, scope=None):
    """
    Fixed-window rate limiting decorator backed by Redis.

    Limits default to SMS_RATE_LIMIT per SMS_RATE_LIMIT_WINDOW seconds.
    Requests pass through untouched when Redis is unavailable.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            redis_client = get_redis()
            if not redis_client:
                # Skip rate limiting if Redis unavailable
                return f(*args, **kwargs)

            limit = max_requests or current_app.config.get('SMS_RATE_LIMIT', 10)
            window = window_seconds or current_app.config.get('SMS_RATE_LIMIT_WINDOW', 3600)

            client_ip = get_client_ip()
            endpoint = scope or request.endpoint
            bucket = int(datetime.utcnow().timestamp()) // window
            key = f"rate_limit:{endpoint}:{client_ip}:{bucket}"

            current_requests = 0
            try:
                current_requests = redis_client.incr(key)
                if current_requests == 1:
                    redis_client.expire(key, window)
            except redis.RedisError as e:
                # Log error but don't block request
                current_app.logger.error(f"Rate limiting error: {str(e)}")

            if current_requests > limit:
                current_app.logger.warning(f"Rate limit exceeded for {client_ip} on {endpoint}")
                retry_after = window - int(datetime.utcnow().timestamp()) % window
                raise RateLimitError(payload={'retry_after': retry_after})

            return f(*args, **kwargs)
        return decorated_function
    return decorator

def verify_twilio_signature(f):
    """Reject carrier webhooks whose X-Twilio-Signature does not validate"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_app.config.get('VERIFY_WEBHOOK_SIGNATURES', True):
            return f(*args, **kwargs)

        from twilio.request_validator import RequestValidator

        auth_token = current_app.config.get('TWILIO_AUTH_TOKEN')
        signature = request.headers.get('X-Twilio-Signature', '')
        if not auth_token or not signature:
            current_app.logger.warning("Webhook rejected - missing signature or auth token")
            return jsonify({'success': False, 'error': 'Forbidden', 'code': 'INVALID_SIGNATURE'}), 403

        validator = RequestValidator(auth_token)
        if not validator.validate(request.url, request.form.to_dict(), signature):
            current_app.logger.warning(f"Invalid Twilio signature from {get_client_ip()}")
            return jsonify({'success': False, 'error': 'Forbidden', 'code': 'INVALID_SIGNATURE'}), 403

        return f(*args, **kwargs)
    return decorated_function


def require_n8n_secret(f):
    """Shared-secret check for the review ingestion webhook"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('N8N_WEBHOOK_SECRET')
        provided = request.headers.get('X-N8N-Secret')
        if not expected or not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
            current_app.logger.warning(f"Unauthorized review ingest attempt from {get_client_ip()}")
            return jsonify({'success': False, 'error': 'Unauthorized', 'code': 'UNAUTHORIZED'}), 401
        return f(*args, **kwargs)
    return decorated_function


def require_telegram_secret(f):
    """Match X-Telegram-Bot-Api-Secret-Token against the tenant's webhook secret"""
    @wraps(f)
    def decorated_function(user_id, *args, **kwargs):
        from reviewguard.models.user import User

        user = db.session.get(User, user_id)
        expected = user.telegram_webhook_secret if user else None
        provided = request.headers.get('X-Telegram-Bot-Api-Secret-Token', '')
        if not expected or not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
            current_app.logger.warning(f"Rejected Telegram update for user {user_id} from {get_client_ip()}")
            return jsonify({'success': False, 'error': 'Unauthorized', 'code': 'UNAUTHORIZED'}), 401
        return f(user_id, *args, **kwargs)
    return decorated_function
