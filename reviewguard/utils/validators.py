import re
from functools import wraps
from flask import request, jsonify
from marshmallow import ValidationError

from reviewguard.exceptions import InvalidPhoneFormat, ConsentRequired

INTERNATIONAL_PREFIXES = ('+', '00', '011')
TRUTHY_VALUES = ('true', '1', 'on', 'yes')


def validate_email(email):
    """Validate email format"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email) is not None


def format_phone_number(phone):
    """
    Normalize a phone number to E.164.

    Accepts formatted US numbers ("(555) 123-4567"), numbers with an
    international prefix (+, 00 or 011) and bare digit strings. Ten digit
    numbers without an international prefix are treated as North American.

    Raises:
        InvalidPhoneFormat: fewer than 10 or more than 15 digits remain
    """
    if not phone or not isinstance(phone, str):
        raise InvalidPhoneFormat()

    raw = phone.strip()
    has_international_prefix = raw.startswith(INTERNATIONAL_PREFIXES)

    digits = re.sub(r'\D', '', raw)
    if raw.startswith('011'):
        digits = digits[3:]
    elif raw.startswith('00'):
        digits = digits[2:]

    if not has_international_prefix and len(digits) == 10:
        digits = '1' + digits

    if not 10 <= len(digits) <= 15:
        raise InvalidPhoneFormat(f"Invalid phone number format: {phone}")

    return f"+{digits}"


def is_valid_phone_number(phone):
    try:
        format_phone_number(phone)
        return True
    except InvalidPhoneFormat:
        return False


def consent_given(flag):
    if isinstance(flag, bool):
        return flag
    if flag is None:
        return False
    return str(flag).strip().lower() in TRUTHY_VALUES


def require_sms_consent(flag):
    """Raise ConsentRequired unless the consent flag is truthy"""
    if not consent_given(flag):
        raise ConsentRequired()


def sanitize_string(text, max_length=None):
    """Sanitize text input"""
    if not text:
        return None

    text = text.strip()
    text = text.replace('\x00', '')

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def validate_request_json(schema):
    """Decorator to validate JSON request data"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not request.is_json:
                return jsonify({
                    'success': False,
                    'error': 'Content-Type must be application/json',
                    'code': 'VALIDATION_ERROR'
                }), 400

            json_data = request.get_json(silent=True)
            if json_data is None:
                return jsonify({
                    'success': False,
                    'error': 'Invalid JSON',
                    'code': 'VALIDATION_ERROR'
                }), 400

            try:
                request.validated_data = schema.load(json_data)
            except ValidationError as e:
                return jsonify({
                    'success': False,
                    'error': 'Validation failed',
                    'code': 'VALIDATION_ERROR',
                    'errors': e.messages
                }), 400

            return f(*args, **kwargs)
        return decorated_function
    return decorator
