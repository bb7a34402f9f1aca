from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate

from reviewguard.extensions import db
from reviewguard.models import User
from reviewguard.services import get_quota_guard
from reviewguard.utils.auth import issue_access_token, get_current_user
from reviewguard.utils.validators import validate_request_json

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


# Request Schemas
class RegisterSchema(Schema):
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=validate.Length(min=8))
    first_name = fields.Str(allow_none=True)
    last_name = fields.Str(allow_none=True)
    company_name = fields.Str(allow_none=True)
    business_name = fields.Str(allow_none=True)
    google_review_link = fields.Url(allow_none=True)


class LoginSchema(Schema):
    email = fields.Email(required=True)
    password = fields.Str(required=True)


@auth_bp.route('/register', methods=['POST'])
@validate_request_json(RegisterSchema())
def register():
    """Register a new tenant and start the free trial"""
    data = request.validated_data
    email = data['email'].strip().lower()

    if User.query.filter_by(email=email).first():
        return jsonify({
            'success': False,
            'error': 'An account with this email already exists',
            'code': 'EMAIL_TAKEN'
        }), 409

    user = User(
        email=email,
        first_name=data.get('first_name'),
        last_name=data.get('last_name'),
        company_name=data.get('company_name'),
        business_name=data.get('business_name'),
        google_review_link=data.get('google_review_link')
    )
    user.set_password(data['password'])
    db.session.add(user)
    db.session.commit()

    get_quota_guard().ensure_subscription(user)
    current_app.logger.info(f"New tenant registered: {user.id}")

    return jsonify({
        'success': True,
        'user': user.to_dict(),
        'access_token': issue_access_token(user)
    }), 201


@auth_bp.route('/login', methods=['POST'])
@validate_request_json(LoginSchema())
def login():
    """Authenticate tenant and return an access token"""
    data = request.validated_data
    user = User.query.filter_by(email=data['email'].strip().lower()).first()

    if not user or not user.check_password(data['password']) or not user.is_active:
        current_app.logger.info("Failed login attempt")
        return jsonify({
            'success': False,
            'error': 'Invalid email or password',
            'code': 'INVALID_CREDENTIALS'
        }), 401

    return jsonify({
        'success': True,
        'user': user.to_dict(),
        'access_token': issue_access_token(user)
    }), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    user = get_current_user()
    return jsonify({'success': True, 'user': user.to_dict()}), 200
