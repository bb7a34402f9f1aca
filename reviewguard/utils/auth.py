# =============================================================================
# reviewguard/utils/auth.py
"""
AUTHENTICATION UTILITIES
JWT identity helpers shared by the tenant-facing blueprints
"""
from flask_jwt_extended import create_access_token, get_jwt_identity

from reviewguard.extensions import db
from reviewguard.exceptions import AuthenticationError
from reviewguard.models.user import User


def issue_access_token(user: User) -> str:
    return create_access_token(
        identity=str(user.id),
        additional_claims={'email': user.email}
    )


def get_current_user() -> User:
    """Load the authenticated tenant; call inside a @jwt_required() view"""
    identity = get_jwt_identity()
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        raise AuthenticationError('Invalid token identity')

    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        raise AuthenticationError('User not found or inactive')
    return user
