from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from marshmallow import Schema, fields, validate

from reviewguard.services import get_billing_service
from reviewguard.utils.auth import get_current_user
from reviewguard.utils.validators import validate_request_json

billing_bp = Blueprint('billing', __name__, url_prefix='/api/billing')


class CheckoutSchema(Schema):
    plan_id = fields.Str(required=True, validate=validate.OneOf(['starter', 'pro']))


@billing_bp.route('/pricing', methods=['GET'])
def get_pricing():
    """Public plan catalogue"""
    return jsonify({'success': True, 'plans': get_billing_service().get_pricing()}), 200


@billing_bp.route('/subscription', methods=['GET'])
@jwt_required()
def get_subscription():
    """Get user's subscription with usage"""
    user = get_current_user()
    return jsonify({
        'success': True,
        'subscription': get_billing_service().get_subscription_summary(user)
    }), 200


@billing_bp.route('/checkout', methods=['POST'])
@jwt_required()
@validate_request_json(CheckoutSchema())
def create_checkout():
    user = get_current_user()
    session = get_billing_service().create_checkout_session(user, request.validated_data['plan_id'])
    return jsonify({'success': True, **session}), 201


@billing_bp.route('/portal', methods=['POST'])
@jwt_required()
def create_portal():
    user = get_current_user()
    session = get_billing_service().create_portal_session(user)
    return jsonify({'success': True, **session}), 200


@billing_bp.route('/webhook', methods=['POST'])
def stripe_webhook():
    """Stripe subscription lifecycle events; the raw body is needed for signature checks"""
    service = get_billing_service()
    event = service.construct_event(
        request.get_data(),
        request.headers.get('Stripe-Signature')
    )
    result = service.handle_event(event)
    return jsonify({'success': True, 'received': True, **result}), 200
