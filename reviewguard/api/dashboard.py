from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from reviewguard.services import get_dashboard_service
from reviewguard.utils.auth import get_current_user

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api')


@dashboard_bp.route('/customers', methods=['GET'])
@jwt_required()
def list_customers():
    """Get the tenant's customers with message counts"""
    user = get_current_user()
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = min(max(request.args.get('per_page', 20, type=int), 1), 100)
    search = request.args.get('q')

    result = get_dashboard_service().list_customers(user, page, per_page, search)
    return jsonify({'success': True, **result}), 200


@dashboard_bp.route('/stats', methods=['GET'])
@jwt_required()
def dashboard_stats():
    user = get_current_user()
    return jsonify({'success': True, 'stats': get_dashboard_service().stats(user)}), 200
