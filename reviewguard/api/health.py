from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime
import logging
import redis

from reviewguard.extensions import db, get_redis, telegram_bots

logger = logging.getLogger(__name__)
health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    checks = {
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'ReviewGuard Backend',
        'checks': {}
    }

    # Database check
    try:
        db.session.execute(text('SELECT 1'))
        checks['checks']['database'] = 'healthy'
    except SQLAlchemyError as e:
        logger.error(f"Health check database failure: {e}")
        checks['checks']['database'] = 'unhealthy'
        checks['status'] = 'unhealthy'

    # Redis only backs rate limiting, so failures degrade rather than fail
    redis_client = get_redis()
    if redis_client is None:
        checks['checks']['redis'] = 'disabled'
    else:
        try:
            redis_client.ping()
            checks['checks']['redis'] = 'healthy'
        except redis.RedisError as e:
            logger.warning(f"Health check redis failure: {e}")
            checks['checks']['redis'] = 'unhealthy'
            checks['status'] = 'degraded' if checks['status'] == 'healthy' else checks['status']

    checks['telegram_bots'] = len(telegram_bots.running())

    status_code = 503 if checks['status'] == 'unhealthy' else 200
    return jsonify(checks), status_code
