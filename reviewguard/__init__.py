# reviewguard/__init__.py
from flask import Flask
from flask_cors import CORS
import os

from dotenv import load_dotenv

# Load environment variables before config classes read them
load_dotenv()

from reviewguard.config import config
from reviewguard.extensions import db, migrate, jwt, mail, init_redis, telegram_bots


def create_app(config_name=None):
    """Flask application factory"""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))

    from reviewguard.utils.logging import setup_logging
    setup_logging(app)

    _init_extensions(app)
    _register_blueprints(app)

    from reviewguard.utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    from reviewguard import cli
    cli.init_app(app)

    app.logger.info(f"ReviewGuard backend startup complete ({config_name})")
    return app


def _init_extensions(app):
    """Initialize Flask extensions"""
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)
    CORS(app, origins=app.config.get('CORS_ORIGINS', ['*']))
    app.logger.info("✅ Extensions initialized")

    init_redis(app)
    telegram_bots.configure(app.config.get('TELEGRAM_API_URL', 'https://api.telegram.org'))

    from reviewguard.celery_app import init_celery
    init_celery(app)


def _register_blueprints(app):
    """Register application blueprints"""
    from reviewguard.api.auth import auth_bp
    from reviewguard.api.messages import messages_bp, uploads_bp
    from reviewguard.api.feedback import feedback_bp
    from reviewguard.api.webhooks import webhooks_bp
    from reviewguard.api.billing import billing_bp
    from reviewguard.api.reviews import reviews_bp
    from reviewguard.api.telegram import telegram_bp
    from reviewguard.api.settings import settings_bp
    from reviewguard.api.ai import ai_bp
    from reviewguard.api.health import health_bp
    from reviewguard.api.dashboard import dashboard_bp

    blueprints = [
        auth_bp, messages_bp, uploads_bp, feedback_bp, webhooks_bp,
        billing_bp, reviews_bp, telegram_bp, settings_bp, ai_bp, health_bp, dashboard_bp
    ]
    for blueprint in blueprints:
        app.register_blueprint(blueprint)

    app.logger.info(f"Registered {len(blueprints)} blueprints")
