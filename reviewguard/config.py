# reviewguard/config.py - Environment driven configuration
import os
from datetime import timedelta


def _env_bool(name, default='false'):
    return os.environ.get(name, default).lower() in ['true', 'on', '1', 'yes']


class Config:
    """Base configuration"""

    # Basic Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database settings
    DATABASE_URL = os.environ.get('DATABASE_URL') or 'sqlite:///reviewguard.db'
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 300,
        'pool_pre_ping': True
    }

    # JWT settings
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)

    # CORS settings
    CORS_ORIGINS = ["*"]

    # Public URL used to build customer feedback links
    APP_BASE_URL = os.environ.get('APP_BASE_URL', 'http://localhost:5000')

    # Twilio settings
    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN')
    TWILIO_PHONE_NUMBER = os.environ.get('TWILIO_PHONE_NUMBER')
    VERIFY_WEBHOOK_SIGNATURES = _env_bool('VERIFY_WEBHOOK_SIGNATURES', 'true')

    # MMS photo uploads
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads'))
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024
    ALLOWED_UPLOAD_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}

    # SMS sending rules
    SMS_RATE_LIMIT = int(os.environ.get('SMS_RATE_LIMIT', '10'))
    SMS_RATE_LIMIT_WINDOW = 3600
    DUPLICATE_SMS_WINDOW_MINUTES = int(os.environ.get('DUPLICATE_SMS_WINDOW_MINUTES', '60'))
    FOLLOW_UP_DELAY_DAYS = int(os.environ.get('FOLLOW_UP_DELAY_DAYS', '3'))
    DEFAULT_SMS_QUOTA = int(os.environ.get('DEFAULT_SMS_QUOTA', '50'))

    # LLM settings (OpenAI compatible chat completions endpoint)
    LLM_API_URL = os.environ.get('LLM_API_URL', 'https://api.openai.com/v1/chat/completions')
    LLM_API_KEY = os.environ.get('LLM_API_KEY') or os.environ.get('OPENAI_API_KEY')
    LLM_MODEL = os.environ.get('LLM_MODEL', 'gpt-4o-mini')
    LLM_TIMEOUT = float(os.environ.get('LLM_TIMEOUT', '30.0'))

    # Stripe settings
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET')
    STRIPE_PRICE_ID_STARTER = os.environ.get('STRIPE_PRICE_ID_STARTER', 'price_starter')
    STRIPE_PRICE_ID_PRO = os.environ.get('STRIPE_PRICE_ID_PRO', 'price_pro')

    # Mail settings
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'localhost')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', '587'))
    MAIL_USE_TLS = _env_bool('MAIL_USE_TLS', 'true')
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'noreply@reviewguard.app')

    # n8n review integration
    N8N_WEBHOOK_SECRET = os.environ.get('N8N_WEBHOOK_SECRET')
    N8N_POST_REPLY_WEBHOOK = os.environ.get('N8N_POST_REPLY_WEBHOOK')

    # Telegram
    TELEGRAM_API_URL = os.environ.get('TELEGRAM_API_URL', 'https://api.telegram.org')

    # Redis / Celery
    REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', REDIS_URL)
    CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', REDIS_URL)

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///dev_reviewguard.db'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')
    if SQLALCHEMY_DATABASE_URI and SQLALCHEMY_DATABASE_URI.startswith('postgres://'):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace('postgres://', 'postgresql://')

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '').split(',') if os.environ.get('CORS_ORIGINS') else []


class TestConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length-0123456789'
    SECRET_KEY = 'test-secret-key'
    APP_BASE_URL = 'https://reviews.example.com'
    TWILIO_ACCOUNT_SID = 'ACtest'
    TWILIO_AUTH_TOKEN = 'test-auth-token'
    TWILIO_PHONE_NUMBER = '+15550001111'
    VERIFY_WEBHOOK_SIGNATURES = False
    STRIPE_SECRET_KEY = 'sk_test_123'
    STRIPE_WEBHOOK_SECRET = 'whsec_test'
    N8N_WEBHOOK_SECRET = 'n8n-test-secret'
    N8N_POST_REPLY_WEBHOOK = None
    LLM_API_KEY = 'test-llm-key'
    MAIL_SUPPRESS_SEND = True
    LOG_FILE = None
    REDIS_URL = None
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    CELERY_TASK_ALWAYS_EAGER = True


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestConfig,
    'default': DevelopmentConfig
}
