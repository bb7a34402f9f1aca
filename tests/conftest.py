import pytest
from unittest.mock import patch

from reviewguard import create_app
from reviewguard.extensions import db as _db, telegram_bots
from reviewguard.services.sms_service import SMSService
from reviewguard.utils.auth import issue_access_token

from review_test_utils import ReviewGuardTestUtils


@pytest.fixture
def app(tmp_path):
    """Application with a fresh in-memory database per test"""
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()

    telegram_bots.clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def user(app):
    return ReviewGuardTestUtils.create_test_user(email='owner@fixit.example.com')


@pytest.fixture
def subscription(user):
    return ReviewGuardTestUtils.create_test_subscription(user)


@pytest.fixture
def auth_headers(user):
    return {'Authorization': f'Bearer {issue_access_token(user)}'}


@pytest.fixture
def sms_sender():
    """Replace the carrier call; every send succeeds with a fixed sid"""
    with patch.object(SMSService, 'send_message', return_value={'sid': 'SM0001', 'status': 'queued'}) as mock_send:
        yield mock_send
