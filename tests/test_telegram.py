"""
Tests for the per-tenant Telegram bot registry
"""

import pytest
from unittest.mock import patch, Mock

import requests

from reviewguard.services.telegram_service import TelegramBot, TelegramBotRegistry, TelegramError


def telegram_ok(result=True):
    return Mock(status_code=200, content=b'{"ok": true}', json=Mock(return_value={'ok': True, 'result': result}))


@pytest.fixture
def registry():
    return TelegramBotRegistry(api_url='https://telegram.test')


class TestTelegramBot:

    def test_send_message(self):
        bot = TelegramBot('123:ABC', 987654, api_url='https://telegram.test')

        with patch('reviewguard.services.telegram_service.requests.post',
                   return_value=telegram_ok({'message_id': 1})) as post:
            result = bot.send_message('hello')

        assert result == {'message_id': 1}
        assert post.call_args.args[0] == 'https://telegram.test/bot123:ABC/sendMessage'
        assert post.call_args.kwargs['json'] == {'chat_id': '987654', 'text': 'hello'}

    def test_api_error(self):
        bot = TelegramBot('123:ABC', '987654')
        failure = Mock(status_code=401, content=b'{}',
                       json=Mock(return_value={'ok': False, 'description': 'Unauthorized'}))

        with patch('reviewguard.services.telegram_service.requests.post', return_value=failure):
            with pytest.raises(TelegramError, match='Unauthorized'):
                bot.send_message('hello')

    def test_network_error(self):
        bot = TelegramBot('123:ABC', '987654')

        with patch('reviewguard.services.telegram_service.requests.post',
                   side_effect=requests.exceptions.ConnectionError('down')):
            with pytest.raises(TelegramError):
                bot.send_message('hello')

    def test_html_error_page(self):
        """A proxy error page instead of JSON surfaces as TelegramError"""
        bot = TelegramBot('123:ABC', '987654')
        gateway = Mock(status_code=502, content=b'<html>Bad Gateway</html>',
                       json=Mock(side_effect=ValueError('Expecting value')))

        with patch('reviewguard.services.telegram_service.requests.post', return_value=gateway):
            with pytest.raises(TelegramError, match='non-JSON'):
                bot.send_message('hello')

    def test_owns_chat(self):
        bot = TelegramBot('123:ABC', '987654')

        assert bot.owns_chat(987654) is True
        assert bot.owns_chat('111') is False


class TestTelegramBotRegistry:

    def test_start_and_get(self, registry):
        bot = registry.start(1, '123:ABC', '987654')

        assert registry.get(1) is bot
        assert registry.get(2) is None
        assert registry.running() == [1]

    def test_start_registers_webhook(self, registry):
        with patch('reviewguard.services.telegram_service.requests.post', return_value=telegram_ok()) as post:
            registry.start(1, '123:ABC', '987654', webhook_url='https://reviews.example.com/api/telegram/webhook/1')

        assert post.call_args.args[0].endswith('/setWebhook')
        assert post.call_args.kwargs['json'] == {'url': 'https://reviews.example.com/api/telegram/webhook/1'}

    def test_webhook_secret_token(self, registry):
        with patch('reviewguard.services.telegram_service.requests.post', return_value=telegram_ok()) as post:
            registry.start(1, '123:ABC', '987654', webhook_url='https://reviews.example.com/api/telegram/webhook/1',
                           secret_token='tg-secret')

        assert post.call_args.kwargs['json'] == {
            'url': 'https://reviews.example.com/api/telegram/webhook/1',
            'secret_token': 'tg-secret'
        }

    def test_failed_webhook_leaves_registry_unchanged(self, registry):
        failure = Mock(status_code=400, content=b'{}',
                       json=Mock(return_value={'ok': False, 'description': 'bad webhook'}))

        with patch('reviewguard.services.telegram_service.requests.post', return_value=failure):
            with pytest.raises(TelegramError):
                registry.start(1, '123:ABC', '987654', webhook_url='https://bad.example.com')

        assert registry.get(1) is None

    def test_stop(self, registry):
        registry.start(1, '123:ABC', '987654')

        with patch('reviewguard.services.telegram_service.requests.post', return_value=telegram_ok()) as post:
            assert registry.stop(1) is True

        assert post.call_args.args[0].endswith('/deleteWebhook')
        assert registry.get(1) is None
        assert registry.stop(1) is False

    def test_stop_tolerates_webhook_failure(self, registry):
        registry.start(1, '123:ABC', '987654')

        with patch('reviewguard.services.telegram_service.requests.post',
                   side_effect=requests.exceptions.Timeout()):
            assert registry.stop(1) is True

        assert registry.get(1) is None

    def test_stop_tolerates_html_response(self, registry):
        registry.start(1, '123:ABC', '987654')
        gateway = Mock(status_code=502, content=b'<html>Bad Gateway</html>',
                       json=Mock(side_effect=ValueError('Expecting value')))

        with patch('reviewguard.services.telegram_service.requests.post', return_value=gateway):
            assert registry.stop(1) is True

        assert registry.get(1) is None

    def test_restart_replaces_bot(self, registry):
        first = registry.start(1, '123:ABC', '987654')

        with patch('reviewguard.services.telegram_service.requests.post', return_value=telegram_ok()):
            second = registry.restart(1, '456:DEF', '111')

        assert second is not first
        assert registry.get(1).token == '456:DEF'
        assert registry.get(1).chat_id == '111'

    def test_restart_without_credentials_stops(self, registry):
        registry.start(1, '123:ABC', '987654')

        with patch('reviewguard.services.telegram_service.requests.post', return_value=telegram_ok()):
            assert registry.restart(1, None, None) is None

        assert registry.get(1) is None
