"""
Telegram bot registry for human-in-the-loop review reply approval.

Each tenant may configure one bot (token + chat id). Bots talk to the
Telegram Bot HTTP API over requests; replies arrive through the
/api/telegram/webhook/<user_id> endpoint registered on start, each
update carrying the tenant's secret token header.
"""
import logging
import threading
import requests
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = 'https://api.telegram.org'


class TelegramError(Exception):
    """Telegram Bot API call failed"""
    pass


class TelegramBot:
    """Thin client for one tenant's bot"""

    def __init__(self, token: str, chat_id: str, api_url: str = DEFAULT_API_URL, timeout: int = 10):
        self.token = token
        self.chat_id = str(chat_id)
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout

    def _call(self, method: str, payload: Dict) -> Dict:
        url = f"{self.api_url}/bot{self.token}/{method}"
        try:
            response = requests.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TelegramError(f"Telegram request failed: {e}")

        try:
            data = response.json() if response.content else {}
        except ValueError:
            raise TelegramError(f"Telegram {method} returned a non-JSON response ({response.status_code})")

        if response.status_code != 200 or not data.get('ok', False):
            raise TelegramError(f"Telegram {method} failed: {data.get('description', response.status_code)}")
        return data.get('result', {})

    def send_message(self, text: str, chat_id: Optional[str] = None) -> Dict:
        return self._call('sendMessage', {'chat_id': chat_id or self.chat_id, 'text': text})

    def set_webhook(self, url: str, secret_token: Optional[str] = None) -> Dict:
        payload = {'url': url}
        if secret_token:
            payload['secret_token'] = secret_token
        return self._call('setWebhook', payload)

    def delete_webhook(self) -> Dict:
        return self._call('deleteWebhook', {})

    def owns_chat(self, chat_id) -> bool:
        return str(chat_id) == self.chat_id


class TelegramBotRegistry:
    """
    Explicit per-tenant bot registry.

    start() replaces any running bot for the tenant, stop() removes it and
    get() returns the running bot or None.
    """

    def __init__(self, api_url: str = DEFAULT_API_URL):
        self.api_url = api_url
        self._bots: Dict[int, TelegramBot] = {}
        self._lock = threading.Lock()

    def configure(self, api_url: str) -> None:
        self.api_url = api_url

    def start(self, user_id: int, token: str, chat_id: str, webhook_url: Optional[str] = None,
              secret_token: Optional[str] = None) -> TelegramBot:
        bot = TelegramBot(token, chat_id, api_url=self.api_url)
        if webhook_url:
            bot.set_webhook(webhook_url, secret_token=secret_token)

        with self._lock:
            self._bots[user_id] = bot

        logger.info(f"✅ Telegram bot started for user {user_id}")
        return bot

    def stop(self, user_id: int) -> bool:
        with self._lock:
            bot = self._bots.pop(user_id, None)

        if not bot:
            return False

        try:
            bot.delete_webhook()
        except TelegramError as e:
            logger.warning(f"Failed to remove Telegram webhook for user {user_id}: {e}")

        logger.info(f"Telegram bot stopped for user {user_id}")
        return True

    def restart(self, user_id: int, token: Optional[str], chat_id: Optional[str],
                webhook_url: Optional[str] = None, secret_token: Optional[str] = None) -> Optional[TelegramBot]:
        """Stop the running bot and start a new one if credentials are present"""
        self.stop(user_id)
        if token and chat_id:
            return self.start(user_id, token, chat_id, webhook_url=webhook_url, secret_token=secret_token)
        return None

    def get(self, user_id: int) -> Optional[TelegramBot]:
        with self._lock:
            return self._bots.get(user_id)

    def running(self):
        with self._lock:
            return sorted(self._bots.keys())

    def clear(self) -> None:
        with self._lock:
            self._bots.clear()
