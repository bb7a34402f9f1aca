import logging
from typing import Dict, Any, Optional

from flask import current_app
from twilio.rest import Client
from twilio.base.exceptions import TwilioException, TwilioRestException

from reviewguard.exceptions import CarrierError
from reviewguard.utils.helpers import mask_phone


class SMSService:
    """Outbound SMS/MMS through Twilio. One attempt per call, no retries."""

    def __init__(self, client: Optional[Client] = None):
        self.logger = logging.getLogger(__name__)
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            account_sid = current_app.config.get('TWILIO_ACCOUNT_SID')
            auth_token = current_app.config.get('TWILIO_AUTH_TOKEN')
            if not account_sid or not auth_token:
                raise CarrierError('SMS provider is not configured')
            self._client = Client(account_sid, auth_token)
        return self._client

    @property
    def from_number(self) -> str:
        number = current_app.config.get('TWILIO_PHONE_NUMBER')
        if not number:
            raise CarrierError('Sender phone number is not configured')
        return number

    def send_message(self, to: str, body: str, media_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Send one SMS, or MMS when media_url is given.

        Returns:
            Dict with provider sid and initial status

        Raises:
            CarrierError: the provider rejected the message or was unreachable
        """
        params = {
            'to': to,
            'from_': self.from_number,
            'body': body
        }
        if media_url:
            params['media_url'] = [media_url]

        status_callback = self._status_callback_url()
        if status_callback:
            params['status_callback'] = status_callback

        try:
            message = self.client.messages.create(**params)
        except TwilioRestException as e:
            self.logger.error(f"❌ SMS to {mask_phone(to)} rejected: {e.code} {e.msg}")
            raise CarrierError(f"Failed to send SMS: {e.msg}", provider_code=e.code)
        except TwilioException as e:
            self.logger.error(f"❌ SMS to {mask_phone(to)} failed: {e}")
            raise CarrierError(f"Failed to send SMS: {e}")

        self.logger.info(f"✅ SMS sent to {mask_phone(to)} (sid {message.sid})")
        return {
            'sid': message.sid,
            'status': message.status or 'queued'
        }

    def _status_callback_url(self) -> Optional[str]:
        base_url = current_app.config.get('APP_BASE_URL', '')
        if not base_url.startswith('https://'):
            return None
        return f"{base_url.rstrip('/')}/api/sms/status"
