from flask import Blueprint, request, Response, current_app
from twilio.twiml.messaging_response import MessagingResponse

from reviewguard.exceptions import InvalidPhoneFormat
from reviewguard.extensions import db
from reviewguard.models.optout import SmsOptOut, STOP_KEYWORDS, START_KEYWORDS
from reviewguard.services import get_messaging_service
from reviewguard.utils.helpers import mask_phone
from reviewguard.utils.security import verify_twilio_signature
from reviewguard.utils.validators import format_phone_number

webhooks_bp = Blueprint('webhooks', __name__, url_prefix='/api/sms')

OPT_OUT_REPLY = 'You have been unsubscribed from SMS messages. Reply START to opt back in.'
OPT_IN_REPLY = 'You have been re-subscribed to SMS messages. Reply STOP to opt out.'


def twiml(response: MessagingResponse) -> Response:
    return Response(str(response), mimetype='application/xml')


@webhooks_bp.route('/webhook', methods=['POST'])
@verify_twilio_signature
def handle_incoming_sms():
    """
    Handle inbound SMS from the carrier.
    STOP-style keywords add the sender to the opt-out registry, START-style
    keywords remove it. Anything else is acknowledged with an empty response.
    """
    body = (request.form.get('Body') or '').strip()
    keyword = body.upper()

    response = MessagingResponse()
    try:
        from_number = format_phone_number(request.form.get('From', ''))
    except InvalidPhoneFormat:
        current_app.logger.warning("Inbound SMS without a valid sender number")
        return twiml(response)

    if keyword in STOP_KEYWORDS:
        SmsOptOut.opt_out(from_number, reason=keyword)
        db.session.commit()
        current_app.logger.info(f"📵 {mask_phone(from_number)} opted out via {keyword}")
        response.message(OPT_OUT_REPLY)
    elif keyword in START_KEYWORDS:
        SmsOptOut.opt_in(from_number)
        db.session.commit()
        current_app.logger.info(f"✅ {mask_phone(from_number)} opted back in via {keyword}")
        response.message(OPT_IN_REPLY)
    else:
        current_app.logger.info(f"Inbound SMS from {mask_phone(from_number)} ignored")

    return twiml(response)


@webhooks_bp.route('/status', methods=['POST'])
@verify_twilio_signature
def handle_status_callback():
    """Delivery status callback for outbound messages"""
    message_sid = request.form.get('MessageSid')
    status = request.form.get('MessageStatus')
    error_code = request.form.get('ErrorCode')

    if message_sid and status:
        get_messaging_service().update_delivery_status(message_sid, status, error_code)

    return twiml(MessagingResponse())
