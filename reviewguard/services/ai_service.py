import re
import time
import logging
import requests
from typing import Dict, List, Optional, Any

from flask import current_app

from reviewguard.exceptions import AIServiceError, InvalidRating

logger = logging.getLogger(__name__)

# Ordered: brand/model patterns before generic categories so results keep
# the most specific name first.
DEVICE_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (
        r'\b(iPhones?(?:\s+\d+(?:\s+(?:Pro|Plus|Max|Mini|SE))?)?)\b',
        r'\b(iPads?(?:\s+(?:Pro|Air|Mini))?(?:\s+\d+(?:th)?)?)\b',
        r'\b(MacBooks?(?:\s+(?:Pro|Air))?(?:\s+\d+)?)\b',
        r'\b(Apple\s+Watches?(?:\s+Series\s+\d+)?)\b',
        r'\b(AirPods?(?:\s+(?:Pro|Max))?)\b',
        r'\b(iMacs?(?:\s+Pro)?(?:\s+\d+)?)\b',
        r'\b(Samsung\s+(?:Galaxy\s+)?(?:S\d+|Note\s+\d+|A\d+|Z\s+(?:Fold|Flip)\s*\d*))\b',
        r'\b(Google\s+Pixel(?:\s+\d+(?:\s+(?:Pro|XL))?)?)\b',
        r'\b(Surface(?:\s+(?:Pro|Laptop|Book|Go)\s*\d*)?)\b',
        r'\b(Chromebooks?)\b',
        r'\b(laptops?)\b',
        r'\b(tablets?)\b',
        r'\b(computers?)\b',
        r'\b(PCs?)\b',
        r'\b(Macs?)\b',
        r'\b(phones?)\b',
        r'\b((?:gaming\s+)?consoles?)\b',
        r'\b(Xbox(?:\s+(?:Series\s+)?[XS])?)\b',
        r'\b(PlayStation(?:\s+\d+)?)\b',
        r'\b(Nintendo\s+Switch)\b',
    )
]

NEGATIVE_SYSTEM_PROMPT = """You are a compassionate customer service manager for {business}. Your goal is to genuinely apologize and offer resolution.

THE 10 GOLDEN RULES FOR NEGATIVE REVIEWS (1-3 STARS):
Rule 1 (NEGATIVE OVERRIDE): For 1-3 star reviews, IGNORE all SEO rules. Focus only on sincere apology.
Rule 2: Acknowledge their specific frustration
Rule 3: Take full responsibility
Rule 4: Ask them to email {support_email}
Rule 5: Keep it short (2-3 sentences max)
Rule 6: Be heartfelt and genuine
Rule 7: Do NOT mention devices or SEO keywords
Rule 8: Do NOT try to cross-sell or upsell
Rule 9: Do NOT deflect blame
Rule 10: End with a genuine apology"""

NEGATIVE_USER_PROMPT = """A customer named {customer} left a {rating}-star review:

"{review}"

Write a sincere apology following the 10 Golden Rules for negative reviews. No SEO, just genuine care."""

POSITIVE_SYSTEM_PROMPT = """You are an expert Reputation Manager for {business}. Your goal is to write replies that boost Local SEO while sounding natural and grateful.

THE 10 GOLDEN RULES FOR POSITIVE REVIEWS (4-5 STARS):
Rule 1 (DEVICE RULE - MANDATORY): If the customer mentions ANY device (iPhone, iPad, MacBook, laptop, phone, tablet, console, computer, etc.), you MUST mention that EXACT device in your reply. Example: "We're so glad we could fix your iPhone 13!"

Rule 2 (CROSS-SELL): Occasionally mention other services naturally.

Rule 3 (LOCATION): Naturally include "{business}" at least once.

Rule 4 (GRATITUDE): Always thank them by name.

Rule 5 (NATURAL TONE): Sound warm and genuine, not robotic.

Rule 6 (SPECIFICITY): Reference specific details from their review when possible.

Rule 7 (BREVITY): Keep it concise (2-3 sentences max).

Rule 8 (PROFESSIONALISM): Maintain professional yet friendly tone.

Rule 9 (FUTURE FOCUS): Invite them back for future needs.

Rule 10 (COMPLIANCE): Never violate Google's review response policies."""

POSITIVE_USER_PROMPT = """A customer named {customer} left a {rating}-star review:

"{review}"{device_hint}

Write a reply (2-3 sentences) following ALL 10 Golden Rules above. Make it sound natural and grateful."""


def extract_device_mentions(text: Optional[str]) -> List[str]:
    """
    Find device names in review text.

    Returns unique matches (compared case-insensitively) in pattern order,
    keeping the casing used in the text.
    """
    if not text:
        return []

    found = []
    seen = set()
    for pattern in DEVICE_PATTERNS:
        for match in pattern.finditer(text):
            device = match.group(1)
            key = device.lower()
            if key not in seen:
                seen.add(key)
                found.append(device)
    return found


def validate_device_mentions(review_text: str, reply: str) -> Dict[str, Any]:
    """Check that a reply names at least one device the review mentioned"""
    devices_in_review = extract_device_mentions(review_text)

    if not devices_in_review:
        return {
            'status': 'passed',
            'reason': 'No devices mentioned in review',
            'devices_required': [],
            'devices_mentioned': []
        }

    reply_lower = (reply or '').lower()
    mentioned = [device for device in devices_in_review if device.lower() in reply_lower]

    if not mentioned:
        quoted = '", "'.join(devices_in_review)
        return {
            'status': 'failed',
            'reason': f'Review mentions "{quoted}" but reply does not mention any device',
            'devices_required': devices_in_review,
            'devices_mentioned': []
        }

    return {
        'status': 'passed',
        'reason': 'Device rule satisfied',
        'devices_required': devices_in_review,
        'devices_mentioned': mentioned
    }


class ReplyDraftingService:
    """Drafts replies to Google reviews through an OpenAI compatible endpoint"""

    def __init__(self):
        self.llm_api_url = current_app.config.get('LLM_API_URL')
        self.api_key = current_app.config.get('LLM_API_KEY')
        self.model_name = current_app.config.get('LLM_MODEL', 'gpt-4o-mini')
        self.request_timeout = current_app.config.get('LLM_TIMEOUT', 30.0)
        self.temperature = 0.7
        self.max_tokens = 200

    def draft_reply(self, review_text: str, star_rating, customer_name: str,
                    business_name: str, support_email: Optional[str] = None) -> Dict[str, Any]:
        """
        Draft a reply for one review.

        Returns:
            Dict with reply, validation and metadata. A device rule failure
            is logged and reported in validation; the draft is still returned.
        """
        try:
            rating = int(star_rating)
        except (TypeError, ValueError):
            raise InvalidRating('star_rating must be between 1 and 5')
        if not 1 <= rating <= 5:
            raise InvalidRating('star_rating must be between 1 and 5')

        start_time = time.time()
        devices = extract_device_mentions(review_text) if rating >= 4 else []
        system_prompt, user_prompt = self._build_prompts(
            review_text, rating, customer_name, business_name, support_email, devices
        )

        response_data = self._call_llm(system_prompt, user_prompt)
        reply = self._extract_reply(response_data)

        if rating >= 4:
            validation = validate_device_mentions(review_text, reply)
            if validation['status'] == 'failed':
                logger.warning(f"Device rule violation in drafted reply: {validation['reason']}")
        else:
            validation = {
                'status': 'not_applicable',
                'reason': 'Device rule only applies to 4-5 star reviews'
            }

        return {
            'reply': reply,
            'validation': validation,
            'metadata': {
                'rating': rating,
                'device_rule_applied': rating >= 4,
                'devices_detected': devices,
                'model_used': self.model_name,
                'tokens_used': response_data.get('usage', {}).get('total_tokens', 0),
                'processing_time': round(time.time() - start_time, 3)
            }
        }

    def _build_prompts(self, review_text, rating, customer_name, business_name, support_email, devices):
        business = business_name or 'our shop'
        if rating <= 3:
            system_prompt = NEGATIVE_SYSTEM_PROMPT.format(
                business=business,
                support_email=support_email or 'our support team'
            )
            user_prompt = NEGATIVE_USER_PROMPT.format(
                customer=customer_name, rating=rating, review=review_text
            )
        else:
            device_hint = ''
            if devices:
                device_hint = (
                    f"\n\nDETECTED DEVICES IN REVIEW: {', '.join(devices)}"
                    " - YOU MUST MENTION AT LEAST ONE OF THESE IN YOUR REPLY!"
                )
            system_prompt = POSITIVE_SYSTEM_PROMPT.format(business=business)
            user_prompt = POSITIVE_USER_PROMPT.format(
                customer=customer_name, rating=rating, review=review_text, device_hint=device_hint
            )
        return system_prompt, user_prompt

    def _call_llm(self, system_prompt: str, user_prompt: str) -> Dict:
        """Call the chat completions endpoint"""
        if not self.llm_api_url or not self.api_key:
            raise AIServiceError('AI service is not configured')

        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False
        }

        headers = {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.api_key}'
        }

        try:
            response = requests.post(
                self.llm_api_url,
                json=payload,
                headers=headers,
                timeout=self.request_timeout
            )
        except requests.exceptions.Timeout:
            logger.error("LLM request timed out")
            raise AIServiceError('AI service timed out. Please try again in a moment.')
        except requests.exceptions.ConnectionError:
            logger.error("Cannot connect to LLM endpoint")
            raise AIServiceError()
        except requests.exceptions.RequestException as e:
            logger.error(f"LLM request failed: {e}")
            raise AIServiceError()

        if response.status_code != 200:
            logger.error(f"LLM error: {response.status_code} - {response.text[:200]}")
            raise AIServiceError()

        try:
            return response.json()
        except ValueError:
            raise AIServiceError('AI service returned an invalid response')

    def _extract_reply(self, response_data: Dict) -> str:
        choices = response_data.get('choices') or []
        if not choices:
            raise AIServiceError('AI service returned no reply')

        reply = (choices[0].get('message', {}).get('content') or '').strip()
        if not reply:
            raise AIServiceError('AI service returned an empty reply')

        # Remove any quotes if the model wrapped the response
        if len(reply) > 1 and reply.startswith('"') and reply.endswith('"'):
            reply = reply[1:-1].strip()
        return reply
