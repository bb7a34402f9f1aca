"""
Tests for device extraction, the device rule check and reply drafting
"""

import pytest
from unittest.mock import patch, Mock

import requests

from reviewguard.exceptions import AIServiceError, InvalidRating
from reviewguard.services.ai_service import (
    ReplyDraftingService, extract_device_mentions, validate_device_mentions
)

from review_test_utils import ReviewGuardTestUtils


def llm_ok(content):
    return Mock(status_code=200, json=Mock(return_value=ReviewGuardTestUtils.mock_llm_response(content)))


class TestDeviceExtraction:

    def test_model_number_kept(self):
        assert extract_device_mentions('My iPhone 13 screen repair was fast!') == ['iPhone 13']

    def test_multiple_devices_in_pattern_order(self):
        devices = extract_device_mentions('Fixed my MacBook Pro and then my old laptop too')
        assert devices == ['MacBook Pro', 'laptop']

    def test_duplicates_ignored_case_insensitively(self):
        assert extract_device_mentions('Laptop was dead. Now the laptop works!') == ['Laptop']

    @pytest.mark.parametrize('text', ['', None, 'Great service, friendly staff'])
    def test_no_devices(self, text):
        assert extract_device_mentions(text) == []


class TestDeviceRule:

    def test_reply_mentions_device(self):
        result = validate_device_mentions(
            'My iPhone 13 screen repair was fast!',
            "Thanks Sam! We're so glad we could fix your iphone 13."
        )
        assert result['status'] == 'passed'
        assert result['devices_mentioned'] == ['iPhone 13']

    def test_reply_missing_device(self):
        result = validate_device_mentions('My iPhone 13 screen repair was fast!', 'Thanks Sam!')

        assert result['status'] == 'failed'
        assert result['devices_required'] == ['iPhone 13']
        assert 'iPhone 13' in result['reason']

    def test_review_without_devices_passes(self):
        result = validate_device_mentions('Lovely people', 'Thank you!')
        assert result['status'] == 'passed'
        assert result['devices_required'] == []


class TestReplyDrafting:

    def test_positive_review_with_device(self, app):
        reply = "Thanks Sam! We're thrilled your iPhone 13 is good as new at Fix-It Phones."

        with patch('reviewguard.services.ai_service.requests.post', return_value=llm_ok(reply)) as post:
            result = ReplyDraftingService().draft_reply(
                'My iPhone 13 screen repair was fast!', 5, 'Sam', 'Fix-It Phones'
            )

        assert result['reply'] == reply
        assert result['validation']['status'] == 'passed'
        assert result['metadata']['device_rule_applied'] is True
        assert result['metadata']['devices_detected'] == ['iPhone 13']
        assert result['metadata']['tokens_used'] == 42
        user_prompt = post.call_args.kwargs['json']['messages'][1]['content']
        assert 'DETECTED DEVICES IN REVIEW: iPhone 13' in user_prompt

    def test_failed_device_rule_still_returns_reply(self, app):
        with patch('reviewguard.services.ai_service.requests.post', return_value=llm_ok('Thanks Sam!')):
            result = ReplyDraftingService().draft_reply(
                'My iPhone 13 screen repair was fast!', 4, 'Sam', 'Fix-It Phones'
            )

        assert result['reply'] == 'Thanks Sam!'
        assert result['validation']['status'] == 'failed'

    def test_negative_review_skips_device_rule(self, app):
        with patch('reviewguard.services.ai_service.requests.post',
                   return_value=llm_ok('"We are so sorry, Sam."')) as post:
            result = ReplyDraftingService().draft_reply(
                'My iPhone 13 still does not charge', 2, 'Sam', 'Fix-It Phones',
                support_email='owner@fixit.example.com'
            )

        assert result['reply'] == 'We are so sorry, Sam.'
        assert result['validation']['status'] == 'not_applicable'
        assert result['metadata']['devices_detected'] == []
        system_prompt = post.call_args.kwargs['json']['messages'][0]['content']
        assert 'owner@fixit.example.com' in system_prompt

    @pytest.mark.parametrize('rating', [0, 6, 'five', None])
    def test_invalid_rating(self, app, rating):
        with pytest.raises(InvalidRating):
            ReplyDraftingService().draft_reply('Great', rating, 'Sam', 'Fix-It Phones')

    def test_llm_http_error(self, app):
        error = Mock(status_code=500, text='upstream failure')

        with patch('reviewguard.services.ai_service.requests.post', return_value=error):
            with pytest.raises(AIServiceError) as exc_info:
                ReplyDraftingService().draft_reply('Great', 5, 'Sam', 'Fix-It Phones')

        assert exc_info.value.status_code == 503

    def test_llm_timeout(self, app):
        with patch('reviewguard.services.ai_service.requests.post', side_effect=requests.exceptions.Timeout()):
            with pytest.raises(AIServiceError, match='timed out'):
                ReplyDraftingService().draft_reply('Great', 5, 'Sam', 'Fix-It Phones')

    def test_empty_completion(self, app):
        with patch('reviewguard.services.ai_service.requests.post', return_value=llm_ok('   ')):
            with pytest.raises(AIServiceError):
                ReplyDraftingService().draft_reply('Great', 5, 'Sam', 'Fix-It Phones')

    def test_not_configured(self, app):
        app.config['LLM_API_KEY'] = None

        with pytest.raises(AIServiceError, match='not configured'):
            ReplyDraftingService().draft_reply('Great', 5, 'Sam', 'Fix-It Phones')


class TestGenerateReplyEndpoint:

    def test_generate_reply(self, client, auth_headers):
        reply = 'Thanks Sam! Enjoy your iPhone 13.'

        with patch('reviewguard.services.ai_service.requests.post', return_value=llm_ok(reply)) as post:
            response = client.post('/api/ai/generate-reply', json={
                'review_text': 'My iPhone 13 screen repair was fast!',
                'star_rating': 5,
                'customer_name': 'Sam'
            }, headers=auth_headers)

        data = response.get_json()
        assert response.status_code == 200
        assert data['reply'] == reply
        assert data['validation']['status'] == 'passed'
        system_prompt = post.call_args.kwargs['json']['messages'][0]['content']
        assert 'Fix-It Phones' in system_prompt

    def test_rating_out_of_range(self, client, auth_headers):
        response = client.post('/api/ai/generate-reply', json={
            'review_text': 'Great', 'star_rating': 9
        }, headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'

    def test_llm_unavailable(self, client, auth_headers):
        with patch('reviewguard.services.ai_service.requests.post',
                   side_effect=requests.exceptions.ConnectionError()):
            response = client.post('/api/ai/generate-reply', json={
                'review_text': 'Great', 'star_rating': 5
            }, headers=auth_headers)

        assert response.status_code == 503
        assert response.get_json()['code'] == 'AI_SERVICE_UNAVAILABLE'

    def test_requires_auth(self, client):
        response = client.post('/api/ai/generate-reply', json={'review_text': 'Great', 'star_rating': 5})
        assert response.status_code == 401
