"""
Unit tests for phone normalization and consent checks
"""

import pytest

from reviewguard.exceptions import InvalidPhoneFormat, ConsentRequired
from reviewguard.utils.validators import (
    format_phone_number,
    is_valid_phone_number,
    consent_given,
    require_sms_consent,
    sanitize_string
)
from reviewguard.utils.helpers import mask_phone, usage_percentage, usage_warning_level


class TestFormatPhoneNumber:
    """Test E.164 normalization"""

    @pytest.mark.parametrize('raw', [
        '(555) 123-4567',
        '555.123.4567',
        '555-123-4567',
        '5551234567',
        '15551234567',
        '+1 555 123 4567',
    ])
    def test_north_american_formats(self, raw):
        """Test that common US formats normalize to the same number"""
        assert format_phone_number(raw) == '+15551234567'

    @pytest.mark.parametrize('raw', [
        '+44 20 7946 0958',
        '0044 20 7946 0958',
        '011 44 20 7946 0958',
    ])
    def test_international_prefixes(self, raw):
        """Test +, 00 and 011 prefixes are all understood"""
        assert format_phone_number(raw) == '+442079460958'

    def test_ten_digits_with_plus_not_treated_as_us(self):
        """Test an explicit international prefix disables the US country code"""
        assert format_phone_number('+4420794609') == '+4420794609'

    @pytest.mark.parametrize('raw', ['', '12345', 'not a phone', '+1234567890123456', None])
    def test_invalid_numbers_raise(self, raw):
        with pytest.raises(InvalidPhoneFormat):
            format_phone_number(raw)

    def test_is_valid_phone_number(self):
        assert is_valid_phone_number('(555) 123-4567') is True
        assert is_valid_phone_number('123') is False


class TestConsent:
    """Test SMS consent flag handling"""

    @pytest.mark.parametrize('flag', [True, 'true', 'TRUE', 'on', '1', 'yes'])
    def test_truthy_values(self, flag):
        assert consent_given(flag) is True

    @pytest.mark.parametrize('flag', [False, None, '', 'false', 'off', '0', 'no'])
    def test_falsy_values(self, flag):
        assert consent_given(flag) is False

    def test_require_consent_raises(self):
        """Test missing consent blocks sending"""
        with pytest.raises(ConsentRequired) as exc_info:
            require_sms_consent(None)
        assert exc_info.value.code == 'CONSENT_REQUIRED'
        assert exc_info.value.status_code == 400


class TestHelpers:

    def test_sanitize_string(self):
        assert sanitize_string('  hello\x00 world  ') == 'hello world'
        assert sanitize_string('') is None
        assert sanitize_string('abcdef', max_length=3) == 'abc'

    def test_mask_phone(self):
        assert mask_phone('+15551234567') == '***4567'
        assert mask_phone(None) == 'unknown'

    def test_usage_warning_levels(self):
        assert usage_warning_level(usage_percentage(10, 100)) == 'none'
        assert usage_warning_level(usage_percentage(70, 100)) == 'medium'
        assert usage_warning_level(usage_percentage(85, 100)) == 'high'
        assert usage_warning_level(usage_percentage(95, 100)) == 'critical'
        assert usage_percentage(5, 0) == 100.0
