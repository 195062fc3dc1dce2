"""
Unit Tests for tracking code and URL helpers
"""

from urllib.parse import parse_qs, urlparse

import pytest
from pydantic import ValidationError

from microservices.invitation_service.models import InviteRequest
from microservices.invitation_service.tracking_links import (
    CODE_ALPHABET,
    QR_CODE_ENDPOINT,
    build_qr_code_url,
    build_short_url,
    generate_tracking_code,
)


class TestTrackingCode:

    def test_default_length_and_alphabet(self):
        code = generate_tracking_code()

        assert len(code) == 8
        assert set(code) <= set(CODE_ALPHABET)

    def test_custom_length(self):
        assert len(generate_tracking_code(12)) == 12

    def test_codes_vary(self):
        codes = {generate_tracking_code() for _ in range(50)}
        assert len(codes) > 1


class TestUrls:

    def test_short_url(self):
        assert build_short_url("https://go.example/t", "Ab12Cd34") == "https://go.example/t?code=Ab12Cd34"

    def test_qr_code_url_encodes_target(self):
        target = "https://go.example/t?code=Ab12Cd34"

        url = build_qr_code_url(target, size=200)

        assert url.startswith(QR_CODE_ENDPOINT)
        query = parse_qs(urlparse(url).query)
        assert query["size"] == ["200x200"]
        assert query["data"] == [target]
        assert query["format"] == ["png"]


class TestInviteRequest:
    """Request validation"""

    def test_blank_creator_rejected(self):
        with pytest.raises(ValidationError):
            InviteRequest(campaign_id="cmp_1", creator_id="  ", base_payout="100")

    def test_negative_payout_rejected(self):
        with pytest.raises(ValidationError):
            InviteRequest(campaign_id="cmp_1", creator_id="usr_c", base_payout="-1")

    def test_expiry_window_bounds(self):
        assert InviteRequest(campaign_id="cmp_1", creator_id="usr_c", base_payout="0", expires_in_days=90)
        with pytest.raises(ValidationError):
            InviteRequest(campaign_id="cmp_1", creator_id="usr_c", base_payout="0", expires_in_days=0)
