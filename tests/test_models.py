"""Response parsing and session activity."""

from datetime import datetime, timedelta, timezone

import pytest

from sestra import PaymentDetails, PaymentResult, PaymentStatus, Session
from sestra.models import PaymentStatusResponse, parse_timestamp


class TestParseTimestamp:
    def test_zulu_suffix(self):
        parsed = parse_timestamp("2024-01-15T10:00:00Z")
        assert parsed == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp("2024-01-15T10:00:00").tzinfo is timezone.utc

    def test_offset_kept(self):
        parsed = parse_timestamp("2024-01-15T12:00:00+02:00")
        assert parsed == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "not a date", 12])
    def test_unparseable(self, value):
        assert parse_timestamp(value) is None


class TestSession:
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_active(self):
        session = Session("t", "r", self.now + timedelta(seconds=1), 1)
        assert session.is_active(self.now) is True

    def test_expiry_is_strict(self):
        session = Session("t", "r", self.now, 5)
        assert session.is_active(self.now) is False

    def test_no_calls_left(self):
        session = Session("t", "r", self.now + timedelta(hours=1), 0)
        assert session.is_active(self.now) is False

    def test_from_response(self):
        session = Session.from_response(
            {
                "token": "tok",
                "reference_id": "ref",
                "expires_at": "2030-01-01T00:00:00Z",
                "calls_remaining": 100,
                "success": True,
            }
        )
        assert session.token == "tok"
        assert session.calls_remaining == 100
        assert session.expires_at.year == 2030

    def test_from_response_without_expiry(self):
        session = Session.from_response({"token": "tok", "reference_id": "ref"})
        assert session.expires_at is None
        assert session.calls_remaining == 0
        assert session.is_active() is False


class TestPaymentDetails:
    def test_memo_prefers_reference(self):
        details = PaymentDetails.from_dict(
            {"recipient_address": "r", "amount_lamports": 5, "reference": "ref", "memo": "m"}
        )
        assert details.payment_memo == "ref"

    def test_sandbox_memo(self):
        details = PaymentDetails.from_dict(
            {"recipient_address": "r", "amount_lamports": 5, "memo": "m", "is_sandbox": True}
        )
        assert details.payment_memo == "m"
        assert details.is_sandbox is True
        assert details.platform_address is None

    def test_frozen(self):
        details = PaymentDetails("r", 5, 0.0, 60)
        with pytest.raises(AttributeError):
            details.amount_lamports = 10


def test_unknown_status_is_none():
    response = PaymentStatusResponse.from_response({"reference_id": "r", "status": "weird"})
    assert response.status is None


def test_known_status():
    response = PaymentStatusResponse.from_response({"reference_id": "r", "status": "revoked"})
    assert response.status is PaymentStatus.REVOKED


class TestPaymentResult:
    def test_success(self):
        result = PaymentResult.succeeded("sig")
        assert result.success is True
        assert result.error is None

    def test_failure(self):
        result = PaymentResult.failed("boom")
        assert result.success is False
        assert result.tx_hash is None

    @pytest.mark.parametrize("kwargs", [{}, {"tx_hash": "sig", "error": "boom"}])
    def test_exactly_one_field(self, kwargs):
        with pytest.raises(ValueError):
            PaymentResult(**kwargs)
