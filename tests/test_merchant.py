"""Merchant API and session activation."""

import pytest

from conftest import API_KEY, BASE_URL, iso_in
from sestra import CreatePolicyRequest, ErrorKind, SestraClient, SestraError


@pytest.fixture
def client() -> SestraClient:
    return SestraClient({"sestraBaseUrl": BASE_URL, "apiKey": API_KEY})


def test_get_merchant_user(client, fake_http):
    fake_http.respond(
        {
            "id": "user-123",
            "email": "developer@example.com",
            "wallet_address": "SoL1234567890abcdef",
            "created_at": "2024-01-01T00:00:00Z",
        }
    )

    user = client.get_merchant_user()

    assert user.id == "user-123"
    assert user.email == "developer@example.com"
    assert user.created_at.year == 2024
    assert fake_http.last.url == f"{BASE_URL}/api/v1/public/me"
    assert fake_http.last.headers["x-api-key"] == API_KEY


@pytest.mark.parametrize(
    "call",
    [
        lambda c: c.get_merchant_user(),
        lambda c: c.get_merchant_stats(),
        lambda c: c.list_policies(),
        lambda c: c.delete_policy("policy-1"),
        lambda c: c.get_transactions(),
        lambda c: c.get_earnings(),
        lambda c: c.activate_session("ref-1", "tx-1"),
    ],
)
def test_api_key_required_before_network(fake_http, call):
    client_without_key = SestraClient(sestra_base_url=BASE_URL)

    with pytest.raises(SestraError, match="API Key is required for Merchant API") as excinfo:
        call(client_without_key)

    assert excinfo.value.kind is ErrorKind.VALIDATION_ERROR
    assert excinfo.value.field == "api_key"
    assert fake_http.requests == []


def test_get_merchant_stats(client, fake_http):
    fake_http.respond(
        {
            "total_payments": 150,
            "active_sessions": 25,
            "total_revenue_lamports": 5000000000,
            "total_revenue_sol": 5.0,
        }
    )

    stats = client.get_merchant_stats()

    assert fake_http.last.url == f"{BASE_URL}/api/v1/public/stats"
    assert stats.total_payments == 150
    assert stats.active_sessions == 25
    assert stats.total_revenue_sol == 5.0


def test_list_policies(client, fake_http):
    fake_http.respond(
        [
            {
                "id": "policy-1",
                "name": "Basic API Access",
                "endpoint_pattern": "/api/v1/*",
                "ttl_seconds": 3600,
                "max_calls": 100,
                "required_amount_lamports": 10000000,
                "is_active": True,
            },
            {
                "id": "policy-2",
                "name": "Premium API Access",
                "endpoint_pattern": "/api/v1/premium/*",
                "ttl_seconds": 86400,
                "max_calls": 1000,
                "required_amount_lamports": 100000000,
                "is_active": True,
            },
        ]
    )

    policies = client.list_policies()

    assert len(policies) == 2
    assert policies[0].name == "Basic API Access"
    assert policies[1].max_calls == 1000


def test_list_policies_empty(client, fake_http):
    fake_http.respond([])

    assert client.list_policies() == []


def test_create_policy(client, fake_http):
    request = CreatePolicyRequest(
        name="New Policy",
        endpoint_pattern="/api/v1/new/*",
        ttl_seconds=7200,
        max_calls=500,
        required_amount_lamports=50000000,
    )
    fake_http.respond(
        dict(request.as_payload(), id="policy-new", is_active=True, created_at="2024-01-15T00:00:00Z")
    )

    policy = client.create_policy(request)

    assert policy.id == "policy-new"
    assert policy.name == "New Policy"
    assert policy.is_active is True
    assert fake_http.last.method == "POST"
    assert fake_http.last.url == f"{BASE_URL}/api/v1/public/policies"
    assert fake_http.last.body == request.as_payload()


def test_delete_policy(client, fake_http):
    fake_http.respond({"message": "Policy deleted successfully"})

    assert client.delete_policy("policy-123") is None
    assert fake_http.last.method == "DELETE"
    assert fake_http.last.url == f"{BASE_URL}/api/v1/public/policies/policy-123"


def test_delete_policy_failure(client, fake_http):
    fake_http.respond({"detail": "Policy not found"}, status=404)

    with pytest.raises(SestraError, match="Policy not found") as excinfo:
        client.delete_policy("missing")

    assert excinfo.value.kind is ErrorKind.API_ERROR
    assert excinfo.value.status_code == 404


def test_get_transactions(client, fake_http):
    fake_http.respond(
        [
            {
                "id": "tx-1",
                "reference_id": "ref-123",
                "type": "PAYMENT",
                "amount_lamports": 10000000,
                "amount_sol": 0.01,
                "status": "confirmed",
                "tx_hash": "solana-tx-hash-123",
                "created_at": "2024-01-15T10:00:00Z",
            }
        ]
    )

    transactions = client.get_transactions()

    assert fake_http.last.url == f"{BASE_URL}/api/v1/public/transactions"
    assert len(transactions) == 1
    assert transactions[0].type == "PAYMENT"
    assert transactions[0].tx_hash == "solana-tx-hash-123"


def test_get_transactions_with_filters(client, fake_http):
    fake_http.respond(None)

    assert client.get_transactions(limit=10, offset=5, type="PAYMENT") == []
    assert fake_http.last.url == (
        f"{BASE_URL}/api/v1/public/transactions?limit=10&offset=5&type=PAYMENT"
    )


def test_get_earnings_defaults_to_seven_days(client, fake_http):
    fake_http.respond(
        {
            "period_days": 7,
            "total_lamports": 500000000,
            "total_sol": 0.5,
            "transaction_count": 25,
            "daily_breakdown": [
                {"date": "2024-01-15", "amount_lamports": 100000000, "amount_sol": 0.1, "count": 5},
                {"date": "2024-01-14", "amount_lamports": 80000000, "amount_sol": 0.08, "count": 4},
            ],
        }
    )

    earnings = client.get_earnings()

    assert fake_http.last.url == f"{BASE_URL}/api/v1/public/earnings?days=7"
    assert earnings.period_days == 7
    assert earnings.total_sol == 0.5
    assert len(earnings.daily_breakdown) == 2
    assert earnings.daily_breakdown[0].count == 5


def test_get_earnings_custom_days(client, fake_http):
    fake_http.respond({"period_days": 30, "total_lamports": 2000000000, "total_sol": 2.0})

    earnings = client.get_earnings(30)

    assert "days=30" in fake_http.last.url
    assert earnings.daily_breakdown == []


class TestActivateSession:
    def test_activation_sets_session(self, client, fake_http):
        fake_http.respond(
            {
                "id": "session-123",
                "token": "session-token-xyz",
                "status": "active",
                "policy_id": "policy-456",
                "reference_id": "ref-789",
                "calls_used": 0,
                "calls_remaining": 50,
                "created_at": "2024-01-15T10:00:00Z",
                "expires_at": iso_in(3600),
                "activated_at": "2024-01-15T10:05:00Z",
            }
        )

        activation = client.activate_session("ref-789", "solana-tx-hash")

        assert fake_http.last.url == f"{BASE_URL}/api/v1/sessions/activate"
        assert fake_http.last.method == "POST"
        assert fake_http.last.body == {"reference_id": "ref-789", "tx_hash": "solana-tx-hash"}
        assert activation.id == "session-123"
        assert activation.status == "active"
        assert client.has_active_session() is True
        session = client.get_session()
        assert session.token == "session-token-xyz"
        assert session.reference_id == "ref-789"
        assert session.calls_remaining == 50

    def test_activation_failure(self, client, fake_http):
        fake_http.respond({"error": "Invalid transaction hash"}, status=400)

        with pytest.raises(SestraError, match="Invalid transaction hash") as excinfo:
            client.activate_session("ref-123", "invalid-tx")

        assert excinfo.value.kind is ErrorKind.PAYMENT_VERIFICATION_FAILED
        assert excinfo.value.reference_id == "ref-123"
        assert client.get_session() is None


@pytest.mark.parametrize(
    "call",
    [
        lambda c: c.get_merchant_user(),
        lambda c: c.get_merchant_stats(),
        lambda c: c.get_earnings(),
        lambda c: c.create_policy({"name": "p", "price_lamports": 1}),
    ],
)
def test_empty_body_is_an_error(client, fake_http, call):
    fake_http.respond(None)

    with pytest.raises(SestraError, match="Empty response") as excinfo:
        call(client)

    assert excinfo.value.kind is ErrorKind.API_ERROR


def test_empty_activation_stores_no_session(client, fake_http):
    fake_http.respond({})

    with pytest.raises(SestraError) as excinfo:
        client.activate_session("ref-1", "tx-1")

    assert excinfo.value.kind is ErrorKind.PAYMENT_VERIFICATION_FAILED
    assert client.get_session() is None
