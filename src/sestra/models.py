from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

LAMPORTS_PER_SOL = 1_000_000_000


class PaymentStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"
    CANCELLED = "cancelled"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from the gateway. Naive values are UTC.

    Returns ``None`` for empty or unparseable input.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _status(value: Any) -> Optional[PaymentStatus]:
    if value is None:
        return None
    try:
        return PaymentStatus(value)
    except ValueError:
        return None


def _int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    return float(value)


@dataclass
class Session:
    token: str
    reference_id: str
    expires_at: Optional[datetime]
    calls_remaining: int

    def is_active(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        current = now or datetime.now(timezone.utc)
        return self.expires_at > current and self.calls_remaining > 0

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "Session":
        return cls(
            token=payload.get("token") or "",
            reference_id=payload.get("reference_id") or "",
            expires_at=parse_timestamp(payload.get("expires_at")),
            calls_remaining=max(_int(payload.get("calls_remaining")), 0),
        )


@dataclass(frozen=True)
class PaymentDetails:
    recipient_address: str
    amount_lamports: int
    amount_sol: float
    expires_in_seconds: int
    blockchain: str = "solana"
    network: str = "mainnet-beta"
    reference: Optional[str] = None
    memo: Optional[str] = None
    platform_address: Optional[str] = None
    platform_fee_lamports: Optional[int] = None
    developer_amount_lamports: Optional[int] = None
    program_id: Optional[str] = None
    use_smart_contract: bool = False
    is_sandbox: bool = False

    @property
    def payment_memo(self) -> str:
        """The string to attach as the on-chain memo."""
        return self.reference or self.memo or ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PaymentDetails":
        platform_fee = payload.get("platform_fee_lamports")
        developer_amount = payload.get("developer_amount_lamports")
        return cls(
            recipient_address=payload.get("recipient_address", ""),
            amount_lamports=_int(payload.get("amount_lamports")),
            amount_sol=_float(payload.get("amount_sol")),
            expires_in_seconds=_int(payload.get("expires_in_seconds")),
            blockchain=payload.get("blockchain", "solana"),
            network=payload.get("network", "mainnet-beta"),
            reference=payload.get("reference"),
            memo=payload.get("memo"),
            platform_address=payload.get("platform_address"),
            platform_fee_lamports=None if platform_fee is None else int(platform_fee),
            developer_amount_lamports=None if developer_amount is None else int(developer_amount),
            program_id=payload.get("program_id"),
            use_smart_contract=bool(payload.get("use_smart_contract", False)),
            is_sandbox=bool(payload.get("is_sandbox", False)),
        )


@dataclass(frozen=True)
class CreatePaymentResponse:
    success: bool
    reference_id: str
    status: Optional[PaymentStatus]
    payment_details: Optional[PaymentDetails]
    activation_endpoint: Optional[str] = None
    is_sandbox: bool = False
    note: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "CreatePaymentResponse":
        details = payload.get("payment_details")
        return cls(
            success=bool(payload.get("success")),
            reference_id=payload.get("reference_id", ""),
            status=_status(payload.get("status")),
            payment_details=PaymentDetails.from_dict(details) if details else None,
            activation_endpoint=payload.get("activation_endpoint"),
            is_sandbox=bool(payload.get("is_sandbox", False)),
            note=payload.get("note"),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class PaymentStatusResponse:
    reference_id: str
    status: Optional[PaymentStatus]
    amount_lamports: int = 0
    amount_sol: float = 0.0
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    activated_at: Optional[datetime] = None
    calls_used: Optional[int] = None
    calls_remaining: Optional[int] = None
    is_sandbox: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "PaymentStatusResponse":
        calls_used = payload.get("calls_used")
        calls_remaining = payload.get("calls_remaining")
        return cls(
            reference_id=payload.get("reference_id", ""),
            status=_status(payload.get("status")),
            amount_lamports=_int(payload.get("amount_lamports")),
            amount_sol=_float(payload.get("amount_sol")),
            created_at=parse_timestamp(payload.get("created_at")),
            expires_at=parse_timestamp(payload.get("expires_at")),
            activated_at=parse_timestamp(payload.get("activated_at")),
            calls_used=None if calls_used is None else int(calls_used),
            calls_remaining=None if calls_remaining is None else int(calls_remaining),
            is_sandbox=bool(payload.get("is_sandbox", False)),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class VerifyPaymentResponse:
    success: bool
    reference_id: str
    status: Optional[PaymentStatus]
    token: str
    expires_at: Optional[datetime]
    calls_remaining: int
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "VerifyPaymentResponse":
        return cls(
            success=bool(payload.get("success")),
            reference_id=payload.get("reference_id", ""),
            status=_status(payload.get("status")),
            token=payload.get("token") or "",
            expires_at=parse_timestamp(payload.get("expires_at")),
            calls_remaining=_int(payload.get("calls_remaining")),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class SimulatePaymentResponse:
    success: bool
    reference_id: str
    status: Optional[PaymentStatus]
    message: str = ""
    is_sandbox: bool = True
    token: Optional[str] = None
    expires_at: Optional[datetime] = None
    calls_remaining: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "SimulatePaymentResponse":
        calls_remaining = payload.get("calls_remaining")
        return cls(
            success=bool(payload.get("success")),
            reference_id=payload.get("reference_id", ""),
            status=_status(payload.get("status")),
            message=payload.get("message", ""),
            is_sandbox=bool(payload.get("is_sandbox", True)),
            token=payload.get("token"),
            expires_at=parse_timestamp(payload.get("expires_at")),
            calls_remaining=None if calls_remaining is None else int(calls_remaining),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class CancelPaymentResponse:
    success: bool
    reference_id: str
    status: Optional[PaymentStatus]
    message: str = ""
    is_sandbox: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "CancelPaymentResponse":
        return cls(
            success=bool(payload.get("success")),
            reference_id=payload.get("reference_id", ""),
            status=_status(payload.get("status")),
            message=payload.get("message", ""),
            is_sandbox=bool(payload.get("is_sandbox", False)),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class SessionActivateResponse:
    id: str
    token: str
    status: str
    policy_id: str
    reference_id: str
    calls_used: int
    calls_remaining: int
    created_at: Optional[datetime]
    expires_at: Optional[datetime]
    activated_at: Optional[datetime] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_response(cls, payload: Mapping[str, Any]) -> "SessionActivateResponse":
        return cls(
            id=payload.get("id", ""),
            token=payload.get("token") or "",
            status=payload.get("status", ""),
            policy_id=payload.get("policy_id", ""),
            reference_id=payload.get("reference_id", ""),
            calls_used=_int(payload.get("calls_used")),
            calls_remaining=_int(payload.get("calls_remaining")),
            created_at=parse_timestamp(payload.get("created_at")),
            expires_at=parse_timestamp(payload.get("expires_at")),
            activated_at=parse_timestamp(payload.get("activated_at")),
            raw=dict(payload),
        )


# Merchant API --------------------------------------------------------------


@dataclass(frozen=True)
class Policy:
    id: str
    name: str
    endpoint_pattern: str
    ttl_seconds: int
    max_calls: int
    required_amount_lamports: int
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Policy":
        return cls(
            id=payload.get("id", ""),
            name=payload.get("name", ""),
            endpoint_pattern=payload.get("endpoint_pattern", ""),
            ttl_seconds=_int(payload.get("ttl_seconds")),
            max_calls=_int(payload.get("max_calls")),
            required_amount_lamports=_int(payload.get("required_amount_lamports")),
            is_active=bool(payload.get("is_active", True)),
            created_at=parse_timestamp(payload.get("created_at")),
            updated_at=parse_timestamp(payload.get("updated_at")),
        )


@dataclass(frozen=True)
class CreatePolicyRequest:
    name: str
    endpoint_pattern: str
    ttl_seconds: int
    max_calls: int
    required_amount_lamports: int

    def as_payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "endpoint_pattern": self.endpoint_pattern,
            "ttl_seconds": self.ttl_seconds,
            "max_calls": self.max_calls,
            "required_amount_lamports": self.required_amount_lamports,
        }


@dataclass(frozen=True)
class MerchantUser:
    id: str
    email: str
    created_at: Optional[datetime]
    wallet_address: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MerchantUser":
        return cls(
            id=payload.get("id", ""),
            email=payload.get("email", ""),
            created_at=parse_timestamp(payload.get("created_at")),
            wallet_address=payload.get("wallet_address"),
        )


@dataclass(frozen=True)
class MerchantStats:
    total_payments: int
    active_sessions: int
    total_revenue_lamports: int
    total_revenue_sol: float

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MerchantStats":
        return cls(
            total_payments=_int(payload.get("total_payments")),
            active_sessions=_int(payload.get("active_sessions")),
            total_revenue_lamports=_int(payload.get("total_revenue_lamports")),
            total_revenue_sol=_float(payload.get("total_revenue_sol")),
        )


@dataclass(frozen=True)
class MerchantTransaction:
    id: str
    reference_id: str
    type: str
    amount_lamports: int
    amount_sol: float
    status: str
    created_at: Optional[datetime]
    tx_hash: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MerchantTransaction":
        return cls(
            id=payload.get("id", ""),
            reference_id=payload.get("reference_id", ""),
            type=payload.get("type", ""),
            amount_lamports=_int(payload.get("amount_lamports")),
            amount_sol=_float(payload.get("amount_sol")),
            status=payload.get("status", ""),
            created_at=parse_timestamp(payload.get("created_at")),
            tx_hash=payload.get("tx_hash"),
        )


@dataclass(frozen=True)
class DailyEarnings:
    date: str
    amount_lamports: int
    amount_sol: float
    count: int


@dataclass(frozen=True)
class Earnings:
    period_days: int
    total_lamports: int
    total_sol: float
    transaction_count: int
    daily_breakdown: List[DailyEarnings] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Earnings":
        breakdown = [
            DailyEarnings(
                date=day.get("date", ""),
                amount_lamports=_int(day.get("amount_lamports")),
                amount_sol=_float(day.get("amount_sol")),
                count=_int(day.get("count")),
            )
            for day in payload.get("daily_breakdown") or []
        ]
        return cls(
            period_days=_int(payload.get("period_days")),
            total_lamports=_int(payload.get("total_lamports")),
            total_sol=_float(payload.get("total_sol")),
            transaction_count=_int(payload.get("transaction_count")),
            daily_breakdown=breakdown,
        )


# Wallet ------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentParams:
    recipient_address: str
    amount_lamports: int
    memo: str

    @classmethod
    def from_details(cls, details: "PaymentDetails") -> "PaymentParams":
        return cls(
            recipient_address=details.recipient_address,
            amount_lamports=details.amount_lamports,
            memo=details.payment_memo,
        )


@dataclass(frozen=True)
class PaymentResult:
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.tx_hash is None) == (self.error is None):
            raise ValueError("PaymentResult needs exactly one of tx_hash or error.")

    @property
    def success(self) -> bool:
        return self.tx_hash is not None

    @classmethod
    def succeeded(cls, tx_hash: str) -> "PaymentResult":
        return cls(tx_hash=tx_hash)

    @classmethod
    def failed(cls, error: str) -> "PaymentResult":
        return cls(error=error)
