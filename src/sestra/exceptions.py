from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    PAYMENT_CREATION_FAILED = "PAYMENT_CREATION_FAILED"
    PAYMENT_VERIFICATION_FAILED = "PAYMENT_VERIFICATION_FAILED"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    SESSION_ERROR = "SESSION_ERROR"
    NO_SESSION = "NO_SESSION"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    API_ERROR = "API_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    SANDBOX_MODE_ERROR = "SANDBOX_MODE_ERROR"
    WALLET_TRANSACTION_ERROR = "WALLET_TRANSACTION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"


SESSION_KINDS = frozenset(
    {ErrorKind.SESSION_ERROR, ErrorKind.NO_SESSION, ErrorKind.SESSION_EXPIRED}
)

_DEFAULT_STATUS_CODES = {
    ErrorKind.PAYMENT_NOT_FOUND: 404,
    ErrorKind.SESSION_ERROR: 401,
    ErrorKind.NO_SESSION: 401,
    ErrorKind.SESSION_EXPIRED: 401,
    ErrorKind.SANDBOX_MODE_ERROR: 400,
    ErrorKind.VALIDATION_ERROR: 400,
}

NO_SESSION_MESSAGE = "No active session. Call verify_payment() or simulate_payment() first."
SESSION_EXPIRED_MESSAGE = "Session expired or no calls remaining."


class SestraError(Exception):
    """
    Single error type raised by the SDK.

    ``kind`` is the discriminant; the remaining attributes are optional
    context and are ``None`` when they do not apply to the failure.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        *,
        status_code: Optional[int] = None,
        reference_id: Optional[str] = None,
        endpoint: Optional[str] = None,
        response: Any = None,
        tx_hash: Optional[str] = None,
        field: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = ErrorKind(kind)
        self.status_code = (
            status_code if status_code is not None else _DEFAULT_STATUS_CODES.get(self.kind)
        )
        self.reference_id = reference_id
        self.endpoint = endpoint
        self.response = response
        self.tx_hash = tx_hash
        self.field = field
        self.original_error = original_error

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def is_session_error(self) -> bool:
        return self.kind in SESSION_KINDS

    def matches(self, *kinds: ErrorKind) -> bool:
        return self.kind in kinds

    def __repr__(self) -> str:
        return f"SestraError(kind={self.kind.value}, message={self.message!r})"

    # Constructors for the kinds raised from more than one place.

    @classmethod
    def no_session(cls) -> "SestraError":
        return cls(NO_SESSION_MESSAGE, ErrorKind.NO_SESSION)

    @classmethod
    def session_expired(cls) -> "SestraError":
        return cls(SESSION_EXPIRED_MESSAGE, ErrorKind.SESSION_EXPIRED)

    @classmethod
    def not_found(cls, reference_id: str, message: Optional[str] = None) -> "SestraError":
        return cls(
            message or f"Payment not found: {reference_id}",
            ErrorKind.PAYMENT_NOT_FOUND,
            reference_id=reference_id,
        )

    @classmethod
    def validation(cls, message: str, field: Optional[str] = None) -> "SestraError":
        return cls(message, ErrorKind.VALIDATION_ERROR, field=field)


def is_sestra_error(error: object) -> bool:
    return isinstance(error, SestraError)
