import logging
from typing import Any, Callable, Dict, List, Mapping, NoReturn, Optional, TypeVar, Union
from urllib.parse import quote, urlencode

from .config import SestraConfig, resolve_config
from .exceptions import ErrorKind, SestraError
from .models import (
    CancelPaymentResponse,
    CreatePaymentResponse,
    CreatePolicyRequest,
    Earnings,
    MerchantStats,
    MerchantTransaction,
    MerchantUser,
    PaymentStatus,
    PaymentStatusResponse,
    Policy,
    Session,
    SessionActivateResponse,
    SimulatePaymentResponse,
    VerifyPaymentResponse,
    format_timestamp,
)
from .transport import ApiResponse, HttpTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")

SESSION_TOKEN_HEADER = "X-Session-Token"
API_KEY_HEADER = "X-API-Key"

PAYMENTS_PATHS = {
    True: "/api/v1/sandbox/payments",
    False: "/api/v1/payments",
}
MERCHANT_PATH = "/api/v1/public"
SESSION_ACTIVATE_PATH = "/api/v1/sessions/activate"


def payments_path(
    sandbox: bool, reference_id: Optional[str] = None, action: Optional[str] = None
) -> str:
    path = PAYMENTS_PATHS[bool(sandbox)]
    if reference_id is not None:
        path = f"{path}/{quote(reference_id, safe='')}"
    if action is not None:
        path = f"{path}/{action}"
    return path


def _with_query(path: str, params: Mapping[str, Any]) -> str:
    query = urlencode({key: value for key, value in params.items() if value is not None})
    return f"{path}?{query}" if query else path


class SestraClient:
    """
    Client for the Sestra payment gateway.

    Holds at most one :class:`Session`; a successful verification,
    simulation or activation replaces it.
    """

    def __init__(
        self,
        config: Union[SestraConfig, Mapping[str, Any], None] = None,
        *,
        transport: Optional[HttpTransport] = None,
        **overrides: Any,
    ) -> None:
        self._config = resolve_config(config, **overrides)
        self._transport = transport or HttpTransport(timeout=self._config.timeout)
        self._session: Optional[Session] = None

    @property
    def config(self) -> SestraConfig:
        return self._config

    @property
    def sandbox(self) -> bool:
        return self._config.sandbox

    # Session management ---------------------------------------------------

    def set_session(self, session: Session) -> None:
        self._session = session
        logger.info(
            "Stored session reference=%s calls_remaining=%s expires_at=%s",
            session.reference_id,
            session.calls_remaining,
            format_timestamp(session.expires_at),
        )

    def get_session(self) -> Optional[Session]:
        return self._session

    def clear_session(self) -> None:
        if self._session is not None:
            logger.info("Cleared session reference=%s", self._session.reference_id)
        self._session = None

    def has_active_session(self) -> bool:
        return self._session is not None and self._session.is_active()

    # Payment lifecycle ----------------------------------------------------

    def create_payment(
        self, policy_id: str, metadata: Optional[Mapping[str, Any]] = None
    ) -> CreatePaymentResponse:
        body: Dict[str, Any] = {"policy_id": policy_id}
        if metadata is not None:
            body["metadata"] = dict(metadata)

        endpoint = payments_path(self.sandbox)
        response = self._gateway(endpoint, "POST", body)
        if not response.ok or not response.data:
            self._raise(
                response,
                endpoint,
                ErrorKind.PAYMENT_CREATION_FAILED,
                "Failed to create payment",
            )

        payment = CreatePaymentResponse.from_response(response.data)
        logger.info(
            "Created payment reference=%s policy=%s sandbox=%s",
            payment.reference_id,
            policy_id,
            self.sandbox,
        )
        return payment

    def get_payment_status(self, reference_id: str) -> PaymentStatusResponse:
        endpoint = payments_path(self.sandbox, reference_id)
        response = self._gateway(endpoint)
        if not response.ok:
            self._raise(
                response,
                endpoint,
                ErrorKind.API_ERROR,
                "Payment not found",
                reference_id=reference_id,
            )
        if not response.data:
            raise SestraError.not_found(reference_id, "Payment not found")
        return PaymentStatusResponse.from_response(response.data)

    def verify_payment(self, reference_id: str, tx_hash: str) -> VerifyPaymentResponse:
        if self.sandbox:
            raise SestraError(
                "Use simulate_payment() for sandbox mode", ErrorKind.SANDBOX_MODE_ERROR
            )

        endpoint = payments_path(False, reference_id, "verify")
        response = self._gateway(endpoint, "POST", {"tx_hash": tx_hash})
        if not response.ok or not response.data:
            self._raise(
                response,
                endpoint,
                ErrorKind.PAYMENT_VERIFICATION_FAILED,
                "Payment verification failed",
                reference_id=reference_id,
            )

        verification = VerifyPaymentResponse.from_response(response.data)
        self.set_session(Session.from_response(response.data))
        return verification

    def simulate_payment(self, reference_id: str, success: bool = True) -> SimulatePaymentResponse:
        if not self.sandbox:
            raise SestraError(
                "simulate_payment() only works in sandbox mode. Set sandbox=True in config.",
                ErrorKind.SANDBOX_MODE_ERROR,
            )

        endpoint = payments_path(True, reference_id, "simulate")
        response = self._gateway(endpoint, "POST", {"success": success})
        if not response.ok or not response.data:
            self._raise(
                response,
                endpoint,
                ErrorKind.PAYMENT_VERIFICATION_FAILED,
                "Payment simulation failed",
                reference_id=reference_id,
            )

        simulation = SimulatePaymentResponse.from_response(response.data)
        if simulation.success and simulation.token:
            self.set_session(Session.from_response(response.data))
        else:
            logger.info(
                "Simulation for reference=%s did not succeed; session unchanged", reference_id
            )
        return simulation

    def cancel_payment(self, reference_id: str) -> CancelPaymentResponse:
        endpoint = payments_path(self.sandbox, reference_id, "cancel")
        response = self._gateway(endpoint, "POST")
        if not response.ok or not response.data:
            self._raise(
                response,
                endpoint,
                ErrorKind.API_ERROR,
                "Failed to cancel payment",
                reference_id=reference_id,
            )

        cancellation = CancelPaymentResponse.from_response(response.data)
        logger.info("Cancelled payment reference=%s", reference_id)
        return cancellation

    def list_payments(
        self,
        status: Union[PaymentStatus, str, None] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[PaymentStatusResponse]:
        if isinstance(status, PaymentStatus):
            status = status.value
        endpoint = _with_query(
            payments_path(self.sandbox),
            {"status": status or None, "limit": limit or None, "offset": offset or None},
        )
        response = self._gateway(endpoint)
        if not response.ok:
            logger.warning("Listing payments failed endpoint=%s: %s", endpoint, response.error)
            return []
        return _as_list(response.data, PaymentStatusResponse.from_response)

    # Protected API access -------------------------------------------------

    def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        if self._session is None or not self._session.token:
            raise SestraError.no_session()
        if not self._session.is_active():
            raise SestraError.session_expired()

        session = self._session
        merged_headers = dict(headers or {})
        merged_headers[SESSION_TOKEN_HEADER] = session.token

        response = self._transport.request(
            f"{self._config.service_url}{endpoint}", method, body, merged_headers
        )
        if not response.ok:
            self._raise(response, endpoint, ErrorKind.API_ERROR, "Request failed")

        session.calls_remaining -= 1
        logger.debug(
            "Protected call endpoint=%s reference=%s calls_remaining=%s",
            endpoint,
            session.reference_id,
            session.calls_remaining,
        )
        return response.data

    # Merchant API ---------------------------------------------------------

    def get_merchant_user(self) -> MerchantUser:
        data = self._merchant(f"{MERCHANT_PATH}/me", required=True)
        return MerchantUser.from_dict(data)

    def get_merchant_stats(self) -> MerchantStats:
        data = self._merchant(f"{MERCHANT_PATH}/stats", required=True)
        return MerchantStats.from_dict(data)

    def list_policies(self) -> List[Policy]:
        data = self._merchant(f"{MERCHANT_PATH}/policies")
        return _as_list(data, Policy.from_dict)

    def create_policy(self, policy: Union[CreatePolicyRequest, Mapping[str, Any]]) -> Policy:
        body = policy.as_payload() if isinstance(policy, CreatePolicyRequest) else dict(policy)
        data = self._merchant(f"{MERCHANT_PATH}/policies", "POST", body, required=True)
        created = Policy.from_dict(data)
        logger.info("Created policy id=%s name=%s", created.id, created.name)
        return created

    def delete_policy(self, policy_id: str) -> None:
        self._merchant(f"{MERCHANT_PATH}/policies/{quote(policy_id, safe='')}", "DELETE")
        logger.info("Deleted policy id=%s", policy_id)

    def get_transactions(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        type: Optional[str] = None,  # noqa: A002
    ) -> List[MerchantTransaction]:
        endpoint = _with_query(
            f"{MERCHANT_PATH}/transactions",
            {"limit": limit, "offset": offset, "type": type},
        )
        data = self._merchant(endpoint)
        return _as_list(data, MerchantTransaction.from_dict)

    def get_earnings(self, days: int = 7) -> Earnings:
        data = self._merchant(
            _with_query(f"{MERCHANT_PATH}/earnings", {"days": days}), required=True
        )
        return Earnings.from_dict(data)

    def activate_session(self, reference_id: str, tx_hash: str) -> SessionActivateResponse:
        data = self._merchant(
            SESSION_ACTIVATE_PATH,
            "POST",
            {"reference_id": reference_id, "tx_hash": tx_hash},
            kind=ErrorKind.PAYMENT_VERIFICATION_FAILED,
            reference_id=reference_id,
            required=True,
        )
        activation = SessionActivateResponse.from_response(data)
        self.set_session(Session.from_response(data))
        return activation

    # Internal helpers -----------------------------------------------------

    def _gateway(self, endpoint: str, method: str = "GET", body: Any = None) -> ApiResponse:
        return self._transport.request(f"{self._config.gateway_url}{endpoint}", method, body)

    def _merchant(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        *,
        kind: ErrorKind = ErrorKind.API_ERROR,
        reference_id: Optional[str] = None,
        required: bool = False,
    ) -> Any:
        if not self._config.api_key:
            raise SestraError.validation("API Key is required for Merchant API", field="api_key")

        response = self._transport.request(
            f"{self._config.gateway_url}{endpoint}",
            method,
            body,
            {API_KEY_HEADER: self._config.api_key},
        )
        if not response.ok:
            self._raise(response, endpoint, kind, "Request failed", reference_id=reference_id)
        if required and not response.data:
            self._raise(response, endpoint, kind, "Empty response", reference_id=reference_id)
        return response.data

    @staticmethod
    def _raise(
        response: ApiResponse,
        endpoint: str,
        kind: ErrorKind,
        default_message: str,
        reference_id: Optional[str] = None,
    ) -> NoReturn:
        message = response.error or default_message
        if response.network_failure:
            raise SestraError(
                message,
                ErrorKind.NETWORK_ERROR,
                endpoint=endpoint,
                reference_id=reference_id,
                original_error=response.exception,
            ) from response.exception
        if response.status_code == 404 and reference_id is not None:
            kind = ErrorKind.PAYMENT_NOT_FOUND
        raise SestraError(
            message,
            kind,
            status_code=response.status_code,
            endpoint=endpoint,
            reference_id=reference_id,
            response=response.body,
        )


def _as_list(data: Any, factory: Callable[[Mapping[str, Any]], T]) -> List[T]:
    if not data:
        return []
    return [factory(item) for item in data]
