import logging
import time
from typing import Mapping, Optional, Union

from solana.rpc.api import Client as SolanaClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus
from spl.memo.constants import MEMO_PROGRAM_ID
from spl.memo.instructions import MemoParams, create_memo

from .config import DEFAULT_SOLANA_RPC_ENDPOINT
from .exceptions import ErrorKind, SestraError
from .models import LAMPORTS_PER_SOL, PaymentDetails, PaymentParams, PaymentResult

logger = logging.getLogger(__name__)

DEVNET = "devnet"
MAINNET = "mainnet-beta"
CONFIRMATION_POLL_INTERVAL_SEC = 1.0

_CONFIRMED_STATUSES = (
    TransactionConfirmationStatus.Confirmed,
    TransactionConfirmationStatus.Finalized,
)


def parse_pubkey(address: Union[str, Pubkey], field: str = "address") -> Pubkey:
    if isinstance(address, Pubkey):
        return address
    try:
        return Pubkey.from_string(address)
    except (ValueError, TypeError) as exc:
        raise SestraError.validation(f"Invalid Solana address: {address}", field=field) from exc


def _parse_signature(tx_hash: str) -> Signature:
    try:
        return Signature.from_string(tx_hash)
    except (ValueError, TypeError) as exc:
        raise SestraError.validation(
            f"Invalid transaction signature: {tx_hash}", field="tx_hash"
        ) from exc


def _as_details(details: Union[PaymentDetails, Mapping]) -> PaymentDetails:
    if isinstance(details, PaymentDetails):
        return details
    return PaymentDetails.from_dict(details)


class SestraWallet:
    """
    Builds and submits SOL transfer + memo transactions for gateway payments.
    """

    def __init__(
        self,
        rpc_endpoint: str = DEFAULT_SOLANA_RPC_ENDPOINT,
        *,
        client: Optional[SolanaClient] = None,
    ) -> None:
        self._rpc_endpoint = rpc_endpoint
        self._client = client or SolanaClient(rpc_endpoint, commitment=Confirmed)
        self._network = DEVNET if DEVNET in rpc_endpoint else MAINNET

    @property
    def network(self) -> str:
        return self._network

    @property
    def rpc_endpoint(self) -> str:
        return self._rpc_endpoint

    def create_payment_transaction(
        self, payer: Union[str, Pubkey], params: PaymentParams
    ) -> Transaction:
        """
        Build an unsigned transaction for a browser or hardware wallet to sign.

        The transaction holds exactly two instructions: the system transfer
        followed by a memo signed by the payer. The recent blockhash is fetched
        last, after all inputs have been validated.
        """
        message = self._build_message(payer, params)
        return Transaction.new_unsigned(message)

    def create_payment_from_details(
        self, payer: Union[str, Pubkey], details: Union[PaymentDetails, Mapping]
    ) -> Transaction:
        return self.create_payment_transaction(
            payer, PaymentParams.from_details(_as_details(details))
        )

    def send_payment(self, keypair: Keypair, params: PaymentParams) -> PaymentResult:
        """
        Sign and submit the payment, waiting until the RPC node confirms it.

        Failures are reported through the returned :class:`PaymentResult`.
        """
        try:
            message = self._build_message(keypair.pubkey(), params)
            transaction = Transaction([keypair], message, message.recent_blockhash)
            try:
                response = self._client.send_transaction(
                    transaction,
                    opts=TxOpts(skip_confirmation=False, preflight_commitment=Confirmed),
                )
            except Exception as exc:
                raise SestraError(
                    f"Failed to submit transaction to Solana RPC: {exc}",
                    ErrorKind.WALLET_TRANSACTION_ERROR,
                    tx_hash=str(transaction.signatures[0]),
                    original_error=exc,
                ) from exc

            signature = response.value
            if not signature:
                raise SestraError(
                    "Solana RPC did not return a transaction signature.",
                    ErrorKind.WALLET_TRANSACTION_ERROR,
                )
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning(
                "Payment to %s failed: %s", getattr(params, "recipient_address", None), exc
            )
            return PaymentResult.failed(str(exc) or "Payment failed")

        tx_hash = str(signature)
        logger.info(
            "Submitted payment signature=%s destination=%s lamports=%s memo=%s",
            tx_hash,
            params.recipient_address,
            params.amount_lamports,
            params.memo,
        )
        return PaymentResult.succeeded(tx_hash)

    def send_payment_from_details(
        self, keypair: Keypair, details: Union[PaymentDetails, Mapping]
    ) -> PaymentResult:
        try:
            params = PaymentParams.from_details(_as_details(details))
        except (TypeError, ValueError) as exc:
            return PaymentResult.failed(f"Invalid payment details: {exc}")
        return self.send_payment(keypair, params)

    def get_balance(self, address: Union[str, Pubkey]) -> int:
        pubkey = parse_pubkey(address)
        return self._client.get_balance(pubkey).value

    def get_balance_sol(self, address: Union[str, Pubkey]) -> float:
        return self.get_balance(address) / LAMPORTS_PER_SOL

    def wait_for_confirmation(self, tx_hash: str, timeout_ms: int = 30000) -> bool:
        deadline = time.monotonic() + timeout_ms / 1000.0
        attempt = 0
        while time.monotonic() < deadline:
            attempt += 1
            if self.is_transaction_confirmed(tx_hash):
                return True
            logger.debug("Waiting for signature %s (attempt %d)", tx_hash, attempt)
            time.sleep(CONFIRMATION_POLL_INTERVAL_SEC)

        logger.info("Signature %s not confirmed within %sms", tx_hash, timeout_ms)
        return False

    def is_transaction_confirmed(self, tx_hash: str) -> bool:
        try:
            return self._status_confirmed(_parse_signature(tx_hash))
        except Exception as exc:  # pylint: disable=broad-except
            logger.debug("Status lookup for %s failed: %s", tx_hash, exc)
            return False

    # Internal helpers -----------------------------------------------------

    def _status_confirmed(self, signature: Signature) -> bool:
        statuses = self._client.get_signature_statuses([signature]).value
        status = statuses[0] if statuses else None
        if status is None:
            return False
        return status.confirmation_status in _CONFIRMED_STATUSES

    def _build_message(self, payer: Union[str, Pubkey], params: PaymentParams) -> Message:
        payer_pubkey = parse_pubkey(payer, field="payer")
        recipient = parse_pubkey(params.recipient_address, field="recipient_address")
        if isinstance(params.amount_lamports, bool) or not isinstance(params.amount_lamports, int):
            raise SestraError.validation(
                "Transfer amount must be an integer number of lamports.", field="amount_lamports"
            )
        if params.amount_lamports <= 0:
            raise SestraError.validation(
                "Transfer amount must be positive.", field="amount_lamports"
            )
        if not isinstance(params.memo, str):
            raise SestraError.validation("Memo must be a string.", field="memo")

        instructions = [
            transfer(
                TransferParams(
                    from_pubkey=payer_pubkey,
                    to_pubkey=recipient,
                    lamports=params.amount_lamports,
                )
            ),
            create_memo(
                MemoParams(
                    program_id=MEMO_PROGRAM_ID,
                    signer=payer_pubkey,
                    message=params.memo.encode("utf-8"),
                )
            ),
        ]

        try:
            blockhash_resp = self._client.get_latest_blockhash(commitment=Confirmed)
            recent_blockhash = blockhash_resp.value.blockhash
        except Exception as exc:
            raise SestraError(
                f"Failed to fetch recent blockhash: {exc}",
                ErrorKind.WALLET_TRANSACTION_ERROR,
                original_error=exc,
            ) from exc

        if not isinstance(recent_blockhash, Hash):
            try:
                recent_blockhash = Hash.from_string(str(recent_blockhash))
            except ValueError as exc:
                raise SestraError(
                    "Invalid blockhash value from RPC.",
                    ErrorKind.WALLET_TRANSACTION_ERROR,
                    original_error=exc,
                ) from exc

        return Message.new_with_blockhash(instructions, payer_pubkey, recent_blockhash)
