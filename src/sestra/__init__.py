"""
Python SDK for the Sestra payment gateway and Solana payment transactions.
"""

from .client import SestraClient  # noqa: F401
from .config import SestraConfig, load_config  # noqa: F401
from .exceptions import ErrorKind, SESSION_KINDS, SestraError, is_sestra_error  # noqa: F401
from .key_manager import KeyManager  # noqa: F401
from .models import (  # noqa: F401
    CancelPaymentResponse,
    CreatePaymentResponse,
    CreatePolicyRequest,
    DailyEarnings,
    Earnings,
    LAMPORTS_PER_SOL,
    MerchantStats,
    MerchantTransaction,
    MerchantUser,
    PaymentDetails,
    PaymentParams,
    PaymentResult,
    PaymentStatus,
    PaymentStatusResponse,
    Policy,
    Session,
    SessionActivateResponse,
    SimulatePaymentResponse,
    VerifyPaymentResponse,
)
from .wallet import SestraWallet  # noqa: F401
