#!/usr/bin/env python3
import argparse
import logging
import sys
from typing import Optional, Sequence

from sestra import (
    KeyManager,
    SestraClient,
    SestraConfig,
    SestraError,
    SestraWallet,
    load_config,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("sestra_demo")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sestra-demo",
        description="Run one Sestra payment flow end to end",
    )
    parser.add_argument("policy_id", help="Policy the payment is created for")
    parser.add_argument("--config", help="JSON file with SestraConfig values")
    parser.add_argument(
        "--protected-endpoint",
        default=None,
        help="Path on the service to call once a session is active",
    )
    parser.add_argument(
        "--key-file",
        default=None,
        help="Solana CLI key file for live payments (prompted when omitted)",
    )
    parser.add_argument(
        "--confirm-timeout-ms",
        type=int,
        default=30000,
        help="How long to wait for on-chain confirmation (default: 30000)",
    )
    parser.add_argument("--sandbox", action="store_true", help="Force sandbox mode")
    return parser


def _sandbox_flow(client: SestraClient, policy_id: str) -> None:
    payment = client.create_payment(policy_id)
    logger.info("Created sandbox payment reference=%s", payment.reference_id)

    result = client.simulate_payment(payment.reference_id, success=True)
    logger.info("Simulation status=%s message=%s", result.status, result.message)


def _live_flow(
    client: SestraClient, policy_id: str, key_file: Optional[str], timeout_ms: int
) -> bool:
    key_manager = KeyManager()
    keypair = key_manager.load_from_file(key_file) if key_file else key_manager.load_from_prompt()
    wallet = SestraWallet(client.config.solana_rpc_endpoint)
    logger.info("Paying from %s on %s", keypair.pubkey(), wallet.network)

    payment = client.create_payment(policy_id)
    if payment.payment_details is None:
        logger.error("Gateway returned no payment details for %s", payment.reference_id)
        return False

    details = payment.payment_details
    logger.info(
        "Payment reference=%s amount=%s SOL recipient=%s",
        payment.reference_id,
        details.amount_sol,
        details.recipient_address,
    )

    result = wallet.send_payment_from_details(keypair, details)
    if not result.success:
        logger.error("Payment failed: %s", result.error)
        return False

    if not wallet.wait_for_confirmation(result.tx_hash, timeout_ms):
        logger.error("Transaction %s not confirmed in time", result.tx_hash)
        return False

    verification = client.verify_payment(payment.reference_id, result.tx_hash)
    logger.info(
        "Verified payment reference=%s calls_remaining=%s",
        verification.reference_id,
        verification.calls_remaining,
    )
    return True


def run(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config) if args.config else SestraConfig()
    client = SestraClient(config, sandbox=True if args.sandbox else None)

    if client.sandbox:
        _sandbox_flow(client, args.policy_id)
    elif not _live_flow(client, args.policy_id, args.key_file, args.confirm_timeout_ms):
        return 1

    if not client.has_active_session():
        logger.error("No active session after payment")
        return 1

    if args.protected_endpoint:
        data = client.request(args.protected_endpoint)
        logger.info("Protected response: %s", data)

    session = client.get_session()
    logger.info("Session calls remaining: %s", session.calls_remaining if session else 0)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(run())
    except SestraError as exc:
        logger.error("Sestra error [%s]: %s", exc.code, exc)
        sys.exit(2)
