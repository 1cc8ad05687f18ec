import getpass
import json
import os
from typing import Optional, Sequence

import base58
from nacl import exceptions as nacl_exceptions
from nacl.signing import SigningKey
from solders.keypair import Keypair

from .exceptions import SestraError


def _decode_base58_secret(secret_b58: str) -> bytes:
    try:
        return base58.b58decode(secret_b58)
    except ValueError as exc:
        raise SestraError.validation(
            "Private key is not valid base58.", field="private_key"
        ) from exc


def _keypair_from_secret(secret: bytes) -> Keypair:
    if len(secret) not in (32, 64):
        raise SestraError.validation(
            "Unsupported private key length. Expected 32 or 64 bytes.", field="private_key"
        )

    seed = secret[:32]
    try:
        signing_key = SigningKey(seed)
    except nacl_exceptions.CryptoError as exc:
        raise SestraError.validation(
            "Failed to construct signing key from provided secret.", field="private_key"
        ) from exc

    if len(secret) == 64 and bytes(signing_key.verify_key) != secret[32:]:
        raise SestraError.validation(
            "Public half of the secret key does not match its seed.", field="private_key"
        )

    return Keypair.from_seed(seed)


class KeyManager:
    """
    Loads the payer keypair used by :meth:`SestraWallet.send_payment`.
    """

    def __init__(self) -> None:
        self._keypair: Optional[Keypair] = None

    def load_from_prompt(self) -> Keypair:
        secret_input = getpass.getpass(
            prompt="Enter Solana private key (base58, kept only in RAM): "
        ).strip()
        if not secret_input:
            raise SestraError.validation("Private key input is empty.", field="private_key")
        return self.load_from_base58(secret_input)

    def load_from_base58(self, secret_b58: str) -> Keypair:
        return self._store(_keypair_from_secret(_decode_base58_secret(secret_b58.strip())))

    def load_from_bytes(self, secret: Sequence[int]) -> Keypair:
        return self._store(_keypair_from_secret(bytes(secret)))

    def load_from_file(self, path: str) -> Keypair:
        """Read a Solana CLI key file (a JSON array of byte values)."""
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Key file does not exist: {path}")
        with open(path, "r", encoding="utf-8") as key_fh:
            raw = json.load(key_fh)
        if not isinstance(raw, list) or not all(isinstance(item, int) for item in raw):
            raise SestraError.validation(
                f"Key file {path} must contain a JSON array of integers.", field="private_key"
            )
        return self.load_from_bytes(raw)

    @property
    def keypair(self) -> Keypair:
        if self._keypair is None:
            raise RuntimeError("Private key has not been loaded.")
        return self._keypair

    def _store(self, keypair: Keypair) -> Keypair:
        self._keypair = keypair
        return keypair

