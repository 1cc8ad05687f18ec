"""Loading payer keypairs."""

import json

import base58
import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from sestra import ErrorKind, KeyManager, SestraError


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


def test_load_from_base58_secret(keypair):
    loaded = KeyManager().load_from_base58(str(keypair))

    assert loaded.pubkey() == keypair.pubkey()


def test_load_from_base58_seed(keypair):
    seed = bytes(keypair)[:32]

    loaded = KeyManager().load_from_base58(str(Pubkey(seed)))

    assert loaded.pubkey() == keypair.pubkey()


def test_load_from_file(tmp_path, keypair):
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(keypair))))

    manager = KeyManager()
    loaded = manager.load_from_file(str(path))

    assert loaded.pubkey() == keypair.pubkey()
    assert manager.keypair.pubkey() == keypair.pubkey()


def test_mismatched_public_half(keypair):
    secret = bytes(keypair)[:32] + bytes(Keypair().pubkey())

    with pytest.raises(SestraError, match="does not match") as excinfo:
        KeyManager().load_from_bytes(secret)

    assert excinfo.value.kind is ErrorKind.VALIDATION_ERROR


def test_wrong_length():
    with pytest.raises(SestraError, match="Unsupported private key length"):
        KeyManager().load_from_bytes(bytes(16))


def test_base58_of_wrong_length():
    encoded = base58.b58encode(bytes(range(16))).decode("ascii")

    with pytest.raises(SestraError, match="Unsupported private key length"):
        KeyManager().load_from_base58(encoded)


def test_invalid_base58():
    with pytest.raises(SestraError, match="not valid base58"):
        KeyManager().load_from_base58("0OIl-not-base58")


def test_key_file_must_be_int_array(tmp_path):
    path = tmp_path / "id.json"
    path.write_text(json.dumps({"secret": "x"}))

    with pytest.raises(SestraError):
        KeyManager().load_from_file(str(path))


def test_prompt(monkeypatch, keypair):
    monkeypatch.setattr("getpass.getpass", lambda prompt="": f"  {keypair}  ")

    assert KeyManager().load_from_prompt().pubkey() == keypair.pubkey()


def test_empty_prompt(monkeypatch):
    monkeypatch.setattr("getpass.getpass", lambda prompt="": "")

    with pytest.raises(SestraError, match="empty"):
        KeyManager().load_from_prompt()


def test_keypair_before_load():
    with pytest.raises(RuntimeError):
        KeyManager().keypair
