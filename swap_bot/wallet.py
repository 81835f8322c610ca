"""
Wallet Module
=============
Loads wallet secrets and derives short-lived signing handles.

- Plaintext key list: one private key per line, '#' comments allowed
- Optional encrypted key list: PBKDF2-HMAC-SHA256 + Fernet, unique salt
- WalletHandle objects are built per swap and never cached
"""

import os
import json
import base64
import getpass
import secrets
from pathlib import Path
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from eth_account import Account
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import KeySettings
from .utils import KeysError


def validate_private_key(key: str) -> bool:
    """Validate private key format."""
    if not key:
        return False

    key_clean = key[2:] if key.startswith("0x") else key

    if len(key_clean) != 64:
        return False

    try:
        int(key_clean, 16)
        return True
    except ValueError:
        return False


def parse_private_keys(content: str) -> List[str]:
    """Split a key list into keys, dropping blank lines and '#' comments."""
    keys = []
    for line_number, raw in enumerate(content.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if not validate_private_key(line):
            raise KeysError(f"Invalid private key format on line {line_number}")
        keys.append(line)
    return keys


def load_private_keys(key_file: str = "pk.txt") -> List[str]:
    """
    Load private keys from a plaintext file.

    Raises:
        KeysError: If the file is missing, unreadable or holds no keys
    """
    path = Path(key_file)
    if not path.exists():
        raise KeysError(
            f"Private key file ({path}) not found. Please create it with one private key per line."
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise KeysError(f"Error loading private keys: {e}") from e

    keys = parse_private_keys(content)
    if not keys:
        raise KeysError(f"No private keys found in {path}. Please add at least one private key.")
    return keys


class SecureKeyManager:
    """
    Encrypts and decrypts a list of private keys.

    Uses PBKDF2-HMAC-SHA256 with 600,000 iterations for key derivation,
    and Fernet (AES-128-CBC) for encryption.
    """

    ITERATIONS = 600_000

    def __init__(self, key_file: str):
        self.key_file = Path(key_file)

    def _derive_key(self, password: str, salt: bytes, iterations: int) -> bytes:
        """Derive a Fernet key from the password."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    def exists(self) -> bool:
        return self.key_file.exists()

    def encrypt_and_save(self, private_keys: List[str], password: str):
        """Encrypt the key list and write it with owner-only permissions."""
        if not private_keys:
            raise KeysError("Refusing to save an empty key list")
        for key in private_keys:
            if not validate_private_key(key):
                raise KeysError("Invalid private key format")

        salt = secrets.token_bytes(16)
        f = Fernet(self._derive_key(password, salt, self.ITERATIONS))
        encrypted = f.encrypt("\n".join(private_keys).encode())

        data = {
            "salt": base64.b64encode(salt).decode(),
            "encrypted_keys": encrypted.decode(),
            "version": 1,
            "created": datetime.now().isoformat(),
            "iterations": self.ITERATIONS,
        }

        self.key_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.key_file, "w") as fh:
            json.dump(data, fh)

        os.chmod(self.key_file, 0o600)

    def load_and_decrypt(self, password: str) -> List[str]:
        """
        Load and decrypt the key list.

        Raises:
            KeysError: If the file is missing, malformed, or the password is wrong
        """
        if not self.key_file.exists():
            raise KeysError(f"Encrypted key file not found: {self.key_file}")

        try:
            with open(self.key_file, "r") as fh:
                data = json.load(fh)
            salt = base64.b64decode(data["salt"])
            encrypted = data["encrypted_keys"].encode()
            iterations = int(data.get("iterations", self.ITERATIONS))
        except (OSError, ValueError, KeyError) as e:
            raise KeysError(f"Malformed encrypted key file {self.key_file}: {e}") from e

        try:
            decrypted = Fernet(self._derive_key(password, salt, iterations)).decrypt(encrypted)
        except InvalidToken as e:
            raise KeysError("Failed to decrypt key file - wrong password?") from e

        keys = parse_private_keys(decrypted.decode())
        if not keys:
            raise KeysError(f"No private keys found in {self.key_file}")
        return keys


def load_wallet_secrets(settings: KeySettings, password: Optional[str] = None) -> List[str]:
    """
    Load wallet secrets as configured.

    For an encrypted key file the password is taken from the argument, the
    configured environment variable, or an interactive prompt, in that order.
    """
    if not settings.encrypted:
        return load_private_keys(settings.file)

    if password is None:
        password = os.environ.get(settings.password_env)
    if password is None:
        password = getpass.getpass("Key file password: ")

    return SecureKeyManager(settings.file).load_and_decrypt(password)


@dataclass
class WalletHandle:
    """
    Signing handle for one wallet.

    Built from a secret for a single swap; holds the address and the
    signing account, nothing else.
    """
    index: int
    address: str
    account: Any

    def sign_transaction(self, transaction: dict):
        return self.account.sign_transaction(transaction)


def open_wallet(secret: str, index: int) -> WalletHandle:
    """Derive a fresh WalletHandle from a private key."""
    account = Account.from_key(secret)
    return WalletHandle(index=index, address=account.address, account=account)
