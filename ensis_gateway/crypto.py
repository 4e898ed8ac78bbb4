"""Encryption utilities for the signer's private key."""

import base64
import binascii
import hashlib
import os

from cryptography.fernet import Fernet, InvalidToken

from ensis_gateway.exceptions import EncryptionError

PBKDF2_ITERATIONS = 100000


def generate_salt() -> bytes:
    """Generate random salt for key derivation.

    Returns:
        16-byte random salt.
    """
    return os.urandom(16)


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a Fernet key from password using PBKDF2-HMAC-SHA256.

    Args:
        password: User-provided password.
        salt: Random salt for key derivation.

    Returns:
        URL-safe base64 encoded 32-byte key.
    """
    kdf = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode(),
        salt,
        PBKDF2_ITERATIONS,
        dklen=32,
    )
    return base64.urlsafe_b64encode(kdf)


def encrypt_to_base64(data: str, key: bytes) -> str:
    """Encrypt data and return base64-encoded string."""
    encrypted = Fernet(key).encrypt(data.encode())
    return base64.b64encode(encrypted).decode()


def decrypt_from_base64(encrypted_b64: str, key: bytes) -> str:
    """Decrypt base64-encoded encrypted string.

    Raises:
        EncryptionError: If the token is malformed or the key is wrong.
    """
    try:
        encrypted = base64.b64decode(encrypted_b64.encode())
        return Fernet(key).decrypt(encrypted).decode()
    except (InvalidToken, binascii.Error, ValueError) as e:
        raise EncryptionError(
            "Failed to decrypt private key",
            EncryptionError.ERR_DECRYPTION_FAILED,
            hint="Check ENSIS_KEY_PASSWORD and ENSIS_KEY_SALT",
        ) from e


class EncryptionManager:
    """Manager for encryption/decryption operations."""

    def __init__(self, password: str, salt: bytes | None = None):
        """Initialize encryption manager.

        Args:
            password: Encryption password.
            salt: Optional salt (generates new one if not provided).
        """
        if not password:
            raise EncryptionError(
                "Encryption password is required",
                EncryptionError.ERR_INVALID_KEY,
                hint="Set ENSIS_KEY_PASSWORD",
            )
        self.salt = salt or generate_salt()
        self.key = derive_key(password, self.salt)

    def encrypt(self, data: str) -> str:
        """Encrypt data and return base64 string."""
        try:
            return encrypt_to_base64(data, self.key)
        except (TypeError, ValueError) as e:
            raise EncryptionError(
                "Failed to encrypt data",
                EncryptionError.ERR_ENCRYPTION_FAILED,
            ) from e

    def decrypt(self, encrypted_b64: str) -> str:
        """Decrypt base64-encoded string."""
        return decrypt_from_base64(encrypted_b64, self.key)

    def get_salt_base64(self) -> str:
        """Get salt as base64 string."""
        return base64.b64encode(self.salt).decode()

    @staticmethod
    def from_salt_base64(password: str, salt_b64: str | None) -> "EncryptionManager":
        """Create EncryptionManager from a password and a base64 salt.

        Args:
            password: Encryption password.
            salt_b64: Base64 salt as printed by ``ensis encrypt-key``.

        Returns:
            EncryptionManager instance.
        """
        if not salt_b64:
            raise EncryptionError(
                "Encryption salt is required",
                EncryptionError.ERR_INVALID_KEY,
                hint="Set ENSIS_KEY_SALT",
            )
        try:
            salt = base64.b64decode(salt_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncryptionError(
                "Invalid encryption salt",
                EncryptionError.ERR_INVALID_KEY,
                hint="Salt must be base64-encoded",
            ) from e
        return EncryptionManager(password, salt)
