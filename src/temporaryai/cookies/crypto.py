"""
Cryptographic operations for cookie export files.

Exported cookies are sealed with AES-256-GCM under a key derived from the
user's password with PBKDF2-HMAC-SHA256. A fresh salt and nonce are drawn
for every export.

Bundle layout (what ends up base64-encoded in the export file):

    nonce (12 bytes) || ciphertext || tag (16 bytes)
"""

import logging
import os
from typing import NamedTuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from temporaryai.errors import EncryptionFailedError, InvalidPasswordError

logger = logging.getLogger(__name__)


class SealedPayload(NamedTuple):
    """Output of CookieCrypto.encrypt: the opaque bundle and its KDF salt."""

    ciphertext: bytes
    salt: bytes


class CookieCrypto:
    """Password-based authenticated encryption for cookie exports."""

    # Constants
    SALT_SIZE = 32   # 256 bits
    KEY_SIZE = 32    # 256 bits for AES-256
    NONCE_SIZE = 12  # 96 bits for GCM
    TAG_SIZE = 16    # 128 bits

    # KDF parameters
    PBKDF2_ITERATIONS = 10000

    def generate_salt(self) -> bytes:
        """Generate a cryptographically secure random salt."""
        return os.urandom(self.SALT_SIZE)

    def derive_key(self, password: str, salt: bytes) -> bytes:
        """
        Derive an encryption key from a password using PBKDF2-HMAC-SHA256.

        Args:
            password: The export password
            salt: Random salt for key derivation

        Returns:
            32-byte encryption key
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.KEY_SIZE,
            salt=salt,
            iterations=self.PBKDF2_ITERATIONS,
        )
        return kdf.derive(password.encode("utf-8"))

    def encrypt(self, plaintext: bytes, password: str) -> SealedPayload:
        """
        Encrypt data under a freshly salted password key.

        Args:
            plaintext: Data to encrypt
            password: The export password

        Returns:
            SealedPayload of (nonce || ciphertext || tag, salt)

        Raises:
            EncryptionFailedError: If the cipher refuses the input
        """
        salt = self.generate_salt()
        key = self.derive_key(password, salt)
        nonce = os.urandom(self.NONCE_SIZE)
        try:
            sealed = AESGCM(key).encrypt(nonce, plaintext, None)
        except (OverflowError, ValueError) as e:
            raise EncryptionFailedError(underlying_error=str(e)) from e
        return SealedPayload(ciphertext=nonce + sealed, salt=salt)

    def decrypt(self, ciphertext: bytes, password: str, salt: bytes) -> bytes:
        """
        Decrypt a bundle produced by encrypt().

        Args:
            ciphertext: The nonce || ciphertext || tag bundle
            password: The export password
            salt: Salt stored alongside the bundle

        Returns:
            Decrypted plaintext

        Raises:
            InvalidPasswordError: If the password is wrong or the bundle was
                altered. The two cases are deliberately indistinguishable.
        """
        if len(ciphertext) < self.NONCE_SIZE + self.TAG_SIZE:
            logger.warning("Encrypted cookie bundle is too short to authenticate")
            raise InvalidPasswordError()

        key = self.derive_key(password, salt)
        nonce, sealed = ciphertext[: self.NONCE_SIZE], ciphertext[self.NONCE_SIZE :]
        try:
            return AESGCM(key).decrypt(nonce, sealed, None)
        except InvalidTag:
            raise InvalidPasswordError() from None
