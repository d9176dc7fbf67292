"""
ECDSA signing and verification with optional message hashing.
"""

import logging
from typing import Tuple

from .curves import Curve, PublicKey, SecretKey
from .interfaces import CurveMath, Hash

logger = logging.getLogger(__name__)


class SignatureEngine:
    """
    Signs and verifies messages.

    Verification is total: it answers True or False for any input and never
    raises.
    """

    def __init__(self, curve_math: CurveMath, hasher: Hash):
        self.curve_math = curve_math
        self.hasher = hasher

    def generate(self, curve: Curve) -> Tuple[PublicKey, SecretKey]:
        return self.curve_math.generate_keypair(curve)

    def _prepare(self, message: bytes, hash_first: bool) -> bytes:
        return self.hasher.digest(message) if hash_first else message

    def sign(self, secret_key: SecretKey, message: bytes, hash_first: bool = True) -> bytes:
        """
        Sign a message.

        Args:
            secret_key: Signing key
            message: Message bytes, signed as they are when hash_first is False
            hash_first: Hash the message before signing

        Returns:
            Signature bytes
        """
        return self.curve_math.sign(secret_key, self._prepare(message, hash_first))

    def verify(self, public_key: PublicKey, signature: bytes, message: bytes,
               hash_first: bool = True) -> bool:
        """
        Check a signature.

        Returns:
            True if the signature is valid, False otherwise
        """
        try:
            return bool(self.curve_math.verify(public_key, self._prepare(message, hash_first), signature))
        except Exception as e:
            logger.debug("Signature rejected on curve %s: %s",
                         public_key.curve.curve_id, type(e).__name__)
            return False
