"""
Hybrid encryption: ElGamal-style key encapsulation plus AES-GCM.

The KEM yields a symmetric key and a tag (an ephemeral curve point). The
sender encrypts with the key and ships the tag inside the envelope; the holder
of the matching secret key recovers the same key from the tag.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .cache import DecapCache, KeyCache
from .curves import Curve, PublicKey, SecretKey
from .interfaces import AEAD, CurveMath, HexCodec
from .primitives import InvalidTag, MalformedEnvelope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Encapsulation:
    """
    Result of a KEM encapsulation.

    Attributes:
        key: Derived symmetric key
        tag: Bytes the recipient needs to recover the key
    """
    key: bytes
    tag: bytes


@dataclass(frozen=True)
class KemContext:
    """Memoised encapsulation for one public key, tag already hex-encoded"""
    key: bytes
    tag_hex: str


class KemEngine:
    """
    Key encapsulation on top of CurveMath.
    """

    def __init__(self, curve_math: CurveMath):
        self.curve_math = curve_math

    def generate(self, curve: Curve) -> Tuple[PublicKey, SecretKey]:
        return self.curve_math.generate_keypair(curve)

    def encapsulate(self, public_key: PublicKey) -> Encapsulation:
        key, tag = self.curve_math.encapsulate(public_key)
        logger.debug("Encapsulated new key on curve %s", public_key.curve.curve_id)
        return Encapsulation(key=key, tag=tag)

    def decapsulate(self, secret_key: SecretKey, tag: bytes) -> bytes:
        """
        Recover the symmetric key bound to tag.

        Raises:
            InvalidTag: If the tag is malformed for the curve
        """
        return self.curve_math.decapsulate(secret_key, tag)


class HybridCipher:
    """
    Seals and opens ciphertext envelopes.

    With reuse_kem on, the first encapsulation for an encoded public key is
    kept and every later message to that key uses the same symmetric key and
    tag. Only the AEAD's per-message IV then distinguishes messages, so the
    AEAD must never repeat a nonce under one key.
    """

    def __init__(self, kem: KemEngine, aead: AEAD, hex_codec: HexCodec,
                 decap_cache: DecapCache, reuse_kem: bool = True,
                 kem_cache_size: Optional[int] = None):
        self.kem = kem
        self.aead = aead
        self.hex = hex_codec
        self.decap_cache = decap_cache
        self.reuse_kem = reuse_kem
        self.kem_contexts = KeyCache("kem", kem_cache_size)

    def _new_context(self, public_key: PublicKey) -> KemContext:
        encapsulation = self.kem.encapsulate(public_key)
        return KemContext(key=encapsulation.key, tag_hex=self.hex.encode(encapsulation.tag))

    def seal(self, encoded_public: str, public_key: PublicKey, plaintext: bytes,
             associated_data: bytes = b"") -> Dict:
        """
        Encrypt plaintext to a public key.

        Args:
            encoded_public: Encoded form of public_key, used as the cache key
            public_key: Imported public key
            plaintext: Message to encrypt
            associated_data: Additional authenticated data

        Returns:
            Envelope dictionary: AEAD payload fields plus 'tag'
        """
        if self.reuse_kem:
            context = self.kem_contexts.get_or_create(
                encoded_public, lambda: self._new_context(public_key)
            )
        else:
            context = self._new_context(public_key)

        envelope = self.aead.seal(context.key, plaintext, associated_data)
        envelope['tag'] = context.tag_hex
        return envelope

    def open(self, encoded_secret: str, secret_key: SecretKey, envelope: Dict) -> bytes:
        """
        Decrypt an envelope with a secret key.

        Raises:
            MalformedEnvelope: If the envelope carries no tag
            InvalidTag: If the tag cannot be decapsulated
            AuthenticationFailed: If the AEAD rejects the payload
        """
        tag_hex = envelope.get('tag')
        if not isinstance(tag_hex, str):
            raise MalformedEnvelope("Envelope has no KEM tag")

        def derive() -> bytes:
            try:
                tag = self.hex.decode(tag_hex)
            except ValueError:
                raise InvalidTag("Tag is not valid hex") from None
            logger.debug("Decapsulating tag on curve %s", secret_key.curve.curve_id)
            return self.kem.decapsulate(secret_key, tag)

        key = self.decap_cache.lookup_or_derive(encoded_secret, tag_hex, derive)
        return self.aead.open(key, envelope)

    def clear(self):
        self.kem_contexts.clear()
        self.decap_cache.clear()
