"""
Public entry points: generate, encrypt, decrypt, sign and verify.

Keys go in and come out as encoded strings. An Ecc instance owns its caches;
the module-level functions share one lazily created default instance.
"""

import logging
import threading
from enum import Enum
from typing import Dict, Optional, Union

from .cache import DecapCache, ImportCache
from .config import EccSettings
from .curves import EcCurveMath, get_curve
from .interfaces import AEAD, CurveMath, Hash, HexCodec, JSONCodec
from .kem import HybridCipher, KemEngine
from .keys import KeyCodec, KeyRole
from .primitives import (
    AesGcmCipher,
    HexCodec as DefaultHexCodec,
    JsonCodec,
    MalformedEnvelope,
    MessageHash,
    UnknownKind,
)
from .signature import SignatureEngine

logger = logging.getLogger(__name__)

Text = Union[str, bytes]


class KeyKind(Enum):
    """Flavour of key pair produced by generate()"""
    ENC_DEC = 'enc_dec'
    SIG_VER = 'sig_ver'


def _as_bytes(value: Text) -> bytes:
    if isinstance(value, str):
        return value.encode('utf-8')
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise TypeError(f"Expected str or bytes, got {type(value).__name__}")


def _as_kind(kind) -> KeyKind:
    if isinstance(kind, KeyKind):
        return kind
    try:
        return KeyKind(kind)
    except ValueError:
        raise UnknownKind(f"Unknown key kind: {kind!r}") from None


class Ecc:
    """
    Curve-based encryption and signatures over string-encoded keys.
    """

    def __init__(self, settings: Optional[EccSettings] = None,
                 curve_math: Optional[CurveMath] = None,
                 aead: Optional[AEAD] = None,
                 hasher: Optional[Hash] = None,
                 hex_codec: Optional[HexCodec] = None,
                 json_codec: Optional[JSONCodec] = None):
        self.settings = settings or EccSettings()
        self.curve_math = curve_math or EcCurveMath()
        self.hex = hex_codec or DefaultHexCodec()
        self.json = json_codec or JsonCodec()
        self.aead = aead or AesGcmCipher(self.hex)
        self.hasher = hasher or MessageHash(self.settings.hash_algorithm)

        self.codec = KeyCodec(self.curve_math, self.hex)
        self.imports = ImportCache(self.codec, self.settings.import_cache_size)
        self.kem = KemEngine(self.curve_math)
        self.cipher = HybridCipher(
            self.kem,
            self.aead,
            self.hex,
            DecapCache(self.settings.decap_cache_size),
            reuse_kem=self.settings.reuse_kem,
            kem_cache_size=self.settings.kem_cache_size,
        )
        self.signer = SignatureEngine(self.curve_math, self.hasher)

    def generate(self, kind: Union[KeyKind, str], curve_id: Optional[str] = None) -> Dict[str, str]:
        """
        Generate a key pair.

        Args:
            kind: KeyKind.ENC_DEC for {'enc', 'dec'}, KeyKind.SIG_VER for {'ver', 'sig'}
            curve_id: Curve identifier, defaults to the configured curve

        Returns:
            Dictionary of encoded keys

        Raises:
            UnknownKind: If kind is not a KeyKind
            UnknownCurve: If curve_id is not registered
        """
        kind = _as_kind(kind)
        curve = get_curve(self.settings.default_curve if curve_id is None else curve_id)

        if kind is KeyKind.ENC_DEC:
            public_name, secret_name = 'enc', 'dec'
            public_key, secret_key = self.kem.generate(curve)
        elif kind is KeyKind.SIG_VER:
            public_name, secret_name = 'ver', 'sig'
            public_key, secret_key = self.signer.generate(curve)
        else:
            raise UnknownKind(f"Unknown key kind: {kind!r}")

        logger.debug("Generated %s key pair on curve %s", kind.value, curve.curve_id)
        return {
            public_name: self.codec.encode_public(public_key),
            secret_name: self.codec.encode_secret(secret_key),
        }

    def encrypt(self, enc_key: str, plaintext: Text, adata: Text = b"") -> str:
        """
        Encrypt plaintext to an encoded public key.

        Returns:
            Envelope as a JSON string
        """
        public_key = self.imports.import_public(KeyRole.ENC, enc_key)
        envelope = self.cipher.seal(enc_key, public_key, _as_bytes(plaintext), _as_bytes(adata))
        return self.json.serialize(envelope)

    def decrypt_bytes(self, dec_key: str, ciphertext: str) -> bytes:
        """
        Decrypt an envelope with an encoded secret key.

        Raises:
            MalformedKey: If dec_key cannot be imported
            MalformedEnvelope: If ciphertext is not a JSON envelope
            InvalidTag: If the envelope's tag does not fit the key's curve
            AuthenticationFailed: If the ciphertext does not authenticate
        """
        try:
            envelope = self.json.parse(ciphertext)
        except (TypeError, ValueError) as e:
            raise MalformedEnvelope("Ciphertext is not valid JSON") from e
        if not isinstance(envelope, dict):
            raise MalformedEnvelope("Ciphertext is not a JSON object")

        secret_key = self.imports.import_secret(KeyRole.DEC, dec_key)
        return self.cipher.open(dec_key, secret_key, envelope)

    def decrypt(self, dec_key: str, ciphertext: str) -> str:
        return self.decrypt_bytes(dec_key, ciphertext).decode('utf-8')

    def sign(self, sig_key: str, text: Text, hash: bool = True) -> str:
        """
        Sign text with an encoded secret key.

        Returns:
            Hex-encoded signature
        """
        secret_key = self.imports.import_secret(KeyRole.SIG, sig_key)
        return self.hex.encode(self.signer.sign(secret_key, _as_bytes(text), hash))

    def verify(self, ver_key: str, signature: str, text: Text, hash: bool = True) -> bool:
        """
        Verify a hex signature over text.

        Returns False for any signature that does not check out, including
        ones that are not hex or belong to another curve.

        Raises:
            MalformedKey: If ver_key cannot be imported
        """
        public_key = self.imports.import_public(KeyRole.VER, ver_key)
        try:
            signature_bytes = self.hex.decode(signature)
        except ValueError:
            return False
        return self.signer.verify(public_key, signature_bytes, _as_bytes(text), hash)

    def clear_caches(self):
        self.imports.clear()
        self.cipher.clear()


_default: Optional[Ecc] = None
_default_lock = threading.Lock()


def default_ecc() -> Ecc:
    """Return the shared instance, creating it from the environment on first use"""
    global _default
    with _default_lock:
        if _default is None:
            _default = Ecc(EccSettings.from_env())
        return _default


def generate(kind: Union[KeyKind, str], curve_id: Optional[str] = None) -> Dict[str, str]:
    return default_ecc().generate(kind, curve_id)


def encrypt(enc_key: str, plaintext: Text, adata: Text = b"") -> str:
    return default_ecc().encrypt(enc_key, plaintext, adata)


def decrypt(dec_key: str, ciphertext: str) -> str:
    return default_ecc().decrypt(dec_key, ciphertext)


def decrypt_bytes(dec_key: str, ciphertext: str) -> bytes:
    return default_ecc().decrypt_bytes(dec_key, ciphertext)


def sign(sig_key: str, text: Text, hash: bool = True) -> str:
    return default_ecc().sign(sig_key, text, hash)


def verify(ver_key: str, signature: str, text: Text, hash: bool = True) -> bool:
    return default_ecc().verify(ver_key, signature, text, hash)
