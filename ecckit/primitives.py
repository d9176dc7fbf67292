"""
Cryptographic Primitives for the ECC toolkit

This module provides the symmetric and encoding building blocks the hybrid
scheme is composed from: the AES-GCM authenticated cipher, the message hash,
and the hex/JSON codecs used by the key and envelope formats. It also defines
the error taxonomy shared by the whole package.
"""

import os
import re
import json
from typing import Dict

from cryptography import exceptions as crypto_exceptions
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM


class CryptoError(Exception):
    """Base exception for cryptographic errors"""
    pass


class UnknownKind(CryptoError):
    """Key-pair kind passed to generate() is not supported"""
    pass


class UnknownCurve(CryptoError):
    """Curve identifier is not present in the registry"""
    pass


class MalformedKey(CryptoError):
    """Encoded key string cannot be decoded or imported"""
    pass


class InvalidTag(CryptoError):
    """Encapsulation tag is not valid for the key's curve"""
    pass


class MalformedEnvelope(CryptoError):
    """Ciphertext envelope is not a JSON object carrying a KEM tag"""
    pass


class AuthenticationFailed(CryptoError):
    """The authenticated cipher rejected the ciphertext"""
    pass


HASH_ALGORITHMS = {
    'sha224': hashes.SHA224,
    'sha256': hashes.SHA256,
    'sha384': hashes.SHA384,
    'sha512': hashes.SHA512,
}

_HEX_RE = re.compile(r'\A(?:[0-9a-fA-F]{2})*\Z')


class MessageHash:
    """Hash applied to messages before signing"""

    def __init__(self, algorithm: str = 'sha256'):
        if algorithm not in HASH_ALGORITHMS:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")
        self.name = algorithm
        self._algorithm = HASH_ALGORITHMS[algorithm]

    def digest(self, data: bytes) -> bytes:
        h = hashes.Hash(self._algorithm())
        h.update(data)
        return h.finalize()


class HexCodec:
    """Strict hex codec: lowercase on output, no separators accepted on input"""

    def encode(self, data: bytes) -> str:
        return data.hex()

    def decode(self, text: str) -> bytes:
        """
        Decode a hex string.

        Raises:
            ValueError: If the text has odd length or non-hex characters
        """
        if not isinstance(text, str) or not _HEX_RE.match(text):
            raise ValueError("Invalid hex string")
        return bytes.fromhex(text)


class JsonCodec:
    """Compact JSON (de)serializer for envelopes"""

    def serialize(self, obj: Dict) -> str:
        return json.dumps(obj, separators=(',', ':'))

    def parse(self, text: str) -> Dict:
        return json.loads(text)


class AesGcmCipher:
    """
    AES-256-GCM authenticated cipher producing self-describing payloads.

    The payload mirrors the field layout of SJCL's JSON ciphertexts
    (v, cipher, mode, ks, ts, iv, adata, ct) with binary fields hex-encoded.
    A fresh 96-bit IV is drawn for every seal, so one key may encrypt many
    messages.
    """

    VERSION = 1
    KEY_SIZE = 256
    TAG_SIZE = 128
    NONCE_SIZE = 12

    def __init__(self, hex_codec: HexCodec = None):
        self.hex = hex_codec or HexCodec()

    def seal(self, key: bytes, plaintext: bytes, associated_data: bytes = b"") -> Dict:
        """
        Encrypt a message using AES-256-GCM.

        Args:
            key: 32-byte encryption key
            plaintext: Message to encrypt
            associated_data: Additional authenticated data, stored in the payload

        Returns:
            Dictionary of payload fields
        """
        nonce = os.urandom(self.NONCE_SIZE)
        aesgcm = AESGCM(key)
        ciphertext = aesgcm.encrypt(nonce, plaintext, associated_data)
        return {
            'v': self.VERSION,
            'cipher': 'aes',
            'mode': 'gcm',
            'ks': self.KEY_SIZE,
            'ts': self.TAG_SIZE,
            'iv': self.hex.encode(nonce),
            'adata': self.hex.encode(associated_data),
            'ct': self.hex.encode(ciphertext),
        }

    def open(self, key: bytes, payload: Dict) -> bytes:
        """
        Decrypt a payload produced by seal().

        Args:
            key: 32-byte encryption key
            payload: Dictionary of payload fields

        Returns:
            Decrypted plaintext

        Raises:
            AuthenticationFailed: If the payload is corrupt or does not authenticate
        """
        if (payload.get('v') != self.VERSION or payload.get('cipher') != 'aes'
                or payload.get('mode') != 'gcm' or payload.get('ks') != self.KEY_SIZE
                or payload.get('ts') != self.TAG_SIZE):
            raise AuthenticationFailed("Unsupported cipher parameters")

        try:
            nonce = self.hex.decode(payload.get('iv'))
            associated_data = self.hex.decode(payload.get('adata', ''))
            ciphertext = self.hex.decode(payload.get('ct'))
        except ValueError as e:
            raise AuthenticationFailed("Corrupt payload encoding") from e

        if len(nonce) != self.NONCE_SIZE or len(ciphertext) < self.TAG_SIZE // 8:
            raise AuthenticationFailed("Ciphertext too short")

        aesgcm = AESGCM(key)
        try:
            return aesgcm.decrypt(nonce, ciphertext, associated_data)
        except crypto_exceptions.InvalidTag as e:
            raise AuthenticationFailed("Decryption failed") from e
