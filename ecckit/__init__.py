"""
Curve-based public-key toolkit with string-encoded keys.

Provides:
- Hybrid encryption (ElGamal-style EC KEM + AES-256-GCM)
- ECDSA signatures with optional message hashing
"""

import logging

from .api import (
    Ecc,
    KeyKind,
    default_ecc,
    generate,
    encrypt,
    decrypt,
    decrypt_bytes,
    sign,
    verify,
)
from .config import EccSettings
from .curves import CURVES
from .primitives import (
    CryptoError,
    UnknownKind,
    UnknownCurve,
    MalformedKey,
    InvalidTag,
    MalformedEnvelope,
    AuthenticationFailed,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

ENC_DEC = KeyKind.ENC_DEC
SIG_VER = KeyKind.SIG_VER

__all__ = [
    'Ecc',
    'EccSettings',
    'KeyKind',
    'ENC_DEC',
    'SIG_VER',
    'CURVES',
    'default_ecc',
    'generate',
    'encrypt',
    'decrypt',
    'decrypt_bytes',
    'sign',
    'verify',
    'CryptoError',
    'UnknownKind',
    'UnknownCurve',
    'MalformedKey',
    'InvalidTag',
    'MalformedEnvelope',
    'AuthenticationFailed',
]
