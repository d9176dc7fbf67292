from __future__ import annotations
from typing import Dict, Protocol, Tuple

from .curves import Curve, PublicKey, SecretKey

"""Collaborator interfaces consumed by the toolkit.

The engines and the facade only talk to these Protocols. The defaults live in
`curves.EcCurveMath` and `primitives`; tests substitute doubles.
"""

class CurveMath(Protocol):
    """Elliptic-curve operations contract."""
    def generate_keypair(self, curve: Curve) -> Tuple[PublicKey, SecretKey]: ...
    def import_point(self, curve: Curve, data: bytes) -> PublicKey: ...
    def import_scalar(self, curve: Curve, data: bytes) -> SecretKey: ...
    def encapsulate(self, public_key: PublicKey) -> Tuple[bytes, bytes]: ...
    def decapsulate(self, secret_key: SecretKey, tag: bytes) -> bytes: ...
    def sign(self, secret_key: SecretKey, message: bytes) -> bytes: ...
    def verify(self, public_key: PublicKey, message: bytes, signature: bytes) -> bool: ...

class AEAD(Protocol):
    """Authenticated encryption contract; payloads are JSON-safe dicts."""
    def seal(self, key: bytes, plaintext: bytes, associated_data: bytes = b"") -> Dict: ...
    def open(self, key: bytes, payload: Dict) -> bytes: ...

class Hash(Protocol):
    name: str
    def digest(self, data: bytes) -> bytes: ...

class HexCodec(Protocol):
    def encode(self, data: bytes) -> str: ...
    def decode(self, text: str) -> bytes: ...

class JSONCodec(Protocol):
    def serialize(self, obj: Dict) -> str: ...
    def parse(self, text: str) -> Dict: ...
