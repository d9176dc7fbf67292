"""
Curve registry and elliptic-curve math.

Curves are addressed by a three character identifier (their bit size, as in
the SJCL curve tables). EcCurveMath implements the CurveMath collaborator on
top of the `cryptography` package: ECDH-based key encapsulation and ECDSA.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
    encode_dss_signature,
)
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .primitives import InvalidTag, MalformedKey, UnknownCurve


CURVE_ID_LENGTH = 3
KEM_KEY_LENGTH = 32
KEM_INFO = b"ecckit-elgamal-kem"


@dataclass(frozen=True)
class Curve:
    """
    A named curve.

    Attributes:
        curve_id: Three character identifier embedded in encoded keys
        name: SEC 2 name of the curve
        ec_curve: `cryptography` curve instance
        order: Order of the base point
    """
    curve_id: str
    name: str
    ec_curve: ec.EllipticCurve = field(repr=False, compare=False)
    order: int = field(repr=False, compare=False)

    @property
    def coordinate_size(self) -> int:
        """Byte width of one coordinate or one scalar"""
        return (self.ec_curve.key_size + 7) // 8


CURVES: Dict[str, Curve] = {
    c.curve_id: c for c in (
        Curve("192", "secp192r1", ec.SECP192R1(),
              0xFFFFFFFFFFFFFFFFFFFFFFFF99DEF836146BC9B1B4D22831),
        Curve("224", "secp224r1", ec.SECP224R1(),
              0xFFFFFFFFFFFFFFFFFFFFFFFFFFFF16A2E0B8F03E13DD29455C5C2A3D),
        Curve("256", "secp256r1", ec.SECP256R1(),
              0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551),
        Curve("384", "secp384r1", ec.SECP384R1(),
              0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFC7634D81F4372DDF581A0DB248B0A77AECEC196ACCC52973),
        Curve("521", "secp521r1", ec.SECP521R1(),
              0x01FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFA51868783BF2F966B7FCC0148F709A5D03BB5C9B8899C47AEBB6FB71E91386409),
    )
}


def get_curve(curve_id: str) -> Curve:
    """
    Look up a curve by identifier.

    Raises:
        UnknownCurve: If the identifier is not registered
    """
    try:
        return CURVES[curve_id]
    except (KeyError, TypeError):
        raise UnknownCurve(f"Unknown curve: {curve_id!r}") from None


@dataclass(frozen=True)
class PublicKey:
    """A curve point together with its curve"""
    curve: Curve
    x: int
    y: int
    native: Any = field(default=None, repr=False, compare=False)

    def point_bytes(self) -> bytes:
        size = self.curve.coordinate_size
        return self.x.to_bytes(size, 'big') + self.y.to_bytes(size, 'big')


@dataclass(frozen=True)
class SecretKey:
    """A curve scalar together with its curve"""
    curve: Curve
    scalar: int = field(repr=False)
    native: Any = field(default=None, repr=False, compare=False)

    def scalar_bytes(self) -> bytes:
        return self.scalar.to_bytes(self.curve.coordinate_size, 'big')


# Prehashed widths cryptography accepts, smallest first.
_PREHASH_WIDTHS = (
    (28, hashes.SHA224),
    (32, hashes.SHA256),
    (48, hashes.SHA384),
    (64, hashes.SHA512),
)
_MAX_PREHASH_BITS = 8 * _PREHASH_WIDTHS[-1][0]


def _ecdsa_input(curve: Curve, message: bytes) -> Tuple[bytes, ec.ECDSA]:
    """
    Map a message of any length to a Prehashed digest and its algorithm.

    As in SJCL, the ECDSA integer is the leftmost order-bit-length bits of the
    message (or the whole message when shorter). The integer is capped at 512
    bits, the widest Prehashed input, which only matters for secp521r1. It is
    placed at the top of the narrowest width covering those bits, so the
    truncation OpenSSL applies to wide digests recovers exactly that integer.
    """
    bits = min(curve.order.bit_length(), _MAX_PREHASH_BITS)
    e = int.from_bytes(message, 'big')
    if 8 * len(message) > bits:
        e >>= 8 * len(message) - bits

    for width, algorithm in _PREHASH_WIDTHS:
        if 8 * width >= bits:
            break
    digest = (e << (8 * width - bits)).to_bytes(width, 'big')
    return digest, ec.ECDSA(Prehashed(algorithm()))


def _derive_kem_key(shared_secret: bytes) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEM_KEY_LENGTH,
        salt=None,
        info=KEM_INFO
    )
    return hkdf.derive(shared_secret)


class EcCurveMath:
    """
    CurveMath backed by `cryptography`.

    Encapsulation is ElGamal-style: an ephemeral key pair is drawn, its
    public point is the tag, and the symmetric key is HKDF-SHA256 over the
    ECDH secret between the ephemeral scalar and the recipient's point.
    """

    def generate_keypair(self, curve: Curve) -> Tuple[PublicKey, SecretKey]:
        private_key = ec.generate_private_key(curve.ec_curve)
        return self._public_from_native(curve, private_key.public_key()), self._secret_from_native(curve, private_key)

    def import_point(self, curve: Curve, data: bytes) -> PublicKey:
        size = curve.coordinate_size
        if len(data) != 2 * size:
            raise MalformedKey(f"Public key for curve {curve.curve_id} must be {2 * size} bytes")
        x = int.from_bytes(data[:size], 'big')
        y = int.from_bytes(data[size:], 'big')
        try:
            native = ec.EllipticCurvePublicNumbers(x, y, curve.ec_curve).public_key()
        except ValueError as e:
            raise MalformedKey(f"Point is not on curve {curve.curve_id}") from e
        return PublicKey(curve, x, y, native)

    def import_scalar(self, curve: Curve, data: bytes) -> SecretKey:
        size = curve.coordinate_size
        if len(data) != size:
            raise MalformedKey(f"Secret key for curve {curve.curve_id} must be {size} bytes")
        scalar = int.from_bytes(data, 'big')
        if not 0 < scalar < curve.order:
            raise MalformedKey(f"Scalar out of range for curve {curve.curve_id}")
        native = ec.derive_private_key(scalar, curve.ec_curve)
        return SecretKey(curve, scalar, native)

    def encapsulate(self, public_key: PublicKey) -> Tuple[bytes, bytes]:
        """
        Derive a fresh symmetric key for a public key.

        Returns:
            Tuple of (symmetric_key, tag)
        """
        curve = public_key.curve
        ephemeral = ec.generate_private_key(curve.ec_curve)
        shared = ephemeral.exchange(ec.ECDH(), public_key.native)
        tag = self._public_from_native(curve, ephemeral.public_key()).point_bytes()
        return _derive_kem_key(shared), tag

    def decapsulate(self, secret_key: SecretKey, tag: bytes) -> bytes:
        """
        Recover the symmetric key bound to a tag.

        Raises:
            InvalidTag: If the tag is not a point on the key's curve
        """
        curve = secret_key.curve
        try:
            ephemeral = self.import_point(curve, tag)
        except MalformedKey as e:
            raise InvalidTag(f"Tag is not a valid point on curve {curve.curve_id}") from e
        shared = secret_key.native.exchange(ec.ECDH(), ephemeral.native)
        return _derive_kem_key(shared)

    def sign(self, secret_key: SecretKey, message: bytes) -> bytes:
        """Sign a message, returning fixed-width r || s"""
        digest, algorithm = _ecdsa_input(secret_key.curve, message)
        der = secret_key.native.sign(digest, algorithm)
        r, s = decode_dss_signature(der)
        size = secret_key.curve.coordinate_size
        return r.to_bytes(size, 'big') + s.to_bytes(size, 'big')

    def verify(self, public_key: PublicKey, message: bytes, signature: bytes) -> bool:
        """
        Verify a fixed-width r || s signature over a message.

        Raises:
            ValueError: If the signature has the wrong length for the curve
            cryptography.exceptions.InvalidSignature: If the signature does not match
        """
        size = public_key.curve.coordinate_size
        if len(signature) != 2 * size:
            raise ValueError("Signature length does not match curve")
        r = int.from_bytes(signature[:size], 'big')
        s = int.from_bytes(signature[size:], 'big')
        digest, algorithm = _ecdsa_input(public_key.curve, message)
        public_key.native.verify(encode_dss_signature(r, s), digest, algorithm)
        return True

    @staticmethod
    def _public_from_native(curve: Curve, native: ec.EllipticCurvePublicKey) -> PublicKey:
        numbers = native.public_numbers()
        return PublicKey(curve, numbers.x, numbers.y, native)

    @staticmethod
    def _secret_from_native(curve: Curve, native: ec.EllipticCurvePrivateKey) -> SecretKey:
        return SecretKey(curve, native.private_numbers().private_value, native)
