"""
Key string encoding.

An encoded key is the curve identifier followed by the hex of the key
material: `x || y` for public keys, the scalar for secret keys. The string is
the only form in which keys leave the toolkit.
"""

from dataclasses import dataclass, field
from enum import Enum

from .curves import CURVE_ID_LENGTH, Curve, PublicKey, SecretKey, get_curve
from .interfaces import CurveMath, HexCodec
from .primitives import MalformedKey, UnknownCurve


class KeyRole(Enum):
    """What an encoded key is being used for"""
    ENC = 'enc'
    DEC = 'dec'
    SIG = 'sig'
    VER = 'ver'

    @property
    def is_public(self) -> bool:
        return self in (KeyRole.ENC, KeyRole.VER)


@dataclass(frozen=True)
class DecodedKey:
    """
    Result of splitting an encoded key.

    Attributes:
        curve: Curve named by the prefix
        body: Raw key material
    """
    curve: Curve
    body: bytes = field(repr=False)


class KeyCodec:
    """
    Converts keys to and from their string form.
    """

    def __init__(self, curve_math: CurveMath, hex_codec: HexCodec):
        self.curve_math = curve_math
        self.hex = hex_codec

    def encode_public(self, key: PublicKey) -> str:
        return key.curve.curve_id + self.hex.encode(key.point_bytes())

    def encode_secret(self, key: SecretKey) -> str:
        return key.curve.curve_id + self.hex.encode(key.scalar_bytes())

    def decode(self, encoded: str) -> DecodedKey:
        """
        Split an encoded key into its curve and key material.

        Args:
            encoded: Encoded key string

        Returns:
            DecodedKey

        Raises:
            MalformedKey: If the curve id is missing or unknown, or the body is not hex
        """
        if not isinstance(encoded, str):
            raise MalformedKey("Encoded key must be a string")
        if len(encoded) <= CURVE_ID_LENGTH:
            raise MalformedKey("Encoded key is too short")

        curve_id, body = encoded[:CURVE_ID_LENGTH], encoded[CURVE_ID_LENGTH:]
        try:
            curve = get_curve(curve_id)
        except UnknownCurve as e:
            raise MalformedKey(str(e)) from None

        try:
            data = self.hex.decode(body)
        except ValueError:
            raise MalformedKey(f"Key body for curve {curve_id} is not valid hex") from None

        return DecodedKey(curve=curve, body=data)

    def import_public(self, encoded: str) -> PublicKey:
        decoded = self.decode(encoded)
        return self.curve_math.import_point(decoded.curve, decoded.body)

    def import_secret(self, encoded: str) -> SecretKey:
        decoded = self.decode(encoded)
        return self.curve_math.import_scalar(decoded.curve, decoded.body)
