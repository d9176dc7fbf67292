#!/usr/bin/env python3
"""
Tests for the public API: generate, encrypt, decrypt, sign and verify.
"""

import hashlib
import json
import sys
from collections import Counter

from pydantic import ValidationError

import ecckit
from ecckit import (
    AuthenticationFailed,
    Ecc,
    EccSettings,
    InvalidTag,
    KeyKind,
    MalformedEnvelope,
    MalformedKey,
    UnknownCurve,
    UnknownKind,
)
from ecckit.curves import EcCurveMath, PublicKey, SecretKey
from ecckit.keys import KeyRole

TEST_CURVES = ["224", "256", "384", "521"]


class ToyCurveMath:
    """
    Deterministic CurveMath double.

    The public point of scalar s is (s, s) and every encapsulation uses the
    same nonce, so keys and tags are reproducible. Calls are counted.
    """

    def __init__(self, scalar: int = 7, nonce: int = 3):
        self.scalar = scalar
        self.nonce = nonce
        self.calls = Counter()

    @staticmethod
    def _key(shared: int) -> bytes:
        return hashlib.sha256(str(shared).encode()).digest()

    def generate_keypair(self, curve):
        self.calls['generate_keypair'] += 1
        return PublicKey(curve, self.scalar, self.scalar), SecretKey(curve, self.scalar)

    def import_point(self, curve, data):
        self.calls['import_point'] += 1
        size = curve.coordinate_size
        if len(data) != 2 * size:
            raise MalformedKey("bad point length")
        return PublicKey(curve, int.from_bytes(data[:size], 'big'), int.from_bytes(data[size:], 'big'))

    def import_scalar(self, curve, data):
        self.calls['import_scalar'] += 1
        if len(data) != curve.coordinate_size:
            raise MalformedKey("bad scalar length")
        return SecretKey(curve, int.from_bytes(data, 'big'))

    def encapsulate(self, public_key):
        self.calls['encapsulate'] += 1
        tag = PublicKey(public_key.curve, self.nonce, self.nonce).point_bytes()
        return self._key(public_key.x * self.nonce), tag

    def decapsulate(self, secret_key, tag):
        self.calls['decapsulate'] += 1
        size = secret_key.curve.coordinate_size
        if len(tag) != 2 * size:
            raise InvalidTag("bad tag length")
        return self._key(secret_key.scalar * int.from_bytes(tag[:size], 'big'))

    def sign(self, secret_key, digest):
        return hashlib.sha256(secret_key.scalar_bytes() + digest).digest()

    def verify(self, public_key, digest, signature):
        expected = hashlib.sha256(public_key.x.to_bytes(public_key.curve.coordinate_size, 'big') + digest).digest()
        if signature != expected:
            raise ValueError("signature mismatch")
        return True


class CountingCurveMath(EcCurveMath):
    """Real curve math that counts decapsulations"""

    def __init__(self):
        self.decapsulations = 0

    def decapsulate(self, secret_key, tag):
        self.decapsulations += 1
        return super().decapsulate(secret_key, tag)


def _flip_hex(text: str, index: int) -> str:
    flipped = format(int(text[index], 16) ^ 0x1, 'x')
    return text[:index] + flipped + text[index + 1:]


def test_hello_with_test_double():
    """Test the full encrypt/decrypt flow against a deterministic CurveMath"""
    print("Testing hello scenario...")

    math = ToyCurveMath()
    ecc = Ecc(curve_math=math)
    keys = ecc.generate(KeyKind.ENC_DEC, "256")

    assert keys == {
        'enc': "256" + (7).to_bytes(32, 'big').hex() * 2,
        'dec': "256" + (7).to_bytes(32, 'big').hex(),
    }

    envelope = ecc.encrypt(keys['enc'], "hello")
    assert json.loads(envelope)['tag'] == (3).to_bytes(32, 'big').hex() * 2
    assert ecc.decrypt(keys['dec'], envelope) == "hello"
    assert math.calls['encapsulate'] == 1
    assert math.calls['decapsulate'] == 1

    print("✓ Hello scenario works")


def test_generate():
    """Test key pair generation"""
    print("Testing generate...")

    ecc = Ecc()
    enc_keys = ecc.generate(KeyKind.ENC_DEC)
    assert set(enc_keys) == {'enc', 'dec'}
    assert enc_keys['enc'].startswith("256")

    sig_keys = ecc.generate("sig_ver", "384")
    assert set(sig_keys) == {'ver', 'sig'}
    assert sig_keys['sig'].startswith("384")

    assert set(ecckit.generate(ecckit.ENC_DEC)) == {'enc', 'dec'}

    for bogus in ["bogus", None, 42, "ENC_DEC"]:
        try:
            ecc.generate(bogus)
            assert False, f"Should have rejected kind {bogus!r}"
        except UnknownKind:
            pass

    try:
        ecc.generate(KeyKind.ENC_DEC, "999")
        assert False, "Should have raised UnknownCurve"
    except UnknownCurve:
        pass

    # An empty curve id is not the default curve
    try:
        ecc.generate(KeyKind.ENC_DEC, "")
        assert False, "Should have rejected an empty curve id"
    except UnknownCurve:
        pass

    print("✓ Generate works")


def test_encrypt_decrypt():
    """Test hybrid encryption round trips"""
    print("Testing encrypt/decrypt...")

    ecc = Ecc()
    plaintexts = ["", "hello", "héllo wörld ✓", "x" * 10000]
    for curve_id in TEST_CURVES:
        keys = ecc.generate(KeyKind.ENC_DEC, curve_id)
        for plaintext in plaintexts:
            assert ecc.decrypt(keys['dec'], ecc.encrypt(keys['enc'], plaintext)) == plaintext

    keys = ecc.generate(KeyKind.ENC_DEC)
    data = bytes(range(256))
    assert ecc.decrypt_bytes(keys['dec'], ecc.encrypt(keys['enc'], data)) == data

    # Module-level functions share the default instance
    keys = ecckit.generate(KeyKind.ENC_DEC)
    assert ecckit.decrypt(keys['dec'], ecckit.encrypt(keys['enc'], "hi")) == "hi"
    assert ecckit.decrypt_bytes(keys['dec'], ecckit.encrypt(keys['enc'], b"hi")) == b"hi"

    print("✓ Encrypt/decrypt works")


def test_associated_data():
    """Test that associated data is carried and authenticated"""
    print("Testing associated data...")

    ecc = Ecc()
    keys = ecc.generate(KeyKind.ENC_DEC)
    envelope = ecc.encrypt(keys['enc'], "body", adata="header")
    assert json.loads(envelope)['adata'] == b"header".hex()
    assert ecc.decrypt(keys['dec'], envelope) == "body"

    obj = json.loads(envelope)
    obj['adata'] = b"HEADER".hex()
    try:
        ecc.decrypt(keys['dec'], json.dumps(obj))
        assert False, "Should have raised AuthenticationFailed"
    except AuthenticationFailed:
        pass

    print("✓ Associated data works")


def test_tamper_detection():
    """Test that flipping any ciphertext character fails authentication"""
    print("Testing tamper detection...")

    ecc = Ecc()
    keys = ecc.generate(KeyKind.ENC_DEC)
    obj = json.loads(ecc.encrypt(keys['enc'], "hello"))

    for field in ('ct', 'iv'):
        for i in range(len(obj[field])):
            tampered = dict(obj)
            tampered[field] = _flip_hex(obj[field], i)
            try:
                ecc.decrypt(keys['dec'], json.dumps(tampered))
                assert False, f"Tampered {field}[{i}] was accepted"
            except AuthenticationFailed:
                pass

    other = ecc.generate(KeyKind.ENC_DEC)
    try:
        ecc.decrypt(other['dec'], json.dumps(obj))
        assert False, "Wrong key was accepted"
    except AuthenticationFailed:
        pass

    print("✓ Tamper detection works")


def test_malformed_envelopes():
    """Test rejection of envelopes that are not JSON objects or lack a tag"""
    print("Testing malformed envelopes...")

    ecc = Ecc()
    keys = ecc.generate(KeyKind.ENC_DEC)
    for bad in ["not json", "[1, 2]", '{"ct": "00"}', '{"tag": 5}', None]:
        try:
            ecc.decrypt(keys['dec'], bad)
            assert False, f"Should have rejected {bad!r}"
        except MalformedEnvelope:
            pass

    obj = json.loads(ecc.encrypt(keys['enc'], "hello"))
    for bad_tag in ["zz", "00" * 64, "ab"]:
        try:
            ecc.decrypt(keys['dec'], json.dumps(dict(obj, tag=bad_tag)))
            assert False, f"Should have rejected tag {bad_tag!r}"
        except InvalidTag:
            pass

    print("✓ Malformed envelopes are rejected")


def test_decapsulation_cache():
    """Test that a repeated tag is decapsulated only once"""
    print("Testing decapsulation cache...")

    math = CountingCurveMath()
    ecc = Ecc(curve_math=math)
    keys = ecc.generate(KeyKind.ENC_DEC)

    envelope = ecc.encrypt(keys['enc'], "first")
    assert ecc.decrypt(keys['dec'], envelope) == "first"
    assert ecc.decrypt(keys['dec'], envelope) == "first"
    assert math.decapsulations == 1

    # Reused KEM context: same tag, no new decapsulation
    second = ecc.encrypt(keys['enc'], "second")
    assert json.loads(second)['tag'] == json.loads(envelope)['tag']
    assert ecc.decrypt(keys['dec'], second) == "second"
    assert math.decapsulations == 1

    ecc.clear_caches()
    assert ecc.decrypt(keys['dec'], envelope) == "first"
    assert math.decapsulations == 2

    print("✓ Decapsulation cache works")


def test_kem_reuse_setting():
    """Test that KEM reuse can be switched off"""
    print("Testing KEM reuse setting...")

    ecc = Ecc(EccSettings(reuse_kem=False))
    keys = ecc.generate(KeyKind.ENC_DEC)
    first = ecc.encrypt(keys['enc'], "a")
    second = ecc.encrypt(keys['enc'], "a")
    assert json.loads(first)['tag'] != json.loads(second)['tag']
    assert ecc.decrypt(keys['dec'], first) == "a"
    assert ecc.decrypt(keys['dec'], second) == "a"

    print("✓ KEM reuse setting works")


def test_sign_verify():
    """Test signatures through the API"""
    print("Testing sign/verify...")

    ecc = Ecc()
    for curve_id in TEST_CURVES:
        keys = ecc.generate(KeyKind.SIG_VER, curve_id)
        signature = ecc.sign(keys['sig'], "message")
        assert ecc.verify(keys['ver'], signature, "message")
        assert ecc.verify(keys['ver'], signature, b"message")
        assert not ecc.verify(keys['ver'], signature, "messagE")

    keys = ecc.generate(KeyKind.SIG_VER)
    signature = ecc.sign(keys['sig'], "message")
    for i in range(len(signature)):
        assert not ecc.verify(keys['ver'], _flip_hex(signature, i), "message"), f"Flipped bit {i} verified"

    digest = hashlib.sha256(b"message").digest()
    raw = ecc.sign(keys['sig'], digest, hash=False)
    assert ecc.verify(keys['ver'], raw, digest, hash=False)

    # Unhashed messages of any length
    for text in ["hello", "", "x" * 150]:
        raw = ecc.sign(keys['sig'], text, hash=False)
        assert ecc.verify(keys['ver'], raw, text, hash=False)
        assert not ecc.verify(keys['ver'], raw, "j" + text[1:], hash=False)
    assert ecckit.verify(keys['ver'], ecckit.sign(keys['sig'], "m"), "m")

    print("✓ Sign/verify works")


def test_verify_never_throws():
    """Test that structurally invalid signatures give False"""
    print("Testing verify never throws...")

    ecc = Ecc()
    keys = ecc.generate(KeyKind.SIG_VER, "256")
    other_curve = ecc.generate(KeyKind.SIG_VER, "384")
    foreign = ecc.sign(other_curve['sig'], "message")

    for bad in ["", "zz", "00", "0" * 128, "abc", foreign, None]:
        assert ecc.verify(keys['ver'], bad, "message") is False
    assert ecc.verify(keys['ver'], ecc.sign(keys['sig'], "m"), "m", hash=False) is False

    try:
        ecc.verify("256zz", "00", "message")
        assert False, "Should have raised MalformedKey"
    except MalformedKey:
        pass

    print("✓ Verify never throws")


def test_cross_role_keys():
    """Test the permissive cross-role policy"""
    print("Testing cross-role keys...")

    ecc = Ecc()
    sig_keys = ecc.generate(KeyKind.SIG_VER)

    # Same grammar and curves: a signing pair works as an encryption pair
    envelope = ecc.encrypt(sig_keys['ver'], "hello")
    assert ecc.decrypt(sig_keys['sig'], envelope) == "hello"

    enc_keys = ecc.generate(KeyKind.ENC_DEC)
    assert ecc.verify(enc_keys['enc'], ecc.sign(enc_keys['dec'], "m"), "m")

    # Import namespaces stay separate
    assert sig_keys['ver'] in ecc.imports.namespaces[KeyRole.ENC]
    assert sig_keys['ver'] not in ecc.imports.namespaces[KeyRole.VER]
    assert enc_keys['dec'] in ecc.imports.namespaces[KeyRole.SIG]
    assert enc_keys['dec'] not in ecc.imports.namespaces[KeyRole.DEC]

    # Malformed strings fail with MalformedKey in every role
    for call in (lambda: ecc.encrypt("256", "x"),
                 lambda: ecc.decrypt("999" + "00" * 32, ecc.encrypt(enc_keys['enc'], "x")),
                 lambda: ecc.sign("256abc", "x")):
        try:
            call()
            assert False, "Should have raised MalformedKey"
        except MalformedKey:
            pass

    print("✓ Cross-role keys behave as documented")


def test_settings():
    """Test settings validation and environment loading"""
    print("Testing settings...")

    settings = EccSettings.from_env({
        'ECCKIT_DEFAULT_CURVE': "384",
        'ECCKIT_REUSE_KEM': "false",
        'ECCKIT_IMPORT_CACHE_SIZE': "2",
        'ECCKIT_HASH_ALGORITHM': "SHA512",
        'ECCKIT_DECAP_CACHE_SIZE': "",
    })
    assert settings.default_curve == "384"
    assert settings.reuse_kem is False
    assert settings.import_cache_size == 2
    assert settings.hash_algorithm == "sha512"
    assert settings.decap_cache_size is None

    for bad in [{'default_curve': "999"}, {'hash_algorithm': "md5"}, {'kem_cache_size': 0}]:
        try:
            EccSettings(**bad)
            assert False, f"Should have rejected {bad}"
        except ValidationError:
            pass

    ecc = Ecc(settings)
    assert ecc.generate(KeyKind.SIG_VER)['sig'].startswith("384")
    keys = [ecc.generate(KeyKind.ENC_DEC) for _ in range(3)]
    for pair in keys:
        ecc.encrypt(pair['enc'], "x")
    assert len(ecc.imports.namespaces[KeyRole.ENC]) == 2

    print("✓ Settings work")


def run_all_tests():
    """Run all tests"""
    print("\n" + "="*50)
    print("Running API Tests")
    print("="*50 + "\n")

    try:
        test_hello_with_test_double()
        test_generate()
        test_encrypt_decrypt()
        test_associated_data()
        test_tamper_detection()
        test_malformed_envelopes()
        test_decapsulation_cache()
        test_kem_reuse_setting()
        test_sign_verify()
        test_verify_never_throws()
        test_cross_role_keys()
        test_settings()

        print("\n" + "="*50)
        print("✓ All tests passed!")
        print("="*50 + "\n")
        return 0

    except AssertionError as e:
        print(f"\n✗ Test failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(run_all_tests())
