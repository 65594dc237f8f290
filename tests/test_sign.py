# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed, decode_dss_signature)

from newtimg import keys, sign, tlv
from tests.constants import DIGEST, KEY_TYPES, SIG_TLVS


@pytest.mark.parametrize("key_type", KEY_TYPES)
def test_signature_verifies(key_type, signing_keys):
    """A signature over the digest verifies with the public key"""
    key = signing_keys[key_type]
    sig = sign.generate_sig(key, DIGEST)

    assert sig.type == key.sig_type()
    assert sig.key_hash == tlv.raw_key_hash(key.get_public_bytes())
    key.verify_digest(sig.data, DIGEST)

    with pytest.raises(InvalidSignature):
        key.verify_digest(sig.data, bytes(32))


def test_rsa_pss_salt_is_digest_length(signing_keys):
    key = signing_keys["rsa-2048"]
    sig = sign.generate_sig(key, DIGEST)
    assert len(sig.data) == 256

    # Verifies with an explicit 32 byte salt, not only an auto-detected one
    key.key.public_key().verify(
        sig.data, DIGEST,
        padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=32),
        Prehashed(hashes.SHA256()))


@pytest.mark.parametrize("key_type", ["ecdsa-p224", "ecdsa-p256"])
def test_ecdsa_signature_is_der(key_type, signing_keys):
    key = signing_keys[key_type]
    sig = sign.generate_sig(key, DIGEST)
    assert sig.data[0] == 0x30
    assert len(sig.data) <= key.sig_len()
    r, s = decode_dss_signature(sig.data)
    assert r > 0 and s > 0


def test_ed25519_is_deterministic(ed25519_key):
    sig1 = sign.generate_sig(ed25519_key, DIGEST)
    sig2 = sign.generate_sig(ed25519_key, DIGEST)
    assert sig1 == sig2
    assert len(sig1.data) == 64


@pytest.mark.parametrize("key_type", KEY_TYPES)
def test_sig_tlv_type(key_type, signing_keys):
    assert sign.sig_tlv_type(signing_keys[key_type]) == SIG_TLVS[key_type]


def test_build_sig_tlvs_order(signing_keys):
    order = ["ed25519", "ecdsa-p256", "rsa-2048"]
    sig_keys = [signing_keys[k] for k in order]
    tlvs = sign.build_sig_tlvs(sig_keys, DIGEST)

    assert len(tlvs) == 2 * len(order)
    for i, key_type in enumerate(order):
        key_hash, sig = tlvs[2 * i], tlvs[2 * i + 1]
        key = signing_keys[key_type]
        assert key_hash.type == tlv.TLV_VALUES["KEYHASH"]
        assert key_hash.data == key.key_hash()
        assert sig.type == SIG_TLVS[key_type]
        key.verify_digest(sig.data, DIGEST)


def test_build_sig_tlvs_no_keys():
    assert sign.build_sig_tlvs([], DIGEST) == []


def test_unsupported_rsa_size():
    key = keys.RSA(rsa.generate_private_key(65537, 1024))
    with pytest.raises(keys.KeyTypeError, match="Unsupported RSA key size"):
        sign.generate_sig(key, DIGEST)
    with pytest.raises(keys.KeyTypeError):
        sign.build_sig_tlvs([key], DIGEST)


def test_unsupported_curve():
    with pytest.raises(keys.KeyTypeError, match="Unsupported EC curve"):
        keys.wrap(ec.generate_private_key(ec.SECP384R1()))


def test_key_type_mismatch():
    """A key wrapper must agree with the key it wraps"""
    p224 = ec.generate_private_key(ec.SECP224R1())
    with pytest.raises(keys.KeyTypeError):
        sign.generate_sig(keys.ECDSA256P1(p224), DIGEST)

    with pytest.raises(keys.KeyTypeError):
        sign.generate_sig(keys.RSA(p224), DIGEST)


def test_public_key_cannot_sign(signing_keys):
    pub = keys.ECDSA256P1Public(signing_keys["ecdsa-p256"].key.public_key())
    with pytest.raises(keys.ECDSAUsageError):
        sign.generate_sig(pub, DIGEST)


def test_ecdsa_signature_too_long(signing_keys, monkeypatch):
    """An ECDSA signature larger than its slot fails instead of being
    re-signed"""
    key = signing_keys["ecdsa-p256"]
    calls = []

    def short_slot():
        calls.append(1)
        return 8

    monkeypatch.setattr(key, "sig_len", short_slot)
    with pytest.raises(sign.SignatureError, match="signature truncated"):
        sign.generate_sig(key, DIGEST)
    assert calls


def test_ed25519_wrong_length(signing_keys, monkeypatch):
    key = signing_keys["ed25519"]
    monkeypatch.setattr(key, "sign_digest", lambda digest: bytes(63))
    with pytest.raises(sign.SignatureError, match="wrong length"):
        sign.generate_sig(key, DIGEST)
