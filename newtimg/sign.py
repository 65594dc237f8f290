# Copyright 2018 Nordic Semiconductor ASA
# Copyright 2017-2020 Linaro Limited
# Copyright 2019-2025 Arm Limited
#
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

"""
Image signatures.

Each signing key contributes a key hash TLV followed by a signature TLV.
The digest is signed as is; it is never hashed again.
"""

import logging
from collections import namedtuple

from .keys import KeyTypeError, SigType
from .keys.ed25519 import SIGNATURE_SIZE as ED25519_SIGNATURE_SIZE
from .tlv import TLV_VALUES, Tlv, key_hash_tlv, raw_key_hash

logger = logging.getLogger(__name__)

Sig = namedtuple('Sig', ['type', 'key_hash', 'data'])


class SignatureError(Exception):
    pass


def generate_sig_rsa(key, digest):
    """RSA-PSS with a salt as long as the digest."""
    return key.sign_digest(digest)


def generate_sig_ec(key, digest):
    signature = key.sign_digest(digest)
    if len(signature) > key.sig_len():
        # The DER length varies with r and s; a longer one does not fit the
        # slot the bootloader expects and is not retried.
        raise SignatureError("signature truncated: {} > {} bytes".format(
            len(signature), key.sig_len()))
    return signature


def generate_sig_ed25519(key, digest):
    signature = key.sign_digest(digest)
    if len(signature) != ED25519_SIGNATURE_SIZE:
        raise SignatureError(
            "ed25519 signature has wrong length: have={} want={}".format(
                len(signature), ED25519_SIGNATURE_SIZE))
    return signature


SIGNERS = {
    SigType.RSA2048: generate_sig_rsa,
    SigType.RSA3072: generate_sig_rsa,
    SigType.ECDSA224: generate_sig_ec,
    SigType.ECDSA256: generate_sig_ec,
    SigType.ED25519: generate_sig_ed25519,
}


def generate_sig(key, digest):
    """Sign digest with key, returning a Sig."""
    key.assert_valid()
    typ = key.sig_type()
    try:
        signer = SIGNERS[typ]
    except KeyError:
        raise KeyTypeError("unknown sig type: {}".format(typ))

    logger.debug("signing digest with %s key", typ.value)
    data = signer(key, digest)
    return Sig(type=typ,
               key_hash=raw_key_hash(key.get_public_bytes()),
               data=data)


def sig_tlv_type(key):
    """TLV type code of the signature made by key.

    RSA keys select the code from their modulus size and ECDSA keys from
    their curve; anything else raises KeyTypeError.
    """
    return TLV_VALUES[key.sig_tlv()]


def build_sig_tlvs(keys, digest):
    """Sign digest with every key, in order.

    Each key gives a key hash TLV immediately followed by its signature TLV.
    """
    tlvs = []
    for key in keys:
        key.assert_valid()
        tlvs.append(key_hash_tlv(key.get_public_bytes()))

        sig = generate_sig(key, digest)
        tlvs.append(Tlv(sig_tlv_type(key), sig.data))
    return tlvs
