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
Image body encryption and wrapping of the encryption secret.
"""

import hashlib
import logging
import os

from cryptography.hazmat.primitives import hashes, hmac, keywrap
from cryptography.hazmat.primitives.asymmetric import ec, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .keys import (AESKW, SECRET_SIZE, ECDSA256P1Public, KeyTypeError,
                   RSAPublic)

logger = logging.getLogger(__name__)

NONCE_SIZE = 8
AES_BLOCK_SIZE = 16
ECIES_INFO = b'MCUBoot_ECIES_v1'


def generate_plain_secret():
    """Randomly generate a 16 byte image-encrypting secret."""
    return os.urandom(SECRET_SIZE)


def derive_nonce(body):
    """Nonce for images whose secret lives in the loader's key store: the
    start of the SHA-256 of the plaintext body."""
    return hashlib.sha256(body).digest()[:NONCE_SIZE]


def _counter_block(nonce):
    if nonce is None:
        return bytes(AES_BLOCK_SIZE)
    nonce = bytes(nonce)
    if len(nonce) > AES_BLOCK_SIZE:
        raise ValueError("AES nonce too long: {}".format(len(nonce)))
    return nonce + bytes(AES_BLOCK_SIZE - len(nonce))


def encrypt_aes(plain, secret, nonce=None):
    """Encrypt plain with AES-CTR.

    The initial counter block is the nonce followed by zeros (all zeros when
    there is no nonce).  The ciphertext has the same length as plain.
    """
    cipher = Cipher(algorithms.AES(secret), modes.CTR(_counter_block(nonce)))
    encryptor = cipher.encryptor()
    return encryptor.update(bytes(plain)) + encryptor.finalize()


def ecies_hkdf(enckey, plainkey):
    newpk = ec.generate_private_key(ec.SECP256R1())
    shared = newpk.exchange(ec.ECDH(), enckey._get_public())
    derived_key = HKDF(
        algorithm=hashes.SHA256(), length=48, salt=None,
        info=ECIES_INFO).derive(shared)
    encryptor = Cipher(algorithms.AES(derived_key[:16]),
                       modes.CTR(bytes([0] * 16))).encryptor()
    cipherkey = encryptor.update(plainkey) + encryptor.finalize()
    mac = hmac.HMAC(derived_key[16:], hashes.SHA256())
    mac.update(cipherkey)
    ciphermac = mac.finalize()
    pubk = newpk.public_key().public_bytes(
        encoding=Encoding.X962,
        format=PublicFormat.UncompressedPoint)
    return cipherkey, ciphermac, pubk


def wrap_secret(enckey, plainkey):
    """Encrypt the image secret so only the holder of enckey can recover it.

    The length of the result identifies the wrapping to the bootloader:
    256 bytes for RSA-2048 OAEP, 113 for ECIES-P256, 24 for AES-KW.
    """
    if isinstance(enckey, RSAPublic):
        logger.debug("wrapping secret with RSA-OAEP")
        return enckey._get_public().encrypt(
            plainkey, padding.OAEP(
                mgf=padding.MGF1(algorithm=hashes.SHA256()),
                algorithm=hashes.SHA256(),
                label=None))
    elif isinstance(enckey, ECDSA256P1Public):
        logger.debug("wrapping secret with ECIES-P256")
        cipherkey, mac, pubk = ecies_hkdf(enckey, plainkey)
        return pubk + mac + cipherkey
    elif isinstance(enckey, AESKW):
        logger.debug("wrapping secret with AES key wrap")
        return keywrap.aes_key_wrap(enckey.get_key(), plainkey)
    raise KeyTypeError("Unsupported encryption key: {}".format(
        type(enckey).__name__))
