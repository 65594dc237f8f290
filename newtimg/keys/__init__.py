# Copyright 2017 Linaro Limited
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
Cryptographic key loading for newtimg.
"""

import base64
import binascii

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ec import (
    EllipticCurvePrivateKey, EllipticCurvePublicKey)
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey, Ed25519PublicKey)
from cryptography.hazmat.primitives.asymmetric.rsa import (
    RSAPrivateKey, RSAPublicKey)

from .aeskw import AESKW, KEK_SIZE
from .ecdsa import (
    CURVE_CLASSES, ECDSA224P1, ECDSA224P1Public, ECDSA256P1, ECDSA256P1Public,
    ECDSAUsageError)
from .ed25519 import Ed25519, Ed25519Public, Ed25519UsageError
from .general import KeyTypeError, SigType
from .rsa import RSA, RSAPublic, RSAUsageError

# Image encryption secrets are AES-128 keys.
SECRET_SIZE = 16


class PasswordRequired(Exception):
    """Raised to indicate that the key is password protected, but a
    password was not specified."""
    pass


def _wrap_ec(pk, private):
    try:
        priv_class, pub_class = CURVE_CLASSES[pk.curve.name]
    except KeyError:
        raise KeyTypeError("Unsupported EC curve: {}".format(pk.curve.name))
    return priv_class(pk) if private else pub_class(pk)


def wrap(pk):
    """Wrap a cryptography key object in the matching key class."""
    if isinstance(pk, RSAPrivateKey):
        return RSA(pk)
    elif isinstance(pk, RSAPublicKey):
        return RSAPublic(pk)
    elif isinstance(pk, EllipticCurvePrivateKey):
        return _wrap_ec(pk, private=True)
    elif isinstance(pk, EllipticCurvePublicKey):
        return _wrap_ec(pk, private=False)
    elif isinstance(pk, Ed25519PrivateKey):
        return Ed25519(pk)
    elif isinstance(pk, Ed25519PublicKey):
        return Ed25519Public(pk)
    else:
        raise KeyTypeError("Unknown key type: " + str(type(pk)))


def load(path, passwd=None):
    """Try loading a key from the given path.  Returns None if the password
    wasn't specified."""
    with open(path, 'rb') as f:
        raw_pem = f.read()
    try:
        pk = serialization.load_pem_private_key(
                raw_pem,
                password=passwd)
    # This is a bit nonsensical of an exception, but it is what
    # cryptography seems to currently raise if the password is needed.
    except TypeError:
        return None
    except ValueError:
        # This seems to happen if the key is a public key, let's try
        # loading it as a public key.
        pk = serialization.load_pem_public_key(raw_pem)

    return wrap(pk)


def load_enc_key(path):
    """Load the key that wraps the image encryption secret.

    This is either a PEM public key (RSA or EC P-256) or a base64 encoded
    128 bit key-encryption key.
    """
    with open(path, 'rb') as f:
        raw = f.read()
    try:
        pk = serialization.load_pem_public_key(raw)
    except ValueError:
        try:
            kek = base64.b64decode(raw.strip(), validate=True)
        except binascii.Error:
            raise KeyTypeError(
                "Encryption key is neither a PEM public key nor a base64 "
                "encoded {} byte key-encryption key".format(KEK_SIZE))
        return AESKW(kek)

    key = wrap(pk)
    if not isinstance(key, (RSAPublic, ECDSA256P1Public)):
        raise KeyTypeError("Images cannot be encrypted with a {} key".format(
            key.shortname()))
    return key


def load_secret(path):
    """Load a plaintext secret stored base64 encoded."""
    with open(path, 'rb') as f:
        raw = f.read()
    try:
        secret = base64.b64decode(raw.strip(), validate=True)
    except binascii.Error:
        raise KeyTypeError("Secret in {} is not base64 encoded".format(path))
    if len(secret) != SECRET_SIZE:
        raise KeyTypeError("Secret in {} must be {} bytes, not {}".format(
            path, SECRET_SIZE, len(secret)))
    return secret
