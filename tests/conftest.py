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
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

from newtimg import keys


def generate_key(key_type):
    if key_type == "rsa-2048":
        return keys.RSA(rsa.generate_private_key(65537, 2048))
    elif key_type == "rsa-3072":
        return keys.RSA(rsa.generate_private_key(65537, 3072))
    elif key_type == "ecdsa-p224":
        return keys.ECDSA224P1(ec.generate_private_key(ec.SECP224R1()))
    elif key_type == "ecdsa-p256":
        return keys.ECDSA256P1(ec.generate_private_key(ec.SECP256R1()))
    elif key_type == "ed25519":
        return keys.Ed25519(ed25519.Ed25519PrivateKey.generate())
    raise ValueError(key_type)


def write_private_pem(key, path):
    pem = key.key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption())
    path.write_bytes(pem)
    return path


def write_public_pem(key, path):
    path.write_bytes(key.get_public_pem())
    return path


@pytest.fixture(scope="session")
def signing_keys():
    """One key of every supported signing type, generated once."""
    return {key_type: generate_key(key_type)
            for key_type in ("rsa-2048", "rsa-3072", "ecdsa-p224",
                             "ecdsa-p256", "ed25519")}


@pytest.fixture(scope="session")
def ed25519_key(signing_keys):
    return signing_keys["ed25519"]
