"""
ED25519 key management
"""

# SPDX-License-Identifier: Apache-2.0

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from .general import KeyClass, KeyTypeError, SigType

SIGNATURE_SIZE = 64


class Ed25519UsageError(Exception):
    pass


class Ed25519Public(KeyClass):
    def __init__(self, key):
        self.key = key

    def shortname(self):
        return "ed25519"

    def _unsupported(self, name):
        raise Ed25519UsageError("Operation {} requires private key".format(name))

    def _get_public(self):
        return self.key

    def _check_key(self):
        if not isinstance(self._get_public(), ed25519.Ed25519PublicKey):
            raise KeyTypeError("Ed25519 key wraps a {}".format(
                type(self.key).__name__))

    def get_public_bytes(self):
        # The key is embedded into the bootloader in "SubjectPublicKeyInfo"
        # format
        return self._get_public().public_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PublicFormat.SubjectPublicKeyInfo)

    def get_public_pem(self):
        return self._get_public().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo)

    def sig_type(self):
        return SigType.ED25519

    def sig_tlv(self):
        return "ED25519"

    def sig_len(self):
        return SIGNATURE_SIZE

    def verify_digest(self, signature, digest):
        return self._get_public().verify(signature=signature, data=digest)

    def sign_digest(self, digest):
        self._unsupported('sign_digest')


class Ed25519(Ed25519Public):
    """
    Wrapper around an ED25519 private key.
    """

    def __init__(self, key):
        """key should be an instance of Ed25519PrivateKey"""
        self.key = key

    def _get_public(self):
        return self.key.public_key()

    def _check_key(self):
        if not isinstance(self.key, ed25519.Ed25519PrivateKey):
            raise KeyTypeError("Ed25519 signing key wraps a {}".format(
                type(self.key).__name__))

    def sign_digest(self, digest):
        """Return the signature of the digest itself; Ed25519 is
        deterministic so the same digest always signs the same way."""
        return self.key.sign(data=digest)
