"""
RSA Key management
"""

# SPDX-License-Identifier: Apache-2.0

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from .general import KeyClass, KeyTypeError, SigType


# Sizes that bootutil is known to work with, keyed by modulus bytes.
RSA_SIG_TYPES = {
    256: SigType.RSA2048,
    384: SigType.RSA3072,
}


class RSAUsageError(Exception):
    pass


def pss_padding():
    # Salt length equals the SHA-256 digest length.
    return padding.PSS(mgf=padding.MGF1(hashes.SHA256()),
                       salt_length=padding.PSS.DIGEST_LENGTH)


class RSAPublic(KeyClass):
    """The public key can only do a few operations"""
    def __init__(self, key):
        self.key = key

    def key_size(self):
        return self.key.key_size

    def shortname(self):
        return "rsa"

    def _unsupported(self, name):
        raise RSAUsageError("Operation {} requires private key".format(name))

    def _get_public(self):
        return self.key

    def _check_key(self):
        if not isinstance(self._get_public(), rsa.RSAPublicKey):
            raise KeyTypeError("RSA key wraps a {}".format(
                type(self.key).__name__))

    def get_public_bytes(self):
        # The key embedded into the bootloader is in PKCS1 format.
        return self._get_public().public_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PublicFormat.PKCS1)

    def get_public_pem(self):
        return self._get_public().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo)

    def sig_type(self):
        modulus_bytes = (self.key_size() + 7) // 8
        try:
            return RSA_SIG_TYPES[modulus_bytes]
        except KeyError:
            raise KeyTypeError("Unsupported RSA key size: {}".format(
                self.key_size()))

    def sig_tlv(self):
        return self.sig_type().value

    def sig_len(self):
        return (self.key_size() + 7) // 8

    def verify_digest(self, signature, digest):
        return self._get_public().verify(
                signature=signature,
                data=digest,
                padding=pss_padding(),
                algorithm=Prehashed(hashes.SHA256()))

    def sign_digest(self, digest):
        self._unsupported('sign_digest')


class RSA(RSAPublic):
    """
    Wrapper around an RSA private key.
    """

    def __init__(self, key):
        """The key should be a private key from cryptography"""
        self.key = key

    def _get_public(self):
        return self.key.public_key()

    def _check_key(self):
        if not isinstance(self.key, rsa.RSAPrivateKey):
            raise KeyTypeError("RSA signing key wraps a {}".format(
                type(self.key).__name__))

    def sign_digest(self, digest):
        """Sign an already computed SHA-256 digest with RSA-PSS"""
        return self.key.sign(data=digest,
                             padding=pss_padding(),
                             algorithm=Prehashed(hashes.SHA256()))
