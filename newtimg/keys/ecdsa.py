"""
ECDSA key management
"""

# SPDX-License-Identifier: Apache-2.0

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from cryptography.hazmat.primitives.hashes import SHA256

from .general import KeyClass, KeyTypeError, SigType


class ECDSAUsageError(Exception):
    pass


class ECDSAPublicKey(KeyClass):
    """
    Wrapper around an ECDSA public key.
    """
    curve = None

    def __init__(self, key):
        self.key = key

    def _unsupported(self, name):
        raise ECDSAUsageError("Operation {} requires private key".format(name))

    def _get_public(self):
        return self.key

    def _check_key(self):
        pub = self._get_public()
        if not isinstance(pub, ec.EllipticCurvePublicKey):
            raise KeyTypeError("{} wraps a {}".format(
                type(self).__name__, type(self.key).__name__))
        if not isinstance(pub.curve, self.curve):
            raise KeyTypeError("{} wraps a key on curve {}".format(
                type(self).__name__, pub.curve.name))

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

    def sig_tlv(self):
        return self.sig_type().value

    def verify_digest(self, signature, digest):
        return self._get_public().verify(
                signature=signature, data=digest,
                signature_algorithm=ec.ECDSA(Prehashed(SHA256())))

    def sign_digest(self, digest):
        self._unsupported('sign_digest')


class ECDSAPrivateKey(ECDSAPublicKey):
    """
    Wrapper around an ECDSA private key.
    """
    def _get_public(self):
        return self.key.public_key()

    def _check_key(self):
        if not isinstance(self.key, ec.EllipticCurvePrivateKey):
            raise KeyTypeError("{} signing key wraps a {}".format(
                type(self).__name__, type(self.key).__name__))
        super()._check_key()

    def sign_digest(self, digest):
        """Return the DER encoded (r, s) signature of a SHA-256 digest"""
        return self.key.sign(
                data=digest,
                signature_algorithm=ec.ECDSA(Prehashed(SHA256())))


class ECDSA224P1Public(ECDSAPublicKey):
    """
    Wrapper around an ECDSA (p224) public key.
    """
    curve = ec.SECP224R1

    def shortname(self):
        return "ecdsap224"

    def sig_type(self):
        return SigType.ECDSA224

    def sig_len(self):
        # The DER encoding depends on the high bit of r and s, so its
        # length varies from one signature to the next.  This is the
        # slot size the bootloader reserves.
        return 68


class ECDSA224P1(ECDSAPrivateKey, ECDSA224P1Public):
    """
    Wrapper around an ECDSA (p224) private key.
    """


class ECDSA256P1Public(ECDSAPublicKey):
    """
    Wrapper around an ECDSA (p256) public key.
    """
    curve = ec.SECP256R1

    def shortname(self):
        return "ecdsa"

    def sig_type(self):
        return SigType.ECDSA256

    def sig_len(self):
        # Anywhere from 70 to 72 bytes of DER; the largest is reserved.
        return 72


class ECDSA256P1(ECDSAPrivateKey, ECDSA256P1Public):
    """
    Wrapper around an ECDSA (p256) private key.
    """


CURVE_CLASSES = {
    ec.SECP224R1.name: (ECDSA224P1, ECDSA224P1Public),
    ec.SECP256R1.name: (ECDSA256P1, ECDSA256P1Public),
}
