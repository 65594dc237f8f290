# SPDX-License-Identifier: Apache-2.0

"""General key class."""

import sys
from enum import Enum

from ..tlv import raw_key_hash

AUTOGEN_MESSAGE = "/* Autogenerated by newtimg, do not edit. */"


class SigType(Enum):
    RSA2048 = 'RSA2048'
    RSA3072 = 'RSA3072'
    ECDSA224 = 'ECDSA224'
    ECDSA256 = 'ECDSA256'
    ED25519 = 'ED25519'


class KeyTypeError(Exception):
    """The key is of a type or size images cannot be signed with."""
    pass


class KeyClass(object):
    def _emit(self, header, trailer, encoded_bytes, indent, file=sys.stdout,
              len_format=None):
        print(AUTOGEN_MESSAGE, file=file)
        print(header, end='', file=file)
        for count, b in enumerate(encoded_bytes):
            if count % 8 == 0:
                print("\n" + indent, end='', file=file)
            else:
                print(" ", end='', file=file)
            print("0x{:02x},".format(b), end='', file=file)
        print("\n" + trailer, file=file)
        if len_format is not None:
            print(len_format.format(len(encoded_bytes)), file=file)

    def key_hash(self):
        return raw_key_hash(self.get_public_bytes())

    def emit_c_public_hash(self, file=sys.stdout):
        self._emit(
                header="const unsigned char {}_pub_key_hash[] = {{"
                       .format(self.shortname()),
                trailer="};",
                encoded_bytes=self.key_hash(),
                indent="    ",
                len_format="const unsigned int {}_pub_key_hash_len = {{}};"
                           .format(self.shortname()),
                file=file)

    def emit_raw_public_hash(self, file=sys.stdout):
        if file is sys.stdout:
            print(self.key_hash().hex(), file=file)
        else:
            with open(file, 'wb') as f:
                f.write(self.key_hash())

    def assert_valid(self):
        """Check that the wrapped key object matches the declared type."""
        self._check_key()
        self.sig_type()
