"""
AES key-encryption keys
"""

# SPDX-License-Identifier: Apache-2.0

from .general import KeyClass, KeyTypeError

KEK_SIZE = 16


class AESKW(KeyClass):
    """A 128 bit key-encryption key shared with the bootloader."""

    def __init__(self, key):
        if len(key) != KEK_SIZE:
            raise KeyTypeError("Invalid AES key length for AES-KW: must be "
                               "{} bytes, not {}.".format(KEK_SIZE, len(key)))
        self.key = bytes(key)

    def shortname(self):
        return "aeskw"

    def get_key(self):
        return self.key

    def key_size(self):
        return len(self.key)
