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
Image TLV records.

Every record is a 4 byte header (type, pad, little-endian length) followed
by its payload.  The builders in this module map semantic values (a key
index, a nonce, a section, a wrapped secret, ...) to records.
"""

import hashlib
import struct
from collections import namedtuple

TLV_VALUES = {
        'KEYHASH': 0x01,
        'SHA256': 0x10,
        'RSA2048': 0x20,
        'ECDSA224': 0x21,
        'ECDSA256': 0x22,
        'RSA3072': 0x23,
        'ED25519': 0x24,
        'ENC_RSA': 0x30,
        'ENC_KEK': 0x31,
        'ENC_EC256': 0x32,
        'AES_NONCE_LEGACY': 0x35,
        'SECRET_ID_LEGACY': 0x36,
        'AES_NONCE': 0xa1,
        'SECRET_ID': 0xa2,
        'SECTION': 0xa3,
}

TLV_NAMES = {v: k for k, v in TLV_VALUES.items()}

TLV_HDR_FMT = '<BBH'
TLV_SIZE = struct.calcsize(TLV_HDR_FMT)
TLV_MAX_LEN = 0xffff

TRAILER_FMT = '<HH'
TRAILER_SIZE = struct.calcsize(TRAILER_FMT)
TRAILER_MAGIC = 0x6907
PROT_TRAILER_MAGIC = 0x6908

KEYHASH_SIZE = 4
HW_KEY_INDEX_FMT = '<I'
SECTION_FMT = '<II'
U32_MAX = 0xffffffff

# Wrapped secret length -> TLV name.  The length is the only thing telling
# the loader how the secret was wrapped.
ENC_TLV_SIZES = {
    256: 'ENC_RSA',
    113: 'ENC_EC256',
    24: 'ENC_KEK',
}


class TlvError(Exception):
    pass


class TlvSizeError(TlvError):
    pass


Section = namedtuple('Section', ['name', 'offset', 'size'])


class Tlv(namedtuple('Tlv', ['type', 'data'])):
    """A single TLV record.  The pad byte is always zero."""
    __slots__ = ()

    def __new__(cls, kind, data):
        if isinstance(kind, str):
            if kind not in TLV_VALUES:
                raise TlvError("Unknown TLV type string: {}".format(kind))
            kind = TLV_VALUES[kind]
        data = bytes(data)
        if len(data) > TLV_MAX_LEN:
            raise TlvSizeError("TLV 0x{:02x} payload too long: {}".format(
                kind, len(data)))
        return super().__new__(cls, kind, data)

    def __len__(self):
        return TLV_SIZE + len(self.data)

    @property
    def name(self):
        return TLV_NAMES.get(self.type, hex(self.type))

    def header(self):
        return struct.pack(TLV_HDR_FMT, self.type, 0, len(self.data))

    def encode(self):
        return self.header() + self.data


def tlvs_size(tlvs):
    """On-wire size of a sequence of records, without any trailer."""
    return sum(len(tlv) for tlv in tlvs)


def encode_trailer(magic, tot_len):
    return struct.pack(TRAILER_FMT, magic, tot_len)


def raw_key_hash(pub_bytes):
    """Short identifier of a public key: the start of its SHA-256."""
    return hashlib.sha256(pub_bytes).digest()[:KEYHASH_SIZE]


def hw_key_index_tlv(index, use_legacy=False):
    if not 0 <= index <= U32_MAX:
        raise TlvError("key index out of range: {}".format(index))
    kind = 'SECRET_ID_LEGACY' if use_legacy else 'SECRET_ID'
    return Tlv(kind, struct.pack(HW_KEY_INDEX_FMT, index))


def nonce_tlv(nonce, use_legacy=False):
    kind = 'AES_NONCE_LEGACY' if use_legacy else 'AES_NONCE'
    return Tlv(kind, nonce)


def enc_tlv_type(length):
    """Select the wrapped-secret TLV type from the payload length."""
    try:
        return TLV_VALUES[ENC_TLV_SIZES[length]]
    except KeyError:
        raise TlvSizeError("invalid enc TLV size: {}".format(length))


def enc_tlv(cipher_secret):
    return Tlv(enc_tlv_type(len(cipher_secret)), cipher_secret)


def section_tlv(section):
    if not (0 <= section.offset <= U32_MAX and 0 <= section.size <= U32_MAX):
        raise TlvError("section {} out of range: offset={} size={}".format(
            section.name, section.offset, section.size))
    name = section.name
    if isinstance(name, str):
        name = name.encode('utf-8')
    data = struct.pack(SECTION_FMT, section.offset, section.size) + name
    return Tlv('SECTION', data)


def key_hash_tlv(pub_bytes):
    return Tlv('KEYHASH', raw_key_hash(pub_bytes))


def digest_tlv(digest):
    return Tlv('SHA256', digest)
