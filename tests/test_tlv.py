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

import hashlib

import pytest

from newtimg import tlv


@pytest.mark.parametrize(
    "length, name",
    [
        (256, "ENC_RSA"),
        (113, "ENC_EC256"),
        (24, "ENC_KEK"),
    ],
)
def test_enc_tlv_type_by_size(length, name):
    assert tlv.enc_tlv_type(length) == tlv.TLV_VALUES[name]

    record = tlv.enc_tlv(bytes(length))
    assert record.type == tlv.TLV_VALUES[name]
    assert len(record.data) == length


@pytest.mark.parametrize("length", [0, 16, 23, 25, 50, 112, 114, 255, 257, 384])
def test_enc_tlv_invalid_size(length):
    with pytest.raises(tlv.TlvSizeError, match="invalid enc TLV size: {}"
                       .format(length)):
        tlv.enc_tlv(bytes(length))


def test_record_encoding():
    record = tlv.Tlv('SHA256', b'\xaa' * 32)
    assert len(record) == tlv.TLV_SIZE + 32
    assert record.header() == bytes([0x10, 0x00, 0x20, 0x00])
    assert record.encode() == record.header() + b'\xaa' * 32
    assert record.name == 'SHA256'


def test_record_length_is_little_endian():
    record = tlv.Tlv('SECTION', bytes(0x1234))
    assert record.header() == bytes([0xa3, 0x00, 0x34, 0x12])


def test_record_too_long():
    with pytest.raises(tlv.TlvSizeError):
        tlv.Tlv('SECTION', bytes(tlv.TLV_MAX_LEN + 1))


def test_unknown_record_name():
    with pytest.raises(tlv.TlvError):
        tlv.Tlv('NOPE', b'')


@pytest.mark.parametrize(
    "legacy, name",
    [
        (False, "SECRET_ID"),
        (True, "SECRET_ID_LEGACY"),
    ],
)
def test_hw_key_index_tlv(legacy, name):
    record = tlv.hw_key_index_tlv(0x01020304, legacy)
    assert record.type == tlv.TLV_VALUES[name]
    assert record.data == bytes([0x04, 0x03, 0x02, 0x01])


@pytest.mark.parametrize(
    "legacy, name",
    [
        (False, "AES_NONCE"),
        (True, "AES_NONCE_LEGACY"),
    ],
)
def test_nonce_tlv(legacy, name):
    nonce = bytes(range(8))
    record = tlv.nonce_tlv(nonce, legacy)
    assert record.type == tlv.TLV_VALUES[name]
    assert record.data == nonce


def test_section_tlv():
    record = tlv.section_tlv(tlv.Section("text", 0x100, 0x2000))
    assert record.type == tlv.TLV_VALUES["SECTION"]
    assert record.data == (bytes([0x00, 0x01, 0x00, 0x00]) +
                           bytes([0x00, 0x20, 0x00, 0x00]) + b"text")
    assert len(record) == tlv.TLV_SIZE + 8 + 4


def test_key_hash_tlv():
    pub = b"not really a public key"
    record = tlv.key_hash_tlv(pub)
    assert record.type == tlv.TLV_VALUES["KEYHASH"]
    assert record.data == hashlib.sha256(pub).digest()[:tlv.KEYHASH_SIZE]


def test_digest_tlv():
    digest = hashlib.sha256(b"body").digest()
    record = tlv.digest_tlv(digest)
    assert record.type == tlv.TLV_VALUES["SHA256"]
    assert record.data == digest


def test_tlvs_size():
    records = [tlv.digest_tlv(bytes(32)), tlv.nonce_tlv(bytes(8))]
    assert tlv.tlvs_size(records) == 2 * tlv.TLV_SIZE + 40
    assert tlv.tlvs_size([]) == 0


@pytest.mark.parametrize("index", [-1, 0x100000000])
def test_hw_key_index_out_of_range(index):
    with pytest.raises(tlv.TlvError, match="key index out of range"):
        tlv.hw_key_index_tlv(index)


@pytest.mark.parametrize(
    "offset, size",
    [
        (-1, 0x100),
        (0x100000000, 0x100),
        (0, -1),
        (0, 0x100000000),
    ],
)
def test_section_out_of_range(offset, size):
    with pytest.raises(tlv.TlvError, match="out of range"):
        tlv.section_tlv(tlv.Section("text", offset, size))
