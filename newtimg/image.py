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
Image creation.

An image is laid out as::

    header | header padding | body | [prot trailer | protected TLVs]
           | trailer | TLVs

The digest covers everything up to the end of the protected TLVs, with the
body in plaintext.  Creation therefore runs in a fixed order: the
protected size is written into the header, then the digest is computed,
then the body is encrypted, then the digest and signatures are appended.
Each stage takes a value only the previous stage produces
(``ImageHeader.finalize`` -> ``FinalizedHeader`` -> ``calc_hash`` ->
``ImageDigest``), so the order cannot be shuffled by accident.
"""

import hashlib
import logging
import os.path
import struct
from collections import namedtuple

from intelhex import IntelHex

from . import encrypt, keys
from . import version as versmod
from .sign import build_sig_tlvs
from .tlv import (PROT_TRAILER_MAGIC, TLV_SIZE, TRAILER_MAGIC, TRAILER_SIZE,
                  digest_tlv, enc_tlv, encode_trailer, hw_key_index_tlv,
                  nonce_tlv, section_tlv, tlvs_size, Section)

logger = logging.getLogger(__name__)

IMAGE_MAGIC = 0x96f3b83d
IMAGE_HEADER_SIZE = 32
BIN_EXT = "bin"
INTEL_HEX_EXT = "hex"
BODY_PAD_VALUE = 0xff

# Image header flags.
IMAGE_F = {
        'PIC':                   0x0000001,
        'ENCRYPTED':             0x0000004,
        'NON_BOOTABLE':          0x0000010,
}

HEADER_FMT = ('<' +
              # type ImageHdr struct {
              'I' +     # Magic    uint32
              'I' +     # Pad1     uint32
              'H' +     # HdrSz    uint16
              'H' +     # ProtSz   uint16
              'I' +     # ImgSz    uint32
              'I' +     # Flags    uint32
              'BBHI' +  # Vers     ImageVersion
              'I'       # Pad3     uint32
              )  # }
assert struct.calcsize(HEADER_FMT) == IMAGE_HEADER_SIZE

MAX_HEADER_SIZE = 0xffff
MAX_PROT_SIZE = 0xffff
MAX_IMAGE_SIZE = 0xffffffff


class ImageError(Exception):
    pass


class ImageHeader(namedtuple('ImageHeader', ['magic', 'hdr_size', 'prot_size',
                                             'img_size', 'flags', 'version'])):
    """Image header whose protected size is not known yet."""
    __slots__ = ()

    def pack(self):
        return struct.pack(HEADER_FMT,
                           self.magic,
                           0,  # Pad1
                           self.hdr_size,
                           self.prot_size,
                           self.img_size,
                           self.flags,
                           self.version.major,
                           self.version.minor or 0,
                           self.version.revision or 0,
                           self.version.build or 0,
                           0)  # Pad3

    def has_flag(self, name):
        return bool(self.flags & IMAGE_F[name])

    def finalize(self, prot_tlvs):
        """Return the header with its protected size set for prot_tlvs."""
        return FinalizedHeader(*self._replace(
            prot_size=calc_prot_size(prot_tlvs)))


class FinalizedHeader(ImageHeader):
    """Image header whose protected size field is final."""
    __slots__ = ()

    def finalize(self, prot_tlvs):
        raise ImageError("image header is already finalized")


ImageDigest = namedtuple('ImageDigest', ['digest'])


def calc_prot_size(prot_tlvs):
    """Size in bytes of the protected TLV area, trailer included."""
    size = sum(TLV_SIZE + len(tlv.data) for tlv in prot_tlvs)
    if size > 0:
        size += TRAILER_SIZE
    if size > MAX_PROT_SIZE:
        raise ImageError("protected TLV area too large: {} bytes".format(size))
    return size


def calc_hash(initial_hash, hdr, pad, plain_body, prot_tlvs):
    """Compute the SHA-256 image digest.

    The digest covers, in order: the initial hash (when chaining to a loader
    image), the header, the header padding, the plaintext body and, if
    there are protected TLVs, the protected trailer and every protected TLV.
    """
    if not isinstance(hdr, FinalizedHeader):
        raise TypeError("image digest needs a finalized header, got {}"
                        .format(type(hdr).__name__))

    sha = hashlib.sha256()
    if initial_hash is not None:
        sha.update(initial_hash)
    sha.update(hdr.pack())
    sha.update(pad)
    sha.update(plain_body)

    if len(prot_tlvs) > 0:
        sha.update(encode_trailer(PROT_TRAILER_MAGIC, hdr.prot_size))
        for tlv in prot_tlvs:
            sha.update(tlv.header())
            sha.update(tlv.data)

    return ImageDigest(sha.digest())


class Image(namedtuple('Image', ['header', 'pad', 'prot_tlvs', 'body',
                                 'tlvs'])):
    """A complete image.  Produced by ImageCreator, never modified after."""
    __slots__ = ()

    def digest(self):
        for tlv in self.tlvs:
            if tlv.name == 'SHA256':
                return tlv.data
        return None

    def prot_bytes(self):
        if len(self.prot_tlvs) == 0:
            return b''
        return (encode_trailer(PROT_TRAILER_MAGIC, self.header.prot_size) +
                b''.join(tlv.encode() for tlv in self.prot_tlvs))

    def tlv_bytes(self):
        tot_len = TRAILER_SIZE + tlvs_size(self.tlvs)
        return (encode_trailer(TRAILER_MAGIC, tot_len) +
                b''.join(tlv.encode() for tlv in self.tlvs))

    def to_bytes(self):
        return (self.header.pack() + self.pad + self.body +
                self.prot_bytes() + self.tlv_bytes())

    def total_size(self):
        return (self.header.hdr_size + len(self.body) +
                self.header.prot_size + TRAILER_SIZE + tlvs_size(self.tlvs))

    def save(self, path, hex_addr=None):
        """Save the image to path, as Intel HEX if it ends in .hex"""
        ext = os.path.splitext(path)[1][1:].lower()
        if ext == INTEL_HEX_EXT:
            if hex_addr is None:
                raise ImageError("No address exists in input file "
                                 "neither was it provided by user")
            h = IntelHex()
            h.frombytes(bytes=self.to_bytes(), offset=hex_addr)
            h.tofile(path, 'hex')
        else:
            with open(path, 'wb') as f:
                f.write(self.to_bytes())


class ImageCreator:

    def __init__(self, body=b'', version=None, sig_keys=None, sections=None,
                 hw_key_index=None, nonce=None, plain_secret=None,
                 cipher_secret=None, header_size=IMAGE_HEADER_SIZE,
                 initial_hash=None, use_legacy_tlv=False):
        self.body = bytes(body)
        self.version = version or versmod.decode_version("0")
        self.sig_keys = list(sig_keys or [])
        self.sections = list(sections or [])
        self.hw_key_index = hw_key_index
        self.nonce = nonce
        self.plain_secret = plain_secret
        self.cipher_secret = cipher_secret
        self.header_size = header_size
        self.initial_hash = initial_hash
        self.use_legacy_tlv = use_legacy_tlv

    def __repr__(self):
        return "<ImageCreator version={}, header_size={}, keys={}, " \
               "sections={}, hw_key_index={}, encrypted={}, " \
               "bodylen=0x{:x}>".format(
                   self.version,
                   self.header_size,
                   len(self.sig_keys),
                   len(self.sections),
                   self.hw_key_index,
                   self.plain_secret is not None,
                   len(self.body))

    def _header_skeleton(self):
        if len(self.body) > MAX_IMAGE_SIZE:
            raise ImageError("image body too large: {} bytes".format(
                len(self.body)))

        flags = 0
        if self.initial_hash is not None:
            # Chained to a loader image; the loader boots it, not the
            # bootloader.
            flags |= IMAGE_F['NON_BOOTABLE']
        if self.cipher_secret is not None and self.hw_key_index is None:
            flags |= IMAGE_F['ENCRYPTED']

        return ImageHeader(magic=IMAGE_MAGIC,
                           hdr_size=IMAGE_HEADER_SIZE,
                           prot_size=0,
                           img_size=len(self.body),
                           flags=flags,
                           version=self.version)

    def _header_pad(self):
        # There will just be zeros between the header and the start of the
        # image when it is padded.
        extra = self.header_size - IMAGE_HEADER_SIZE
        if extra < 0:
            raise ImageError("image header must be at least {} bytes".format(
                IMAGE_HEADER_SIZE))
        if self.header_size > MAX_HEADER_SIZE:
            raise ImageError("image header too large: {} bytes".format(
                self.header_size))
        return bytes(extra)

    def _nonce(self):
        if self.nonce is None:
            return encrypt.derive_nonce(self.body)
        return self.nonce

    def _protected_tlvs(self):
        prot_tlvs = []
        if self.hw_key_index is not None:
            prot_tlvs.append(hw_key_index_tlv(self.hw_key_index,
                                              self.use_legacy_tlv))
            prot_tlvs.append(nonce_tlv(self._nonce(), self.use_legacy_tlv))
        for section in self.sections:
            prot_tlvs.append(section_tlv(section))
        return prot_tlvs

    def _stored_body(self, image_digest):
        if not isinstance(image_digest, ImageDigest):
            raise TypeError("body can only be encrypted once hashed")
        if self.plain_secret is None:
            return self.body

        nonce = self._nonce() if self.hw_key_index is not None else None
        logger.info("encrypting %d byte body", len(self.body))
        return encrypt.encrypt_aes(self.body, self.plain_secret, nonce)

    def _trailing_tlvs(self, image_digest):
        tlvs = [digest_tlv(image_digest.digest)]
        tlvs += build_sig_tlvs(self.sig_keys, image_digest.digest)
        if self.hw_key_index is None and self.cipher_secret is not None:
            tlvs.append(enc_tlv(self.cipher_secret))
        return tlvs

    def create(self):
        """Produce an Image."""
        hdr = self._header_skeleton()
        pad = self._header_pad()
        hdr = hdr._replace(hdr_size=self.header_size)

        prot_tlvs = self._protected_tlvs()
        hdr = hdr.finalize(prot_tlvs)
        logger.debug("protected TLV size: %d", hdr.prot_size)

        # The digest covers the plaintext body; encryption comes after.
        image_digest = calc_hash(self.initial_hash, hdr, pad, self.body,
                                 prot_tlvs)
        logger.info("image digest: %s", image_digest.digest.hex())

        body = self._stored_body(image_digest)
        tlvs = self._trailing_tlvs(image_digest)

        return Image(header=hdr, pad=pad, prot_tlvs=tuple(prot_tlvs),
                     body=body, tlvs=tuple(tlvs))


ImageCreateOpts = namedtuple('ImageCreateOpts', [
    'src_bin_filename',
    'src_enc_key_filename',
    'src_enc_key_index',
    'version',
    'sig_keys',
    'sections',
    'loader_hash',
    'hdr_pad',
    'image_pad',
    'use_legacy_tlv',
])
ImageCreateOpts.__new__.__defaults__ = (None, None, None, (), (), None, 0, 0,
                                        False)


def load_body(path):
    """Load an image body from a binary or Intel HEX file.

    Returns the body and the base address (None for binary files).
    """
    ext = os.path.splitext(path)[1][1:].lower()
    if ext == INTEL_HEX_EXT:
        ih = IntelHex(path)
        return bytes(ih.tobinarray()), ih.minaddr()
    with open(path, 'rb') as f:
        return f.read(), None


def pad_body(body, modulus):
    """Append modulus - (len(body) % modulus) bytes of 0xff to body.

    A body that is already aligned gets a full block of padding.
    """
    if not modulus:
        return body
    if modulus < 0:
        raise ImageError("invalid image pad: {}".format(modulus))
    tail_pad = modulus - len(body) % modulus
    return body + bytes([BODY_PAD_VALUE]) * tail_pad


def generate_image(opts):
    """Produce an Image from a set of image creation options."""
    body, _ = load_body(opts.src_bin_filename)
    body = pad_body(body, opts.image_pad)

    ic = ImageCreator(body=body,
                      version=opts.version,
                      sig_keys=opts.sig_keys,
                      sections=opts.sections,
                      hw_key_index=opts.src_enc_key_index,
                      initial_hash=opts.loader_hash,
                      use_legacy_tlv=opts.use_legacy_tlv)
    if opts.hdr_pad > 0:
        ic.header_size = opts.hdr_pad

    if opts.src_enc_key_filename:
        if ic.hw_key_index is None:
            enckey = keys.load_enc_key(opts.src_enc_key_filename)
            ic.plain_secret = encrypt.generate_plain_secret()
            ic.cipher_secret = encrypt.wrap_secret(enckey, ic.plain_secret)
        else:
            # The loader finds the secret in its key store; only the index
            # goes into the image.
            ic.plain_secret = keys.load_secret(opts.src_enc_key_filename)

    logger.debug("creating %r", ic)
    return ic.create()
