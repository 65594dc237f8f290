#! /usr/bin/env python3
#
# Copyright 2017-2020 Linaro Limited
# Copyright 2019-2023 Arm Limited
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

import getpass
import logging
import os.path
import sys

import click

import newtimg.keys as keys
from newtimg import image, newtimg_version
from newtimg.sign import SignatureError
from newtimg.tlv import U32_MAX, Section, TlvError
from newtimg.version import decode_version

MIN_PYTHON_VERSION = (3, 6)
if sys.version_info < MIN_PYTHON_VERSION:
    sys.exit("Python %s.%s or newer is required by newtimg."
             % MIN_PYTHON_VERSION)

valid_hash_encodings = ['lang-c', 'raw']
CREATE_ERRORS = (image.ImageError, TlvError, SignatureError,
                 keys.KeyTypeError, keys.RSAUsageError, keys.ECDSAUsageError,
                 keys.Ed25519UsageError)


def load_key(keyfile):
    # TODO: better handling of invalid pass-phrase
    key = keys.load(keyfile)
    if key is not None:
        return key
    passwd = getpass.getpass("Enter key passphrase: ").encode('utf-8')
    return keys.load(keyfile, passwd)


@click.option('-e', '--encoding', metavar='encoding',
              type=click.Choice(valid_hash_encodings),
              help='Valid encodings: {}. '
                   'Default value is {}.'
                   .format(', '.join(valid_hash_encodings),
                           valid_hash_encodings[1]))
@click.option('-k', '--key', metavar='filename', required=True)
@click.option('-o', '--output', metavar='output', required=False,
              help='Specify the output file\'s name. \
                    The stdout is used if it is not provided.')
@click.command(help='Dump the key hash that identifies the public key in '
                    'an image')
def getpubhash(key, output, encoding):
    if not encoding:
        encoding = valid_hash_encodings[1]
    key = load_key(key)

    if not output:
        output = sys.stdout
    if key is None:
        print("Invalid passphrase")
    elif encoding == 'lang-c':
        key.emit_c_public_hash(file=output)
    elif encoding == 'raw':
        key.emit_raw_public_hash(file=output)
    else:
        raise click.UsageError()


def validate_version(ctx, param, value):
    try:
        return decode_version(value)
    except ValueError as e:
        raise click.BadParameter("{}".format(e))


def validate_header_size(ctx, param, value):
    min_hdr_size = image.IMAGE_HEADER_SIZE
    if value < min_hdr_size:
        raise click.BadParameter(
            "Minimum value for -H/--header-size is {}".format(min_hdr_size))
    return value


def validate_loader_hash(ctx, param, value):
    if value is not None:
        try:
            return bytes.fromhex(value)
        except ValueError:
            raise click.BadParameter(
                "{} is not a hex encoded hash".format(value))


def get_sections(ctx, param, value):
    sections = []
    for text in value:
        try:
            name, offset, size = text.rsplit(':', 2)
            section = Section(name, int(offset, 0), int(size, 0))
        except ValueError:
            raise click.BadParameter(
                "Section format is invalid: {}, expected "
                "NAME:OFFSET:SIZE".format(text))
        if not (0 <= section.offset <= U32_MAX and
                0 <= section.size <= U32_MAX):
            raise click.BadParameter(
                "Section offset and size must be in range 0..0x{:x}: {}"
                .format(U32_MAX, text))
        sections.append(section)
    return sections


def validate_hw_key_index(ctx, param, value):
    if value is not None and not 0 <= value <= U32_MAX:
        raise click.BadParameter(
            "Key index must be in range 0..0x{:x}".format(U32_MAX))
    return value


class BasedIntParamType(click.ParamType):
    name = 'integer'

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return int(value, 0)
        except ValueError:
            self.fail('%s is not a valid integer. Please use code literals '
                      'prefixed with 0b/0B, 0o/0O, or 0x/0X as necessary.'
                      % value, param, ctx)


def default_hex_addr(infile, header_size):
    """Place the image so its body lands where the input hex file was."""
    _, base_addr = image.load_body(infile)
    if base_addr is None:
        return None
    return base_addr - header_size


@click.argument('outfile')
@click.argument('infile')
@click.option('-x', '--hex-addr', type=BasedIntParamType(), required=False,
              help='Adjust address in hex output file.')
@click.option('--legacy-tlvs', default=False, is_flag=True,
              help='Use the legacy TLV type codes for the key index and '
                   'nonce TLVs.')
@click.option('--loader-hash', metavar='hex', callback=validate_loader_hash,
              help='Digest of the loader image this image is chained to. '
                   'Marks the image as non-bootable.')
@click.option('--section', 'sections', metavar='name:offset:size',
              multiple=True, callback=get_sections,
              help='Describe a section of the image in a protected TLV. '
                   'Specify the option multiple times to add multiple '
                   'sections.')
@click.option('--hw-key-index', type=BasedIntParamType(), required=False,
              callback=validate_hw_key_index,
              help='Index of the encryption secret in the hardware key '
                   'store. The file given with --encrypt then holds the '
                   'base64 encoded secret itself.')
@click.option('-E', '--encrypt', metavar='filename',
              help='Encrypt image using the provided public key or base64 '
                   'encoded key-encryption key.')
@click.option('--pad-image', type=BasedIntParamType(), default=0,
              help='Pad the image body with 0xff to a multiple of this '
                   'many bytes.')
@click.option('-H', '--header-size', callback=validate_header_size,
              type=BasedIntParamType(), default=image.IMAGE_HEADER_SIZE,
              help='Size of the image header, zero padded after the fixed '
                   'header fields.')
@click.option('-v', '--version', callback=validate_version, required=True)
@click.option('-k', '--key', 'key_files', metavar='filename', multiple=True,
              help='Signing key. Specify the option multiple times to sign '
                   'with multiple keys.')
@click.command(help='''Create a signed image\n
               INFILE and OUTFILE are parsed as Intel HEX if the params have
               .hex extension, otherwise binary format is used''')
def sign(key_files, version, header_size, pad_image, encrypt, hw_key_index,
         sections, loader_hash, legacy_tlvs, hex_addr, infile, outfile):
    try:
        sig_keys = [load_key(key_file) for key_file in key_files]
    except FileNotFoundError as e:
        raise click.UsageError("Key file not found: {}".format(e.filename))
    except keys.KeyTypeError as e:
        raise click.UsageError(str(e))
    if None in sig_keys:
        raise click.UsageError("Invalid passphrase")

    opts = image.ImageCreateOpts(src_bin_filename=infile,
                                 src_enc_key_filename=encrypt,
                                 src_enc_key_index=hw_key_index,
                                 version=version,
                                 sig_keys=sig_keys,
                                 sections=sections,
                                 loader_hash=loader_hash,
                                 hdr_pad=header_size,
                                 image_pad=pad_image,
                                 use_legacy_tlv=legacy_tlvs)
    try:
        img = image.generate_image(opts)
        if hex_addr is None and \
                os.path.splitext(outfile)[1][1:].lower() == image.INTEL_HEX_EXT:
            hex_addr = default_hex_addr(infile, header_size)
        img.save(outfile, hex_addr)
    except FileNotFoundError as e:
        raise click.UsageError("File not found: {}".format(e.filename))
    except CREATE_ERRORS as e:
        raise click.UsageError(str(e))


class AliasesGroup(click.Group):

    _aliases = {
        "create": "sign",
    }

    def list_commands(self, ctx):
        cmds = [k for k in self.commands]
        aliases = [k for k in self._aliases]
        return sorted(cmds + aliases)

    def get_command(self, ctx, cmd_name):
        rv = click.Group.get_command(self, ctx, cmd_name)
        if rv is not None:
            return rv
        if cmd_name in self._aliases:
            return click.Group.get_command(self, ctx, self._aliases[cmd_name])
        return None


@click.command(help='Print newtimg version information')
def version():
    print(newtimg_version)


@click.option('--verbose', default=False, is_flag=True,
              help='Log image creation steps to stderr')
@click.command(cls=AliasesGroup,
               context_settings=dict(help_option_names=['-h', '--help']))
def newtimg(verbose):
    if verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(name)s: %(message)s')


newtimg.add_command(getpubhash)
newtimg.add_command(sign)
newtimg.add_command(version)


if __name__ == '__main__':
    newtimg()
