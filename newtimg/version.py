# Copyright 2017 Linaro Limited
# Copyright 2024 Arm Limited
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
Image versions

Implements the subset of semantic versioning that fits in the image
header: an 8-bit major, 8-bit minor, 16-bit revision and 32-bit build
number.  Both ``maj.min.rev+build`` and the dotted ``maj.min.rev.build``
spellings are accepted.
"""
import re
from collections import namedtuple

_LIMITS = (0xff, 0xff, 0xffff, 0xffffffff)


class ImageVersion(namedtuple('ImageVersion', ['major', 'minor', 'revision',
                                               'build'])):
    __slots__ = ()

    def __str__(self):
        return "{}.{}.{}.{}".format(*self)


version_re = re.compile(
    r"""^([1-9]\d*|0)(\.([1-9]\d*|0)(\.([1-9]\d*|0)([+.]([1-9]\d*|0))?)?)?$""")


def decode_version(text):
    """Decode the version string, which should be of the form
    maj.min.rev+build (or maj.min.rev.build)
    """
    m = version_re.match(text)
    if not m:
        msg = "Invalid version number, should be maj.min.rev+build with later "
        msg += "parts optional"
        raise ValueError(msg)

    result = ImageVersion(
            int(m.group(1)) if m.group(1) else 0,
            int(m.group(3)) if m.group(3) else 0,
            int(m.group(5)) if m.group(5) else 0,
            int(m.group(7)) if m.group(7) else 0)
    for field, value, limit in zip(result._fields, result, _LIMITS):
        if value > limit:
            raise ValueError("Version {} {} out of range (max {})".format(
                field, value, limit))
    return result
