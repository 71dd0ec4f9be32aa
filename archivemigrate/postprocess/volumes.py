#  This file is part of ArchiveMigrate.
#  ArchiveMigrate is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#  ArchiveMigrate is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#  You should have received a copy of the GNU General Public License
#  along with ArchiveMigrate.  If not, see <http://www.gnu.org/licenses/>.

"""
Multi-volume archive naming schemes.

One definition of the recognised volume suffixes, shared by the grouping
key, multipart detection and primary-volume selection so that they can not
drift apart.

Recognised schemes:
    SEVEN_ZIP  name.7z.001, name.zip.002, name.rar.003
    RAR_PART   name.part1.rar, name.part02.rar
    R_STYLE    name.r00, name.z01 (alongside name.rar / name.zip)
"""

import re
from enum import Enum
from typing import NamedTuple, Optional


class VolumeScheme(Enum):
    NONE = 'none'
    SEVEN_ZIP = 'sevenZipStyle'
    RAR_PART = 'rarPartStyle'
    R_STYLE = 'rStyle'


class VolumeInfo(NamedTuple):
    """Classification of a single file name.

    base is the name with the volume suffix removed and container the
    archive type the volumes belong to. volume is None for NONE.
    """
    scheme: VolumeScheme
    volume: Optional[int]
    container: str
    base: str


_SEVEN_ZIP_RE = re.compile(r'\.(7z|zip|rar)\.(\d{3,})$', re.IGNORECASE)
_RAR_PART_RE = re.compile(r'\.part(\d+)\.(rar)$', re.IGNORECASE)
_R_STYLE_RE = re.compile(r'\.([rz])(\d{2})$', re.IGNORECASE)
_CONTAINER_RE = re.compile(r'\.(7z|zip|rar)$', re.IGNORECASE)

_R_CONTAINERS = {'r': 'rar', 'z': 'zip'}


def classify(name: str) -> VolumeInfo:
    """Work out which volume scheme, if any, a file name uses."""
    match = _SEVEN_ZIP_RE.search(name)
    if match:
        return VolumeInfo(VolumeScheme.SEVEN_ZIP, int(match.group(2)),
                          match.group(1).lower(), name[:match.start()])

    match = _RAR_PART_RE.search(name)
    if match:
        return VolumeInfo(VolumeScheme.RAR_PART, int(match.group(1)),
                          match.group(2).lower(), name[:match.start()])

    match = _R_STYLE_RE.search(name)
    if match:
        return VolumeInfo(VolumeScheme.R_STYLE, int(match.group(2)),
                          _R_CONTAINERS[match.group(1).lower()], name[:match.start()])

    match = _CONTAINER_RE.search(name)
    if match:
        return VolumeInfo(VolumeScheme.NONE, None, match.group(1).lower(), name[:match.start()])
    return VolumeInfo(VolumeScheme.NONE, None, '', name)
