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
File name analysis for ArchiveMigrate.

Normalisation, catalog matching, multi-volume detection and grouping.
"""

from archivemigrate.postprocess.detector import VolumeDetector
from archivemigrate.postprocess.grouper import group_raw_objects, parse_file_path
from archivemigrate.postprocess.matcher import GameMatcher, MatchIndex, build_index, choose_best_match
from archivemigrate.postprocess.normalizer import archive_group_key, normalize, strip_archive_suffix
from archivemigrate.postprocess.volumes import VolumeScheme, classify

__all__ = [
    'VolumeDetector',
    'group_raw_objects',
    'parse_file_path',
    'GameMatcher',
    'MatchIndex',
    'build_index',
    'choose_best_match',
    'archive_group_key',
    'normalize',
    'strip_archive_suffix',
    'VolumeScheme',
    'classify',
]
