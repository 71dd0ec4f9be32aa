#  This file is part of ArchiveMigrate.
#
#  ArchiveMigrate is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#
#  ArchiveMigrate is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with ArchiveMigrate.  If not, see <http://www.gnu.org/licenses/>.

"""
Unit tests for archivemigrate.postprocess.volumes and detector.

Tests cover:
- Volume scheme classification
- Multipart detection and primary selection
- First / subsequent volume markers
- Gaps in volume numbering
"""

import pytest

from archivemigrate.postprocess.detector import (
    VolumeDetector,
    detect_missing_volumes,
    is_multipart,
    select_primary,
)
from archivemigrate.postprocess.volumes import VolumeInfo, VolumeScheme, classify


class TestClassify:
    """Tests for classify()."""

    def test_seven_zip_style(self):
        assert classify('game.7z.001') == VolumeInfo(VolumeScheme.SEVEN_ZIP, 1, '7z', 'game')

    def test_rar_part_style(self):
        assert classify('Game.Part02.RAR') == VolumeInfo(VolumeScheme.RAR_PART, 2, 'rar', 'Game')

    def test_r_style(self):
        info = classify('game.r05')
        assert info.scheme is VolumeScheme.R_STYLE
        assert info.volume == 5
        assert info.container == 'rar'

    def test_z_style_belongs_to_zip(self):
        assert classify('game.z01').container == 'zip'

    def test_plain_archive(self):
        assert classify('game.rar') == VolumeInfo(VolumeScheme.NONE, None, 'rar', 'game')

    def test_not_an_archive(self):
        assert classify('readme.txt').scheme is VolumeScheme.NONE


class TestIsMultipart:
    """Tests for is_multipart()."""

    def test_single_rar_is_not_multipart(self):
        assert not is_multipart(['a.rar'])

    def test_rar_parts(self):
        assert is_multipart(['a.part1.rar', 'a.part2.rar'])

    @pytest.mark.parametrize('name', ['a.7z.002', 'a.zip.001', 'a.rar.003', 'a.r00', 'a.z01'])
    def test_any_volume_marker(self, name):
        assert is_multipart(['other.zip', name])

    def test_empty(self):
        assert not is_multipart([])


class TestSelectPrimary:
    """Tests for select_primary()."""

    def test_rar_part_one(self):
        assert select_primary(['a.part1.rar', 'a.part2.rar']) == 'a.part1.rar'

    def test_rar_part_one_with_padding_and_order(self):
        assert select_primary(['a.part02.rar', 'a.part01.rar']) == 'a.part01.rar'

    def test_bare_rar_before_r_volumes(self):
        assert select_primary(['a.r00', 'a.rar', 'a.r01']) == 'a.rar'

    def test_seven_zip_first_volume(self):
        assert select_primary(['a.7z.002', 'a.7z.001']) == 'a.7z.001'

    def test_lexicographic_fallback(self):
        assert select_primary(['b.zip', 'a.zip']) == 'a.zip'

    def test_empty(self):
        assert select_primary([]) is None


class TestVolumeMarkers:
    """Tests for has_first_volume() and has_subsequent_volume()."""

    def test_first_volume_missing(self):
        assert not VolumeDetector.has_first_volume(['a.7z.002', 'a.7z.003'])

    def test_first_volume_present(self):
        assert VolumeDetector.has_first_volume(['a.7z.001', 'a.7z.002'])

    def test_r_style_needs_bare_rar(self):
        assert not VolumeDetector.has_first_volume(['a.r00', 'a.r01'])
        assert VolumeDetector.has_first_volume(['a.rar', 'a.r00'])

    def test_only_first_volume(self):
        assert not VolumeDetector.has_subsequent_volume(['a.7z.001'])
        assert not VolumeDetector.has_subsequent_volume(['a.part1.rar'])

    def test_subsequent_volume(self):
        assert VolumeDetector.has_subsequent_volume(['a.7z.001', 'a.7z.002'])
        assert VolumeDetector.has_subsequent_volume(['a.rar', 'a.r00'])


class TestDetectMissingVolumes:
    """Tests for detect_missing_volumes()."""

    def test_seven_zip_gap(self):
        assert detect_missing_volumes(['a.7z.001', 'a.7z.003']) == (VolumeScheme.SEVEN_ZIP, [2])

    def test_rar_part_missing_first(self):
        assert detect_missing_volumes(['a.part2.rar']) == (VolumeScheme.RAR_PART, [1])

    def test_r_style_counts_from_zero(self):
        assert detect_missing_volumes(['a.rar', 'a.r00', 'a.r02']) == (VolumeScheme.R_STYLE, [1])

    def test_complete_set(self):
        assert detect_missing_volumes(['a.part1.rar', 'a.part2.rar']) == (VolumeScheme.RAR_PART, [])

    def test_not_split(self):
        assert detect_missing_volumes(['a.zip']) == (VolumeScheme.NONE, [])
