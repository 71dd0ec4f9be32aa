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
Unit tests for archivemigrate.postprocess.grouper and the model documents.

Tests cover:
- Storage key parsing and platform detection
- Partitioning into file groups
- Document key names of the stored types
"""

import pytest

from archivemigrate.models import FileGroup, FileItem, FileStatus, Platform, RawObject
from archivemigrate.postprocess.grouper import (
    assign_platforms,
    group_raw_objects,
    parse_file_path,
    platform_for_key,
)


def raw(key, catalog_id=1, platform=None):
    return RawObject(key=key, size=10, last_modified='2024-01-01T00:00:00+00:00', etag='"e"',
                     storage_class='STANDARD', speculative_catalog_id=catalog_id, platform=platform)


class TestParseFilePath:
    """Tests for parse_file_path()."""

    def test_nested_key(self):
        assert parse_file_path('/PE/sub/game.zip') == (['PE', 'sub'], 'game.zip')

    def test_bare_name(self):
        assert parse_file_path('game.zip') == ([], 'game.zip')

    def test_platform_marker_folder(self):
        assert platform_for_key('author/PE/game.zip') is Platform.PE
        assert platform_for_key('author/PC/game.zip') is Platform.PC
        # only a whole folder name counts
        assert platform_for_key('author/PEN/game.zip') is Platform.PC

    def test_assign_platforms(self):
        objects = assign_platforms([raw('PE/a.zip'), raw('b.zip')])
        assert [o.platform for o in objects] == [Platform.PE, Platform.PC]


class TestGroupRawObjects:
    """Tests for group_raw_objects()."""

    def test_partition(self):
        objects = [
            raw('PC/foo.part1.rar', 1),
            raw('PE/foo.part1.rar', 1),
            raw('PC/bar.zip', 2),
            raw('PC/foo.part2.rar', 1),
        ]
        groups = group_raw_objects(objects)

        assert [(g.catalog_id, g.platform) for g in groups] == [
            (1, Platform.PC), (1, Platform.PE), (2, Platform.PC)]
        assert groups[0].names == ['foo.part1.rar', 'foo.part2.rar']
        assert sum(len(g.items) for g in groups) == len(objects)

    def test_items_start_pending(self):
        groups = group_raw_objects([raw('a/game.7z.001'), raw('a/game.7z.002')])
        assert len(groups) == 1
        assert all(item.status is FileStatus.PENDING for item in groups[0].items)
        assert groups[0].items[0].original_key == 'a/game.7z.001'

    def test_rar_with_r_volumes_grouped(self):
        groups = group_raw_objects([raw('game.rar'), raw('game.r00'), raw('game.r01')])
        assert len(groups) == 1

    def test_different_catalog_ids_split(self):
        groups = group_raw_objects([raw('game.zip', 1), raw('game.zip', 2)])
        assert len(groups) == 2

    def test_missing_catalog_id(self):
        with pytest.raises(ValueError):
            group_raw_objects([raw('game.zip', None)])


class TestDocuments:
    """Tests for the stored document layout."""

    def test_file_item_keys(self):
        item = FileItem(original_key='a/b.zip', original_file_name='b.zip', catalog_id=3)
        data = item.to_dict()
        assert data['o_key'] == 'a/b.zip'
        assert data['game_id'] == 3
        assert data['status'] == 0
        assert 'skipped_reason' not in data

    def test_file_group_from_dict(self):
        group = FileGroup.from_dict({
            'platform': 'pe',
            'game_id': 9,
            'items': [{'o_key': 'x.zip', 'o_file_name': 'x.zip', 'game_id': 9, 'status': 4,
                       'skipped_reason': 'gone'}],
        })
        assert group.platform is Platform.PE
        assert group.items[0].status is FileStatus.SKIPPED
        assert group.items[0].skipped_reason == 'gone'
        assert group.all_in(FileStatus.SKIPPED)

    def test_empty_group_is_never_all_in(self):
        assert not FileGroup(catalog_id=1, platform=Platform.PC).all_in(FileStatus.COMPLETED)

    def test_raw_object_listing_keys(self):
        data = raw('k.zip', 4, Platform.PC).to_dict()
        assert data['Key'] == 'k.zip'
        assert data['speculative_game_id'] == 4
        assert data['platform'] == 'pc'
        assert RawObject.from_dict(data) == raw('k.zip', 4, Platform.PC)
