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
Archive grouping for ArchiveMigrate.

Partitions matched storage objects into file groups: one group per catalog
id, platform and archive family.
"""

import posixpath
from typing import Dict, Iterable, List, Tuple

from archivemigrate.models import FileGroup, FileItem, Platform, RawObject
from archivemigrate.postprocess.normalizer import archive_group_key

PE_FOLDER = 'PE'


def parse_file_path(key: str) -> Tuple[List[str], str]:
    """Split a storage key into its folder names and file name."""
    folder, file_name = posixpath.split(key)
    folders = [f for f in folder.strip('/').split('/') if f]
    return folders, file_name


def platform_for_key(key: str) -> Platform:
    folders, _ = parse_file_path(key)
    return Platform.PE if PE_FOLDER in folders else Platform.PC


def assign_platforms(raw_objects: Iterable[RawObject]) -> List[RawObject]:
    """Set platform on every object from its folder path."""
    result = []
    for raw in raw_objects:
        raw.platform = platform_for_key(raw.key)
        result.append(raw)
    return result


def group_key(raw: RawObject) -> str:
    _, file_name = parse_file_path(raw.key)
    return '%s__%s__%s' % (raw.speculative_catalog_id, raw.platform.value, archive_group_key(file_name))


def group_raw_objects(raw_objects: Iterable[RawObject]) -> List[FileGroup]:
    """Build PENDING file groups from matched objects.

    Groups and their items keep the order in which objects were first seen.

    Raises:
        ValueError: If an object has no catalog id
    """
    groups = {}  # type: Dict[str, FileGroup]
    for raw in raw_objects:
        if raw.speculative_catalog_id is None:
            raise ValueError("Object %s has no catalog id" % raw.key)
        if raw.platform is None:
            raw.platform = platform_for_key(raw.key)
        key = group_key(raw)
        group = groups.get(key)
        if group is None:
            group = FileGroup(catalog_id=raw.speculative_catalog_id, platform=raw.platform)
            groups[key] = group
        group.items.append(FileItem(
            original_key=raw.key,
            original_file_name=parse_file_path(raw.key)[1],
            catalog_id=raw.speculative_catalog_id,
        ))
    return list(groups.values())
