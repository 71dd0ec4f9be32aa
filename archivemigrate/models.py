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
Data types shared by the preparation pipeline and the migration orchestrator.

Every type round-trips through plain JSON-compatible dicts so that the state
store can hold them as opaque documents. Key names match the documents the
preparation steps write.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional


class FileStatus(IntEnum):
    """Per-item migration state."""
    PENDING = 0
    PROCESSING = 1
    COMPLETED = 2
    FAILED = 3
    SKIPPED = 4


class Platform(str, Enum):
    PC = 'pc'
    PE = 'pe'


@dataclass(frozen=True)
class CatalogEntry:
    """A catalog record with its title spellings.

    title_variants keeps the catalog order (jp, en, zh); any of them may be
    empty.
    """
    id: int
    title_variants: tuple = ()
    aliases: frozenset = frozenset()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CatalogEntry':
        return cls(
            id=int(data['game_id']),
            title_variants=tuple(data.get(k) or '' for k in ('title_jp', 'title_en', 'title_zh')),
            aliases=frozenset(a for a in (data.get('aliases') or []) if a),
        )

    def to_dict(self) -> Dict[str, Any]:
        titles = list(self.title_variants) + [''] * (3 - len(self.title_variants))
        return {
            'game_id': self.id,
            'title_jp': titles[0],
            'title_en': titles[1],
            'title_zh': titles[2],
            'aliases': sorted(self.aliases),
        }


@dataclass
class RawObject:
    """One object from a storage bucket listing."""
    key: str
    size: int
    last_modified: str
    etag: str
    storage_class: str
    speculative_catalog_id: Optional[int] = None
    platform: Optional[Platform] = None

    @property
    def file_name(self) -> str:
        return self.key.rstrip('/').rsplit('/', 1)[-1]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawObject':
        platform = data.get('platform')
        game_id = data.get('speculative_game_id')
        return cls(
            key=data['Key'],
            size=int(data['Size']),
            last_modified=str(data['LastModified']),
            etag=data['ETag'],
            storage_class=data['StorageClass'],
            speculative_catalog_id=int(game_id) if game_id is not None else None,
            platform=Platform(platform) if platform else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'Key': self.key,
            'LastModified': self.last_modified,
            'ETag': self.etag,
            'Size': self.size,
            'StorageClass': self.storage_class,
        }
        if self.speculative_catalog_id is not None:
            data['speculative_game_id'] = self.speculative_catalog_id
        if self.platform is not None:
            data['platform'] = self.platform.value
        return data


@dataclass
class FileItem:
    """One physical object slated for migration."""
    original_key: str
    original_file_name: str
    catalog_id: int
    status: FileStatus = FileStatus.PENDING
    new_key: str = ''
    new_file_name: str = ''
    new_file_size: int = 0
    new_file_hash: str = ''
    new_content_type: str = ''
    skipped_reason: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileItem':
        return cls(
            original_key=data['o_key'],
            original_file_name=data['o_file_name'],
            catalog_id=int(data['game_id']),
            status=FileStatus(int(data.get('status', FileStatus.PENDING))),
            new_key=data.get('n_key', ''),
            new_file_name=data.get('n_file_name', ''),
            new_file_size=int(data.get('n_file_size', 0)),
            new_file_hash=data.get('n_file_hash', ''),
            new_content_type=data.get('n_file_content_type', ''),
            skipped_reason=data.get('skipped_reason'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'o_key': self.original_key,
            'o_file_name': self.original_file_name,
            'n_key': self.new_key,
            'n_file_name': self.new_file_name,
            'n_file_size': self.new_file_size,
            'n_file_hash': self.new_file_hash,
            'n_file_content_type': self.new_content_type,
            'game_id': self.catalog_id,
            'status': int(self.status),
        }
        if self.skipped_reason is not None:
            data['skipped_reason'] = self.skipped_reason
        return data


@dataclass
class FileGroup:
    """One deliverable: every volume of one archive for a catalog entry and platform."""
    catalog_id: int
    platform: Platform
    items: List[FileItem] = field(default_factory=list)

    @property
    def names(self) -> List[str]:
        return [item.original_file_name for item in self.items]

    def all_in(self, status: FileStatus) -> bool:
        return bool(self.items) and all(item.status == status for item in self.items)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileGroup':
        return cls(
            catalog_id=int(data['game_id']),
            platform=Platform(data['platform']),
            items=[FileItem.from_dict(item) for item in data.get('items', [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [item.to_dict() for item in self.items],
            'platform': self.platform.value,
            'game_id': self.catalog_id,
        }


@dataclass
class UploadResult:
    key: str
    file_name: str
    file_size: int
    file_hash: str
    content_type: str
