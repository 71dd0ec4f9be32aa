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
Dataset preparation.

Builds the final_files document the migration works from. Each step stores
its output as a named document and is skipped on later runs while that
document exists, so an interrupted preparation resumes at the first missing
step. Delete a document to rebuild it and everything after it.
"""

import re

import archivemigrate
from archivemigrate import logger
from archivemigrate.models import CatalogEntry, RawObject
from archivemigrate.postprocess.grouper import assign_platforms, group_raw_objects, parse_file_path
from archivemigrate.postprocess.matcher import GameMatcher

RAW_FILES = 'raw_files'
GAMES = 'games'
RAW_FILES_WITH_GAME_ID = 'raw_files_with_game_id'
RAW_FILES_WITH_GAME_ID_FILTERED = 'raw_files_with_game_id_filtered'
RAW_FILES_WITH_PLATFORM = 'raw_files_with_platform'
FINAL_FILES = 'final_files'

STEPS = [RAW_FILES, GAMES, RAW_FILES_WITH_GAME_ID, RAW_FILES_WITH_GAME_ID_FILTERED,
         RAW_FILES_WITH_PLATFORM, FINAL_FILES]

ARCHIVE_KEY_RE = re.compile(r'\.(?:zip|rar|7z)(?:\.\d+)?$|\.(?:part\d+|r\d{2}|z\d{2}|\d{3,})$', re.IGNORECASE)


def is_archive_key(key):
    return ARCHIVE_KEY_RE.search(key) is not None


class DatasetPreparer:
    """
    Args:
        config: Configuration
        store: DBConnection for the step documents
        storage: StorageClient for the source bucket listings
        catalog: CatalogClient
    """

    def __init__(self, config, store, storage, catalog):
        self.buckets = list(config.storage.source_buckets)
        self.store = store
        self.storage = storage
        self.catalog = catalog

    def run(self):
        """Run every step that has no stored output yet.

        Returns:
            Number of file groups in final_files
        """
        for step in STEPS:
            if self.store.has(step):
                logger.info('Step %s already done, using stored result' % step)
                continue
            logger.info('Running step %s' % step)
            document = getattr(self, 'build_%s' % step)()
            self.store.write(step, document)
            logger.info('Step %s stored %d record%s' % (step, len(document), '' if len(document) == 1 else 's'))
        return len(self.store.read(FINAL_FILES))

    def _raw(self, name):
        return [RawObject.from_dict(d) for d in self.store.read(name)]

    def build_raw_files(self):
        objects = []
        for bucket in self.buckets:
            listed = self.storage.list_objects(bucket)
            kept = [o for o in listed if is_archive_key(o.key)]
            logger.info('Bucket %s: %d archive objects of %d' % (bucket, len(kept), len(listed)))
            objects.extend(kept)
        return [o.to_dict() for o in objects]

    def build_games(self):
        return [entry.to_dict() for entry in self.catalog.list_all_entries()]

    def build_raw_files_with_game_id(self):
        entries = [CatalogEntry.from_dict(d) for d in self.store.read(GAMES)]
        matcher = GameMatcher(entries)
        raw_objects = self._raw(RAW_FILES)
        matched = 0
        for raw in raw_objects:
            _, file_name = parse_file_path(raw.key)
            raw.speculative_catalog_id = matcher.match(file_name)
            if raw.speculative_catalog_id is not None:
                matched += 1
            elif archivemigrate.LOGLEVEL & archivemigrate.log_fuzz:
                nearest = matcher.get_match_candidates(file_name)
                logger.debug('Unmatched %s, nearest: %s' % (
                    file_name, '; '.join('%s "%s" %d' % c for c in nearest) or 'none'))
        logger.info('Matched %d of %d objects to a catalog entry' % (matched, len(raw_objects)))
        return [raw.to_dict() for raw in raw_objects]

    def build_raw_files_with_game_id_filtered(self):
        raw_objects = self._raw(RAW_FILES_WITH_GAME_ID)
        return [raw.to_dict() for raw in raw_objects if raw.speculative_catalog_id is not None]

    def build_raw_files_with_platform(self):
        return [raw.to_dict() for raw in assign_platforms(self._raw(RAW_FILES_WITH_GAME_ID_FILTERED))]

    def build_final_files(self):
        groups = group_raw_objects(self._raw(RAW_FILES_WITH_PLATFORM))
        return [group.to_dict() for group in groups]
