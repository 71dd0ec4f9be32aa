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
Migration orchestrator.

Works through the file groups in the final_files document one at a time:

    download -> completeness checks -> extract -> compress -> upload -> clean up

Every status change is written back to the state store as soon as it
happens, so a killed run resumes where it stopped. Groups that can never
succeed without outside help (unreachable source, wrong password, missing
volumes) end up SKIPPED; anything else unexpected marks the group FAILED
and is raised to the driver, which moves on to the next group.
"""

import os
import shutil
import traceback
from collections import Counter

from archivemigrate import logger
from archivemigrate.archiver import ExtractPasswordError
from archivemigrate.download import PreflightError, control_file, needs_download
from archivemigrate.models import FileGroup, FileStatus
from archivemigrate.postprocess.detector import VolumeDetector
from archivemigrate.postprocess.normalizer import archive_group_key, strip_archive_suffix
from archivemigrate.prepare import FINAL_FILES

REASON_FIRST_VOLUME_MISSING = 'first volume missing'
REASON_ONLY_FIRST_VOLUME = 'only first volume present'
REASON_MULTIPART_INCOMPLETE = 'multipart incomplete'
REASON_PRIMARY_MISSING = 'primary archive missing'
REASON_PASSWORD = 'extract password error'

PARTIAL_SUFFIX = '.partial'


class MigrationError(Exception):
    """The migration can not start."""
    pass


def _remove(path):
    """Delete a file or folder tree, logging instead of raising."""
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        elif os.path.lexists(path):
            os.remove(path)
    except OSError as e:
        logger.warn('Could not remove %s: %s' % (path, e))


def work_folder(group):
    """Folder name keeping one group's working files apart from every other group."""
    first_name = group.items[0].original_file_name
    return '%s__%s__%s' % (group.catalog_id, group.platform.value, archive_group_key(first_name))


class MigrationPipeline:
    """
    Args:
        config: Configuration
        store: DBConnection holding the final_files document
        downloader: DownloadManager
        archiver: SevenZip
        uploader: Uploader
        retry_skipped: Also reprocess groups whose items are all SKIPPED
    """

    def __init__(self, config, store, downloader, archiver, uploader, retry_skipped=False):
        self.directories = config.directories
        self.store = store
        self.downloader = downloader
        self.archiver = archiver
        self.uploader = uploader
        self.retry_skipped = retry_skipped

    def load_groups(self):
        """Read the file groups from the store.

        Raises:
            MigrationError: If the dataset has not been prepared
        """
        document = self.store.read(FINAL_FILES)
        if document is None:
            raise MigrationError('No %s document in the state store, run prepare first' % FINAL_FILES)
        return [FileGroup.from_dict(group) for group in document]

    def run(self):
        """Process every group that is not finished yet.

        A failing group is logged and left FAILED; the run continues.

        Returns:
            Counter of item statuses after the run, keyed by status name
        """
        groups = self.load_groups()
        logger.info('Migrating %d file groups' % len(groups))
        failed_groups = 0
        for number, group in enumerate(groups, 1):
            if group.all_in(FileStatus.COMPLETED):
                continue
            logger.info('[%d/%d] %s (%s): %s' % (number, len(groups), group.catalog_id,
                                                group.platform.value, ', '.join(group.names)))
            try:
                self.process(group)
            except Exception as e:
                failed_groups += 1
                logger.error('Failed to process group %s (%s): %s' % (group.catalog_id, group.platform.value, e))
                logger.debug(traceback.format_exc())

        summary = Counter(item.status.name for group in groups for item in group.items)
        logger.info('Migration finished: %s, %d group%s failed this run' % (
            ', '.join('%s %d' % (name.lower(), summary[name]) for name in sorted(summary)),
            failed_groups, '' if failed_groups == 1 else 's'))
        return summary

    def process(self, group):
        """Run one group through the pipeline.

        Raises:
            Exception: Whatever stopped the group, after marking it FAILED
        """
        if not group.items:
            return
        if group.all_in(FileStatus.COMPLETED):
            logger.debug('Group %s (%s) already completed' % (group.catalog_id, group.platform.value))
            return
        if group.all_in(FileStatus.SKIPPED) and not self.retry_skipped:
            logger.debug('Group %s (%s) already skipped' % (group.catalog_id, group.platform.value))
            return

        names = group.names
        primary_name = VolumeDetector.select_primary(names)
        multipart = VolumeDetector.is_multipart(names)
        folder = work_folder(group)
        primary_path = self.downloader.save_path(primary_name, self.download_folder(group))
        extracted_path = os.path.join(self.directories.extracted_dir, folder, strip_archive_suffix(primary_name))

        self._update(group, group.items, status=FileStatus.PROCESSING, skipped_reason=None)
        try:
            self._download(group)

            if group.all_in(FileStatus.SKIPPED):
                logger.warn('Skip group %s (%s): all items skipped' % (group.catalog_id, group.platform.value))
                for item in group.items:
                    logger.warn('  - %s: %s' % (item.original_file_name, item.skipped_reason or 'unknown'))
                return

            reason = self._check_complete(group, multipart, primary_path)
            if reason:
                self._skip(group, reason)
                return

            if not os.path.exists(extracted_path):
                if not self._extract(group, primary_path, extracted_path):
                    return

            compressed_folder = os.path.join(self.directories.compressed_dir, folder)
            compressed = self.archiver.compress(extracted_path, out_dir=compressed_folder)
            result = self.uploader.upload_file(compressed, os.path.basename(compressed),
                                               group.catalog_id, group.platform)

            _remove(compressed)
            _remove(compressed_folder)
            self._remove_downloads(group)
            _remove(os.path.join(self.directories.extracted_dir, folder))

            self._update(group, group.items,
                         status=FileStatus.COMPLETED,
                         new_key=result.key,
                         new_file_name=result.file_name,
                         new_file_size=result.file_size,
                         new_file_hash=result.file_hash,
                         new_content_type=result.content_type)
            logger.info('Completed group %s (%s) -> %s' % (group.catalog_id, group.platform.value, result.key))
        except Exception:
            logger.error('Failed to process file group %s (%s)' % (group.catalog_id, group.platform.value))
            self._update(group, group.items, status=FileStatus.FAILED)
            raise

    def download_folder(self, group):
        return os.path.join(self.directories.download_dir, work_folder(group))

    def _extract(self, group, primary_path, extracted_path):
        """Extract into a staging folder and move it into place when done.

        An interrupted extract leaves only the staging folder behind, which
        the next attempt throws away.

        Returns:
            False when the group was skipped for a password error
        """
        partial = extracted_path + PARTIAL_SUFFIX
        _remove(partial)
        try:
            self.archiver.extract(primary_path, partial)
        except ExtractPasswordError:
            _remove(partial)
            self._skip(group, REASON_PASSWORD)
            self._remove_downloads(group)
            return False
        except Exception:
            _remove(partial)
            raise
        os.replace(partial, extracted_path)
        return True

    def _download(self, group):
        directory = self.download_folder(group)
        for item in group.items:
            path = self.downloader.save_path(item.original_file_name, directory)
            if not needs_download(path):
                logger.debug('Already downloaded: %s' % path)
                continue
            try:
                self.downloader.start(item.original_key, item.original_file_name, directory=directory)
            except PreflightError as e:
                reason = e.describe()
                logger.warn('Skip item %s due to URL check: %s' % (item.original_key, reason))
                self._update(group, [item], status=FileStatus.SKIPPED, skipped_reason=reason)
            except Exception as e:
                logger.error('Failed to download %s: %s' % (item.original_key, e))
                self._update(group, [item], status=FileStatus.FAILED)
                raise

    def _check_complete(self, group, multipart, primary_path):
        """Name and disk checks run before any extract work.

        Returns:
            Skip reason, or None when the group can be extracted
        """
        names = group.names
        if multipart:
            if not VolumeDetector.has_first_volume(names):
                return REASON_FIRST_VOLUME_MISSING
            if not VolumeDetector.has_subsequent_volume(names):
                return REASON_ONLY_FIRST_VOLUME
            directory = self.download_folder(group)
            missing = [n for n in names if not os.path.isfile(self.downloader.save_path(n, directory))]
            if missing:
                scheme, numbers = VolumeDetector.detect_missing_volumes(names)
                logger.warn('Missing volumes of %s: %s (numbering gaps %s: %s)' %
                            (group.catalog_id, ', '.join(missing), scheme.value, numbers))
                return REASON_MULTIPART_INCOMPLETE
            return None
        if not os.path.isfile(primary_path):
            return REASON_PRIMARY_MISSING
        return None

    def _skip(self, group, reason):
        logger.warn('Skip group %s (%s): %s' % (group.catalog_id, group.platform.value, reason))
        # items skipped earlier keep their own reason
        pending = [item for item in group.items if item.status != FileStatus.SKIPPED]
        self._update(group, pending, status=FileStatus.SKIPPED, skipped_reason=reason)

    def _remove_downloads(self, group):
        directory = self.download_folder(group)
        for name in group.names:
            path = self.downloader.save_path(name, directory)
            _remove(path)
            _remove(control_file(path))
        _remove(directory)

    def _update(self, group, items, **changes):
        """Apply changes to items and write them through to the store."""
        if not items:
            return
        for item in items:
            for attr, value in changes.items():
                setattr(item, attr, value)
        changed = {(item.original_key, item.catalog_id): item.to_dict() for item in items}

        def apply(document):
            if document is None:
                return None
            for stored_group in document:
                for stored in stored_group.get('items', []):
                    updated = changed.get((stored.get('o_key'), stored.get('game_id')))
                    if updated is not None:
                        stored.clear()
                        stored.update(updated)
            return document

        self.store.update(FINAL_FILES, apply)
