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
Upload step of the migration.

Hashes the recompressed archive, registers a download resource with the
catalog, streams the file into the target bucket and then records the file
against the resource.
"""

import hashlib
import mimetypes
import os

from tqdm import tqdm

from archivemigrate import logger
from archivemigrate.models import Platform, UploadResult

HASH_CHUNK = 1024 * 1024


def sha256_file(path):
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK), b''):
            digest.update(chunk)
    return digest.hexdigest()


def content_type_for(path):
    return mimetypes.guess_type(path)[0] or ''


def storage_key(catalog_id, resource_id, file_name):
    return 'games/%s/%s/%s' % (catalog_id, resource_id, file_name)


class Uploader:
    """
    Args:
        catalog: CatalogClient
        storage: StorageClient
    """

    def __init__(self, catalog, storage):
        self.catalog = catalog
        self.storage = storage

    def upload_file(self, path, file_name, catalog_id, platform):
        """Upload one archive and register it with the catalog.

        Returns:
            UploadResult describing the stored object

        Raises:
            CatalogError: If the catalog rejects either record
        """
        platform = Platform(platform)
        logger.info('Uploading %s for %s (%s)' % (file_name, catalog_id, platform.value))
        file_hash = sha256_file(path)
        content_type = content_type_for(path)
        file_size = os.path.getsize(path)

        resource_id = self.catalog.create_download_resource(catalog_id, platform)
        key = storage_key(catalog_id, resource_id, file_name)
        logger.debug('Download resource %s created, storing as %s' % (resource_id, key))

        with tqdm(total=file_size, unit='B', unit_scale=True, desc=file_name, leave=False) as bar:
            def on_progress(sent, total):
                if total and bar.total != total:
                    bar.total = total
                if sent > bar.n:
                    bar.update(min(sent, bar.total or sent) - bar.n)

            with open(path, 'rb') as stream:
                self.storage.upload_stream(key, stream, content_type, catalog_id, file_hash,
                                           on_progress=on_progress, total=file_size)

        self.catalog.create_download_resource_file(resource_id, file_name, file_size, file_hash,
                                                   content_type, key)
        logger.info('Uploaded %s as %s' % (file_name, key))
        return UploadResult(key=key, file_name=file_name, file_size=file_size,
                            file_hash=file_hash, content_type=content_type)
