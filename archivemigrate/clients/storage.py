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
Object storage client.

Lists source buckets and streams recompressed archives into the target
bucket through boto3 against an S3-compatible endpoint.
"""

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.client import Config as BotoConfig

import archivemigrate
from archivemigrate import logger
from archivemigrate.models import RawObject

REQUIRED_FIELDS = ('Key', 'LastModified', 'ETag', 'Size', 'StorageClass')


def create_s3_client(settings):
    """Create a boto3 S3 client from StorageSettings.

    Raises:
        ConfigError: If region or credentials are missing
    """
    settings.require_credentials()
    boto_config = BotoConfig(
        signature_version='s3v4',
        max_pool_connections=16,
    )
    session = boto3.Session(
        aws_access_key_id=settings.access_key,
        aws_secret_access_key=settings.secret_key,
    )
    return session.client(
        's3',
        region_name=settings.region,
        endpoint_url=settings.endpoint or None,
        config=boto_config,
    )


class _CumulativeProgress:
    """Turns boto3's per-chunk byte counts into (sent, total) calls."""

    def __init__(self, callback, total):
        self._callback = callback
        self._total = total
        self._seen_so_far = 0

    def __call__(self, bytes_amount):
        self._seen_so_far += bytes_amount
        self._callback(self._seen_so_far, self._total)


class StorageClient:
    """
    Listing and upload operations against the storage endpoint.

    Args:
        settings: StorageSettings
        client: Optional pre-built boto3 client, mainly for tests
    """

    def __init__(self, settings, client=None):
        self.settings = settings
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = create_s3_client(self.settings)
        return self._client

    def list_objects(self, bucket):
        """List every object in bucket.

        Objects missing any of the listing fields are left out.

        Returns:
            List of RawObject
        """
        paginator = self.client.get_paginator('list_objects_v2')
        pages = paginator.paginate(Bucket=bucket, PaginationConfig={'PageSize': self.settings.page_size})
        objects = []
        dropped = 0
        for page in pages:
            for entry in page.get('Contents', []):
                if not all(entry.get(name) for name in REQUIRED_FIELDS):
                    dropped += 1
                    continue
                last_modified = entry['LastModified']
                objects.append(RawObject(
                    key=entry['Key'],
                    size=int(entry['Size']),
                    last_modified=last_modified.isoformat() if hasattr(last_modified, 'isoformat')
                    else str(last_modified),
                    etag=entry['ETag'],
                    storage_class=entry['StorageClass'],
                ))
        logger.info('Listed %d objects in %s' % (len(objects), bucket))
        if dropped:
            logger.debug('Dropped %d incomplete listing entries from %s' % (dropped, bucket))
        return objects

    def upload_stream(self, key, stream, content_type, catalog_id, file_hash,
                      on_progress=None, total=None):
        """Upload a readable binary stream to the target bucket.

        Args:
            key: Destination object key
            stream: File-like object opened for binary reading
            content_type: MIME type, may be empty
            catalog_id: Stored as object metadata
            file_hash: SHA-256 hex digest, stored as object metadata
            on_progress: Optional callable(bytes_sent, total_bytes)
            total: Total size passed through to on_progress
        """
        extra_args = {
            'Metadata': {
                'game-id': str(catalog_id),
                'uploader-id': 'migrate',
                'scan': 'ok',
                'file-sha256': file_hash,
            },
        }
        if content_type:
            extra_args['ContentType'] = content_type
        transfer_config = TransferConfig(
            multipart_chunksize=self.settings.part_size,
            max_concurrency=self.settings.queue_size,
        )
        callback = _CumulativeProgress(on_progress, total) if on_progress else None
        if archivemigrate.LOGLEVEL & archivemigrate.log_dlcomms:
            logger.debug('Uploading to %s/%s' % (self.settings.target_bucket, key))
        self.client.upload_fileobj(stream, self.settings.target_bucket, key,
                                   ExtraArgs=extra_args, Config=transfer_config, Callback=callback)
