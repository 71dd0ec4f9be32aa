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
Catalog HTTP API client.

Every endpoint answers with an envelope {code, message, data}; any code
other than 0 is raised as CatalogError.
"""

from archivemigrate import logger
from archivemigrate.clients.http_wrapper import HTTPClientWrapper
from archivemigrate.models import CatalogEntry, Platform

# Download resource platform tags per archive platform
PLATFORM_TAGS = {
    Platform.PC: ['win'],
    Platform.PE: ['and'],
}


class CatalogError(Exception):
    """Catalog API returned a non-zero application code."""

    def __init__(self, code, message):
        super().__init__('%s %s' % (code, message))
        self.code = code
        self.message = message


class CatalogClient:
    """
    Client for the catalog endpoints used by the migration.

    Args:
        settings: CatalogSettings
        http: Optional HTTPClientWrapper, mainly for tests
    """

    CLIENT_NAME = 'catalog'

    def __init__(self, settings, http=None):
        self.settings = settings
        self.base_url = settings.api_url.rstrip('/')
        headers = {'Content-Type': 'application/json'}
        if settings.token:
            headers['Authorization'] = 'Bearer %s' % settings.token
        self.http = http or HTTPClientWrapper(self.CLIENT_NAME, timeout=settings.timeout, headers=headers)

    def _url(self, path):
        return '%s/api/%s' % (self.base_url, path.lstrip('/'))

    @staticmethod
    def unwrap(envelope, context):
        """Return the data member of a successful envelope.

        Raises:
            CatalogError: If code is not 0
        """
        code = envelope.get('code')
        if code != 0:
            message = envelope.get('message', '')
            logger.error('%s failed: %s %s' % (context, code, message))
            raise CatalogError(code, message)
        return envelope.get('data')

    def list_all_entries(self):
        """Fetch every catalog entry.

        Raises:
            CatalogError: If the catalog refuses the request
        """
        data = self.unwrap(self.http.get_json(self._url('game/migrate/all')), 'Fetch catalog')
        entries = [CatalogEntry.from_dict(item) for item in data or []]
        logger.info('Fetched %d catalog entries' % len(entries))
        return entries

    def create_download_resource(self, catalog_id, platform):
        """Create a download resource record and return its id."""
        body = {
            'platform': PLATFORM_TAGS[Platform(platform)],
            'language': list(self.settings.language),
        }
        logger.debug('Creating download resource for %s (%s)' % (catalog_id, Platform(platform).value))
        envelope = self.http.post_json(self._url('migrate/game-download-resource/%s' % catalog_id), json=body)
        return self.unwrap(envelope, 'Create download resource')

    def create_download_resource_file(self, resource_id, file_name, file_size, file_hash,
                                      content_type, storage_key):
        body = {
            'file_name': file_name,
            'file_size': file_size,
            'file_hash': file_hash,
            'file_content_type': content_type,
            's3_file_key': storage_key,
        }
        envelope = self.http.post_json(self._url('migrate/game-download-resource/file/%s' % resource_id),
                                       json=body)
        return self.unwrap(envelope, 'Create download resource file')

    def create_game(self, b_id, v_id):
        """Post one import pair; the raw envelope is returned unchecked."""
        return self.http.post_json(self._url('game/create/frombv'), json={'b_id': b_id, 'v_id': v_id})
