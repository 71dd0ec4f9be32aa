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
Bulk import of catalog entries from {b_id, v_id} pairs.
"""

import json
import time

from archivemigrate import logger

CODE_OK = 0
CODE_ALREADY_EXISTS = 400105
CODE_AUTH_ERROR = 200101


def load_pairs(path):
    """Read a JSON array of {b_id, v_id} objects."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError('%s does not contain a JSON array' % path)
    return data


class CatalogImporter:
    """
    Posts import pairs to the catalog one at a time.

    Args:
        catalog: CatalogClient
        rate_limit_wait: Seconds to wait when the catalog reports 429
        sleep: Sleep function, mainly for tests
    """

    def __init__(self, catalog, rate_limit_wait=60, sleep=time.sleep):
        self.catalog = catalog
        self.rate_limit_wait = rate_limit_wait
        self.sleep = sleep

    def import_games(self, pairs):
        """Create a catalog entry for every pair that has a v_id.

        Stops early on an authentication error.

        Returns:
            Dict with total, succeeded, failed, skipped and auth_error
        """
        totals = {'total': len(pairs), 'succeeded': 0, 'failed': 0, 'skipped': 0, 'auth_error': False}
        for pair in pairs:
            b_id = pair.get('b_id')
            v_id = pair.get('v_id')
            if not v_id:
                totals['skipped'] += 1
                logger.info('Skipped %s because v_id is empty' % b_id)
                continue

            response = self._post(b_id, v_id)
            code = response.get('code')
            if code == CODE_OK:
                totals['succeeded'] += 1
                logger.info('Succeeded %s game id: %s' % (b_id, response.get('data')))
            elif code == CODE_ALREADY_EXISTS:
                totals['skipped'] += 1
                logger.info('Skipped %s game already exists' % b_id)
            elif code == CODE_AUTH_ERROR:
                totals['auth_error'] = True
                logger.error('Authentication rejected by catalog, stopping import')
                break
            else:
                totals['failed'] += 1
                logger.warn('Failed %s %s' % (b_id, response.get('message')))

        logger.info('Total %(total)d games, succeeded %(succeeded)d, failed %(failed)d, '
                    'skipped %(skipped)d' % totals)
        return totals

    def _post(self, b_id, v_id):
        while True:
            response = self.catalog.create_game(b_id, v_id)
            if '429' in str(response.get('message', '')):
                logger.warn('Rate limited, waiting %d seconds' % self.rate_limit_wait)
                self.sleep(self.rate_limit_wait)
                continue
            return response
