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
Clients for the external services the migration talks to.
"""

from archivemigrate.clients.http_wrapper import (
    HTTPClientWrapper,
    HTTPClientError,
    HTTPTimeoutError,
    HTTPConnectionError,
    HTTPResponseError,
)
from archivemigrate.clients.aria2 import Aria2Client, Aria2Error
from archivemigrate.clients.catalog import CatalogClient, CatalogError
from archivemigrate.clients.storage import StorageClient

__all__ = [
    'HTTPClientWrapper',
    'HTTPClientError',
    'HTTPTimeoutError',
    'HTTPConnectionError',
    'HTTPResponseError',
    'Aria2Client',
    'Aria2Error',
    'CatalogClient',
    'CatalogError',
    'StorageClient',
]
