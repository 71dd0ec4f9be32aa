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
JSON-RPC client for the aria2 download daemon.

When a secret is configured every call carries it as a "token:" first
parameter. Errors reported in the RPC envelope are raised as Aria2Error;
transport failures come through as the http_wrapper exception family.
"""

import itertools

import archivemigrate
from archivemigrate import logger
from archivemigrate.clients.http_wrapper import HTTPClientWrapper

# Fields requested when polling a transfer
STATUS_KEYS = ['status', 'completedLength', 'totalLength', 'downloadSpeed', 'errorCode', 'errorMessage']


class Aria2Error(Exception):
    """aria2 answered with an RPC error."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class Aria2Client:
    """
    Thin wrapper over the aria2 RPC methods used by the download manager.

    Args:
        settings: Aria2Settings
        http: Optional HTTPClientWrapper, mainly for tests
    """

    CLIENT_NAME = 'aria2'

    def __init__(self, settings, http=None):
        self.settings = settings
        self.url = settings.rpc_url
        self.http = http or HTTPClientWrapper(self.CLIENT_NAME, timeout=settings.timeout)
        self._ids = itertools.count(1)

    def call(self, method, *params):
        """Invoke one RPC method and return its result member.

        Raises:
            Aria2Error: If the daemon reports an error
            HTTPClientError: On transport failures
        """
        args = list(params)
        if self.settings.secret:
            args.insert(0, 'token:%s' % self.settings.secret)
        payload = {
            'jsonrpc': '2.0',
            'id': str(next(self._ids)),
            'method': method,
            'params': args,
        }
        # aria2 answers RPC errors with a non-200 status and a JSON body
        response = self.http.post_json(self.url, json=payload)
        error = response.get('error') if isinstance(response, dict) else None
        if error:
            msg = 'aria2 RPC error %s: %s' % (error.get('code'), error.get('message'))
            if archivemigrate.LOGLEVEL & archivemigrate.log_dlcomms:
                logger.debug('%s failed: %s' % (method, msg))
            raise Aria2Error(msg, error.get('code'))
        return response.get('result')

    def add_uri(self, url, directory, out):
        """Enqueue a download and return its gid."""
        options = {
            'dir': directory,
            'out': out,
            'split': str(self.settings.split),
            'max-connection-per-server': str(self.settings.max_connection_per_server),
            'min-split-size': self.settings.min_split_size,
            'continue': 'true',
            'auto-file-renaming': 'false',
            'allow-overwrite': 'true',
            'retry-wait': '2',
            'max-tries': '8',
        }
        return self.call('aria2.addUri', [url], options)

    def tell_status(self, gid, keys=None):
        if keys is None:
            return self.call('aria2.tellStatus', gid)
        return self.call('aria2.tellStatus', gid, keys)

    def tell_active(self):
        return self.call('aria2.tellActive') or []

    def tell_waiting(self, offset=0, num=1000):
        return self.call('aria2.tellWaiting', offset, num) or []

    def force_pause(self, gid):
        return self.call('aria2.forcePause', gid)

    def unpause(self, gid):
        return self.call('aria2.unpause', gid)

    def force_remove(self, gid):
        return self.call('aria2.forceRemove', gid)

    def remove_download_result(self, gid):
        return self.call('aria2.removeDownloadResult', gid)

    def get_files(self, gid):
        return self.call('aria2.getFiles', gid)

    def get_servers(self, gid):
        return self.call('aria2.getServers', gid)

    def get_global_stat(self):
        return self.call('aria2.getGlobalStat')

    def get_version(self):
        return self.call('aria2.getVersion')

    def find_task_by_path(self, path):
        """Find an active or waiting task that writes to path.

        Returns:
            Tuple of (gid, status) or None
        """
        tasks = list(self.tell_active()) + list(self.tell_waiting(0, 1000))
        for task in tasks:
            for entry in task.get('files') or []:
                if entry.get('path') == path:
                    return task.get('gid'), task.get('status')
        return None
