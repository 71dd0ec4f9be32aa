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
Download manager for ArchiveMigrate.

Drives the aria2 daemon for one storage object at a time:

    resolve a mirror URL -> reuse or enqueue an aria2 task -> poll until
    complete -> verify the file on disk

A stalled transfer gets a couple of pause/unpause nudges before the attempt
is abandoned. Failed attempts are retried with exponential backoff, except
for a failed pre-flight check which means the object can not be fetched at
all and is raised immediately as PreflightError.
"""

import json
import os
import shutil
import time
import urllib.parse

from tqdm import tqdm

from archivemigrate import logger
from archivemigrate.clients.aria2 import STATUS_KEYS, Aria2Client, Aria2Error
from archivemigrate.clients.http_wrapper import HTTPClientError, HTTPClientWrapper
from archivemigrate.formatter import check_int, human_size, plural

CONTROL_SUFFIX = '.aria2'
RATE_LIMITED = 429
SOFT_RECOVER_PAUSE = 0.3
DIAGNOSTIC_HEADERS = ['content-length', 'accept-ranges', 'content-type', 'server', 'via', 'date',
                      'cf-cache-status']


class DownloadError(Exception):
    """Base exception for download failures."""
    pass


class PreflightError(DownloadError):
    """The source URL is unreachable or invalid. Never retried."""

    def __init__(self, message, reason=None):
        super().__init__(message)
        self.reason = reason

    def describe(self):
        if self.reason is None:
            return str(self)
        if isinstance(self.reason, str):
            return self.reason
        return json.dumps(self.reason, ensure_ascii=False, sort_keys=True)


class StallError(DownloadError):
    """No progress for longer than the stall timeout."""
    pass


class TransferError(DownloadError):
    """aria2 reported the task as failed or removed."""
    pass


class IntegrityError(DownloadError):
    """The finished file is missing, empty or of the wrong size."""
    pass


def build_url(base, key):
    """Join a mirror base URL and an object key."""
    return '%s/%s' % (base.rstrip('/'), urllib.parse.quote(key.lstrip('/'), safe='/'))


def control_file(path):
    return path + CONTROL_SUFFIX


def needs_download(path):
    """A file needs fetching if it is missing or aria2 left a control file."""
    return os.path.exists(control_file(path)) or not os.path.exists(path)


class DownloadManager:
    """
    Fetches storage objects into the download folder through aria2.

    Args:
        config: Configuration
        rpc: Optional Aria2Client
        http: Optional HTTPClientWrapper used for mirror checks
        sleep: Sleep function, in seconds
        clock: Monotonic clock, in seconds
    """

    def __init__(self, config, rpc=None, http=None, sleep=time.sleep, clock=time.monotonic):
        self.mirrors = config.mirrors
        self.policy = config.download
        self.poll_interval = config.aria2.poll_interval
        self.download_dir = config.directories.download_dir
        self.rpc = rpc or Aria2Client(config.aria2)
        self.http = http or HTTPClientWrapper('mirror', timeout=config.aria2.timeout)
        self.sleep = sleep
        self.clock = clock

    def save_path(self, out_name, directory=None):
        return os.path.join(directory or self.download_dir, out_name)

    def start(self, key, out_name, directory=None, retries=None, backoff_ms=None, stall_timeout_ms=None):
        """Download one object, retrying transient failures.

        Args:
            key: Object key in the source bucket
            out_name: File name to save as
            directory: Folder to save into (default the download folder)
            retries: Attempts before giving up (default from settings)
            backoff_ms: Base backoff, doubled after every failed attempt
            stall_timeout_ms: Allowed time without progress

        Returns:
            Path of the downloaded file

        Raises:
            PreflightError: The object can not be fetched; do not retry
            DownloadError: Every attempt failed
        """
        retries = self.policy.retries if retries is None else retries
        backoff_ms = self.policy.backoff_ms if backoff_ms is None else backoff_ms
        stall_timeout_ms = self.policy.stall_timeout_ms if stall_timeout_ms is None else stall_timeout_ms

        attempt = 0
        while True:
            attempt += 1
            try:
                return self.download_once(key, out_name, stall_timeout_ms, directory)
            except PreflightError:
                raise
            except (DownloadError, Aria2Error, HTTPClientError, OSError) as e:
                if attempt >= retries:
                    logger.error('Download of %s failed on the %s attempt: %s' % (key, plural(attempt), e))
                    raise
                self._release_path(self.save_path(out_name, directory))
                delay = backoff_ms * (2 ** (attempt - 1)) / 1000.0
                logger.warn('Download attempt %d of %s failed (%s), retrying in %ds' %
                            (attempt, key, e, round(delay)))
                self.sleep(delay)

    def download_once(self, key, out_name, stall_timeout_ms, directory=None):
        directory = directory or self.download_dir
        os.makedirs(directory, exist_ok=True)
        url = self.resolve_url(key)
        save_path = self.save_path(out_name, directory)
        logger.info('Start download %s -> %s' % (url, save_path))

        existing = self._find_task(save_path)
        if existing:
            gid = existing[0]
            logger.info('Reusing aria2 task %s (%s) for %s' % (gid, existing[1], save_path))
        else:
            self.preflight(url)
            self.prepare_target(save_path)
            gid = self.rpc.add_uri(url, directory, out_name)
        try:
            return self._poll(gid, out_name, save_path, stall_timeout_ms)
        except Exception:
            self.dump_diagnostics(gid, url, save_path, key)
            self.force_stop_and_cleanup(gid)
            raise

    def resolve_url(self, key):
        """Pick the mirror to download from.

        The primary mirror is checked with HEAD; rate limiting only delays
        the check. Anything else that is not a success falls back to the
        secondary mirror without further requests.
        """
        if not self.mirrors.primary_url:
            return build_url(self.mirrors.secondary_url, key)
        primary = build_url(self.mirrors.primary_url, key)
        fallback = build_url(self.mirrors.secondary_url or self.mirrors.primary_url, key)
        while True:
            try:
                response = self.http.head(primary)
            except HTTPClientError as e:
                logger.debug('Primary mirror check failed, using fallback: %s' % e)
                return fallback
            if response.status_code == RATE_LIMITED:
                self._wait_rate_limit('primary mirror')
                continue
            if response.ok:
                return primary
            logger.debug('Primary mirror answered %s for %s, using fallback' % (response.status_code, key))
            return fallback

    def preflight(self, url):
        """Check that url can be fetched before enqueueing it.

        Raises:
            PreflightError: With the response body, or status and reason, as detail
        """
        while True:
            try:
                response = self.http.head(url)
            except HTTPClientError as e:
                raise PreflightError('URL HEAD request error', {'error': str(e)})
            if response.status_code == RATE_LIMITED:
                self._wait_rate_limit(url)
                continue
            if response.ok:
                return
            try:
                reason = response.json()
            except ValueError:
                reason = {'status': response.status_code, 'statusText': response.reason}
            logger.warn('URL check failed for %s: %s' % (url, reason))
            raise PreflightError('URL HEAD check failed', reason)

    @staticmethod
    def prepare_target(save_path):
        """Remove leftovers aria2 would refuse to resume from.

        A data file without its control file, or a control file without
        its data file, is deleted.
        """
        ctrl_path = control_file(save_path)
        file_exists = os.path.exists(save_path)
        ctrl_exists = os.path.exists(ctrl_path)
        try:
            if file_exists and not ctrl_exists:
                os.remove(save_path)
                logger.warn('Removed existing file without control file: %s' % save_path)
            elif ctrl_exists and not file_exists:
                os.remove(ctrl_path)
                logger.warn('Removed stale control file without data: %s' % ctrl_path)
        except OSError as e:
            raise TransferError('Failed to clean download target %s: %s' % (save_path, e))

    @staticmethod
    def verify_file(save_path, expected_size=None):
        """Check the finished file.

        Raises:
            IntegrityError: If missing, empty or not expected_size bytes
        """
        if not os.path.isfile(save_path):
            raise IntegrityError('Downloaded file missing: %s' % save_path)
        size = os.path.getsize(save_path)
        if expected_size and size != expected_size:
            raise IntegrityError('Size mismatch: got %d, expected %d' % (size, expected_size))
        if size <= 0:
            raise IntegrityError('Downloaded file is empty: %s' % save_path)

    def _poll(self, gid, out_name, save_path, stall_timeout_ms):
        stall_timeout = stall_timeout_ms / 1000.0
        last_bytes = 0
        last_progress_at = self.clock()
        soft_retries = 0

        with tqdm(total=None, unit='B', unit_scale=True, desc=out_name, leave=False) as bar:
            while True:
                status = self.rpc.tell_status(gid, STATUS_KEYS)
                done = check_int(status.get('completedLength'), 0)
                total = check_int(status.get('totalLength'), 0)
                speed = check_int(status.get('downloadSpeed'), 0)
                state = status.get('status')

                if total > 0 and bar.total != total:
                    bar.total = total
                if done > bar.n:
                    bar.update(done - bar.n)
                bar.set_postfix(state=state, speed='%s/s' % human_size(speed), refresh=False)

                if state == 'complete':
                    self.verify_file(save_path, total if total > 0 else None)
                    logger.info('Done: %s (%s)' % (save_path, human_size(os.path.getsize(save_path))))
                    try:
                        self.rpc.remove_download_result(gid)
                    except (Aria2Error, HTTPClientError) as e:
                        logger.debug('Could not clear result of %s: %s' % (gid, e))
                    return save_path

                if state in ('error', 'removed'):
                    msg = status.get('errorMessage')
                    raise TransferError('aria2 status: %s%s' % (state, ' - %s' % msg if msg else ''))

                if done > last_bytes:
                    last_bytes = done
                    last_progress_at = self.clock()
                elif self.clock() - last_progress_at > stall_timeout:
                    if soft_retries >= self.policy.soft_recoveries:
                        raise StallError('Download stalled for %ds' % round(stall_timeout))
                    soft_retries += 1
                    logger.warn('No progress on %s for %ds, soft recovery %d' %
                                (out_name, round(stall_timeout), soft_retries))
                    bar.set_postfix(state='stall-recover-%d' % soft_retries, refresh=False)
                    self.soft_recover(gid)
                    last_progress_at = self.clock()

                self.sleep(self.poll_interval)

    def soft_recover(self, gid):
        """Pause and unpause a task in place.

        Returns:
            True if both calls went through
        """
        try:
            self.rpc.force_pause(gid)
            self.sleep(SOFT_RECOVER_PAUSE)
            self.rpc.unpause(gid)
            return True
        except (Aria2Error, HTTPClientError) as e:
            logger.warn('Soft recovery of %s failed: %s' % (gid, e))
            return False

    def force_stop_and_cleanup(self, gid):
        """Stop a task and drop its result so the path is free again."""
        for method in (self.rpc.force_pause, self.rpc.force_remove, self.rpc.remove_download_result):
            try:
                method(gid)
            except (Aria2Error, HTTPClientError) as e:
                logger.debug('Cleanup of %s: %s' % (gid, e))

    def _find_task(self, save_path):
        try:
            return self.rpc.find_task_by_path(save_path)
        except (Aria2Error, HTTPClientError) as e:
            logger.debug('Could not list aria2 tasks: %s' % e)
            return None

    def _release_path(self, save_path):
        existing = self._find_task(save_path)
        if existing:
            logger.debug('Stopping task %s still holding %s' % (existing[0], save_path))
            self.force_stop_and_cleanup(existing[0])

    def _wait_rate_limit(self, what):
        logger.warn('HEAD 429 from %s, waiting %ds and retrying' % (what, self.mirrors.rate_limit_wait))
        self.sleep(self.mirrors.rate_limit_wait)

    def dump_diagnostics(self, gid, url, save_path, key):
        """Log everything aria2 and the mirror can tell about a failed task."""
        logger.error('===== download diagnostics for %s =====' % key)
        logger.error('URL  : %s' % url)
        logger.error('Save : %s' % save_path)
        queries = [
            ('tellStatus', lambda: self.rpc.tell_status(gid)),
            ('getFiles', lambda: self.rpc.get_files(gid)),
            ('getServers', lambda: self.rpc.get_servers(gid)),
            ('globalStat', self.rpc.get_global_stat),
            ('version', self.rpc.get_version),
        ]
        for name, query in queries:
            try:
                result = query()
            except (Aria2Error, HTTPClientError) as e:
                result = {'error': str(e)}
            logger.error('%s: %s' % (name, json.dumps(result, ensure_ascii=False, default=str)))

        try:
            response = self.http.head(url)
            headers = {k: response.headers[k] for k in DIAGNOSTIC_HEADERS if k in response.headers}
            logger.error('HEAD : %s %s %s' % (response.status_code, response.reason, headers))
        except HTTPClientError as e:
            logger.error('HEAD failed: %s' % e)

        try:
            usage = shutil.disk_usage(os.path.dirname(save_path) or '.')
            logger.error('Disk : %s free of %s' % (human_size(usage.free), human_size(usage.total)))
        except OSError as e:
            logger.error('Disk check failed: %s' % e)
        logger.error('===== end of diagnostics =====')
