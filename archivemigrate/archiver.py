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
7-Zip command line wrapper.

Extracts downloaded archives and recompresses the extracted tree. Progress
percentages are read from the tool's stdout for display only; the exit code
decides success. A wrong extract password is detected from stderr while the
tool is still running and the process is killed straight away.
"""

import os
import re
import shutil
import subprocess
import threading

from tqdm import tqdm

import archivemigrate
from archivemigrate import logger

CANDIDATE_BINARIES = ['7zz', '7z', '7za']
PROGRESS_RE = re.compile(r'(\d{1,3})%')
PASSWORD_ERROR_RE = re.compile(
    r'wrong password|password is incorrect|can not open encrypted archive|data error in encrypted file',
    re.IGNORECASE)
ARCHIVE_EXT_RE = re.compile(r'\.(7z|zip|tar|tgz|tar\.gz)$', re.IGNORECASE)


class ArchiveError(Exception):
    """The archive tool failed."""

    def __init__(self, message, stderr=''):
        super().__init__(message)
        self.stderr = stderr


class ExtractPasswordError(ArchiveError):
    """The archive is encrypted and the configured password does not open it."""
    pass


class ArchiveToolMissing(ArchiveError):
    """No 7-Zip executable could be found."""
    pass


def basename_no_ext(path):
    return ARCHIVE_EXT_RE.sub('', os.path.basename(path))


class SevenZip:
    """
    Runs 7-Zip for extract and compress.

    Args:
        settings: ArchiveSettings
        directories: DirectorySettings, for the default output folders
        popen: Process factory, mainly for tests
    """

    def __init__(self, settings, directories, popen=subprocess.Popen):
        self.settings = settings
        self.directories = directories
        self.popen = popen
        self._binary = None

    @property
    def binary(self):
        if self._binary is None:
            self._binary = self.find_binary()
        return self._binary

    def find_binary(self):
        """Locate the executable: configured path first, then PATH.

        Raises:
            ArchiveToolMissing: If none of the candidates exist
        """
        candidates = [self.settings.seven_zip] if self.settings.seven_zip else []
        candidates += CANDIDATE_BINARIES
        for candidate in candidates:
            found = shutil.which(candidate)
            if found:
                logger.debug('Using archive tool %s' % found)
                return found
        raise ArchiveToolMissing(
            "7z executable not found. Install 7-Zip (7zz, 7z or 7za) on PATH "
            "or set SEVEN_ZIP to the executable")

    def extract(self, archive, dest_dir=None):
        """Extract archive into dest_dir.

        Args:
            archive: Path of the archive, or of its first volume
            dest_dir: Output folder, default <extracted>/<archive name>

        Returns:
            The output folder

        Raises:
            ExtractPasswordError: If the archive can not be decrypted
            ArchiveError: For any other failure
        """
        if not os.path.isfile(archive):
            raise ArchiveError('Archive not found: %s' % archive)
        dest = os.path.abspath(dest_dir or os.path.join(self.directories.extracted_dir, basename_no_ext(archive)))
        os.makedirs(dest, exist_ok=True)

        args = ['x', archive, '-o%s' % dest, '-y', '-bsp1', '-bso0']
        if self.settings.password:
            args.append('-p%s' % self.settings.password)
        logger.info('Extract %s -> %s' % (archive, dest))
        self._run(args, 'extract')
        logger.info('Extracted -> %s' % dest)
        return dest

    def compress(self, src, out_path=None, output_format=None, out_dir=None):
        """Compress a file or folder.

        An archive already at the output path is replaced, as 7z would
        otherwise add to it.

        Args:
            src: Path to compress
            out_path: Output archive, default <out_dir>/<basename(src)>.<format>
            output_format: '7z' or 'zip', default from settings
            out_dir: Folder for the default output name, default <compressed>

        Returns:
            The output archive path
        """
        if not os.path.exists(src):
            raise ArchiveError('Source path not found: %s' % src)
        output_format = output_format or self.settings.output_format
        base = os.path.basename(os.path.abspath(src))
        if out_path:
            out = os.path.abspath(out_path)
        else:
            out = os.path.join(out_dir or self.directories.compressed_dir, '%s.%s' % (base, output_format))
        os.makedirs(os.path.dirname(out), exist_ok=True)
        if os.path.isfile(out):
            logger.debug('Replacing existing archive %s' % out)
            os.remove(out)

        type_switch = '-tzip' if output_format == 'zip' else '-t7z'
        args = ['a', type_switch, '-mx=%s' % self.settings.compression_level, out, src, '-bsp1', '-bso0']
        logger.info('Compress %s -> %s (%s, mx=%s)' % (src, out, output_format, self.settings.compression_level))
        self._run(args, 'compress')
        logger.info('Compressed -> %s' % out)
        return out

    def _run(self, args, label):
        cmd = [self.binary] + args
        if archivemigrate.LOGLEVEL & archivemigrate.log_postprocess:
            # never log the password switch
            logger.debug('Running %s' % ' '.join(a for a in cmd if not a.startswith('-p')))

        proc = self.popen(cmd, stdin=subprocess.DEVNULL, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        errors = []
        password_failed = threading.Event()

        def read_stderr():
            for raw in iter(proc.stderr.readline, b''):
                line = raw.decode('utf-8', 'replace')
                errors.append(line)
                if not password_failed.is_set() and PASSWORD_ERROR_RE.search(line):
                    password_failed.set()
                    proc.kill()

        reader = threading.Thread(target=read_stderr, name='7z-stderr')
        reader.daemon = True
        reader.start()

        last_pct = 0
        with tqdm(total=100, desc=label, unit='%', leave=False) as bar:
            while True:
                chunk = proc.stdout.read1(4096)
                if not chunk:
                    break
                text = chunk.decode('utf-8', 'replace')
                if archivemigrate.LOGLEVEL & archivemigrate.log_postprocess:
                    logger.debug('%s: %s' % (label, text.strip()))
                pct = max([last_pct] + [min(100, int(p)) for p in PROGRESS_RE.findall(text)])
                if pct > last_pct:
                    bar.update(pct - last_pct)
                    last_pct = pct
            returncode = proc.wait()
            reader.join()
            if returncode == 0 and last_pct < 100:
                bar.update(100 - last_pct)

        stderr = ''.join(errors).strip()
        if password_failed.is_set():
            logger.warn('Extract password error: %s' % args[1])
            raise ExtractPasswordError('Extract password error', stderr)
        if returncode != 0:
            msg = stderr or '7z exit code %s' % returncode
            logger.error('%s failed: %s' % (label, msg))
            raise ArchiveError(msg, stderr)
