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

import inspect
import logging
import os
import threading
from logging import handlers

import archivemigrate


# Simple rotating log handler that uses RotatingFileHandler
class RotatingLogger(object):

    def __init__(self, filename):

        self.filename = filename
        self.filehandler = None
        self.consolehandler = None

    def stopLogger(self):
        lg = logging.getLogger('archivemigrate')
        if self.filehandler:
            lg.removeHandler(self.filehandler)
            self.filehandler.close()
            self.filehandler = None
        if self.consolehandler:
            lg.removeHandler(self.consolehandler)
            self.consolehandler = None

    def initLogger(self, settings, loglevel=1):
        """Attach file and console handlers.

        settings is a GeneralSettings instance; log_dir falls back to the
        data directory when empty.
        """
        self.stopLogger()

        lg = logging.getLogger('archivemigrate')
        lg.setLevel(logging.DEBUG)

        log_dir = settings.log_dir or os.path.join(archivemigrate.DATADIR, 'Logs')
        if not os.path.isdir(log_dir):
            os.makedirs(log_dir)
        logfile = os.path.join(log_dir, self.filename)

        filehandler = handlers.RotatingFileHandler(
            logfile,
            maxBytes=settings.log_size,
            backupCount=settings.log_files,
            encoding='utf-8')

        filehandler.setLevel(logging.DEBUG)

        fileformatter = logging.Formatter('%(asctime)s - %(levelname)-7s :: %(message)s', '%d-%b-%Y %H:%M:%S')

        filehandler.setFormatter(fileformatter)
        lg.addHandler(filehandler)
        self.filehandler = filehandler

        if loglevel:
            consolehandler = logging.StreamHandler()
            if loglevel == 1:
                consolehandler.setLevel(logging.INFO)
            if loglevel >= 2:
                consolehandler.setLevel(logging.DEBUG)
            consoleformatter = logging.Formatter('%(asctime)s - %(levelname)s :: %(message)s', '%d-%b-%Y %H:%M:%S')
            consolehandler.setFormatter(consoleformatter)
            lg.addHandler(consolehandler)
            self.consolehandler = consolehandler

    @staticmethod
    def log(message, level):

        logger = logging.getLogger('archivemigrate')

        threadname = threading.current_thread().name

        # Get the frame data of the method that made the original logger call
        if len(inspect.stack()) > 2:
            frame = inspect.getframeinfo(inspect.stack()[2][0])
            program = os.path.basename(frame.filename)
            method = frame.function
            lineno = frame.lineno
        else:
            program = ""
            method = ""
            lineno = ""

        message = "%s : %s:%s:%s : %s" % (threadname, program, method, lineno, message)

        if level == 'DEBUG':
            logger.debug(message)
        elif level == 'INFO':
            logger.info(message)
        elif level == 'WARNING':
            logger.warning(message)
        else:
            logger.error(message)


archivemigrate_log = RotatingLogger('archivemigrate.log')


def debug(message):
    if archivemigrate.LOGLEVEL > 1:
        archivemigrate_log.log(message, level='DEBUG')


def info(message):
    if archivemigrate.LOGLEVEL > 0:
        archivemigrate_log.log(message, level='INFO')


def warn(message):
    archivemigrate_log.log(message, level='WARNING')


def error(message):
    archivemigrate_log.log(message, level='ERROR')
