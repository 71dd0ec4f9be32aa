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

# Transient globals NOT stored in config
# These are set by ArchiveMigrate.py before anything is logged
FULL_PATH = None
PROG_DIR = None
ARGS = None
DATADIR = ''
CONFIGFILE = ''
LOGLEVEL = 1

# extended loglevels
log_dlcomms = 1 << 4  # 16 detailed downloader/daemon communication
log_dbcomms = 1 << 5  # 32 state store reads and writes
log_postprocess = 1 << 6  # 64 archive tool output
log_fuzz = 1 << 7  # 128 match scoring

__version__ = '1.0.0'


def init_loglevel(general):
    """Use the configured log level unless the command line changed it."""
    global LOGLEVEL
    if LOGLEVEL == 1:  # default if no debug or quiet on cmdline
        LOGLEVEL = general.log_level
    return LOGLEVEL
