#  This file is part of ArchiveMigrate.
#
#  ArchiveMigrate is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#
#  ArchiveMigrate is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with ArchiveMigrate.  If not, see <http://www.gnu.org/licenses/>.

"""
Pytest configuration and shared fixtures for ArchiveMigrate tests.
"""

import os
import shutil
import sys
import tempfile

import pytest

# Ensure archivemigrate package is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

import archivemigrate
from archivemigrate.config import Configuration
from archivemigrate.database import DBConnection


@pytest.fixture(scope='session', autouse=True)
def setup_archivemigrate_globals():
    """Initialize ArchiveMigrate global variables needed for tests."""
    archivemigrate.PROG_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    archivemigrate.DATADIR = tempfile.mkdtemp(prefix='am_test_')
    archivemigrate.LOGLEVEL = 0  # Disable debug logging during tests

    yield

    if os.path.exists(archivemigrate.DATADIR):
        shutil.rmtree(archivemigrate.DATADIR, ignore_errors=True)


@pytest.fixture
def config(tmp_path):
    """Configuration rooted in a temporary data directory."""
    cfg = Configuration()
    cfg.directories.data_dir = str(tmp_path)
    cfg.mirrors.primary_url = 'https://primary.example.com'
    cfg.mirrors.secondary_url = 'https://secondary.example.com/'
    cfg.aria2.secret = 'sekrit'
    cfg.catalog.api_url = 'https://api.example.com'
    cfg.catalog.token = 'tok'
    cfg.storage.target_bucket = 'target'
    return cfg


@pytest.fixture
def store(tmp_path):
    """State store in a temporary sqlite file."""
    db = DBConnection(str(tmp_path / 'state.db'))
    yield db
    db.close()


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
