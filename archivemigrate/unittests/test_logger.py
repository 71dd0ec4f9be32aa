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
Unit tests for archivemigrate.logger module.

Tests cover:
- Log level flags
- Logger initialization
- Module level logging functions
"""

import logging
import os

import pytest

import archivemigrate
from archivemigrate import logger
from archivemigrate.config import GeneralSettings


@pytest.fixture
def logger_config(tmp_path):
    """Route the logger to a temporary directory."""
    original_loglevel = archivemigrate.LOGLEVEL
    archivemigrate.LOGLEVEL = 1
    logger.archivemigrate_log.initLogger(GeneralSettings(log_dir=str(tmp_path)), loglevel=0)

    yield tmp_path

    logger.archivemigrate_log.stopLogger()
    archivemigrate.LOGLEVEL = original_loglevel


class TestLoggerFunctions:
    """Tests for logger module functions."""

    def test_logger_debug_when_debug_enabled(self, logger_config):
        archivemigrate.LOGLEVEL = 2
        logger.debug('Test debug message')

    def test_logger_info(self, logger_config):
        logger.info('Test info message')

    def test_logger_warn(self, logger_config):
        logger.warn('Test warning message')

    def test_logger_error(self, logger_config):
        logger.error('Test error message')

    def test_messages_reach_file(self, logger_config):
        logger.info('written to disk')
        logger.archivemigrate_log.filehandler.flush()

        with open(os.path.join(str(logger_config), 'archivemigrate.log'), encoding='utf-8') as f:
            content = f.read()
        assert 'written to disk' in content
        assert 'test_logger.py' in content

    def test_debug_suppressed_at_info_level(self, logger_config):
        logger.debug('hidden message')
        logger.archivemigrate_log.filehandler.flush()

        with open(os.path.join(str(logger_config), 'archivemigrate.log'), encoding='utf-8') as f:
            assert 'hidden message' not in f.read()


class TestLoggerInit:
    """Tests for RotatingLogger."""

    def test_creates_log_dir(self, tmp_path):
        log_dir = tmp_path / 'nested' / 'Logs'
        rotating = logger.RotatingLogger('other.log')
        rotating.initLogger(GeneralSettings(log_dir=str(log_dir)), loglevel=0)
        try:
            assert (log_dir / 'other.log').exists()
            assert rotating.consolehandler is None
        finally:
            rotating.stopLogger()

    def test_console_handler_level(self, tmp_path):
        rotating = logger.RotatingLogger('console.log')
        rotating.initLogger(GeneralSettings(log_dir=str(tmp_path)), loglevel=2)
        try:
            assert rotating.consolehandler.level == logging.DEBUG
        finally:
            rotating.stopLogger()

    def test_stop_removes_handlers(self, tmp_path):
        rotating = logger.RotatingLogger('stop.log')
        rotating.initLogger(GeneralSettings(log_dir=str(tmp_path)), loglevel=1)
        rotating.stopLogger()
        assert rotating.filehandler is None
        assert rotating.consolehandler is None


class TestLogLevelFlags:
    """Tests for log level flag constants."""

    def test_flags(self):
        assert archivemigrate.log_dlcomms == 16
        assert archivemigrate.log_dbcomms == 32
        assert archivemigrate.log_postprocess == 64
        assert archivemigrate.log_fuzz == 128

    def test_flags_are_distinct_bits(self):
        flags = [archivemigrate.log_dlcomms, archivemigrate.log_dbcomms,
                 archivemigrate.log_postprocess, archivemigrate.log_fuzz]
        combined = 0
        for flag in flags:
            assert not combined & flag
            combined |= flag


class TestInitLoglevel:
    """Tests for archivemigrate.init_loglevel()."""

    def test_config_level_used_by_default(self, monkeypatch):
        monkeypatch.setattr(archivemigrate, 'LOGLEVEL', 1)

        assert archivemigrate.init_loglevel(GeneralSettings(log_level=2 | archivemigrate.log_fuzz)) == 130
        assert archivemigrate.LOGLEVEL == 130

    def test_command_line_level_kept(self, monkeypatch):
        monkeypatch.setattr(archivemigrate, 'LOGLEVEL', 0)

        assert archivemigrate.init_loglevel(GeneralSettings(log_level=2)) == 0
        assert archivemigrate.LOGLEVEL == 0
