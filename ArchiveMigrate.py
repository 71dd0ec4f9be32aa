#!/usr/bin/env python
# -*- coding: UTF-8 -*-
#
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
Command line entry point.

    ArchiveMigrate.py [options] [prepare | migrate | all | import <pairs.json>]

The command defaults to migrate. Endpoints and credentials come from
config.ini in the data directory and from the environment.
"""

import os
import sys
import threading
import traceback
from optparse import OptionParser

import archivemigrate
from archivemigrate import logger
from archivemigrate.archiver import SevenZip
from archivemigrate.clients.catalog import CatalogClient
from archivemigrate.clients.storage import StorageClient
from archivemigrate.config import ConfigError, ConfigLoader
from archivemigrate.database import DBConnection
from archivemigrate.download import DownloadManager
from archivemigrate.importer import CatalogImporter, load_pairs
from archivemigrate.migrate import MigrationError, MigrationPipeline
from archivemigrate.prepare import DatasetPreparer
from archivemigrate.uploader import Uploader

COMMANDS = ('prepare', 'migrate', 'all', 'import')


def load_config(options):
    loader = ConfigLoader(archivemigrate.CONFIGFILE)
    config = loader.load()
    loader.apply_environment(config)
    if not config.directories.data_dir:
        config.directories.data_dir = archivemigrate.DATADIR
    config.validate()
    if options.save_config:
        loader.save(config)
    return config


def run_prepare(config, store):
    catalog = CatalogClient(config.catalog)
    preparer = DatasetPreparer(config, store, StorageClient(config.storage), catalog)
    count = preparer.run()
    logger.info('Dataset ready: %d file groups' % count)


def run_migrate(config, store, retry_skipped):
    catalog = CatalogClient(config.catalog)
    pipeline = MigrationPipeline(
        config, store,
        downloader=DownloadManager(config),
        archiver=SevenZip(config.archive, config.directories),
        uploader=Uploader(catalog, StorageClient(config.storage)),
        retry_skipped=retry_skipped)
    pipeline.run()


def run_import(config, path):
    importer = CatalogImporter(CatalogClient(config.catalog), rate_limit_wait=config.mirrors.rate_limit_wait)
    totals = importer.import_games(load_pairs(path))
    return 1 if totals['auth_error'] else 0


def main():
    # rename this thread
    threading.current_thread().name = "MAIN"

    archivemigrate.FULL_PATH = os.path.abspath(__file__)
    archivemigrate.PROG_DIR = os.path.dirname(archivemigrate.FULL_PATH)
    archivemigrate.ARGS = sys.argv[1:]

    p = OptionParser(usage="%prog [options] [" + " | ".join(COMMANDS) + "] [pairs.json]")
    p.add_option('-q', '--quiet', action="store_true",
                 dest='quiet', help="Don't log to console")
    p.add_option('--debug', action="store_true",
                 dest='debug', help="Show debuglog messages")
    p.add_option('--loglevel',
                 dest='loglevel', default=None,
                 help="Debug loglevel, add 16/32/64/128 for detailed categories")
    p.add_option('--datadir',
                 dest='datadir', default=None,
                 help="Path to the data directory")
    p.add_option('--config',
                 dest='config', default=None,
                 help="Path to config.ini file")
    p.add_option('--retry-skipped', action="store_true",
                 dest='retry_skipped', help="Also reprocess groups that were skipped")
    p.add_option('--save-config', action="store_true",
                 dest='save_config', help="Write the effective configuration back to config.ini")

    options, args = p.parse_args()

    command = args[0] if args else 'migrate'
    if command not in COMMANDS:
        p.error('Unknown command %s' % command)
    if command == 'import' and len(args) < 2:
        p.error('import needs the path of a JSON file of {b_id, v_id} pairs')

    archivemigrate.LOGLEVEL = 1
    if options.debug:
        archivemigrate.LOGLEVEL = 2
    if options.quiet:
        archivemigrate.LOGLEVEL = 0
    if options.loglevel:
        try:
            archivemigrate.LOGLEVEL = int(options.loglevel)
        except ValueError:
            p.error('--loglevel must be a number')

    archivemigrate.DATADIR = str(options.datadir) if options.datadir else os.getcwd()
    if options.config:
        archivemigrate.CONFIGFILE = str(options.config)
    else:
        archivemigrate.CONFIGFILE = os.path.join(archivemigrate.DATADIR, "config.ini")

    if not os.path.isdir(archivemigrate.DATADIR):
        try:
            os.makedirs(archivemigrate.DATADIR)
        except OSError:
            raise SystemExit('Could not create data directory: ' + archivemigrate.DATADIR + '. Exit ...')

    try:
        config = load_config(options)
    except ConfigError as e:
        raise SystemExit('Configuration error: %s' % e)

    archivemigrate.init_loglevel(config.general)

    # REMINDER ############ NO LOGGING BEFORE HERE ###############
    logger.archivemigrate_log.initLogger(config.general, archivemigrate.LOGLEVEL)
    logger.info('ArchiveMigrate %s: %s' % (archivemigrate.__version__, command))

    store = DBConnection(config.directories.state_file)
    try:
        if command in ('prepare', 'all'):
            run_prepare(config, store)
        if command in ('migrate', 'all'):
            run_migrate(config, store, options.retry_skipped)
        if command == 'import':
            return run_import(config, args[1])
    except (MigrationError, ConfigError) as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error('Unhandled error: %s' % e)
        logger.error(traceback.format_exc())
        return 1
    finally:
        store.close()
        logger.archivemigrate_log.stopLogger()
    return 0


if __name__ == "__main__":
    sys.exit(main())
