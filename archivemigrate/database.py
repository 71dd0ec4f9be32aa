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
Persisted state store for ArchiveMigrate.

A single sqlite table maps a logical document name (raw_files, games,
final_files, ...) to its JSON content. update() performs a read-modify-write
inside one IMMEDIATE transaction so two processes can not interleave writes
to the same document.
"""

import json
import sqlite3
import threading
import time

import archivemigrate
from archivemigrate import logger
from archivemigrate.formatter import now

db_lock = threading.Lock()

SCHEMA = 'CREATE TABLE IF NOT EXISTS documents (Name TEXT PRIMARY KEY, Content TEXT NOT NULL, Updated TEXT)'


class DBConnection:
    def __init__(self, dbfile):
        self.dbfile = dbfile
        # autocommit, transactions are opened explicitly where needed
        self.connection = sqlite3.connect(dbfile, 20, isolation_level=None)
        self.connection.execute("PRAGMA journal_mode = WAL")
        # sync less often as using WAL mode
        self.connection.execute("PRAGMA synchronous = NORMAL")
        self.connection.row_factory = sqlite3.Row
        self.action(SCHEMA)

    def close(self):
        self.connection.close()

    # wrapper function with lock
    def action(self, query, args=None):
        if not query:
            return None
        with db_lock:
            return self._action(query, args)

    # do not use directly, use through action() or update() which add lock
    def _action(self, query, args=None):
        sqlResult = None
        attempt = 0

        while attempt < 5:
            try:
                if not args:
                    sqlResult = self.connection.execute(query)
                else:
                    sqlResult = self.connection.execute(query, args)
                break

            except sqlite3.OperationalError as e:
                if "unable to open database file" in str(e) or "database is locked" in str(e):
                    logger.warn('Database Error: %s' % e)
                    logger.debug("Attempted db query: [%s]" % query)
                    attempt += 1
                    if attempt == 5:
                        logger.error("Failed db query: [%s]" % query)
                        raise
                    time.sleep(1)
                else:
                    logger.error('Database error: %s' % e)
                    logger.error("Failed query: [%s]" % query)
                    raise

            except sqlite3.DatabaseError as e:
                logger.error('Fatal error executing %s :: %s' % (query, e))
                raise

        return sqlResult

    def match(self, query, args=None):
        sqlResults = self.action(query, args).fetchone()
        if not sqlResults:
            return []
        return sqlResults

    def select(self, query, args=None):
        sqlResults = self.action(query, args).fetchall()
        if not sqlResults:
            return []
        return sqlResults

    def read(self, name):
        """Get a stored document, or None if it was never written."""
        row = self.match('SELECT Content FROM documents WHERE Name=?', (name,))
        if not row:
            return None
        if archivemigrate.LOGLEVEL & archivemigrate.log_dbcomms:
            logger.debug('Read document %s (%s bytes)' % (name, len(row['Content'])))
        return json.loads(row['Content'])

    def has(self, name):
        return bool(self.match('SELECT Name FROM documents WHERE Name=?', (name,)))

    def write(self, name, document):
        """Replace a document."""
        with db_lock:
            self._write(name, document)

    def _write(self, name, document):
        content = json.dumps(document, ensure_ascii=False)
        self._action('INSERT INTO documents (Name, Content, Updated) VALUES (?, ?, ?) '
                     'ON CONFLICT(Name) DO UPDATE SET Content=excluded.Content, Updated=excluded.Updated',
                     (name, content, now()))
        if archivemigrate.LOGLEVEL & archivemigrate.log_dbcomms:
            logger.debug('Wrote document %s (%s bytes)' % (name, len(content)))

    def update(self, name, updater):
        """Atomically read, modify and write one document.

        updater receives the current document (None if absent) and returns
        the new one. Returning None leaves the document untouched.

        Returns:
            The document as stored after the call
        """
        with db_lock:
            self._action('BEGIN IMMEDIATE')
            try:
                row = self._action('SELECT Content FROM documents WHERE Name=?', (name,)).fetchone()
                current = json.loads(row['Content']) if row else None
                updated = updater(current)
                if updated is not None:
                    self._write(name, updated)
                    current = updated
                self._action('COMMIT')
            except Exception:
                self.connection.rollback()
                raise
        return current

    def delete(self, name):
        self.action('DELETE FROM documents WHERE Name=?', (name,))

    def names(self):
        return [row['Name'] for row in self.select('SELECT Name FROM documents ORDER BY Name')]
