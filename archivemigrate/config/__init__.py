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
Configuration module for ArchiveMigrate.

This module provides type-safe configuration management.
"""

from archivemigrate.config.settings import (
    Configuration,
    GeneralSettings,
    DirectorySettings,
    StorageSettings,
    MirrorSettings,
    Aria2Settings,
    DownloadSettings,
    ArchiveSettings,
    CatalogSettings,
    ConfigError,
)
from archivemigrate.config.loader import ConfigLoader

__all__ = [
    'Configuration',
    'GeneralSettings',
    'DirectorySettings',
    'StorageSettings',
    'MirrorSettings',
    'Aria2Settings',
    'DownloadSettings',
    'ArchiveSettings',
    'CatalogSettings',
    'ConfigLoader',
    'ConfigError',
]
