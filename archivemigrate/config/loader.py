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
Configuration loader for ArchiveMigrate.

This module loads configuration from an optional INI file and then
applies environment overrides for endpoints and credentials.
"""

import configparser
import os
from typing import Any, List, Mapping, Optional

from archivemigrate.config.settings import Configuration, ConfigError


class ConfigLoader:
    """Loads and saves configuration from INI files.

    Each INI section maps onto one dataclass section of Configuration.
    """

    # Environment variable -> (section, attribute)
    ENVIRONMENT_MAPPING = {
        'BUCKET1_URL': ('mirrors', 'primary_url'),
        'BUCKET2_URL': ('mirrors', 'secondary_url'),
        'ARIA2_SECRET': ('aria2', 'secret'),
        'AWS_REGION': ('storage', 'region'),
        'AWS_ACCESS_KEY_ID': ('storage', 'access_key'),
        'AWS_SECRET_ACCESS_KEY': ('storage', 'secret_key'),
        'BUCKET': ('storage', 'target_bucket'),
        'S3_ENDPOINT': ('storage', 'endpoint'),
        'API_URL': ('catalog', 'api_url'),
        'TOKEN': ('catalog', 'token'),
        'SEVEN_ZIP': ('archive', 'seven_zip'),
        'UNZIP_PASSWORD': ('archive', 'password'),
    }

    SECTIONS = {
        'General': 'general',
        'Directories': 'directories',
        'Storage': 'storage',
        'Mirrors': 'mirrors',
        'Aria2': 'aria2',
        'Download': 'download',
        'Archive': 'archive',
        'Catalog': 'catalog',
    }

    def __init__(self, config_file: Optional[str] = None):
        """Initialize the config loader.

        Args:
            config_file: Path to the configuration file
        """
        self.config_file = config_file
        self._parser = configparser.ConfigParser()

    def load(self, config_file: Optional[str] = None) -> Configuration:
        """Load configuration from a file.

        A missing file is not an error, defaults are used instead.

        Args:
            config_file: Path to config file (overrides constructor path)

        Returns:
            Configuration object with loaded values

        Raises:
            ConfigError: If the file exists but cannot be parsed
        """
        file_path = config_file or self.config_file
        config = Configuration()

        if file_path and os.path.isfile(file_path):
            try:
                self._parser.read(file_path, encoding='utf-8')
            except configparser.Error as e:
                raise ConfigError("Failed to read config file: %s" % str(e))

            for section, attr in self.SECTIONS.items():
                self._load_section(section, getattr(config, attr))

        return config

    def save(self, config: Configuration, config_file: Optional[str] = None) -> None:
        """Save configuration to a file.

        Args:
            config: Configuration object to save
            config_file: Path to config file (overrides constructor path)

        Raises:
            ConfigError: If file cannot be written
        """
        file_path = config_file or self.config_file
        if not file_path:
            raise ConfigError("No configuration file specified")

        for section, attr in self.SECTIONS.items():
            self._save_section(section, getattr(config, attr))

        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                self._parser.write(f)
        except OSError as e:
            raise ConfigError("Failed to write config file: %s" % str(e))

    def apply_environment(self, config: Configuration,
                          environ: Optional[Mapping[str, str]] = None) -> Configuration:
        """Overlay endpoint and credential values from the environment.

        Args:
            config: Configuration to update in place
            environ: Mapping to read from (default: os.environ)

        Returns:
            The same Configuration object
        """
        if environ is None:
            environ = os.environ
        for key, (section, attr) in self.ENVIRONMENT_MAPPING.items():
            value = environ.get(key)
            if value:
                setattr(getattr(config, section), attr, value)
        return config

    def _load_section(self, section: str, target: Any) -> None:
        """Copy values from an INI section onto a settings dataclass."""
        if not self._parser.has_section(section):
            return
        for key, default in vars(target).items():
            raw = self._get_setting(section, key)
            if raw is None:
                continue
            setattr(target, key, self._convert(raw, default, section, key))

    def _save_section(self, section: str, source: Any) -> None:
        """Write a settings dataclass into an INI section."""
        self._ensure_section(section)
        for key, value in vars(source).items():
            if isinstance(value, list):
                value = ', '.join(value)
            elif isinstance(value, bool):
                value = '1' if value else '0'
            self._parser.set(section, key, str(value))

    def _ensure_section(self, section: str) -> None:
        """Ensure a section exists in the parser."""
        if not self._parser.has_section(section):
            self._parser.add_section(section)

    def _get_setting(self, section: str, key: str, default: Any = None) -> Any:
        """Get a setting from the parser."""
        try:
            return self._parser.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    @staticmethod
    def _convert(raw: str, default: Any, section: str, key: str) -> Any:
        """Convert an INI string to the type of the dataclass default."""
        if isinstance(default, bool):
            return raw.strip().lower() in ('true', '1', 'yes')
        if isinstance(default, int):
            try:
                return int(raw)
            except ValueError:
                raise ConfigError("%s.%s must be an integer, got %r" % (section, key, raw))
        if isinstance(default, float):
            try:
                return float(raw)
            except ValueError:
                raise ConfigError("%s.%s must be a number, got %r" % (section, key, raw))
        if isinstance(default, list):
            return ConfigLoader._get_list(raw)
        return raw

    @staticmethod
    def _get_list(raw: str) -> List[str]:
        """Split a comma separated INI value."""
        return [item.strip() for item in raw.split(',') if item.strip()]
