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
Type-safe configuration settings for ArchiveMigrate.

The Configuration object is built once at startup and handed to every
component that needs it. Nothing else in the package reads the process
environment.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List


class ConfigError(Exception):
    """Exception raised for configuration errors."""
    pass


@dataclass
class GeneralSettings:
    """Logging settings."""
    log_dir: str = ''
    log_files: int = 10
    log_size: int = 204800
    log_level: int = 1

    def validate(self) -> None:
        """Validate logging settings."""
        if self.log_files < 1:
            raise ConfigError("Log file count must be at least 1")
        if self.log_size < 1024:
            raise ConfigError("Log size must be at least 1024 bytes")
        if self.log_level < 0:
            raise ConfigError("Log level can not be negative")


@dataclass
class DirectorySettings:
    """Local working directories.

    Relative paths are resolved against data_dir.
    """
    data_dir: str = ''
    downloads: str = 'downloads'
    extracted: str = 'extracted'
    compressed: str = 'archives'

    def resolve(self, name: str) -> str:
        """Get the absolute path of one of the working directories."""
        path = getattr(self, name)
        if os.path.isabs(path):
            return path
        return os.path.abspath(os.path.join(self.data_dir or os.getcwd(), path))

    @property
    def download_dir(self) -> str:
        return self.resolve('downloads')

    @property
    def extracted_dir(self) -> str:
        return self.resolve('extracted')

    @property
    def compressed_dir(self) -> str:
        return self.resolve('compressed')

    @property
    def state_file(self) -> str:
        return os.path.join(self.data_dir or os.getcwd(), 'archivemigrate.db')


@dataclass
class StorageSettings:
    """Object storage settings."""
    endpoint: str = 'https://s3.us-east-005.backblazeb2.com'
    region: str = ''
    access_key: str = ''
    secret_key: str = ''
    source_buckets: List[str] = field(default_factory=lambda: ['hikari-games', 'hikari-games-authors'])
    target_bucket: str = ''
    part_size: int = 32 * 1024 * 1024
    queue_size: int = 4
    page_size: int = 1000

    def validate(self) -> None:
        """Validate storage settings."""
        if self.part_size < 5 * 1024 * 1024:
            raise ConfigError("Upload part size must be at least 5 MiB")
        if self.queue_size < 1:
            raise ConfigError("Upload queue size must be at least 1")

    def require_credentials(self) -> None:
        """Check the values needed to talk to the storage endpoint.

        Raises:
            ConfigError: If region or credentials are missing
        """
        if not self.region or not self.access_key or not self.secret_key:
            raise ConfigError("AWS_REGION, AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set")


@dataclass
class MirrorSettings:
    """Upstream download mirrors for the source bucket."""
    primary_url: str = ''
    secondary_url: str = ''
    rate_limit_wait: int = 60

    def validate(self) -> None:
        if self.rate_limit_wait < 0:
            raise ConfigError("Rate limit wait cannot be negative")


@dataclass
class Aria2Settings:
    """Download daemon RPC settings."""
    host: str = '127.0.0.1'
    port: int = 6800
    secret: str = ''
    split: int = 16
    max_connection_per_server: int = 16
    min_split_size: str = '1M'
    poll_interval: float = 0.5
    timeout: int = 30

    @property
    def rpc_url(self) -> str:
        return 'http://%s:%s/jsonrpc' % (self.host, self.port)

    def validate(self) -> None:
        """Validate daemon settings."""
        if self.port < 1 or self.port > 65535:
            raise ConfigError("aria2 port must be between 1 and 65535")
        if self.split < 1 or self.max_connection_per_server < 1:
            raise ConfigError("aria2 split and connection counts must be at least 1")
        if self.poll_interval <= 0:
            raise ConfigError("aria2 poll interval must be positive")


@dataclass
class DownloadSettings:
    """Retry and stall policy for a single transfer."""
    retries: int = 3
    backoff_ms: int = 60000
    stall_timeout_ms: int = 1200000
    soft_recoveries: int = 2

    def validate(self) -> None:
        if self.retries < 1:
            raise ConfigError("Download retries must be at least 1")
        if self.backoff_ms < 0 or self.stall_timeout_ms < 1:
            raise ConfigError("Download backoff and stall timeout must be positive")


@dataclass
class ArchiveSettings:
    """Archive tool settings."""
    seven_zip: str = ''
    password: str = ''
    output_format: str = '7z'
    compression_level: str = '1'

    def validate(self) -> None:
        if self.output_format not in ('7z', 'zip'):
            raise ConfigError("Archive format must be 7z or zip")
        if self.compression_level not in [str(n) for n in range(10)]:
            raise ConfigError("Compression level must be between 0 and 9")


@dataclass
class CatalogSettings:
    """Catalog HTTP API settings."""
    api_url: str = ''
    token: str = ''
    language: List[str] = field(default_factory=lambda: ['zh'])
    timeout: int = 30


@dataclass
class Configuration:
    """Main configuration container."""
    general: GeneralSettings = field(default_factory=GeneralSettings)
    directories: DirectorySettings = field(default_factory=DirectorySettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    mirrors: MirrorSettings = field(default_factory=MirrorSettings)
    aria2: Aria2Settings = field(default_factory=Aria2Settings)
    download: DownloadSettings = field(default_factory=DownloadSettings)
    archive: ArchiveSettings = field(default_factory=ArchiveSettings)
    catalog: CatalogSettings = field(default_factory=CatalogSettings)

    def validate(self) -> None:
        """Validate all configuration settings.

        Raises:
            ConfigError: If any setting is invalid
        """
        self.general.validate()
        self.storage.validate()
        self.mirrors.validate()
        self.aria2.validate()
        self.download.validate()
        self.archive.validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
