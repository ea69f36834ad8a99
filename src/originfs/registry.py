import typing as t
import threading
import zirconium as zr
import zrlog
from autoinject import injector
from originfs.names import FileName
from originfs.options import FileSystemOptions
from originfs.provider import FileProvider, extract_connect_timeout
from originfs.storage.base import BackendConnector, FileObject
from originfs.storage.azure_blob import AzureBlobConnector
from originfs.storage.azure_files import AzureFilesConnector
from originfs.storage.ftp import FTPConnector
from originfs.storage.local import LocalConnector
from originfs.util import ConfigError, as_bool


@injector.injectable_global
class FileProviderRegistry:
    """Identifies the correct provider for a given URI.

        https://STORAGE.blob.core.windows.net/CONTAINER -> AzureBlobConnector
        https://STORAGE.file.core.windows.net/SHARE -> AzureFilesConnector
        ftp://PATH -> FTPConnector
        ftps://PATH -> FTPConnector
        (default or path-like) -> LocalConnector
    """

    config: zr.ApplicationConfig = None

    @injector.construct
    def __init__(self, connectors: t.Optional[list[BackendConnector]] = None):
        self._lock = threading.Lock()
        self._log = zrlog.get_logger("originfs.registry")
        default_timeout = self._default_timeout()
        if connectors is None:
            connectors = [
                AzureFilesConnector(default_timeout),
                AzureBlobConnector(default_timeout),
                FTPConnector(
                    default_timeout,
                    passive_mode=as_bool(self._config_value(("originfs", "ftp", "passive_mode")), True),
                    encoding=self._config_value(("originfs", "ftp", "encoding")) or "utf-8",
                ),
            ]
        self.providers = [FileProvider(c) for c in connectors]
        self.default_provider = FileProvider(LocalConnector())

    def _config_value(self, key: tuple):
        if self.config is None:
            return None
        return self.config.get(key, default=None)

    def _default_timeout(self) -> t.Optional[int]:
        value = self._config_value(("originfs", "connect_timeout"))
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as ex:
            raise ConfigError(f"Invalid connect timeout [{value}]", 1000) from ex

    def get_provider(self, name: FileName) -> FileProvider:
        """Find the provider that handles the given name."""
        for provider in self.providers:
            if provider.supports(name):
                return provider
        return self.default_provider

    def find_file(self,
                  uri: str,
                  options: t.Union[FileSystemOptions, dict, None] = None,
                  base: t.Union[FileObject, FileName, None] = None) -> FileObject:
        """Locate a file by URI using the appropriate provider."""
        name = self.default_provider.parse_uri(base, uri)
        provider = self.get_provider(name)
        self._log.debug(f"Locating [{name}] with {provider.connector.__class__.__name__}")
        return provider.resolve(name, options, extract_connect_timeout(uri))

    def close_all(self):
        with self._lock:
            for provider in self.providers:
                provider.close()
            self.default_provider.close()
