import datetime
import functools
import typing as t
import requests
import urllib3.exceptions
import azure.core.exceptions as ace
from azure.identity import DefaultAzureCredential
from azure.storage.blob import BlobServiceClient, ContainerClient, BlobClient, BlobProperties
import zirconium as zr
from autoinject import injector
from originfs.names import FileName
from originfs.options import FileSystemOptions
from originfs.util import ms_to_seconds
from .base import FileObject, FileSystem, StorageError


def wrap_azure_errors(cb):

    @functools.wraps(cb)
    def _inner(*args, **kwargs):
        try:
            return cb(*args, **kwargs)
        except ace.AzureError as ex:
            if ex.inner_exception is not None:
                if isinstance(ex.inner_exception, urllib3.exceptions.ConnectTimeoutError):
                    raise StorageError(f"Azure: Connection timeout error: {ex.__class__.__name__}: {str(ex)}", 2001, True) from ex
                elif isinstance(ex.inner_exception, requests.ConnectionError):
                    raise StorageError(f"Azure: Connection error: {ex.__class__.__name__}: {str(ex)}", 2002, True) from ex
            if isinstance(ex, ace.ClientAuthenticationError):
                raise StorageError(f"Azure: Client authentication error: {ex.__class__.__name__}: {str(ex)}", 2003, True) from ex
            elif isinstance(ex, ace.ServiceRequestError):
                raise StorageError(f"Azure: Service request error: {ex.__class__.__name__}: {str(ex)}", 2006, True) from ex
            raise StorageError(f"Azure: {ex.__class__.__name__}: {str(ex)}", 2000) from ex
        except ValueError as ex:
            raise StorageError(f"Azure: Invalid client settings: {str(ex)}", 2007) from ex

    return _inner


def split_container_path(name: FileName) -> tuple[str, str]:
    """Split a name into its container (or share) and the path within it."""
    path_parts = name.path.lstrip('/').split('/', 1)
    return path_parts[0], (path_parts[1] if len(path_parts) > 1 else "")


class AzureConnectorBase:
    """Shared settings lookup for the Azure storage connectors."""

    config: zr.ApplicationConfig = None
    domain_suffix = None

    @injector.construct
    def __init__(self, default_timeout: t.Optional[int] = None):
        self._default_timeout = default_timeout

    def supports(self, name: FileName) -> bool:
        return name.scheme in ("http", "https") and name.host.endswith(self.domain_suffix)

    def storage_account(self, root_name: FileName) -> str:
        return root_name.host[:-len(self.domain_suffix)]

    def account_url(self, root_name: FileName) -> str:
        return root_name.root().uri

    def connection_string(self, root_name: FileName, options: FileSystemOptions) -> t.Optional[str]:
        conn_str = options.get("azure.connection_string")
        if conn_str is None and self.config is not None:
            conn_str = self.config.as_str(("azure", "storage", self.storage_account(root_name), "connection_string"), default=None)
        return conn_str or None

    def client_kwargs(self, options: FileSystemOptions, connect_timeout: t.Optional[int] = None) -> dict:
        timeout = connect_timeout
        if timeout is None:
            timeout = options.get("azure.connect_timeout", self._default_timeout)
        kwargs = {}
        if timeout is not None:
            kwargs["connection_timeout"] = ms_to_seconds(int(timeout))
        return kwargs


class AzureBlobFile(FileObject):

    def __init__(self, name: FileName, file_system):
        super().__init__(name, file_system)
        self._service: BlobServiceClient = file_system.service_client
        self._container, self._blob_name = split_container_path(name)

    def container_client(self) -> ContainerClient:
        return self._service.get_container_client(self._container)

    def blob_client(self) -> BlobClient:
        if self._name.is_dir_path() or not self._blob_name:
            raise StorageError(f"Cannot make blob client on a directory", 2008)
        return self._service.get_blob_client(self._container, self._blob_name)

    @wrap_azure_errors
    def _exists(self) -> bool:
        if not self._container:
            next(iter(self._service.list_containers(results_per_page=1)), None)
            return True
        if not self._blob_name:
            return self.container_client().exists()
        if self._name.is_dir_path():
            blobs = self.container_client().list_blobs(name_starts_with=self._blob_name, results_per_page=1)
            return next(iter(blobs), None) is not None
        return self.blob_client().exists()

    def properties(self, clear_cache: bool = False) -> BlobProperties:
        return self._with_cache('properties', self._properties, clear_cache=clear_cache)

    @wrap_azure_errors
    def _properties(self) -> BlobProperties:
        return self.blob_client().get_blob_properties()

    def _size(self) -> t.Optional[int]:
        if self._name.is_dir_path():
            return None
        return self.properties().size

    def _modified_datetime(self) -> t.Optional[datetime.datetime]:
        if self._name.is_dir_path():
            return None
        return self.properties().last_modified

    @wrap_azure_errors
    def _read_chunks(self, buffer_size: int) -> t.Iterable[bytes]:
        return self.blob_client().download_blob().chunks()


class AzureBlobFileSystem(FileSystem):

    def __init__(self, root_name: FileName, options: FileSystemOptions, service_client: BlobServiceClient):
        super().__init__(root_name, options)
        self.service_client = service_client

    def _create_file(self, name: FileName) -> FileObject:
        return AzureBlobFile(name, self)

    def _close(self):
        self.service_client.close()


class AzureBlobConnector(AzureConnectorBase):
    """Connector for https://STORAGE.blob.core.windows.net/CONTAINER/BLOB names."""

    domain_suffix = ".blob.core.windows.net"

    @wrap_azure_errors
    def create(self,
               root_name: FileName,
               options: FileSystemOptions,
               connect_timeout: t.Optional[int] = None) -> FileSystem:
        kwargs = self.client_kwargs(options, connect_timeout)
        conn_str = self.connection_string(root_name, options)
        if conn_str:
            client = BlobServiceClient.from_connection_string(conn_str, **kwargs)
        else:
            credential = options.get("azure.credential") or DefaultAzureCredential()
            client = BlobServiceClient(self.account_url(root_name), credential=credential, **kwargs)
        return AzureBlobFileSystem(root_name, options, client)
