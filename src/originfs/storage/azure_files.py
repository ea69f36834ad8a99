import datetime
import typing as t
from azure.core.exceptions import ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.storage.fileshare import ShareServiceClient, ShareFileClient, ShareDirectoryClient, FileProperties
from originfs.names import FileName
from originfs.options import FileSystemOptions
from .base import FileObject, FileSystem, StorageError
from .azure_blob import AzureConnectorBase, wrap_azure_errors, split_container_path


class AzureFile(FileObject):

    def __init__(self, name: FileName, file_system):
        super().__init__(name, file_system)
        self._service: ShareServiceClient = file_system.service_client
        self._share, self._file_path = split_container_path(name)

    def file_client(self) -> ShareFileClient:
        if self._name.is_dir_path() or not self._file_path:
            raise StorageError(f"Cannot make file client on a directory", 2009)
        return self._service.get_share_client(self._share).get_file_client(self._file_path)

    def directory_client(self) -> ShareDirectoryClient:
        return self._service.get_share_client(self._share).get_directory_client(self._file_path.rstrip('/'))

    @wrap_azure_errors
    def _exists(self) -> bool:
        if not self._share:
            next(iter(self._service.list_shares(results_per_page=1)), None)
            return True
        if self._name.is_dir_path() or not self._file_path:
            try:
                self.directory_client().get_directory_properties()
                return True
            except ResourceNotFoundError:
                return False
        try:
            self.file_client().get_file_properties()
            return True
        except ResourceNotFoundError:
            return False

    def file_properties(self, clear_cache: bool = False) -> FileProperties:
        return self._with_cache('file_properties', self._file_properties, clear_cache=clear_cache)

    @wrap_azure_errors
    def _file_properties(self):
        return self.file_client().get_file_properties()

    def _size(self) -> t.Optional[int]:
        if self._name.is_dir_path():
            return None
        return self.file_properties().size

    def _modified_datetime(self) -> t.Optional[datetime.datetime]:
        if self._name.is_dir_path():
            return None
        return self.file_properties().last_modified

    @wrap_azure_errors
    def _read_chunks(self, buffer_size: int) -> t.Iterable[bytes]:
        return self.file_client().download_file().chunks()


class AzureFileSystem(FileSystem):

    def __init__(self, root_name: FileName, options: FileSystemOptions, service_client: ShareServiceClient):
        super().__init__(root_name, options)
        self.service_client = service_client

    def _create_file(self, name: FileName) -> FileObject:
        return AzureFile(name, self)

    def _close(self):
        self.service_client.close()


class AzureFilesConnector(AzureConnectorBase):
    """Connector for https://STORAGE.file.core.windows.net/SHARE/PATH names."""

    domain_suffix = ".file.core.windows.net"

    @wrap_azure_errors
    def create(self,
               root_name: FileName,
               options: FileSystemOptions,
               connect_timeout: t.Optional[int] = None) -> FileSystem:
        kwargs = self.client_kwargs(options, connect_timeout)
        conn_str = self.connection_string(root_name, options)
        if conn_str:
            client = ShareServiceClient.from_connection_string(conn_str, **kwargs)
        else:
            credential = options.get("azure.credential") or DefaultAzureCredential()
            client = ShareServiceClient(self.account_url(root_name), credential=credential, token_intent="backup", **kwargs)
        return AzureFileSystem(root_name, options, client)
