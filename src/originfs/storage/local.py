"""Local file system"""
import datetime
import pathlib
import typing as t
from originfs.names import FileName
from originfs.options import FileSystemOptions
from .base import FileObject, FileSystem, StorageError, local_file_error_wrap


class LocalFile(FileObject):
    """File stored on a local disk or accessible network drive.

        The underlying functionality is based on pathlib.Path with additional
        caching layers.
    """

    def __init__(self, name: FileName, file_system: FileSystem):
        super().__init__(name, file_system)
        self._path = pathlib.Path(name.path)

    @property
    def local_path(self) -> pathlib.Path:
        return self._path

    @local_file_error_wrap
    def stat(self, clear_cache: bool = False):
        """Retrieve the stat information about the file handle."""
        return self._with_cache('stat', self._path.stat, clear_cache=clear_cache)

    @local_file_error_wrap
    def _exists(self) -> bool:
        try:
            self._path.stat()
            return True
        except (FileNotFoundError, NotADirectoryError):
            return False

    def _is_dir(self) -> bool:
        return self._path.is_dir()

    def _size(self) -> t.Optional[int]:
        return self.stat().st_size

    def _modified_datetime(self) -> t.Optional[datetime.datetime]:
        return datetime.datetime.fromtimestamp(self.stat().st_mtime, datetime.timezone.utc)

    def _read_chunks(self, buffer_size: int) -> t.Iterable[bytes]:
        try:
            with open(self._path, "rb") as src:
                x = src.read(buffer_size)
                while x != b'':
                    yield x
                    x = src.read(buffer_size)
        except FileNotFoundError as ex:
            raise StorageError(f"Local file not found", 1002) from ex
        except OSError as ex:
            raise StorageError(f"Exception reading local file: {ex.__class__.__name__}: {str(ex)}", 1006) from ex


class LocalFileSystem(FileSystem):

    def _create_file(self, name: FileName) -> FileObject:
        return LocalFile(name, self)


class LocalConnector:
    """Connector for file:// names. This is the default for plain paths."""

    def supports(self, name: FileName) -> bool:
        return name.scheme == "file"

    def create(self,
               root_name: FileName,
               options: FileSystemOptions,
               connect_timeout: t.Optional[int] = None) -> FileSystem:
        return LocalFileSystem(root_name, options)
