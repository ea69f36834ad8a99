from __future__ import annotations
import datetime
import functools
import pathlib
import threading
import typing as t
from originfs.names import FileName
from originfs.options import FileSystemOptions
from originfs.util import OriginFSError


DEFAULT_CHUNK_SIZE = 2621440


class StorageError(OriginFSError):
    """Error class specifically for storage errors."""

    def __init__(self, msg, code, is_recoverable: bool = False):
        super().__init__(msg, "STORAGE", code, is_recoverable=is_recoverable)


def local_file_error_wrap(cb):
    """Converts typical local file-system errors into StorageErrors with recoverable set properly."""

    @functools.wraps(cb)
    def _inner(*args, **kwargs):
        try:
            return cb(*args, **kwargs)
        except StorageError:
            raise
        except FileNotFoundError as ex:
            raise StorageError(f"Local file not found", 1002) from ex
        except PermissionError as ex:
            raise StorageError(f"Access to local file denied", 1003, True) from ex
        except IsADirectoryError as ex:
            raise StorageError(f"Local file is a directory", 1004) from ex
        except NotADirectoryError as ex:
            raise StorageError(f"Local directory is not a directory", 1005) from ex
        except OSError as ex:
            raise StorageError(f"Exception processing local file: {ex.__class__.__name__}: {str(ex)}", 1006) from ex

    return _inner


class FileObject:
    """Reference to a single location within a FileSystem.

        Values fetched from the backend are cached on the object; pass
        clear_cache=True (or call clear_cache()) to fetch them again.
    """

    def __init__(self, name: FileName, file_system: FileSystem):
        self._name = name
        self._file_system = file_system
        self._cached_properties = {}

    def __str__(self):
        return str(self._name)

    @property
    def name(self) -> FileName:
        return self._name

    @property
    def file_system(self) -> FileSystem:
        return self._file_system

    def clear_cache(self):
        """Clear the local cache of all values."""
        self._cached_properties = {}

    def _with_cache(self, key: str, callback: callable, *args, clear_cache: bool = False, **kwargs):
        if clear_cache or key not in self._cached_properties:
            self._cached_properties[key] = callback(*args, **kwargs)
        return self._cached_properties[key]

    def uri(self) -> str:
        return self._name.uri

    def path(self) -> str:
        """Path of the file relative to the root of its file system."""
        return self._name.path

    def base_name(self) -> str:
        return self._name.base_name()

    def exists(self, clear_cache: bool = False) -> bool:
        """Check if the file exists.

            Returns False if the backend reports that the file is missing and
            raises StorageError if the backend could not be asked at all.
        """
        return self._with_cache('exists', self._exists, clear_cache=clear_cache)

    def _exists(self) -> bool:
        raise NotImplementedError

    def is_dir(self, clear_cache: bool = False) -> bool:
        """Check if the handle represents a directory."""
        return self._with_cache('is_dir', self._is_dir, clear_cache=clear_cache)

    def _is_dir(self) -> bool:
        return self._name.is_dir_path()

    def size(self, clear_cache: bool = False) -> t.Optional[int]:
        """Retrieve the size of the file."""
        return self._with_cache('size', self._size, clear_cache=clear_cache)

    def _size(self) -> t.Optional[int]:
        return None

    def modified_datetime(self, clear_cache: bool = False) -> t.Optional[datetime.datetime]:
        """Get the last modified time of the entry."""
        return self._with_cache('modified_datetime', self._modified_datetime, clear_cache=clear_cache)

    def _modified_datetime(self) -> t.Optional[datetime.datetime]:
        return None

    def child(self, sub_path: str, as_dir: bool = False) -> FileObject:
        """Create a child of the current directory."""
        return self._file_system.resolve_file(self._name.child(sub_path, as_dir))

    def subdir(self, sub_path: str) -> FileObject:
        """Create a child of the current directory, as a directory."""
        return self.child(sub_path, True)

    def parent(self) -> t.Optional[FileObject]:
        parent_name = self._name.parent()
        if parent_name is None:
            return None
        return self._file_system.resolve_file(parent_name)

    def read_chunks(self, buffer_size: t.Optional[int] = None) -> t.Iterable[bytes]:
        """Read the file in chunks given a buffer size."""
        return self._read_chunks(buffer_size or DEFAULT_CHUNK_SIZE)

    def _read_chunks(self, buffer_size: int) -> t.Iterable[bytes]:
        raise NotImplementedError

    def download(self, local_path: pathlib.Path, allow_overwrite: bool = False, buffer_size: int = None):
        """Download the file to the given local path."""
        if (not allow_overwrite) and local_path.exists():
            raise StorageError(f"Path [{local_path}] already exists, cannot download from [{self}]", 1000, is_recoverable=True)
        try:
            self._local_write_chunks(local_path, self.read_chunks(buffer_size))
        except Exception as ex:
            local_path.unlink(True)
            raise ex

    @local_file_error_wrap
    def _local_write_chunks(self, local_path: pathlib.Path, chunks: t.Iterable[bytes]):
        """Write chunks to a local file."""
        with open(local_path, "wb") as dest:
            for chunk in chunks:
                dest.write(chunk)


class FileSystem:
    """Live connection to the root of a storage backend.

        A FileSystem is bound to exactly one (root name, options) pair and owns
        whatever sessions or clients are needed to talk to the backend. Once
        registered in a FileSystemCache, it is released only by eviction.
    """

    def __init__(self, root_name: FileName, options: FileSystemOptions):
        self._root_name = root_name
        self._options = options
        self._closed = False
        self._close_lock = threading.Lock()

    def __str__(self):
        return str(self._root_name)

    @property
    def root_name(self) -> FileName:
        return self._root_name

    @property
    def options(self) -> FileSystemOptions:
        return self._options

    @property
    def closed(self) -> bool:
        return self._closed

    def resolve_file(self, name: FileName) -> FileObject:
        """Build a reference to the given name within this file system."""
        if name.root() != self._root_name:
            raise StorageError(f"Name [{name}] is not part of file system [{self}]", 1007)
        return self._create_file(name)

    def _create_file(self, name: FileName) -> FileObject:
        raise NotImplementedError

    def close(self):
        """Release the backend resources. Closing twice has no effect."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._close()

    def _close(self):
        pass


@t.runtime_checkable
class BackendConnector(t.Protocol):
    """Creates file systems for one kind of backend."""

    def supports(self, name: FileName) -> bool:
        """Check if this connector can create a file system for the given name."""
        ...

    def create(self,
               root_name: FileName,
               options: FileSystemOptions,
               connect_timeout: t.Optional[int] = None) -> FileSystem:
        """Connect to the root of a backend.

            connect_timeout is in milliseconds and, when given, takes precedence
            over any timeout in the options or the connector's defaults.
        """
        ...
