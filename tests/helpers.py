import threading
import time
import typing as t
from originfs.names import FileName
from originfs.options import FileSystemOptions
from originfs.storage.base import FileObject, FileSystem, StorageError


class FakeFile(FileObject):

    def _exists(self) -> bool:
        self.file_system.exists_calls += 1
        if self.file_system.broken:
            raise StorageError("Session is no longer connected", 9000, True)
        return self._name.path in self.file_system.paths


class FakeFileSystem(FileSystem):

    def __init__(self, root_name: FileName, options: FileSystemOptions, connect_timeout: t.Optional[int], broken: bool):
        super().__init__(root_name, options)
        self.connect_timeout = connect_timeout
        self.broken = broken
        self.paths = set()
        self.exists_calls = 0
        self.close_count = 0

    def _create_file(self, name: FileName) -> FileObject:
        return FakeFile(name, self)

    def _close(self):
        self.close_count += 1


class FakeConnector:
    """Connector for fake:// names that records every file system it creates."""

    def __init__(self, broken_creations: int = 0, fail_on: t.Optional[set] = None, delay: float = 0):
        self.created: list[FakeFileSystem] = []
        self.paths = set()
        self._broken_creations = broken_creations
        self._fail_on = fail_on or set()
        self._delay = delay
        self._lock = threading.Lock()

    def supports(self, name: FileName) -> bool:
        return name.scheme == "fake"

    def create(self, root_name: FileName, options: FileSystemOptions, connect_timeout: t.Optional[int] = None) -> FileSystem:
        if self._delay:
            time.sleep(self._delay)
        with self._lock:
            attempt = len(self.created) + 1
            if attempt in self._fail_on:
                self.created.append(None)
                raise StorageError("Could not connect", 9001, True)
            fs = FakeFileSystem(root_name, options, connect_timeout, attempt <= self._broken_creations)
            fs.paths = self.paths
            self.created.append(fs)
            return fs

    @property
    def creation_count(self):
        return len(self.created)
