"""
    Storage backends.

    Each backend supplies a connector that opens a FileSystem for the root of a
    name (a local disk, an FTP session, an Azure storage account, ...). The
    FileSystem then hands out FileObject references for paths below that root.

    Not every operation is supported by every backend (e.g. modification times
    on some FTP servers); this module operates on a best effort principle to
    provide a similar functionality across different storage solutions.

    For URL-based storage, directories end with a trailing slash
    (e.g. ftp://example.com/directory/) and files do not (e.g. ftp://example.com/file).
    Use `child()` to obtain a file below a directory and `subdir()` to obtain a
    subdirectory. Local paths make a system call to determine if something is a
    directory or a file.
"""
from .base import FileObject, FileSystem, BackendConnector, StorageError
from .local import LocalConnector
from .ftp import FTPConnector
