"""FTP and FTPS support"""
import datetime
import ftplib
import functools
import threading
import typing as t
import zrlog
from originfs.names import FileName
from originfs.options import FileSystemOptions
from originfs.util import as_bool, ms_to_seconds
from .base import FileObject, FileSystem, StorageError


DEFAULT_CONNECT_TIMEOUT = 30000

# errors that mean the session itself is unusable, as opposed to a 5xx reply
_CONNECTION_ERRORS = (OSError, EOFError, ftplib.error_temp, ftplib.error_reply, ftplib.error_proto)


def _storage_error(ex: Exception) -> StorageError:
    if isinstance(ex, ftplib.error_perm):
        return StorageError(f"FTP: permanent error: {str(ex)}", 3001)
    return StorageError(f"FTP: connection error: {ex.__class__.__name__}: {str(ex)}", 3002, True)


def wrap_ftp_errors(cb):

    @functools.wraps(cb)
    def _inner(*args, **kwargs):
        try:
            return cb(*args, **kwargs)
        except StorageError:
            raise
        except (ftplib.error_perm,) + _CONNECTION_ERRORS as ex:
            raise _storage_error(ex) from ex

    return _inner


class FTPFile(FileObject):

    def __init__(self, name: FileName, file_system):
        super().__init__(name, file_system)
        self._ftp_fs: FTPFileSystem = file_system

    def _remote_path(self) -> str:
        return self._ftp_fs.remote_path(self._name)

    @wrap_ftp_errors
    def _exists(self) -> bool:
        with self._ftp_fs.client() as client:
            if self._name.is_root():
                client.voidcmd("NOOP")
                return True
            return self._check_dir(client) or self._check_file(client)

    def _check_dir(self, client: ftplib.FTP) -> bool:
        current = client.pwd()
        try:
            client.cwd(self._remote_path())
            return True
        except ftplib.error_perm:
            return False
        finally:
            client.cwd(current)

    def _check_file(self, client: ftplib.FTP) -> bool:
        if self._name.is_dir_path():
            return False
        try:
            client.voidcmd("TYPE I")
            client.size(self._remote_path())
            return True
        except ftplib.error_perm:
            return False

    @wrap_ftp_errors
    def _size(self) -> t.Optional[int]:
        with self._ftp_fs.client() as client:
            client.voidcmd("TYPE I")
            return client.size(self._remote_path())

    @wrap_ftp_errors
    def _modified_datetime(self) -> t.Optional[datetime.datetime]:
        with self._ftp_fs.client() as client:
            response = client.voidcmd(f"MDTM {self._remote_path()}")
        timestamp = response[4:].strip()
        return datetime.datetime.strptime(timestamp[:14], "%Y%m%d%H%M%S").replace(tzinfo=datetime.timezone.utc)

    def _read_chunks(self, buffer_size: int) -> t.Iterable[bytes]:
        """Stream the file over a data connection.

            The session stays locked until the iterator is exhausted or
            closed, so other operations on the same file system wait for it.
        """
        with self._ftp_fs.client() as client:
            try:
                client.voidcmd("TYPE I")
                conn = client.transfercmd(f"RETR {self._remote_path()}")
                completed = False
                try:
                    data = conn.recv(buffer_size)
                    while data:
                        yield data
                        data = conn.recv(buffer_size)
                    completed = True
                finally:
                    conn.close()
                    if not completed:
                        self._ftp_fs.discard_response(client)
                client.voidresp()
            except (ftplib.error_perm,) + _CONNECTION_ERRORS as ex:
                raise _storage_error(ex) from ex


class _LockedClient:

    def __init__(self, file_system):
        self._fs: FTPFileSystem = file_system

    def __enter__(self) -> ftplib.FTP:
        self._fs._lock.acquire()
        if self._fs.closed:
            self._fs._lock.release()
            raise StorageError(f"FTP session to [{self._fs}] is closed", 3003, True)
        return self._fs._client

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._fs._lock.release()


class FTPFileSystem(FileSystem):
    """One logged in FTP session; commands on it are serialized."""

    def __init__(self, root_name: FileName, options: FileSystemOptions, client: ftplib.FTP, home_dir: str = "/"):
        super().__init__(root_name, options)
        self._client = client
        self._lock = threading.Lock()
        self._home_dir = home_dir
        self._log = zrlog.get_logger("originfs.ftp")

    def client(self) -> _LockedClient:
        """Exclusive use of the session; raises StorageError once the file system is closed."""
        return _LockedClient(self)

    def discard_response(self, client: ftplib.FTP):
        """Read the reply to a transfer that was abandoned part way."""
        try:
            client.voidresp()
        except (ftplib.error_perm,) + _CONNECTION_ERRORS as ex:
            self._log.debug(f"Abandoned transfer on [{self}] ended with {ex.__class__.__name__}: {str(ex)}")

    def remote_path(self, name: FileName) -> str:
        path = name.path.rstrip("/") or "/"
        if self._home_dir != "/" and as_bool(self.options.get("ftp.user_dir_is_root"), False):
            return self._home_dir.rstrip("/") + (path if path != "/" else "")
        return path

    def _create_file(self, name: FileName) -> FileObject:
        return FTPFile(name, self)

    def _close(self):
        with self._lock:
            try:
                self._client.quit()
            except _CONNECTION_ERRORS + (ftplib.error_perm,) as ex:
                self._log.debug(f"QUIT failed for [{self}], closing socket: {ex.__class__.__name__}: {str(ex)}")
                self._client.close()


class FTPConnector:
    """Connector for ftp:// and ftps:// names, built on ftplib."""

    def __init__(self,
                 default_timeout: t.Optional[int] = None,
                 passive_mode: bool = True,
                 encoding: str = "utf-8"):
        self._default_timeout = default_timeout or DEFAULT_CONNECT_TIMEOUT
        self._passive_mode = passive_mode
        self._encoding = encoding
        self._log = zrlog.get_logger("originfs.ftp")

    def supports(self, name: FileName) -> bool:
        return name.scheme in ("ftp", "ftps")

    def connect_timeout(self, options: FileSystemOptions, connect_timeout: t.Optional[int] = None) -> int:
        if connect_timeout is not None:
            return connect_timeout
        return int(options.get("ftp.connect_timeout", self._default_timeout))

    def _build_client(self, root_name: FileName, options: FileSystemOptions) -> ftplib.FTP:
        encoding = options.get("ftp.encoding", self._encoding)
        if root_name.scheme == "ftps":
            return ftplib.FTP_TLS(encoding=encoding)
        return ftplib.FTP(encoding=encoding)

    @wrap_ftp_errors
    def create(self,
               root_name: FileName,
               options: FileSystemOptions,
               connect_timeout: t.Optional[int] = None) -> FileSystem:
        timeout = self.connect_timeout(options, connect_timeout)
        self._log.debug(f"Connecting to [{root_name}] with timeout {timeout}ms")
        client = self._build_client(root_name, options)
        try:
            client.connect(root_name.host, root_name.port or 21, timeout=ms_to_seconds(timeout))
            client.login(root_name.user or "anonymous", root_name.password or "")
            if isinstance(client, ftplib.FTP_TLS):
                client.prot_p()
            client.set_pasv(as_bool(options.get("ftp.passive_mode"), self._passive_mode))
            home_dir = client.pwd()
        except Exception:
            client.close()
            raise
        return FTPFileSystem(root_name, options, client, home_dir)
