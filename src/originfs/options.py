"""File system options: the configuration half of a file system cache key."""
from __future__ import annotations
import typing as t


class FileSystemOptions:
    """Immutable bag of backend options, compared by content.

        Two bags holding the same values share a cached file system; any
        difference (credentials, passive mode, ...) gets its own.
    """

    def __init__(self, options: t.Optional[dict[str, t.Any]] = None, **kwargs):
        self._options = dict(options or {})
        self._options.update(kwargs)
        self._hash = None

    @staticmethod
    def coerce(options: t.Union[FileSystemOptions, dict, None]) -> FileSystemOptions:
        if options is None:
            return FileSystemOptions()
        if isinstance(options, FileSystemOptions):
            return options
        return FileSystemOptions(options)

    def get(self, name: str, default=None):
        value = self._options.get(name)
        return default if value is None else value

    def with_option(self, name: str, value) -> FileSystemOptions:
        return self.with_options(**{name: value})

    def with_options(self, **kwargs) -> FileSystemOptions:
        values = dict(self._options)
        values.update(kwargs)
        return FileSystemOptions(values)

    def keys(self):
        return self._options.keys()

    def __contains__(self, name):
        return name in self._options

    def __getitem__(self, name):
        return self._options[name]

    def __len__(self):
        return len(self._options)

    def __eq__(self, other):
        if not isinstance(other, FileSystemOptions):
            return NotImplemented
        return self._options == other._options

    def __hash__(self):
        # values need not be hashable (lists, dicts); equality still compares them
        if self._hash is None:
            self._hash = hash(frozenset(self._options.keys()))
        return self._hash

    def __repr__(self):
        # values may hold secrets
        return f"FileSystemOptions({', '.join(sorted(self._options.keys()))})"
