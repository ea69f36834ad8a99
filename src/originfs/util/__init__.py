import typing as t

from .exceptions import OriginFSError, ConfigError


def as_bool(value, default: bool = False) -> bool:
    """Interpret an option value that may have come from a string."""
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def ms_to_seconds(milliseconds: t.Optional[int]) -> t.Optional[float]:
    if milliseconds is None:
        return None
    return milliseconds / 1000.0
