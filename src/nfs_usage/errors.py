from __future__ import annotations


class NfsUsageError(Exception):
    pass


class UsageQueryError(NfsUsageError):
    """A single mount could not be sampled; the run skips it and continues."""

    def __init__(self, mountpoint: str, message: str) -> None:
        super().__init__(message)
        self.mountpoint = mountpoint
        self.message = message

    def __str__(self) -> str:
        return self.message


class UsageExecError(UsageQueryError):
    pass


class UsageParseError(UsageQueryError):
    pass


class HistoryError(NfsUsageError, ValueError):
    pass
