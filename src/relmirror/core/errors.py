"""Exceptions raised by relmirror.

Everything inherits from MirrorError so the command line can report any
failure the same way.
"""


class MirrorError(Exception):
    """Base error for relmirror."""

    pass


class ConfigError(MirrorError):
    """Invalid configuration. Raised before any network call."""

    pass


class NetworkError(MirrorError):
    """Connection failure or timeout talking to a registry."""

    pass


class RegistryError(MirrorError):
    """A registry answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransferError(MirrorError):
    """Downloading or uploading an asset failed."""

    pass
