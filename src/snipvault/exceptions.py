"""Exception types raised by snipvault."""


class SnipvaultError(Exception):
    """Base class for all snipvault errors."""


class DocumentStoreError(SnipvaultError):
    """The document store could not be read or returned malformed data."""


class ConfigError(SnipvaultError):
    """A configuration file could not be loaded."""


__all__ = ["SnipvaultError", "DocumentStoreError", "ConfigError"]
