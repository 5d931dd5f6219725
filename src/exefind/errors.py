"""Exception types for exefind."""


class ExefindError(Exception):
    """Base class for exefind failures."""


class CacheError(ExefindError):
    """The cache file could not be read or written."""


class ConfigError(ExefindError):
    """A configuration file could not be loaded."""
