"""exefind - find installed programs and search a cached list of them."""

__version__ = "0.1.0"
