# querycache/errors.py


class QueryCacheError(Exception):
    """Base class for errors raised by the query cache."""


class ConfigurationError(QueryCacheError):
    """The cache cannot be set up (e.g. cache root missing or not writable)."""


class SerializationError(QueryCacheError):
    """A payload could not be encoded to or decoded from its stored form."""
