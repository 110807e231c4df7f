class KeyshareError(Exception):
    """Base class for errors raised by the access gates and the file lifecycle."""


class ConfigError(KeyshareError):
    pass


class Unauthorized(KeyshareError):
    pass


class NotFound(KeyshareError):
    pass


class InvalidPath(KeyshareError):
    pass


class StorageFault(KeyshareError):
    pass


class MetadataFault(KeyshareError):
    pass
