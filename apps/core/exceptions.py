"""Domain exceptions shared across apps."""


class DuplicateEntityError(ValueError):
    """An entity with the same natural key already exists (HTTP 409)."""


class EntityNotFoundError(LookupError):
    """The referenced entity does not exist (HTTP 404)."""


class ImageConversionError(ValueError):
    pass


class StorageError(Exception):
    pass


class StorageConfigurationError(StorageError):
    pass


class GeocodingError(Exception):
    pass
