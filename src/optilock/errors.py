"""Error types for optilock."""


class OptilockError(Exception):
    """Base exception for optilock errors."""
    pass


class DecodingError(OptilockError, ValueError):
    """A stored or serialized version token could not be decoded."""
    pass


class MissingVersionError(OptilockError):
    """Update attempted on a record whose version token was never read."""
    pass


class RecordDefinitionError(OptilockError):
    """A Record subclass cannot be mapped onto a versioned table."""
    pass


class ConfigError(OptilockError):
    """Configuration error."""
    pass
