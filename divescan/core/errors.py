"""Domain-specific errors for divescan."""


class DivescanError(Exception):
    """Base error for divescan."""


class CatalogLoadError(DivescanError):
    """Raised when the packaged catalog data cannot be read."""


class CatalogValidationError(DivescanError):
    """Raised when catalog or rule data does not conform to schema or semantics."""


class ConfigError(DivescanError):
    """Raised when the user configuration file is unreadable or invalid."""


class PlatformError(DivescanError):
    """Base error for platform enumeration/radio failures."""


class PlatformUnavailableError(PlatformError):
    """Raised when a platform backend library or API is not available."""
