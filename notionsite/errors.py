class NotionError(RuntimeError):
    """Remote content could not be retrieved."""


class NotFoundError(NotionError):
    pass


class UnauthorizedError(NotionError, PermissionError):
    pass


class RateLimitedError(NotionError):
    pass


class UnclassifiedError(NotionError):
    pass


class ConfigurationError(RuntimeError):
    """A required environment value is missing."""
