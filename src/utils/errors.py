class ConfigurationError(ValueError):
    """Raised when a configuration value is invalid or unsupported."""


class ScheduleConfigError(ConfigurationError):
    """Raised when a schedule window has malformed times or days."""


class UnsupportedProviderError(ConfigurationError):
    """Raised when no storage adapter exists for a memory provider."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Unsupported memory provider: {provider}")


class AdapterError(Exception):
    """Raised when a storage adapter operation fails."""

    def __init__(self, operation: str, message: str, provider: str = ""):
        self.operation = operation
        self.provider = provider
        super().__init__(f"{operation} failed: {message}")


class FetchError(Exception):
    """Raised when a page fetch fails."""

    def __init__(self, message: str, url: str = "", status_code: int = 0):
        self.url = url
        self.status_code = status_code
        super().__init__(message)
