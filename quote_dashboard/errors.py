"""Error types raised by quote provider clients and startup configuration."""


class ProviderError(Exception):
    """Base class for any failure talking to an upstream quote provider."""


class ProviderUnavailable(ProviderError):
    """Network failure, timeout or 5xx from the provider."""


class ProviderApiError(ProviderError):
    """The provider answered with an explicit error field."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProviderRateLimited(ProviderApiError):
    """The provider answered with a rate-limit marker or HTTP 429."""


class ProviderDataError(ProviderError):
    """Expected fields are absent or unparsable."""


class ProviderEmptyResponse(ProviderError):
    """The provider returned an empty body."""


class ConfigurationError(RuntimeError):
    """Settings are unusable; raised at startup, never per request."""
