"""Exception hierarchy for docindex."""


class DocIndexError(Exception):
    """Base class for all docindex errors."""


class ConfigError(DocIndexError):
    """Configuration is missing or invalid. Fatal at startup."""


class ProviderError(DocIndexError):
    """An external AI provider call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientProviderError(ProviderError):
    """Provider is rate limiting or temporarily unavailable."""


class AuthError(ProviderError):
    """Provider rejected the credentials. Never retried."""


class MalformedInput(DocIndexError):
    """A file or a provider response could not be decoded."""


class IndexingCancelled(DocIndexError):
    """Cooperative cancellation was requested."""
