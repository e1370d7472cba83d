"""Exception hierarchy of the abuse guard.

Every error raised by guard code derives from ``GuardException`` and carries
a ``context`` dict of the identifiers involved (address, provider, URL), so
the place that catches it can log one structured event without rebuilding
that context.
"""

from typing import Optional, Dict, Any


class GuardException(Exception):
    """Base exception for all guard errors.

    Attributes:
        message: Human readable summary
        context: Identifiers involved (ip, provider, url, config_path, ...)
        original_error: Lower-level exception this one wraps, if any
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        text = self.message
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in self.context.items())
            text = f"{text} ({details})"
        if self.original_error:
            cause = type(self.original_error).__name__
            text = f"{text} [caused by: {cause}: {self.original_error}]"
        return text

    def log_fields(self) -> Dict[str, Any]:
        """Keyword arguments for a structlog call describing this error.

        Context keys are prefixed so they never collide with the event's
        own fields.
        """
        fields: Dict[str, Any] = {
            "error": self.message,
            "error_type": type(self).__name__,
        }
        for key, value in self.context.items():
            fields[f"error_{key}"] = value
        if self.original_error is not None:
            fields["cause"] = f"{type(self.original_error).__name__}: {self.original_error}"
        return fields


class FetchError(GuardException):
    """An HTTP source could not be fetched after all retries.

    Context: source_name, url, attempts, timeout
    """


class ParseError(GuardException):
    """A fetched payload (exit list, JSON body, RDAP object) is unusable.

    Context: source_name, url
    """


class ProviderError(GuardException):
    """A signal provider answered, but with an error or an unusable shape.

    Context: provider, ip, reason
    """


class InvalidOriginError(GuardException):
    """An origin has a malformed address or no identity at all.

    Context: ip
    """


class StoreError(GuardException):
    """The persistent reputation store failed to read or write.

    Context: ip, operation
    """


class ConfigurationError(GuardException):
    """The configuration file is missing, not YAML, or fails validation.

    Context: config_path, errors
    """
