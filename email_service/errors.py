"""Exception hierarchy for the email service.

Every failure the service itself detects is raised as a subclass of
:class:`MailError`.  Errors raised by the transport libraries (``requests``,
``smtplib``, ``botocore``) are deliberately *not* wrapped so callers can tell
a network or authentication failure apart from a problem with the message
or the configuration.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


class MailError(Exception):
    """Root of every error raised by ``email_service``."""


# ---------------------- Startup configuration ----------------------
class ConfigurationError(MailError):
    """The service configuration cannot be used."""


class MissingFromUsernameError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("missing required field: from_username")


class MissingFromDomainError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("missing required field: from_domain")


class NoServiceProviderError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__(
            "attempted to startup the email service provider(s) however "
            "there's no available service provider"
        )


# ---------------------- Message validation ----------------------
class EmailValidationError(MailError):
    """The email is incomplete and must be fixed by the caller."""


class MissingSubjectError(EmailValidationError):
    def __init__(self) -> None:
        super().__init__("email is missing a subject")


class MissingContentError(EmailValidationError):
    def __init__(self) -> None:
        super().__init__("email is missing content (plain & html)")


class MissingRecipientError(EmailValidationError):
    def __init__(self) -> None:
        super().__init__("email is missing a recipient")


class MaxRecipientsReachedError(EmailValidationError):
    """A recipient list is longer than its configured ceiling."""

    kind = ""

    def __init__(self, limit: int, count: int) -> None:
        self.limit = limit
        self.count = count
        super().__init__(
            f"max {self.kind} recipient limit of {limit} reached: {count}"
        )


class MaxToRecipientsReachedError(MaxRecipientsReachedError):
    kind = "TO"


class MaxCcRecipientsReachedError(MaxRecipientsReachedError):
    kind = "CC"


class MaxBccRecipientsReachedError(MaxRecipientsReachedError):
    kind = "BCC"


class InvalidFromAddressError(EmailValidationError):
    """The sender address has no domain to sign with."""

    def __init__(self, from_address: str) -> None:
        self.from_address = from_address
        super().__init__(
            f"invalid FromAddress, domain not found using: {from_address}"
        )


class InvalidHeaderError(EmailValidationError):
    """A header value (subject, sender name, reply-to...) spans several lines."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"invalid {field} header: {value!r}")


# ---------------------- Provider selection ----------------------
class ProviderNotAvailableError(MailError):
    """The requested provider did not load at startup (or is unknown)."""

    def __init__(self, provider: Any, available: Iterable[Any]) -> None:
        self.provider = provider
        self.available = list(available)
        names = ", ".join(_provider_name(p) for p in self.available)
        super().__init__(
            f"service provider: {_provider_name(provider)} was not in the list "
            f"of available service providers: [{names}], email not sent"
        )


def _provider_name(provider: Any) -> str:
    return str(getattr(provider, "value", provider))


# ---------------------- Provider responses ----------------------
class InvalidProviderResponseError(MailError):
    """The transport call returned, but its response reports a failure."""

    provider = ""

    def __init__(self, message: str, response: Optional[Any] = None) -> None:
        self.response = response
        super().__init__(message)


class InvalidAwsResponseError(InvalidProviderResponseError):
    provider = "aws_ses"

    def __init__(self, response: str) -> None:
        super().__init__(
            f"aws ses did not return expected valid response: {response}",
            response,
        )


class MessageNotSentError(InvalidProviderResponseError):
    """A Mandrill recipient entry did not reach a terminal-success status."""

    provider = "mandrill"

    def __init__(self, status: str, reason: Optional[str] = None) -> None:
        self.status = status
        self.reason = reason or ""
        super().__init__(
            f"message status was {status} and not sent - given reason: {self.reason}",
            status,
        )


class PostmarkError(InvalidProviderResponseError):
    provider = "postmark"

    def __init__(self, message: str, error_code: int) -> None:
        self.error_code = error_code
        self.message = message
        super().__init__(
            f"error from postmark: {message} error code: {error_code}",
            message,
        )


__all__ = [
    "ConfigurationError",
    "EmailValidationError",
    "InvalidAwsResponseError",
    "InvalidFromAddressError",
    "InvalidHeaderError",
    "InvalidProviderResponseError",
    "MailError",
    "MaxBccRecipientsReachedError",
    "MaxCcRecipientsReachedError",
    "MaxRecipientsReachedError",
    "MaxToRecipientsReachedError",
    "MessageNotSentError",
    "MissingContentError",
    "MissingFromDomainError",
    "MissingFromUsernameError",
    "MissingRecipientError",
    "MissingSubjectError",
    "NoServiceProviderError",
    "PostmarkError",
    "ProviderNotAvailableError",
]
