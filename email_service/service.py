"""Public entry point of the email service.

:class:`MailService` starts the configured providers, creates new emails
seeded with the service defaults and dispatches them through the provider
chosen by the caller::

    service = MailService(ServiceConfig.from_env())
    service.start_up()

    email = service.new_email()
    email.subject = "Welcome"
    email.plain_text_content = "Hello!"
    email.recipients = ["someone@example.com"]
    service.send_email(email, ServiceProvider.POSTMARK)

Validation and provider checks happen before any network call.  Provider
failures are logged with the provider name and re-raised as is.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from email_service.config import (
    MAX_BCC_RECIPIENTS,
    MAX_CC_RECIPIENTS,
    MAX_TO_RECIPIENTS,
    ServiceConfig,
    ServiceProvider,
)
from email_service.errors import (
    MaxBccRecipientsReachedError,
    MaxCcRecipientsReachedError,
    MaxToRecipientsReachedError,
    MissingContentError,
    MissingRecipientError,
    MissingSubjectError,
    ProviderNotAvailableError,
)
from email_service.mailer import EmailSender
from email_service.mailer.mandrill_sender import MandrillSender
from email_service.mailer.postmark_sender import PostmarkSender
from email_service.mailer.ses_sender import SesSender
from email_service.mailer.smtp_sender import SmtpSender
from email_service.message import Email
from email_service.registry import ClientFactory, ProviderRegistry

LOGGER = logging.getLogger(__name__)

SENDER_CLASSES: Mapping[ServiceProvider, Callable[[Any], EmailSender]] = {
    ServiceProvider.AWS_SES: SesSender,
    ServiceProvider.MANDRILL: MandrillSender,
    ServiceProvider.POSTMARK: PostmarkSender,
    ServiceProvider.SMTP: SmtpSender,
}


class MailService:
    """Validates emails and routes them to the selected provider."""

    def __init__(
        self,
        config: ServiceConfig,
        client_factories: Optional[Mapping[ServiceProvider, ClientFactory]] = None,
    ) -> None:
        self.config = config
        self.registry = ProviderRegistry(client_factories)
        self._senders: Dict[ServiceProvider, EmailSender] = {}

    @property
    def available_providers(self) -> List[ServiceProvider]:
        return self.registry.available_providers

    def start_up(self) -> List[ServiceProvider]:
        """Load every configured provider; see :meth:`ProviderRegistry.startup`."""
        available = self.registry.startup(self.config)
        self._senders = {
            provider: SENDER_CLASSES[provider](self.registry.client_for(provider))
            for provider in available
        }
        return available

    def is_available(self, provider: Any) -> bool:
        return self.registry.is_available(_as_provider(provider))

    def new_email(self) -> Email:
        """Return an empty email carrying the service defaults."""
        from_address = self.config.from_address
        return Email(
            from_address=from_address,
            from_name=self.config.from_name,
            reply_to_address=from_address,
            css=self.config.email_css,
            auto_text=self.config.auto_text,
            important=self.config.important,
            track_clicks=self.config.track_clicks,
            track_opens=self.config.track_opens,
        )

    def validate(self, email: Email) -> None:
        """Check the rules shared by every provider; the first failure wins.

        Raises:
            MissingSubjectError, MissingContentError, MissingRecipientError,
            MaxToRecipientsReachedError, MaxCcRecipientsReachedError,
            MaxBccRecipientsReachedError
        """
        max_to = self.config.max_to_recipients or MAX_TO_RECIPIENTS
        max_cc = self.config.max_cc_recipients or MAX_CC_RECIPIENTS
        max_bcc = self.config.max_bcc_recipients or MAX_BCC_RECIPIENTS

        if not email.subject:
            raise MissingSubjectError()
        if not email.plain_text_content and not email.html_content:
            raise MissingContentError()
        if not email.recipients:
            raise MissingRecipientError()
        if len(email.recipients) > max_to:
            raise MaxToRecipientsReachedError(max_to, len(email.recipients))
        if len(email.recipients_cc) > max_cc:
            raise MaxCcRecipientsReachedError(max_cc, len(email.recipients_cc))
        if len(email.recipients_bcc) > max_bcc:
            raise MaxBccRecipientsReachedError(max_bcc, len(email.recipients_bcc))

    def send_email(self, email: Email, provider: Any) -> None:
        """Send ``email`` through ``provider``.

        Args:
            email: The email to send.  It is read, not modified, but its
                attachment streams are consumed.
            provider: A :class:`ServiceProvider` (or its string value).

        Raises:
            ProviderNotAvailableError: If the provider did not load at startup.
            email_service.errors.EmailValidationError: If the email is
                incomplete or has too many recipients.
            email_service.errors.InvalidProviderResponseError: If the
                provider reports the email was not accepted.
            Any transport exception raised by the provider client.
        """
        provider = _as_provider(provider)
        if not self.registry.is_available(provider):
            raise ProviderNotAvailableError(provider, self.available_providers)

        self.validate(email)

        sender = self._senders.get(provider)
        if sender is None:
            raise ProviderNotAvailableError(provider, self.available_providers)

        try:
            sender.send_email(email)
        except Exception:
            LOGGER.error(
                "Sending email %r via %s failed", email.subject, provider.value
            )
            raise
        LOGGER.info(
            "Email %r sent via %s to %d recipient(s)",
            email.subject,
            provider.value,
            len(email.recipients) + len(email.recipients_cc) + len(email.recipients_bcc),
        )


def _as_provider(provider: Any) -> Any:
    if isinstance(provider, ServiceProvider):
        return provider
    try:
        return ServiceProvider(provider)
    except ValueError:
        return provider


__all__ = ["MailService", "SENDER_CLASSES"]
