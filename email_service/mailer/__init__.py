"""Abstract interface and implementations for sending email messages.

This subpackage defines a common ``send_email`` interface along with one
concrete implementation per provider: AWS SES (raw MIME), Mandrill,
Postmark and direct SMTP.  Each implementation translates an
:class:`~email_service.message.Email` into its provider's wire format, calls
the transport client it was built with and interprets the response.  Client
code selects an implementation by provider without changing how the email
is built.
"""

from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

from email_service.message import Attachment, Email

LOGGER = logging.getLogger(__name__)

PRIORITY_HEADERS: Tuple[Tuple[str, str], ...] = (
    ("X-Priority", "1 (Highest)"),
    ("X-MSMail-Priority", "High"),
    ("Importance", "High"),
)


class EmailSender(ABC):
    """Abstract base class for email senders.

    Implementations must provide a ``send_email`` method.  A sender reads
    the email it is given and never modifies it; the only permitted side
    effect is draining attachment streams.
    """

    #: Human readable provider name used in warnings and logs.
    provider_name: str = ""

    #: Flags on the email this provider cannot honour.
    unsupported_flags: Tuple[str, ...] = ()

    @abstractmethod
    def send_email(self, email: Email) -> None:
        """Send a single email.

        Args:
            email: The email to send.

        Raises:
            email_service.errors.MailError: When the email or the provider
                response is invalid.
            Any transport specific exception on network or auth failure.
        """
        raise NotImplementedError

    def warn_unsupported(self, email: Email) -> List[str]:
        """Log a warning for every flag set on ``email`` this provider ignores."""
        ignored = [flag for flag in self.unsupported_flags if getattr(email, flag)]
        for flag in ignored:
            LOGGER.warning(
                "%s is enabled, but %s does not offer this feature",
                flag.replace("_", " "),
                self.provider_name,
            )
        return ignored


def encode_attachment(attachment: Attachment) -> str:
    """Drain an attachment stream once and return its base64 content."""
    return base64.b64encode(attachment.read()).decode("ascii")


__all__ = ["EmailSender", "PRIORITY_HEADERS", "encode_attachment"]
