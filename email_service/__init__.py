"""Top‑level package for the email service.

This package lets a caller build one provider-agnostic email and send it
through any configured provider: AWS SES, Mandrill, Postmark or a direct
SMTP server.  The provider is picked at send time; the code that builds the
email does not change.

The ``__all__`` variable enumerates the primary public names for
convenience when using ``from email_service import ...``.
"""

from __future__ import annotations

from email_service.config import ServiceConfig, ServiceProvider
from email_service.message import Attachment, Email
from email_service.service import MailService

__all__ = [
    "Attachment",
    "Email",
    "MailService",
    "ServiceConfig",
    "ServiceProvider",
    "config",
    "errors",
    "mailer",
    "message",
    "registry",
    "service",
    "templates",
]

# SemVer version of the package
__version__: str = "0.1.0"
