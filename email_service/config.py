"""Service configuration for the email service.

``ServiceConfig`` holds the sender defaults, the recipient ceilings and the
credentials of every provider.  It can be filled in directly or loaded from
the environment with :meth:`ServiceConfig.from_env`.

Environment variables used:

* ``EMAIL_FROM_USERNAME`` / ``EMAIL_FROM_DOMAIN`` – required, the default
  sender is ``username@domain``.
* ``EMAIL_FROM_NAME`` – display name of the default sender.
* ``EMAIL_AUTO_TEXT``, ``EMAIL_IMPORTANT``, ``EMAIL_TRACK_CLICKS``,
  ``EMAIL_TRACK_OPENS`` – default flags ("1"/"true"/"yes").
* ``EMAIL_CSS_FILE`` – optional stylesheet injected into HTML templates.
* ``EMAIL_MAX_TO_RECIPIENTS``, ``EMAIL_MAX_CC_RECIPIENTS``,
  ``EMAIL_MAX_BCC_RECIPIENTS`` – recipient ceilings; default 50.
* ``EMAIL_AWS_SES_ACCESS_ID``, ``EMAIL_AWS_SES_SECRET_KEY``,
  ``EMAIL_AWS_SES_ENDPOINT``, ``EMAIL_AWS_SES_REGION`` – AWS SES.
* ``EMAIL_MANDRILL_KEY`` – Mandrill API key.
* ``EMAIL_POSTMARK_SERVER_TOKEN`` – Postmark server token.
* ``EMAIL_SMTP_HOST``, ``EMAIL_SMTP_PORT``, ``EMAIL_SMTP_USERNAME``,
  ``EMAIL_SMTP_PASSWORD``, ``EMAIL_SMTP_USE_SSL`` – direct SMTP.  With
  ``EMAIL_SMTP_USE_SSL`` the connection is SMTP over SSL instead of STARTTLS.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


AWS_SES_DEFAULT_ENDPOINT = "https://email.us-east-1.amazonaws.com"
AWS_SES_DEFAULT_REGION = "us-east-1"
SMTP_DEFAULT_PORT = 25
MAX_TO_RECIPIENTS = 50
MAX_CC_RECIPIENTS = 50
MAX_BCC_RECIPIENTS = 50

_TRUTHY = {"1", "true", "yes"}


class ServiceProvider(str, Enum):
    """Email service providers an email can be sent through."""

    AWS_SES = "aws_ses"
    MANDRILL = "mandrill"
    POSTMARK = "postmark"
    SMTP = "smtp"


@dataclass
class ServiceConfig:
    """Configuration used to start the email service."""

    from_username: str = ""
    from_domain: str = ""
    from_name: str = ""
    email_css: bytes = b""

    auto_text: bool = False
    important: bool = False
    track_clicks: bool = False
    track_opens: bool = False

    # None means "use the default" and is resolved at startup
    max_to_recipients: Optional[int] = None
    max_cc_recipients: Optional[int] = None
    max_bcc_recipients: Optional[int] = None

    aws_ses_access_id: str = ""
    aws_ses_secret_key: str = ""
    aws_ses_endpoint: str = ""
    aws_ses_region: str = ""

    mandrill_api_key: str = ""

    postmark_server_token: str = ""

    smtp_host: str = ""
    smtp_port: int = SMTP_DEFAULT_PORT
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_ssl: bool = False

    @property
    def from_address(self) -> str:
        return f"{self.from_username}@{self.from_domain}"

    def apply_defaults(self) -> None:
        """Fill the recipient ceilings and SES endpoint left unset."""
        if not self.max_to_recipients:
            self.max_to_recipients = MAX_TO_RECIPIENTS
        if not self.max_cc_recipients:
            self.max_cc_recipients = MAX_CC_RECIPIENTS
        if not self.max_bcc_recipients:
            self.max_bcc_recipients = MAX_BCC_RECIPIENTS
        if not self.aws_ses_endpoint:
            self.aws_ses_endpoint = AWS_SES_DEFAULT_ENDPOINT
        if not self.aws_ses_region:
            self.aws_ses_region = AWS_SES_DEFAULT_REGION

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build a configuration from ``EMAIL_*`` environment variables."""
        css = b""
        css_file = os.environ.get("EMAIL_CSS_FILE")
        if css_file:
            css = Path(css_file).read_bytes()

        return cls(
            from_username=os.environ.get("EMAIL_FROM_USERNAME", ""),
            from_domain=os.environ.get("EMAIL_FROM_DOMAIN", ""),
            from_name=os.environ.get("EMAIL_FROM_NAME", ""),
            email_css=css,
            auto_text=_env_flag("EMAIL_AUTO_TEXT"),
            important=_env_flag("EMAIL_IMPORTANT"),
            track_clicks=_env_flag("EMAIL_TRACK_CLICKS"),
            track_opens=_env_flag("EMAIL_TRACK_OPENS"),
            max_to_recipients=_env_int("EMAIL_MAX_TO_RECIPIENTS"),
            max_cc_recipients=_env_int("EMAIL_MAX_CC_RECIPIENTS"),
            max_bcc_recipients=_env_int("EMAIL_MAX_BCC_RECIPIENTS"),
            aws_ses_access_id=os.environ.get("EMAIL_AWS_SES_ACCESS_ID", ""),
            aws_ses_secret_key=os.environ.get("EMAIL_AWS_SES_SECRET_KEY", ""),
            aws_ses_endpoint=os.environ.get("EMAIL_AWS_SES_ENDPOINT", ""),
            aws_ses_region=os.environ.get("EMAIL_AWS_SES_REGION", ""),
            mandrill_api_key=os.environ.get("EMAIL_MANDRILL_KEY", ""),
            postmark_server_token=os.environ.get("EMAIL_POSTMARK_SERVER_TOKEN", ""),
            smtp_host=os.environ.get("EMAIL_SMTP_HOST", ""),
            smtp_port=_env_int("EMAIL_SMTP_PORT") or SMTP_DEFAULT_PORT,
            smtp_username=os.environ.get("EMAIL_SMTP_USERNAME", ""),
            smtp_password=os.environ.get("EMAIL_SMTP_PASSWORD", ""),
            smtp_use_ssl=_env_flag("EMAIL_SMTP_USE_SSL"),
        )


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() in _TRUTHY


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else None


__all__ = [
    "AWS_SES_DEFAULT_ENDPOINT",
    "AWS_SES_DEFAULT_REGION",
    "MAX_BCC_RECIPIENTS",
    "MAX_CC_RECIPIENTS",
    "MAX_TO_RECIPIENTS",
    "ServiceConfig",
    "ServiceProvider",
]
