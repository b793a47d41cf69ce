"""SMTP email sender implementation.

``SmtpSender`` delivers email directly to an SMTP server.  Every send gets
its own :class:`SmtpSession`, created by an :class:`SmtpClient` that holds
the server address and credentials.  The session collects the message parts
and, on :meth:`SmtpSession.send`, renders the MIME message and submits it
with :mod:`smtplib`.

Connection details:

* When ``use_ssl`` is set the client connects with SMTP over SSL
  (usually port 465).  Otherwise it connects in plain text and upgrades
  with STARTTLS when the server offers it.
* Authentication uses ``username``/``password`` when both are set.

SMTP has no click tracking, open tracking or automatic text parts; those
flags are logged and ignored.  Errors from :mod:`smtplib` (authentication,
DNS or connection failures) propagate unchanged.
"""

from __future__ import annotations

import smtplib
from typing import Optional, Protocol

from email_service.mailer import PRIORITY_HEADERS, EmailSender
from email_service.mailer.mime import MimeEnvelope
from email_service.message import Email


class SmtpSession(MimeEnvelope):
    """A MIME envelope bound to one SMTP server, good for a single send."""

    def __init__(self, client: "SmtpClient") -> None:
        super().__init__()
        self._client = client

    def send(self) -> None:
        self._client.deliver(self)


class SmtpTransport(Protocol):
    def new_session(self) -> SmtpSession: ...


class SmtpClient:
    """Holds the SMTP server settings and opens one connection per send."""

    def __init__(
        self,
        host: str,
        port: int = 25,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_ssl: bool = False,
        timeout: float = 30,
    ) -> None:
        if not host:
            raise ValueError("an SMTP host is required")
        self.host = host
        self.port = port
        self._username = username
        self._password = password
        self.use_ssl = use_ssl
        self._timeout = timeout

    def new_session(self) -> SmtpSession:
        return SmtpSession(self)

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self._timeout)
        return smtplib.SMTP(self.host, self.port, timeout=self._timeout)

    def deliver(self, envelope: MimeEnvelope) -> None:
        """Render ``envelope`` and submit it to the server."""
        msg = envelope.build()
        with self._connect() as smtp:
            smtp.ehlo()
            if not self.use_ssl and smtp.has_extn("starttls"):
                smtp.starttls()
                smtp.ehlo()
            if self._username and self._password:
                smtp.login(self._username, self._password)
            smtp.send_message(
                msg,
                from_addr=envelope.from_addr,
                to_addrs=envelope.envelope_recipients(),
            )


class SmtpSender(EmailSender):
    """SMTP implementation of the ``EmailSender`` interface."""

    provider_name = "SMTP"
    unsupported_flags = ("track_clicks", "track_opens", "auto_text")

    def __init__(self, client: SmtpTransport) -> None:
        self._client = client

    def send_email(self, email: Email) -> None:
        """Send the email over a fresh SMTP session."""
        session = self._client.new_session()

        session.add_to(*email.recipients)
        if email.recipients_cc:
            session.add_cc(*email.recipients_cc)
        if email.recipients_bcc:
            session.add_bcc(*email.recipients_bcc)

        session.set_from(email.from_address, email.from_name)
        session.set_subject(email.subject)
        if email.reply_to_address:
            session.set_reply_to(email.reply_to_address)
        if email.plain_text_content:
            session.set_plain(email.plain_text_content)
        if email.html_content:
            session.set_html(email.html_content)

        for attachment in email.attachments:
            session.attach(
                attachment.file_name, attachment.file_reader, attachment.file_type
            )

        if email.important:
            for name, value in PRIORITY_HEADERS:
                session.add_header(name, value)

        self.warn_unsupported(email)
        session.send()


__all__ = ["SmtpClient", "SmtpSender", "SmtpSession", "SmtpTransport"]
