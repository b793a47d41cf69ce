"""Raw MIME envelope builder shared by the SES and SMTP senders.

``MimeEnvelope`` collects the parts of a message through small setter
methods and renders them with :mod:`email.message` only when
:meth:`MimeEnvelope.build` is called, so attachment streams are read exactly
once, at render time.
"""

from __future__ import annotations

import mimetypes
from email.message import EmailMessage
from email.policy import SMTP
from email.utils import formataddr
from typing import BinaryIO, List, Optional, Tuple

from email_service.errors import InvalidHeaderError


class MimeEnvelope:
    """Accumulates headers, bodies and attachments of one MIME message."""

    def __init__(self) -> None:
        self.to_addrs: List[str] = []
        self.cc_addrs: List[str] = []
        self.bcc_addrs: List[str] = []
        self.from_addr = ""
        self.from_name = ""
        self.subject = ""
        self.reply_to = ""
        self.plain = ""
        self.html = ""
        self.headers: List[Tuple[str, str]] = []
        self.attachments: List[Tuple[str, BinaryIO, str]] = []
        self._write_bcc_header = False

    # ---------------------- setters ----------------------
    def add_to(self, *addrs: str) -> None:
        self.to_addrs.extend(a for a in addrs if a)

    def add_cc(self, *addrs: str) -> None:
        self.cc_addrs.extend(a for a in addrs if a)

    def add_bcc(self, *addrs: str) -> None:
        self.bcc_addrs.extend(a for a in addrs if a)

    def write_bcc_header(self, should_write: bool) -> None:
        """Render a ``Bcc`` header (needed when the receiver routes by headers)."""
        self._write_bcc_header = should_write

    def set_from(self, addr: str, name: str = "") -> None:
        self.from_addr = addr
        self.from_name = name

    def set_subject(self, subject: str) -> None:
        self.subject = subject

    def set_reply_to(self, addr: str) -> None:
        self.reply_to = addr

    def set_plain(self, text: str) -> None:
        self.plain = text

    def set_html(self, html: str) -> None:
        self.html = html

    def attach(self, name: str, reader: BinaryIO, mime_type: str = "") -> None:
        self.attachments.append((name, reader, mime_type))

    def add_header(self, name: str, value: str) -> None:
        self.headers.append((name, value))

    # ---------------------- rendering ----------------------
    def envelope_recipients(self) -> List[str]:
        """Every address the message must be delivered to."""
        return self.to_addrs + self.cc_addrs + self.bcc_addrs

    def build(self) -> EmailMessage:
        """Render the message, draining every attachment stream.

        Raises:
            InvalidHeaderError: If a header value contains a line break.
        """
        msg = EmailMessage()
        _set_header(
            msg,
            "From",
            formataddr((self.from_name, self.from_addr))
            if self.from_name
            else self.from_addr,
        )
        if self.to_addrs:
            _set_header(msg, "To", ", ".join(self.to_addrs))
        if self.cc_addrs:
            _set_header(msg, "Cc", ", ".join(self.cc_addrs))
        if self.bcc_addrs and self._write_bcc_header:
            _set_header(msg, "Bcc", ", ".join(self.bcc_addrs))
        _set_header(msg, "Subject", self.subject)
        if self.reply_to:
            _set_header(msg, "Reply-To", self.reply_to)
        for name, value in self.headers:
            _set_header(msg, name, value)

        if self.plain and self.html:
            msg.set_content(self.plain)
            msg.add_alternative(self.html, subtype="html")
        elif self.html:
            msg.set_content(self.html, subtype="html")
        elif self.plain:
            msg.set_content(self.plain)

        for name, reader, mime_type in self.attachments:
            maintype, subtype = _split_mime_type(mime_type, name)
            msg.add_attachment(
                reader.read(), maintype=maintype, subtype=subtype, filename=name
            )
        return msg

    def as_bytes(self) -> bytes:
        """Render the message with CRLF line endings, ready for the wire."""
        return self.build().as_bytes(policy=SMTP)


def _set_header(msg: EmailMessage, name: str, value: str) -> None:
    if "\r" in value or "\n" in value:
        raise InvalidHeaderError(name, value)
    try:
        msg[name] = value
    except ValueError as exc:
        raise InvalidHeaderError(name, value) from exc


def _split_mime_type(mime_type: Optional[str], file_name: str) -> Tuple[str, str]:
    if not mime_type or "/" not in mime_type:
        mime_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
    maintype, subtype = mime_type.split("/", 1)
    return maintype, subtype.split(";", 1)[0].strip()


__all__ = ["MimeEnvelope"]
