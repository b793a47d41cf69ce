"""Provider-agnostic email message model.

An :class:`Email` is built once, filled in by the caller and then handed to
exactly one sender.  Senders only read it; the single side effect they are
allowed is draining attachment streams, which can only be read once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import BinaryIO, List


@dataclass
class Attachment:
    """A named binary payload attached to an email."""

    file_name: str
    file_type: str
    file_reader: BinaryIO

    def read(self) -> bytes:
        """Drain the underlying stream and return its bytes.

        The stream is not rewound, so a second call returns whatever is left
        (usually nothing).
        """
        return self.file_reader.read()


@dataclass
class Email:
    """The fields of an email to send."""

    subject: str = ""
    plain_text_content: str = ""
    html_content: str = ""
    from_address: str = ""
    from_name: str = ""
    reply_to_address: str = ""
    recipients: List[str] = field(default_factory=list)
    recipients_cc: List[str] = field(default_factory=list)
    recipients_bcc: List[str] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    css: bytes = b""
    auto_text: bool = False
    important: bool = False
    track_clicks: bool = False
    track_opens: bool = False
    view_content_link: bool = False

    def add_attachment(self, name: str, file_type: str, reader: BinaryIO) -> None:
        """Append an attachment; attachments are sent in the order added."""
        self.attachments.append(
            Attachment(file_name=name, file_type=file_type, file_reader=reader)
        )


__all__ = ["Attachment", "Email"]
