"""Postmark email sender implementation.

``PostmarkSender`` maps an email onto Postmark's ``/email`` payload and
sends it through a :class:`PostmarkTransport`.  Postmark reports failures in
the body of its response: any non-zero ``ErrorCode`` means the email was
not accepted.

Postmark has no automatic text part; that flag is logged and ignored.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

import requests
from pydantic import BaseModel, ConfigDict, Field

from email_service.errors import PostmarkError
from email_service.mailer import PRIORITY_HEADERS, EmailSender, encode_attachment
from email_service.message import Email

POSTMARK_API_URL = "https://api.postmarkapp.com"
TRACK_LINKS_NONE = "None"
TRACK_LINKS_HTML_AND_TEXT = "HtmlAndText"


class _PostmarkModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PostmarkHeader(_PostmarkModel):
    name: str = Field(alias="Name")
    value: str = Field(alias="Value")


class PostmarkAttachment(_PostmarkModel):
    name: str = Field(alias="Name")
    content: str = Field(alias="Content")
    content_type: str = Field(alias="ContentType")


class PostmarkEmail(_PostmarkModel):
    """Body of a ``POST /email`` request."""

    from_: str = Field(default="", alias="From")
    to: str = Field(default="", alias="To")
    cc: Optional[str] = Field(default=None, alias="Cc")
    bcc: Optional[str] = Field(default=None, alias="Bcc")
    subject: str = Field(default="", alias="Subject")
    tag: str = Field(default="", alias="Tag")
    html_body: str = Field(default="", alias="HtmlBody")
    text_body: str = Field(default="", alias="TextBody")
    reply_to: str = Field(default="", alias="ReplyTo")
    headers: List[PostmarkHeader] = Field(default_factory=list, alias="Headers")
    track_opens: bool = Field(default=False, alias="TrackOpens")
    track_links: str = Field(default=TRACK_LINKS_NONE, alias="TrackLinks")
    attachments: List[PostmarkAttachment] = Field(
        default_factory=list, alias="Attachments"
    )


class PostmarkResponse(_PostmarkModel):
    error_code: int = Field(default=0, alias="ErrorCode")
    message: str = Field(default="", alias="Message")
    message_id: str = Field(default="", alias="MessageID")
    to: str = Field(default="", alias="To")


class PostmarkTransport(Protocol):
    def send_email(self, email: PostmarkEmail) -> PostmarkResponse: ...


class PostmarkClient:
    """``PostmarkTransport`` talking to the Postmark API over HTTP."""

    def __init__(
        self,
        server_token: str,
        base_url: str = POSTMARK_API_URL,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not server_token:
            raise ValueError("a Postmark server token is required")
        self._server_token = server_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def send_email(self, email: PostmarkEmail) -> PostmarkResponse:
        """Post one email.

        Postmark answers API errors (bad token, unknown sender signature...)
        with a JSON body carrying ``ErrorCode``; those are returned as a
        response.  Any other failed status raises ``requests.HTTPError``.
        """
        response = self._session.post(
            f"{self._base_url}/email",
            json=email.model_dump(by_alias=True, exclude_none=True),
            headers={
                "Accept": "application/json",
                "X-Postmark-Server-Token": self._server_token,
            },
            timeout=self._timeout,
        )
        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise
        if not response.ok and not (isinstance(body, dict) and "ErrorCode" in body):
            response.raise_for_status()
        return PostmarkResponse.model_validate(body)


class PostmarkSender(EmailSender):
    """Postmark implementation of the ``EmailSender`` interface."""

    provider_name = "Postmark"
    unsupported_flags = ("auto_text",)

    def __init__(self, client: PostmarkTransport) -> None:
        self._client = client

    def build_email(self, email: Email) -> PostmarkEmail:
        """Translate ``email``; drains every attachment stream."""
        sender = email.from_address
        if email.from_name:
            sender = f"{email.from_name} {email.from_address}"

        payload = PostmarkEmail(
            from_=sender,
            html_body=email.html_content,
            reply_to=email.reply_to_address,
            subject=email.subject,
            text_body=email.plain_text_content,
            track_opens=email.track_opens,
            track_links=(
                TRACK_LINKS_HTML_AND_TEXT if email.track_clicks else TRACK_LINKS_NONE
            ),
            to=",".join(email.recipients),
            tag=",".join(email.tags),
        )
        if email.recipients_cc:
            payload.cc = ",".join(email.recipients_cc)
        if email.recipients_bcc:
            payload.bcc = ",".join(email.recipients_bcc)

        for attachment in email.attachments:
            payload.attachments.append(
                PostmarkAttachment(
                    name=attachment.file_name,
                    content=encode_attachment(attachment),
                    content_type=attachment.file_type,
                )
            )

        if email.important:
            payload.headers.extend(
                PostmarkHeader(name=name, value=value) for name, value in PRIORITY_HEADERS
            )
        return payload

    def send_email(self, email: Email) -> None:
        """Send the email through Postmark.

        Raises:
            PostmarkError: If Postmark answers with a non-zero error code.
        """
        self.warn_unsupported(email)
        response = self._client.send_email(self.build_email(email))
        if response.error_code:
            raise PostmarkError(response.message, response.error_code)


__all__ = [
    "PostmarkAttachment",
    "PostmarkClient",
    "PostmarkEmail",
    "PostmarkHeader",
    "PostmarkResponse",
    "PostmarkSender",
    "PostmarkTransport",
]
