"""Mandrill email sender implementation.

``MandrillSender`` converts an email into a Mandrill message and submits it
through a :class:`MandrillTransport`.  Mandrill answers with one result per
recipient; the send only succeeds if every result is ``sent``, ``queued``
or ``scheduled``.

Mandrill signs messages with DKIM for the domain of the sender address, so
an address without a domain is rejected before anything is sent.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

import requests
from pydantic import BaseModel, Field

from email_service.errors import InvalidFromAddressError, MessageNotSentError
from email_service.mailer import EmailSender, encode_attachment
from email_service.message import Email

LOGGER = logging.getLogger(__name__)

MANDRILL_API_URL = "https://mandrillapp.com/api/1.0"
SUCCESS_STATUSES = frozenset({"sent", "queued", "scheduled"})


class MandrillRecipient(BaseModel):
    email: str
    type: str = "to"


class MandrillAttachment(BaseModel):
    type: str
    name: str
    content: str


class MandrillMessage(BaseModel):
    """The ``message`` object of a ``messages/send`` call."""

    html: str = ""
    text: str = ""
    subject: str = ""
    from_email: str = ""
    from_name: str = ""
    to: List[MandrillRecipient] = Field(default_factory=list)
    important: bool = False
    track_opens: bool = False
    track_clicks: bool = False
    auto_text: bool = False
    view_content_link: bool = False
    preserve_recipients: bool = False
    signing_domain: str = ""
    tags: List[str] = Field(default_factory=list)
    attachments: List[MandrillAttachment] = Field(default_factory=list)


class MandrillSendResult(BaseModel):
    email: str = ""
    status: str = ""
    reject_reason: Optional[str] = None
    id: Optional[str] = Field(default=None, alias="_id")


class MandrillTransport(Protocol):
    def send_message(
        self, message: MandrillMessage, async_send: bool
    ) -> List[MandrillSendResult]: ...


class MandrillClient:
    """``MandrillTransport`` talking to the Mandrill JSON API over HTTP."""

    def __init__(
        self,
        api_key: str,
        base_url: str = MANDRILL_API_URL,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ValueError("a Mandrill API key is required")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def send_message(
        self, message: MandrillMessage, async_send: bool
    ) -> List[MandrillSendResult]:
        """Call ``messages/send``.

        Raises:
            requests.HTTPError: If Mandrill rejects the call (bad key,
                validation error, ...).  The error text is ``code: message``
                as reported by Mandrill.
        """
        payload = {
            "key": self._api_key,
            "message": message.model_dump(),
            "async": async_send,
        }
        response = self._session.post(
            f"{self._base_url}/messages/send.json",
            json=payload,
            timeout=self._timeout,
        )
        if not response.ok:
            raise requests.HTTPError(_describe_error(response), response=response)
        return [MandrillSendResult.model_validate(item) for item in response.json()]


def _describe_error(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"{response.status_code}: {response.text}"
    return f"{body.get('code', response.status_code)}: {body.get('message', '')}"


def signing_domain(from_address: str) -> str:
    """Return the domain part of ``from_address``.

    Raises:
        InvalidFromAddressError: If there is no ``@`` or nothing after it.
    """
    parts = from_address.split("@")
    if len(parts) <= 1 or not parts[1]:
        raise InvalidFromAddressError(from_address)
    return parts[1]


class MandrillSender(EmailSender):
    """Mandrill implementation of the ``EmailSender`` interface."""

    provider_name = "Mandrill"

    def __init__(self, client: MandrillTransport, async_send: bool = True) -> None:
        self._client = client
        self._async_send = async_send

    def build_message(self, email: Email) -> MandrillMessage:
        """Translate ``email``; drains every attachment stream."""
        message = MandrillMessage(
            auto_text=email.auto_text,
            from_email=email.from_address,
            from_name=email.from_name,
            html=email.html_content,
            important=email.important,
            preserve_recipients=False,
            signing_domain=signing_domain(email.from_address),
            subject=email.subject,
            tags=list(email.tags),
            text=email.plain_text_content,
            track_clicks=email.track_clicks,
            track_opens=email.track_opens,
            view_content_link=email.view_content_link,
        )

        # Order matters on the wire: to, then bcc, then cc
        message.to.extend(MandrillRecipient(email=r, type="to") for r in email.recipients)
        message.to.extend(MandrillRecipient(email=r, type="bcc") for r in email.recipients_bcc)
        message.to.extend(MandrillRecipient(email=r, type="cc") for r in email.recipients_cc)

        for attachment in email.attachments:
            message.attachments.append(
                MandrillAttachment(
                    name=attachment.file_name,
                    type=attachment.file_type,
                    content=encode_attachment(attachment),
                )
            )
        return message

    def send_email(self, email: Email) -> None:
        """Send the email through Mandrill.

        Raises:
            InvalidFromAddressError: If the sender address has no domain.
            MessageNotSentError: If any recipient was not accepted.
        """
        message = self.build_message(email)
        results = self._client.send_message(message, self._async_send)

        for result in results:
            if result.status not in SUCCESS_STATUSES:
                LOGGER.warning(
                    "Mandrill did not send to %s: status=%s reason=%s",
                    result.email,
                    result.status,
                    result.reject_reason,
                )
                raise MessageNotSentError(result.status, result.reject_reason)


__all__ = [
    "MandrillAttachment",
    "MandrillClient",
    "MandrillMessage",
    "MandrillRecipient",
    "MandrillSendResult",
    "MandrillSender",
    "MandrillTransport",
    "signing_domain",
]
