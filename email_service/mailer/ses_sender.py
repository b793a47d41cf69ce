"""AWS SES email sender implementation.

``SesSender`` renders the email as a raw MIME message and hands the bytes to
an SES client.  The client contract is a single method,
``send_raw_email(raw) -> str``, returning the SES ``SendRawEmail`` XML
response.  :class:`Boto3SesClient` implements it on top of ``boto3`` and
rebuilds that XML document from the structured boto3 response so the same
success check works for every client.

SES does not offer click tracking, open tracking or automatic text parts;
those flags are logged and ignored.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

import boto3

from email_service.errors import InvalidAwsResponseError
from email_service.mailer import PRIORITY_HEADERS, EmailSender
from email_service.mailer.mime import MimeEnvelope
from email_service.message import Email

LOGGER = logging.getLogger(__name__)

SUCCESS_MARKER = "SendRawEmailResult"

_RESPONSE_TEMPLATE = """<SendRawEmailResponse xmlns="http://ses.amazonaws.com/doc/2010-12-01/">
  <SendRawEmailResult>
    <MessageId>{message_id}</MessageId>
  </SendRawEmailResult>
  <ResponseMetadata>
    <RequestId>{request_id}</RequestId>
  </ResponseMetadata>
</SendRawEmailResponse>"""


class SesClient(Protocol):
    def send_raw_email(self, raw: bytes) -> str: ...


def format_raw_email_response(message_id: str, request_id: Any = None) -> str:
    """Return the SES XML response for a message id and request id.

    ``request_id`` falls back to ``"unknown"`` when missing or not a string.
    """
    if not isinstance(request_id, str) or not request_id:
        request_id = "unknown"
    return _RESPONSE_TEMPLATE.format(message_id=message_id, request_id=request_id)


class Boto3SesClient:
    """``SesClient`` backed by a boto3 ``ses`` client."""

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        region: str,
        endpoint_url: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        if client is None:
            kwargs: dict[str, Any] = {
                "region_name": region,
                "aws_access_key_id": access_key_id,
                "aws_secret_access_key": secret_access_key,
            }
            if endpoint_url:
                kwargs["endpoint_url"] = endpoint_url
            client = boto3.client("ses", **kwargs)
        self._client = client

    def send_raw_email(self, raw: bytes) -> str:
        """Send raw MIME bytes; botocore errors propagate unchanged."""
        result: Mapping[str, Any] = self._client.send_raw_email(
            RawMessage={"Data": raw}
        )
        metadata = result.get("ResponseMetadata") or {}
        return format_raw_email_response(result["MessageId"], metadata.get("RequestId"))


class SesSender(EmailSender):
    """AWS SES implementation of the ``EmailSender`` interface."""

    provider_name = "AWS SES"
    unsupported_flags = ("track_clicks", "track_opens", "auto_text")

    def __init__(self, client: SesClient) -> None:
        self._client = client

    def build_envelope(self, email: Email) -> MimeEnvelope:
        envelope = MimeEnvelope()
        envelope.add_to(*email.recipients)
        if email.recipients_cc:
            envelope.add_cc(*email.recipients_cc)
        if email.recipients_bcc:
            # SES routes raw messages by their headers
            envelope.write_bcc_header(True)
            envelope.add_bcc(*email.recipients_bcc)

        envelope.set_from(email.from_address, email.from_name)
        envelope.set_subject(email.subject)
        if email.reply_to_address:
            envelope.set_reply_to(email.reply_to_address)
        if email.plain_text_content:
            envelope.set_plain(email.plain_text_content)
        if email.html_content:
            envelope.set_html(email.html_content)

        for attachment in email.attachments:
            envelope.attach(
                attachment.file_name, attachment.file_reader, attachment.file_type
            )

        if email.important:
            for name, value in PRIORITY_HEADERS:
                envelope.add_header(name, value)
        return envelope

    def send_email(self, email: Email) -> None:
        """Send the email as raw MIME through SES.

        Raises:
            InvalidAwsResponseError: If the response lacks a send result.
        """
        envelope = self.build_envelope(email)
        self.warn_unsupported(email)

        response = self._client.send_raw_email(envelope.as_bytes())
        LOGGER.debug("AWS SES response: %s", response)
        if SUCCESS_MARKER not in response:
            raise InvalidAwsResponseError(response)


__all__ = [
    "Boto3SesClient",
    "SesClient",
    "SesSender",
    "format_raw_email_response",
]
