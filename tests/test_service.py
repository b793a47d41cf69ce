import io
import sys
from pathlib import Path
from typing import List

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from email_service import MailService, ServiceConfig, ServiceProvider
from email_service.errors import (
    MaxBccRecipientsReachedError,
    MaxCcRecipientsReachedError,
    MaxToRecipientsReachedError,
    MessageNotSentError,
    MissingContentError,
    MissingRecipientError,
    MissingSubjectError,
    ProviderNotAvailableError,
)
from email_service.mailer.mandrill_sender import MandrillSendResult
from email_service.mailer.postmark_sender import PostmarkResponse
from email_service.mailer.ses_sender import format_raw_email_response
from email_service.mailer.smtp_sender import SmtpSession


class SpySes:
    def __init__(self) -> None:
        self.calls: List[bytes] = []

    def send_raw_email(self, raw: bytes) -> str:
        self.calls.append(raw)
        return format_raw_email_response("message-id", "request-id")


class SpyMandrill:
    def __init__(self) -> None:
        self.calls = []

    def send_message(self, message, async_send):
        self.calls.append((message, async_send))
        if message.to[0].email == "test@badstatus.com":
            return [MandrillSendResult(email="test@badstatus.com", status="unknown")]
        return []


class SpyPostmark:
    def __init__(self) -> None:
        self.calls = []

    def send_email(self, email):
        self.calls.append(email)
        return PostmarkResponse(ErrorCode=0, Message="OK")


class SpySession(SmtpSession):
    def __init__(self, client: "SpySmtp") -> None:
        super().__init__(client)  # type: ignore[arg-type]
        self._spy = client

    def send(self) -> None:
        self._spy.calls.append(self)


class SpySmtp:
    def __init__(self) -> None:
        self.calls: List[SpySession] = []

    def new_session(self) -> SpySession:
        return SpySession(self)


@pytest.fixture
def spies():
    return {
        ServiceProvider.AWS_SES: SpySes(),
        ServiceProvider.MANDRILL: SpyMandrill(),
        ServiceProvider.POSTMARK: SpyPostmark(),
        ServiceProvider.SMTP: SpySmtp(),
    }


def _config(**overrides) -> ServiceConfig:
    values = dict(
        from_username="no-reply",
        from_domain="example.com",
        from_name="No Reply",
        mandrill_api_key="mandrill-key",
        aws_ses_access_id="AKIAEXAMPLE",
        aws_ses_secret_key="secret",
        postmark_server_token="postmark-token",
        smtp_host="smtp.example.com",
        smtp_username="johndoe",
        smtp_password="secretPassword",
    )
    values.update(overrides)
    return ServiceConfig(**values)


def _service(spies, **overrides) -> MailService:
    factories = {provider: (lambda cfg, s=spy: s) for provider, spy in spies.items()}
    service = MailService(_config(**overrides), client_factories=factories)
    service.start_up()
    return service


def _ready_email(service: MailService):
    email = service.new_email()
    email.subject = "Test subject"
    email.plain_text_content = "Test"
    email.html_content = "<html>Test</html>"
    email.recipients = ["test@domain.com"]
    return email


def _total_calls(spies) -> int:
    return sum(len(spy.calls) for spy in spies.values())


def test_new_email_uses_service_defaults(spies) -> None:
    service = _service(
        spies, auto_text=True, important=True, track_clicks=True, track_opens=True,
        email_css=b"body {}",
    )
    email = service.new_email()

    assert email.from_address == "no-reply@example.com"
    assert email.from_name == "No Reply"
    assert email.reply_to_address == "no-reply@example.com"
    assert email.css == b"body {}"
    assert (email.auto_text, email.important, email.track_clicks, email.track_opens) == (
        True, True, True, True,
    )
    assert email.view_content_link is False
    assert email.subject == ""
    assert email.recipients == [] and email.attachments == [] and email.tags == []


def test_new_emails_do_not_share_lists(spies) -> None:
    service = _service(spies)
    first, second = service.new_email(), service.new_email()
    first.recipients.append("a@example.com")
    assert second.recipients == []


def test_add_attachment_keeps_order(spies) -> None:
    email = _service(spies).new_email()
    email.add_attachment("a.txt", "text/plain", io.BytesIO(b"a"))
    email.add_attachment("b.pdf", "application/pdf", io.BytesIO(b"b"))

    assert [a.file_name for a in email.attachments] == ["a.txt", "b.pdf"]
    assert email.attachments[1].file_type == "application/pdf"


@pytest.mark.parametrize("provider", list(ServiceProvider))
def test_send_routes_to_selected_provider(spies, provider) -> None:
    service = _service(spies)
    service.send_email(_ready_email(service), provider)

    assert len(spies[provider].calls) == 1
    assert _total_calls(spies) == 1


def test_send_accepts_provider_value(spies) -> None:
    service = _service(spies)
    service.send_email(_ready_email(service), "postmark")
    assert len(spies[ServiceProvider.POSTMARK].calls) == 1


def test_mandrill_is_sent_async(spies) -> None:
    service = _service(spies)
    service.send_email(_ready_email(service), ServiceProvider.MANDRILL)
    _, async_send = spies[ServiceProvider.MANDRILL].calls[0]
    assert async_send is True


def test_unavailable_provider(spies) -> None:
    spies.pop(ServiceProvider.SMTP)
    service = _service(spies, smtp_host="")

    with pytest.raises(ProviderNotAvailableError) as exc_info:
        service.send_email(_ready_email(service), ServiceProvider.SMTP)

    assert exc_info.value.provider is ServiceProvider.SMTP
    assert ServiceProvider.SMTP not in exc_info.value.available
    assert "smtp" in str(exc_info.value)
    assert _total_calls(spies) == 0


def test_unknown_provider_is_rejected(spies) -> None:
    service = _service(spies)
    with pytest.raises(ProviderNotAvailableError):
        service.send_email(_ready_email(service), "carrier-pigeon")
    with pytest.raises(ProviderNotAvailableError):
        service.send_email(_ready_email(service), 42)


def test_provider_check_comes_before_validation(spies) -> None:
    spies.pop(ServiceProvider.SMTP)
    service = _service(spies, smtp_host="")
    with pytest.raises(ProviderNotAvailableError):
        service.send_email(service.new_email(), ServiceProvider.SMTP)


def test_missing_subject_never_reaches_transport(spies) -> None:
    service = _service(spies)
    email = _ready_email(service)
    email.subject = ""

    for provider in ServiceProvider:
        with pytest.raises(MissingSubjectError):
            service.send_email(email, provider)
    assert _total_calls(spies) == 0


def test_validation_order_first_failure_wins(spies) -> None:
    service = _service(spies)
    email = service.new_email()
    email.recipients_cc = ["cc@example.com"] * 60

    with pytest.raises(MissingSubjectError):
        service.validate(email)
    email.subject = "Subject"
    with pytest.raises(MissingContentError):
        service.validate(email)
    email.html_content = "<p>hi</p>"
    with pytest.raises(MissingRecipientError):
        service.validate(email)
    email.recipients = ["to@example.com"]
    with pytest.raises(MaxCcRecipientsReachedError):
        service.validate(email)


def test_plain_text_alone_is_enough_content(spies) -> None:
    service = _service(spies)
    email = _ready_email(service)
    email.html_content = ""
    service.validate(email)


def test_to_ceiling_boundary(spies) -> None:
    service = _service(spies)
    email = _ready_email(service)

    email.recipients = [f"user{i}@example.com" for i in range(50)]
    service.validate(email)

    email.recipients.append("one-too-many@example.com")
    with pytest.raises(MaxToRecipientsReachedError) as exc_info:
        service.send_email(email, ServiceProvider.POSTMARK)

    assert (exc_info.value.limit, exc_info.value.count) == (50, 51)
    assert "50" in str(exc_info.value) and "51" in str(exc_info.value)
    assert _total_calls(spies) == 0


def test_configured_cc_and_bcc_ceilings(spies) -> None:
    service = _service(spies, max_cc_recipients=2, max_bcc_recipients=1)
    email = _ready_email(service)

    email.recipients_cc = ["a@example.com", "b@example.com"]
    email.recipients_bcc = ["c@example.com"]
    service.validate(email)

    email.recipients_bcc.append("d@example.com")
    with pytest.raises(MaxBccRecipientsReachedError) as exc_info:
        service.validate(email)
    assert (exc_info.value.limit, exc_info.value.count) == (1, 2)

    email.recipients_cc.append("e@example.com")
    with pytest.raises(MaxCcRecipientsReachedError):
        service.validate(email)


def test_provider_errors_propagate_unchanged(spies, caplog) -> None:
    service = _service(spies)
    email = _ready_email(service)
    email.recipients = ["test@badstatus.com"]

    with pytest.raises(MessageNotSentError) as exc_info:
        service.send_email(email, ServiceProvider.MANDRILL)

    assert exc_info.value.status == "unknown"
    assert "via mandrill failed" in caplog.text


def test_transport_exception_is_not_wrapped(spies) -> None:
    class Boom(Exception):
        pass

    class FailingPostmark:
        def send_email(self, email):
            raise Boom("connection reset")

    spies[ServiceProvider.POSTMARK] = FailingPostmark()
    service = _service(spies)

    with pytest.raises(Boom):
        service.send_email(_ready_email(service), ServiceProvider.POSTMARK)


def test_sender_does_not_modify_email(spies) -> None:
    service = _service(spies, important=True, track_clicks=True)
    email = _ready_email(service)
    email.recipients_cc = ["cc@example.com"]
    email.tags = ["welcome"]
    before = (list(email.recipients), list(email.recipients_cc), list(email.tags),
              email.subject, email.html_content, email.from_address)

    for provider in ServiceProvider:
        service.send_email(email, provider)

    after = (email.recipients, email.recipients_cc, email.tags,
             email.subject, email.html_content, email.from_address)
    assert before == after
