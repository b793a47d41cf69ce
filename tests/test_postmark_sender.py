import base64
import io
import sys
from pathlib import Path

import pytest
import requests

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from email_service.errors import InvalidProviderResponseError, PostmarkError
from email_service.mailer.postmark_sender import (
    PostmarkClient,
    PostmarkEmail,
    PostmarkResponse,
    PostmarkSender,
)
from email_service.message import Email


class FakePostmark:
    def __init__(self) -> None:
        self.emails: list = []

    def send_email(self, email: PostmarkEmail) -> PostmarkResponse:
        self.emails.append(email)
        if email.to.startswith("test@badhostname.com"):
            raise requests.ConnectionError("no such host")
        if email.to.startswith("test@badfrom.com"):
            return PostmarkResponse(
                ErrorCode=400,
                Message="The 'From' address you supplied is not a Sender Signature on your account",
            )
        if email.to.startswith("test@badtoken.com"):
            return PostmarkResponse(ErrorCode=10, Message="Invalid server token")
        return PostmarkResponse(ErrorCode=0, Message="OK", MessageID="abc")


def _email(recipient: str = "test@domain.com") -> Email:
    return Email(
        subject="Test subject",
        plain_text_content="Test",
        html_content="<html>Test</html>",
        from_address="no-reply@example.com",
        from_name="No Reply",
        reply_to_address="reply@example.com",
        recipients=[recipient],
    )


def test_success() -> None:
    client = FakePostmark()
    PostmarkSender(client).send_email(_email())
    assert len(client.emails) == 1


@pytest.mark.parametrize(
    "recipient, code",
    [("test@badfrom.com", 400), ("test@badtoken.com", 10)],
)
def test_nonzero_error_code_is_failure(recipient: str, code: int) -> None:
    with pytest.raises(PostmarkError) as exc_info:
        PostmarkSender(FakePostmark()).send_email(_email(recipient))

    assert isinstance(exc_info.value, InvalidProviderResponseError)
    assert exc_info.value.error_code == code
    assert str(code) in str(exc_info.value)


def test_transport_error_propagates() -> None:
    with pytest.raises(requests.ConnectionError):
        PostmarkSender(FakePostmark()).send_email(_email("test@badhostname.com"))


def test_fields_are_mapped() -> None:
    client = FakePostmark()
    email = _email()
    email.recipients = ["a@example.com", "b@example.com"]
    email.recipients_cc = ["c@example.com", "d@example.com"]
    email.recipients_bcc = ["e@example.com"]
    email.tags = ["welcome", "admin_alert"]
    email.track_opens = True

    PostmarkSender(client).send_email(email)
    sent = client.emails[0]

    assert sent.from_ == "No Reply no-reply@example.com"
    assert sent.to == "a@example.com,b@example.com"
    assert sent.cc == "c@example.com,d@example.com"
    assert sent.bcc == "e@example.com"
    assert sent.tag == "welcome,admin_alert"
    assert sent.subject == "Test subject"
    assert sent.html_body == "<html>Test</html>"
    assert sent.text_body == "Test"
    assert sent.reply_to == "reply@example.com"
    assert sent.track_opens is True
    assert sent.track_links == "None"
    assert sent.headers == []


def test_from_without_name_and_empty_copies() -> None:
    client = FakePostmark()
    email = _email()
    email.from_name = ""

    PostmarkSender(client).send_email(email)
    sent = client.emails[0]

    assert sent.from_ == "no-reply@example.com"
    assert sent.cc is None and sent.bcc is None


def test_click_tracking_maps_to_track_links() -> None:
    client = FakePostmark()
    email = _email()
    email.track_clicks = True
    PostmarkSender(client).send_email(email)
    assert client.emails[0].track_links == "HtmlAndText"


def test_important_adds_priority_headers() -> None:
    client = FakePostmark()
    email = _email()
    email.important = True
    PostmarkSender(client).send_email(email)

    assert [(h.name, h.value) for h in client.emails[0].headers] == [
        ("X-Priority", "1 (Highest)"),
        ("X-MSMail-Priority", "High"),
        ("Importance", "High"),
    ]


def test_attachments_are_base64() -> None:
    client = FakePostmark()
    email = _email()
    email.add_attachment("file.txt", "text/plain", io.BytesIO(b"hello"))
    PostmarkSender(client).send_email(email)

    attachment = client.emails[0].attachments[0]
    assert (attachment.name, attachment.content_type) == ("file.txt", "text/plain")
    assert base64.b64decode(attachment.content) == b"hello"


def test_auto_text_only_warns(caplog) -> None:
    client = FakePostmark()
    email = _email()
    email.auto_text = True
    PostmarkSender(client).send_email(email)

    assert len(client.emails) == 1
    assert "auto text is enabled, but Postmark does not offer this feature" in caplog.text


class FakeResponse:
    def __init__(self, status_code: int, body=None) -> None:
        self.status_code = status_code
        self._body = body

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


class FakeSession:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response
        self.calls: list = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


def test_client_posts_aliased_payload() -> None:
    session = FakeSession(
        FakeResponse(200, {"ErrorCode": 0, "Message": "OK", "MessageID": "abc",
                           "To": "a@example.com"})
    )
    client = PostmarkClient("server-token", session=session)

    response = client.send_email(
        PostmarkEmail(from_="no-reply@example.com", to="a@example.com", subject="s")
    )

    url, kwargs = session.calls[0]
    assert url == "https://api.postmarkapp.com/email"
    assert kwargs["headers"]["X-Postmark-Server-Token"] == "server-token"
    assert kwargs["json"]["From"] == "no-reply@example.com"
    assert kwargs["json"]["TrackLinks"] == "None"
    assert "Cc" not in kwargs["json"]
    assert response.error_code == 0
    assert response.message_id == "abc"


def test_client_returns_api_error_bodies() -> None:
    session = FakeSession(
        FakeResponse(422, {"ErrorCode": 300, "Message": "Invalid email request"})
    )
    response = PostmarkClient("token", session=session).send_email(PostmarkEmail())
    assert (response.error_code, response.message) == (300, "Invalid email request")


def test_client_raises_on_non_json_failure() -> None:
    session = FakeSession(FakeResponse(503))
    with pytest.raises(requests.HTTPError):
        PostmarkClient("token", session=session).send_email(PostmarkEmail())


def test_client_raises_on_json_failure_without_error_code() -> None:
    session = FakeSession(FakeResponse(500, {"Message": "Internal server error"}))
    with pytest.raises(requests.HTTPError):
        PostmarkSender(PostmarkClient("token", session=session)).send_email(_email())
