"""Tests for the httpx webhook and SMTP email adapters."""

import json
import smtplib

import httpx
import pytest

from telemetry_alerts.adapters.channels.smtp import SmtpEmailSender
from telemetry_alerts.adapters.channels.webhook import HttpxChatWebhook
from telemetry_alerts.core.models import EmailMessage
from telemetry_alerts.core.ports import ChatWebhookPort, EmailSenderPort
from tests.helpers import WEBHOOK_URL

MESSAGE = EmailMessage(
    source="alerts@example.com",
    destination_addresses=("ops@example.com", "dev@example.com"),
    subject="[WARNING] Monitoring Alert: CPU",
    body_text="\nAlert Details:\n",
)


class TestHttpxChatWebhook:
    """Tests for HttpxChatWebhook."""

    @pytest.mark.channels
    def test_implements_chat_webhook_port(self) -> None:
        """HttpxChatWebhook satisfies ChatWebhookPort."""
        assert isinstance(HttpxChatWebhook(), ChatWebhookPort)

    @pytest.mark.channels
    async def test_posts_json_payload(self) -> None:
        """The payload is POSTed as JSON to the given URL."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        async with HttpxChatWebhook(client=client) as webhook:
            await webhook.post_message(WEBHOOK_URL, {"attachments": [{"text": "hi"}]})

        (request,) = requests
        assert request.method == "POST"
        assert str(request.url) == WEBHOOK_URL
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"attachments": [{"text": "hi"}]}
        # A supplied client belongs to the caller.
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.channels
    async def test_non_2xx_response_raises(self) -> None:
        """A non-2xx response raises HTTPStatusError."""
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        client = httpx.AsyncClient(transport=transport)
        webhook = HttpxChatWebhook(client=client)

        with pytest.raises(httpx.HTTPStatusError):
            await webhook.post_message(WEBHOOK_URL, {})

        await client.aclose()

    @pytest.mark.channels
    async def test_owned_client_is_closed(self) -> None:
        """aclose() closes a client the webhook created itself."""
        webhook = HttpxChatWebhook(timeout=1.0)
        await webhook.aclose()
        assert webhook._client.is_closed


class FakeSMTP:
    """Stands in for smtplib.SMTP and records the conversation."""

    instances: list["FakeSMTP"] = []

    def __init__(self, host: str, port: int, timeout: float) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls: list[str] = []
        self.sent: list[tuple] = []
        FakeSMTP.instances.append(self)

    def __enter__(self) -> "FakeSMTP":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.calls.append("quit")

    def starttls(self) -> None:
        self.calls.append("starttls")

    def login(self, username: str, password: str) -> None:
        self.calls.append(f"login:{username}")

    def send_message(self, msg, from_addr: str, to_addrs: list[str]) -> None:
        self.calls.append("send_message")
        self.sent.append((msg, from_addr, to_addrs))


@pytest.fixture
def fake_smtp(monkeypatch: pytest.MonkeyPatch) -> type[FakeSMTP]:
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


class TestSmtpEmailSender:
    """Tests for SmtpEmailSender."""

    @pytest.mark.channels
    def test_implements_email_sender_port(self) -> None:
        """SmtpEmailSender satisfies EmailSenderPort."""
        assert isinstance(SmtpEmailSender("localhost"), EmailSenderPort)

    @pytest.mark.channels
    def test_mime_headers_and_body(self) -> None:
        """The MIME message carries sender, recipients, subject and body."""
        mime = SmtpEmailSender.build_mime(MESSAGE)

        assert mime["From"] == "alerts@example.com"
        assert mime["To"] == "ops@example.com, dev@example.com"
        assert mime["Subject"] == "[WARNING] Monitoring Alert: CPU"
        (part,) = mime.get_payload()
        assert part.get_payload(decode=True).decode("utf-8") == "\nAlert Details:\n"

    @pytest.mark.channels
    async def test_send_with_starttls_and_login(self, fake_smtp) -> None:
        """STARTTLS and login run before the message is sent."""
        sender = SmtpEmailSender(
            "smtp.example.com", port=2525, username="bot", password="secret"
        )

        await sender.send_email(MESSAGE)

        (server,) = fake_smtp.instances
        assert (server.host, server.port) == ("smtp.example.com", 2525)
        assert server.calls == ["starttls", "login:bot", "send_message", "quit"]
        _, from_addr, to_addrs = server.sent[0]
        assert from_addr == "alerts@example.com"
        assert to_addrs == ["ops@example.com", "dev@example.com"]

    @pytest.mark.channels
    async def test_plain_connection_without_credentials(self, fake_smtp) -> None:
        """No STARTTLS or login when neither is configured."""
        sender = SmtpEmailSender("localhost", port=25, starttls=False)

        await sender.send_email(MESSAGE)

        assert fake_smtp.instances[0].calls == ["send_message", "quit"]

    @pytest.mark.channels
    async def test_smtp_errors_propagate(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """SMTP errors reach the caller."""
        def refuse(*args, **kwargs):
            raise smtplib.SMTPConnectError(421, "busy")

        monkeypatch.setattr(smtplib, "SMTP", refuse)

        with pytest.raises(smtplib.SMTPConnectError):
            await SmtpEmailSender("localhost").send_email(MESSAGE)
