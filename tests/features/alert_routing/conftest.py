"""BDD step definitions for alert routing features."""

import pytest
from pytest_bdd import given, parsers, then, when
from tests.features.alert_routing.steps_helpers import (
    FailingChatWebhook,
    RoutingScenarioContext,
    run_async,
)
from tests.helpers import NAMESPACE, NOW, WEBHOOK_URL, batch, metric, rule_definition

from telemetry_alerts.adapters.channels.in_memory import InMemoryChatWebhook
from telemetry_alerts.core.collector import MetricCollector
from telemetry_alerts.core.dispatcher import AlertChannelSettings, AlertDispatcher
from telemetry_alerts.core.models import Alert, AlertSeverity
from telemetry_alerts.core.rules import MonitoringRuleEngine


@pytest.fixture
def ctx() -> RoutingScenarioContext:
    """Fresh scenario context for each test."""
    return RoutingScenarioContext()


def _dispatcher(ctx: RoutingScenarioContext) -> AlertDispatcher:
    settings = AlertChannelSettings(
        email_source="alerts@example.com",
        topic_arn="arn:aws:sns:us-east-1:123456789012:alerts",
        webhook_url=ctx.webhook_url,
    )
    return AlertDispatcher(
        settings,
        ctx.email_sender,
        ctx.topic_publisher,
        chat_webhook=ctx.chat_webhook,
    )


# === Given ===
@given("email and topic channels")
def step_channels(ctx: RoutingScenarioContext) -> None:
    assert ctx.email_sender.sent == []
    assert ctx.topic_publisher.published == []


@given("no chat webhook is configured")
def step_no_webhook(ctx: RoutingScenarioContext) -> None:
    ctx.chat_webhook = None
    ctx.webhook_url = None


@given("a chat webhook is configured")
def step_webhook(ctx: RoutingScenarioContext) -> None:
    ctx.chat_webhook = InMemoryChatWebhook()
    ctx.webhook_url = WEBHOOK_URL


@given("a failing chat webhook is configured")
def step_failing_webhook(ctx: RoutingScenarioContext) -> None:
    ctx.chat_webhook = FailingChatWebhook()
    ctx.webhook_url = WEBHOOK_URL


@given("a rule alerting WARNING above 100 and ERROR above 200")
def step_rule(ctx: RoutingScenarioContext) -> None:
    ctx.rules.append(rule_definition(name="API latency"))


@given(parsers.parse("the metric history {values}"))
def step_history(ctx: RoutingScenarioContext, values: str) -> None:
    ctx.history = [float(v) for v in values.split(",")]


# === When ===
@when(parsers.parse("a {severity} alert is sent"))
def step_send_alert(ctx: RoutingScenarioContext, severity: str) -> None:
    alert = Alert(
        id="alert-1",
        severity=AlertSeverity(severity),
        title="Monitoring Alert: API latency",
        message="Latency is high",
        timestamp=NOW,
    )
    ctx.result = run_async(_dispatcher(ctx).send_alert(alert))


@when("the rules are evaluated")
def step_evaluate(ctx: RoutingScenarioContext) -> None:
    async def scenario() -> None:
        collector = MetricCollector(ctx.backend, ctx.event_log, batch_interval=3600)
        engine = MonitoringRuleEngine(
            collector, _dispatcher(ctx), ctx.event_log, clock=lambda: NOW
        )
        for definition in ctx.rules:
            engine.add_rule(definition)
        # One sample per minute, the newest 10 seconds ago.
        count = len(ctx.history)
        samples = [
            metric(value=value, seconds_ago=10 + 60 * (count - 1 - i))
            for i, value in enumerate(ctx.history)
        ]
        if samples:
            await collector.publish_metrics(batch(*samples, namespace=NAMESPACE))
        await collector.flush_all_metrics()
        await engine.evaluate_all_rules()

    run_async(scenario())


# === Then ===
@then(parsers.parse("the email channel receives {count:d} message"))
@then(parsers.parse("the email channel receives {count:d} messages"))
def step_email_count(ctx: RoutingScenarioContext, count: int) -> None:
    assert len(ctx.email_sender.sent) == count


@then(parsers.parse("the topic channel receives {count:d} message"))
@then(parsers.parse("the topic channel receives {count:d} messages"))
def step_topic_count(ctx: RoutingScenarioContext, count: int) -> None:
    assert len(ctx.topic_publisher.published) == count


@then(parsers.parse("the chat webhook receives {count:d} message"))
def step_webhook_count(ctx: RoutingScenarioContext, count: int) -> None:
    assert isinstance(ctx.chat_webhook, InMemoryChatWebhook)
    assert len(ctx.chat_webhook.posts) == count


@then(parsers.parse('the chat message color is "{color}"'))
def step_webhook_color(ctx: RoutingScenarioContext, color: str) -> None:
    assert isinstance(ctx.chat_webhook, InMemoryChatWebhook)
    _, payload = ctx.chat_webhook.posts[-1]
    assert payload["attachments"][0]["color"] == color


@then(parsers.parse('the dispatch reports "{channel}" as failed'))
def step_failed_channel(ctx: RoutingScenarioContext, channel: str) -> None:
    assert ctx.result is not None
    assert ctx.result.failed == [channel]


@then(parsers.parse('the email subject is "{subject}"'))
def step_email_subject(ctx: RoutingScenarioContext, subject: str) -> None:
    (email,) = ctx.email_sender.sent
    assert email.subject == subject
