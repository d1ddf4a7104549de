"""ASGI adapter for metric ingestion and read-only monitoring endpoints.

The app is framework-agnostic and runs under any ASGI server (uvicorn,
hypercorn, daphne).
"""

import json
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any
from urllib.parse import parse_qs

from telemetry_alerts.adapters.event_store import InMemoryEventLog
from telemetry_alerts.adapters.frameworks.query_params import (
    _parse_dimension_params,
    _parse_level_param,
    _parse_since_param,
)
from telemetry_alerts.core.collector import MetricCollector
from telemetry_alerts.core.encoding.alert_text import json_default
from telemetry_alerts.core.encoding.json_codec import (
    decode_metric_batch,
    encode_aggregation,
    encode_rule,
)
from telemetry_alerts.core.encoding.ndjson import encode_events
from telemetry_alerts.core.errors import InvalidPayloadError
from telemetry_alerts.core.ports import EventLogPort
from telemetry_alerts.core.rules import MonitoringRuleEngine

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

JSON_CONTENT_TYPE = "application/json"
NDJSON_CONTENT_TYPE = "application/x-ndjson"


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Parse query string from ASGI scope into parameter dictionary.

    Args:
        scope: ASGI scope dictionary containing request metadata.

    Returns:
        Dictionary mapping parameter names to lists of values.
        Returns empty dict if query_string is missing or empty.
    """
    query_string = scope.get("query_string", b"").decode(errors="replace")
    return parse_qs(query_string)


async def _read_body(receive: Receive) -> bytes:
    """Read the full request body, following ``more_body`` chunks."""
    chunks = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    """Send an HTTP response with headers and body.

    Args:
        send: ASGI send callable for writing response.
        status: HTTP status code.
        content_type: Content-Type header value.
        body: Response body as string (will be encoded to bytes).
    """
    headers = [(b"content-type", content_type.encode())]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


async def _send_json(send: Send, status: int, document: Any) -> None:
    await _send_response(
        send, status, JSON_CONTENT_TYPE, json.dumps(document, default=json_default)
    )


async def _handle_endpoint(
    send: Send,
    endpoint_func: Callable[[], Awaitable[tuple[int, str]]],
    content_type: str,
    log_message: str,
) -> None:
    """Execute an endpoint function with error handling and send response.

    Args:
        send: ASGI send callable for writing response.
        endpoint_func: Async function returning status and response body.
        content_type: Content-Type header for the endpoint's response.
        log_message: Message to log on error.
    """
    try:
        status, body = await endpoint_func()
    except InvalidPayloadError as e:
        await _send_json(send, 400, {"error": str(e)})
        return
    except Exception:
        logger.exception(log_message)
        await _send_json(send, 500, {"error": "Internal Server Error"})
        return
    await _send_response(send, status, content_type, body)


def create_asgi_app(
    collector: MetricCollector,
    engine: MonitoringRuleEngine,
    event_log: EventLogPort | None = None,
) -> ASGIApp:
    """Create an ASGI app with /metrics, /aggregations, /rules, and /events.

    Args:
        collector: Collector that receives posted metric batches.
        engine: Rule engine whose rules are listed by /rules.
        event_log: Event sink. /events is served only for an InMemoryEventLog.

    Returns:
        ASGI application callable.
    """
    readable_log = event_log if isinstance(event_log, InMemoryEventLog) else None

    async def ingest_metrics(receive: Receive) -> tuple[int, str]:
        body = await _read_body(receive)
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidPayloadError(f"malformed JSON: {e}") from e
        batch = decode_metric_batch(payload)
        await collector.publish_metrics(batch)
        return 202, json.dumps({"accepted": len(batch.metrics)})

    async def read_aggregation(params: dict[str, list[str]]) -> tuple[int, str]:
        namespace = params.get("namespace", [""])[0]
        name = params.get("name", [""])[0]
        if not namespace or not name:
            raise InvalidPayloadError("namespace and name are required")
        try:
            dimensions = _parse_dimension_params(params)
        except ValueError as e:
            raise InvalidPayloadError(str(e)) from e
        aggregation = collector.get_metric_aggregation(namespace, name, dimensions)
        if aggregation is None:
            return 404, json.dumps({"error": "Not Found"})
        return 200, json.dumps(encode_aggregation(aggregation))

    async def list_rules() -> tuple[int, str]:
        rules = [encode_rule(rule) for rule in engine.get_rules()]
        return 200, json.dumps(rules, default=json_default)

    async def read_events(
        log: InMemoryEventLog, params: dict[str, list[str]]
    ) -> tuple[int, str]:
        since = _parse_since_param(params)
        level = _parse_level_param(params)
        records = [r async for r in log.read(since=since, level=level)]
        return 200, encode_events(records)

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        method = scope.get("method", "GET")
        path = scope["path"]

        if path == "/metrics" and method == "POST":
            await _handle_endpoint(
                send,
                lambda: ingest_metrics(receive),
                JSON_CONTENT_TYPE,
                "Error ingesting metrics batch",
            )
        elif path == "/aggregations" and method == "GET":
            params = _parse_query_params(scope)
            await _handle_endpoint(
                send,
                lambda: read_aggregation(params),
                JSON_CONTENT_TYPE,
                "Error reading metric aggregation",
            )
        elif path == "/rules" and method == "GET":
            await _handle_endpoint(
                send, list_rules, JSON_CONTENT_TYPE, "Error listing rules"
            )
        elif path == "/events" and method == "GET" and readable_log is not None:
            params = _parse_query_params(scope)
            log = readable_log
            await _handle_endpoint(
                send,
                lambda: read_events(log, params),
                NDJSON_CONTENT_TYPE,
                "Error encoding events endpoint",
            )
        else:
            await _send_response(send, 404, "text/plain", "Not Found")

    return app
