"""Chat webhook adapter built on httpx."""

from collections.abc import Mapping
from typing import Any

import httpx

DEFAULT_TIMEOUT = 10.0


class HttpxChatWebhook:
    """ChatWebhookPort implementation that POSTs JSON with httpx.

    Non-2xx responses raise ``httpx.HTTPStatusError`` so the dispatcher can
    record the channel as failed.

    Example:
        ```python
        async with HttpxChatWebhook() as webhook:
            await webhook.post_message(url, {"attachments": [...]})
        ```
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the adapter.

        Args:
            client: Client to send with. When omitted one is created and owned
                by this adapter (closed by aclose()).
            timeout: Request timeout in seconds for an owned client.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def post_message(self, url: str, payload: Mapping[str, Any]) -> None:
        """POST a JSON document to the webhook URL."""
        response = await self._client.post(url, json=dict(payload))
        response.raise_for_status()

    async def aclose(self) -> None:
        """Close the underlying client if this adapter created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxChatWebhook":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
