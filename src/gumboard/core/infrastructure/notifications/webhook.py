from __future__ import annotations

from typing import Any, Optional

import httpx

from gumboard.utils.logging import get_logger
from gumboard.utils.metrics import atimer, inc

_log = get_logger("adapters.webhook")

DEFAULT_USERNAME = "Gumboard"
DEFAULT_ICON_EMOJI = ":clipboard:"
DEFAULT_TIMEOUT_SEC = 5.0


class WebhookDispatcher:
    """Adapter for Slack-style incoming webhooks (single POST, no retries)."""

    def __init__(
        self,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        username: str = DEFAULT_USERNAME,
        icon_emoji: str = DEFAULT_ICON_EMOJI,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = float(timeout_sec)
        self._username = username
        self._icon_emoji = icon_emoji
        # tests inject httpx.MockTransport here
        self._transport = transport

    def build_payload(self, message: str) -> dict[str, Any]:
        return {
            "text": str(message or ""),
            "username": self._username,
            "icon_emoji": self._icon_emoji,
        }

    async def send(self, webhook_url: str, message: str) -> Optional[str]:
        """
        Returns a message reference on 2xx, ``None`` on any failure.
        Never raises to the caller.
        """
        if not webhook_url:
            _log.info("webhook_disabled")
            return None

        try:
            async with atimer("webhook_send_seconds"):
                async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                    resp = await client.post(webhook_url, json=self.build_payload(message))
        except httpx.TimeoutException:
            inc("webhook_send_total", outcome="timeout")
            _log.warning("webhook.send_timeout", extra={"timeout_sec": self._timeout})
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # InvalidURL covers a malformed stored URL; it is not an HTTPError
            inc("webhook_send_total", outcome="error")
            _log.warning("webhook.send_failed", extra={"error": f"{type(exc).__name__}: {exc}"})
            return None

        if not resp.is_success:
            inc("webhook_send_total", outcome="non_2xx")
            _log.warning(
                "webhook.send_non_2xx",
                extra={"status": resp.status_code, "body": resp.text[:200]},
            )
            return None

        inc("webhook_send_total", outcome="ok")
        ref = resp.headers.get("x-slack-req-id") or resp.text.strip()
        return ref or "ok"
